# services/review/controller.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple, Union

from services.review.domain import Judgments, LoadState, Record, UIState, VoteEntry
from services.review.errors import (
    LedgerUnavailable,
    LedgerWriteError,
    ListingUnavailable,
    RecordLoadError,
    RecordUnreadable,
    ReviewError,
    ValidationError,
)
from services.review.navigator import SessionNavigator
from services.review.ports import RecordRepository, VoteLedger
from services.review.reconciliation import derive_ui_state
from services.review.vote_cache import VoteCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerConfig:
    datasets: Tuple[str, ...]
    reviewers: Tuple[str, ...]
    # dataset -> ledger partition (sheet tab); unmapped datasets use the default partition
    partitions: Mapping[str, str] = field(default_factory=dict)
    default_dataset: Optional[str] = None

    def partition_for(self, dataset: Optional[str]) -> Optional[str]:
        if not dataset:
            return None
        return self.partitions.get(dataset)


@dataclass(frozen=True)
class SessionSnapshot:
    dataset: Optional[str]
    position: int
    total: int
    record_key: Optional[str]
    record: Optional[Record]
    load_state: LoadState
    error: Optional[ReviewError]
    reviewer: str
    ui_state: UIState
    has_next: bool
    has_prev: bool


JudgmentsInput = Union[Judgments, Mapping[str, Any]]


class SessionController:
    def __init__(
        self,
        *,
        repository: RecordRepository,
        ledger: VoteLedger,
        config: ControllerConfig,
    ) -> None:
        self.repository = repository
        self.ledger = ledger
        self.config = config

        self.navigator = SessionNavigator()
        self.active_dataset: Optional[str] = None
        self.current_record: Optional[Record] = None
        self.vote_cache: Optional[VoteCache] = None
        self.selected_reviewer = ""
        self.load_state = LoadState.IDLE
        self.last_error: Optional[ReviewError] = None

        self._listing_ok = False
        self._load_token = 0

    # --- Dataset ---

    async def select_dataset(self, name: str) -> LoadState:
        if name not in self.config.datasets:
            raise ValidationError(f"unknown dataset {name!r}", subject=name)
        if name == self.active_dataset and self._listing_ok:
            return self.load_state

        self.active_dataset = name
        self._listing_ok = False
        self._load_token += 1
        self.navigator.reset([])
        self.current_record = None
        self.vote_cache = None
        self.last_error = None
        self.load_state = LoadState.LOADING

        token = self._load_token
        try:
            keys = await self.repository.list_records(name)
        except ListingUnavailable as e:
            if token != self._load_token:
                return self.load_state
            logger.error("Listing failed for dataset %s: %s", name, e)
            self.last_error = e if e.subject else ListingUnavailable(e.detail, subject=name)
            self.load_state = LoadState.LOAD_FAILED
            return self.load_state

        if token != self._load_token:
            logger.debug("Discarding stale listing for dataset %s", name)
            return self.load_state

        self._listing_ok = True
        self.navigator.reset(keys)
        logger.info("Dataset %s selected (%d records)", name, len(self.navigator))
        if not len(self.navigator):
            self.load_state = LoadState.IDLE
            return self.load_state
        return await self.load_current()

    # --- Record loading ---

    async def load_current(self) -> LoadState:
        key = self.navigator.current_key
        dataset = self.active_dataset
        if key is None or dataset is None:
            self.current_record = None
            self.vote_cache = None
            self.load_state = LoadState.IDLE
            return self.load_state

        # Entering LOADING drops the previous record and cache together.
        self._load_token += 1
        token = self._load_token
        self.current_record = None
        cache = VoteCache(key)
        self.vote_cache = cache
        if self.last_error is not None and self.last_error.scope != "dataset":
            self.last_error = None
        self.load_state = LoadState.LOADING

        record_result, votes = await asyncio.gather(
            self._fetch_record(dataset, key),
            self._fetch_votes(key, self.config.partition_for(dataset)),
        )

        if token != self._load_token:
            logger.debug("Discarding stale load for %s/%s", dataset, key)
            return self.load_state

        if isinstance(record_result, RecordLoadError):
            self.last_error = record_result
            self.load_state = LoadState.LOAD_FAILED
            return self.load_state

        cache.reconcile(votes)
        self.current_record = record_result
        self.load_state = LoadState.LOADED
        return self.load_state

    async def _fetch_record(self, dataset: str, key: str) -> Union[Record, RecordLoadError]:
        try:
            return await self.repository.get_record(dataset, key)
        except RecordLoadError as e:
            logger.error("Failed to load record %s/%s: %s", dataset, key, e)
            return e if e.subject else type(e)(e.detail, subject=key)
        except ReviewError as e:
            logger.error("Failed to load record %s/%s: %s", dataset, key, e)
            return RecordUnreadable(str(e), subject=key)

    async def _fetch_votes(self, key: str, partition: Optional[str]) -> List[VoteEntry]:
        try:
            return list(await self.ledger.get_votes(key, partition=partition))
        except LedgerUnavailable as e:
            logger.warning("Failed to fetch votes for %s, assuming empty: %s", key, e)
            return []

    # --- Navigation ---

    async def advance(self) -> bool:
        if not self.navigator.advance():
            return False
        await self.load_current()
        return True

    async def retreat(self) -> bool:
        if not self.navigator.retreat():
            return False
        await self.load_current()
        return True

    # --- Reviewer / reconciliation ---

    def select_reviewer(self, name: str) -> UIState:
        name = (name or "").strip()
        if name and name not in self.config.reviewers:
            raise ValidationError(f"{name!r} is not on the reviewer roster", subject=name)
        self.selected_reviewer = name
        return self.ui_state()

    def ui_state(self, reviewer: Optional[str] = None) -> UIState:
        who = self.selected_reviewer if reviewer is None else reviewer
        if self.vote_cache is None:
            return UIState()
        return derive_ui_state(self.vote_cache.entries(), who)

    # --- Submission ---

    async def submit_vote(
        self,
        reviewer: str,
        judgments: JudgmentsInput,
        comment: str = "",
    ) -> VoteEntry:
        reviewer = (reviewer or "").strip()
        if not reviewer:
            raise ValidationError("select a reviewer before submitting")
        if reviewer not in self.config.reviewers:
            raise ValidationError(f"{reviewer!r} is not on the reviewer roster", subject=reviewer)

        record = self.current_record
        cache = self.vote_cache
        if self.load_state != LoadState.LOADED or record is None or cache is None:
            raise ValidationError("no record is loaded")
        if derive_ui_state(cache.entries(), reviewer).locked:
            raise ValidationError(
                f"{reviewer} already voted on this record", subject=record.key
            )

        token = self._load_token
        entry = VoteEntry(
            reviewer=reviewer,
            record_key=record.key,
            judgments=Judgments.coerce(judgments),
            comment=comment or "",
            submitted_at=datetime.now(timezone.utc),
            dataset=record.dataset,
        )

        try:
            stored = await self.ledger.append_vote(
                entry, target_partition=self.config.partition_for(record.dataset)
            )
        except LedgerWriteError as e:
            logger.error("Vote by %s on %s was not saved: %s", reviewer, record.key, e)
            if token == self._load_token:
                self.last_error = e
            raise

        # merge into the cache that was current when the call started
        cache.add_pending(stored or entry)
        logger.info("Vote by %s saved for %s", reviewer, record.key)

        if token == self._load_token:
            if self.last_error is not None and self.last_error.scope == "submit":
                self.last_error = None
            await self.advance()
        return stored or entry

    # --- View ---

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            dataset=self.active_dataset,
            position=self.navigator.position,
            total=len(self.navigator),
            record_key=self.navigator.current_key,
            record=self.current_record,
            load_state=self.load_state,
            error=self.last_error,
            reviewer=self.selected_reviewer,
            ui_state=self.ui_state(),
            has_next=self.navigator.can_advance(),
            has_prev=self.navigator.can_retreat(),
        )

