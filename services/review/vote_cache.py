# services/review/vote_cache.py
from __future__ import annotations

from typing import Iterable, List, Tuple

from services.review.domain import VoteEntry


class VoteCache:
    """
    Vote entries for a single record.

    Two layers are kept apart: what the ledger reported on the last fetch, and
    a pending overlay of entries this session appended successfully but the
    ledger has not echoed back yet.
    """

    def __init__(self, record_key: str, ledger_entries: Iterable[VoteEntry] = ()) -> None:
        self.record_key = record_key
        self._ledger: Tuple[VoteEntry, ...] = tuple(ledger_entries)
        self._pending: List[VoteEntry] = []

    @property
    def ledger_entries(self) -> List[VoteEntry]:
        return list(self._ledger)

    @property
    def pending_entries(self) -> List[VoteEntry]:
        return list(self._pending)

    def entries(self) -> List[VoteEntry]:
        confirmed = {e.reviewer for e in self._ledger}
        return list(self._ledger) + [e for e in self._pending if e.reviewer not in confirmed]

    def add_pending(self, entry: VoteEntry) -> None:
        if entry.record_key != self.record_key:
            raise ValueError(
                f"entry for {entry.record_key!r} cannot be cached under {self.record_key!r}"
            )
        self._pending.append(entry)

    def reconcile(self, ledger_entries: Iterable[VoteEntry]) -> None:
        self._ledger = tuple(e for e in ledger_entries if e.record_key == self.record_key)
        confirmed = {e.reviewer for e in self._ledger}
        self._pending = [e for e in self._pending if e.reviewer not in confirmed]

    def __len__(self) -> int:
        return len(self.entries())
