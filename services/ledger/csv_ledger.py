# services/ledger/csv_ledger.py
from __future__ import annotations

import csv
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from services.ledger.rows import SHEET_COLUMNS, entry_to_row, row_to_entry
from services.review.domain import VoteEntry
from services.review.errors import LedgerUnavailable, LedgerWriteError

logger = logging.getLogger(__name__)

CSV_COLUMNS = SHEET_COLUMNS + ["partition"]


class CsvVoteLedger:
    """
    Append-only vote file. One CSV holds every partition; the ``partition``
    column tells them apart and rows without one belong to the default.
    """

    def __init__(self, path: str, default_partition: str = "Sheet1") -> None:
        self.path = Path(path)
        self.default_partition = default_partition
        self._lock = threading.Lock()

    def _resolve(self, partition: Optional[str]) -> str:
        return partition or self.default_partition

    def get_votes_sync(self, record_key: str, partition: Optional[str] = None) -> List[VoteEntry]:
        wanted = self._resolve(partition)
        # same lock as appends, so a half-written last row is never read
        with self._lock:
            if not self.path.exists():
                return []
            try:
                with self.path.open("r", newline="", encoding="utf-8") as f:
                    rows = list(csv.DictReader(f))
            except (OSError, csv.Error, ValueError) as e:
                raise LedgerUnavailable(f"failed to read {self.path.name}: {e}", subject=record_key) from e

        out = []
        for row in rows:
            if row.get("filename") != record_key:
                continue
            if (row.get("partition") or self.default_partition) != wanted:
                continue
            out.append(row_to_entry([row.get(c) or "" for c in SHEET_COLUMNS]))
        return out

    def append_vote_sync(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry:
        stored = entry.stamped(datetime.now(timezone.utc))
        row = entry_to_row(stored) + [self._resolve(target_partition)]

        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                write_header = not self.path.exists() or self.path.stat().st_size == 0
                with self.path.open("a", newline="", encoding="utf-8") as f:
                    w = csv.writer(f)
                    if write_header:
                        w.writerow(CSV_COLUMNS)
                    w.writerow(row)
            except (OSError, csv.Error, ValueError) as e:
                raise LedgerWriteError(f"failed to write {self.path.name}: {e}", subject=entry.record_key) from e

        logger.debug("Appended vote row to %s: %s", self.path, row)
        return stored

    async def get_votes(self, record_key: str, *, partition: Optional[str] = None) -> List[VoteEntry]:
        return await run_in_threadpool(self.get_votes_sync, record_key, partition)

    async def append_vote(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry:
        return await run_in_threadpool(self.append_vote_sync, entry, target_partition)
