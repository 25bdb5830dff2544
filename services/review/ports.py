# services/review/ports.py
from __future__ import annotations

from typing import List, Optional, Protocol

from services.review.domain import Record, VoteEntry


class RecordRepository(Protocol):
    async def list_records(self, dataset: str) -> List[str]: ...
    async def get_record(self, dataset: str, record_key: str) -> Record: ...


class VoteLedger(Protocol):
    async def get_votes(self, record_key: str, *, partition: Optional[str] = None) -> List[VoteEntry]: ...
    async def append_vote(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry: ...
