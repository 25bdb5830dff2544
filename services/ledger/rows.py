# services/ledger/rows.py
from __future__ import annotations

from typing import Any, List, Sequence

from services.review.domain import VoteEntry

# Column order of every ledger row (sheet tab or CSV).
SHEET_COLUMNS = [
    "timestamp",
    "user_name",
    "filename",
    "explicit_selected",
    "moderate_selected",
    "no_leak_selected",
    "comments",
]


def entry_to_row(entry: VoteEntry) -> List[str]:
    wire = entry.to_wire()
    return [str(wire.get(c) or "") for c in SHEET_COLUMNS]


def row_to_entry(row: Sequence[Any]) -> VoteEntry:
    padded = list(row) + [""] * (len(SHEET_COLUMNS) - len(row))
    return VoteEntry.from_wire(dict(zip(SHEET_COLUMNS, (str(v or "") for v in padded))))


def is_header(row: Sequence[Any]) -> bool:
    return bool(row) and str(row[0]).strip().lower() == "timestamp"
