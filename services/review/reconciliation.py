# services/review/reconciliation.py
from __future__ import annotations

from typing import Iterable, Optional

from services.review.domain import Judgments, UIState, VoteEntry


def find_entry(entries: Iterable[VoteEntry], reviewer: str) -> Optional[VoteEntry]:
    # first match wins; later duplicates from the ledger are ignored
    if not reviewer:
        return None
    for entry in entries:
        if entry.reviewer == reviewer:
            return entry
    return None


def derive_ui_state(entries: Iterable[VoteEntry], reviewer: str) -> UIState:
    """
    Map the cached vote entries of one record to what ``reviewer`` should see.
    A reviewer with an entry is locked to it; anyone else starts blank.
    """
    entry = find_entry(entries, reviewer)
    if entry is None:
        return UIState()
    return UIState(
        judgments=Judgments.coerce(entry.judgments),
        comment=entry.comment or "",
        locked=True,
    )
