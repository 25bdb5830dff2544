# services/review/navigator.py
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple


class SessionNavigator:
    """
    Ordered record keys plus a cursor.
    Keys are sorted lexicographically on reset so positions stay stable across
    reloads of an unchanged listing.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: Tuple[str, ...] = ()
        self._position = 0
        self.reset(keys)

    def reset(self, keys: Iterable[str]) -> None:
        self._keys = tuple(sorted(str(k) for k in keys))
        self._position = 0

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    @property
    def position(self) -> int:
        return self._position

    @property
    def current_key(self) -> Optional[str]:
        if not self._keys:
            return None
        return self._keys[self._position]

    def __len__(self) -> int:
        return len(self._keys)

    def can_advance(self) -> bool:
        return self._position < len(self._keys) - 1

    def can_retreat(self) -> bool:
        return self._position > 0

    def advance(self) -> bool:
        if not self.can_advance():
            return False
        self._position += 1
        return True

    def retreat(self) -> bool:
        if not self.can_retreat():
            return False
        self._position -= 1
        return True
