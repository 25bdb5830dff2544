# services/review/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

CAPTION_TYPES = ("explicit", "moderate", "no_leak")

# wire column per caption type
WIRE_FIELDS = {
    "explicit": "explicit_selected",
    "moderate": "moderate_selected",
    "no_leak": "no_leak_selected",
}


class Judgment(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NONE = "none"

    @classmethod
    def coerce(cls, value: Any) -> "Judgment":
        if isinstance(value, Judgment):
            return value
        if not isinstance(value, str):
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.NONE


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


@dataclass(frozen=True)
class Judgments:
    explicit: Judgment = Judgment.NONE
    moderate: Judgment = Judgment.NONE
    no_leak: Judgment = Judgment.NONE

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Judgments":
        """Accepts short keys (``explicit``) or wire keys (``explicit_selected``)."""
        data = data or {}
        values = {}
        for name in CAPTION_TYPES:
            raw = data.get(name, data.get(WIRE_FIELDS[name]))
            values[name] = Judgment.coerce(raw)
        return cls(**values)

    @classmethod
    def coerce(cls, value: Any) -> "Judgments":
        if isinstance(value, Judgments):
            return cls(
                explicit=Judgment.coerce(value.explicit),
                moderate=Judgment.coerce(value.moderate),
                no_leak=Judgment.coerce(value.no_leak),
            )
        return cls.from_mapping(value)

    def as_dict(self) -> Dict[str, str]:
        return {name: Judgment.coerce(getattr(self, name)).value for name in CAPTION_TYPES}


@dataclass(frozen=True)
class Record:
    key: str
    dataset: str
    content: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def image_reference(self) -> str:
        ref = self.content.get("image_reference")
        if isinstance(ref, str) and ref:
            return ref
        image = self.content.get("image") or {}
        path = image.get("image_path") if isinstance(image, dict) else None
        return path if isinstance(path, str) else ""

    @property
    def image_filename(self) -> str:
        ref = self.image_reference.replace("\\", "/")
        return ref.rsplit("/", 1)[-1] if ref else ""


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class VoteEntry:
    reviewer: str
    record_key: str
    judgments: Judgments = field(default_factory=Judgments)
    comment: str = ""
    submitted_at: Optional[datetime] = None
    dataset: Optional[str] = None

    def stamped(self, when: Optional[datetime] = None) -> "VoteEntry":
        """Copy with a submission time; keeps an existing stamp."""
        if self.submitted_at is not None:
            return self
        return VoteEntry(
            reviewer=self.reviewer,
            record_key=self.record_key,
            judgments=self.judgments,
            comment=self.comment,
            submitted_at=when or datetime.now(timezone.utc),
            dataset=self.dataset,
        )

    def to_wire(self) -> Dict[str, Any]:
        judgments = Judgments.coerce(self.judgments).as_dict()
        payload: Dict[str, Any] = {
            "user_name": self.reviewer,
            "filename": self.record_key,
            "explicit_selected": judgments["explicit"],
            "moderate_selected": judgments["moderate"],
            "no_leak_selected": judgments["no_leak"],
            "comments": self.comment,
        }
        if self.submitted_at is not None:
            payload["timestamp"] = self.submitted_at.isoformat()
        if self.dataset:
            payload["dataset"] = self.dataset
        return payload

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "VoteEntry":
        return cls(
            reviewer=str(data.get("user_name") or ""),
            record_key=str(data.get("filename") or ""),
            judgments=Judgments.from_mapping(data),
            comment=str(data.get("comments") or ""),
            submitted_at=_parse_timestamp(data.get("timestamp")),
            dataset=(str(data["dataset"]) if data.get("dataset") else None),
        )


@dataclass(frozen=True)
class UIState:
    judgments: Judgments = field(default_factory=Judgments)
    comment: str = ""
    locked: bool = False
