# apps/review_ui/views.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from services.review.domain import CAPTION_TYPES, Judgment

CAPTION_TITLES = {"explicit": "Explicit", "moderate": "Moderate", "no_leak": "No Leak"}

JUDGMENT_LABELS = {
    Judgment.NONE: "—",
    Judgment.ACCEPTED: "✅ Accept",
    Judgment.REJECTED: "❌ Reject",
}


def _as_dict(v: Any) -> Dict[str, Any]:
    return v if isinstance(v, dict) else {}


def image_details(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    image = _as_dict(content.get("image"))
    if not image:
        return None
    labels = image.get("labels")
    return {
        "id": image.get("id"),
        "labels": ", ".join(str(x) for x in labels) if labels else "None",
    }


def florence_captions(content: Dict[str, Any]) -> List[Dict[str, str]]:
    fc = _as_dict(_as_dict(content.get("image")).get("florence_captions"))
    out = []
    for key, tag, title in (
        ("caption", "<CAPTION>", "Caption"),
        ("detailed_caption", "<DETAILED_CAPTION>", "Detailed"),
        ("more_detailed_caption", "<MORE_DETAILED_CAPTION>", "More detailed"),
    ):
        text = _as_dict(fc.get(key)).get(tag)
        if text:
            out.append({"title": title, "text": str(text)})
    return out


def privacy_reasoning(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    privacy = _as_dict(content.get("privacy_reasoning"))
    if not privacy:
        return None

    anchor = _as_dict(privacy.get("anchor"))
    piis = _as_dict(privacy.get("w_completeness")).get("selected_piis") or []
    return {
        "anchor": {
            "label": anchor.get("label"),
            "risk_score": anchor.get("risk_score"),
            "tier": anchor.get("tier"),
        } if anchor else None,
        "piis": [
            {
                "tier": p.get("tier"),
                "w": p.get("w"),
                "label": p.get("label"),
                "value": p.get("value"),
            }
            for p in piis if isinstance(p, dict)
        ],
    }


def generated_captions(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    gen = _as_dict(content.get("generated_captions"))
    if not gen:
        return None
    output = _as_dict(gen.get("output"))
    return {
        "model": gen.get("model"),
        "captions": {name: str(output.get(name) or "") for name in CAPTION_TYPES},
    }


def selection_details(content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    sel = _as_dict(content.get("selection"))
    if not sel:
        return None
    score = None
    for c in sel.get("candidates") or []:
        if isinstance(c, dict) and c.get("selected_persona_id") == sel.get("selected_persona_id"):
            score = c.get("score")
            break
    return {"reason": sel.get("match_reason"), "score": score if score is not None else "N/A"}


def progress_label(position: int, total: int) -> str:
    return f"{position + 1} / {total}" if total else "0 / 0"
