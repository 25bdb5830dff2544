# apps/common/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from services.review.controller import ControllerConfig

LEDGER_BACKENDS = ("csv", "sheets")


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data or {}


def _env(key: str) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if isinstance(v, str) and v.strip() else None


def _as_path(v: str) -> Path:
    return Path(v).expanduser().resolve()


def _split_csv(v: str) -> List[str]:
    return [s.strip() for s in v.split(",") if s.strip()]


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    label: str


@dataclass(frozen=True)
class LedgerSettings:
    backend: str = "csv"
    votes_path: Optional[Path] = None
    default_partition: str = "Sheet1"
    # dataset -> partition (sheet tab) for datasets that do not write to the default
    partitions: Dict[str, str] = field(default_factory=dict)
    sheet_id: Optional[str] = None
    credentials_path: Optional[Path] = None
    credentials_json: Optional[str] = None


@dataclass(frozen=True)
class AppSettings:
    data_dir: Path
    image_dir: Path
    gateway_url: Optional[str]
    datasets: List[DatasetSpec]
    reviewers: List[str]
    ledger: LedgerSettings
    log_file: Optional[Path] = None
    http_timeout_s: Optional[float] = None

    @property
    def dataset_names(self) -> List[str]:
        return [d.name for d in self.datasets]

    def dataset_label(self, name: str) -> str:
        for d in self.datasets:
            if d.name == name:
                return d.label
        return name

    def controller_config(self) -> ControllerConfig:
        names = tuple(self.dataset_names)
        return ControllerConfig(
            datasets=names,
            reviewers=tuple(self.reviewers),
            partitions=dict(self.ledger.partitions),
            default_dataset=names[0] if names else None,
        )


def _parse_datasets(raw: Any) -> List[DatasetSpec]:
    out = []
    for item in raw or []:
        if isinstance(item, dict):
            name = str(item.get("name") or "").strip()
            label = str(item.get("label") or name).strip()
        else:
            name = label = str(item).strip()
        if name:
            out.append(DatasetSpec(name=name, label=label))
    return out


def _parse_timeout(raw: Any) -> Optional[float]:
    if raw in (None, "", 0, "0"):
        return None
    return float(raw)


def load_settings(config_path: Optional[str] = None) -> AppSettings:
    """
    Resolution order (highest -> lowest):
      1) Explicit function argument
      2) CAPREVIEW_CONFIG_PATH env var
      3) config/app.yaml
    Individual fields can be overridden via env vars:
      - CAPREVIEW_DATA_DIR, CAPREVIEW_IMAGE_DIR, CAPREVIEW_GATEWAY_URL
      - CAPREVIEW_DATASETS, CAPREVIEW_REVIEWERS (comma-separated)
      - CAPREVIEW_LEDGER_BACKEND, CAPREVIEW_VOTES_PATH
      - SHEET_ID, SHEET_TAB, GOOGLE_CREDENTIALS
      - CAPREVIEW_LOG_FILE, CAPREVIEW_HTTP_TIMEOUT_S
    """
    cfg_path = (
        Path(config_path)
        if config_path
        else Path(_env("CAPREVIEW_CONFIG_PATH") or "config/app.yaml")
    )
    cfg = _read_yaml(cfg_path)
    ledger_cfg = cfg.get("ledger") or {}

    data_dir = _env("CAPREVIEW_DATA_DIR") or cfg.get("data_dir")
    image_dir = _env("CAPREVIEW_IMAGE_DIR") or cfg.get("image_dir")
    gateway_url = _env("CAPREVIEW_GATEWAY_URL") or cfg.get("gateway_url")

    datasets_env = _env("CAPREVIEW_DATASETS")
    datasets = _parse_datasets(_split_csv(datasets_env) if datasets_env else cfg.get("datasets"))

    reviewers_env = _env("CAPREVIEW_REVIEWERS")
    reviewers = _split_csv(reviewers_env) if reviewers_env else [
        str(r).strip() for r in (cfg.get("reviewers") or []) if str(r).strip()
    ]

    backend = (_env("CAPREVIEW_LEDGER_BACKEND") or ledger_cfg.get("backend") or "csv").lower()
    votes_path = _env("CAPREVIEW_VOTES_PATH") or ledger_cfg.get("votes_path")
    sheet_id = _env("SHEET_ID") or ledger_cfg.get("sheet_id")
    credentials_path = ledger_cfg.get("credentials_path")

    missing = []
    if not data_dir:
        missing.append("data_dir / CAPREVIEW_DATA_DIR")
    if not datasets:
        missing.append("datasets / CAPREVIEW_DATASETS")
    if not reviewers:
        missing.append("reviewers / CAPREVIEW_REVIEWERS")
    if backend == "sheets" and not sheet_id:
        missing.append("ledger.sheet_id / SHEET_ID")

    if missing:
        raise ValueError(
            "Missing required configuration: " + ", ".join(missing) +
            f". Config file used: {cfg_path}"
        )
    if backend not in LEDGER_BACKENDS:
        raise ValueError(f"Unknown ledger backend {backend!r}; expected one of {LEDGER_BACKENDS}")

    data_path = _as_path(str(data_dir))
    ledger = LedgerSettings(
        backend=backend,
        votes_path=_as_path(str(votes_path)) if votes_path else data_path / "votes.csv",
        default_partition=_env("SHEET_TAB") or str(ledger_cfg.get("default_partition") or "Sheet1"),
        partitions={str(k): str(v) for k, v in (ledger_cfg.get("partitions") or {}).items()},
        sheet_id=str(sheet_id) if sheet_id else None,
        credentials_path=_as_path(str(credentials_path)) if credentials_path else None,
        credentials_json=_env("GOOGLE_CREDENTIALS"),
    )
    log_file = _env("CAPREVIEW_LOG_FILE") or cfg.get("log_file")

    return AppSettings(
        data_dir=data_path,
        image_dir=_as_path(str(image_dir)) if image_dir else data_path / "jpg",
        gateway_url=str(gateway_url).rstrip("/") if gateway_url else None,
        datasets=datasets,
        reviewers=reviewers,
        ledger=ledger,
        log_file=_as_path(str(log_file)) if log_file else None,
        http_timeout_s=_parse_timeout(_env("CAPREVIEW_HTTP_TIMEOUT_S") or cfg.get("http_timeout_s")),
    )
