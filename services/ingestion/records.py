# services/ingestion/records.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from starlette.concurrency import run_in_threadpool

from services.review.domain import Record
from services.review.errors import ListingUnavailable, RecordNotFound, RecordUnreadable

INDEX_NAME = "files.json"


def is_safe_key(key: str) -> bool:
    return bool(key) and ".." not in key and "/" not in key and "\\" not in key


class FileSystemRecordRepository:
    """
    Datasets are folders under ``data_dir``; every record is one JSON file.
    A ``files.json`` index, when present, is the authoritative listing.
    """

    def __init__(self, data_dir: str) -> None:
        self.root = Path(data_dir)

    def _dataset_dir(self, dataset: str) -> Path:
        if not is_safe_key(dataset):
            raise ListingUnavailable("invalid dataset name", subject=dataset)
        return self.root / dataset

    def list_records_sync(self, dataset: str) -> List[str]:
        d = self._dataset_dir(dataset)
        if not d.is_dir():
            raise ListingUnavailable(f"no dataset folder at {d}", subject=dataset)

        index = d / INDEX_NAME
        if index.exists():
            try:
                keys = json.loads(index.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise ListingUnavailable(f"unreadable {INDEX_NAME}: {e}", subject=dataset) from e
            if not isinstance(keys, list):
                raise ListingUnavailable(f"{INDEX_NAME} is not a list", subject=dataset)
            return sorted(str(k) for k in keys)

        try:
            return sorted(p.name for p in d.glob("*.json") if p.name != INDEX_NAME)
        except OSError as e:
            raise ListingUnavailable(str(e), subject=dataset) from e

    def get_record_sync(self, dataset: str, record_key: str) -> Record:
        if not is_safe_key(record_key):
            raise RecordNotFound("invalid record key", subject=record_key)
        try:
            d = self._dataset_dir(dataset)
        except ListingUnavailable as e:
            raise RecordNotFound(e.detail, subject=record_key) from e

        p = d / record_key
        if not p.is_file():
            raise RecordNotFound(f"{dataset}/{record_key} does not exist", subject=record_key)
        try:
            content: Dict[str, Any] = json.loads(p.read_text(encoding="utf-8"))
        except OSError as e:
            raise RecordUnreadable(str(e), subject=record_key) from e
        except ValueError as e:
            raise RecordUnreadable(f"invalid JSON: {e}", subject=record_key) from e
        if not isinstance(content, dict):
            raise RecordUnreadable("record is not a JSON object", subject=record_key)
        return Record(key=record_key, dataset=dataset, content=content)

    def write_file_index(self, dataset: str) -> Path:
        d = self._dataset_dir(dataset)
        if not d.is_dir():
            raise ListingUnavailable(f"no dataset folder at {d}", subject=dataset)
        keys = sorted(p.name for p in d.glob("*.json") if p.name != INDEX_NAME)

        out = d / INDEX_NAME
        tmp = out.with_suffix(out.suffix + ".tmp")
        tmp.write_text(json.dumps(keys, indent=2), encoding="utf-8")
        tmp.replace(out)  # atomic on same filesystem
        return out

    async def list_records(self, dataset: str) -> List[str]:
        return await run_in_threadpool(self.list_records_sync, dataset)

    async def get_record(self, dataset: str, record_key: str) -> Record:
        return await run_in_threadpool(self.get_record_sync, dataset, record_key)
