# apps/api_gateway/app_factory.py
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, RedirectResponse, Response
from PIL import Image, ImageOps
from starlette.concurrency import run_in_threadpool

from apps.common.settings import AppSettings
from services.ingestion.records import is_safe_key
from services.review.domain import VoteEntry
from services.review.errors import (
    LedgerUnavailable,
    LedgerWriteError,
    ListingUnavailable,
    RecordNotFound,
    RecordUnreadable,
    ReviewError,
)
from services.review.ports import RecordRepository, VoteLedger
from services.validation.schema_validation import validate_with_schema

logger = logging.getLogger(__name__)


def _error(status_code: int, err: ReviewError) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": err.kind, "details": err.detail or str(err)})


def downscale_image(path: Path, max_side: int) -> bytes:
    with Image.open(path) as im:
        im = ImageOps.exif_transpose(im)
        im.thumbnail((max_side, max_side))
        buf = BytesIO()
        fmt = "PNG" if im.mode in ("RGBA", "LA", "P") else "JPEG"
        im.convert("RGBA" if fmt == "PNG" else "RGB").save(buf, format=fmt)
        return buf.getvalue()


def create_app(
    *,
    repository: RecordRepository,
    ledger: VoteLedger,
    settings: AppSettings,
) -> FastAPI:
    app = FastAPI(title="Caption Review API Gateway")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    datasets = settings.dataset_names
    partitions = settings.ledger.partitions

    @app.get("/")
    async def root():
        return RedirectResponse(url="/docs")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/api/datasets")
    async def list_datasets():
        return [{"name": d.name, "label": d.label} for d in settings.datasets]

    @app.get("/api/reviewers")
    async def list_reviewers():
        return list(settings.reviewers)

    @app.get("/api/files/{dataset}")
    async def list_files(dataset: str):
        if dataset not in datasets:
            raise _error(404, ListingUnavailable(f"unknown dataset {dataset!r}", subject=dataset))
        try:
            return sorted(await repository.list_records(dataset))
        except ListingUnavailable as e:
            logger.error("Error listing %s: %s", dataset, e)
            raise _error(404, e) from e

    @app.get("/api/file/{dataset}/{filename}")
    async def get_file(dataset: str, filename: str):
        if dataset not in datasets:
            raise _error(404, RecordNotFound(f"unknown dataset {dataset!r}", subject=filename))
        try:
            record = await repository.get_record(dataset, filename)
        except RecordNotFound as e:
            raise _error(404, e) from e
        except RecordUnreadable as e:
            logger.error("Error reading %s/%s: %s", dataset, filename, e)
            raise _error(500, e) from e
        return record.content

    @app.get("/api/votes/{filename}")
    async def get_votes(filename: str, partition: Optional[str] = Query(None)):
        try:
            entries = await ledger.get_votes(filename, partition=partition or None)
        except LedgerUnavailable as e:
            logger.error("Error reading votes for %s: %s", filename, e)
            raise _error(503, e) from e
        return [e.to_wire() for e in entries]

    @app.post("/api/vote")
    async def post_vote(payload: Dict[str, Any] = Body(...)):
        ok, message = validate_with_schema(payload, "vote")
        if not ok:
            raise HTTPException(
                status_code=400,
                detail={"error": "validation_error", "details": f"Missing or invalid vote field: {message}"},
            )

        entry = VoteEntry.from_wire({k: v for k, v in payload.items() if k != "timestamp"})
        if entry.reviewer not in settings.reviewers:
            raise HTTPException(
                status_code=400,
                detail={"error": "validation_error", "details": f"Unknown reviewer: {entry.reviewer!r}"},
            )
        dataset = entry.dataset
        if dataset and dataset not in datasets:
            raise HTTPException(
                status_code=400,
                detail={"error": "validation_error", "details": f"Unknown dataset: {dataset!r}"},
            )
        partition = payload.get("partition") or (partitions.get(dataset) if dataset else None)

        try:
            stored = await ledger.append_vote(entry, target_partition=partition)
        except LedgerWriteError as e:
            logger.error("Error writing vote for %s by %s: %s", entry.record_key, entry.reviewer, e)
            raise _error(502, e) from e

        logger.info("Vote saved: user=%s file=%s partition=%s", stored.reviewer, stored.record_key, partition)
        return {"success": True, "vote": stored.to_wire()}

    @app.get("/images/{filename}")
    async def get_image(filename: str, max_side: int = Query(0, ge=0, le=8192)):
        if not is_safe_key(filename):
            raise HTTPException(status_code=400, detail={"error": "invalid_filename", "details": filename})
        path = settings.image_dir / filename
        if not path.is_file():
            raise HTTPException(status_code=404, detail={"error": "image_not_found", "details": filename})
        if not max_side:
            return FileResponse(path)
        try:
            data = await run_in_threadpool(downscale_image, path, max_side)
        except (OSError, ValueError) as e:
            raise HTTPException(status_code=500, detail={"error": "image_unreadable", "details": str(e)}) from e
        media_type = "image/png" if data[:4] == b"\x89PNG" else "image/jpeg"
        return Response(content=data, media_type=media_type)

    return app

