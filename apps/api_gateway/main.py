# apps/api_gateway/main.py
from __future__ import annotations

import os

import uvicorn

from apps.api_gateway.app_factory import create_app
from apps.common.log_utils import setup_logging
from apps.common.settings import load_settings
from services.ingestion.records import FileSystemRecordRepository
from services.ledger.factory import build_ledger

settings = load_settings()
setup_logging(settings.log_file)

repository = FileSystemRecordRepository(str(settings.data_dir))
ledger = build_ledger(settings)

app = create_app(repository=repository, ledger=ledger, settings=settings)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.getenv("CAPREVIEW_HOST", "127.0.0.1"),
        port=int(os.getenv("CAPREVIEW_PORT", "3001")),
    )
