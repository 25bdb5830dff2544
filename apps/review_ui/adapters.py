# apps/review_ui/adapters.py
import asyncio
from io import BytesIO
from pathlib import Path
from typing import Any, Awaitable, Optional, TypeVar

from PIL import Image

from apps.common.settings import AppSettings
from services.ingestion.records import FileSystemRecordRepository, is_safe_key
from services.ledger.factory import build_ledger
from services.review.controller import SessionController
from services.review.gateway_client import GatewayRecordRepository, GatewayVoteLedger

T = TypeVar("T")

PREVIEW_MAX_SIDE = 1200


def run(coro: Awaitable[T]) -> T:
    """Streamlit callbacks are sync; each controller action gets its own loop."""
    return asyncio.run(coro)


def build_controller(settings: AppSettings) -> SessionController:
    """Talk to the gateway when one is configured, else read data_dir and the ledger directly."""
    if settings.gateway_url:
        repository: Any = GatewayRecordRepository(settings.gateway_url, timeout_s=settings.http_timeout_s)
        ledger: Any = GatewayVoteLedger(settings.gateway_url, timeout_s=settings.http_timeout_s)
    else:
        repository = FileSystemRecordRepository(str(settings.data_dir))
        ledger = build_ledger(settings)
    return SessionController(
        repository=repository,
        ledger=ledger,
        config=settings.controller_config(),
    )


class ImageLoader:
    def __init__(self, settings: AppSettings, repository: Any) -> None:
        self.image_dir = Path(settings.image_dir)
        self.repository = repository

    def load(self, filename: str) -> Optional[Image.Image]:
        if not filename or not is_safe_key(filename):
            return None
        if isinstance(self.repository, GatewayRecordRepository):
            blob = run(self.repository.fetch_image(filename, max_side=PREVIEW_MAX_SIDE))
            return Image.open(BytesIO(blob)).convert("RGB")
        path = self.image_dir / filename
        if not path.exists():
            return None
        return Image.open(path).convert("RGB")
