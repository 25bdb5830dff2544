# services/ledger/factory.py
from __future__ import annotations

from typing import Union

from apps.common.settings import AppSettings
from services.ledger.csv_ledger import CsvVoteLedger
from services.ledger.google_sheet import GoogleSheetVoteLedger, load_credentials_info


def build_ledger(settings: AppSettings) -> Union[CsvVoteLedger, GoogleSheetVoteLedger]:
    cfg = settings.ledger
    if cfg.backend == "sheets":
        info = load_credentials_info(
            credentials_json=cfg.credentials_json,
            credentials_path=str(cfg.credentials_path) if cfg.credentials_path else None,
        )
        return GoogleSheetVoteLedger(
            sheet_id=str(cfg.sheet_id),
            default_partition=cfg.default_partition,
            credentials_info=info,
        )
    return CsvVoteLedger(str(cfg.votes_path), default_partition=cfg.default_partition)
