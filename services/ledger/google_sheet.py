# services/ledger/google_sheet.py
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from starlette.concurrency import run_in_threadpool

from services.ledger.rows import SHEET_COLUMNS, entry_to_row, is_header, row_to_entry
from services.review.domain import VoteEntry
from services.review.errors import LedgerUnavailable, LedgerWriteError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
LAST_COLUMN = chr(ord("A") + len(SHEET_COLUMNS) - 1)


class SheetConfigError(RuntimeError):
    """Credentials or sheet id missing/invalid."""


# transport, auth and key-parsing failures surface as these, not HttpError
SHEET_ERRORS = (HttpError, SheetConfigError, GoogleAuthError, httplib2.HttpLib2Error, OSError, ValueError)


def load_credentials_info(
    *, credentials_json: Optional[str] = None, credentials_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Service-account info from an inline JSON string (env deployments) or a
    credentials.json file. Escaped newlines in the private key are restored.
    """
    if credentials_json:
        try:
            info = json.loads(credentials_json)
        except ValueError as e:
            raise SheetConfigError(f"GOOGLE_CREDENTIALS is not valid JSON: {e}") from e
    elif credentials_path and Path(credentials_path).exists():
        info = json.loads(Path(credentials_path).read_text(encoding="utf-8"))
    else:
        raise SheetConfigError("Missing Google credentials (GOOGLE_CREDENTIALS or credentials_path)")

    if not info.get("client_email") or not info.get("private_key"):
        raise SheetConfigError("Google credentials lack client_email/private_key")
    info["private_key"] = str(info["private_key"]).replace("\\n", "\n")
    return info


class GoogleSheetVoteLedger:
    """Votes as rows of a Google Sheet; each partition is a tab."""

    def __init__(
        self,
        *,
        sheet_id: str,
        default_partition: str = "Sheet1",
        credentials_info: Optional[Dict[str, Any]] = None,
        service: Any = None,
    ) -> None:
        if not sheet_id:
            raise SheetConfigError("SHEET_ID is missing")
        self.sheet_id = sheet_id
        self.default_partition = default_partition
        self._credentials_info = credentials_info
        self._service = service
        self._lock = threading.Lock()

    def _values(self):
        with self._lock:
            if self._service is None:
                if not self._credentials_info:
                    raise SheetConfigError("Missing Google credentials")
                creds = service_account.Credentials.from_service_account_info(
                    self._credentials_info, scopes=SCOPES
                )
                self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
            return self._service.spreadsheets().values()

    def _tab(self, partition: Optional[str]) -> str:
        return partition or self.default_partition

    def get_votes_sync(self, record_key: str, partition: Optional[str] = None) -> List[VoteEntry]:
        tab = self._tab(partition)
        try:
            resp = self._values().get(
                spreadsheetId=self.sheet_id,
                range=f"{tab}!A:{LAST_COLUMN}",
            ).execute()
        except SHEET_ERRORS as e:
            raise LedgerUnavailable(f"sheet read failed ({tab}): {e}", subject=record_key) from e

        rows = resp.get("values", []) or []
        if rows and is_header(rows[0]):
            rows = rows[1:]
        return [row_to_entry(r) for r in rows if len(r) > 2 and r[2] == record_key]

    def append_vote_sync(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry:
        tab = self._tab(target_partition)
        stored = entry.stamped(datetime.now(timezone.utc))
        row = entry_to_row(stored)
        logger.debug("Appending row to sheet tab %s: %s", tab, row)
        try:
            self._values().append(
                spreadsheetId=self.sheet_id,
                range=f"{tab}!A1",
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            ).execute()
        except SHEET_ERRORS as e:
            raise LedgerWriteError(f"sheet append failed ({tab}): {e}", subject=entry.record_key) from e
        return stored

    async def get_votes(self, record_key: str, *, partition: Optional[str] = None) -> List[VoteEntry]:
        return await run_in_threadpool(self.get_votes_sync, record_key, partition)

    async def append_vote(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry:
        return await run_in_threadpool(self.append_vote_sync, entry, target_partition)
