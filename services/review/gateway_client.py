# services/review/gateway_client.py
from __future__ import annotations

from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from services.review.domain import Record, VoteEntry
from services.review.errors import (
    LedgerUnavailable,
    LedgerWriteError,
    ListingUnavailable,
    RecordNotFound,
    RecordUnreadable,
)


def _details(resp: httpx.Response) -> str:
    """Server error text as sent, falling back to the raw body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, dict):
        return str(detail.get("details") or detail.get("error") or detail)
    return str(detail)


class _GatewayBase:
    """
    One AsyncClient per call: the console drives each action through its own
    event loop, and a pooled client cannot outlive the loop it was opened on.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_s),
            transport=self.transport,
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            return await client.request(method, url, **kwargs)


class GatewayRecordRepository(_GatewayBase):
    async def list_records(self, dataset: str) -> List[str]:
        try:
            resp = await self._request("GET", f"/api/files/{quote(dataset, safe='')}")
        except httpx.HTTPError as e:
            raise ListingUnavailable(f"gateway unreachable: {e}", subject=dataset) from e
        if resp.status_code != 200:
            raise ListingUnavailable(_details(resp), subject=dataset)
        try:
            data = resp.json()
        except ValueError as e:
            raise ListingUnavailable(f"invalid JSON: {e}", subject=dataset) from e
        if not isinstance(data, list):
            raise ListingUnavailable("listing is not a list", subject=dataset)
        return [str(k) for k in data]

    async def get_record(self, dataset: str, record_key: str) -> Record:
        url = f"/api/file/{quote(dataset, safe='')}/{quote(record_key, safe='')}"
        try:
            resp = await self._request("GET", url)
        except httpx.HTTPError as e:
            raise RecordUnreadable(f"gateway unreachable: {e}", subject=record_key) from e
        if resp.status_code == 404:
            raise RecordNotFound(_details(resp), subject=record_key)
        if resp.status_code != 200:
            raise RecordUnreadable(_details(resp), subject=record_key)
        try:
            content = resp.json()
        except ValueError as e:
            raise RecordUnreadable(f"invalid JSON: {e}", subject=record_key) from e
        if not isinstance(content, dict):
            raise RecordUnreadable("record is not a JSON object", subject=record_key)
        return Record(key=record_key, dataset=dataset, content=content)

    async def fetch_image(self, filename: str, *, max_side: int = 0) -> bytes:
        params = {"max_side": max_side} if max_side else None
        resp = await self._request("GET", f"/images/{quote(filename, safe='')}", params=params)
        resp.raise_for_status()
        return resp.content


class GatewayVoteLedger(_GatewayBase):
    async def get_votes(self, record_key: str, *, partition: Optional[str] = None) -> List[VoteEntry]:
        params = {"partition": partition} if partition else None
        try:
            resp = await self._request("GET", f"/api/votes/{quote(record_key, safe='')}", params=params)
        except httpx.HTTPError as e:
            raise LedgerUnavailable(f"gateway unreachable: {e}", subject=record_key) from e
        if resp.status_code != 200:
            raise LedgerUnavailable(_details(resp), subject=record_key)
        try:
            rows = resp.json()
        except ValueError as e:
            raise LedgerUnavailable(f"invalid JSON: {e}", subject=record_key) from e
        if not isinstance(rows, list):
            raise LedgerUnavailable("votes response is not a list", subject=record_key)
        return [VoteEntry.from_wire(r) for r in rows if isinstance(r, dict)]

    async def append_vote(self, entry: VoteEntry, target_partition: Optional[str] = None) -> VoteEntry:
        payload = entry.to_wire()
        if target_partition:
            payload["partition"] = target_partition
        try:
            resp = await self._request("POST", "/api/vote", json=payload)
        except httpx.HTTPError as e:
            raise LedgerWriteError(f"gateway unreachable: {e}", subject=entry.record_key) from e
        if resp.status_code != 200:
            raise LedgerWriteError(_details(resp), subject=entry.record_key)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        vote = body.get("vote") if isinstance(body, dict) else None
        if not isinstance(vote, dict):
            return entry
        stored = VoteEntry.from_wire(vote)
        # keep the session's own dataset stamp if the gateway did not echo one
        if stored.dataset is None and entry.dataset:
            stored = VoteEntry.from_wire({**vote, "dataset": entry.dataset})
        return stored
