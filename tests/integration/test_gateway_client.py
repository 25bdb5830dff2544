from __future__ import annotations

import asyncio

import httpx
import pytest

from apps.api_gateway.app_factory import create_app
from services.ingestion.records import FileSystemRecordRepository
from services.ledger.csv_ledger import CsvVoteLedger
from services.review.controller import SessionController
from services.review.domain import LoadState, VoteEntry
from services.review.errors import (
    LedgerUnavailable,
    LedgerWriteError,
    ListingUnavailable,
    RecordNotFound,
    RecordUnreadable,
)
from services.review.gateway_client import GatewayRecordRepository, GatewayVoteLedger

BASE = "http://gateway.test"


def _transport(settings) -> httpx.ASGITransport:
    app = create_app(
        repository=FileSystemRecordRepository(str(settings.data_dir)),
        ledger=CsvVoteLedger(str(settings.ledger.votes_path)),
        settings=settings,
    )
    return httpx.ASGITransport(app=app)


def _controller(settings, transport) -> SessionController:
    return SessionController(
        repository=GatewayRecordRepository(BASE, transport=transport),
        ledger=GatewayVoteLedger(BASE, transport=transport),
        config=settings.controller_config(),
    )


def test_session_over_gateway(settings):
    transport = _transport(settings)

    async def scenario():
        ctrl = _controller(settings, transport)
        assert await ctrl.select_dataset("pipeline_output") == LoadState.LOADED
        assert ctrl.current_record.key == "a.json"
        assert ctrl.current_record.image_filename == "a.jpg"

        await ctrl.submit_vote("alina", {"explicit": "accepted", "moderate": "rejected", "no_leak": "accepted"}, "ok")
        assert ctrl.current_record.key == "b.json"

        await ctrl.retreat()
        # refetched from the ledger this time
        ui = ctrl.ui_state("alina")
        assert ui.locked is True
        assert ui.comment == "ok"
        assert ctrl.vote_cache.pending_entries == []

        await ctrl.advance()
        await ctrl.advance()
        assert ctrl.navigator.current_key == "broken.json"
        assert ctrl.load_state == LoadState.LOAD_FAILED
        assert isinstance(ctrl.last_error, RecordUnreadable)

        repo = GatewayRecordRepository(BASE, transport=transport)
        blob = await repo.fetch_image("a.jpg", max_side=50)
        assert blob[:2] == b"\xff\xd8"

    asyncio.run(scenario())


def test_partitioned_dataset_over_gateway(settings):
    transport = _transport(settings)

    async def scenario():
        ctrl = _controller(settings, transport)
        await ctrl.select_dataset("irtiza_output")
        assert ctrl.navigator.keys == ["x.json", "z.json"]
        stored = await ctrl.submit_vote("bogdan", {"explicit": "rejected"})
        assert stored.dataset == "irtiza_output"
        assert stored.submitted_at is not None

        ledger = GatewayVoteLedger(BASE, transport=transport)
        assert await ledger.get_votes("x.json") == []
        routed = await ledger.get_votes("x.json", partition="Irtiza")
        assert [v.reviewer for v in routed] == ["bogdan"]

    asyncio.run(scenario())


def test_gateway_errors_map_to_taxonomy(settings):
    transport = _transport(settings)

    async def scenario():
        repo = GatewayRecordRepository(BASE, transport=transport)
        with pytest.raises(ListingUnavailable):
            await repo.list_records("unknown")
        with pytest.raises(RecordNotFound):
            await repo.get_record("pipeline_output", "missing.json")

        ledger = GatewayVoteLedger(BASE, transport=transport)
        with pytest.raises(LedgerWriteError) as exc:
            await ledger.append_vote(VoteEntry(reviewer="", record_key="a.json"))
        assert "user_name" in exc.value.detail

    asyncio.run(scenario())


def test_unreachable_gateway():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def boom(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": {"error": "ledger_write_error", "details": "Failed to write to Google Sheet"}})

    async def scenario():
        down = httpx.MockTransport(refuse)
        with pytest.raises(ListingUnavailable):
            await GatewayRecordRepository(BASE, transport=down).list_records("pipeline_output")
        with pytest.raises(RecordUnreadable):
            await GatewayRecordRepository(BASE, transport=down).get_record("pipeline_output", "a.json")
        with pytest.raises(LedgerUnavailable):
            await GatewayVoteLedger(BASE, transport=down).get_votes("a.json")

        with pytest.raises(LedgerWriteError) as exc:
            await GatewayVoteLedger(BASE, transport=httpx.MockTransport(boom)).append_vote(
                VoteEntry(reviewer="alina", record_key="a.json")
            )
        assert exc.value.detail == "Failed to write to Google Sheet"

    asyncio.run(scenario())


def test_votes_unavailable_degrades_over_gateway(settings):
    transport = _transport(settings)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/api/votes/"):
            return httpx.Response(503, json={"detail": {"error": "ledger_unavailable", "details": "down"}})
        raise httpx.ConnectError("unused", request=request)

    async def scenario():
        ctrl = SessionController(
            repository=GatewayRecordRepository(BASE, transport=transport),
            ledger=GatewayVoteLedger(BASE, transport=httpx.MockTransport(handler)),
            config=settings.controller_config(),
        )
        assert await ctrl.select_dataset("pipeline_output") == LoadState.LOADED
        assert ctrl.last_error is None
        assert ctrl.ui_state("alina").locked is False

    asyncio.run(scenario())
