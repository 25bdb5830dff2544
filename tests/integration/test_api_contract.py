# tests/integration/test_api_contract.py
from __future__ import annotations

from io import BytesIO

from fastapi.testclient import TestClient
from PIL import Image

from apps.api_gateway.app_factory import create_app
from services.ingestion.records import FileSystemRecordRepository
from services.ledger.csv_ledger import CsvVoteLedger
from services.review.errors import LedgerWriteError


def _client(settings, ledger=None) -> TestClient:
    app = create_app(
        repository=FileSystemRecordRepository(str(settings.data_dir)),
        ledger=ledger or CsvVoteLedger(str(settings.ledger.votes_path)),
        settings=settings,
    )
    return TestClient(app)


class BrokenLedger:
    async def get_votes(self, record_key, *, partition=None):
        return []

    async def append_vote(self, entry, target_partition=None):
        raise LedgerWriteError("Failed to write to Google Sheet: PERMISSION_DENIED", subject=entry.record_key)


def test_health(settings):
    r = _client(settings).get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_datasets_and_reviewers(settings):
    client = _client(settings)
    assert client.get("/api/datasets").json() == [
        {"name": "pipeline_output", "label": "Pipeline Output"},
        {"name": "irtiza_output", "label": "OG Gemini Selected"},
    ]
    assert client.get("/api/reviewers").json() == ["alina", "bogdan"]


def test_files_listing(settings):
    client = _client(settings)
    assert client.get("/api/files/pipeline_output").json() == ["a.json", "b.json", "broken.json"]
    # files.json index wins over the directory scan
    assert client.get("/api/files/irtiza_output").json() == ["x.json", "z.json"]

    r = client.get("/api/files/unknown")
    assert r.status_code == 404
    assert r.json()["detail"]["error"] == "listing_unavailable"


def test_file_content_and_errors(settings):
    client = _client(settings)
    r = client.get("/api/file/pipeline_output/a.json")
    assert r.status_code == 200
    assert r.json()["image"]["image_path"] == "images/train2017/a.jpg"

    r = client.get("/api/file/pipeline_output/missing.json")
    assert r.status_code == 404
    assert r.json()["detail"]["error"] == "record_not_found"

    r = client.get("/api/file/pipeline_output/broken.json")
    assert r.status_code == 500
    assert r.json()["detail"]["error"] == "record_unreadable"

    r = client.get("/api/file/pipeline_output/..%5Csecret.json")
    assert r.status_code == 404


def test_vote_round_trip(settings):
    client = _client(settings)
    body = {
        "user_name": "alina",
        "filename": "a.json",
        "explicit_selected": "accepted",
        "moderate_selected": "rejected",
        "no_leak_selected": "accepted",
        "comments": "ok, with a comma",
        "dataset": "pipeline_output",
    }
    r = client.post("/api/vote", json=body)
    assert r.status_code == 200
    j = r.json()
    assert j["success"] is True
    assert j["vote"]["timestamp"]

    votes = client.get("/api/votes/a.json").json()
    assert len(votes) == 1
    assert votes[0]["user_name"] == "alina"
    assert votes[0]["comments"] == "ok, with a comma"
    assert votes[0]["moderate_selected"] == "rejected"

    assert client.get("/api/votes/b.json").json() == []


def test_vote_routes_dataset_to_partition(settings):
    client = _client(settings)
    r = client.post("/api/vote", json={"user_name": "bogdan", "filename": "x.json", "dataset": "irtiza_output"})
    assert r.status_code == 200

    assert client.get("/api/votes/x.json").json() == []
    routed = client.get("/api/votes/x.json", params={"partition": "Irtiza"}).json()
    assert [v["user_name"] for v in routed] == ["bogdan"]
    assert routed[0]["explicit_selected"] == "none"


def test_vote_validation(settings):
    client = _client(settings)
    r = client.post("/api/vote", json={"filename": "a.json"})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "validation_error"

    r = client.post("/api/vote", json={"user_name": "", "filename": "a.json"})
    assert r.status_code == 400


def test_vote_rejects_unknown_reviewer_and_dataset(settings):
    client = _client(settings)
    r = client.post("/api/vote", json={"user_name": "mallory", "filename": "a.json"})
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "validation_error"
    assert "mallory" in r.json()["detail"]["details"]

    r = client.post("/api/vote", json={"user_name": "alina", "filename": "a.json", "dataset": "elsewhere"})
    assert r.status_code == 400
    assert "elsewhere" in r.json()["detail"]["details"]

    assert client.get("/api/votes/a.json").json() == []
    assert not settings.ledger.votes_path.exists()


def test_vote_write_failure_keeps_details(settings):
    client = _client(settings, ledger=BrokenLedger())
    r = client.post("/api/vote", json={"user_name": "alina", "filename": "a.json"})
    assert r.status_code == 502
    assert r.json()["detail"] == {
        "error": "ledger_write_error",
        "details": "Failed to write to Google Sheet: PERMISSION_DENIED",
    }


def test_images(settings):
    client = _client(settings)
    r = client.get("/images/a.jpg")
    assert r.status_code == 200
    assert r.content[:2] == b"\xff\xd8"

    r = client.get("/images/a.jpg", params={"max_side": 100})
    assert r.status_code == 200
    assert Image.open(BytesIO(r.content)).size == (100, 50)

    assert client.get("/images/nope.jpg").status_code == 404
