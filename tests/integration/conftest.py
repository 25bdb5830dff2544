from __future__ import annotations

import json

import pytest
from PIL import Image

from apps.common.settings import AppSettings, DatasetSpec, LedgerSettings


def _record(image_name: str) -> dict:
    return {
        "image": {"id": image_name, "image_path": f"images/train2017/{image_name}"},
        "generated_captions": {
            "model": "test-model",
            "output": {"explicit": "e", "moderate": "m", "no_leak": "n"},
        },
    }


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    data = tmp_path / "data"
    pipe = data / "pipeline_output"
    irtiza = data / "irtiza_output"
    images = data / "jpg"
    for d in (pipe, irtiza, images):
        d.mkdir(parents=True)

    (pipe / "b.json").write_text(json.dumps(_record("b.jpg")), encoding="utf-8")
    (pipe / "a.json").write_text(json.dumps(_record("a.jpg")), encoding="utf-8")
    (pipe / "broken.json").write_text("{not json", encoding="utf-8")
    (irtiza / "files.json").write_text(json.dumps(["z.json", "x.json"]), encoding="utf-8")
    (irtiza / "x.json").write_text(json.dumps(_record("x.jpg")), encoding="utf-8")
    (irtiza / "z.json").write_text(json.dumps(_record("z.jpg")), encoding="utf-8")

    Image.new("RGB", (400, 200), (200, 10, 10)).save(images / "a.jpg")

    return AppSettings(
        data_dir=data,
        image_dir=images,
        gateway_url=None,
        datasets=[
            DatasetSpec(name="pipeline_output", label="Pipeline Output"),
            DatasetSpec(name="irtiza_output", label="OG Gemini Selected"),
        ],
        reviewers=["alina", "bogdan"],
        ledger=LedgerSettings(
            backend="csv",
            votes_path=data / "votes.csv",
            default_partition="Sheet1",
            partitions={"irtiza_output": "Irtiza"},
        ),
    )
