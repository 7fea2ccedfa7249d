from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

import run_pipeline
from layerpipe.errors import LayerPipelineError


@pytest.fixture(autouse=True)
def _no_llm(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def test_prepare_command(tmp_path: Path, make_png, capsys) -> None:
    make_png(tmp_path / "data" / "bg" / "a.png", (2048, 1024))
    make_png(tmp_path / "data" / "eyes_z1" / "b.png", (16, 16))

    code = run_pipeline.main(
        ["prepare", "--assets", str(tmp_path / "data"), "--sorted", str(tmp_path / "sorted")]
    )

    assert code == 0
    assert sorted(p.name for p in (tmp_path / "sorted").iterdir()) == ["000__bg", "001__eyes_z1"]
    assert "1 resized" in capsys.readouterr().out


def test_prepare_missing_assets_exits_non_zero(tmp_path: Path, capsys) -> None:
    code = run_pipeline.main(
        ["prepare", "--assets", str(tmp_path / "missing"), "--sorted", str(tmp_path / "sorted")]
    )

    assert code == 1
    assert "missing" in capsys.readouterr().err


def test_finalize_command_with_config(tmp_path: Path, make_png, write_record) -> None:
    out = tmp_path / "output"
    make_png(out / "images" / "0.png", (640, 480))
    write_record(out / "erc721 metadata" / "0.json", {"image": "0.png"})
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"output_width": 512, "output_height": 512, "output_quality": 80}))

    code = run_pipeline.main(["--config", str(config), "finalize", "--output", str(out)])

    assert code == 0
    record = json.loads((out / "erc721 metadata" / "0.json").read_text())
    assert record["image"] == "0.webp"
    with Image.open(out / "images" / "0.webp") as img:
        assert img.size == (512, 512)


def test_finalize_without_metadata_exits_non_zero(tmp_path: Path) -> None:
    assert run_pipeline.main(["finalize", "--output", str(tmp_path / "nothing")]) == 1


def test_run_command_uses_loaded_engine(tmp_path: Path, make_png, monkeypatch) -> None:
    make_png(tmp_path / "data" / "bg" / "a.png", (32, 32))
    seen = {}

    class Engine:
        def run(self, request):
            from layerpipe.engine import EngineOutput

            seen["layers"] = sorted(p.name for p in request.assets_root.iterdir())
            output = EngineOutput.under(request.output_root)
            output.images_dir.mkdir(parents=True)
            output.metadata_dir.mkdir(parents=True)
            return output

    monkeypatch.setattr(run_pipeline, "load_engine", lambda spec: Engine())

    code = run_pipeline.main(
        [
            "run",
            "--assets",
            str(tmp_path / "data"),
            "--work-root",
            str(tmp_path / "work"),
            "--engine",
            "whatever:factory",
        ]
    )

    assert code == 0
    assert seen["layers"] == ["000__bg"]


@pytest.mark.parametrize("spec", ["no_colon", "json:does_not_exist", "not_a_module_xyz:f"])
def test_load_engine_errors(spec: str) -> None:
    with pytest.raises(LayerPipelineError):
        run_pipeline.load_engine(spec)
