from __future__ import annotations

import json
from pathlib import Path

import pytest

from layerpipe.config import PipelineConfig, load_config
from layerpipe.errors import ConfigError
from layerpipe.messaging import DescriptionGenerator


def test_defaults_match_collection_settings() -> None:
    config = PipelineConfig()
    assert (config.start_index, config.end_index) == (10, 30)
    assert (config.input_width, config.input_height) == (1024, 1024)
    assert (config.output_width, config.output_height) == (640, 640)
    assert config.output_quality == 90
    assert config.output_extension == ".webp"
    assert config.output_encoder == "WEBP"
    assert config.name(7) == "Jungle Creatures #0007"


def test_config_is_immutable() -> None:
    config = PipelineConfig()
    with pytest.raises(AttributeError):
        config.output_quality = 10  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"input_width": 0},
        {"output_height": -5},
        {"output_width": 12.5},
        {"output_quality": 101},
        {"output_quality": -1},
        {"start_index": 5, "end_index": 4},
        {"output_format": "gif"},
    ],
)
def test_invalid_values_rejected(kwargs) -> None:
    with pytest.raises(ConfigError):
        PipelineConfig(**kwargs)


def test_load_config_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "start_index": 1,
                "end_index": 3,
                "output_width": 2000,
                "output_height": 2000,
                "output_quality": 80,
                "output_format": "JPEG",
                "name_template": "Ruff #{index}",
                "description_template": "Ruff with {traits}",
            }
        )
    )

    config = load_config(path)

    assert config.end_index == 3
    assert config.input_width == 1024
    assert config.output_extension == ".jpg"
    assert config.name(2) == "Ruff #2"
    assert config.description({"eyes": "blue"}) == "Ruff with eyes: blue"


def test_load_config_passes_llm(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{}")
    sentinel = object()

    config = load_config(path, llm=sentinel)

    assert isinstance(config.description, DescriptionGenerator)
    assert config.description.llm is sentinel


def test_load_config_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"outputWidth": 100}))
    with pytest.raises(ConfigError, match="outputWidth"):
        load_config(path)


def test_load_config_reports_bad_files(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2")
    with pytest.raises(ConfigError):
        load_config(bad)
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.json")

    listed = tmp_path / "list.json"
    listed.write_text("[]")
    with pytest.raises(ConfigError, match="JSON object"):
        load_config(listed)


@pytest.mark.parametrize(
    "key, template",
    [
        ("name_template", "Item {traits}"),
        ("name_template", "Item {0}"),
        ("name_template", "Item {index"),
        ("description_template", "Number {index}"),
        ("description_template", 42),
    ],
)
def test_load_config_rejects_bad_templates(tmp_path: Path, key: str, template) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({key: template}))
    with pytest.raises(ConfigError, match=key):
        load_config(path)
