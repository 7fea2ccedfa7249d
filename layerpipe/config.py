import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import ConfigError
from .messaging import (
    DEFAULT_DESCRIPTION_TEMPLATE,
    DEFAULT_NAME_TEMPLATE,
    Attributes,
    DescriptionGenerator,
    ItemNamer,
)

# Target format -> (Pillow encoder name, file extension)
OUTPUT_FORMATS: Dict[str, Tuple[str, str]] = {
    "webp": ("WEBP", ".webp"),
    "jpeg": ("JPEG", ".jpg"),
    "png": ("PNG", ".png"),
}


@dataclass(frozen=True)
class PipelineConfig:
    # Start after 1 if you have reserved 1:1 images.
    start_index: int = 10
    end_index: int = 30
    input_width: int = 1024
    input_height: int = 1024
    output_width: int = 640
    output_height: int = 640
    output_quality: int = 90
    output_format: str = "webp"
    name: Callable[[int], str] = field(default=ItemNamer())
    description: Callable[[Attributes], str] = field(default=DescriptionGenerator())

    def __post_init__(self) -> None:
        for key in ("input_width", "input_height", "output_width", "output_height"):
            value = getattr(self, key)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigError(f"{key} must be a positive integer, got {value!r}")
        if not isinstance(self.output_quality, int) or not 0 <= self.output_quality <= 100:
            raise ConfigError(f"output_quality must be within 0-100, got {self.output_quality!r}")
        if not isinstance(self.start_index, int) or not isinstance(self.end_index, int):
            raise ConfigError("start_index and end_index must be integers")
        if self.start_index > self.end_index:
            raise ConfigError(
                f"start_index ({self.start_index}) must not exceed end_index ({self.end_index})"
            )
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output_format must be one of {sorted(OUTPUT_FORMATS)}, got {self.output_format!r}"
            )

    @property
    def output_extension(self) -> str:
        return OUTPUT_FORMATS[self.output_format][1]

    @property
    def output_encoder(self) -> str:
        return OUTPUT_FORMATS[self.output_format][0]


_INT_KEYS = (
    "start_index",
    "end_index",
    "input_width",
    "input_height",
    "output_width",
    "output_height",
    "output_quality",
)


def load_config(path: Path, llm: Optional[Any] = None) -> PipelineConfig:
    """
    Load a PipelineConfig from a JSON file.

    Unknown keys are rejected. `name_template` / `description_template`
    become the name and description generators; `llm` is handed to the
    description generator.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot load config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a JSON object")

    allowed = set(_INT_KEYS) | {
        "output_format",
        "name_template",
        "description_template",
        "collection_name",
    }
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(f"unknown config keys in {path}: {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {key: data[key] for key in _INT_KEYS if key in data}
    if "output_format" in data:
        kwargs["output_format"] = str(data["output_format"]).lower()

    name_template = data.get("name_template", DEFAULT_NAME_TEMPLATE)
    description_template = data.get("description_template", DEFAULT_DESCRIPTION_TEMPLATE)
    _check_template("name_template", name_template, index=0)
    _check_template("description_template", description_template, traits="")

    kwargs["name"] = ItemNamer(name_template)
    kwargs["description"] = DescriptionGenerator(
        template=description_template,
        llm=llm,
        collection_name=data.get("collection_name"),
    )
    return PipelineConfig(**kwargs)


def _check_template(key: str, template: Any, **fields: Any) -> None:
    # Render once with placeholder values; unknown fields raise KeyError.
    if not isinstance(template, str):
        raise ConfigError(f"{key} must be a string, got {template!r}")
    try:
        template.format(**fields)
    except (KeyError, IndexError, ValueError) as exc:
        allowed = ", ".join("{" + name + "}" for name in fields)
        raise ConfigError(f"{key} {template!r} is invalid (placeholders: {allowed}): {exc!r}") from exc
