import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

from PIL import Image

from .config import PipelineConfig
from .errors import StructuralError
from .render import cover_fit, save_image

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordOutcome:
    """
    Result of processing one metadata record.

    status is either `converted` or `skipped`; `image` is the record's image
    reference after processing.
    """

    record_path: Path
    status: str
    image: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class TranscodeReport:
    metadata_dir: Path
    images_dir: Path
    outcomes: List[RecordOutcome] = field(default_factory=list)

    @property
    def converted(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.status == "converted"]

    @property
    def skipped(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.status == "skipped"]


def load_record(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        record = json.load(f)
    if not isinstance(record, dict):
        raise ValueError("record is not a JSON object")
    image = record.get("image")
    if not isinstance(image, str) or not image:
        raise ValueError("record has no `image` filename")
    return record


def save_record(path: Path, record: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(record, f, indent=2, ensure_ascii=False)


def retarget_image_name(image: str, extension: str) -> str:
    """
    `0.png` -> `0.webp`; any leading directory part of the reference is kept.
    """
    return str(PurePosixPath(image).with_suffix(extension))


class OutputTranscoder:
    """
    Converts every generated artifact referenced by a metadata record into
    the final canvas and format:
    - cover-fit to exactly output_width x output_height
    - encode to the configured format / quality next to the original
    - remove the original, then point the record at the new file
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    def transcode(self, metadata_dir: Path, images_dir: Path) -> TranscodeReport:
        try:
            record_paths = sorted(p for p in metadata_dir.iterdir() if p.suffix == ".json")
        except OSError as exc:
            raise StructuralError("transcode", metadata_dir, exc) from exc

        log.info(
            "Resizing and converting images to %s (%dx%d, quality %d)",
            self.config.output_format,
            self.config.output_width,
            self.config.output_height,
            self.config.output_quality,
        )
        report = TranscodeReport(metadata_dir=metadata_dir, images_dir=images_dir)
        for record_path in record_paths:
            report.outcomes.append(self.transcode_record(record_path, images_dir))
        return report

    def transcode_record(self, record_path: Path, images_dir: Path) -> RecordOutcome:
        try:
            record = load_record(record_path)
        except ValueError as exc:
            log.warning("Skipping unreadable record %s: %s", record_path, exc)
            return RecordOutcome(record_path, "skipped", reason=f"unreadable record: {exc}")

        image = record["image"]
        source = images_dir / image
        if not source.resolve().is_relative_to(images_dir.resolve()):
            log.warning("Skipping %s, image %s is outside %s", record_path, image, images_dir)
            return RecordOutcome(
                record_path, "skipped", image=image, reason="image outside images dir"
            )
        if not source.is_file():
            return RecordOutcome(record_path, "skipped", image=image, reason="image missing")

        extension = self.config.output_extension
        size = (self.config.output_width, self.config.output_height)
        in_place = source.suffix.lower() == extension

        try:
            with Image.open(source) as img:
                if in_place and img.size == size:
                    return RecordOutcome(
                        record_path, "skipped", image=image, reason="already in target format"
                    )
                resized = cover_fit(img, size)
        except (OSError, SyntaxError, Image.DecompressionBombError) as exc:
            log.warning("Skipping %s, cannot decode %s: %s", record_path, source, exc)
            return RecordOutcome(record_path, "skipped", image=image, reason=f"decode failed: {exc}")

        # Write failures are fatal and propagate; nothing has been removed yet.
        if in_place:
            new_image = image
            fd, tmp_name = tempfile.mkstemp(suffix=extension, dir=source.parent)
            os.close(fd)
            tmp_path = Path(tmp_name)
            try:
                save_image(resized, tmp_path, self.config.output_encoder, self.config.output_quality)
                os.replace(tmp_path, source)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()
        else:
            new_image = retarget_image_name(image, extension)
            target = images_dir / new_image
            save_image(resized, target, self.config.output_encoder, self.config.output_quality)
            source.unlink()

        record["image"] = new_image
        save_record(record_path, record)
        log.info("Converted %s to %s", image, new_image)
        return RecordOutcome(record_path, "converted", image=new_image)


def transcode(
    metadata_dir: Path,
    images_dir: Path,
    output_width: int,
    output_height: int,
    quality: int,
    output_format: str = "webp",
) -> TranscodeReport:
    """
    Functional entry point: transcode with an explicit output envelope.
    """
    config = PipelineConfig(
        output_width=output_width,
        output_height=output_height,
        output_quality=quality,
        output_format=output_format,
    )
    return OutputTranscoder(config).transcode(Path(metadata_dir), Path(images_dir))
