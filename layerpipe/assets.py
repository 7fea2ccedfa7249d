import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image

from .config import PipelineConfig
from .errors import StructuralError
from .render import Size, exceeds, fit_inside, probe_size, save_image

log = logging.getLogger(__name__)

RASTER_EXTENSIONS = {".png"}

_Z_HINT = re.compile(r"_z(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class LayerCategory:
    name: str
    z_index: int
    source_path: Path

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.z_index, self.name)


@dataclass(frozen=True)
class LayerAsset:
    source_path: Path
    relative_path: Path

    @property
    def kind(self) -> str:
        return "raster" if self.source_path.suffix.lower() in RASTER_EXTENSIONS else "opaque"


@dataclass(frozen=True)
class FileOutcome:
    """
    Result of materializing one asset.

    status is one of: copied, resized, fallback_copied, skipped.
    """

    source: Path
    destination: Path
    status: str
    reason: Optional[str] = None


@dataclass
class NormalizationReport:
    dest_root: Path
    categories: List[str] = field(default_factory=list)
    outcomes: List[FileOutcome] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def problems(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.reason is not None]


def z_index_of(name: str) -> int:
    """
    Stacking order hint embedded in a folder name (`eyes_z3` -> 3), 0 if absent.
    """
    m = _Z_HINT.search(name)
    return int(m.group(1)) if m else 0


def discover_categories(source_root: Path) -> List[LayerCategory]:
    """
    Immediate subdirectories of `source_root`, bottom-most layer first.

    Sorted by (z-index, name) so the order never depends on how the
    filesystem happens to list entries.
    """
    try:
        entries = list(source_root.iterdir())
    except OSError as exc:
        raise StructuralError("normalize", source_root, exc) from exc

    categories = [
        LayerCategory(name=p.name, z_index=z_index_of(p.name), source_path=p)
        for p in entries
        if p.is_dir()
    ]
    return sorted(categories, key=lambda c: c.sort_key)


def category_dirname(position: int, category: LayerCategory) -> str:
    # Prefix keeps plain lexicographic listings in composition order.
    return f"{position:03d}__{category.name}"


def scan_category(category: LayerCategory) -> Tuple[List[str], List[LayerAsset]]:
    """
    Variant-group names and files of a category, including the files inside
    its variant groups.

    Only one level of nesting is walked.
    """
    groups: List[str] = []
    assets: List[LayerAsset] = []
    for entry in sorted(category.source_path.iterdir(), key=lambda p: p.name):
        if entry.is_file():
            assets.append(LayerAsset(entry, Path(entry.name)))
        elif entry.is_dir():
            groups.append(entry.name)
            for child in sorted(entry.iterdir(), key=lambda p: p.name):
                if child.is_file():
                    assets.append(LayerAsset(child, Path(entry.name) / child.name))
    return groups, assets


class AssetNormalizer:
    """
    Copies the layer tree into a clean, ordered and size-bounded tree that
    the composition engine can consume:
    - one folder per category, prefixed with its composition position
    - PNGs larger than the input envelope scaled down to fit inside it
    - everything else copied byte for byte
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    @property
    def bound(self) -> Size:
        return (self.config.input_width, self.config.input_height)

    def normalize(self, source_root: Path, dest_root: Path) -> NormalizationReport:
        if not source_root.is_dir():
            raise StructuralError("normalize", source_root)

        categories = discover_categories(source_root)
        log.info(
            "Preparing assets in %s (sorted by _zN and resized to fit %dx%d)",
            dest_root,
            *self.bound,
        )
        _ensure_dir_clean(dest_root)

        report = NormalizationReport(dest_root=dest_root)
        for position, category in enumerate(categories):
            dst_dir = dest_root / category_dirname(position, category)
            dst_dir.mkdir(parents=True, exist_ok=True)
            report.categories.append(dst_dir.name)

            groups, assets = scan_category(category)
            # Empty variant groups are kept so the copy mirrors the source.
            for group in groups:
                (dst_dir / group).mkdir(exist_ok=True)

            for asset in assets:
                destination = dst_dir / asset.relative_path
                report.outcomes.append(self._materialize(asset, destination))

        return report

    def _materialize(self, asset: LayerAsset, destination: Path) -> FileOutcome:
        if asset.kind != "raster":
            return _copy_verbatim(asset.source_path, destination)

        try:
            size = probe_size(asset.source_path)
            if not exceeds(size, self.bound):
                shutil.copyfile(asset.source_path, destination)
                return FileOutcome(asset.source_path, destination, "copied")

            with Image.open(asset.source_path) as img:
                resized = fit_inside(img, self.bound)
            save_image(resized, destination, "PNG", quality=100)
            log.info(
                "Downscaled %s %dx%d -> %dx%d",
                asset.source_path,
                size[0],
                size[1],
                resized.width,
                resized.height,
            )
            return FileOutcome(asset.source_path, destination, "resized")
        except Exception as exc:
            log.warning("Failed to probe/resize %s: %s", asset.source_path, exc)
            outcome = _copy_verbatim(asset.source_path, destination)
            if outcome.status == "skipped":
                return outcome
            return FileOutcome(
                asset.source_path,
                destination,
                "fallback_copied",
                reason=f"probe/resize failed: {exc}",
            )


def normalize(
    source_root: Path,
    dest_root: Path,
    max_width: int,
    max_height: int,
) -> NormalizationReport:
    """
    Functional entry point: normalize with an explicit bound.
    """
    config = PipelineConfig(input_width=max_width, input_height=max_height)
    return AssetNormalizer(config).normalize(Path(source_root), Path(dest_root))


def _copy_verbatim(source: Path, destination: Path) -> FileOutcome:
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        log.error("Failed to copy %s: %s", source, exc)
        return FileOutcome(source, destination, "skipped", reason=f"copy failed: {exc}")
    return FileOutcome(source, destination, "copied")


def _ensure_dir_clean(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
