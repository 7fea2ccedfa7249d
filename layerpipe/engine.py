from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from .messaging import Attributes

IMAGES_DIRNAME = "images"
METADATA_DIRNAME = "erc721 metadata"


@dataclass(frozen=True)
class EngineRequest:
    """
    Everything the composition engine receives for one run.
    """

    assets_root: Path
    output_root: Path
    cache_root: Path
    start_index: int
    end_index: int
    width: int
    height: int
    name: Callable[[int], str]
    description: Callable[[Attributes], str]
    use_cache: bool = False


@dataclass(frozen=True)
class EngineOutput:
    images_dir: Path
    metadata_dir: Path

    @classmethod
    def under(cls, output_root: Path) -> "EngineOutput":
        """Default layout: <output>/images and <output>/erc721 metadata."""
        return cls(
            images_dir=output_root / IMAGES_DIRNAME,
            metadata_dir=output_root / METADATA_DIRNAME,
        )


class ArtEngine(Protocol):
    """
    External generative-composition engine.

    Reads the normalized layer tree, writes one raster per item into
    `images_dir` and one JSON record per item (with at least an `image`
    filename) into `metadata_dir`.
    """

    def run(self, request: EngineRequest) -> EngineOutput:
        ...
