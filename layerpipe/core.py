import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .assets import AssetNormalizer, NormalizationReport
from .config import PipelineConfig
from .engine import ArtEngine, EngineOutput, EngineRequest
from .transcode import OutputTranscoder, TranscodeReport

log = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    normalization: NormalizationReport
    engine_output: EngineOutput
    transcode: TranscodeReport
    timings: Dict[str, float] = field(default_factory=dict)

    def format_timings(self) -> str:
        return ", ".join(f"{stage}: {seconds:.2f}s" for stage, seconds in self.timings.items())


class AssetPipeline:
    """
    Orchestrates one collection build:
    - normalize the layer folders into <work_root>/data_sorted
    - hand the sorted tree to the composition engine
    - transcode the engine output and rewrite its metadata
    """

    def __init__(
        self,
        assets_dir: Path,
        work_root: Path,
        engine: ArtEngine,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self.assets_dir = assets_dir
        self.work_root = work_root
        self.engine = engine
        self.config = config or PipelineConfig()
        self.normalizer = AssetNormalizer(self.config)
        self.transcoder = OutputTranscoder(self.config)

    @property
    def sorted_dir(self) -> Path:
        return self.work_root / "data_sorted"

    @property
    def output_dir(self) -> Path:
        return self.work_root / "output"

    @property
    def cache_dir(self) -> Path:
        return self.work_root / "cache"

    def build_request(self) -> EngineRequest:
        return EngineRequest(
            assets_root=self.sorted_dir,
            output_root=self.output_dir,
            cache_root=self.cache_dir,
            start_index=self.config.start_index,
            end_index=self.config.end_index,
            width=self.config.input_width,
            height=self.config.input_height,
            name=self.config.name,
            description=self.config.description,
        )

    def run(self) -> PipelineReport:
        timings: Dict[str, float] = {}

        started = time.perf_counter()
        normalization = self.normalizer.normalize(self.assets_dir, self.sorted_dir)
        timings["normalize"] = time.perf_counter() - started

        started = time.perf_counter()
        engine_output = self.engine.run(self.build_request())
        timings["generate"] = time.perf_counter() - started

        started = time.perf_counter()
        transcoded = self.transcoder.transcode(
            engine_output.metadata_dir, engine_output.images_dir
        )
        timings["transcode"] = time.perf_counter() - started

        report = PipelineReport(
            normalization=normalization,
            engine_output=engine_output,
            transcode=transcoded,
            timings=timings,
        )
        log.info("Pipeline finished (%s)", report.format_timings())
        return report
