"""
Layer asset pipeline for generative collections.

Modules:
- config: immutable pipeline configuration and loading
- assets: layer discovery, ordering and size-bounding (normalization stage)
- render: fit-inside / cover-fit resizing and encoding helpers
- transcode: output image conversion and metadata rewriting
- engine: contract for the external generative-composition engine
- messaging: item name / description generators (template or LLM)
- core: pipeline orchestration
"""

from .assets import AssetNormalizer, normalize
from .config import PipelineConfig, load_config
from .core import AssetPipeline, PipelineReport
from .errors import ConfigError, LayerPipelineError, StructuralError
from .transcode import OutputTranscoder, transcode

__all__ = [
    "AssetNormalizer",
    "AssetPipeline",
    "ConfigError",
    "LayerPipelineError",
    "OutputTranscoder",
    "PipelineConfig",
    "PipelineReport",
    "StructuralError",
    "load_config",
    "normalize",
    "transcode",
]
