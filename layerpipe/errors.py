from pathlib import Path
from typing import Optional


class LayerPipelineError(Exception):
    """Base error for the layer pipeline."""


class ConfigError(LayerPipelineError):
    """Raised when a pipeline configuration value is invalid."""


class StructuralError(LayerPipelineError):
    """
    A stage could not start because a required directory is missing or
    unreadable. Only the failing stage is aborted.
    """

    def __init__(self, stage: str, path: Path, cause: Optional[Exception] = None) -> None:
        self.stage = stage
        self.path = path
        self.cause = cause
        message = f"{stage}: cannot read {path}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)
