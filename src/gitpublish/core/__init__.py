"""Core models and state for the publish pipeline."""

from .content import ContentSource, CopyEntry, DirectoryContentSource
from .context import PipelineContext
from .errors import ConfigurationError, PublishError, PublishStateError
from .models import (
    ContentSpec,
    PipelineResult,
    PublishConfig,
    Stage,
    StageOutcome,
    StageStatus,
)
from .patterns import PathPatterns, match_path

__all__ = [
    "ConfigurationError",
    "ContentSource",
    "ContentSpec",
    "CopyEntry",
    "DirectoryContentSource",
    "PathPatterns",
    "PipelineContext",
    "PipelineResult",
    "PublishConfig",
    "PublishError",
    "PublishStateError",
    "Stage",
    "StageOutcome",
    "StageStatus",
    "match_path",
]
