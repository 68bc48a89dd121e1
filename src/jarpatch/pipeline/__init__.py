"""Build pipeline: cached stages from vanilla download to patch set."""

from jarpatch.pipeline.base import Pipeline, Stage, StageError
from jarpatch.pipeline.context import PipelineContext
from jarpatch.pipeline.stages import (
    ApplyMappings,
    ApplyPatches,
    DecompileModule,
    ExtractResources,
    FetchMappings,
    FetchModule,
    GeneratePatches,
    InitializeRepository,
    Safeguard,
    build_stages,
)

__all__ = [
    "Pipeline",
    "PipelineContext",
    "Stage",
    "StageError",
    "ApplyMappings",
    "ApplyPatches",
    "DecompileModule",
    "ExtractResources",
    "FetchMappings",
    "FetchModule",
    "GeneratePatches",
    "InitializeRepository",
    "Safeguard",
    "build_stages",
]
