"""Core logic for LayerStack"""

from .compositor import (
    Compositor,
    Diagnostic,
    FlattenResult,
    Instruction,
    InstructionKind,
    flatten,
    partition,
)
from .job import build_job_options
from .render_backend import RenderBackend, ManifestRenderBackend
from .composition import AssetFetcher, CompositionRunner

__all__ = [
    "Compositor",
    "Diagnostic",
    "FlattenResult",
    "Instruction",
    "InstructionKind",
    "flatten",
    "partition",
    "build_job_options",
    "RenderBackend",
    "ManifestRenderBackend",
    "AssetFetcher",
    "CompositionRunner",
]
