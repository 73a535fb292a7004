"""Timeline data models"""

from .errors import (
    LayerStackError,
    ParseError,
    UnitNotFoundError,
    LayerNotFoundError,
    DanglingReferenceError,
    LayerKindMismatchError,
    OwnershipError,
    UnknownInstructionKindError,
    CompositionError,
    CompositionValidationError,
    AssetFetchError,
    RenderOutputError,
)
from .scale import ScaleContext
from .track import Track
from .scene import Scene
from .resource import (
    Resource,
    VideoResource,
    AudioResource,
    ImageResource,
    FigureResource,
    TextResource,
)
from .layer_unit import LayerUnit, UnitDuration
from .layer import Layer
from .subtitle import SubtitleEntry, SubtitleTrack
from .timeline import Timeline

__all__ = [
    "LayerStackError",
    "ParseError",
    "UnitNotFoundError",
    "LayerNotFoundError",
    "DanglingReferenceError",
    "LayerKindMismatchError",
    "OwnershipError",
    "UnknownInstructionKindError",
    "CompositionError",
    "CompositionValidationError",
    "AssetFetchError",
    "RenderOutputError",
    "ScaleContext",
    "Track",
    "Scene",
    "Resource",
    "VideoResource",
    "AudioResource",
    "ImageResource",
    "FigureResource",
    "TextResource",
    "LayerUnit",
    "UnitDuration",
    "Layer",
    "SubtitleEntry",
    "SubtitleTrack",
    "Timeline",
]
