"""Timeline model - The project aggregate: stacked layers plus main-layer designations"""

from typing import Dict, List, Optional
from uuid import uuid4

from .codec import dumps, loads, nested
from .errors import DanglingReferenceError, LayerNotFoundError, ParseError
from .layer import Layer
from .scale import ScaleContext
from .subtitle import SubtitleTrack
from utils.logger import logger


class Timeline:
    """
    Ordered layers of one editing session.

    Layer order is front-to-back stacking order: index 0 is the frontmost
    layer. Two layers may be designated as the main video and main audio
    layers; together they define the project's total duration. The
    designations are stored as layer ids and resolved through
    layer_index() on every access.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        name: str = "Untitled",
        scale: Optional[ScaleContext] = None,
    ):
        self.id = id or str(uuid4())
        self.name = name
        self.scale = scale if scale is not None else ScaleContext()
        self.layers: List[Layer] = []
        self.main_video_layer_id: Optional[str] = None
        self.main_audio_layer_id: Optional[str] = None
        self.subtitles = SubtitleTrack()

    # -- Layer management --------------------------------------------------

    def add_layer(self, layer: Layer, index: Optional[int] = None) -> Layer:
        """Insert a layer; defaults to the back of the stack"""
        if index is None:
            self.layers.append(layer)
        else:
            self.layers.insert(index, layer)
        logger.debug(f"Timeline {self.id[:8]}: added {layer!r} at {index if index is not None else len(self.layers) - 1}")
        return layer

    def get_layer(self, layer_id: str) -> Layer:
        layer = self.layer_index().get(layer_id)
        if layer is None:
            raise LayerNotFoundError(layer_id)
        return layer

    def layer_index(self) -> Dict[str, Layer]:
        """Lookup table used to resolve layer references"""
        return {layer.id: layer for layer in self.layers}

    def remove_layer(self, layer_id: str) -> None:
        """Destroy and remove a layer, clearing main designations that pointed at it"""
        layer = self.get_layer(layer_id)
        layer.destroy()
        self.layers.remove(layer)
        if self.main_video_layer_id == layer_id:
            self.main_video_layer_id = None
        if self.main_audio_layer_id == layer_id:
            self.main_audio_layer_id = None

    def move_layer(self, layer_id: str, index: int) -> None:
        """Reorder a layer; this changes overlay stacking order"""
        layer = self.get_layer(layer_id)
        self.layers.remove(layer)
        self.layers.insert(index, layer)

    def set_main_video_layer(self, layer_id: Optional[str]) -> None:
        if layer_id is not None:
            self.get_layer(layer_id)
        self.main_video_layer_id = layer_id

    def set_main_audio_layer(self, layer_id: Optional[str]) -> None:
        if layer_id is not None:
            self.get_layer(layer_id)
        self.main_audio_layer_id = layer_id

    def resolve_main(self, field_name: str) -> Optional[Layer]:
        """Layer designated by *field_name*; raises DanglingReferenceError for an unknown id"""
        layer_id = getattr(self, field_name)
        if layer_id is None:
            return None
        layer = self.layer_index().get(layer_id)
        if layer is None:
            raise DanglingReferenceError(field_name, layer_id)
        return layer

    @property
    def main_video_layer(self) -> Optional[Layer]:
        return self.resolve_main("main_video_layer_id")

    @property
    def main_audio_layer(self) -> Optional[Layer]:
        return self.resolve_main("main_audio_layer_id")

    def overlay_layers(self) -> List[Layer]:
        """Every layer that is neither main layer, in stored order"""
        main_ids = {self.main_video_layer_id, self.main_audio_layer_id}
        return [layer for layer in self.layers if layer.id not in main_ids]

    @staticmethod
    def layer_end(layer: Optional[Layer]) -> int:
        """Latest right edge of any unit in *layer*, in ms"""
        if layer is None or not layer.units:
            return 0
        return max(unit.duration.right for unit in layer.units)

    @property
    def total_duration(self) -> int:
        """Project length in ms: the later of the main video and main audio ends"""
        return max(
            self.layer_end(self.main_video_layer),
            self.layer_end(self.main_audio_layer),
        )

    def destroy(self) -> None:
        for layer in self.layers:
            layer.destroy()
        self.layers = []
        self.main_video_layer_id = None
        self.main_audio_layer_id = None

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "scale": self.scale.to_dict(),
            "layers": [layer.to_dict() for layer in self.layers],
            "main_video_layer_id": self.main_video_layer_id,
            "main_audio_layer_id": self.main_audio_layer_id,
            "subtitles": self.subtitles.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Timeline':
        if not isinstance(data, dict):
            raise ParseError(f"Timeline: expected an object, got {type(data).__name__}")
        layers_data = data.get("layers") or []
        if not isinstance(layers_data, list):
            raise ParseError("Timeline: field 'layers' must be a list")

        try:
            scale = ScaleContext.from_dict(nested(data, "scale", "Timeline"))
            subtitles = SubtitleTrack.from_dict(nested(data, "subtitles", "Timeline"))
        except (TypeError, ValueError, OverflowError, AttributeError) as e:
            raise ParseError(f"Timeline: {e}") from e

        timeline = cls(id=data.get("id"), name=data.get("name") or "Untitled", scale=scale)
        timeline.subtitles = subtitles
        for index, layer_data in enumerate(layers_data):
            timeline.layers.append(
                Layer.from_dict(loads(layer_data, f"Timeline.layers[{index}]"), scale=scale)
            )

        # References are kept even when dangling; flatten reports them
        timeline.main_video_layer_id = data.get("main_video_layer_id")
        timeline.main_audio_layer_id = data.get("main_audio_layer_id")
        return timeline

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text) -> Optional['Timeline']:
        """Decode a timeline; malformed text yields None instead of raising"""
        try:
            return cls.from_dict(loads(text, "Timeline"))
        except ParseError as e:
            logger.warning(f"Timeline parse failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"Timeline({self.id[:8]}, name={self.name!r}, layers={len(self.layers)})"
