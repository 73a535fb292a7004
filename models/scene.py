"""Scene model - Visual placement of a unit's rendered content"""

import time
from typing import Optional
from uuid import uuid4

from .codec import dumps, loads, as_number
from .errors import ParseError
from utils.logger import logger


def _now_ms() -> int:
    return int(time.time() * 1000)


def _point(data, entity: str, key: str, default: float) -> dict:
    if data is None:
        return {"x": default, "y": default}
    if not isinstance(data, dict):
        raise ParseError(f"{entity}: field '{key}' must be an object")
    return {
        "x": as_number(data.get("x", default), entity, f"{key}.x"),
        "y": as_number(data.get("y", default), entity, f"{key}.y"),
    }


class Scene:
    """
    Position and scale of a unit on the render surface.

    The drawing surface owns sprites and containers; this class holds only
    the numbers needed to rebuild the placement. revision is a millisecond
    timestamp bumped on every change so the surface can tell when its
    copy is stale.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        position: Optional[dict] = None,
        scale: Optional[dict] = None,
        revision: int = 0,
    ):
        self.id = id or str(uuid4())
        self._position = {"x": 0, "y": 0}
        self._scale = {"x": 1, "y": 1}
        if position:
            self._position.update(x=position["x"], y=position["y"])
        if scale:
            self._scale.update(x=scale["x"], y=scale["y"])
        self.revision = revision
        self.destroyed = False

    def _touch(self) -> None:
        # Strictly increasing even when two edits land in the same millisecond
        self.revision = max(_now_ms(), self.revision + 1)

    @property
    def position(self) -> dict:
        return dict(self._position)

    @position.setter
    def position(self, value: dict) -> None:
        self.move_to(value["x"], value["y"])

    @property
    def scale(self) -> dict:
        return dict(self._scale)

    @scale.setter
    def scale(self, value: dict) -> None:
        self.scale_to(value["x"], value["y"])

    def move_to(self, x: float, y: float) -> None:
        """Called by the drawing surface after a drag"""
        self._position = {"x": x, "y": y}
        self._touch()

    def scale_to(self, x: float, y: float) -> None:
        """Called by the drawing surface after a resize"""
        self._scale = {"x": x, "y": y}
        self._touch()

    def clone(self) -> 'Scene':
        # Placement is not carried over to clones
        return Scene()

    def destroy(self) -> None:
        self.destroyed = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.revision,
            "position": self.position,
            "scale": self.scale,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Scene':
        if not isinstance(data, dict):
            raise ParseError(f"Scene: expected an object, got {type(data).__name__}")
        return cls(
            id=data.get("id"),
            position=_point(data.get("position"), "Scene", "position", 0),
            scale=_point(data.get("scale"), "Scene", "scale", 1),
            revision=int(as_number(data.get("timestamp", 0) or 0, "Scene", "timestamp")),
        )

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text) -> Optional['Scene']:
        """Decode a scene; malformed text yields None"""
        try:
            return cls.from_dict(loads(text, "Scene"))
        except ParseError as e:
            logger.warning(f"Scene parse failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"Scene({self.id[:8]}, position={self._position}, scale={self._scale})"
