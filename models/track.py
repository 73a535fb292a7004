"""Track model - Timeline-axis position and width of one placed unit"""

import math
from typing import Optional
from uuid import uuid4

from .codec import dumps, loads, as_number
from .errors import ParseError
from .scale import ScaleContext, floor_int
from config import settings
from utils.logger import logger


def _coerce(value) -> float:
    """Coordinates are never rejected: anything unusable becomes 0"""
    if isinstance(value, bool):
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _plain(value: float):
    """Whole values serialize as ints"""
    return int(value) if float(value).is_integer() else value


class Track:
    """
    Position/width state of a unit on the timeline.

    raw_position and raw_width are the unscaled source of truth and keep
    their fractional part. The position and width properties are what the
    timeline displays: raw values multiplied by the bound ScaleContext's
    display_scale and floored to whole pixels.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        raw_position: float = 0,
        raw_width: float = 0,
        height: Optional[int] = None,
        scale: Optional[ScaleContext] = None,
    ):
        self.id = id or str(uuid4())
        self.scale = scale if scale is not None else ScaleContext()
        self._raw_position = _coerce(raw_position)
        self._raw_width = _coerce(raw_width)
        self.height = height if height else settings.DEFAULT_TRACK_HEIGHT

        # Interaction state owned by the drawing surface, never serialized
        self.dragging = False
        self.active = False
        self.destroyed = False

    @property
    def raw_position(self) -> float:
        return self._raw_position

    @raw_position.setter
    def raw_position(self, value) -> None:
        self._raw_position = _coerce(value)

    @property
    def raw_width(self) -> float:
        return self._raw_width

    @raw_width.setter
    def raw_width(self, value) -> None:
        self._raw_width = _coerce(value)

    @property
    def position(self) -> int:
        return floor_int(self._raw_position * self.scale.display_scale)

    @position.setter
    def position(self, value) -> None:
        self._raw_position = _coerce(value) / self.scale.display_scale

    @property
    def width(self) -> int:
        return floor_int(self._raw_width * self.scale.display_scale)

    @width.setter
    def width(self, value) -> None:
        self._raw_width = _coerce(value) / self.scale.display_scale

    @property
    def location(self) -> dict:
        """Left and right edges in displayed pixels"""
        position = self.position
        return {"left": position, "right": position + self.width}

    def clone(self) -> 'Track':
        return Track(
            raw_position=self._raw_position,
            raw_width=self._raw_width,
            height=self.height,
            scale=self.scale,
        )

    def destroy(self) -> None:
        self.dragging = False
        self.active = False
        self.destroyed = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": _plain(self._raw_position),
            "w": _plain(self._raw_width),
            "h": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict, scale: Optional[ScaleContext] = None) -> 'Track':
        if not isinstance(data, dict):
            raise ParseError(f"Track: expected an object, got {type(data).__name__}")
        height = data.get("h")
        if height is not None:
            height = as_number(height, "Track", "h")
        return cls(
            id=data.get("id"),
            raw_position=as_number(data.get("x", 0), "Track", "x"),
            raw_width=as_number(data.get("w", 0), "Track", "w"),
            height=height,
            scale=scale,
        )

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text, scale: Optional[ScaleContext] = None) -> Optional['Track']:
        """Decode a track; malformed text yields None"""
        try:
            return cls.from_dict(loads(text, "Track"), scale=scale)
        except ParseError as e:
            logger.warning(f"Track parse failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"Track({self.id[:8]}, x={self._raw_position:g}, w={self._raw_width:g}, h={self.height})"
