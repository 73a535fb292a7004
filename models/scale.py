"""Scale context - display zoom and time ruler shared by the tracks of one timeline"""

import math
from dataclasses import dataclass
from typing import Optional

from config import settings

# Absorbs float error in products like 1/3 * 3 before flooring
FLOOR_TOLERANCE = 1e-6


def floor_int(value: float) -> int:
    """Floor to a whole number of pixels or milliseconds"""
    return int(math.floor(value + FLOOR_TOLERANCE))


def _positive(name: str, value) -> float:
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a finite positive number, got {value}")
    return value


@dataclass
class ScaleContext:
    """
    Conversion factors between raw pixels, displayed pixels and milliseconds.

    Every Track holds a reference to one of these instead of reading a
    global store, so a timeline and all of its tracks agree on the same
    zoom level. Mutating the context (e.g. zooming) is visible to every
    track bound to it.

    - display_scale: displayed px = raw px * display_scale
    - ruler_scale_time / ruler_scale_width: one ruler tick spans
      ruler_scale_time milliseconds and ruler_scale_width raw pixels
    """
    display_scale: float = settings.DISPLAY_SCALE
    ruler_scale_time: float = settings.RULER_SCALE_TIME
    ruler_scale_width: float = settings.RULER_SCALE_WIDTH

    def __post_init__(self):
        self.display_scale = _positive("display_scale", self.display_scale)
        self.ruler_scale_time = _positive("ruler_scale_time", self.ruler_scale_time)
        self.ruler_scale_width = _positive("ruler_scale_width", self.ruler_scale_width)

    @property
    def millisecond_width(self) -> float:
        """Displayed pixels per millisecond at the current zoom"""
        return self.ruler_scale_width / self.ruler_scale_time * self.display_scale

    def zoom(self, display_scale: float) -> None:
        """Change the display zoom for every track bound to this context"""
        self.display_scale = _positive("display_scale", display_scale)

    def ms_to_pixels(self, ms: float) -> float:
        return ms * self.millisecond_width

    def pixels_to_ms(self, pixels: float) -> int:
        # Floor keeps repeated splits from creating 1ms overlaps
        return floor_int(pixels / self.millisecond_width)

    def ms_to_raw(self, ms: float) -> float:
        """Unzoomed track pixels spanning *ms*"""
        return ms * self.ruler_scale_width / self.ruler_scale_time

    def raw_to_ms(self, raw: float) -> int:
        return floor_int(raw * self.ruler_scale_time / self.ruler_scale_width)

    def to_dict(self) -> dict:
        return {
            "display_scale": self.display_scale,
            "ruler_scale_time": self.ruler_scale_time,
            "ruler_scale_width": self.ruler_scale_width,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'ScaleContext':
        data = data or {}
        return cls(
            display_scale=data.get("display_scale", settings.DISPLAY_SCALE),
            ruler_scale_time=data.get("ruler_scale_time", settings.RULER_SCALE_TIME),
            ruler_scale_width=data.get("ruler_scale_width", settings.RULER_SCALE_WIDTH),
        )
