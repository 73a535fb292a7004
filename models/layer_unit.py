"""LayerUnit model - One placed instance of a resource on the timeline"""

from typing import NamedTuple, Optional
from uuid import uuid4

from .codec import dumps, loads, nested, as_number
from .errors import ParseError
from .resource import Resource
from .scale import ScaleContext
from .scene import Scene
from .track import Track
from utils.logger import logger

# Capability tables by resource kind
VISIBLE_TYPES = ("image", "video", "figure", "text")
AUDIBLE_TYPES = ("figure", "audio", "video")
RESIZABLE_TYPES = ("image", "video", "text")


class UnitDuration(NamedTuple):
    """
    Timeline-domain view of a unit, in milliseconds.

    start is always 0 and end == duration; left/right are the unit's edges
    on the absolute timeline. The resource-domain trim window lives on the
    unit itself and is never mixed into these numbers.
    """
    start: int
    end: int
    duration: int
    left: int
    right: int

    def to_dict(self) -> dict:
        return self._asdict()


class LayerUnit:
    """
    A resource placed on a track with a trim window.

    Owns exactly one Resource, one Track and one Scene; destroying the unit
    destroys all three. trim_start/trim_end are milliseconds into the
    resource's native duration, not timeline positions.
    """

    def __init__(
        self,
        resource: Resource,
        track: Optional[Track] = None,
        scene: Optional[Scene] = None,
        id: Optional[str] = None,
        scale: Optional[ScaleContext] = None,
    ):
        self.id = id or str(uuid4())

        resource.attach(self.id)
        self.resource = resource

        self.trim_start = 0
        self.trim_end = resource.duration if resource.has_trim_window else 0

        self.scene = scene or Scene()

        if track is None:
            track = Track(scale=scale)
            track.raw_width = track.scale.ms_to_raw(resource.duration)
        self.track = track

        self.display = True
        self.muted = False
        self.destroyed = False

    @classmethod
    def create(
        cls,
        resource: Resource,
        track: Optional[Track] = None,
        scene: Optional[Scene] = None,
        scale: Optional[ScaleContext] = None,
    ) -> 'LayerUnit':
        return cls(resource, track=track, scene=scene, scale=scale)

    @property
    def scale(self) -> ScaleContext:
        return self.track.scale

    # -- Trim window -------------------------------------------------------

    def set_trim(self, start: int, end: int) -> None:
        """Set the trim window, enforcing 0 <= start <= end <= resource.duration"""
        if self.resource.has_trim_window:
            if not 0 <= start <= end <= self.resource.duration:
                raise ValueError(
                    f"Trim window [{start}, {end}] outside [0, {self.resource.duration}]"
                )
        elif start != 0 or end != 0:
            raise ValueError(f"{self.type} resources have no trim window")
        self.trim_start = int(start)
        self.trim_end = int(end)

    @property
    def trimmed_duration(self) -> int:
        return self.trim_end - self.trim_start

    # -- Editing -----------------------------------------------------------

    def split(self, ratio: float) -> 'LayerUnit':
        """
        Cut the unit at ratio of its length.

        The receiver keeps the first part; the returned unit holds the
        rest and starts exactly at the receiver's new right edge. Widths
        are set on the unzoomed axis, so the display zoom never changes
        where the cut lands. Flooring the cut may leave the two parts up
        to 1ms short of the original.
        """
        if not 0 <= ratio <= 1:
            raise ValueError(f"Split ratio must be within [0, 1], got {ratio}")
        scale = self.scale

        if self.resource.has_trim_window:
            start = self.trim_start
            end = self.trim_end
            total = end - start
            cut = int(total * ratio)
            self.trim_end = start + cut
        else:
            # Stills have no trim window; split their time on the timeline instead
            total = self.duration.duration
            cut = int(total * ratio)

        self.track.raw_width = scale.ms_to_raw(cut)

        unit = self.clone()
        if self.resource.has_trim_window:
            unit.trim_start = start + cut
            unit.trim_end = end
        unit.track.raw_position = self.track.raw_position + self.track.raw_width
        unit.track.raw_width = scale.ms_to_raw(total - cut)

        logger.debug(f"Split unit {self.id[:8]} at {ratio:.3f} -> {unit.id[:8]}")
        return unit

    def clone(self) -> 'LayerUnit':
        """
        Copy the unit with a deep-cloned resource and a fresh scene.

        Visual placement is not copied and the clone's track starts at 0;
        the caller positions it.
        """
        track = Track(height=self.track.height, scale=self.scale)
        unit = LayerUnit(self.resource.clone(), track=track, scene=self.scene.clone())
        unit.trim_start = self.trim_start
        unit.trim_end = self.trim_end
        if self.resource.has_trim_window:
            track.raw_width = self.scale.ms_to_raw(unit.trimmed_duration)
        else:
            track.raw_width = self.track.raw_width
        unit.display = self.display
        unit.muted = self.muted
        return unit

    def destroy(self) -> None:
        self.resource.destroy()
        self.track.destroy()
        self.scene.destroy()
        self.destroyed = True

    # -- Derived views -----------------------------------------------------

    @property
    def duration(self) -> UnitDuration:
        # Read from the unzoomed values so display flooring never shifts an edge
        scale = self.scale
        duration = scale.raw_to_ms(self.track.raw_width)
        left = scale.raw_to_ms(self.track.raw_position)
        return UnitDuration(start=0, end=duration, duration=duration, left=left, right=left + duration)

    @property
    def max_track_width(self) -> int:
        """Widest the track may be stretched; only video is bounded by its trim window"""
        if self.type == "video":
            return int(self.trimmed_duration * self.scale.millisecond_width)
        return 0

    @property
    def view(self) -> str:
        return self.resource.name if self.resource else "<no resource bound>"

    @property
    def type(self) -> str:
        return self.resource.type

    @property
    def visible(self) -> bool:
        return self.type in VISIBLE_TYPES

    @property
    def audible(self) -> bool:
        return self.type in AUDIBLE_TYPES

    @property
    def resizable(self) -> bool:
        return self.type in RESIZABLE_TYPES

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resource": self.resource.to_dict(),
            "scene": self.scene.to_dict(),
            "track": self.track.to_dict(),
            "trim_start": self.trim_start,
            "trim_end": self.trim_end,
            "display": self.display,
            "muted": self.muted,
        }

    @classmethod
    def from_dict(cls, data: dict, scale: Optional[ScaleContext] = None) -> 'LayerUnit':
        if not isinstance(data, dict):
            raise ParseError(f"LayerUnit: expected an object, got {type(data).__name__}")
        resource_data = nested(data, "resource", "LayerUnit")
        if resource_data is None:
            raise ParseError("LayerUnit: missing field 'resource'")
        resource = Resource.from_dict(resource_data)

        scene_data = nested(data, "scene", "LayerUnit")
        track_data = nested(data, "track", "LayerUnit")
        unit = cls(
            resource,
            track=Track.from_dict(track_data, scale=scale) if track_data is not None else None,
            scene=Scene.from_dict(scene_data) if scene_data is not None else None,
            id=data.get("id"),
            scale=scale,
        )

        trim_start = as_number(data.get("trim_start", 0), "LayerUnit", "trim_start")
        trim_end = as_number(data.get("trim_end", unit.trim_end), "LayerUnit", "trim_end")
        try:
            unit.set_trim(trim_start, trim_end)
        except ValueError as e:
            raise ParseError(f"LayerUnit: {e}") from e

        unit.display = bool(data.get("display", True))
        unit.muted = bool(data.get("muted", False))
        return unit

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text, scale: Optional[ScaleContext] = None) -> Optional['LayerUnit']:
        """Decode a unit; malformed text yields None instead of raising"""
        try:
            return cls.from_dict(loads(text, "LayerUnit"), scale=scale)
        except ParseError as e:
            logger.warning(f"LayerUnit parse failed: {e}")
            return None

    def __repr__(self) -> str:
        d = self.duration
        return (
            f"LayerUnit({self.id[:8]}, {self.type}, "
            f"timeline={d.left}-{d.right}ms, trim={self.trim_start}-{self.trim_end}ms)"
        )
