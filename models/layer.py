"""Layer model - Ordered, non-overlapping run of same-kind units"""

from typing import Iterator, List, Optional
from uuid import uuid4

from .codec import dumps, loads
from .errors import LayerKindMismatchError, ParseError, UnitNotFoundError
from .layer_unit import AUDIBLE_TYPES, VISIBLE_TYPES, LayerUnit
from .scale import ScaleContext
from utils.logger import logger


class Layer:
    """
    One horizontal lane of the timeline.

    The layer's kind is fixed once: by the explicit kind argument, by the
    first unit it is built with, or by the first unit added to an empty
    layer. Units of any other kind are rejected.

    Units are kept in insertion order until sort() is called; sort()
    orders them by track position and pushes overlapping units right.
    """

    def __init__(self, kind: Optional[str] = None, id: Optional[str] = None):
        self.id = id or str(uuid4())
        self.kind = kind
        self.units: List[LayerUnit] = []
        self.display = True
        self.muted = False

    @classmethod
    def from_units(cls, *units: LayerUnit, kind: Optional[str] = None) -> 'Layer':
        """Build a layer holding *units* verbatim (no ordering or overlap fix-up)"""
        layer = cls(kind=kind)
        for unit in units:
            layer.add(unit)
        return layer

    def add(self, unit: LayerUnit) -> LayerUnit:
        if self.kind is None:
            self.kind = unit.type
        elif unit.type != self.kind:
            raise LayerKindMismatchError(self.kind, unit.type)
        self.units.append(unit)
        return unit

    def get(self, index: int) -> LayerUnit:
        return self.units[index]

    def find(self, unit_id: str) -> Optional[LayerUnit]:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def remove(self, unit_id: str) -> None:
        """Destroy and remove a unit; raises UnitNotFoundError when absent"""
        for index, unit in enumerate(self.units):
            if unit.id == unit_id:
                unit.destroy()
                del self.units[index]
                return
        raise UnitNotFoundError(unit_id, self.id)

    def show(self) -> None:
        self.display = True

    def hide(self) -> None:
        self.display = False

    def mute(self) -> None:
        self.muted = True

    def unmute(self) -> None:
        self.muted = False

    def sort(self) -> None:
        """
        Order units by position and remove overlaps.

        Single left-to-right pass: a unit starting before the previous
        unit's end is moved to start exactly there. Units only ever move
        right.
        """
        self.units.sort(key=lambda unit: unit.track.raw_position)
        for current, following in zip(self.units, self.units[1:]):
            end = current.track.raw_position + current.track.raw_width
            if end > following.track.raw_position:
                logger.debug(
                    f"Layer {self.id[:8]}: pushing unit {following.id[:8]} "
                    f"from {following.track.raw_position} to {end}"
                )
                following.track.raw_position = end

    def is_sorted(self) -> bool:
        """True when units are position-ascending and no unit overlaps the next"""
        return all(
            current.duration.right <= following.duration.left
            for current, following in zip(self.units, self.units[1:])
        )

    def clone(self) -> 'Layer':
        """Copy the layer; units keep their positions"""
        layer = Layer(kind=self.kind)
        for unit in self.units:
            copy = layer.add(unit.clone())
            copy.track.raw_position = unit.track.raw_position
        layer.display = self.display
        layer.muted = self.muted
        return layer

    def destroy(self) -> None:
        for unit in self.units:
            unit.destroy()
        self.units = []

    @property
    def type(self) -> Optional[str]:
        return self.kind

    @property
    def visible(self) -> Optional[bool]:
        return self.kind in VISIBLE_TYPES if self.kind else None

    @property
    def audible(self) -> Optional[bool]:
        return self.kind in AUDIBLE_TYPES if self.kind else None

    @property
    def height(self) -> Optional[int]:
        return self.units[0].track.height if self.units else None

    @property
    def length(self) -> int:
        return len(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def __iter__(self) -> Iterator[LayerUnit]:
        return iter(self.units)

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "units": [unit.to_dict() for unit in self.units],
            "display": self.display,
            "muted": self.muted,
        }

    @classmethod
    def from_dict(cls, data: dict, scale: Optional[ScaleContext] = None) -> 'Layer':
        if not isinstance(data, dict):
            raise ParseError(f"Layer: expected an object, got {type(data).__name__}")
        units_data = data.get("units") or []
        if not isinstance(units_data, list):
            raise ParseError("Layer: field 'units' must be a list")

        layer = cls(kind=data.get("kind"), id=data.get("id"))
        for index, unit_data in enumerate(units_data):
            unit = LayerUnit.from_dict(loads(unit_data, f"Layer.units[{index}]"), scale=scale)
            try:
                layer.add(unit)
            except LayerKindMismatchError as e:
                raise ParseError(f"Layer: {e}") from e
        layer.display = bool(data.get("display", True))
        layer.muted = bool(data.get("muted", False))
        return layer

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text, scale: Optional[ScaleContext] = None) -> Optional['Layer']:
        """Decode a layer; malformed text yields None instead of raising"""
        try:
            return cls.from_dict(loads(text, "Layer"), scale=scale)
        except ParseError as e:
            logger.warning(f"Layer parse failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"Layer({self.id[:8]}, kind={self.kind}, units={len(self.units)})"
