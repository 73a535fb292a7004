"""Resource models - Descriptors of the media assets placed on the timeline"""

from dataclasses import dataclass, field
from typing import ClassVar, Dict, Optional, Type
from uuid import uuid4

from .codec import dumps, loads, nested, as_number
from .errors import OwnershipError, ParseError
from utils.logger import logger


@dataclass
class Resource:
    """
    External media descriptor.

    Urls are opaque strings resolved later by the render/encode side.
    A resource is exclusively owned by one LayerUnit at a time; clones
    get their own id and no owner.
    """
    TYPE: ClassVar[str] = "generic"

    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = "unnamed"
    size: int = 0
    duration: int = 0  # Native duration in milliseconds
    url: str = ""
    cover: Optional[str] = None

    # Ownership bookkeeping, not serialized
    owner_id: Optional[str] = field(default=None, compare=False, repr=False)
    destroyed: bool = field(default=False, compare=False, repr=False)

    @property
    def type(self) -> str:
        return self.TYPE

    @property
    def has_trim_window(self) -> bool:
        """Only time-based media can be trimmed"""
        return self.TYPE in ("video", "audio")

    def attach(self, owner_id: str) -> None:
        """Claim exclusive ownership for a unit"""
        if self.destroyed:
            raise OwnershipError(f"Resource {self.id} was destroyed")
        if self.owner_id is not None and self.owner_id != owner_id:
            raise OwnershipError(
                f"Resource {self.id} is already owned by unit {self.owner_id}"
            )
        self.owner_id = owner_id

    def release(self, owner_id: str) -> None:
        if self.owner_id == owner_id:
            self.owner_id = None

    def clone(self) -> 'Resource':
        data = self.to_dict()
        data.pop("id")
        return type(self)._from_fields(data)

    def destroy(self) -> None:
        self.owner_id = None
        self.destroyed = True

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "duration": self.duration,
            "url": self.url,
            "cover": self.cover,
        }

    @classmethod
    def _from_fields(cls, data: dict) -> 'Resource':
        entity = f"Resource[{cls.TYPE}]"
        return cls(
            id=data.get("id") or str(uuid4()),
            name=data.get("name") or "unnamed",
            size=int(as_number(data.get("size") or 0, entity, "size")),
            duration=int(as_number(data.get("duration") or 0, entity, "duration")),
            url=data.get("url") or "",
            cover=data.get("cover"),
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'Resource':
        """Dispatch to the correct subclass based on *type*"""
        if not isinstance(data, dict):
            raise ParseError(f"Resource: expected an object, got {type(data).__name__}")
        kind = data.get("type")
        target_cls = RESOURCE_TYPES.get(kind)
        if target_cls is None:
            raise ParseError(f"Resource: unknown type {kind!r}")
        return target_cls._from_fields(data)

    @classmethod
    def from_import(cls, kind: str, data: dict) -> 'Resource':
        """Build a resource from an import/upload record {name, size, duration, url, cover?}"""
        return cls.from_dict({**data, "type": kind})

    def stringify(self) -> str:
        return dumps(self.to_dict())

    @classmethod
    def parse(cls, text) -> Optional['Resource']:
        try:
            return cls.from_dict(loads(text, "Resource"))
        except ParseError as e:
            logger.warning(f"Resource parse failed: {e}")
            return None


@dataclass
class VideoResource(Resource):
    TYPE: ClassVar[str] = "video"


@dataclass
class AudioResource(Resource):
    TYPE: ClassVar[str] = "audio"


@dataclass
class ImageResource(Resource):
    """Still image; has no native duration"""
    TYPE: ClassVar[str] = "image"

    def __post_init__(self):
        self.duration = 0


@dataclass
class TextResource(Resource):
    """Text overlay; has no native duration"""
    TYPE: ClassVar[str] = "text"
    text: str = ""

    def __post_init__(self):
        self.duration = 0

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["text"] = self.text
        return d

    @classmethod
    def _from_fields(cls, data: dict) -> 'TextResource':
        resource = super()._from_fields(data)
        resource.text = data.get("text") or ""
        return resource


@dataclass
class FigureResource(Resource):
    """
    Talking avatar picture.

    A figure only renders together with its paired voice track; a figure
    without one cannot be composed.
    """
    TYPE: ClassVar[str] = "figure"
    audio: Optional[AudioResource] = None

    def clone(self) -> 'FigureResource':
        resource = super().clone()
        resource.audio = self.audio.clone() if self.audio else None
        return resource

    def destroy(self) -> None:
        if self.audio:
            self.audio.destroy()
        super().destroy()

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["audio"] = self.audio.to_dict() if self.audio else None
        return d

    @classmethod
    def _from_fields(cls, data: dict) -> 'FigureResource':
        resource = super()._from_fields(data)
        audio = nested(data, "audio", "Resource[figure]")
        if audio is not None:
            audio = AudioResource._from_fields(audio)
        resource.audio = audio
        return resource


RESOURCE_TYPES: Dict[str, Type[Resource]] = {
    "video": VideoResource,
    "audio": AudioResource,
    "image": ImageResource,
    "figure": FigureResource,
    "text": TextResource,
}
