"""Subtitle track - Timed captions burned in by the render service"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class SubtitleEntry:
    """One caption, in timeline milliseconds"""
    start_ms: int
    end_ms: int
    text: str

    def __post_init__(self):
        if self.start_ms < 0 or self.end_ms < self.start_ms:
            raise ValueError(f"Invalid subtitle span [{self.start_ms}, {self.end_ms}]")

    def to_dict(self) -> dict:
        return {"start_ms": self.start_ms, "end_ms": self.end_ms, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> 'SubtitleEntry':
        return cls(
            start_ms=int(data.get("start_ms", 0)),
            end_ms=int(data.get("end_ms", 0)),
            text=data.get("text", ""),
        )


@dataclass
class SubtitleTrack:
    """Captions for the whole project; only exported while visible"""
    visible: bool = True
    entries: List[SubtitleEntry] = field(default_factory=list)

    def add(self, start_ms: int, end_ms: int, text: str) -> SubtitleEntry:
        entry = SubtitleEntry(start_ms=start_ms, end_ms=end_ms, text=text)
        self.entries.append(entry)
        return entry

    def sorted_entries(self) -> List[SubtitleEntry]:
        return sorted(self.entries, key=lambda e: (e.start_ms, e.end_ms))

    @property
    def exportable(self) -> bool:
        return self.visible and len(self.entries) > 0

    def to_dict(self) -> dict:
        return {
            "visible": self.visible,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SubtitleTrack':
        data = data or {}
        return cls(
            visible=data.get("visible", True),
            entries=[SubtitleEntry.from_dict(e) for e in data.get("entries", [])],
        )
