"""
Render backends - Sinks for the ordered content instructions of one export

A backend is opened on a (temporary) output path, receives every content
instruction in flatten order together with the local file holding its
source bytes (and, for figures, the local file of the paired voice), and
is then either closed (output complete) or discarded (output removed).
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import aiofiles

from core.compositor import Instruction, InstructionKind
from utils.logger import logger


class RenderBackend(ABC):
    """Interface of the render/encode side of a composition"""

    @abstractmethod
    async def open(self, output_path: Path, options: dict) -> None:
        ...

    @abstractmethod
    async def submit(self, instruction: Instruction, source_path: Path, audio_path: Optional[Path] = None) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def discard(self) -> None:
        ...


class ManifestRenderBackend(RenderBackend):
    """
    Writes a JSON render manifest for an external encoder.

    The manifest holds the job options followed by one entry per submitted
    instruction, in submission order, each with the local source path
    (figures also get "audioSource"):

        {"options": {...}, "units": [{"kind": "main-video", ..., "source": "/tmp/a.mp4"}]}
    """

    def __init__(self):
        self.output_path: Optional[Path] = None
        self.options: dict = {}
        self.entries: List[dict] = []

    async def open(self, output_path: Path, options: dict) -> None:
        self.output_path = Path(output_path)
        self.options = {k: v for k, v in options.items() if k != "units"}
        self.entries = []
        logger.debug(f"Render manifest opened: {self.output_path}")

    async def submit(self, instruction: Instruction, source_path: Path, audio_path: Optional[Path] = None) -> None:
        if self.output_path is None:
            raise RuntimeError("Render backend is not open")
        kind = InstructionKind.parse(instruction.kind)
        if kind.is_blank:
            raise ValueError(f"Blank placeholder {kind.value} cannot be rendered")
        entry = instruction.to_dict()
        entry["source"] = str(source_path)
        if audio_path is not None:
            entry["audioSource"] = str(audio_path)
        self.entries.append(entry)

    async def close(self) -> None:
        if self.output_path is None:
            raise RuntimeError("Render backend is not open")
        manifest = {"options": self.options, "units": self.entries}
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.output_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(manifest, indent=2))
        logger.info(f"Render manifest written: {self.output_path} ({len(self.entries)} units)")

    async def discard(self) -> None:
        if self.output_path is not None and self.output_path.exists():
            self.output_path.unlink()
            logger.debug(f"Render manifest discarded: {self.output_path}")
        self.entries = []
