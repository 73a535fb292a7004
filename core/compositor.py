"""
Compositor - Flattens a layered timeline into an ordered instruction stream

The render/encode service does not know about layers. It receives a flat,
ordered list of instructions and paints them in that order:

  1. Main audio track: gap-filled with blank-audio so it runs from 0 to
     the project's total duration without holes.
  2. Main video track: same treatment with blank-video.
  3. Overlay layers: every other layer, back of the stack first, so the
     frontmost layer is painted last. Overlays are anchored at their
     absolute timeline offset and are not gap-filled.

Example (total duration 2500ms, main video units at [0,1000) and [1500,2000)):

  main-video   [0, 1000)
  blank-video  [1000, 1500)
  main-video   [1500, 2000)
  blank-video  [2000, 2500)

Blank instructions only carry timing; the caller drops them before
handing content to the render service.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from models import Layer, LayerUnit, Timeline
from models.errors import DanglingReferenceError, UnknownInstructionKindError
from utils.logger import logger


class InstructionKind(str, Enum):
    """Every kind the render service accepts; anything else is a hard error"""
    MAIN_VIDEO = "main-video"
    MAIN_AUDIO = "main-audio"
    MAIN_IMAGE = "main-image"
    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    FIGURE_PICTURE = "figure-picture"
    BLANK_VIDEO = "blank-video"
    BLANK_AUDIO = "blank-audio"

    @property
    def is_blank(self) -> bool:
        return self in (InstructionKind.BLANK_VIDEO, InstructionKind.BLANK_AUDIO)

    @classmethod
    def parse(cls, value) -> 'InstructionKind':
        try:
            return cls(value)
        except ValueError:
            raise UnknownInstructionKindError(value) from None


# Resource kind -> instruction kind
MAIN_VIDEO_KINDS = {
    "video": InstructionKind.MAIN_VIDEO,
    "image": InstructionKind.MAIN_IMAGE,
}
OVERLAY_KINDS = {
    "audio": InstructionKind.AUDIO,
    "video": InstructionKind.VIDEO,
    "image": InstructionKind.IMAGE,
    "figure": InstructionKind.FIGURE_PICTURE,
}


@dataclass
class Instruction:
    """
    One render/encode step.

    timeline_offset_ms is the absolute position on the project timeline
    (the "anchor" of overlays). trim_start_ms/trim_end_ms select the part
    of the source media to use.
    """
    kind: InstructionKind
    timeline_offset_ms: int
    duration_ms: int
    url: Optional[str] = None
    trim_start_ms: Optional[int] = None
    trim_end_ms: Optional[int] = None
    scale: Optional[dict] = None
    position: Optional[dict] = None
    muted: Optional[bool] = None
    audio_url: Optional[str] = None  # Paired voice track of a figure
    unit_id: Optional[str] = None
    layer_id: Optional[str] = None

    def __post_init__(self):
        self.kind = InstructionKind.parse(self.kind)

    @property
    def is_blank(self) -> bool:
        return self.kind.is_blank

    @property
    def timeline_end_ms(self) -> int:
        return self.timeline_offset_ms + self.duration_ms

    def to_dict(self) -> dict:
        d = {
            "kind": self.kind.value,
            "timelineOffsetMs": self.timeline_offset_ms,
            "durationMs": self.duration_ms,
        }
        optional = {
            "url": self.url,
            "trimStartMs": self.trim_start_ms,
            "trimEndMs": self.trim_end_ms,
            "scale": self.scale,
            "position": self.position,
            "muted": self.muted,
            "audioUrl": self.audio_url,
            "unitId": self.unit_id,
            "layerId": self.layer_id,
        }
        d.update({k: v for k, v in optional.items() if v is not None})
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'Instruction':
        """Rebuild an instruction; unknown kinds raise UnknownInstructionKindError"""
        return cls(
            kind=InstructionKind.parse(data.get("kind")),
            timeline_offset_ms=int(data.get("timelineOffsetMs", 0)),
            duration_ms=int(data.get("durationMs", 0)),
            url=data.get("url"),
            trim_start_ms=data.get("trimStartMs"),
            trim_end_ms=data.get("trimEndMs"),
            scale=data.get("scale"),
            position=data.get("position"),
            muted=data.get("muted"),
            audio_url=data.get("audioUrl"),
            unit_id=data.get("unitId"),
            layer_id=data.get("layerId"),
        )


@dataclass
class Diagnostic:
    """A user-facing reason why the timeline cannot be composed"""
    code: str
    message: str
    unit_id: Optional[str] = None
    layer_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "unit_id": self.unit_id,
            "layer_id": self.layer_id,
        }


@dataclass
class FlattenResult:
    instructions: List[Instruction] = field(default_factory=list)
    valid: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)
    total_duration: int = 0

    @property
    def blanks(self) -> List[Instruction]:
        return partition(self.instructions)[0]

    @property
    def content(self) -> List[Instruction]:
        return partition(self.instructions)[1]


def partition(instructions: List[Instruction]) -> Tuple[List[Instruction], List[Instruction]]:
    """Split into (blank placeholders, content) keeping emission order in each"""
    blanks = [i for i in instructions if i.is_blank]
    content = [i for i in instructions if not i.is_blank]
    return blanks, content


def _placement(unit: LayerUnit) -> dict:
    return {"scale": unit.scene.scale, "position": unit.scene.position}


def _ordered_units(layer: Layer) -> List[LayerUnit]:
    # sorted() rather than Layer.sort(): flattening never mutates the model
    return sorted(layer.units, key=lambda unit: unit.duration.left)


class Compositor:
    """
    Computes the flat instruction stream for a Timeline.

    Algorithm:
    1. Resolve main layers and total duration
    2. Gap-fill the main audio track
    3. Gap-fill the main video track
    4. Emit overlay layers back-to-front
    5. Validate (figures need a voice, main video must not be empty,
       something must be emitted)

    The timeline is only read.
    """

    def __init__(self, timeline: Timeline):
        self.timeline = timeline
        self._instructions: List[Instruction] = []
        self._diagnostics: List[Diagnostic] = []
        self._total_duration: int = 0

    def build(self) -> FlattenResult:
        self._instructions = []
        self._diagnostics = []

        main_video = self._resolve_main("main_video_layer_id")
        main_audio = self._resolve_main("main_audio_layer_id")
        self._total_duration = max(
            Timeline.layer_end(main_video),
            Timeline.layer_end(main_audio),
        )

        if main_audio is not None:
            self._main_audio_pass(main_audio)
        if main_video is not None:
            self._main_video_pass(main_video)
        self._overlay_pass()

        self._validate_figures()
        if main_video is not None and len(main_video) == 0:
            self._diagnostics.append(Diagnostic(
                code="empty-main-video-layer",
                message="Add an image or video to the main video layer.",
                layer_id=main_video.id,
            ))
        if not self._instructions:
            self._diagnostics.append(Diagnostic(
                code="empty-composition",
                message="Nothing to compose: add an image or video background.",
            ))

        result = FlattenResult(
            instructions=list(self._instructions),
            valid=not self._diagnostics,
            diagnostics=list(self._diagnostics),
            total_duration=self._total_duration,
        )
        self._log_summary(result)
        return result

    def _resolve_main(self, field_name: str) -> Optional[Layer]:
        try:
            return self.timeline.resolve_main(field_name)
        except DanglingReferenceError as e:
            self._diagnostics.append(Diagnostic(
                code="dangling-main-layer",
                message=str(e),
                layer_id=getattr(self.timeline, field_name),
            ))
            return None

    def _blank(self, kind: InstructionKind, start: int, end: int) -> None:
        self._instructions.append(Instruction(
            kind=kind,
            timeline_offset_ms=start,
            duration_ms=end - start,
        ))

    def _main_audio_pass(self, layer: Layer) -> None:
        cursor = 0
        for unit in _ordered_units(layer):
            d = unit.duration
            if cursor < d.left:
                self._blank(InstructionKind.BLANK_AUDIO, cursor, d.left)
            self._instructions.append(Instruction(
                kind=InstructionKind.MAIN_AUDIO,
                timeline_offset_ms=d.left,
                duration_ms=d.duration,
                url=unit.resource.url,
                trim_start_ms=unit.trim_start,
                trim_end_ms=unit.trim_end,
                muted=unit.muted or layer.muted,
                unit_id=unit.id,
                layer_id=layer.id,
            ))
            cursor = max(cursor, d.right)
        if cursor < self._total_duration:
            self._blank(InstructionKind.BLANK_AUDIO, cursor, self._total_duration)

    def _main_video_pass(self, layer: Layer) -> None:
        cursor = 0
        for unit in _ordered_units(layer):
            kind = MAIN_VIDEO_KINDS.get(unit.type)
            if kind is None:
                # Span is left to the blank fill below
                self._diagnostics.append(Diagnostic(
                    code="unsupported-main-video-unit",
                    message=f"A {unit.type} cannot be used as main video background.",
                    unit_id=unit.id,
                    layer_id=layer.id,
                ))
                continue
            if not (layer.display and unit.display):
                continue

            d = unit.duration
            if cursor < d.left:
                self._blank(InstructionKind.BLANK_VIDEO, cursor, d.left)
            instruction = Instruction(
                kind=kind,
                timeline_offset_ms=d.left,
                duration_ms=d.duration,
                url=unit.resource.url,
                unit_id=unit.id,
                layer_id=layer.id,
                **_placement(unit),
            )
            if unit.resource.has_trim_window:
                instruction.trim_start_ms = unit.trim_start
                instruction.trim_end_ms = unit.trim_end
            if unit.audible:
                instruction.muted = unit.muted or layer.muted
            self._instructions.append(instruction)
            cursor = max(cursor, d.right)
        if cursor < self._total_duration:
            self._blank(InstructionKind.BLANK_VIDEO, cursor, self._total_duration)

    def _overlay_pass(self) -> None:
        for layer in reversed(self.timeline.overlay_layers()):
            kind = OVERLAY_KINDS.get(layer.kind)
            if kind is None:
                if layer.kind is not None:
                    logger.debug(f"Overlay layer {layer.id[:8]} ({layer.kind}) is not rendered as instructions")
                continue
            if not layer.display and layer.visible:
                logger.debug(f"Skipping hidden overlay layer {layer.id[:8]}")
                continue

            for unit in layer.units:
                if unit.visible and not unit.display:
                    continue
                if kind is InstructionKind.FIGURE_PICTURE and unit.resource.audio is None:
                    # Reported by _validate_figures
                    continue
                self._instructions.append(self._overlay_instruction(kind, layer, unit))

    def _overlay_instruction(self, kind: InstructionKind, layer: Layer, unit: LayerUnit) -> Instruction:
        d = unit.duration
        instruction = Instruction(
            kind=kind,
            timeline_offset_ms=d.left,
            duration_ms=d.duration,
            url=unit.resource.url,
            unit_id=unit.id,
            layer_id=layer.id,
        )
        if unit.resource.has_trim_window:
            instruction.trim_start_ms = unit.trim_start
            instruction.trim_end_ms = unit.trim_end
        if unit.visible:
            instruction.scale = unit.scene.scale
            instruction.position = unit.scene.position
        if unit.audible:
            instruction.muted = unit.muted or layer.muted
        if kind is InstructionKind.FIGURE_PICTURE:
            instruction.audio_url = unit.resource.audio.url
        return instruction

    def _validate_figures(self) -> None:
        """Every figure needs a voice; report all of them, not just the first"""
        for layer in self.timeline.layers:
            for unit in layer.units:
                if unit.type == "figure" and unit.resource.audio is None:
                    self._diagnostics.append(Diagnostic(
                        code="figure-missing-audio",
                        message=f"Add a voice to the figure '{unit.resource.name}'.",
                        unit_id=unit.id,
                        layer_id=layer.id,
                    ))

    def _log_summary(self, result: FlattenResult) -> None:
        blanks, content = partition(result.instructions)
        logger.info(
            f"Flattened timeline {self.timeline.id[:8]}: "
            f"total={result.total_duration}ms, content={len(content)}, "
            f"blanks={len(blanks)}, valid={result.valid}"
        )
        for diagnostic in result.diagnostics:
            logger.warning(f"  [{diagnostic.code}] {diagnostic.message}")


def flatten(timeline: Timeline) -> FlattenResult:
    """Flatten *timeline* into render instructions; see Compositor"""
    return Compositor(timeline).build()
