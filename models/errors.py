"""Error taxonomy for the timeline model and composition"""

from typing import List, Optional


class LayerStackError(Exception):
    """Base class for every error raised by LayerStack"""


class ParseError(LayerStackError, ValueError):
    """Serialized entity could not be decoded"""


class UnitNotFoundError(LayerStackError, LookupError):
    """No unit with the given id exists in the layer"""

    def __init__(self, unit_id: str, layer_id: Optional[str] = None):
        self.unit_id = unit_id
        self.layer_id = layer_id
        where = f" in layer {layer_id}" if layer_id else ""
        super().__init__(f"Unit not found{where}: {unit_id}")


class LayerNotFoundError(LayerStackError, LookupError):
    """No layer with the given id exists in the timeline"""

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(f"Layer not found: {layer_id}")


class DanglingReferenceError(LayerStackError, LookupError):
    """A stored id points at an entity that no longer exists"""

    def __init__(self, field_name: str, target_id: str):
        self.field_name = field_name
        self.target_id = target_id
        super().__init__(f"{field_name} references missing layer {target_id}")


class LayerKindMismatchError(LayerStackError, ValueError):
    """Unit kind differs from the kind the layer was created with"""

    def __init__(self, layer_kind: str, unit_kind: str):
        self.layer_kind = layer_kind
        self.unit_kind = unit_kind
        super().__init__(f"Cannot add a {unit_kind} unit to a {layer_kind} layer")


class OwnershipError(LayerStackError):
    """Resource is already exclusively owned by another unit, or destroyed"""


class UnknownInstructionKindError(LayerStackError, ValueError):
    """Instruction kind is not one the render backend understands"""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown instruction kind: {kind!r}")


class CompositionError(LayerStackError):
    """Base class for failures while running a composition"""


class CompositionValidationError(CompositionError):
    """Flatten reported the timeline as not composable"""

    def __init__(self, diagnostics: List):
        self.diagnostics = list(diagnostics)
        messages = "; ".join(d.message for d in self.diagnostics) or "timeline is not composable"
        super().__init__(messages)


class AssetFetchError(CompositionError):
    """Source bytes for an instruction could not be fetched; safe to retry"""

    def __init__(self, url: str, index: int, reason: str):
        self.url = url
        self.index = index
        self.reason = reason
        super().__init__(f"Failed to fetch instruction #{index} source {url}: {reason}")


class RenderOutputError(CompositionError):
    """Render output could not be written; partial output was discarded"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write render output {path}: {reason}")
