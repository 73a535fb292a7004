"""Timeline-related API schemas"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class TimelineRequest(BaseModel):
    """A serialized timeline (as produced by Timeline.to_dict)"""
    timeline: Dict[str, Any]


class JobRequest(TimelineRequest):
    """Request to build a composition job"""
    subtitle_url: Optional[str] = None  # Uploaded SRT, when captions are exported


class DiagnosticSchema(BaseModel):
    """Why a timeline cannot be composed"""
    code: str
    message: str
    unit_id: Optional[str] = None
    layer_id: Optional[str] = None


class FlattenResponse(BaseModel):
    """Flattened instruction stream"""
    valid: bool
    diagnostics: List[DiagnosticSchema] = Field(default_factory=list)
    total_duration_ms: int
    instructions: List[Dict[str, Any]] = Field(default_factory=list)  # Content, in paint order
    blanks: List[Dict[str, Any]] = Field(default_factory=list)  # Timing placeholders


class DurationResponse(BaseModel):
    total_duration_ms: int
