"""Timeline API routes - flatten, duration and composition job payloads"""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from utils.logger import logger
from models import Timeline
from models.errors import ParseError
from core.compositor import FlattenResult, flatten
from core.job import build_job_options
from web_ui.api.schemas.timeline_schemas import (
    DiagnosticSchema,
    DurationResponse,
    FlattenResponse,
    JobRequest,
    TimelineRequest,
)

router = APIRouter()


def _flatten_request(data: Dict[str, Any]) -> FlattenResult:
    """Decode and flatten a timeline, mapping malformed input to 422"""
    try:
        timeline = Timeline.from_dict(data)
    except ParseError as e:
        logger.warning(f"Rejected malformed timeline: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    return flatten(timeline)


@router.post("/flatten", response_model=FlattenResponse)
async def flatten_timeline(request: TimelineRequest):
    """Flatten a timeline into render instructions"""
    result = _flatten_request(request.timeline)
    return FlattenResponse(
        valid=result.valid,
        diagnostics=[DiagnosticSchema(**d.to_dict()) for d in result.diagnostics],
        total_duration_ms=result.total_duration,
        instructions=[i.to_dict() for i in result.content],
        blanks=[i.to_dict() for i in result.blanks],
    )


@router.post("/duration", response_model=DurationResponse)
async def timeline_duration(request: TimelineRequest):
    """Total project duration in milliseconds"""
    result = _flatten_request(request.timeline)
    return DurationResponse(total_duration_ms=result.total_duration)


@router.post("/job")
async def composition_job(request: JobRequest):
    """Build the render job payload; 400 with diagnostics when not composable"""
    result = _flatten_request(request.timeline)
    if not result.valid:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Timeline cannot be composed",
                "diagnostics": [d.to_dict() for d in result.diagnostics],
            },
        )
    return build_job_options(result, request.subtitle_url)
