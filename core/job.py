"""Composition job payload - What the render service receives for one export"""

from typing import Optional

from config import Settings, settings as default_settings
from core.compositor import FlattenResult
from models.errors import CompositionValidationError


def build_job_options(
    result: FlattenResult,
    timeline_subtitle_url: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> dict:
    """
    Assemble the render job for a flattened timeline.

    Blank placeholders are dropped; only content instructions are sent, in
    flatten order. Raises CompositionValidationError when the timeline did
    not validate.
    """
    if not result.valid:
        raise CompositionValidationError(result.diagnostics)

    settings = settings or default_settings
    options = settings.get_render_options()
    options["units"] = [instruction.to_dict() for instruction in result.content]
    if timeline_subtitle_url:
        options["subtitle"] = {"url": timeline_subtitle_url}
    return options
