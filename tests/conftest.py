#!/usr/bin/env python3
"""
Pytest Configuration and Shared Fixtures

Provides shared fixtures and configuration for all tests.
"""

import pytest
import tempfile
import sys
import os
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings
from models import (
    AudioResource,
    FigureResource,
    ImageResource,
    Layer,
    LayerUnit,
    ScaleContext,
    TextResource,
    Timeline,
    VideoResource,
)


# ============================================================================
# ASYNCIO CONFIGURATION
# ============================================================================
# Note: pytest-asyncio is configured with asyncio_mode = "auto" in pyproject.toml
# The event loop is automatically managed per-function by default


# ============================================================================
# TEMPORARY DIRECTORIES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir):
    """Settings rooted in a temporary storage directory"""
    settings = Settings(STORAGE_DIR=str(temp_dir / "storage"), MAX_CONCURRENT_FETCHES=2)
    settings.create_directories()
    return settings


# ============================================================================
# TIMELINE BUILDERS
# ============================================================================

@pytest.fixture
def scale():
    """One displayed pixel per millisecond"""
    return ScaleContext(display_scale=1, ruler_scale_time=1000, ruler_scale_width=1000)


@pytest.fixture
def make_unit(scale):
    """
    Factory for units placed at [start_ms, start_ms + duration_ms).

    Figures get a paired voice unless with_audio=False.
    """
    def _make(kind, start_ms, duration_ms, url=None, with_audio=True, name=None):
        url = url or f"https://cdn.example.com/{kind}-{start_ms}.bin"
        name = name or f"{kind}-{start_ms}"
        if kind == "video":
            resource = VideoResource(name=name, duration=duration_ms, url=url)
        elif kind == "audio":
            resource = AudioResource(name=name, duration=duration_ms, url=url)
        elif kind == "image":
            resource = ImageResource(name=name, url=url)
        elif kind == "text":
            resource = TextResource(name=name, text="Hello")
        elif kind == "figure":
            audio = AudioResource(name=f"{name}-voice", duration=duration_ms, url=f"{url}.mp3") if with_audio else None
            resource = FigureResource(name=name, url=url, audio=audio)
        else:
            raise ValueError(kind)

        unit = LayerUnit(resource, scale=scale)
        unit.track.raw_position = scale.ms_to_raw(start_ms)
        unit.track.raw_width = scale.ms_to_raw(duration_ms)
        return unit

    return _make


@pytest.fixture
def make_timeline(scale):
    """
    Factory for timelines.

    Layers are given front-to-back; main_video/main_audio are layers from
    that list to designate.
    """
    def _make(*layers, main_video=None, main_audio=None):
        timeline = Timeline(name="Test", scale=scale)
        for layer in layers:
            timeline.add_layer(layer)
        if main_video is not None:
            timeline.set_main_video_layer(main_video.id)
        if main_audio is not None:
            timeline.set_main_audio_layer(main_audio.id)
        return timeline

    return _make


@pytest.fixture
def gap_timeline(make_unit, make_timeline):
    """Main video at [0,1000) and [1500,2000), main audio at [0,2500)"""
    video = Layer.from_units(make_unit("video", 0, 1000), make_unit("video", 1500, 500))
    audio = Layer.from_units(make_unit("audio", 0, 2500))
    return make_timeline(video, audio, main_video=video, main_audio=audio)


# ============================================================================
# FASTAPI TEST CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def app():
    """FastAPI application under test"""
    from web_ui.api.main import app
    return app


@pytest.fixture
def client(app):
    """Synchronous test client (lifespan not started, nothing written to disk)"""
    from fastapi.testclient import TestClient
    return TestClient(app)
