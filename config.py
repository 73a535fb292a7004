"""Configuration management using Pydantic settings"""

import platform
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional


def get_default_storage_path() -> str:
    """
    Get OS-specific default storage path for LayerStack.

    Returns:
        - macOS: ~/Library/Application Support/LayerStack
        - Linux: ~/.local/share/layerstack
        - Windows: %APPDATA%/LayerStack
    """
    system = platform.system()
    home = Path.home()

    if system == "Darwin":  # macOS
        return str(home / "Library" / "Application Support" / "LayerStack")
    elif system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return str(Path(appdata) / "LayerStack")
        return str(home / "AppData" / "Roaming" / "LayerStack")
    else:  # Linux and others
        # Follow XDG Base Directory specification
        xdg_data = os.environ.get("XDG_DATA_HOME")
        if xdg_data:
            return str(Path(xdg_data) / "layerstack")
        return str(home / ".local" / "share" / "layerstack")


class Settings(BaseSettings):
    """Application settings"""

    # Storage paths
    STORAGE_DIR: str = get_default_storage_path()

    # Derived paths (will be computed from STORAGE_DIR)
    PROJECTS_DIR: Optional[str] = None
    TEMP_DIR: Optional[str] = None
    OUTPUT_DIR: Optional[str] = None

    # Timeline scale defaults
    # DISPLAY_SCALE: zoom between raw and displayed track pixels
    # RULER_SCALE_TIME / RULER_SCALE_WIDTH: one ruler tick is TIME ms wide and WIDTH px long
    DISPLAY_SCALE: float = 1.0
    RULER_SCALE_TIME: float = 1000.0
    RULER_SCALE_WIDTH: float = 1000.0
    DEFAULT_TRACK_HEIGHT: int = 50

    # Composition job options (handed to the render/encode service)
    AUDIO_SAMPLING_RATE: int = 44100
    AUDIO_BITRATE: str = "192k"
    VIDEO_WIDTH: int = 1920
    VIDEO_HEIGHT: int = 1080
    VIDEO_CODEC: str = "libx264"
    VIDEO_FPS: int = 25

    # Asset fetching
    # Relative resource urls are resolved against this prefix
    RESOURCE_BASE_URL: str = ""
    MAX_CONCURRENT_FETCHES: int = 4
    FETCH_TIMEOUT: float = 60.0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def model_post_init(self, __context) -> None:
        """Initialize derived paths after model creation"""
        self._update_derived_paths()

    def _update_derived_paths(self) -> None:
        """Update all derived paths based on STORAGE_DIR"""
        storage = Path(self.STORAGE_DIR)

        # Only set if not explicitly configured via env
        if self.PROJECTS_DIR is None:
            object.__setattr__(self, 'PROJECTS_DIR', str(storage / "projects"))
        if self.TEMP_DIR is None:
            object.__setattr__(self, 'TEMP_DIR', str(storage / "temp"))
        if self.OUTPUT_DIR is None:
            object.__setattr__(self, 'OUTPUT_DIR', str(storage / "output"))

    def create_directories(self):
        """Create necessary directories"""
        for dir_path in [
            self.STORAGE_DIR,
            self.PROJECTS_DIR,
            self.TEMP_DIR,
            self.OUTPUT_DIR,
        ]:
            if dir_path:
                Path(dir_path).mkdir(parents=True, exist_ok=True)

    def get_render_options(self) -> dict:
        """Render options block of a composition job"""
        return {
            "samplingRate": self.AUDIO_SAMPLING_RATE,
            "codeRate": self.AUDIO_BITRATE,
            "width": self.VIDEO_WIDTH,
            "height": self.VIDEO_HEIGHT,
            "codec": self.VIDEO_CODEC,
            "fps": self.VIDEO_FPS,
        }


# Global settings instance
settings = Settings()
