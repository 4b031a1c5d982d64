from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os

from dotenv import load_dotenv


load_dotenv()

logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

class Config:
    # Fixed canvas; all scene coordinates are pixels in this space.
    GAME_WIDTH = 1280
    GAME_HEIGHT = 720
    FPS = 60

    # Coarse grid resolution shared by grid construction and coordinate transforms.
    CELL_SIZE = 10
    # A cell is walkable iff transparent pixels > total * WALKABLE_MAJORITY.
    WALKABLE_MAJORITY = 0.5
    MAX_PATH_NODES = 20000

    PLAYER_SPEED = 180.0  # px / second
    SNAP_THRESHOLD = 2.0
    INVENTORY_SIZE = 256

    IDLE_ANIMATION = "system_idle"
    DIRECTION_PREFIX = "walk_"

    MARKER_SPEED = (400 + 200 / 3) / 2
    FADE_DURATION_MS = 500

    CONTENT_ROOT = "content"
    DEFAULT_SCENE = "village"
    DEFAULT_STATE_TAG = "village_start"
    HTTP_TIMEOUT = 10.0

    DIALOG_WIDTH = 720
    INVENTORY_BAR_HEIGHT = 72
    INVENTORY_ICON_SIZE = 40


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default


@dataclass(frozen=True)
class Settings:
    content_root: str | None = field(default_factory=lambda: os.getenv("VILLAGEQUEST_CONTENT_ROOT"))
    start_scene: str | None = field(default_factory=lambda: os.getenv("VILLAGEQUEST_START_SCENE"))
    start_state: str | None = field(default_factory=lambda: os.getenv("VILLAGEQUEST_START_STATE"))
    log_level: str = field(default_factory=lambda: os.getenv("VILLAGEQUEST_LOG_LEVEL", "INFO"))
    http_timeout: float = field(default_factory=lambda: _env_float("VILLAGEQUEST_HTTP_TIMEOUT", Config.HTTP_TIMEOUT))

    def apply(self, config: Config) -> Config:
        """Copy any environment overrides onto a Config instance."""
        if self.content_root:
            config.CONTENT_ROOT = self.content_root
        if self.start_scene:
            config.DEFAULT_SCENE = self.start_scene
        if self.start_state:
            config.DEFAULT_STATE_TAG = self.start_state
        config.HTTP_TIMEOUT = self.http_timeout
        return config
