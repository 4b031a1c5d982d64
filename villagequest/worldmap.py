"""World-map overlay: walk the player marker to a location, fade, travel."""

from __future__ import annotations

import logging
import math
from typing import Callable

from villagequest.config import Config
from villagequest.content import MapDocument, MapLocation
from villagequest.motion import classify_direction


logger = logging.getLogger(__name__)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class WorldMap:
    def __init__(
        self,
        doc: MapDocument,
        current_scene_id: str,
        speed: float = Config.MARKER_SPEED,
        fade_ms: float = Config.FADE_DURATION_MS,
        on_moving_changed: Callable[[bool], None] | None = None,
        on_direction_changed: Callable[[str], None] | None = None,
    ):
        self.doc = doc
        self.speed = speed
        self.fade_ms = fade_ms
        self.on_moving_changed = on_moving_changed
        self.on_direction_changed = on_direction_changed

        self.marker: tuple[float, float] | None = None
        self.target: tuple[float, float] | None = None
        self.pending_scene: str | None = None
        self.fade_remaining = 0.0
        self.moving = False
        self.direction: str | None = None
        self.place_marker(current_scene_id)

    def place_marker(self, scene_id: str):
        loc = self.doc.location(scene_id)
        if loc is None:
            logger.warning("Scene %s has no location on the world map", scene_id)
            self.marker = None
            return
        self.marker = loc.position.as_tuple()

    @property
    def interaction_disabled(self) -> bool:
        return self.moving or self.fade_remaining > 0

    @property
    def fade(self) -> float:
        """0 = clear, 1 = fully black."""
        if self.fade_remaining <= 0 or self.fade_ms <= 0:
            return 0.0
        return 1.0 - self.fade_remaining / self.fade_ms

    @property
    def animation_type(self) -> str:
        if self.moving and self.direction:
            return self.direction
        return Config.IDLE_ANIMATION

    def location_at(self, x: float, y: float, size: float = 48) -> MapLocation | None:
        for loc in self.doc.interactions:
            lx, ly = loc.position.as_tuple()
            if lx <= x < lx + size and ly <= y < ly + size:
                return loc
        return None

    def click(self, location_id: str) -> bool:
        if self.interaction_disabled or self.marker is None:
            return False
        loc = self.doc.location(location_id)
        if loc is None:
            return False
        self.target = loc.position.as_tuple()
        self.pending_scene = loc.id
        return True

    def _set_moving(self, moving: bool):
        if moving != self.moving:
            self.moving = moving
            if self.on_moving_changed:
                self.on_moving_changed(moving)

    def _set_direction(self, direction: str):
        if direction != self.direction:
            self.direction = direction
            if self.on_direction_changed:
                self.on_direction_changed(direction)

    def tick(self, dt: float) -> str | None:
        """Advance by `dt` seconds. Returns a scene id once a travel completes."""
        if self.fade_remaining > 0:
            self.fade_remaining -= dt * 1000.0
            if self.fade_remaining <= 0:
                self.fade_remaining = 0.0
                scene, self.pending_scene = self.pending_scene, None
                return scene
            return None
        if self.target is None or self.marker is None:
            return None

        mx, my = self.marker
        tx, ty = self.target
        dx, dy = tx - mx, ty - my
        dist = math.hypot(dx, dy)
        if dist <= self.speed * dt:
            self.marker = self.target
            self.target = None
            self._set_moving(False)
            if self.pending_scene is not None:
                if self.fade_ms <= 0:
                    scene, self.pending_scene = self.pending_scene, None
                    return scene
                self.fade_remaining = self.fade_ms
            return None
        if dt <= 0:
            return None

        t = self.speed * dt / dist
        self.marker = (lerp(mx, tx, t), lerp(my, ty, t))
        self._set_direction(classify_direction(dx, dy))
        self._set_moving(True)
        return None
