"""Frame-by-frame movement of the player avatar along a waypoint path."""

from __future__ import annotations

from collections import deque
import logging
import math
from typing import Callable

from villagequest.config import Config
from villagequest.navgrid import WalkabilityGrid


logger = logging.getLogger(__name__)

# Tick results
IDLE = "idle"
MOVING = "moving"
ARRIVED = "arrived"
BLOCKED = "blocked"

# Clockwise from east; screen y grows downward.
COMPASS = ["e", "se", "s", "sw", "w", "nw", "n", "ne"]


def classify_direction(dx: float, dy: float, prefix: str = Config.DIRECTION_PREFIX) -> str:
    """Eight-way bucket for a movement vector, boundaries at 22.5 + k*45 degrees."""
    angle = math.degrees(math.atan2(dy, dx))
    idx = int(math.floor((angle + 22.5) / 45.0)) % 8
    return prefix + COMPASS[idx]


class AgentMotionController:
    def __init__(
        self,
        grid: WalkabilityGrid,
        position: tuple[float, float],
        speed: float = Config.PLAYER_SPEED,
        snap_threshold: float = Config.SNAP_THRESHOLD,
        on_moving_changed: Callable[[bool], None] | None = None,
        on_direction_changed: Callable[[str], None] | None = None,
    ):
        self.grid = grid
        self.x, self.y = float(position[0]), float(position[1])
        self.speed = speed
        self.snap_threshold = snap_threshold
        self.on_moving_changed = on_moving_changed
        self.on_direction_changed = on_direction_changed

        self.waypoints: deque[tuple[float, float]] = deque()
        self.target: tuple[float, float] | None = None
        self.moving = False
        self.direction: str | None = None

    @property
    def position(self) -> tuple[float, float]:
        return self.x, self.y

    @property
    def animation_type(self) -> str:
        if self.moving and self.direction:
            return self.direction
        return Config.IDLE_ANIMATION

    @property
    def has_path(self) -> bool:
        return self.target is not None

    def _set_moving(self, moving: bool):
        if moving == self.moving:
            return
        self.moving = moving
        if self.on_moving_changed:
            self.on_moving_changed(moving)

    def _set_direction(self, direction: str):
        if direction == self.direction:
            return
        self.direction = direction
        if self.on_direction_changed:
            self.on_direction_changed(direction)

    def set_path(self, waypoints):
        """Replace whatever path was being followed."""
        self.waypoints = deque(waypoints)
        self.target = self.waypoints.popleft() if self.waypoints else None
        if self.target is None:
            self._set_moving(False)

    def stop(self):
        self.waypoints.clear()
        self.target = None
        self._set_moving(False)

    def teleport(self, position: tuple[float, float]):
        self.stop()
        self.x, self.y = float(position[0]), float(position[1])

    def tick(self, dt: float) -> str:
        """Advance by `dt` seconds. Returns IDLE, MOVING, ARRIVED or BLOCKED.

        ARRIVED and BLOCKED are each returned exactly once per path.
        """
        if self.target is None:
            self._set_moving(False)
            return IDLE
        if dt <= 0:
            return MOVING

        tx, ty = self.target
        dx, dy = tx - self.x, ty - self.y
        dist = math.hypot(dx, dy)

        if dist < self.snap_threshold:
            self.x, self.y = tx, ty
            if self.waypoints:
                self.target = self.waypoints.popleft()
                return MOVING
            self.target = None
            self._set_moving(False)
            return ARRIVED

        step = min(self.speed * dt, dist)
        nx = self.x + dx / dist * step
        ny = self.y + dy / dist * step
        if not self.grid.is_walkable_px(nx, ny):
            logger.debug("Movement blocked at (%.1f, %.1f)", nx, ny)
            self.stop()
            return BLOCKED

        self.x, self.y = nx, ny
        self._set_direction(classify_direction(dx, dy))
        self._set_moving(True)
        return MOVING
