"""Game state snapshot, mutation events and the in-process store.

The engine never writes to the store directly: interaction outcomes are
turned into `MutationEvent`s and handed to whoever owns the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Iterable

from villagequest.config import Config


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameState:
    state_tag: str
    inventory: tuple[bool, ...]

    @classmethod
    def initial(cls, state_tag: str = Config.DEFAULT_STATE_TAG, size: int = Config.INVENTORY_SIZE) -> "GameState":
        return cls(state_tag=state_tag, inventory=(False,) * size)

    @classmethod
    def with_items(cls, state_tag: str, items: Iterable[int], size: int = Config.INVENTORY_SIZE) -> "GameState":
        flags = [False] * size
        for idx in items:
            flags[idx] = True
        return cls(state_tag=state_tag, inventory=tuple(flags))

    def has_item(self, index: int) -> bool:
        if index < 0 or index >= len(self.inventory):
            return False
        return self.inventory[index]


@dataclass(frozen=True)
class MutationEvent:
    inventory_set: tuple[tuple[int, bool], ...] = ()
    state_tag_set: str | None = None

    @property
    def empty(self) -> bool:
        return not self.inventory_set and self.state_tag_set is None


Listener = Callable[["GameStateStore"], None]


@dataclass
class GameStateStore:
    """Single process-wide store. Listeners run after every change."""

    state_tag: str = Config.DEFAULT_STATE_TAG
    inventory: list[bool] = field(default_factory=lambda: [False] * Config.INVENTORY_SIZE)
    current_scene_id: str = Config.DEFAULT_SCENE
    map_visible: bool = False
    map_enabled: bool = True
    player_direction: str = Config.IDLE_ANIMATION
    player_moving: bool = False
    _listeners: list[Listener] = field(default_factory=list, repr=False)

    def snapshot(self) -> GameState:
        return GameState(state_tag=self.state_tag, inventory=tuple(self.inventory))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    def apply(self, event: MutationEvent) -> bool:
        """Apply one mutation event. Returns True if anything changed."""
        changed = False
        for idx, value in event.inventory_set:
            if idx < 0 or idx >= len(self.inventory):
                logger.warning("Ignoring inventory update for out-of-range index %s", idx)
                continue
            if self.inventory[idx] != value:
                self.inventory[idx] = value
                changed = True
        if event.state_tag_set is not None and event.state_tag_set != self.state_tag:
            logger.info("Game state %s -> %s", self.state_tag, event.state_tag_set)
            self.state_tag = event.state_tag_set
            changed = True
        if changed:
            self._notify()
        return changed

    def set_game_state(self, tag: str):
        self.apply(MutationEvent(state_tag_set=tag))

    def add_item(self, index: int):
        self.apply(MutationEvent(inventory_set=((index, True),)))

    def remove_item(self, index: int):
        self.apply(MutationEvent(inventory_set=((index, False),)))

    def has_item(self, index: int) -> bool:
        return 0 <= index < len(self.inventory) and self.inventory[index] is True

    def set_current_scene(self, scene_id: str):
        if scene_id != self.current_scene_id:
            self.current_scene_id = scene_id
            self._notify()

    def set_map_visible(self, visible: bool):
        if visible != self.map_visible:
            self.map_visible = visible
            self._notify()

    # Telemetry from the motion controller. These do not notify: they are
    # already deduplicated at the source and fire at frame rate.
    def set_player_direction(self, direction: str):
        self.player_direction = direction

    def set_player_moving(self, moving: bool):
        self.player_moving = moving
