"""Interactive objects of the active scene, filtered by the game state."""

from __future__ import annotations

import logging
from typing import Callable

from villagequest.conditions import first_match, matches
from villagequest.content import Background, ClickOutcome, Interaction, SceneDocument
from villagequest.state import GameState


logger = logging.getLogger(__name__)

# resolver(visible_interactions, background, on_ready) -> None.
# May call on_ready immediately or later (e.g. after asset loading).
AssetResolver = Callable[[list[Interaction], Background | None, Callable[[], None]], None]


def _resolve_now(interactions, background, on_ready):
    on_ready()


def select_outcome(interaction: Interaction, item_index: int | None = None) -> ClickOutcome | None:
    """Pick the click outcome for a plain click or for an applied item.

    With an item, only an outcome guarded by that item qualifies. Without
    one, the first unguarded outcome wins, or the sole outcome if there is
    exactly one.
    """
    outcomes = interaction.click
    if item_index is not None:
        for outcome in outcomes:
            if outcome.item_used == item_index:
                return outcome
        return None
    for outcome in outcomes:
        if outcome.item_used is None:
            return outcome
    if len(outcomes) == 1:
        return outcomes[0]
    return None


class InteractionRegistry:
    def __init__(self, scene: SceneDocument | None = None, resolver: AssetResolver | None = None):
        self.resolver = resolver or _resolve_now
        self.scene = scene
        self.visible: list[Interaction] = []
        self.background: Background | None = None
        self.disabled: set[str] = set()
        self.rebuilds = 0

        self._in_flight = False
        self._queued: GameState | None = None
        self._generation = 0

    def load(self, scene: SceneDocument | None):
        # Results of a rebuild started for the previous scene are discarded.
        self._generation += 1
        self.scene = scene
        self.visible = []
        self.background = None
        self.disabled.clear()

    @property
    def rebuilding(self) -> bool:
        return self._in_flight

    @property
    def interactions(self) -> list[Interaction]:
        return self.scene.interactions if self.scene else []

    def get(self, interaction_id: str) -> Interaction | None:
        return self.scene.interaction(interaction_id) if self.scene else None

    def is_visible(self, interaction_id: str) -> bool:
        return any(it.id == interaction_id for it in self.visible)

    def is_clickable(self, interaction_id: str) -> bool:
        return self.is_visible(interaction_id) and interaction_id not in self.disabled

    def refresh(self, state: GameState) -> bool:
        """Recompute visible content for `state`.

        Only one rebuild runs at a time. A request that arrives while one is
        in flight is parked; if several arrive, only the latest state is
        kept. Returns False when the request was parked.
        """
        if self._in_flight:
            logger.debug("Rebuild in flight; queueing state %s", state.state_tag)
            self._queued = state
            return False
        self._start(state)
        return True

    def _start(self, state: GameState):
        self._in_flight = True
        visible = [it for it in self.interactions if matches(it.condition, state)]
        background = first_match(self.scene.backgrounds, state) if self.scene else None

        generation = self._generation
        ready = False

        def on_ready():
            nonlocal ready
            if ready:
                return
            ready = True
            if generation == self._generation:
                self.visible = visible
                self.background = background
                self.rebuilds += 1
            self._finish()

        try:
            self.resolver(visible, background, on_ready)
        except Exception:
            logger.exception("Asset resolution failed for state %s", state.state_tag)
            if not ready:
                ready = True
                self._finish()

    def _finish(self):
        self._in_flight = False
        if self._queued is not None:
            queued, self._queued = self._queued, None
            self._start(queued)

    def hit_test(self, x: float, y: float, bounds: Callable[[Interaction], tuple[float, float, float, float]]):
        """Topmost clickable interaction whose bounds contain (x, y)."""
        for it in reversed(self.visible):
            if it.id in self.disabled:
                continue
            left, top, w, h = bounds(it)
            if left <= x < left + w and top <= y < top + h:
                return it
        return None
