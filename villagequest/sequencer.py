"""Click handling for interactive objects: optionally walk there, then resolve.

    idle --click--> walking_to_interaction --arrived--> resolving --ack--> idle
      |                    |
      |                    +--blocked / superseded--> idle (click cancelled)
      +--click on a static object--> resolving

Resolving shows the outcome's dialog; its state mutation is only emitted
once the dialog is acknowledged.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from villagequest.content import AnimationRef, ClickOutcome, Interaction, StateMutation
from villagequest.interactions import InteractionRegistry, select_outcome
from villagequest.motion import ARRIVED, BLOCKED, IDLE as MOTION_IDLE, AgentMotionController
from villagequest.pathfinding import plan_route
from villagequest.state import MutationEvent


logger = logging.getLogger(__name__)

IDLE = "idle"
WALKING = "walking_to_interaction"
RESOLVING = "resolving"


@dataclass(frozen=True)
class PendingInteraction:
    interaction_id: str
    item_index: int | None = None


@dataclass(frozen=True)
class Resolution:
    interaction: Interaction
    outcome: ClickOutcome
    item_index: int | None = None

    @property
    def dialog(self) -> str:
        return self.outcome.dialog

    @property
    def button(self) -> str:
        return self.outcome.dialog_button


def mutation_event(update: StateMutation | None) -> MutationEvent:
    if update is None:
        return MutationEvent()
    return MutationEvent(
        inventory_set=tuple(sorted(update.inventory.items())),
        state_tag_set=update.game_state,
    )


class InteractionSequencer:
    def __init__(
        self,
        registry: InteractionRegistry,
        motion: AgentMotionController,
        planner: Callable[[tuple[float, float], tuple[float, float]], list] | None = None,
        on_mutation: Callable[[MutationEvent], None] | None = None,
        on_sound: Callable[[str], None] | None = None,
        on_animation: Callable[[str, AnimationRef | None], None] | None = None,
        on_dialog: Callable[[Resolution], None] | None = None,
    ):
        self.registry = registry
        self.motion = motion
        self.planner = planner or (lambda origin, target: plan_route(self.motion.grid, origin, target))
        self.on_mutation = on_mutation
        self.on_sound = on_sound
        self.on_animation = on_animation
        self.on_dialog = on_dialog

        self.state = IDLE
        self.pending: PendingInteraction | None = None
        self.active: Resolution | None = None

    @property
    def busy(self) -> bool:
        return self.state == RESOLVING

    def reset(self):
        self.state = IDLE
        self.pending = None
        self.active = None

    def _cancel_pending(self):
        if self.pending is not None:
            logger.debug("Dropping pending interaction %s", self.pending.interaction_id)
        self.pending = None
        self.state = IDLE

    def walk_to(self, point: tuple[float, float]) -> bool:
        """Plain ground click. Supersedes any path or pending interaction."""
        if self.busy:
            return False
        self._cancel_pending()
        path = self.planner(self.motion.position, point)
        self.motion.set_path(path)
        return bool(path)

    def click(self, interaction_id: str, item_index: int | None = None) -> bool:
        """Click (or drop an inventory item on) an interaction.

        Returns False when the click is ignored: dialog open, object hidden
        or disabled, no matching outcome, or no way to walk there.
        """
        if self.busy or not self.registry.is_clickable(interaction_id):
            return False
        interaction = self.registry.get(interaction_id)
        if interaction is None or select_outcome(interaction, item_index) is None:
            logger.debug("No outcome on %s for item %s", interaction_id, item_index)
            return False

        self._cancel_pending()
        if interaction.walk_to is None:
            self.motion.stop()
            return self._resolve(interaction, item_index)

        destination = interaction.walk_to.as_tuple()
        path = self.planner(self.motion.position, destination)
        if not path:
            grid = self.motion.grid
            if grid.cell_at(*self.motion.position) == grid.cell_at(*destination):
                self.motion.stop()
                return self._resolve(interaction, item_index)
            self.motion.stop()
            return False

        self.motion.set_path(path)
        self.pending = PendingInteraction(interaction_id, item_index)
        self.state = WALKING
        return True

    def update(self, motion_result: str):
        """Feed the result of this frame's motion tick."""
        if self.state != WALKING:
            return
        if motion_result == ARRIVED:
            pending, self.pending = self.pending, None
            interaction = self.registry.get(pending.interaction_id) if pending else None
            if interaction is None or not self.registry.is_clickable(interaction.id):
                self.state = IDLE
                return
            self._resolve(interaction, pending.item_index)
        elif motion_result in (BLOCKED, MOTION_IDLE):
            self._cancel_pending()

    def _resolve(self, interaction: Interaction, item_index: int | None) -> bool:
        outcome = select_outcome(interaction, item_index)
        if outcome is None:
            self.state = IDLE
            return False
        self.registry.disabled.add(interaction.id)
        self.active = Resolution(interaction, outcome, item_index)
        self.state = RESOLVING
        if self.on_animation:
            self.on_animation(interaction.id, outcome.animation)
        if outcome.sound and self.on_sound:
            self.on_sound(outcome.sound)
        if self.on_dialog:
            self.on_dialog(self.active)
        return True

    def acknowledge(self) -> MutationEvent | None:
        """Dialog dismissed: emit the outcome's mutation and re-enable the object."""
        if self.state != RESOLVING or self.active is None:
            return None
        resolution, self.active = self.active, None
        event = mutation_event(resolution.outcome.update)
        if not event.empty and self.on_mutation:
            self.on_mutation(event)
        interaction = resolution.interaction
        if self.on_animation:
            self.on_animation(interaction.id, interaction.idle_animation)
        self.registry.disabled.discard(interaction.id)
        self.state = IDLE
        return event
