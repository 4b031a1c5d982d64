from __future__ import annotations

from villagequest.content import Condition
from villagequest.state import GameState


def matches(condition: Condition | None, state: GameState) -> bool:
    """True iff every clause present in `condition` agrees with `state`.

    No condition means always true. An inventory index outside the
    inventory bounds never matches, whatever value it expects.
    """
    if condition is None:
        return True
    if condition.game_state is not None and condition.game_state != state.state_tag:
        return False
    if condition.inventory:
        size = len(state.inventory)
        for idx, expected in condition.inventory.items():
            if idx < 0 or idx >= size:
                return False
            if state.inventory[idx] != expected:
                return False
    return True


def first_match(candidates, state: GameState, key=lambda c: c.condition):
    """First candidate whose condition matches, or None."""
    for c in candidates:
        if matches(key(c), state):
            return c
    return None
