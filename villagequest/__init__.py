"""Point-and-click adventure scene engine."""

from villagequest.conditions import matches
from villagequest.config import Config, Settings
from villagequest.content import (
    ClickOutcome,
    Condition,
    ContentLoader,
    Interaction,
    SceneDocument,
    StateMutation,
)
from villagequest.interactions import InteractionRegistry, select_outcome
from villagequest.motion import AgentMotionController, classify_direction
from villagequest.navgrid import WalkabilityGrid, build_walkability_grid
from villagequest.pathfinding import cells_to_waypoints, find_path, plan_route
from villagequest.sequencer import InteractionSequencer
from villagequest.state import GameState, GameStateStore, MutationEvent

__all__ = [
    "AgentMotionController",
    "ClickOutcome",
    "Condition",
    "Config",
    "ContentLoader",
    "GameState",
    "GameStateStore",
    "Interaction",
    "InteractionRegistry",
    "InteractionSequencer",
    "MutationEvent",
    "SceneDocument",
    "Settings",
    "StateMutation",
    "WalkabilityGrid",
    "build_walkability_grid",
    "cells_to_waypoints",
    "classify_direction",
    "find_path",
    "matches",
    "plan_route",
    "select_outcome",
]
