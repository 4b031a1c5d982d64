from __future__ import annotations

from dataclasses import dataclass

from villagequest.content import InventoryItem
from villagequest.state import GameState


class InventoryCatalog:
    def __init__(self, items: list[InventoryItem]):
        self.items = sorted(items, key=lambda it: it.index)
        self._by_index = {it.index: it for it in self.items}

    def get(self, index: int) -> InventoryItem | None:
        return self._by_index.get(index)

    def owned(self, state: GameState) -> list[InventoryItem]:
        return [it for it in self.items if state.has_item(it.index)]


@dataclass
class InventoryTray:
    """Selection and drag state of the inventory bar."""

    selected: int | None = None
    dragging: int | None = None

    def toggle(self, index: int) -> int | None:
        self.selected = None if self.selected == index else index
        return self.selected

    def start_drag(self, index: int):
        self.dragging = index

    def end_drag(self) -> int | None:
        index, self.dragging = self.dragging, None
        return index

    def prune(self, state: GameState):
        """Forget a selection or drag whose item is no longer held."""
        if self.selected is not None and not state.has_item(self.selected):
            self.selected = None
        if self.dragging is not None and not state.has_item(self.dragging):
            self.dragging = None
