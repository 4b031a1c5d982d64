"""Content documents (scene, config, inventory catalog, world map) and loading.

Documents live under a content root that is either a local directory or an
http(s) URL:

    <root>/config.json
    <root>/inventory.json
    <root>/map/map.json
    <root>/scenes/<scene_id>/scene.json   (asset paths relative to this dir)

A broken document never raises out of the loader; it is logged and the
caller gets None.
"""

from __future__ import annotations

from io import BytesIO
import json
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field, ValidationError, model_validator
import requests

from villagequest.config import Config


logger = logging.getLogger(__name__)


class Point(BaseModel):
    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


class Condition(BaseModel):
    game_state: str | None = None
    inventory: dict[int, bool] | None = None


class StateMutation(BaseModel):
    inventory: dict[int, bool] = Field(default_factory=dict)
    game_state: str | None = None


class AnimationRef(BaseModel):
    spritesheet: str
    name: str


class ClickOutcome(BaseModel):
    item_used: int | None = None
    sound: str | None = None
    animation: AnimationRef | None = None
    dialog: str = ""
    dialog_button: str = "OK"
    update: StateMutation | None = None


class Interaction(BaseModel):
    id: str
    position: Point
    sprite: str | None = None
    idle_animation: AnimationRef | None = None
    hover_animation: AnimationRef | None = None
    condition: Condition | None = None
    walk_to: Point | None = None
    click: list[ClickOutcome] = Field(default_factory=list)


class Background(BaseModel):
    image: str
    condition: Condition | None = None


class SceneDocument(BaseModel):
    scene_id: str
    soundtrack: str | None = None
    backgrounds: list[Background] = Field(default_factory=list)
    player_position: Point
    walkable_mask: str
    interactions: list[Interaction] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_interaction_ids(self):
        seen = set()
        for it in self.interactions:
            if it.id in seen:
                raise ValueError(f"duplicate interaction id {it.id!r}")
            seen.add(it.id)
        return self

    def interaction(self, interaction_id: str) -> Interaction | None:
        for it in self.interactions:
            if it.id == interaction_id:
                return it
        return None


class PlayerAnimation(BaseModel):
    type: str
    spritesheet: str
    animation: str


class PlayerConfig(BaseModel):
    animations: list[PlayerAnimation] = Field(default_factory=list)
    speed: float | None = None


class GameConfigDocument(BaseModel):
    player: PlayerConfig = Field(default_factory=PlayerConfig)

    def animation_for(self, anim_type: str) -> PlayerAnimation | None:
        for a in self.player.animations:
            if a.type == anim_type:
                return a
        return None


class InventoryItem(BaseModel):
    item_id: str
    index: int = Field(..., ge=0, lt=Config.INVENTORY_SIZE)
    name: str
    icon: str
    tooltip: str = ""


class MapLocation(BaseModel):
    id: str
    position: Point
    sprite: str
    hover_animation: list[AnimationRef] = Field(default_factory=list)


class MapDocument(BaseModel):
    background: str
    width: int
    height: int
    interactions: list[MapLocation] = Field(default_factory=list)

    def location(self, location_id: str) -> MapLocation | None:
        for loc in self.interactions:
            if loc.id == location_id:
                return loc
        return None


def _is_url(root: str) -> bool:
    return root.startswith("http://") or root.startswith("https://")


class ContentLoader:
    def __init__(self, root: str, timeout: float = Config.HTTP_TIMEOUT):
        self.root = str(root)
        self.timeout = timeout

    def resolve(self, *parts: str) -> str:
        parts = [p.strip("/") for p in parts if p]
        if _is_url(self.root):
            return "/".join([self.root.rstrip("/")] + parts)
        return str(Path(self.root, *parts))

    def scene_dir(self, scene_id: str) -> str:
        return self.resolve("scenes", scene_id)

    def scene_asset(self, scene_id: str, rel_path: str) -> str:
        return self.resolve("scenes", scene_id, rel_path)

    def read_bytes(self, location: str) -> bytes:
        if _is_url(location):
            resp = requests.get(location, timeout=self.timeout)
            resp.raise_for_status()
            return resp.content
        with open(location, "rb") as f:
            return f.read()

    def read_json(self, location: str):
        try:
            return json.loads(self.read_bytes(location).decode("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, requests.RequestException) as e:
            logger.warning("Could not read %s: %s", location, e)
            return None

    def _load_model(self, location: str, model):
        data = self.read_json(location)
        if data is None:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed document %s: %s", location, e)
            return None

    def load_scene(self, scene_id: str) -> SceneDocument | None:
        return self._load_model(self.resolve("scenes", scene_id, "scene.json"), SceneDocument)

    def load_config(self) -> GameConfigDocument | None:
        return self._load_model(self.resolve("config.json"), GameConfigDocument)

    def load_map(self) -> MapDocument | None:
        return self._load_model(self.resolve("map", "map.json"), MapDocument)

    def load_inventory(self) -> list[InventoryItem]:
        location = self.resolve("inventory.json")
        data = self.read_json(location)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error("Malformed document %s: expected a list", location)
            return []
        items = []
        for raw in data:
            try:
                items.append(InventoryItem.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping inventory entry in %s: %s", location, e)
        return items

    def load_image(self, location: str) -> Image.Image | None:
        """Load an image as RGBA. Returns None if missing or undecodable."""
        try:
            img = Image.open(BytesIO(self.read_bytes(location)))
            return img.convert("RGBA")
        except (OSError, UnidentifiedImageError, requests.RequestException) as e:
            logger.warning("Could not load image %s: %s", location, e)
            return None
