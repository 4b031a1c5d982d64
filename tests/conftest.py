"""Shared fixtures for the Village Quest test suite.

Sets up headless pygame, builds walkability masks with Pillow, writes
content directories into tmp_path, and provides a SceneEngine factory.
"""

import os
import sys
import json

# CRITICAL: Set SDL dummy driver BEFORE any pygame.init() call.
os.environ["SDL_VIDEODRIVER"] = "dummy"
os.environ["SDL_AUDIODRIVER"] = "dummy"

import pytest
from PIL import Image

# Add project root to path so `import villagequest` works without installing.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from villagequest.config import Config
from villagequest.content import SceneDocument
from villagequest.navgrid import build_walkability_grid
from villagequest.state import GameState


# ============================================================
# MASKS AND GRIDS
# ============================================================

OPAQUE = (0, 0, 0, 255)
CLEAR = (0, 0, 0, 0)


def make_mask(width, height, blocked=()):
    """Fully walkable mask with opaque (blocked) rectangles (x0, y0, x1, y1)."""
    img = Image.new("RGBA", (width, height), CLEAR)
    for x0, y0, x1, y1 in blocked:
        img.paste(OPAQUE, (x0, y0, x1, y1))
    return img


@pytest.fixture
def open_grid():
    """20x20 cells of 10px, everything walkable."""
    return build_walkability_grid(make_mask(200, 200), cell_size=10)


@pytest.fixture
def walled_grid():
    """200x200 px with a solid vertical wall at x=100..110, rows 0..190 (gap at the bottom)."""
    return build_walkability_grid(make_mask(200, 200, [(100, 0, 110, 190)]), cell_size=10)


@pytest.fixture
def thin_wall_grid():
    """A 2px wall at x=100..102: every coarse cell is walkable, the fine mask is not."""
    return build_walkability_grid(make_mask(200, 200, [(100, 0, 102, 200)]), cell_size=10)


# ============================================================
# SCENE DICT FIXTURES
# ============================================================

@pytest.fixture
def village_scene_dict():
    """Village scene with a statue, a gate that needs walking, and a well with item outcomes."""
    return {
        "scene_id": "village",
        "soundtrack": "assets/village_ambience.wav",
        "backgrounds": [
            {"image": "assets/village.png", "condition": {"game_state": "village_start"}},
            {"image": "assets/village_after.png", "condition": {"game_state": "after_statue"}},
            {"image": "assets/village.png"},
        ],
        "player_position": {"x": 30, "y": 100},
        "walkable_mask": "assets/walkable.png",
        "interactions": [
            {
                "id": "statue",
                "position": {"x": 40, "y": 20},
                "condition": {"game_state": "village_start"},
                "click": [
                    {"dialog": "An old statue. It wobbles.", "dialog_button": "Push",
                     "sound": "assets/rumble.wav",
                     "update": {"game_state": "after_statue", "inventory": {"3": True}}},
                ],
            },
            {
                "id": "hole",
                "position": {"x": 40, "y": 20},
                "condition": {"game_state": "after_statue"},
                "click": [{"dialog": "A hole where the statue stood."}],
            },
            {
                "id": "gate",
                "position": {"x": 150, "y": 80},
                "walk_to": {"x": 150, "y": 100},
                "click": [{"dialog": "The gate is locked.", "update": {"inventory": {"7": True}}}],
            },
            {
                "id": "well",
                "position": {"x": 60, "y": 150},
                "click": [
                    {"dialog": "A deep well."},
                    {"item_used": 3, "dialog": "You drop the coin in.",
                     "update": {"inventory": {"3": False, "4": True}}},
                    {"item_used": 4, "dialog": "The bucket rises with water.",
                     "update": {"inventory": {"4": False, "5": True}, "game_state": "well_used"}},
                ],
            },
        ],
    }


@pytest.fixture
def village_scene(village_scene_dict):
    return SceneDocument.model_validate(village_scene_dict)


@pytest.fixture
def start_state():
    return GameState.initial("village_start")


# ============================================================
# CONTENT DIRECTORY
# ============================================================

def _write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def _pig_sheet(path):
    """4-frame 10x20 sheet tagged walk_e (0-1) and system_idle (2-3)."""
    sheet = Image.new("RGBA", (40, 20), (255, 150, 180, 255))
    sheet.save(str(path))
    frames = {f"pig {i}.aseprite": {"frame": {"x": i * 10, "y": 0, "w": 10, "h": 20}, "duration": 100}
              for i in range(4)}
    meta = {"frameTags": [{"name": "walk_e", "from": 0, "to": 1}, {"name": "system_idle", "from": 2, "to": 3}]}
    path.with_suffix(".json").write_text(json.dumps({"frames": frames, "meta": meta}))


@pytest.fixture
def content_dir(tmp_path, village_scene_dict):
    """Content root with one village scene, config, inventory catalog and world map."""
    scene_dir = tmp_path / "scenes" / "village"
    assets = scene_dir / "assets"
    assets.mkdir(parents=True)
    _write_json(scene_dir / "scene.json", village_scene_dict)
    make_mask(200, 200, [(100, 0, 102, 60)]).save(str(assets / "walkable.png"))
    Image.new("RGBA", (200, 200), (60, 120, 60, 255)).save(str(assets / "village.png"))
    Image.new("RGBA", (200, 200), (120, 60, 60, 255)).save(str(assets / "village_after.png"))

    (tmp_path / "assets").mkdir()
    _pig_sheet(tmp_path / "assets" / "pig_spritesheet.png")
    Image.new("RGBA", (16, 16), (255, 215, 0, 255)).save(str(tmp_path / "assets" / "coin.png"))
    _write_json(tmp_path / "config.json", {"player": {"animations": [
        {"type": "system_idle", "spritesheet": "assets/pig_spritesheet.png", "animation": "system_idle"},
        {"type": "walk_e", "spritesheet": "assets/pig_spritesheet.png", "animation": "walk_e"},
    ]}})
    _write_json(tmp_path / "inventory.json", [
        {"item_id": "coin", "index": 3, "name": "Coin", "icon": "assets/coin.png", "tooltip": "A shiny coin"},
        {"item_id": "bucket", "index": 4, "name": "Bucket", "icon": "assets/missing.png", "tooltip": "Empty"},
    ])
    _write_json(tmp_path / "map" / "map.json", {
        "background": "map/map.png", "width": 400, "height": 300,
        "interactions": [
            {"id": "village", "position": {"x": 50, "y": 50}, "sprite": "map/village_icon.png"},
            {"id": "forest", "position": {"x": 250, "y": 50}, "sprite": "map/forest_icon.png"},
        ],
    })
    return tmp_path


# ============================================================
# SCENE ENGINE FACTORY
# ============================================================

@pytest.fixture
def make_engine():
    """Factory: make_engine(content_root) -> SceneEngine (headless, 200x200 canvas)."""
    import pygame
    from villagequest.engine import SceneEngine

    def _factory(content_root, scene="village"):
        config = Config()
        config.GAME_WIDTH = 200
        config.GAME_HEIGHT = 200
        config.CONTENT_ROOT = str(content_root)
        config.DEFAULT_SCENE = scene
        return SceneEngine(config)

    yield _factory
    pygame.quit()
