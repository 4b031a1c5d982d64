"""Aseprite spritesheets and a small frame player.

An exported sheet is a PNG plus a JSON sidecar with the same stem:

    {"frames": {"pig 0.aseprite": {"frame": {"x":0,"y":0,"w":50,"h":100}, "duration": 100}, ...},
     "meta": {"frameTags": [{"name": "walk_e", "from": 0, "to": 3}, ...]}}

`frames` may also be a list (Aseprite's "array" export).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from PIL import Image

from villagequest.content import ContentLoader


logger = logging.getLogger(__name__)

DEFAULT_FRAME_MS = 100


@dataclass(frozen=True)
class Frame:
    x: int
    y: int
    w: int
    h: int
    duration: int = DEFAULT_FRAME_MS

    @property
    def box(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.x + self.w, self.y + self.h


@dataclass(frozen=True)
class SpriteAnimation:
    name: str
    frames: tuple[Frame, ...]
    loop: bool = True

    @property
    def total_duration(self) -> int:
        return sum(f.duration for f in self.frames)

    @property
    def frame_rate(self) -> float:
        if not self.frames:
            return 0.0
        avg = self.total_duration / len(self.frames)
        return 1000.0 / avg if avg > 0 else 0.0


def _frame_list(raw) -> list[dict]:
    if isinstance(raw, dict):
        return list(raw.values())
    if isinstance(raw, list):
        return raw
    return []


def parse_aseprite(data: dict) -> dict[str, SpriteAnimation]:
    """Frame tags of an Aseprite JSON export, keyed by tag name.

    A sheet without tags yields a single animation named "default".
    """
    frames = []
    for entry in _frame_list(data.get("frames")):
        rect = entry.get("frame", {})
        frames.append(Frame(
            x=int(rect.get("x", 0)), y=int(rect.get("y", 0)),
            w=int(rect.get("w", 0)), h=int(rect.get("h", 0)),
            duration=int(entry.get("duration", DEFAULT_FRAME_MS)) or DEFAULT_FRAME_MS,
        ))
    tags = (data.get("meta") or {}).get("frameTags") or []
    if not tags:
        return {"default": SpriteAnimation("default", tuple(frames))} if frames else {}

    animations = {}
    for tag in tags:
        name = tag.get("name")
        start, end = int(tag.get("from", 0)), int(tag.get("to", 0))
        selected = tuple(frames[start:end + 1])
        if not name or not selected:
            logger.warning("Skipping empty frame tag %r", name)
            continue
        animations[name] = SpriteAnimation(name, selected)
    return animations


@dataclass
class Spritesheet:
    image: Image.Image
    animations: dict[str, SpriteAnimation] = field(default_factory=dict)

    def get(self, name: str) -> SpriteAnimation | None:
        return self.animations.get(name)

    def frame_image(self, frame: Frame) -> Image.Image:
        return self.image.crop(frame.box)


def sidecar_path(image_location: str) -> str:
    stem, dot, _ = image_location.rpartition(".")
    return f"{stem}.json" if dot else f"{image_location}.json"


def load_spritesheet(loader: ContentLoader, image_location: str) -> Spritesheet | None:
    img = loader.load_image(image_location)
    if img is None:
        return None
    data = loader.read_json(sidecar_path(image_location))
    if not isinstance(data, dict):
        # A bare PNG still works as a single still frame.
        data = {"frames": [{"frame": {"x": 0, "y": 0, "w": img.width, "h": img.height}}]}
    try:
        animations = parse_aseprite(data)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning("Malformed spritesheet data for %s: %s", image_location, e)
        return None
    return Spritesheet(image=img, animations=animations)


class AnimationPlayer:
    """Plays one animation at a time; a missing animation holds the current frame."""

    def __init__(self):
        self.animation: SpriteAnimation | None = None
        self.frame_index = 0
        self.elapsed = 0.0
        self.playing = False

    @property
    def frame(self) -> Frame | None:
        if self.animation is None or not self.animation.frames:
            return None
        return self.animation.frames[self.frame_index]

    def play(self, animation: SpriteAnimation | None, restart: bool = False):
        if animation is None:
            self.playing = False
            return
        if animation is self.animation and not restart:
            self.playing = True
            return
        self.animation = animation
        self.frame_index = 0
        self.elapsed = 0.0
        self.playing = True

    def stop(self):
        self.playing = False

    def update(self, dt_ms: float):
        if not self.playing or self.animation is None or not self.animation.frames:
            return
        self.elapsed += dt_ms
        frames = self.animation.frames
        while self.elapsed >= frames[self.frame_index].duration:
            self.elapsed -= frames[self.frame_index].duration
            if self.frame_index + 1 < len(frames):
                self.frame_index += 1
            elif self.animation.loop:
                self.frame_index = 0
            else:
                self.playing = False
                self.elapsed = 0.0
                return
