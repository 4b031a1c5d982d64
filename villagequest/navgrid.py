"""Walkability grid built from a painted mask.

Mask convention: a pixel with alpha == 0 is walkable ground, anything else
is blocked. The coarse grid is only used for path search; motion checks
each step against the full-resolution mask.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math

from PIL import Image

from villagequest.config import Config


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FineMask:
    width: int
    height: int
    alpha: bytes

    @classmethod
    def from_image(cls, img: Image.Image) -> "FineMask":
        if img.mode != "RGBA":
            if "A" not in img.getbands():
                logger.warning("Walkability mask has no alpha channel; nothing will be walkable")
            img = img.convert("RGBA")
        return cls(width=img.width, height=img.height, alpha=img.getchannel("A").tobytes())

    def is_walkable(self, x: float, y: float) -> bool:
        px, py = int(math.floor(x)), int(math.floor(y))
        if px < 0 or py < 0 or px >= self.width or py >= self.height:
            return False
        return self.alpha[py * self.width + px] == 0


@dataclass(frozen=True)
class WalkabilityGrid:
    cols: int
    rows: int
    cell_size: int
    cells: tuple[tuple[bool, ...], ...]  # [row][col]
    mask: FineMask

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self.cols and 0 <= row < self.rows

    def is_walkable(self, col: int, row: int) -> bool:
        return self.in_bounds(col, row) and self.cells[row][col]

    def is_walkable_px(self, x: float, y: float) -> bool:
        """Full-resolution check against the painted mask."""
        return self.mask.is_walkable(x, y)

    def cell_at(self, x: float, y: float) -> tuple[int, int]:
        return int(x // self.cell_size), int(y // self.cell_size)

    def cell_center(self, col: int, row: int) -> tuple[float, float]:
        half = self.cell_size / 2
        return col * self.cell_size + half, row * self.cell_size + half

    def walkable_count(self) -> int:
        return sum(sum(1 for c in row if c) for row in self.cells)

    def nearest_walkable(self, col: int, row: int, max_radius: int = 8) -> tuple[int, int] | None:
        """Nearest walkable cell in growing square rings around (col, row)."""
        if self.is_walkable(col, row):
            return col, row
        for r in range(1, max_radius + 1):
            best = None
            best_d = None
            for dx in range(-r, r + 1):
                for dy in range(-r, r + 1):
                    if max(abs(dx), abs(dy)) != r:
                        continue
                    nx, ny = col + dx, row + dy
                    if self.is_walkable(nx, ny):
                        d = dx * dx + dy * dy
                        if best_d is None or d < best_d:
                            best, best_d = (nx, ny), d
            if best is not None:
                return best
        return None

    @classmethod
    def empty(cls, width: int = Config.GAME_WIDTH, height: int = Config.GAME_HEIGHT,
              cell_size: int = Config.CELL_SIZE) -> "WalkabilityGrid":
        """A grid with nothing walkable, used when a scene has no usable mask."""
        cols = math.ceil(width / cell_size)
        rows = math.ceil(height / cell_size)
        mask = FineMask(width=width, height=height, alpha=b"\xff" * (width * height))
        return cls(cols=cols, rows=rows, cell_size=cell_size,
                   cells=tuple((False,) * cols for _ in range(rows)), mask=mask)


def build_walkability_grid(
    img: Image.Image,
    cell_size: int = Config.CELL_SIZE,
    majority: float = Config.WALKABLE_MAJORITY,
) -> WalkabilityGrid:
    """Coarsen a mask image by majority vote per cell.

    A cell is walkable iff its transparent pixels are strictly more than
    `majority` of the in-bounds pixels it covers; ties are blocked. Edge
    cells of masks whose size is not a multiple of `cell_size` only count
    the pixels inside the image.
    """
    if cell_size <= 0:
        raise ValueError("cell_size must be positive")
    mask = FineMask.from_image(img)
    alpha = Image.frombytes("L", (mask.width, mask.height), mask.alpha)
    cols = math.ceil(mask.width / cell_size)
    rows = math.ceil(mask.height / cell_size)

    cells = []
    for row in range(rows):
        y0 = row * cell_size
        y1 = min(y0 + cell_size, mask.height)
        line = []
        for col in range(cols):
            x0 = col * cell_size
            x1 = min(x0 + cell_size, mask.width)
            total = (x1 - x0) * (y1 - y0)
            transparent = alpha.crop((x0, y0, x1, y1)).histogram()[0]
            line.append(transparent > total * majority)
        cells.append(tuple(line))

    grid = WalkabilityGrid(cols=cols, rows=rows, cell_size=cell_size, cells=tuple(cells), mask=mask)
    logger.debug("Built %dx%d walkability grid (%d walkable cells)", cols, rows, grid.walkable_count())
    return grid
