from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal

import numpy as np
from PIL import Image

from .color import hex_to_rgb
from .models import PixelGrid

logger = logging.getLogger(__name__)

BackgroundMode = Literal["transparent", "color"]

DEFAULT_BACKGROUND_HEX = "#020617"


@dataclass(frozen=True)
class ExportOptions:
    background: BackgroundMode = "transparent"
    background_hex: str = DEFAULT_BACKGROUND_HEX
    only_selected: bool = False
    scale: float = 1

    def __post_init__(self) -> None:
        if self.background not in ("transparent", "color"):
            raise ValueError(
                f"unsupported background mode '{self.background}'. Use 'transparent' or 'color'"
            )
        if isinstance(self.scale, bool) or not isinstance(self.scale, (int, float)):
            raise ValueError(f"scale must be a number, got {self.scale!r}")
        if not math.isfinite(self.scale) or self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        hex_to_rgb(self.background_hex)


def output_side(size: int, scale: float) -> int:
    return max(1, int(math.floor(size * scale + 0.5)))


def suggested_filename(size: int, only_selected: bool = False) -> str:
    suffix = "-selected" if only_selected else ""
    return f"pixel-{size}x{size}{suffix}.png"


def export_bitmap(grid: PixelGrid, options: ExportOptions | None = None) -> np.ndarray:
    """Rasterize ``grid`` into a ``(side, side, 4)`` uint8 RGBA bitmap.

    Every cell is replicated with nearest-neighbor sampling. Unselected cells
    are left fully transparent when ``only_selected`` is set. With a color
    background each drawn cell is composited over it and becomes opaque.
    """
    options = options or ExportOptions()
    size = grid.size
    rgba = grid.to_rgba()

    if options.only_selected:
        drawn = grid.selection_mask()
    else:
        drawn = np.ones((size, size), dtype=bool)

    cells = rgba
    if options.background == "color":
        bg = np.asarray(hex_to_rgb(options.background_hex), dtype=np.float64)
        source = rgba.astype(np.float64)
        alpha = source[..., 3:4] / 255.0
        mixed = source[..., :3] * alpha + bg * (1.0 - alpha)
        cells[..., :3] = np.clip(np.floor(mixed + 0.5), 0, 255).astype(np.uint8)
        cells[..., 3] = 255

    side = output_side(size, options.scale)
    sample = (np.arange(side) * size) // side
    cells_up = cells[sample][:, sample]
    drawn_up = drawn[sample][:, sample]

    bitmap = np.zeros((side, side, 4), dtype=np.uint8)
    if options.background == "color" and not options.only_selected:
        bitmap[..., :3] = hex_to_rgb(options.background_hex)
        bitmap[..., 3] = 255
    bitmap[drawn_up] = cells_up[drawn_up]

    logger.debug(
        "exported %dx%d grid to %dx%d bitmap (background=%s, only_selected=%s)",
        size,
        size,
        side,
        side,
        options.background,
        options.only_selected,
    )
    return bitmap


def bitmap_to_image(bitmap: np.ndarray) -> Image.Image:
    if bitmap.ndim != 3 or bitmap.shape[2] != 4:
        raise ValueError("bitmap must have shape (H, W, 4)")
    return Image.fromarray(bitmap.astype(np.uint8, copy=False))
