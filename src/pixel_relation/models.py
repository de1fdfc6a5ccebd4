from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable

import numpy as np

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]

GRID_SIZES = (16, 32)


class InvalidIndex(IndexError):
    pass


@dataclass(frozen=True)
class Pixel:
    r: int
    g: int
    b: int
    a: int = 255
    selected: bool = False

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b, self.a):
            if not 0 <= channel <= 255:
                raise ValueError(f"pixel channel out of range [0, 255]: {channel}")

    @property
    def rgb(self) -> RGB:
        return (self.r, self.g, self.b)

    @property
    def rgba(self) -> RGBA:
        return (self.r, self.g, self.b, self.a)

    def to_list(self) -> list[Any]:
        return [self.r, self.g, self.b, self.a, self.selected]


@dataclass(frozen=True)
class HSL:
    """Hue in degrees [0, 360), saturation and lightness in [0, 1]."""

    h: float
    s: float
    l: float


@dataclass(frozen=True)
class HslDelta:
    dh: float
    ds: float
    dl: float

    def to_dict(self) -> dict[str, float]:
        return {"dh": float(self.dh), "ds": float(self.ds), "dl": float(self.dl)}


@dataclass(frozen=True)
class ColorRelation:
    base_index: int
    base_hsl: HSL
    # aligned with grid pixels; None where the cell was not selected at extraction
    deltas: tuple[HslDelta | None, ...]

    def related_indices(self) -> list[int]:
        return [idx for idx, delta in enumerate(self.deltas) if delta is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_index": self.base_index,
            "base_hsl": {
                "h": float(self.base_hsl.h),
                "s": float(self.base_hsl.s),
                "l": float(self.base_hsl.l),
            },
            "deltas": [None if d is None else d.to_dict() for d in self.deltas],
        }


class PixelGrid:
    """Square, row-major grid of RGBA cells with a per-cell selection flag.

    ``pixels`` is an immutable tuple. Selection edits build a complete new
    tuple and swap it in, so a reader holding the grid sees either the old
    or the new selection, never a mix.
    """

    def __init__(self, size: int, pixels: Iterable[Pixel]) -> None:
        if size <= 0:
            raise ValueError(f"grid size must be positive, got {size}")
        cells = tuple(pixels)
        if len(cells) != size * size:
            raise ValueError(
                f"grid of size {size} needs {size * size} pixels, got {len(cells)}"
            )
        self._size = size
        self._pixels = cells

    @property
    def size(self) -> int:
        return self._size

    @property
    def pixels(self) -> tuple[Pixel, ...]:
        return self._pixels

    def __len__(self) -> int:
        return len(self._pixels)

    def __getitem__(self, index: int) -> Pixel:
        return self._pixels[self._check_index(index)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelGrid):
            return NotImplemented
        return self._size == other._size and self._pixels == other._pixels

    def __repr__(self) -> str:
        return f"PixelGrid(size={self._size}, selected={self.selected_count()})"

    @classmethod
    def from_rgba(cls, rgba: np.ndarray) -> PixelGrid:
        if rgba.ndim != 3 or rgba.shape[2] != 4 or rgba.shape[0] != rgba.shape[1]:
            raise ValueError("rgba must have shape (N, N, 4)")
        size = int(rgba.shape[0])
        if rgba.size and (rgba.min() < 0 or rgba.max() > 255):
            raise ValueError("rgba channels must be in range [0, 255]")
        flat = rgba.reshape(-1, 4)
        pixels = [
            Pixel(int(r), int(g), int(b), int(a)) for r, g, b, a in flat.tolist()
        ]
        return cls(size, pixels)

    def to_rgba(self) -> np.ndarray:
        data = np.asarray([p.rgba for p in self._pixels], dtype=np.uint8)
        return data.reshape(self._size, self._size, 4)

    def selection_mask(self) -> np.ndarray:
        mask = np.asarray([p.selected for p in self._pixels], dtype=bool)
        return mask.reshape(self._size, self._size)

    def copy(self) -> PixelGrid:
        return PixelGrid(self._size, self._pixels)

    def with_pixels(self, pixels: Iterable[Pixel]) -> PixelGrid:
        return PixelGrid(self._size, pixels)

    def index_of(self, x: int, y: int) -> int:
        if not (0 <= x < self._size and 0 <= y < self._size):
            raise InvalidIndex(f"cell ({x}, {y}) is outside a {self._size}x{self._size} grid")
        return y * self._size + x

    def coords_of(self, index: int) -> tuple[int, int]:
        index = self._check_index(index)
        return index % self._size, index // self._size

    def selected_indices(self) -> list[int]:
        return [idx for idx, p in enumerate(self._pixels) if p.selected]

    def selected_count(self) -> int:
        return sum(1 for p in self._pixels if p.selected)

    def set_selected(self, index: int, selected: bool = True) -> None:
        index = self._check_index(index)
        if self._pixels[index].selected == selected:
            return
        cells = list(self._pixels)
        cells[index] = replace(cells[index], selected=selected)
        self._pixels = tuple(cells)

    def toggle(self, index: int) -> None:
        index = self._check_index(index)
        self.set_selected(index, not self._pixels[index].selected)

    def select_rect(
        self, x0: int, y0: int, x1: int, y1: int, selected: bool = True
    ) -> int:
        """Set the flag on every cell of the inclusive rectangle.

        Corners may come in any order and are clipped to the grid. Returns
        the number of cells whose flag changed.
        """
        last = self._size - 1
        min_x, max_x = max(0, min(x0, x1)), min(last, max(x0, x1))
        min_y, max_y = max(0, min(y0, y1)), min(last, max(y0, y1))

        changed = 0
        cells = list(self._pixels)
        for y in range(min_y, max_y + 1):
            for x in range(min_x, max_x + 1):
                idx = y * self._size + x
                if cells[idx].selected != selected:
                    cells[idx] = replace(cells[idx], selected=selected)
                    changed += 1
        if changed:
            self._pixels = tuple(cells)
        return changed

    def select_all(self, selected: bool = True) -> None:
        self._pixels = tuple(
            p if p.selected == selected else replace(p, selected=selected)
            for p in self._pixels
        )

    def to_dict(self) -> dict[str, Any]:
        return {"size": self._size, "pixels": [p.to_list() for p in self._pixels]}

    def _check_index(self, index: int) -> int:
        if not 0 <= index < len(self._pixels):
            raise InvalidIndex(
                f"index {index} is outside a grid of {len(self._pixels)} cells"
            )
        return index
