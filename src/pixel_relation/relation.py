from __future__ import annotations

from dataclasses import replace

from .color import (
    apply_relation,
    hex_to_rgb,
    hsl_to_rgb,
    rgb_to_hex,
    rgb_to_hsl,
    shortest_hue_delta,
)
from .models import HSL, ColorRelation, HslDelta, PixelGrid


def extract_relation(grid: PixelGrid, base_index: int) -> ColorRelation:
    """Snapshot every selected cell's HSL offset from the cell at ``base_index``.

    The base cell does not have to be selected. Unselected cells get ``None``.
    """
    base = grid[base_index]
    base_hsl = rgb_to_hsl(base.rgb)

    deltas: list[HslDelta | None] = []
    for pixel in grid.pixels:
        if not pixel.selected:
            deltas.append(None)
            continue
        hsl = rgb_to_hsl(pixel.rgb)
        deltas.append(
            HslDelta(
                dh=shortest_hue_delta(base_hsl.h, hsl.h),
                ds=hsl.s - base_hsl.s,
                dl=hsl.l - base_hsl.l,
            )
        )

    return ColorRelation(base_index=base_index, base_hsl=base_hsl, deltas=tuple(deltas))


def build_preview(
    grid: PixelGrid,
    relation: ColorRelation | None,
    base_color: str | None,
) -> PixelGrid:
    """Re-derive related cells from ``base_color``; returns a new grid.

    Without a relation or a base color the input grid is returned as is.
    Alpha and selection flags are never touched, nor are cells without a delta.
    """
    if relation is None or base_color is None:
        return grid
    if len(relation.deltas) != len(grid):
        raise ValueError(
            f"relation covers {len(relation.deltas)} cells but grid has {len(grid)}"
        )

    new_base_hsl = rgb_to_hsl(hex_to_rgb(base_color))

    pixels = []
    for pixel, delta in zip(grid.pixels, relation.deltas):
        if delta is None:
            pixels.append(pixel)
            continue
        r, g, b = hsl_to_rgb(apply_relation(new_base_hsl, delta))
        pixels.append(replace(pixel, r=r, g=g, b=b))

    return grid.with_pixels(pixels)


def lock_base_color(color: str, anchor: HSL) -> str:
    """Keep the hue of ``color`` but take saturation and lightness from ``anchor``.

    ``anchor`` is the base pixel's HSL captured when it became the base, so
    repeated corrections always start from the same values.
    """
    picked = rgb_to_hsl(hex_to_rgb(color))
    return rgb_to_hex(hsl_to_rgb(HSL(picked.h, anchor.s, anchor.l)))
