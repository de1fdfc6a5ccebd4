from __future__ import annotations

import math
import random
import re

from .models import HSL, RGB, HslDelta

_HEX_PATTERN = re.compile(r"^#?(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")


class InvalidColorFormat(ValueError):
    pass


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def clamp255(value: float) -> int:
    # Math.round semantics, not banker's rounding
    return int(max(0, min(255, math.floor(value + 0.5))))


def hex_to_rgb(value: str) -> RGB:
    """Parse ``#rgb``/``#rrggbb`` (leading ``#`` optional) into an RGB triple."""
    if not isinstance(value, str):
        raise InvalidColorFormat(f"hex color must be a string, got {type(value).__name__}")
    text = value.strip()
    if not _HEX_PATTERN.match(text):
        raise InvalidColorFormat(f"invalid hex color '{value}'")

    digits = text[1:] if text.startswith("#") else text
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    n = int(digits, 16)
    return ((n >> 16) & 255, (n >> 8) & 255, n & 255)


def rgb_to_hex(rgb: RGB) -> str:
    r, g, b = rgb
    return f"#{clamp255(r):02x}{clamp255(g):02x}{clamp255(b):02x}"


def normalize_hex(value: str) -> str:
    """Canonical lowercase ``#rrggbb`` form of any accepted hex color."""
    return rgb_to_hex(hex_to_rgb(value))


def rgb_to_hsl(rgb: RGB) -> HSL:
    rr, gg, bb = (channel / 255.0 for channel in rgb)
    hi = max(rr, gg, bb)
    lo = min(rr, gg, bb)
    d = hi - lo

    l = (hi + lo) / 2.0
    if d == 0:
        return HSL(0.0, 0.0, l)

    s = clamp01(d / (1.0 - abs(2.0 * l - 1.0)))
    if hi == rr:
        h = ((gg - bb) / d) % 6.0
    elif hi == gg:
        h = (bb - rr) / d + 2.0
    else:
        h = (rr - gg) / d + 4.0
    return HSL(_wrap_hue(h * 60.0), s, l)


def hsl_to_rgb(hsl: HSL) -> RGB:
    s, l = hsl.s, hsl.l
    c = (1.0 - abs(2.0 * l - 1.0)) * s
    hh = _wrap_hue(hsl.h)
    x = c * (1.0 - abs((hh / 60.0) % 2.0 - 1.0))
    m = l - c / 2.0

    if hh < 60:
        rr, gg, bb = c, x, 0.0
    elif hh < 120:
        rr, gg, bb = x, c, 0.0
    elif hh < 180:
        rr, gg, bb = 0.0, c, x
    elif hh < 240:
        rr, gg, bb = 0.0, x, c
    elif hh < 300:
        rr, gg, bb = x, 0.0, c
    else:
        rr, gg, bb = c, 0.0, x

    return (
        clamp255((rr + m) * 255.0),
        clamp255((gg + m) * 255.0),
        clamp255((bb + m) * 255.0),
    )


def shortest_hue_delta(from_h: float, to_h: float) -> float:
    """Signed hue step in [-180, 180) taking ``from_h`` to ``to_h`` the short way.

    350 -> 10 is +20, not -340.
    """
    return ((to_h - from_h + 540.0) % 360.0) - 180.0


def apply_relation(base: HSL, delta: HslDelta) -> HSL:
    # saturation and lightness saturate at the bounds, hue wraps
    return HSL(
        _wrap_hue(base.h + delta.dh),
        clamp01(base.s + delta.ds),
        clamp01(base.l + delta.dl),
    )


def composite_over_background(
    fg: tuple[int, int, int, int], bg: RGB
) -> RGB:
    r, g, b, a = fg
    alpha = a / 255.0
    return (
        clamp255(r * alpha + bg[0] * (1.0 - alpha)),
        clamp255(g * alpha + bg[1] * (1.0 - alpha)),
        clamp255(b * alpha + bg[2] * (1.0 - alpha)),
    )


def random_hex(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return f"#{rng.randrange(0x1000000):06x}"


def _wrap_hue(h: float) -> float:
    h = h % 360.0
    # float modulo of a tiny negative number can land exactly on 360.0
    return 0.0 if h >= 360.0 else h
