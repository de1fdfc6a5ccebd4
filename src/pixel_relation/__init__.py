from .color import InvalidColorFormat
from .export import ExportOptions, export_bitmap, suggested_filename
from .models import (
    GRID_SIZES,
    HSL,
    ColorRelation,
    HslDelta,
    InvalidIndex,
    Pixel,
    PixelGrid,
)
from .relation import build_preview, extract_relation, lock_base_color
from .session import EditSession, EmptySelection, SessionState

__all__ = [
    "ColorRelation",
    "EditSession",
    "EmptySelection",
    "ExportOptions",
    "GRID_SIZES",
    "HSL",
    "HslDelta",
    "InvalidColorFormat",
    "InvalidIndex",
    "Pixel",
    "PixelGrid",
    "SessionState",
    "build_preview",
    "export_bitmap",
    "extract_relation",
    "lock_base_color",
    "suggested_filename",
]
