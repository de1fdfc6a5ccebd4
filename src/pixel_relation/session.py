from __future__ import annotations

import enum
import logging
import random

import numpy as np

from .color import normalize_hex, random_hex, rgb_to_hex, rgb_to_hsl
from .export import ExportOptions, export_bitmap
from .models import HSL, ColorRelation, PixelGrid
from .relation import build_preview, extract_relation, lock_base_color

logger = logging.getLogger(__name__)


class EmptySelection(ValueError):
    pass


class SessionState(enum.Enum):
    EDITING = "editing"
    CONFIRMED = "confirmed"


class EditSession:
    """One editing session over a single grid.

    ``EDITING``: the selection may change and no relation exists.
    ``CONFIRMED``: the selection is frozen and a relation against the base
    cell drives the preview. Transitions requested in the wrong state are
    ignored and return ``False``.
    """

    def __init__(self, grid: PixelGrid, keep_lightness: bool = False) -> None:
        self.grid = grid
        self.keep_lightness = keep_lightness
        self.state = SessionState.EDITING
        self.relation: ColorRelation | None = None
        self.base_index: int | None = None
        self.base_color: str | None = None
        self._anchor: HSL | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.state is SessionState.CONFIRMED

    # selection edits

    def set_selected(self, index: int, selected: bool = True) -> bool:
        if not self._require(SessionState.EDITING, "set_selected"):
            return False
        self.grid.set_selected(index, selected)
        return True

    def toggle(self, index: int) -> bool:
        if not self._require(SessionState.EDITING, "toggle"):
            return False
        self.grid.toggle(index)
        return True

    def select_rect(
        self, x0: int, y0: int, x1: int, y1: int, selected: bool = True
    ) -> bool:
        if not self._require(SessionState.EDITING, "select_rect"):
            return False
        self.grid.select_rect(x0, y0, x1, y1, selected)
        return True

    def select_all(self, selected: bool = True) -> bool:
        if not self._require(SessionState.EDITING, "select_all"):
            return False
        self.grid.select_all(selected)
        return True

    # transitions

    def confirm(self, base_index: int | None = None) -> bool:
        if not self._require(SessionState.EDITING, "confirm"):
            return False
        selected = self.grid.selected_indices()
        if not selected:
            raise EmptySelection("cannot confirm an empty selection")
        if base_index is None:
            base_index = selected[0]
        relation = extract_relation(self.grid, base_index)

        self._adopt_base(base_index, relation)
        self.state = SessionState.CONFIRMED
        logger.info(
            "confirmed %d selected cells with base %d", len(selected), base_index
        )
        return True

    def set_base(self, index: int) -> bool:
        if not self._require(SessionState.CONFIRMED, "set_base"):
            return False
        if not self.grid[index].selected:
            logger.warning("rejected set_base(%d): cell is not selected", index)
            return False
        self._adopt_base(index, extract_relation(self.grid, index))
        logger.info("base moved to %d", index)
        return True

    def modify(self) -> bool:
        if not self._require(SessionState.CONFIRMED, "modify"):
            return False
        self._discard_relation()
        self.state = SessionState.EDITING
        return True

    def apply(self) -> bool:
        if not self._require(SessionState.CONFIRMED, "apply"):
            return False
        self.grid = self.preview()
        self._discard_relation()
        self.state = SessionState.EDITING
        logger.info("applied preview to grid")
        return True

    # base color

    def set_base_color(self, color: str) -> bool:
        if not self._require(SessionState.CONFIRMED, "set_base_color"):
            return False
        canonical = normalize_hex(color)
        if self.keep_lightness and self._anchor is not None:
            canonical = lock_base_color(canonical, self._anchor)
        self.base_color = canonical
        return True

    def set_keep_lightness(self, keep: bool) -> None:
        self.keep_lightness = keep
        if keep and self.base_color is not None and self._anchor is not None:
            self.base_color = lock_base_color(self.base_color, self._anchor)

    def randomize_base_color(self, rng: random.Random | None = None) -> bool:
        return self.set_base_color(random_hex(rng))

    # outputs

    def preview(self) -> PixelGrid:
        return build_preview(self.grid, self.relation, self.base_color)

    def export(self, options: ExportOptions | None = None) -> np.ndarray:
        source = self.preview() if self.is_confirmed else self.grid
        return export_bitmap(source, options)

    def _adopt_base(self, index: int, relation: ColorRelation) -> None:
        base_rgb = self.grid[index].rgb
        self.relation = relation
        self.base_index = index
        self.base_color = rgb_to_hex(base_rgb)
        self._anchor = rgb_to_hsl(base_rgb)

    def _discard_relation(self) -> None:
        self.relation = None
        self.base_index = None
        self.base_color = None
        self._anchor = None

    def _require(self, state: SessionState, action: str) -> bool:
        if self.state is state:
            return True
        logger.warning("rejected %s while %s", action, self.state.value)
        return False
