from __future__ import annotations

import logging
import random

import numpy as np
import pytest

from pixel_relation.color import InvalidColorFormat, hex_to_rgb, random_hex, rgb_to_hsl
from pixel_relation.export import ExportOptions
from pixel_relation.models import InvalidIndex, Pixel, PixelGrid
from pixel_relation.session import EditSession, EmptySelection, SessionState


def _grid() -> PixelGrid:
    return PixelGrid(
        2,
        [
            Pixel(255, 0, 0, 255),
            Pixel(0, 255, 0, 255),
            Pixel(0, 0, 255, 128),
            Pixel(255, 255, 255, 255),
        ],
    )


def _confirmed_session(**kwargs) -> EditSession:
    session = EditSession(_grid(), **kwargs)
    for idx in (0, 2, 3):
        session.set_selected(idx)
    assert session.confirm()
    return session


def test_confirm_defaults_to_first_selected_cell():
    session = EditSession(_grid())
    session.set_selected(3)
    session.set_selected(2)

    assert session.confirm()

    assert session.state is SessionState.CONFIRMED
    assert session.base_index == 2
    assert session.base_color == "#0000ff"
    assert session.relation is not None
    assert session.relation.related_indices() == [2, 3]


def test_confirm_with_nominated_base():
    session = EditSession(_grid())
    session.select_all()
    assert session.confirm(3)
    assert session.base_index == 3
    assert session.base_color == "#ffffff"


def test_confirm_rejects_empty_selection():
    session = EditSession(_grid())
    with pytest.raises(EmptySelection):
        session.confirm()
    assert session.state is SessionState.EDITING
    assert session.relation is None


def test_confirm_rejects_out_of_range_base():
    session = EditSession(_grid())
    session.select_all()
    with pytest.raises(InvalidIndex):
        session.confirm(9)
    assert session.state is SessionState.EDITING
    assert session.base_index is None


def test_selection_is_frozen_while_confirmed(caplog):
    session = _confirmed_session()

    with caplog.at_level(logging.WARNING, logger="pixel_relation.session"):
        assert not session.set_selected(1)
        assert not session.toggle(0)
        assert not session.select_rect(0, 0, 1, 1, selected=False)
        assert not session.select_all()
        assert not session.confirm()

    assert session.grid.selected_indices() == [0, 2, 3]
    assert "rejected set_selected while confirmed" in caplog.text


def test_editing_state_rejects_confirmed_only_transitions():
    session = EditSession(_grid())
    session.select_all()

    assert not session.set_base(0)
    assert not session.modify()
    assert not session.apply()
    assert not session.set_base_color("#123456")
    assert session.state is SessionState.EDITING


def test_set_base_recomputes_relation_from_current_colors():
    session = _confirmed_session()
    session.set_base_color("#00ff00")

    assert session.set_base(3)

    assert session.base_index == 3
    assert session.base_color == "#ffffff"
    assert session.relation.base_index == 3
    assert session.relation.base_hsl == rgb_to_hsl((255, 255, 255))


def test_set_base_requires_a_selected_cell():
    session = _confirmed_session()
    assert not session.set_base(1)
    assert session.base_index == 0
    with pytest.raises(InvalidIndex):
        session.set_base(4)
    assert session.base_index == 0


def test_invalid_base_color_keeps_previous_color():
    session = _confirmed_session()
    session.set_base_color("#00ff00")

    with pytest.raises(InvalidColorFormat):
        session.set_base_color("not-a-color")

    assert session.base_color == "#00ff00"


def test_base_color_is_canonicalized():
    session = _confirmed_session()
    session.set_base_color("0F0")
    assert session.base_color == "#00ff00"


def test_preview_follows_base_color_and_keeps_alpha():
    session = _confirmed_session()
    session.set_base_color("#0000ff")

    preview = session.preview()

    assert preview[0].rgb == (0, 0, 255)
    assert preview[2].rgb == (0, 255, 0)
    assert preview[2].a == 128
    assert preview[1] == session.grid[1]
    assert session.grid[0].rgb == (255, 0, 0)


def test_modify_discards_relation_and_keeps_selection():
    session = _confirmed_session()
    session.set_base_color("#0000ff")

    assert session.modify()

    assert session.state is SessionState.EDITING
    assert session.relation is None
    assert session.base_index is None
    assert session.base_color is None
    assert session.grid.selected_indices() == [0, 2, 3]
    assert session.grid[0].rgb == (255, 0, 0)
    assert session.preview() is session.grid


def test_apply_bakes_preview_into_grid():
    session = _confirmed_session()
    original = session.grid
    session.set_base_color("#0000ff")
    expected = session.preview()

    assert session.apply()

    assert session.state is SessionState.EDITING
    assert session.relation is None
    assert session.grid == expected
    assert session.grid is not original
    assert session.grid.selected_indices() == [0, 2, 3]
    assert session.grid[2].a == 128
    assert original[0].rgb == (255, 0, 0)


def test_keep_lightness_locks_to_the_frozen_anchor():
    grid = PixelGrid(1, [Pixel(200, 120, 80, 255, selected=True)])
    session = EditSession(grid, keep_lightness=True)
    session.confirm()
    anchor = rgb_to_hsl((200, 120, 80))

    for color in ("#00ff00", "#0000ff", "#ff00ff", "#101010", "#fefefe"):
        session.set_base_color(color)
        hsl = rgb_to_hsl(hex_to_rgb(session.base_color))
        assert hsl.s == pytest.approx(anchor.s, abs=0.01)
        assert hsl.l == pytest.approx(anchor.l, abs=0.01)


def test_reenabling_lock_corrects_from_anchor_not_current_color():
    grid = PixelGrid(1, [Pixel(200, 120, 80, 255, selected=True)])
    session = EditSession(grid)
    session.confirm()
    anchor = rgb_to_hsl((200, 120, 80))

    session.set_base_color("#e0f0ff")
    session.set_keep_lightness(True)

    hsl = rgb_to_hsl(hex_to_rgb(session.base_color))
    assert hsl.h == pytest.approx(rgb_to_hsl(hex_to_rgb("#e0f0ff")).h, abs=2.0)
    assert hsl.s == pytest.approx(anchor.s, abs=0.01)
    assert hsl.l == pytest.approx(anchor.l, abs=0.01)


def test_turning_lock_off_leaves_color_alone():
    session = _confirmed_session(keep_lightness=True)
    session.set_base_color("#00ff00")
    locked = session.base_color

    session.set_keep_lightness(False)
    assert session.base_color == locked

    session.set_base_color("#123456")
    assert session.base_color == "#123456"


def test_randomize_base_color_uses_given_rng():
    session = _confirmed_session()
    assert session.randomize_base_color(random.Random(8))
    assert session.base_color == random_hex(random.Random(8))


def test_export_uses_preview_while_confirmed():
    session = _confirmed_session()
    session.set_base_color("#0000ff")

    bitmap = session.export(ExportOptions(scale=2))

    assert bitmap.shape == (4, 4, 4)
    assert tuple(int(v) for v in bitmap[0, 0]) == (0, 0, 255, 255)

    session.modify()
    bitmap = session.export()
    assert np.array_equal(bitmap, session.grid.to_rgba())
