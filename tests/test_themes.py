"""Tests for sysdash.themes."""

from __future__ import annotations

import pytest

from sysdash.themes import (
    DEFAULT_THEME,
    ROLES,
    THEME_NAMES,
    THEMES,
    get_theme,
    next_theme,
    rgb_to_basic,
    rgb_to_xterm256,
)


def test_nine_unique_themes() -> None:
    assert len(THEMES) == 9
    assert len(set(THEME_NAMES)) == 9
    assert DEFAULT_THEME == "hacker"


@pytest.mark.parametrize("theme", THEMES, ids=lambda t: t.name)
def test_every_role_is_an_rgb_triple(theme) -> None:
    for role in ROLES:
        rgb = theme.color(role)
        assert len(rgb) == 3
        assert all(0 <= c <= 255 for c in rgb)


@pytest.mark.parametrize("theme", THEMES, ids=lambda t: t.name)
def test_glyphs_are_single_cells(theme) -> None:
    assert len(theme.bar_fill_glyph) == 1
    assert len(theme.bar_empty_glyph) == 1
    assert len(theme.spark_glyphs) == 8


def test_get_theme_falls_back_to_default() -> None:
    assert get_theme("nord").name == "nord"
    assert get_theme("bogus").name == DEFAULT_THEME


def test_next_theme_wraps() -> None:
    assert next_theme(THEME_NAMES[-1]) == THEME_NAMES[0]
    assert next_theme(THEME_NAMES[0]) == THEME_NAMES[1]


@pytest.mark.parametrize(
    "percent, role",
    [(0.0, "success"), (60.0, "success"), (60.1, "warning"), (85.0, "warning"), (99.0, "danger")],
)
def test_usage_role(percent: float, role: str) -> None:
    assert get_theme("hacker").usage_role(percent) == role


class TestColorConversion:
    def test_xterm256_pure_colors(self) -> None:
        assert rgb_to_xterm256((255, 0, 0)) == 196
        assert rgb_to_xterm256((0, 0, 0)) == 16

    def test_xterm256_prefers_grayscale_ramp(self) -> None:
        assert 232 <= rgb_to_xterm256((128, 128, 128)) <= 255

    @pytest.mark.parametrize(
        "rgb, index",
        [((0, 0, 0), 0), ((250, 10, 10), 1), ((10, 240, 20), 2), ((240, 240, 240), 7)],
    )
    def test_basic(self, rgb: tuple[int, int, int], index: int) -> None:
        assert rgb_to_basic(rgb) == index
