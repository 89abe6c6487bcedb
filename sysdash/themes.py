"""Built-in color themes.

A theme only decides how things look: which color each role is drawn in
and which glyphs fill bars and sparklines. It never changes layout or
numbers.
"""

from __future__ import annotations

from dataclasses import dataclass

RGB = tuple[int, int, int]

ROLES = (
    "foreground",
    "primary",
    "secondary",
    "accent",
    "success",
    "warning",
    "danger",
    "muted",
    "border",
    "bar_filled",
    "bar_empty",
    "graph_line",
)

# Usage thresholds for gauge coloring (percent)
USAGE_WARNING = 60.0
USAGE_DANGER = 85.0


@dataclass(frozen=True)
class Theme:
    name: str
    foreground: RGB
    primary: RGB
    secondary: RGB
    accent: RGB
    success: RGB
    warning: RGB
    danger: RGB
    muted: RGB
    border: RGB
    bar_filled: RGB
    bar_empty: RGB
    graph_line: RGB
    bar_fill_glyph: str = "█"
    bar_empty_glyph: str = "░"
    spark_glyphs: str = "▁▂▃▄▅▆▇█"

    def color(self, role: str) -> RGB:
        return getattr(self, role)

    def usage_role(self, percent: float) -> str:
        """Role used to color a gauge showing *percent*."""
        if percent <= USAGE_WARNING:
            return "success"
        if percent <= USAGE_DANGER:
            return "warning"
        return "danger"


THEME_HACKER = Theme(
    name="hacker",
    foreground=(0, 255, 65),
    primary=(0, 255, 65),
    secondary=(0, 180, 45),
    accent=(50, 255, 100),
    success=(0, 255, 136),
    warning=(255, 200, 0),
    danger=(255, 50, 50),
    muted=(80, 100, 80),
    border=(0, 180, 45),
    bar_filled=(0, 255, 65),
    bar_empty=(30, 50, 30),
    graph_line=(0, 255, 65),
)

THEME_MATRIX = Theme(
    name="matrix",
    foreground=(0, 200, 0),
    primary=(0, 200, 0),
    secondary=(0, 150, 0),
    accent=(0, 255, 0),
    success=(0, 200, 100),
    warning=(200, 200, 0),
    danger=(200, 0, 0),
    muted=(0, 80, 0),
    border=(0, 150, 0),
    bar_filled=(0, 200, 0),
    bar_empty=(0, 40, 0),
    graph_line=(0, 255, 0),
    bar_empty_glyph="·",
)

THEME_MINIMAL = Theme(
    name="minimal",
    foreground=(200, 200, 200),
    primary=(255, 255, 255),
    secondary=(150, 150, 150),
    accent=(255, 255, 255),
    success=(200, 200, 200),
    warning=(200, 200, 100),
    danger=(200, 100, 100),
    muted=(80, 80, 80),
    border=(100, 100, 100),
    bar_filled=(200, 200, 200),
    bar_empty=(40, 40, 40),
    graph_line=(200, 200, 200),
    bar_fill_glyph="#",
    bar_empty_glyph=".",
    spark_glyphs="_.-:=+*#",
)

THEME_CYBERPUNK = Theme(
    name="cyberpunk",
    foreground=(255, 0, 64),
    primary=(255, 0, 64),
    secondary=(0, 255, 255),
    accent=(255, 100, 150),
    success=(0, 255, 200),
    warning=(255, 200, 0),
    danger=(255, 0, 0),
    muted=(100, 50, 70),
    border=(255, 0, 64),
    bar_filled=(255, 0, 64),
    bar_empty=(50, 20, 30),
    graph_line=(0, 255, 255),
    bar_fill_glyph="▰",
    bar_empty_glyph="▱",
)

THEME_DRACULA = Theme(
    name="dracula",
    foreground=(248, 248, 242),
    primary=(189, 147, 249),
    secondary=(98, 114, 164),
    accent=(255, 121, 198),
    success=(80, 250, 123),
    warning=(241, 250, 140),
    danger=(255, 85, 85),
    muted=(98, 114, 164),
    border=(189, 147, 249),
    bar_filled=(189, 147, 249),
    bar_empty=(68, 71, 90),
    graph_line=(139, 233, 253),
)

THEME_NORD = Theme(
    name="nord",
    foreground=(216, 222, 233),
    primary=(136, 192, 208),
    secondary=(129, 161, 193),
    accent=(143, 188, 187),
    success=(163, 190, 140),
    warning=(235, 203, 139),
    danger=(191, 97, 106),
    muted=(76, 86, 106),
    border=(94, 129, 172),
    bar_filled=(136, 192, 208),
    bar_empty=(59, 66, 82),
    graph_line=(136, 192, 208),
)

THEME_GRUVBOX = Theme(
    name="gruvbox",
    foreground=(235, 219, 178),
    primary=(250, 189, 47),
    secondary=(214, 93, 14),
    accent=(254, 128, 25),
    success=(184, 187, 38),
    warning=(250, 189, 47),
    danger=(251, 73, 52),
    muted=(146, 131, 116),
    border=(215, 153, 33),
    bar_filled=(250, 189, 47),
    bar_empty=(60, 56, 54),
    graph_line=(142, 192, 124),
)

THEME_TOKYO = Theme(
    name="tokyo",
    foreground=(192, 202, 245),
    primary=(122, 162, 247),
    secondary=(187, 154, 247),
    accent=(125, 207, 255),
    success=(158, 206, 106),
    warning=(224, 175, 104),
    danger=(247, 118, 142),
    muted=(86, 95, 137),
    border=(122, 162, 247),
    bar_filled=(122, 162, 247),
    bar_empty=(41, 46, 66),
    graph_line=(125, 207, 255),
)

THEME_OCEAN = Theme(
    name="ocean",
    foreground=(192, 230, 245),
    primary=(0, 180, 230),
    secondary=(0, 120, 180),
    accent=(100, 220, 255),
    success=(0, 220, 170),
    warning=(255, 190, 70),
    danger=(255, 90, 90),
    muted=(60, 100, 130),
    border=(0, 140, 200),
    bar_filled=(0, 180, 230),
    bar_empty=(10, 40, 60),
    graph_line=(100, 220, 255),
)

THEMES: tuple[Theme, ...] = (
    THEME_HACKER,
    THEME_MATRIX,
    THEME_MINIMAL,
    THEME_CYBERPUNK,
    THEME_DRACULA,
    THEME_NORD,
    THEME_GRUVBOX,
    THEME_TOKYO,
    THEME_OCEAN,
)

THEME_NAMES: tuple[str, ...] = tuple(t.name for t in THEMES)
DEFAULT_THEME = THEME_HACKER.name


def get_theme(name: str) -> Theme:
    """Look up a theme by name, falling back to the default."""
    for theme in THEMES:
        if theme.name == name:
            return theme
    return THEMES[0]


def next_theme(name: str) -> str:
    """Name of the theme after *name* in the fixed cycle (wraps around)."""
    try:
        index = THEME_NAMES.index(name)
    except ValueError:
        return THEME_NAMES[0]
    return THEME_NAMES[(index + 1) % len(THEME_NAMES)]


# ── Terminal color conversion ──────────────────────────────────────────────

_CUBE_LEVELS = (0, 95, 135, 175, 215, 255)

_BASIC_COLORS: tuple[RGB, ...] = (
    (0, 0, 0),  # black
    (205, 0, 0),  # red
    (0, 205, 0),  # green
    (205, 205, 0),  # yellow
    (0, 0, 238),  # blue
    (205, 0, 205),  # magenta
    (0, 205, 205),  # cyan
    (229, 229, 229),  # white
)


def _distance(a: RGB, b: RGB) -> int:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def _nearest_level(value: int) -> int:
    return min(range(len(_CUBE_LEVELS)), key=lambda i: abs(_CUBE_LEVELS[i] - value))


def rgb_to_xterm256(rgb: RGB) -> int:
    """Closest xterm-256 palette index (color cube or grayscale ramp)."""
    r, g, b = (_nearest_level(c) for c in rgb)
    cube_index = 16 + 36 * r + 6 * g + b
    cube_rgb = (_CUBE_LEVELS[r], _CUBE_LEVELS[g], _CUBE_LEVELS[b])

    avg = sum(rgb) // 3
    gray_step = min(23, max(0, (avg - 8) // 10))
    gray_value = 8 + gray_step * 10
    gray_index = 232 + gray_step

    if _distance(rgb, (gray_value,) * 3) < _distance(rgb, cube_rgb):
        return gray_index
    return cube_index


def rgb_to_basic(rgb: RGB) -> int:
    """Closest of the eight standard terminal colors."""
    return min(range(len(_BASIC_COLORS)), key=lambda i: _distance(rgb, _BASIC_COLORS[i]))
