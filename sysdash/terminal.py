"""curses front end: terminal setup, key waits and frame painting."""

from __future__ import annotations

import curses
import locale
import logging
import math
from typing import Any

from sysdash.render import Frame
from sysdash.themes import ROLES, Theme, rgb_to_basic, rgb_to_xterm256

logger = logging.getLogger(__name__)

ESC_DELAY_MS = 25


class TerminalError(Exception):
    """The terminal could not be put into the mode the dashboard needs."""


class Screen:
    """Owns the curses screen between ``open()`` and ``close()``.

    Use as a context manager so the terminal is restored on every exit
    path, including exceptions and ``SystemExit`` raised from signal
    handlers.
    """

    def __init__(self) -> None:
        self._stdscr: Any = None
        self._pairs: dict[str, int] = {}
        self._theme_name: str | None = None

    def __enter__(self) -> Screen:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def open(self) -> None:
        try:
            locale.setlocale(locale.LC_ALL, "")
        except locale.Error as e:
            logger.warning("cannot apply locale from environment: %s", e)
        try:
            self._stdscr = curses.initscr()
            curses.noecho()
            curses.cbreak()
            self._stdscr.keypad(True)
            try:
                curses.set_escdelay(ESC_DELAY_MS)
            except AttributeError:
                pass
            try:
                curses.curs_set(0)
            except curses.error:
                pass
            if curses.has_colors():
                curses.start_color()
                curses.use_default_colors()
        except curses.error as e:
            self.close()
            raise TerminalError(f"cannot initialise terminal: {e}") from e

    def close(self) -> None:
        if self._stdscr is None:
            return
        try:
            self._stdscr.keypad(False)
            curses.nocbreak()
            curses.echo()
            curses.endwin()
        except curses.error as e:
            logger.warning("terminal teardown failed: %s", e)
        finally:
            self._stdscr = None

    def size(self) -> tuple[int, int]:
        """(height, width) of the screen."""
        return self._stdscr.getmaxyx()

    def wait_key(self, timeout: float) -> int | None:
        """Block until a key arrives or *timeout* seconds pass.

        Returns the curses key code, or None on timeout.
        """
        self._stdscr.timeout(max(0, math.ceil(timeout * 1000)))
        key = self._stdscr.getch()
        return None if key == -1 else key

    def _apply_theme(self, theme: Theme) -> None:
        if theme.name == self._theme_name:
            return
        self._theme_name = theme.name
        self._pairs = {}
        if not curses.has_colors():
            return
        rich = curses.COLORS >= 256
        for pair_id, role in enumerate(ROLES, start=1):
            if pair_id >= curses.COLOR_PAIRS:
                break
            rgb = theme.color(role)
            fg = rgb_to_xterm256(rgb) if rich else rgb_to_basic(rgb)
            try:
                curses.init_pair(pair_id, fg, -1)
            except curses.error:
                continue
            self._pairs[role] = pair_id

    def _attr(self, role: str, bold: bool, reverse: bool) -> int:
        attr = curses.color_pair(self._pairs[role]) if role in self._pairs else 0
        if bold:
            attr |= curses.A_BOLD
        if reverse:
            attr |= curses.A_REVERSE
        return attr

    def draw(self, frame: Frame, theme: Theme) -> None:
        self._apply_theme(theme)
        win = self._stdscr
        win.erase()
        max_y, max_x = win.getmaxyx()
        for seg in frame.segments:
            if seg.y >= max_y or seg.x >= max_x:
                continue
            text = seg.text[: max_x - seg.x]
            try:
                win.addstr(seg.y, seg.x, text, self._attr(seg.role, seg.bold, seg.reverse))
            except curses.error:
                # Writing the bottom-right cell raises after a successful write
                pass
        win.refresh()
