"""The dashboard event loop.

One thread, one suspension point: each iteration blocks on "next key or
next tick, whichever comes first", then either dispatches the key or takes
a sample, builds a snapshot and redraws.
"""

from __future__ import annotations

import curses
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from sysdash.config import Config, ConfigStore
from sysdash.history import HistoryStore
from sysdash.metrics import RawMetrics, SampleError
from sysdash.render import Frame, render
from sysdash.snapshot import Snapshot, SnapshotBuilder
from sysdash.state import UiState
from sysdash.terminal import Screen
from sysdash.themes import Theme, get_theme

logger = logging.getLogger(__name__)

KEY_ESC = 27


class Command(Enum):
    QUIT = "quit"
    CYCLE_THEME = "cycle_theme"
    REFRESH = "refresh"
    TOGGLE_HELP = "toggle_help"
    FASTER = "faster"
    SLOWER = "slower"
    SAVE = "save"
    REDRAW = "redraw"


_KEYMAP: dict[int, Command] = {
    ord("q"): Command.QUIT,
    ord("Q"): Command.QUIT,
    KEY_ESC: Command.QUIT,
    ord("t"): Command.CYCLE_THEME,
    ord("T"): Command.CYCLE_THEME,
    ord("r"): Command.REFRESH,
    ord("R"): Command.REFRESH,
    ord("h"): Command.TOGGLE_HELP,
    ord("H"): Command.TOGGLE_HELP,
    ord("?"): Command.TOGGLE_HELP,
    curses.KEY_F1: Command.TOGGLE_HELP,
    ord("+"): Command.FASTER,
    ord("="): Command.FASTER,
    ord("-"): Command.SLOWER,
    ord("_"): Command.SLOWER,
    ord("s"): Command.SAVE,
    ord("S"): Command.SAVE,
    curses.KEY_RESIZE: Command.REDRAW,
}


def decode_key(key: int) -> Command | None:
    return _KEYMAP.get(key)


class MetricSource(Protocol):
    def sample(self) -> RawMetrics: ...


class Display(Protocol):
    def size(self) -> tuple[int, int]: ...

    def wait_key(self, timeout: float) -> int | None: ...

    def draw(self, frame: Frame, theme: Theme) -> None: ...


class Dashboard:
    """Owns the UI state and sample history for the lifetime of a run."""

    def __init__(
        self,
        config: Config,
        source: MetricSource,
        display: Display,
        store: ConfigStore,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.ui = UiState.from_config(config)
        self.history = HistoryStore(config.graph_history)
        self.snapshot: Snapshot | None = None
        self._builder = SnapshotBuilder()
        self._source = source
        self._display = display
        self._store = store
        self._clock = clock
        self._running = False
        self._force_sample = False
        self._next_tick = 0.0

    # ── Key handling ──────────────────────────────────────────────────

    def handle(self, command: Command) -> None:
        now = self._clock()
        if command is Command.QUIT:
            self._running = False
        elif command is Command.CYCLE_THEME:
            self.ui.cycle_theme()
        elif command is Command.REFRESH:
            self._force_sample = True
        elif command is Command.TOGGLE_HELP:
            self.ui.toggle_help()
        elif command is Command.FASTER:
            self.ui.faster()
            self.ui.set_status(f"Refresh every {self.ui.refresh_rate:.2f}s", now)
        elif command is Command.SLOWER:
            self.ui.slower()
            self.ui.set_status(f"Refresh every {self.ui.refresh_rate:.2f}s", now)
        elif command is Command.SAVE:
            self.save()

    def save(self) -> None:
        now = self._clock()
        try:
            path = self._store.save(self.ui.to_config(self.config))
        except OSError as e:
            logger.warning("config save failed: %s", e)
            self.ui.set_status(f"Save failed: {e.strerror or e}", now)
        else:
            logger.info("config saved to %s", path)
            self.ui.set_status(f"Config saved to {path}", now)

    # ── Ticks ─────────────────────────────────────────────────────────

    def tick(self) -> None:
        """Take one sample and replace the snapshot.

        A failed sample keeps the previous snapshot on screen.
        """
        try:
            raw = self._source.sample()
            self.snapshot = self._builder.build(raw, self.history)
        except SampleError as e:
            logger.warning("sample failed: %s", e)
            self.ui.set_status(f"Sample failed: {e}", self._clock())
        except Exception:
            logger.exception("unexpected error while sampling")
            self.ui.set_status("Sample failed (see log)", self._clock())

    def redraw(self) -> None:
        theme = get_theme(self.ui.theme)
        try:
            height, width = self._display.size()
            frame = render(self.snapshot, theme, self.ui, width, height)
            self._display.draw(frame, theme)
        except Exception:
            logger.exception("render failed")

    # ── Main loop ─────────────────────────────────────────────────────

    def run(self) -> int:
        """Run until a quit key is pressed. Returns the process exit code."""
        self._running = True
        self._next_tick = self._clock()
        self.redraw()
        while self._running:
            timeout = max(0.0, self._next_tick - self._clock())
            key = self._display.wait_key(timeout)
            dirty = False
            if key is not None:
                command = decode_key(key)
                if command is not None:
                    self.handle(command)
                    dirty = True
                if not self._running:
                    break

            now = self._clock()
            if self._force_sample or now >= self._next_tick:
                self._force_sample = False
                self.tick()
                # The interval in force now governs the next wait
                self._next_tick = self._clock() + self.ui.refresh_rate
                dirty = True

            if self.ui.expire_status(now):
                dirty = True
            if dirty:
                self.redraw()
        return 0


def run_dashboard(
    config: Config,
    source: MetricSource,
    store: ConfigStore,
) -> int:
    """Open the terminal, run the loop, and always restore the terminal."""
    with Screen() as screen:
        return Dashboard(config, source, screen, store).run()
