"""Tests for sysdash.state."""

from __future__ import annotations

import pytest

from sysdash.config import MAX_REFRESH, MIN_REFRESH, Config
from sysdash.state import STATUS_SECONDS, UiState
from sysdash.themes import THEME_NAMES


def _ui(refresh: float = 1.0, theme: str = "hacker") -> UiState:
    return UiState.from_config(Config(refresh_rate=refresh, theme=theme))


class TestFromConfig:
    def test_copies_runtime_fields(self) -> None:
        cfg = Config(refresh_rate=2.0, theme="nord", compact_mode=True, show_graphs=False, gpu_enabled=False)
        ui = UiState.from_config(cfg)
        assert ui.theme == "nord"
        assert ui.refresh_rate == 2.0
        assert ui.compact is True
        assert ui.show_graphs is False
        assert ui.gpu_enabled is False
        assert ui.show_help is False
        assert ui.status is None

    def test_round_trip_keeps_other_fields(self) -> None:
        cfg = Config(graph_history=120)
        ui = UiState.from_config(cfg)
        ui.cycle_theme()
        saved = ui.to_config(cfg)
        assert saved.graph_history == 120
        assert saved.theme == "matrix"


class TestThemeCycle:
    def test_full_cycle_returns_to_start(self) -> None:
        ui = _ui()
        seen = [ui.theme]
        for _ in range(len(THEME_NAMES)):
            seen.append(ui.cycle_theme())
        assert seen[-1] == "hacker"
        assert set(seen) == set(THEME_NAMES)

    def test_unknown_theme_restarts_cycle(self) -> None:
        ui = _ui()
        ui.theme = "no-such-theme"
        assert ui.cycle_theme() == THEME_NAMES[0]


class TestRefreshRate:
    def test_faster_steps_down_to_floor(self) -> None:
        ui = _ui(1.0)
        assert ui.faster() == 0.5
        assert ui.faster() == MIN_REFRESH
        assert ui.faster() == MIN_REFRESH

    def test_slower_steps_up_to_cap(self) -> None:
        ui = _ui(9.0)
        assert ui.slower() == 9.5
        assert ui.slower() == MAX_REFRESH
        assert ui.slower() == MAX_REFRESH

    @pytest.mark.parametrize("presses", [1, 5, 40])
    def test_always_within_bounds(self, presses: int) -> None:
        ui = _ui(3.0)
        for _ in range(presses):
            ui.slower()
            assert MIN_REFRESH <= ui.refresh_rate <= MAX_REFRESH
        for _ in range(presses * 2):
            ui.faster()
            assert MIN_REFRESH <= ui.refresh_rate <= MAX_REFRESH


class TestHelpAndStatus:
    def test_toggle_help(self) -> None:
        ui = _ui()
        ui.toggle_help()
        assert ui.show_help
        ui.toggle_help()
        assert not ui.show_help

    def test_status_expires(self) -> None:
        ui = _ui()
        ui.set_status("Config saved", now=10.0)
        assert not ui.expire_status(10.0 + STATUS_SECONDS - 0.1)
        assert ui.status == "Config saved"
        assert ui.expire_status(10.0 + STATUS_SECONDS)
        assert ui.status is None
        assert not ui.expire_status(100.0)
