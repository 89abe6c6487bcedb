"""Runtime UI state owned by the event loop."""

from __future__ import annotations

from dataclasses import dataclass, replace

from sysdash.config import MAX_REFRESH, MIN_REFRESH, REFRESH_STEP, Config
from sysdash.themes import next_theme

STATUS_SECONDS = 3.0


@dataclass
class UiState:
    theme: str
    refresh_rate: float
    compact: bool = False
    show_graphs: bool = True
    gpu_enabled: bool = True
    show_help: bool = False
    status: str | None = None
    status_until: float = 0.0

    @classmethod
    def from_config(cls, config: Config) -> UiState:
        return cls(
            theme=config.theme,
            refresh_rate=config.refresh_rate,
            compact=config.compact_mode,
            show_graphs=config.show_graphs,
            gpu_enabled=config.gpu_enabled,
        )

    def to_config(self, base: Config) -> Config:
        """*base* with the runtime-adjustable fields replaced by current values."""
        return replace(
            base,
            theme=self.theme,
            refresh_rate=self.refresh_rate,
            compact_mode=self.compact,
            show_graphs=self.show_graphs,
            gpu_enabled=self.gpu_enabled,
        )

    def cycle_theme(self) -> str:
        self.theme = next_theme(self.theme)
        return self.theme

    def toggle_help(self) -> None:
        self.show_help = not self.show_help

    def faster(self) -> float:
        """Shorten the refresh interval by one step, floored at the minimum."""
        self.refresh_rate = max(MIN_REFRESH, round(self.refresh_rate - REFRESH_STEP, 2))
        return self.refresh_rate

    def slower(self) -> float:
        """Lengthen the refresh interval by one step, capped at the maximum."""
        self.refresh_rate = min(MAX_REFRESH, round(self.refresh_rate + REFRESH_STEP, 2))
        return self.refresh_rate

    def set_status(self, message: str, now: float, seconds: float = STATUS_SECONDS) -> None:
        self.status = message
        self.status_until = now + seconds

    def expire_status(self, now: float) -> bool:
        """Clear an expired status message; True if one was cleared."""
        if self.status is not None and now >= self.status_until:
            self.status = None
            return True
        return False
