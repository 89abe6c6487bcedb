"""Configuration loading and saving for sysdash.

Loads preferences from a TOML file with sensible defaults.
Search order: explicit --config path → $XDG_CONFIG_HOME/sysdash/config.toml
→ defaults only. A missing or broken file never blocks startup: sysdash
warns on stderr and carries on with defaults.
"""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import tomllib
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from sysdash.themes import DEFAULT_THEME, THEME_NAMES

MIN_REFRESH = 0.25
MAX_REFRESH = 10.0
REFRESH_STEP = 0.5
MIN_GRAPH_HISTORY = 2


@dataclass(frozen=True)
class Config:
    refresh_rate: float = 1.0
    theme: str = DEFAULT_THEME
    gpu_enabled: bool = True
    compact_mode: bool = False
    show_graphs: bool = True
    graph_history: int = 60

    def with_overrides(
        self,
        refresh: float | None = None,
        theme: str | None = None,
        no_gpu: bool = False,
        compact: bool = False,
    ) -> Config:
        """Apply command-line overrides for this run only."""
        cfg = self
        if refresh is not None:
            cfg = replace(cfg, refresh_rate=clamp_refresh(refresh))
        if theme is not None:
            cfg = replace(cfg, theme=_checked_theme(theme))
        if no_gpu:
            cfg = replace(cfg, gpu_enabled=False)
        if compact:
            cfg = replace(cfg, compact_mode=True)
        return cfg


DEFAULT_CONFIG = Config()


def _warn(message: str) -> None:
    print(f"sysdash: warning: {message}", file=sys.stderr)


def clamp_refresh(value: float) -> float:
    return min(MAX_REFRESH, max(MIN_REFRESH, float(value)))


def _checked_theme(name: str) -> str:
    if name in THEME_NAMES:
        return name
    _warn(f"unknown theme {name!r}, using {DEFAULT_THEME!r}")
    return DEFAULT_THEME


def default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "sysdash" / "config.toml"


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a Config from parsed TOML, keeping defaults for bad fields."""
    values: dict[str, Any] = {}
    for f in fields(Config):
        if f.name not in data:
            continue
        value = data[f.name]
        default = getattr(DEFAULT_CONFIG, f.name)
        if isinstance(default, bool):
            ok = isinstance(value, bool)
        elif isinstance(default, float):
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        elif isinstance(default, int):
            ok = isinstance(value, int) and not isinstance(value, bool)
        else:
            ok = isinstance(value, type(default))
        if not ok:
            _warn(f"ignoring {f.name} = {value!r} (expected {type(default).__name__})")
            continue
        values[f.name] = value

    cfg = replace(DEFAULT_CONFIG, **values)
    return replace(
        cfg,
        refresh_rate=clamp_refresh(cfg.refresh_rate),
        theme=_checked_theme(cfg.theme),
        graph_history=max(MIN_GRAPH_HISTORY, cfg.graph_history),
    )


def load_config(path: Path | None = None) -> Config:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location.

    Returns:
        The merged configuration. Falls back to defaults (with a warning)
        if the file is missing or is not valid TOML.
    """
    explicit = path is not None
    if path is None:
        path = default_config_path()

    if not path.is_file():
        if explicit:
            _warn(f"config file not found: {path}, using defaults")
        return DEFAULT_CONFIG

    try:
        user_config = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        _warn(f"ignoring invalid TOML in {path}: {e}")
        return DEFAULT_CONFIG
    except OSError as e:
        _warn(f"cannot read {path}: {e}")
        return DEFAULT_CONFIG
    return config_from_dict(user_config)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return repr(value)


def dump_config(config: Config = DEFAULT_CONFIG) -> str:
    """Return *config* as a commented TOML document."""
    lines = [
        "# sysdash configuration",
        f"# Location: {default_config_path()}",
        "",
        f"# Seconds between samples ({MIN_REFRESH} - {MAX_REFRESH})",
        f"refresh_rate = {_toml_value(config.refresh_rate)}",
        "",
        f"# One of: {', '.join(THEME_NAMES)}",
        f"theme = {_toml_value(config.theme)}",
        "",
    ]
    for key, value in asdict(config).items():
        if key in ("refresh_rate", "theme"):
            continue
        lines.append(f"{key} = {_toml_value(value)}")
    return "\n".join(lines) + "\n"


class ConfigStore:
    """Load-on-start, save-on-demand persistence for one config file."""

    def __init__(self, path: Path | None = None) -> None:
        self.explicit = path is not None
        self.path = path if path is not None else default_config_path()

    def load(self) -> Config:
        return load_config(self.path if self.explicit else None)

    def save(self, config: Config) -> Path:
        """Atomically write *config*, keeping the permissions of an existing file.

        Raises ``OSError`` on failure.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix=".config-", suffix=".toml", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dump_config(config))
            if self.path.exists():
                shutil.copymode(self.path, tmp)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return self.path

    def init(self) -> bool:
        """Write the default config if none exists. True if a file was created."""
        if self.path.exists():
            return False
        self.save(DEFAULT_CONFIG)
        return True
