"""Tests for sysdash.config."""

from __future__ import annotations

import stat
import tomllib
from pathlib import Path

import pytest

from sysdash.config import (
    DEFAULT_CONFIG,
    MAX_REFRESH,
    MIN_GRAPH_HISTORY,
    MIN_REFRESH,
    Config,
    ConfigStore,
    config_from_dict,
    default_config_path,
    dump_config,
    load_config,
)


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the default location away from the real user config
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


class TestDefaults:
    def test_default_values(self) -> None:
        assert DEFAULT_CONFIG.refresh_rate == 1.0
        assert DEFAULT_CONFIG.theme == "hacker"
        assert DEFAULT_CONFIG.gpu_enabled is True
        assert DEFAULT_CONFIG.compact_mode is False
        assert DEFAULT_CONFIG.show_graphs is True
        assert DEFAULT_CONFIG.graph_history == 60

    def test_missing_default_file_is_silent(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert load_config(None) == DEFAULT_CONFIG
        assert capsys.readouterr().err == ""

    def test_default_path_follows_xdg(self, tmp_path: Path) -> None:
        assert default_config_path() == tmp_path / "xdg" / "sysdash" / "config.toml"

    def test_default_path_without_xdg(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("XDG_CONFIG_HOME")
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_config_path() == tmp_path / ".config" / "sysdash" / "config.toml"


class TestTomlOverlay:
    def test_overrides_fields(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('refresh_rate = 2.5\ntheme = "nord"\ncompact_mode = true\n')
        cfg = load_config(toml_file)
        assert cfg.refresh_rate == 2.5
        assert cfg.theme == "nord"
        assert cfg.compact_mode is True
        # Omitted fields keep defaults
        assert cfg.graph_history == 60

    def test_integer_refresh_accepted(self) -> None:
        assert config_from_dict({"refresh_rate": 2}).refresh_rate == 2.0

    def test_unknown_keys_ignored(self) -> None:
        assert config_from_dict({"colour": "red"}) == DEFAULT_CONFIG

    @pytest.mark.parametrize(
        "value, expected",
        [(0.01, MIN_REFRESH), (60.0, MAX_REFRESH), (3.0, 3.0)],
    )
    def test_refresh_clamped(self, value: float, expected: float) -> None:
        assert config_from_dict({"refresh_rate": value}).refresh_rate == expected

    def test_graph_history_floor(self) -> None:
        assert config_from_dict({"graph_history": 0}).graph_history == MIN_GRAPH_HISTORY

    def test_wrong_type_warns_and_keeps_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = config_from_dict({"gpu_enabled": "yes", "graph_history": True})
        assert cfg.gpu_enabled is True
        assert cfg.graph_history == 60
        err = capsys.readouterr().err
        assert "sysdash: warning: ignoring gpu_enabled" in err
        assert "graph_history" in err

    def test_unknown_theme_falls_back(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert config_from_dict({"theme": "solarized-pink"}).theme == "hacker"
        assert "unknown theme" in capsys.readouterr().err


class TestBrokenFiles:
    def test_missing_explicit_path_warns(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg == DEFAULT_CONFIG
        assert "config file not found" in capsys.readouterr().err

    def test_invalid_toml_warns(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        assert load_config(bad_file) == DEFAULT_CONFIG
        assert "invalid TOML" in capsys.readouterr().err


class TestOverrides:
    def test_cli_overrides(self) -> None:
        cfg = DEFAULT_CONFIG.with_overrides(refresh=0.5, theme="ocean", no_gpu=True, compact=True)
        assert cfg == Config(
            refresh_rate=0.5, theme="ocean", gpu_enabled=False, compact_mode=True
        )

    def test_no_overrides_is_identity(self) -> None:
        assert DEFAULT_CONFIG.with_overrides() == DEFAULT_CONFIG

    def test_override_refresh_is_clamped(self) -> None:
        assert DEFAULT_CONFIG.with_overrides(refresh=0.0).refresh_rate == MIN_REFRESH


class TestDumpConfig:
    def test_valid_toml(self) -> None:
        parsed = tomllib.loads(dump_config())
        assert parsed["refresh_rate"] == 1.0
        assert parsed["theme"] == "hacker"
        assert parsed["graph_history"] == 60

    def test_reloads_to_same_config(self) -> None:
        cfg = Config(refresh_rate=0.25, theme="tokyo", show_graphs=False, graph_history=120)
        assert config_from_dict(tomllib.loads(dump_config(cfg))) == cfg


class TestConfigStore:
    def test_save_then_load(self, tmp_path: Path) -> None:
        store = ConfigStore(tmp_path / "nested" / "config.toml")
        cfg = Config(refresh_rate=0.5, theme="gruvbox")
        path = store.save(cfg)
        assert path == tmp_path / "nested" / "config.toml"
        assert store.load() == cfg

    def test_save_leaves_no_temp_files(self, tmp_path: Path) -> None:
        store = ConfigStore(tmp_path / "config.toml")
        store.save(DEFAULT_CONFIG)
        store.save(DEFAULT_CONFIG)
        assert [p.name for p in tmp_path.iterdir()] == ["config.toml"]

    def test_save_keeps_existing_permissions(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("theme = \"nord\"\n")
        path.chmod(0o644)
        ConfigStore(path).save(Config(theme="ocean"))
        assert stat.S_IMODE(path.stat().st_mode) == 0o644
        assert ConfigStore(path).load().theme == "ocean"

    def test_save_failure_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = ConfigStore(blocker / "config.toml")
        with pytest.raises(OSError):
            store.save(DEFAULT_CONFIG)

    def test_default_store_uses_xdg(self, tmp_path: Path) -> None:
        store = ConfigStore()
        assert not store.explicit
        assert store.path == tmp_path / "xdg" / "sysdash" / "config.toml"
        assert store.load() == DEFAULT_CONFIG

    def test_init_writes_once(self, tmp_path: Path) -> None:
        store = ConfigStore(tmp_path / "config.toml")
        assert store.init() is True
        store.save(Config(theme="nord"))
        assert store.init() is False
        assert store.load().theme == "nord"
