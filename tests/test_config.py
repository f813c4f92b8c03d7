"""Tests for the TOML-backed events configuration."""

from pathlib import Path

import pytest

from eventide_core.config import CONFIG_FILE_NAME, ConfigStore, default_config_path
from eventide_core.errors import ConfigError


def test_config_store_round_trips(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    store = ConfigStore(path=config_file)
    store.set("key", "value")
    assert store.get("key") == "value"
    assert store.get("missing", default="fallback") == "fallback"


def test_missing_file_uses_defaults(tmp_path: Path) -> None:
    store = ConfigStore(path=tmp_path / "absent.toml", env={}).load()
    assert store.as_dict() == {
        "enabled": True,
        "global_priority": False,
        "log_dispatch": True,
    }


def test_events_section_overrides_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        "[events]\nglobal_priority = true\nlog_dispatch = false\nchannel = \"audit\"\n",
        encoding="utf-8",
    )

    store = ConfigStore(path=config_file, env={}).load()

    assert store.get("global_priority") is True
    assert store.get("log_dispatch") is False
    assert store.get("enabled") is True
    assert store.get("channel") == "audit"


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[events]\nenabled = true\n", encoding="utf-8")

    store = ConfigStore(
        path=config_file,
        env={"EVENTIDE_EVENTS_ENABLED": "off", "EVENTIDE_GLOBAL_PRIORITY": "Yes"},
    ).load()

    assert store.get("enabled") is False
    assert store.get("global_priority") is True


def test_process_environment_is_used_by_default(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("EVENTIDE_GLOBAL_PRIORITY", "1")
    store = ConfigStore(path=tmp_path / "config.toml").load()
    assert store.get("global_priority") is True


@pytest.mark.parametrize(
    "content",
    [
        "[events\nenabled = true\n",
        "events = 3\n",
        "[events]\nenabled = \"yes\"\n",
    ],
)
def test_malformed_config_raises(tmp_path: Path, content: str) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigStore(path=config_file, env={}).load()


def test_invalid_environment_flag_raises(tmp_path: Path) -> None:
    store = ConfigStore(path=tmp_path / "config.toml", env={"EVENTIDE_EVENTS_ENABLED": "maybe"})
    with pytest.raises(ConfigError):
        store.load()


def test_default_config_path_points_at_toml() -> None:
    assert default_config_path().name == CONFIG_FILE_NAME


def test_listeners_table_switches_individual_listeners(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        "[events.listeners]\ncache_invalidation = false\nsecurity_monitoring = true\n",
        encoding="utf-8",
    )

    store = ConfigStore(path=config_file, env={}).load()

    assert not store.listener_enabled("cache_invalidation")
    assert store.listener_enabled("security_monitoring")
    assert store.listener_enabled("performance_monitoring")


@pytest.mark.parametrize(
    "content",
    [
        "[events]\nlisteners = 1\n",
        "[events.listeners]\ncache_invalidation = \"off\"\n",
    ],
)
def test_malformed_listeners_table_raises(tmp_path: Path, content: str) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigStore(path=config_file, env={}).load()
