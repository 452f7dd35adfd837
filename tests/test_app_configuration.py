from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from guardbot.configuration.app_configuration import DEFAULT_DB_PATH, AppConfig
from guardbot.moderation.escalation import EscalationPolicy


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def write_config(path: Path, payload) -> None:
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    write_config(
        config_path,
        {
            "database": {"path": str(tmp_path / "bot.db")},
            "escalation": {
                "warning_window_minutes": 30,
                "warning_threshold": 4,
                "timeout_duration_hours": 2,
                "timeout_window_days": 14,
                "timeout_threshold": 3,
                "suspension_duration_days": 3,
                "reset_warnings_on_failed_timeout": False,
            },
            "word_tiers": {"LOW": ["Frobnicate"], "high": "not-a-list"},
        },
    )

    config = AppConfig(config_path)

    assert config.database_path == (tmp_path / "bot.db").resolve()
    policy = config.escalation_policy
    assert policy.warning_window == timedelta(minutes=30)
    assert policy.warning_threshold == 4
    assert policy.timeout_duration == timedelta(hours=2)
    assert policy.timeout_window == timedelta(days=14)
    assert policy.timeout_threshold == 3
    assert policy.suspension_duration == timedelta(days=3)
    assert policy.reset_warnings_on_failed_timeout is False
    assert config.extra_tier_words == {"low": ["Frobnicate"]}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.get("anything", "fallback") == "fallback"
    assert config.database_path == DEFAULT_DB_PATH.resolve()
    assert config.escalation_policy == EscalationPolicy()
    assert config.extra_tier_words == {}


def test_app_config_partial_escalation_section_keeps_defaults(config_path: Path) -> None:
    write_config(config_path, {"escalation": {"warning_threshold": 5}})

    policy = AppConfig(config_path).escalation_policy

    assert policy.warning_threshold == 5
    assert policy.timeout_threshold == EscalationPolicy().timeout_threshold
    assert policy.warning_window == timedelta(hours=1)


def test_app_config_invalid_escalation_falls_back(config_path: Path) -> None:
    write_config(config_path, {"escalation": {"warning_threshold": 0}})

    assert AppConfig(config_path).escalation_policy == EscalationPolicy()


def test_app_config_non_mapping_yaml_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    write_config(config_path, {"escalation": {"warning_threshold": 2}})
    config = AppConfig(config_path)
    assert config.escalation_policy.warning_threshold == 2

    write_config(config_path, {"escalation": {"warning_threshold": 6}})
    config.reload()

    assert config.escalation_policy.warning_threshold == 6
