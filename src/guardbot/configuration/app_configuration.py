from __future__ import annotations
from datetime import timedelta
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from guardbot.moderation.escalation import EscalationPolicy
from guardbot.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()
DEFAULT_DB_PATH = Path("./data/guardbot.db")


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the sections the bot reads: the database location,
    escalation policy overrides, and extra words for the built-in tier lists.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file and replace the in-memory cache.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Location of the SQLite database file (``database.path``)."""
        raw = self._section("database").get("path")
        return Path(raw).resolve() if raw else DEFAULT_DB_PATH.resolve()

    @property
    def escalation_policy(self) -> EscalationPolicy:
        """Escalation thresholds and durations, defaults overridden by the ``escalation`` section.

        Invalid values are logged and the built-in policy is used instead.
        """
        section = self._section("escalation")
        defaults = EscalationPolicy()
        try:
            return EscalationPolicy(
                warning_window=timedelta(minutes=float(section.get("warning_window_minutes", defaults.warning_window.total_seconds() / 60))),
                warning_threshold=int(section.get("warning_threshold", defaults.warning_threshold)),
                timeout_duration=timedelta(hours=float(section.get("timeout_duration_hours", defaults.timeout_duration.total_seconds() / 3600))),
                timeout_window=timedelta(days=float(section.get("timeout_window_days", defaults.timeout_window.days))),
                timeout_threshold=int(section.get("timeout_threshold", defaults.timeout_threshold)),
                suspension_duration=timedelta(days=float(section.get("suspension_duration_days", defaults.suspension_duration.days))),
                reset_warnings_on_failed_timeout=bool(
                    section.get("reset_warnings_on_failed_timeout", defaults.reset_warnings_on_failed_timeout)
                ),
            )
        except (TypeError, ValueError) as exc:
            logger.error("[APP CONFIGURATION] Invalid escalation settings, using defaults: %s", exc)
            return defaults

    @property
    def extra_tier_words(self) -> Dict[str, List[str]]:
        """Additional words per tier name from the ``word_tiers`` section."""
        result: Dict[str, List[str]] = {}
        for tier, words in self._section("word_tiers").items():
            if isinstance(words, list):
                result[str(tier).lower()] = [str(word) for word in words]
        return result


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
