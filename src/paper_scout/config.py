"""Configuration persistence: load, save, and preference updates."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from paper_scout.models import (
    ARXIV_API_MAX_RESULTS_LIMIT,
    CONFIG_APP_NAME,
    DEFAULT_ARXIV_TIMEOUT_SECONDS,
    DEFAULT_LLM_TIMEOUT_SECONDS,
    DEFAULT_PREFERENCE_MAX_RESULTS,
    DEFAULT_RECENCY_WINDOW_DAYS,
    DEFAULT_USER_AGENT,
    LIBRARY_PREVIEW_SIZE,
    LIST_MAX_LIMIT,
    MAX_RECENCY_WINDOW_DAYS,
    Preferences,
    UserConfig,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() returns a valid UserConfig for any input.
#
#   Field                              Rule                    Handler
#   ─────────────────────────────────  ──────────────────────  ───────────────────
#   preferences.default_max_results    1 ≤ x ≤ 200             _parse_preferences
#   preferences.recency_window_days    1 ≤ x ≤ 36500           _parse_preferences
#   preferences.default_categories[]   non-blank strings       _parse_preferences
#   preview_size                       1 ≤ x ≤ 100             _dict_to_config
#   timeouts                           x ≥ 1                   _dict_to_config
#   arxiv_throttle_seconds             x ≥ 0                   _coerce_float
#   scalar fields                      type-checked            _safe_get()
#
CONFIG_FILENAME = "config.json"
CORRUPT_SUFFIX = ".corrupt"


def get_config_dir() -> Path:
    """Per-user configuration directory (also holds library.db and debug.log)."""
    return Path(user_config_dir(CONFIG_APP_NAME))


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Uses platformdirs for cross-platform config directory:
    - Linux: ~/.config/paper-scout/config.json
    - macOS: ~/Library/Application Support/paper-scout/config.json
    - Windows: %APPDATA%/paper-scout/config.json
    """
    return get_config_dir() / CONFIG_FILENAME


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _coerce_int(value: Any, default: int, *, minimum: int, maximum: int | None = None) -> int:
    """Validate and clamp an integer setting; bools and non-ints fall back to default."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    value = max(minimum, value)
    if maximum is not None:
        value = min(value, maximum)
    return value


def _coerce_float(value: Any, default: float, *, minimum: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(minimum, float(value))


def _parse_categories(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    categories: list[str] = []
    for item in raw:
        if isinstance(item, str) and item.strip() and item.strip() not in categories:
            categories.append(item.strip())
    return categories


def _parse_preferences(data: dict[str, Any]) -> Preferences:
    raw = _safe_get(data, "preferences", {}, dict)
    return Preferences(
        default_max_results=_coerce_int(
            raw.get("default_max_results"),
            DEFAULT_PREFERENCE_MAX_RESULTS,
            minimum=1,
            maximum=ARXIV_API_MAX_RESULTS_LIMIT,
        ),
        recency_window_days=_coerce_int(
            raw.get("recency_window_days"),
            DEFAULT_RECENCY_WINDOW_DAYS,
            minimum=1,
            maximum=MAX_RECENCY_WINDOW_DAYS,
        ),
        default_categories=_parse_categories(raw.get("default_categories")),
    )


def _config_to_dict(config: UserConfig) -> dict[str, Any]:
    """Serialize UserConfig to a JSON-compatible dictionary."""
    prefs = config.preferences
    return {
        "version": config.version,
        "preferences": {
            "default_max_results": prefs.default_max_results,
            "recency_window_days": prefs.recency_window_days,
            "default_categories": list(prefs.default_categories),
        },
        "llm_command": config.llm_command,
        "llm_preset": config.llm_preset,
        "llm_timeout_seconds": config.llm_timeout_seconds,
        "arxiv_timeout_seconds": config.arxiv_timeout_seconds,
        "arxiv_throttle_seconds": config.arxiv_throttle_seconds,
        "user_agent": config.user_agent,
        "library_db_path": config.library_db_path,
        "preview_size": config.preview_size,
    }


def _dict_to_config(data: dict[str, Any]) -> UserConfig:
    """Deserialize a dictionary to UserConfig with type validation."""
    return UserConfig(
        preferences=_parse_preferences(data),
        llm_command=_safe_get(data, "llm_command", "", str),
        llm_preset=_safe_get(data, "llm_preset", "", str),
        llm_timeout_seconds=_coerce_int(
            data.get("llm_timeout_seconds"), DEFAULT_LLM_TIMEOUT_SECONDS, minimum=1
        ),
        arxiv_timeout_seconds=_coerce_int(
            data.get("arxiv_timeout_seconds"), DEFAULT_ARXIV_TIMEOUT_SECONDS, minimum=1
        ),
        arxiv_throttle_seconds=_coerce_float(
            data.get("arxiv_throttle_seconds"), 0.0, minimum=0.0
        ),
        user_agent=_safe_get(data, "user_agent", DEFAULT_USER_AGENT, str) or DEFAULT_USER_AGENT,
        library_db_path=_safe_get(data, "library_db_path", "", str),
        preview_size=_coerce_int(
            data.get("preview_size"), LIBRARY_PREVIEW_SIZE, minimum=1, maximum=LIST_MAX_LIMIT
        ),
        version=_safe_get(data, "version", 1, int),
    )


def _quarantine_corrupt_config(config_path: Path) -> None:
    """Move an unreadable config aside so the next save does not destroy it."""
    target = config_path.with_name(config_path.name + CORRUPT_SUFFIX)
    try:
        os.replace(config_path, target)
    except OSError as e:
        logger.warning("Could not move corrupt config to %s: %s", target, e)
        return
    logger.warning("Moved corrupt config to %s", target)


def load_config(config_path: Path | None = None) -> UserConfig:
    """Load configuration from disk.

    Returns default config if the file doesn't exist or is corrupted; a
    corrupted file is moved to ``config.json.corrupt`` and the returned
    config has ``config_defaulted`` set.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return UserConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        _quarantine_corrupt_config(config_path)
        return UserConfig(config_defaulted=True)
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return UserConfig(config_defaulted=True)

    if not isinstance(data, dict):
        logger.warning("Config file root is %s, not an object; using defaults", type(data).__name__)
        _quarantine_corrupt_config(config_path)
        return UserConfig(config_defaulted=True)
    return _dict_to_config(data)


def save_config(config: UserConfig, config_path: Path | None = None) -> bool:
    """Save configuration to disk atomically.

    Uses write-to-tempfile + os.replace() so a crash mid-write never leaves a
    partial config behind. Creates the config directory if it doesn't exist.
    Returns True on success, False on failure.
    """
    config_path = config_path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        json_str = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


def update_preferences(
    config: UserConfig,
    *,
    default_max_results: int | None = None,
    recency_window_days: int | None = None,
    default_categories: list[str] | None = None,
) -> Preferences:
    """Apply explicit preference changes to ``config`` (clamped like on load).

    Arguments left as None keep their current value; an empty category list
    clears the default categories.
    """
    prefs = config.preferences
    if default_max_results is not None:
        prefs.default_max_results = _coerce_int(
            default_max_results,
            prefs.default_max_results,
            minimum=1,
            maximum=ARXIV_API_MAX_RESULTS_LIMIT,
        )
    if recency_window_days is not None:
        prefs.recency_window_days = _coerce_int(
            recency_window_days,
            prefs.recency_window_days,
            minimum=1,
            maximum=MAX_RECENCY_WINDOW_DAYS,
        )
    if default_categories is not None:
        prefs.default_categories = _parse_categories(default_categories)
    return prefs


__all__ = [
    "CONFIG_FILENAME",
    "get_config_dir",
    "get_config_path",
    "load_config",
    "save_config",
    "update_preferences",
]
