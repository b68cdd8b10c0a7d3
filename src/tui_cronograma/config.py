"""Project configuration (tomlkit) and tunable settings (YAML)."""

from __future__ import annotations

import getpass
import logging
import os
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
import yaml

from tui_cronograma.models import (
    DATE_FORMAT_PRESETS,
    DEFAULT_DATE_FORMAT,
    DependencyPolicy,
    Role,
    ScheduleConfig,
)
from tui_cronograma.workdays import DEFAULT_WEEKEND_DAYS

logger = logging.getLogger(__name__)

CONFIG_DIR = ".cronograma"
CONFIG_FILE = "config.toml"
SETTINGS_FILE = "settings.yaml"


def _get_config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / CONFIG_FILE


def _parse_policy(value: Any, default: DependencyPolicy) -> DependencyPolicy:
    try:
        return DependencyPolicy(str(value))
    except ValueError:
        logger.warning("Unknown dependency policy %r, using %s", value, default.value)
        return default


def _parse_role(value: Any, default: Role) -> Role:
    try:
        return Role(str(value))
    except ValueError:
        logger.warning("Unknown role %r, using %s", value, default.value)
        return default


def load_config(project_dir: Path) -> ScheduleConfig:
    """Load project configuration from .cronograma/config.toml."""
    config_path = _get_config_path(project_dir)
    config = ScheduleConfig()

    if not config_path.exists():
        return config

    try:
        doc = tomlkit.parse(config_path.read_text(encoding="utf-8"))
    except (OSError, TOMLKitError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return config

    # [project]
    project_section = doc.get("project", {})
    config.name = str(project_section.get("name", ""))
    config.schedule_file = str(project_section.get("schedule_file", config.schedule_file))
    raw_fmt = str(project_section.get("date_format", DEFAULT_DATE_FORMAT))
    config.date_format = raw_fmt if raw_fmt in DATE_FORMAT_PRESETS else DEFAULT_DATE_FORMAT
    config.default_role = _parse_role(
        project_section.get("default_role", config.default_role.value), Role.VIEWER
    )

    # [policy]
    policy_section = doc.get("policy", {})
    config.drag_policy = _parse_policy(
        policy_section.get("drag", config.drag_policy.value), DependencyPolicy.REJECT
    )
    config.reschedule_policy = _parse_policy(
        policy_section.get("reschedule", config.reschedule_policy.value),
        DependencyPolicy.CASCADE,
    )

    # [users]
    users_section = doc.get("users", {})
    if isinstance(users_section, dict):
        for username, role in users_section.items():
            config.users[str(username)] = _parse_role(role, config.default_role)

    return config


def save_config(project_dir: Path, config: ScheduleConfig) -> None:
    """Save project configuration to .cronograma/config.toml."""
    config_path = _get_config_path(project_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    doc = tomlkit.document()

    project_table = tomlkit.table()
    project_table.add("name", config.name)
    project_table.add("schedule_file", config.schedule_file)
    project_table.add("date_format", config.date_format)
    project_table.add("default_role", config.default_role.value)
    doc.add("project", project_table)

    policy_table = tomlkit.table()
    policy_table.add("drag", config.drag_policy.value)
    policy_table.add("reschedule", config.reschedule_policy.value)
    doc.add("policy", policy_table)

    if config.users:
        users_table = tomlkit.table()
        for username, role in config.users.items():
            users_table.add(username, role.value)
        doc.add("users", users_table)

    config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    logger.info("Saved config to %s", config_path)


# ── Identity ──


def current_username() -> str:
    """OS user name of whoever runs the session."""
    for var in ("USERNAME", "USER"):
        value = os.environ.get(var)
        if value:
            return value
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def resolve_role(config: ScheduleConfig, username: str | None = None) -> Role:
    username = username or current_username()
    role = config.role_for(username)
    logger.info("User %s mapped to role %s", username, role.value)
    return role


# ── Settings (YAML) ──

DEFAULT_SETTINGS_PATH = Path(__file__).with_name("default_settings.yaml")


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable settings %s: %s", path, e)
        return {}
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Ignoring settings %s: top level is not a mapping", path)
        return {}
    return loaded


def _merged(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Nested mappings merge key by key; any other value replaces the default."""
    merged = dict(defaults)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _merged(current, value)
        merged[key] = value
    return merged


def load_settings(project_dir: Path | None = None) -> dict[str, Any]:
    """Bundled defaults, overlaid with ``.cronograma/settings.yaml`` when present."""
    settings = _read_yaml_mapping(DEFAULT_SETTINGS_PATH)
    if project_dir is None:
        return settings
    project_file = project_dir / CONFIG_DIR / SETTINGS_FILE
    if not project_file.is_file():
        return settings
    return _merged(settings, _read_yaml_mapping(project_file))


def get_weekend_days(settings: dict[str, Any]) -> tuple[int, ...]:
    """Weekday numbers (Monday=0) treated as weekend."""
    raw = settings.get("weekend_days", list(DEFAULT_WEEKEND_DAYS))
    if not isinstance(raw, list):
        return DEFAULT_WEEKEND_DAYS
    days = []
    for item in raw:
        try:
            day = int(item)
        except (ValueError, TypeError):
            continue
        if 0 <= day <= 6:
            days.append(day)
    return tuple(days)


def get_warning_days(settings: dict[str, Any]) -> int:
    """How many days ahead holidays are announced."""
    try:
        return max(0, int(settings.get("holiday_warning_days", 7)))
    except (ValueError, TypeError):
        return 7
