# File: config.py
"""Engine configuration loading for LifeTrack.

Game-balance content (XP amounts, level curve, achievement rule table) is
injected rather than hard-coded. It can be given as a dict or as a YAML file:

    xp_habit_completion: 10
    xp_task_completion: 15
    level_thresholds: [0, 100, 250, 500]
    achievement_rules:
      - type: streak_7
        requirement_kind: streak
        target_value: 7
        xp_reward: 75
    recurrence_anchor: due_date
    time_zone: Europe/Berlin
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from . import const
from .engines.gamification_engine import build_level_curve
from .exceptions import InvalidInputError
from .schemas import CONFIG_SCHEMA, validate

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .type_defs import EngineConfig


def build_engine_config(raw: Mapping[str, Any] | None = None) -> EngineConfig:
    """Validate raw settings and fill in defaults.

    A ``level_curve`` callable wins over ``level_thresholds``; with neither,
    the default threshold table is used.

    Raises:
        InvalidInputError: If any setting is invalid.
    """
    config: dict[str, Any] = validate(CONFIG_SCHEMA, dict(raw or {}))

    thresholds = config.pop(const.CONF_LEVEL_THRESHOLDS, None)
    if const.CONF_LEVEL_CURVE not in config:
        config[const.CONF_LEVEL_CURVE] = build_level_curve(
            thresholds or const.DEFAULT_LEVEL_THRESHOLDS
        )
    elif thresholds is not None:
        const.LOGGER.warning(
            "Both level_curve and level_thresholds configured; using level_curve"
        )

    const.LOGGER.debug(
        "Engine config: %s achievement rules, anchor=%s, time_zone=%s",
        len(config[const.CONF_ACHIEVEMENT_RULES]),
        config[const.CONF_RECURRENCE_ANCHOR],
        config[const.CONF_TIME_ZONE],
    )
    return config  # type: ignore[return-value]


def load_engine_config(path: str | Path) -> EngineConfig:
    """Read a YAML file into a validated EngineConfig.

    An empty file yields the default configuration.

    Raises:
        InvalidInputError: If the file is not a YAML mapping or a setting is
            invalid.
        OSError: If the file cannot be read.
    """
    config_path = Path(path)
    const.LOGGER.debug("Loading engine config from %s", config_path)
    with config_path.open(encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle)
        except yaml.YAMLError as err:
            raise InvalidInputError(str(config_path), f"invalid YAML: {err}") from err

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidInputError(str(config_path), "top level must be a mapping")
    return build_engine_config(raw)
