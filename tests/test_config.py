"""Tests for engine configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from lifetrack import const
from lifetrack.config import build_engine_config, load_engine_config
from lifetrack.exceptions import InvalidInputError


class TestBuildEngineConfig:
    """Test defaults and validation of raw settings."""

    def test_defaults(self) -> None:
        config = build_engine_config()

        assert config[const.CONF_XP_HABIT_COMPLETION] == const.DEFAULT_XP_HABIT_COMPLETION
        assert config[const.CONF_XP_TASK_COMPLETION] == const.DEFAULT_XP_TASK_COMPLETION
        assert config[const.CONF_COPY_LINKED_TRANSACTION] is False
        assert config[const.CONF_RECURRENCE_ANCHOR] == const.RECURRENCE_ANCHOR_DUE_DATE
        assert len(config[const.CONF_ACHIEVEMENT_RULES]) == len(
            const.DEFAULT_ACHIEVEMENT_RULES
        )
        assert config[const.CONF_LEVEL_CURVE](2) == const.DEFAULT_LEVEL_THRESHOLDS[1]

    def test_thresholds_build_curve(self) -> None:
        config = build_engine_config({const.CONF_LEVEL_THRESHOLDS: [0, 50, 150]})
        assert const.CONF_LEVEL_THRESHOLDS not in config
        assert config[const.CONF_LEVEL_CURVE](3) == 150
        assert config[const.CONF_LEVEL_CURVE](4) == 250

    def test_callable_curve_wins(self) -> None:
        config = build_engine_config(
            {
                const.CONF_LEVEL_CURVE: lambda level: level * 10,
                const.CONF_LEVEL_THRESHOLDS: [0, 1],
            }
        )
        assert config[const.CONF_LEVEL_CURVE](5) == 50

    @pytest.mark.parametrize(
        ("raw", "field"),
        [
            ({const.CONF_XP_TASK_COMPLETION: -1}, const.CONF_XP_TASK_COMPLETION),
            ({const.CONF_LEVEL_THRESHOLDS: [0, 10, 10]}, const.CONF_LEVEL_THRESHOLDS),
            ({const.CONF_RECURRENCE_ANCHOR: "whenever"}, const.CONF_RECURRENCE_ANCHOR),
            ({const.CONF_TIME_ZONE: "Mars/Olympus"}, const.CONF_TIME_ZONE),
        ],
    )
    def test_invalid(self, raw: dict, field: str) -> None:
        with pytest.raises(InvalidInputError) as err:
            build_engine_config(raw)
        assert err.value.field.startswith(field)

    def test_duplicate_rule_types(self) -> None:
        rule = {"type": "x", "requirement_kind": const.REQUIREMENT_LEVEL}
        with pytest.raises(InvalidInputError, match="duplicate"):
            build_engine_config({const.CONF_ACHIEVEMENT_RULES: [rule, rule]})

    def test_unknown_requirement_kind(self) -> None:
        rule = {"type": "x", "requirement_kind": "moon_phase"}
        with pytest.raises(InvalidInputError):
            build_engine_config({const.CONF_ACHIEVEMENT_RULES: [rule]})


class TestLoadEngineConfig:
    """Test YAML loading."""

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "lifetrack.yaml"
        path.write_text(
            "xp_habit_completion: 5\n"
            "level_thresholds: [0, 20, 60]\n"
            "time_zone: Europe/Berlin\n"
            "achievement_rules:\n"
            "  - type: streak_7\n"
            "    requirement_kind: streak\n"
            "    target_value: 7\n"
            "    xp_reward: 75\n",
            encoding="utf-8",
        )

        config = load_engine_config(path)

        assert config[const.CONF_XP_HABIT_COMPLETION] == 5
        assert config[const.CONF_TIME_ZONE] == "Europe/Berlin"
        assert config[const.CONF_LEVEL_CURVE](2) == 20
        assert config[const.CONF_ACHIEVEMENT_RULES] == [
            {
                "type": "streak_7",
                "requirement_kind": const.REQUIREMENT_STREAK,
                "target_value": 7,
                "xp_reward": 75,
            }
        ]

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        config = load_engine_config(path)
        assert config[const.CONF_XP_HABIT_COMPLETION] == const.DEFAULT_XP_HABIT_COMPLETION

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(InvalidInputError, match="mapping"):
            load_engine_config(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("xp_habit_completion: [1, 2\n", encoding="utf-8")
        with pytest.raises(InvalidInputError, match="invalid YAML"):
            load_engine_config(path)
