"""Unit tests for edgy.config."""

import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from edgy.config import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    EdgyConfig,
    EdgyConfigLoader,
    IgnoreRule,
    load_config,
)
from edgy.errors import ConfigError


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    """Keep a developer's EDGY_CONFIG out of the tests."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestEdgyConfig:
    """Tests for EdgyConfig."""

    def test_defaults(self):
        """Test default values."""
        config = EdgyConfig()

        assert config.knowledge.directory is None
        assert config.analysis.dedupe_within_flows is True
        assert config.analysis.min_severity_level.value == "info"
        assert config.placeholder.width == 375
        assert config.output.format == "json"
        assert config.logging.level == "INFO"

    def test_dict_round_trip(self):
        """Test camelCase keys survive a round trip."""
        config = EdgyConfig.from_dict(
            {
                "knowledge": {"directory": "/corpus", "rulesDir": "r"},
                "analysis": {"minSeverity": "warning", "flowChecks": False},
                "placeholder": {"width": 1440, "height": 900},
                "ignoreRules": [{"rule": "a/b", "reason": "r", "screens": ["Login*"]}],
            }
        )
        data = config.to_dict()

        assert data["knowledge"]["rulesDir"] == "r"
        assert data["analysis"]["flowChecks"] is False
        assert data["placeholder"] == {"width": 1440, "height": 900}
        assert EdgyConfig.from_dict(data) == config

    def test_validate_rejects_bad_severity(self):
        """Test unknown severities are rejected."""
        config = EdgyConfig.from_dict({"analysis": {"minSeverity": "urgent"}})
        with pytest.raises(ConfigError, match="minSeverity"):
            config.validate()

    def test_validate_rejects_bad_format(self):
        """Test unknown output formats are rejected."""
        config = EdgyConfig.from_dict({"output": {"format": "xml"}})
        with pytest.raises(ConfigError, match="output.format"):
            config.validate()


class TestIgnoreRules:
    """Tests for rule ignores."""

    def test_plain_ignore(self):
        """Test an ignore without screens applies everywhere."""
        config = EdgyConfig(ignore_rules=[IgnoreRule(rule="a/b", reason="r")])
        assert config.is_rule_ignored("a/b")
        assert config.is_rule_ignored("a/b", "Any")
        assert not config.is_rule_ignored("a/c")

    def test_screen_globs(self):
        """Test screen globs match case-insensitively."""
        config = EdgyConfig(
            ignore_rules=[IgnoreRule(rule="a/b", reason="r", screens=["login*"])]
        )
        assert config.is_rule_ignored("a/b", "Login - Error")
        assert not config.is_rule_ignored("a/b", "Dashboard")
        assert not config.is_rule_ignored("a/b")

    def test_expiry(self):
        """Test expired ignores stop applying."""
        past = (date.today() - timedelta(days=1)).isoformat()
        future = (date.today() + timedelta(days=30)).isoformat()
        config = EdgyConfig(
            ignore_rules=[
                IgnoreRule(rule="a/old", reason="r", expiry=past),
                IgnoreRule(rule="a/new", reason="r", expiry=future),
            ]
        )
        assert not config.is_rule_ignored("a/old")
        assert config.is_rule_ignored("a/new")

    def test_invalid_expiry_still_ignores(self):
        """Test an unparsable expiry is treated as no expiry."""
        config = EdgyConfig(
            ignore_rules=[IgnoreRule(rule="a/b", reason="r", expiry="someday")]
        )
        assert config.is_rule_ignored("a/b")


class TestEdgyConfigLoader:
    """Tests for EdgyConfigLoader."""

    def test_defaults_without_files(self, tmp_path):
        """Test defaults when no config exists."""
        assert EdgyConfigLoader(tmp_path).load() == EdgyConfig()

    def test_project_file(self, tmp_path):
        """Test edgy.config.json in the project root is used."""
        _write(tmp_path / CONFIG_FILENAME, {"output": {"indent": 4}})
        assert load_config(tmp_path).output.indent == 4

    def test_env_var_beats_project_file(self, tmp_path, monkeypatch):
        """Test EDGY_CONFIG takes precedence over the project file."""
        _write(tmp_path / CONFIG_FILENAME, {"output": {"indent": 4}})
        env_file = _write(tmp_path / "env.json", {"output": {"indent": 8}})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_file))

        assert EdgyConfigLoader(tmp_path).load().output.indent == 8

    def test_missing_env_file_falls_through(self, tmp_path, monkeypatch):
        """Test a dangling EDGY_CONFIG falls back to the project file."""
        _write(tmp_path / CONFIG_FILENAME, {"output": {"indent": 4}})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.json"))

        assert EdgyConfigLoader(tmp_path).load().output.indent == 4

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        """Test an explicit path beats the environment and project file."""
        env_file = _write(tmp_path / "env.json", {"output": {"indent": 8}})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_file))
        explicit = _write(tmp_path / "explicit.json", {"output": {"indent": 1}})

        assert EdgyConfigLoader(tmp_path).load(explicit).output.indent == 1

    def test_explicit_missing_path(self, tmp_path):
        """Test a missing explicit path is an error."""
        with pytest.raises(ConfigError, match="not found") as exc_info:
            EdgyConfigLoader(tmp_path).load(tmp_path / "nope.json")
        assert exc_info.value.exit_code == 1

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON is a ConfigError naming the file."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            EdgyConfigLoader(tmp_path).load()
        assert exc_info.value.details == {"config_file": str(path)}

    def test_non_object(self, tmp_path):
        """Test a JSON array is rejected."""
        _write(tmp_path / CONFIG_FILENAME, [1, 2])
        with pytest.raises(ConfigError, match="JSON object"):
            EdgyConfigLoader(tmp_path).load()

    def test_bad_structure(self, tmp_path):
        """Test an ignore without a reason is a structural error."""
        _write(tmp_path / CONFIG_FILENAME, {"ignoreRules": [{"rule": "a/b"}]})
        with pytest.raises(ConfigError, match="Invalid config structure"):
            EdgyConfigLoader(tmp_path).load()

    def test_save(self, tmp_path):
        """Test saved configs load back unchanged."""
        config = EdgyConfig()
        config.analysis.min_severity = "warning"
        loader = EdgyConfigLoader(tmp_path)

        path = loader.save(config)
        assert path == tmp_path / CONFIG_FILENAME
        assert loader.load() == config
