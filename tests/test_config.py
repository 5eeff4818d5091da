"""Tests for the configuration system."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from xrun.config import (
    FilterSettings,
    LoggingConfig,
    ReportConfig,
    RunConfig,
    XRunConfig,
    format_config_for_display,
    get_config,
    get_config_path,
    load_config,
    reset_config,
    save_config,
)
from xrun.utils.errors import InvalidArgumentError

ENV_KEYS = ("XRUN_CONFIG", "XRUN_RESULTS_DIR", "XRUN_JARGON", "XRUN_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env():
    """Keep XRUN_* variables from the outer environment out of the tests."""
    saved = {key: os.environ.pop(key) for key in ENV_KEYS if key in os.environ}
    reset_config()
    yield
    for key in ENV_KEYS:
        os.environ.pop(key, None)
    os.environ.update(saved)
    reset_config()


# =============================================================================
# Sections
# =============================================================================


class TestSections:
    """Tests for section dataclasses."""

    def test_defaults(self) -> None:
        """Test a fresh config holds the documented defaults."""
        config = XRunConfig()
        assert config.run == RunConfig(assembly_timeout=0.0, fail_on_error=True)
        assert config.filters.rules == []
        assert config.report.jargon == "xunit"
        assert config.report.results_path == Path(".") / "TestResults.xUnit.xml"
        assert config.logging == LoggingConfig(level="info", show_filter_trace=False)

    def test_report_from_dict(self) -> None:
        """Test ReportConfig.from_dict and the derived results path."""
        report = ReportConfig.from_dict({"results_dir": "out", "jargon": "nunit-v3"})
        assert report.results_path == Path("out") / "TestResults.xUnit.xml"
        assert report.jargon == "nunit-v3"

    def test_filter_settings_round_trip(self) -> None:
        """Test FilterSettings survives to_dict and from_dict."""
        data = {
            "rules": ["!trait:Category=Slow"],
            "rule": [{"kind": "class", "selector": "A.B", "exclude": True}],
        }
        settings = FilterSettings.from_dict(data)
        assert settings.to_dict() == data

    def test_build_collection(self) -> None:
        """Test string rules and rule tables build one ordered collection."""
        settings = FilterSettings(
            rules=["!trait:Category=Slow"],
            tables=[{"kind": "namespace", "selector": "My.Tests"}],
        )
        assert [str(f) for f in settings.build_collection()] == [
            "!trait:Category=Slow",
            "namespace:My.Tests",
        ]

    def test_build_collection_rejects_bad_rule(self) -> None:
        """Test a malformed config rule raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            FilterSettings(rules=["trait:"]).build_collection()


# =============================================================================
# Dotted access
# =============================================================================


class TestGetSet:
    """Tests for dotted key access."""

    def test_get(self) -> None:
        """Test dotted get with a default for missing keys."""
        config = XRunConfig()
        assert config.get("report.jargon") == "xunit"
        assert config.get("run.fail_on_error") is True
        assert config.get("report.nothing", "default") == "default"

    @pytest.mark.parametrize(
        "key,value,expected",
        [
            ("run.assembly_timeout", "30", 30.0),
            ("run.fail_on_error", "false", False),
            ("logging.show_filter_trace", "yes", True),
            ("report.jargon", "nunit-v2", "nunit-v2"),
            ("filters.rules", "!trait:A=B, method:test_x", ["!trait:A=B", "method:test_x"]),
        ],
    )
    def test_set_coerces(self, key: str, value: str, expected) -> None:
        """Test set converts the string to the field's type."""
        config = XRunConfig()
        assert config.set(key, value) is True
        assert config.get(key) == expected

    @pytest.mark.parametrize("key", ["jargon", "report", "nope.jargon", "report.nope", "a.b.c"])
    def test_set_unknown_key(self, key: str) -> None:
        """Test set returns False for keys that do not exist."""
        assert XRunConfig().set(key, "x") is False


# =============================================================================
# Loading and saving
# =============================================================================


class TestLoadSave:
    """Tests for TOML persistence."""

    def test_config_path_default(self, tmp_path: Path) -> None:
        """Test the config file defaults to xrun.toml in the working directory."""
        with patch("xrun.config.Path.cwd", return_value=tmp_path):
            assert get_config_path() == tmp_path / "xrun.toml"

    def test_config_path_env(self, tmp_path: Path) -> None:
        """Test XRUN_CONFIG overrides the config path."""
        os.environ["XRUN_CONFIG"] = str(tmp_path / "custom.toml")
        assert get_config_path() == tmp_path / "custom.toml"

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test a missing file loads defaults."""
        config = load_config(tmp_path / "xrun.toml")
        assert config.report.jargon == "xunit"
        assert config.config_path == tmp_path / "xrun.toml"
        assert config.last_modified is None

    def test_load_file(self, tmp_path: Path) -> None:
        """Test every section is read from TOML."""
        path = tmp_path / "xrun.toml"
        path.write_text(
            "[run]\n"
            "assembly_timeout = 12.5\n"
            "\n"
            "[filters]\n"
            'rules = ["!trait:Category=Slow"]\n'
            "\n"
            "[[filters.rule]]\n"
            'kind = "class"\n'
            'selector = "My.Tests.FlakyTests"\n'
            "exclude = true\n"
            "\n"
            "[report]\n"
            'jargon = "nunit-v3"\n'
        )
        config = load_config(path)
        assert config.run.assembly_timeout == 12.5
        assert config.filters.rules == ["!trait:Category=Slow"]
        assert config.filters.tables == [
            {"kind": "class", "selector": "My.Tests.FlakyTests", "exclude": True}
        ]
        assert config.report.jargon == "nunit-v3"
        assert config.last_modified is not None

    def test_malformed_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test an unparseable file falls back to defaults."""
        path = tmp_path / "xrun.toml"
        path.write_text("[run\nassembly_timeout = ")
        config = load_config(path)
        assert config.run.assembly_timeout == 0.0

    def test_env_overrides(self, tmp_path: Path) -> None:
        """Test environment variables win over the file."""
        path = tmp_path / "xrun.toml"
        path.write_text('[report]\njargon = "nunit-v2"\n')
        os.environ["XRUN_JARGON"] = "nunit-v3"
        os.environ["XRUN_RESULTS_DIR"] = "/tmp/results"
        os.environ["XRUN_LOG_LEVEL"] = "debug"

        config = load_config(path)
        assert config.report.jargon == "nunit-v3"
        assert config.report.results_dir == "/tmp/results"
        assert config.logging.level == "debug"

    def test_save_and_reload(self, tmp_path: Path) -> None:
        """Test save creates parent directories and reloads the same values."""
        path = tmp_path / "nested" / "xrun.toml"
        config = XRunConfig()
        config.set("report.jargon", "nunit-v2")
        config.filters.tables.append({"kind": "trait", "selector": "Category", "value": "Slow"})

        assert save_config(config, path) is True
        loaded = load_config(path)
        assert loaded.report.jargon == "nunit-v2"
        assert loaded.filters.tables == [{"kind": "trait", "selector": "Category", "value": "Slow"}]
        assert loaded.to_dict() == config.to_dict()

    def test_get_config_singleton(self, tmp_path: Path) -> None:
        """Test get_config returns one shared instance."""
        os.environ["XRUN_CONFIG"] = str(tmp_path / "xrun.toml")
        assert get_config() is get_config()


class TestFormatConfig:
    """Tests for config display formatting."""

    def test_lists_sections(self, tmp_path: Path) -> None:
        """Test the display text lists sections and values."""
        config = load_config(tmp_path / "xrun.toml")
        text = format_config_for_display(config)
        assert "[report]" in text
        assert "jargon = xunit" in text
        assert f"Config file: {tmp_path / 'xrun.toml'}" in text
