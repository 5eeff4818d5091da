"""Configuration system for xrun.

Configuration is read from ./xrun.toml (or the file named by XRUN_CONFIG)
and organized into sections.

Configuration loading priority:
1. Environment variables (highest)
2. Config file
3. Defaults (lowest)

Sections:
    [run]      - Run settings (assembly timeout, exit code policy)
    [filters]  - Filter rules applied before any CLI filters
    [report]   - Results file location and dialect
    [logging]  - Log level and filter tracing

Example:
    [filters]
    rules = ["!trait:Category=Slow", "namespace:My.Tests"]

    [[filters.rule]]
    kind = "class"
    selector = "My.Tests.FlakyTests"
    exclude = true
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import tomli_w

from .filters import FilterCollection, parse_filters
from .reports.writers import DEFAULT_RESULTS_FILE, ResultJargon

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "xrun.toml"

# Singleton instance
_config: XRunConfig | None = None


# =============================================================================
# Configuration Sections
# =============================================================================


@dataclass
class RunConfig:
    """Run settings.

    Attributes:
        assembly_timeout: Seconds one assembly may run. 0 disables the limit.
        fail_on_error: Exit with code 1 when any test or assembly failed.
    """

    assembly_timeout: float = 0.0
    fail_on_error: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunConfig:
        """Create from dictionary."""
        return cls(
            assembly_timeout=float(data.get("assembly_timeout", 0.0)),
            fail_on_error=data.get("fail_on_error", True),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "assembly_timeout": self.assembly_timeout,
            "fail_on_error": self.fail_on_error,
        }


@dataclass
class FilterSettings:
    """Filter rules from the config file.

    Attributes:
        rules: Rule strings, e.g. "!trait:Category=Slow".
        tables: Rule tables from [[filters.rule]].
    """

    rules: list[str] = field(default_factory=list)
    tables: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterSettings:
        """Create from dictionary."""
        return cls(
            rules=list(data.get("rules", [])),
            tables=[dict(t) for t in data.get("rule", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"rules": list(self.rules)}
        if self.tables:
            result["rule"] = [dict(t) for t in self.tables]
        return result

    def build_collection(self) -> FilterCollection:
        """Parse the configured rules, strings first."""
        return parse_filters(self.rules, self.tables)


@dataclass
class ReportConfig:
    """Report settings.

    Attributes:
        results_dir: Directory for the results file.
        results_file: Results file name.
        jargon: Report dialect (xunit, nunit-v2, nunit-v3).
    """

    results_dir: str = "."
    results_file: str = DEFAULT_RESULTS_FILE
    jargon: str = ResultJargon.XUNIT.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportConfig:
        """Create from dictionary."""
        return cls(
            results_dir=data.get("results_dir", "."),
            results_file=data.get("results_file", DEFAULT_RESULTS_FILE),
            jargon=data.get("jargon", ResultJargon.XUNIT.value),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results_dir": self.results_dir,
            "results_file": self.results_file,
            "jargon": self.jargon,
        }

    @property
    def results_path(self) -> Path:
        return Path(self.results_dir) / self.results_file


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Logging level (debug, info, warning, error).
        show_filter_trace: Log every filter decision at info level.
    """

    level: str = "info"
    show_filter_trace: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoggingConfig:
        """Create from dictionary."""
        return cls(
            level=data.get("level", "info"),
            show_filter_trace=data.get("show_filter_trace", False),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "level": self.level,
            "show_filter_trace": self.show_filter_trace,
        }


@dataclass
class XRunConfig:
    """Main configuration container.

    Use get_config() to get the singleton instance.
    """

    run: RunConfig = field(default_factory=RunConfig)
    filters: FilterSettings = field(default_factory=FilterSettings)
    report: ReportConfig = field(default_factory=ReportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Metadata
    config_path: Path | None = None
    last_modified: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> XRunConfig:
        """Create configuration from dictionary."""
        return cls(
            run=RunConfig.from_dict(data.get("run", {})),
            filters=FilterSettings.from_dict(data.get("filters", {})),
            report=ReportConfig.from_dict(data.get("report", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "run": self.run.to_dict(),
            "filters": self.filters.to_dict(),
            "report": self.report.to_dict(),
            "logging": self.logging.to_dict(),
        }

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if results_dir := os.environ.get("XRUN_RESULTS_DIR"):
            self.report.results_dir = results_dir
        if jargon := os.environ.get("XRUN_JARGON"):
            self.report.jargon = jargon
        if level := os.environ.get("XRUN_LOG_LEVEL"):
            self.logging.level = level

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key path.

        Example:
            config.get('report.jargon')  # Returns 'xunit'
        """
        obj: Any = self
        for part in key.split("."):
            if hasattr(obj, part):
                obj = getattr(obj, part)
            elif isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def set(self, key: str, value: Any) -> bool:
        """Set a configuration value by dotted key path.

        Returns:
            True if set successfully, False otherwise.
        """
        parts = key.split(".")
        if len(parts) != 2:
            return False

        section_name, field_name = parts
        if section_name not in ("run", "filters", "report", "logging"):
            return False

        section = getattr(self, section_name)
        if not hasattr(section, field_name):
            return False

        setattr(section, field_name, _coerce(getattr(section, field_name), value))
        return True


def _coerce(current: Any, value: Any) -> Any:
    """Convert a CLI string to the type of the current value."""
    if not isinstance(value, str):
        return value
    if isinstance(current, bool):
        return value.lower() in ("1", "true", "yes", "on")
    if isinstance(current, float):
        return float(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, list):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


# =============================================================================
# Configuration Loading/Saving
# =============================================================================


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    if custom_path := os.environ.get("XRUN_CONFIG"):
        return Path(custom_path)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> XRunConfig:
    """Load configuration from TOML file.

    A missing file yields defaults. A malformed file is logged and
    also yields defaults.

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        XRunConfig with settings from file and environment.
    """
    path = config_path or get_config_path()

    config = XRunConfig()
    config.config_path = path

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            config = XRunConfig.from_dict(data)
            config.config_path = path
            config.last_modified = datetime.fromtimestamp(path.stat().st_mtime)

        except (tomllib.TOMLDecodeError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to load config from {path}: {e}")
            config = XRunConfig()
            config.config_path = path

    config.apply_env_overrides()

    return config


def save_config(config: XRunConfig, config_path: Path | None = None) -> bool:
    """Save configuration to TOML file.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or config.config_path or get_config_path()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            tomli_w.dump(config.to_dict(), f)
    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        return False

    config.config_path = path
    config.last_modified = datetime.now()
    logger.info(f"Saved config to {path}")
    return True


def get_config() -> XRunConfig:
    """Get the singleton configuration instance.

    Loads from file on first call, returns cached instance after.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> XRunConfig:
    """Force reload configuration from file."""
    global _config
    _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton to force reload on next access."""
    global _config
    _config = None


def format_config_for_display(config: XRunConfig) -> str:
    """Format configuration for CLI display."""
    lines = ["xrun Configuration", "=" * 50, ""]

    if config.config_path:
        lines.append(f"Config file: {config.config_path}")
        if config.last_modified:
            lines.append(f"Last modified: {config.last_modified.strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")

    for section, values in config.to_dict().items():
        lines.append(f"[{section}]")
        for key, value in values.items():
            lines.append(f"  {key} = {value}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
