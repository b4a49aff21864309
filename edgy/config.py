"""Analysis configuration loader.

Loads and validates edgy.config.json configuration files.
"""

import fnmatch
import json
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from .analysis_logging import get_logger
from .errors import ConfigError
from .models import DEFAULT_PLACEHOLDER_HEIGHT, DEFAULT_PLACEHOLDER_WIDTH, Severity
from .rules.loader import DEFAULT_FLOWS_DIR, DEFAULT_MAPPINGS_FILE, DEFAULT_RULES_DIR

logger = get_logger()

# Default configuration file name
CONFIG_FILENAME = "edgy.config.json"
CONFIG_ENV_VAR = "EDGY_CONFIG"


@dataclass
class KnowledgeConfig:
    """Where the rule corpus lives."""

    directory: str | None = None  # None = bundled corpus
    rules_dir: str = DEFAULT_RULES_DIR
    flows_dir: str = DEFAULT_FLOWS_DIR
    mappings_file: str = DEFAULT_MAPPINGS_FILE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "directory": self.directory,
            "rulesDir": self.rules_dir,
            "flowsDir": self.flows_dir,
            "mappingsFile": self.mappings_file,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeConfig":
        """Create from dictionary."""
        return cls(
            directory=data.get("directory"),
            rules_dir=data.get("rulesDir", DEFAULT_RULES_DIR),
            flows_dir=data.get("flowsDir", DEFAULT_FLOWS_DIR),
            mappings_file=data.get("mappingsFile", DEFAULT_MAPPINGS_FILE),
        )


@dataclass
class AnalysisConfig:
    """Which pipeline stages run and how findings are filtered."""

    dedupe_within_flows: bool = True
    enrich_components: bool = True
    detect_flow_types: bool = True
    flow_checks: bool = True
    skip_hidden_elements: bool = True
    min_severity: str = "info"

    @property
    def min_severity_level(self) -> Severity:
        return Severity(self.min_severity)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "dedupeWithinFlows": self.dedupe_within_flows,
            "enrichComponents": self.enrich_components,
            "detectFlowTypes": self.detect_flow_types,
            "flowChecks": self.flow_checks,
            "skipHiddenElements": self.skip_hidden_elements,
            "minSeverity": self.min_severity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisConfig":
        """Create from dictionary."""
        return cls(
            dedupe_within_flows=data.get("dedupeWithinFlows", True),
            enrich_components=data.get("enrichComponents", True),
            detect_flow_types=data.get("detectFlowTypes", True),
            flow_checks=data.get("flowChecks", True),
            skip_hidden_elements=data.get("skipHiddenElements", True),
            min_severity=data.get("minSeverity", "info"),
        )


@dataclass
class PlaceholderConfig:
    """Fallback size of placeholder frames for missing screens."""

    width: int = DEFAULT_PLACEHOLDER_WIDTH
    height: int = DEFAULT_PLACEHOLDER_HEIGHT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaceholderConfig":
        """Create from dictionary."""
        return cls(
            width=data.get("width", DEFAULT_PLACEHOLDER_WIDTH),
            height=data.get("height", DEFAULT_PLACEHOLDER_HEIGHT),
        )


@dataclass
class OutputConfig:
    """Output format configuration."""

    format: str = "json"
    indent: int = 2

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"format": self.format, "indent": self.indent}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutputConfig":
        """Create from dictionary."""
        return cls(format=data.get("format", "json"), indent=data.get("indent", 2))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"
    file: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"level": self.level, "format": self.format, "file": self.file}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoggingConfig":
        """Create from dictionary."""
        return cls(
            level=data.get("level", "INFO"),
            format=data.get("format", "text"),
            file=data.get("file"),
        )


@dataclass
class IgnoreRule:
    """A rule to ignore with rationale."""

    rule: str
    reason: str
    screens: list[str] = field(default_factory=list)
    expiry: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "rule": self.rule,
            "reason": self.reason,
        }
        if self.screens:
            result["screens"] = self.screens
        if self.expiry:
            result["expiry"] = self.expiry
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IgnoreRule":
        """Create from dictionary."""
        return cls(
            rule=data["rule"],
            reason=data["reason"],
            screens=data.get("screens", []),
            expiry=data.get("expiry"),
        )


@dataclass
class EdgyConfig:
    """Complete analysis configuration."""

    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    placeholder: PlaceholderConfig = field(default_factory=PlaceholderConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ignore_rules: list[IgnoreRule] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "knowledge": self.knowledge.to_dict(),
            "analysis": self.analysis.to_dict(),
            "placeholder": self.placeholder.to_dict(),
            "output": self.output.to_dict(),
            "logging": self.logging.to_dict(),
            "ignoreRules": [r.to_dict() for r in self.ignore_rules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EdgyConfig":
        """Create from dictionary."""
        return cls(
            knowledge=KnowledgeConfig.from_dict(data.get("knowledge", {})),
            analysis=AnalysisConfig.from_dict(data.get("analysis", {})),
            placeholder=PlaceholderConfig.from_dict(data.get("placeholder", {})),
            output=OutputConfig.from_dict(data.get("output", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            ignore_rules=[IgnoreRule.from_dict(r) for r in data.get("ignoreRules", [])],
        )

    def validate(self) -> None:
        """Check enumerated values.

        Raises:
            ConfigError: If a value is outside its allowed set.
        """
        allowed_severities = {s.value for s in Severity}
        if self.analysis.min_severity not in allowed_severities:
            raise ConfigError(
                f"Invalid analysis.minSeverity '{self.analysis.min_severity}'",
                suggestion=f"Use one of: {', '.join(sorted(allowed_severities))}",
            )
        if self.output.format not in ("json", "text"):
            raise ConfigError(
                f"Invalid output.format '{self.output.format}'",
                suggestion="Use 'json' or 'text'",
            )
        if self.logging.format not in ("text", "json"):
            raise ConfigError(
                f"Invalid logging.format '{self.logging.format}'",
                suggestion="Use 'text' or 'json'",
            )

    def is_rule_ignored(self, rule_id: str, screen_name: str | None = None) -> bool:
        """Check if a rule is ignored for the given screen.

        Args:
            rule_id: Qualified rule id ("<category>/<id>") to check.
            screen_name: Optional screen name to match screen-specific ignores.

        Returns:
            True if the rule should be ignored.
        """
        for ignore in self.ignore_rules:
            if ignore.rule != rule_id:
                continue

            # Check expiry
            if ignore.expiry:
                try:
                    expiry_date = date.fromisoformat(ignore.expiry)
                    if date.today() > expiry_date:
                        continue  # Ignore has expired
                except ValueError:
                    logger.warning(
                        f"Invalid expiry '{ignore.expiry}' for ignored rule {rule_id}"
                    )

            # Check screen patterns
            if ignore.screens:
                if screen_name is None:
                    continue
                if not any(
                    fnmatch.fnmatch(screen_name.lower(), pattern.lower())
                    for pattern in ignore.screens
                ):
                    continue

            return True

        return False


class EdgyConfigLoader:
    """Loader for analysis configuration."""

    def __init__(self, project_path: Path | None = None):
        """Initialize the config loader.

        Args:
            project_path: Path to the project root. Defaults to current directory.
        """
        self.project_path = Path(project_path) if project_path else Path.cwd()

    def load(self, config_path: Path | None = None) -> EdgyConfig:
        """Load analysis configuration.

        Precedence (highest to lowest):
        1. Explicit config_path
        2. Environment variable EDGY_CONFIG
        3. edgy.config.json in project root
        4. Default configuration

        Args:
            config_path: Optional explicit path to config file.

        Returns:
            Loaded EdgyConfig instance.

        Raises:
            ConfigError: If an explicit file is missing or any file is invalid.
        """
        # Try explicit path
        if config_path is not None:
            config_path = Path(config_path)
            if not config_path.exists():
                raise ConfigError(
                    f"Config file not found: {config_path}", config_file=str(config_path)
                )
            return self._load_from_file(config_path)

        # Try environment variable
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            env_config_path = Path(env_path)
            if env_config_path.exists():
                return self._load_from_file(env_config_path)
            logger.warning(f"{CONFIG_ENV_VAR} points to missing file {env_path}")

        # Try project root
        project_config = self.project_path / CONFIG_FILENAME
        if project_config.exists():
            return self._load_from_file(project_config)

        # Return defaults
        logger.debug("No edgy config found, using defaults")
        return EdgyConfig()

    def _load_from_file(self, config_path: Path) -> EdgyConfig:
        """Load configuration from a file.

        Raises:
            ConfigError: If the file is not valid JSON or has bad fields.
        """
        logger.debug(f"Loading edgy config from {config_path}")
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(
                f"Cannot read config: {e}", config_file=str(config_path)
            ) from e
        if not isinstance(data, dict):
            raise ConfigError(
                "Config must be a JSON object", config_file=str(config_path)
            )

        try:
            config = EdgyConfig.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigError(
                f"Invalid config structure: {e}", config_file=str(config_path)
            ) from e
        config.validate()
        return config

    def save(self, config: EdgyConfig, config_path: Path | None = None) -> Path:
        """Save configuration to a file.

        Args:
            config: Configuration to save.
            config_path: Optional path. Defaults to project root.

        Returns:
            Path where config was saved.
        """
        if config_path is None:
            config_path = self.project_path / CONFIG_FILENAME

        content = json.dumps(config.to_dict(), indent=2)
        config_path.write_text(content, encoding="utf-8")
        logger.info(f"Saved edgy config to {config_path}")
        return config_path


def load_config(project_path: Path | None = None) -> EdgyConfig:
    """Convenience function to load analysis configuration.

    Args:
        project_path: Optional project root path.

    Returns:
        Loaded EdgyConfig instance.
    """
    loader = EdgyConfigLoader(project_path)
    return loader.load()
