"""Structured error types for the analysis pipeline.

Only a malformed rule corpus (or a malformed configuration / input envelope)
aborts a run. Problems inside screen data are never raised; detectors treat
absent or ill-typed optional data as "criterion does not apply".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of analysis errors."""

    RULE_CORPUS = "rule_corpus"  # Rule / flow rule / mapping documents
    CONFIGURATION = "configuration"  # edgy.config.json
    INPUT = "input"  # Analysis input envelope
    RUNTIME = "runtime"  # Unexpected errors


@dataclass
class EdgyError(Exception):
    """Base class for structured errors with recovery suggestions.

    Attributes:
        category: Error category for grouping.
        message: Human-readable error message.
        suggestion: Optional actionable recovery suggestion.
        details: Optional additional details dict.
        exit_code: Exit code to use when this error terminates the CLI.
    """

    category: ErrorCategory
    message: str
    suggestion: str | None = None
    details: dict[str, Any] | None = field(default_factory=dict)
    exit_code: int = 1

    def __post_init__(self) -> None:
        """Initialize the exception with the message."""
        super().__init__(self.message)

    def format(self, use_color: bool = True) -> str:
        """Format the error for display.

        Args:
            use_color: Whether to include ANSI color codes.

        Returns:
            Formatted error string with suggestion if available.
        """
        red = "\033[91m" if use_color else ""
        cyan = "\033[96m" if use_color else ""
        dim = "\033[2m" if use_color else ""
        reset = "\033[0m" if use_color else ""

        lines = [f"{red}Error:{reset} {self.message}"]

        if self.suggestion:
            lines.append(f"{cyan}Suggestion:{reset} {self.suggestion}")

        if self.details:
            for key, value in self.details.items():
                lines.append(f"{dim}  {key}: {value}{reset}")

        return "\n".join(lines)

    def __str__(self) -> str:
        """Return the formatted error message."""
        return self.format(use_color=False)


class RuleLoadError(EdgyError):
    """A rule corpus document is unreadable or malformed.

    Fatal to the whole run: the corpus is loaded all-or-nothing.
    """

    def __init__(
        self,
        message: str,
        source: str,
        rule_id: str | None = None,
    ):
        self.source = source
        self.rule_id = rule_id
        details: dict[str, Any] = {"source": source}
        if rule_id:
            details["rule"] = rule_id
        location = f"{source} (rule '{rule_id}')" if rule_id else source
        super().__init__(
            category=ErrorCategory.RULE_CORPUS,
            message=f"Failed to load {location}: {message}",
            suggestion="Fix the offending rule document; no rules were loaded",
            details=details,
            exit_code=1,
        )


class ConfigError(EdgyError):
    """Error in the configuration file."""

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(
            category=ErrorCategory.CONFIGURATION,
            message=message,
            suggestion=suggestion or "Check your edgy.config.json syntax and fields",
            details={"config_file": config_file} if config_file else None,
            exit_code=1,
        )


class InputError(EdgyError):
    """The analysis input is not a JSON object with a ``screens`` list."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(
            category=ErrorCategory.INPUT,
            message=message,
            suggestion="Provide the JSON produced by the screen extraction step",
            details={"source": source} if source else None,
            exit_code=2,
        )
