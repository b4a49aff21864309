"""Case-insensitive regex compilation for author-supplied patterns.

Rule authors often write ``(?i)`` at the start of a pattern. Case
insensitivity is applied here, so leading inline flag groups are removed
before compiling.
"""

import re
from dataclasses import dataclass

from ..analysis_logging import LogCategory, get_category_logger

logger = get_category_logger(LogCategory.RULES)

INLINE_FLAGS = re.compile(r"^\(\?[aiLmsux]+\)")


def strip_inline_flags(pattern: str) -> str:
    """Remove a leading inline flag group such as ``(?i)``."""
    return INLINE_FLAGS.sub("", pattern, count=1)


@dataclass(frozen=True)
class RuleWarning:
    """A non-fatal problem in the rule corpus, e.g. an invalid regex."""

    rule_id: str
    pattern: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"rule_id": self.rule_id, "pattern": self.pattern, "message": self.message}


class PatternCache:
    """Compiles patterns once and records the ones that fail.

    An invalid pattern compiles to None, is recorded once per
    (rule, pattern) in ``warnings`` and logged at warning level.
    """

    def __init__(self) -> None:
        self._compiled: dict[str, re.Pattern[str] | None] = {}
        self._errors: dict[str, str] = {}
        self._reported: set[tuple[str, str]] = set()
        self.warnings: list[RuleWarning] = []

    def compile(self, pattern: str, rule_id: str = "") -> re.Pattern[str] | None:
        if pattern not in self._compiled:
            try:
                self._compiled[pattern] = re.compile(
                    strip_inline_flags(pattern), re.IGNORECASE
                )
            except re.error as e:
                self._compiled[pattern] = None
                self._errors[pattern] = f"invalid regex: {e}"
        if self._compiled[pattern] is None:
            self._report(rule_id, pattern, self._errors[pattern])
        return self._compiled[pattern]

    def compile_all(self, patterns: list[str], rule_id: str = "") -> list[re.Pattern[str]]:
        """Compile a pattern list, dropping the invalid ones."""
        compiled = [self.compile(p, rule_id) for p in patterns]
        return [c for c in compiled if c is not None]

    def _report(self, rule_id: str, pattern: str, message: str) -> None:
        key = (rule_id, pattern)
        if key in self._reported:
            return
        self._reported.add(key)
        self.warnings.append(RuleWarning(rule_id=rule_id, pattern=pattern, message=message))
        logger.warning(
            f"Skipping pattern {pattern!r} in rule '{rule_id}': {message}",
            extra={"rule_id": rule_id},
        )

    def clear_warnings(self) -> None:
        self._reported.clear()
        self.warnings = []


def matches_any(
    regexes: list[re.Pattern[str]], *texts: str | None
) -> re.Pattern[str] | None:
    """Return the first regex that matches any of ``texts``."""
    for regex in regexes:
        for text in texts:
            if text and regex.search(text):
                return regex
    return None
