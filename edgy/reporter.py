"""Output reporters for analysis results.

This module provides formatters for an ``AnalysisOutput``: JSON for
downstream tooling and a color-coded text listing for terminals.
"""

import json
import sys
from typing import TextIO

from .models import AnalysisOutput, Severity


class JSONReporter:
    """Writes the full output as JSON."""

    def __init__(self, stream: TextIO = sys.stdout, indent: int | None = 2):
        self.stream = stream
        self.indent = indent

    def report(self, output: AnalysisOutput) -> None:
        json.dump(output.to_dict(), self.stream, indent=self.indent, ensure_ascii=False)
        self.stream.write("\n")


class TextReporter:
    """Text reporter with color-coded output.

    Format: [severity] rule_id title
    Colors: red=critical, yellow=warning, blue=info

    Example output:
        Login (3 findings)
          [critical] error-states/form-field-errors Form has no error state
            -> Design an error variant of this form
    """

    COLORS = {
        Severity.CRITICAL: "\033[0;31m",  # Red
        Severity.WARNING: "\033[1;33m",  # Yellow
        Severity.INFO: "\033[0;34m",  # Blue
    }
    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"

    def __init__(self, stream: TextIO = sys.stdout, use_color: bool | None = None):
        """Initialize the text reporter.

        Args:
            stream: Output stream (default: stdout).
            use_color: Whether to use ANSI colors. Auto-detects if None.
        """
        self.stream = stream
        if use_color is None:
            self.use_color = hasattr(stream, "isatty") and stream.isatty()
        else:
            self.use_color = use_color

    def _paint(self, text: str, code: str) -> str:
        return f"{code}{text}{self.RESET}" if self.use_color else text

    def _line(self, text: str = "") -> None:
        print(text, file=self.stream)

    def _finding_line(self, severity: Severity, rule_id: str, title: str, hint: str) -> None:
        tag = self._paint(f"[{severity.value}]", self.COLORS[severity])
        self._line(f"  {tag} {rule_id} {title}")
        if hint:
            self._line(f"    {self._paint('-> ' + hint, self.DIM)}")

    def report(self, output: AnalysisOutput) -> None:
        """Output findings grouped by screen, then flow-level findings."""
        for screen in output.screens:
            count = len(screen.findings)
            self._line(self._paint(f"{screen.name} ({count} findings)", self.BOLD))
            for finding in screen.findings:
                self._finding_line(
                    finding.severity,
                    finding.rule_id,
                    finding.title,
                    finding.recommendation.message,
                )

        if output.flow_findings:
            self._line()
            self._line(self._paint("Flow", self.BOLD))
            for flow_finding in output.flow_findings:
                self._finding_line(
                    flow_finding.severity,
                    flow_finding.rule_id,
                    flow_finding.title,
                    flow_finding.recommendation.message,
                )

        if output.missing_screen_findings:
            self._line()
            self._line(self._paint("Missing screens", self.BOLD))
            for missing in output.missing_screen_findings:
                self._finding_line(
                    missing.severity,
                    f"{missing.flow_type}/{missing.missing_screen.id}",
                    missing.missing_screen.name,
                    missing.recommendation.message,
                )

        for warning in output.warnings:
            self._line(
                self._paint(
                    f"warning: rule {warning['rule_id']}: {warning['message']}", self.DIM
                )
            )

        self._print_summary(output)

    def _print_summary(self, output: AnalysisOutput) -> None:
        summary = output.summary
        if summary.total_findings == 0:
            self._line(f"\nNo findings in {summary.screens_analyzed} screen(s)")
            return
        self._line(
            f"\n{summary.total_findings} finding(s) in {summary.screens_analyzed} "
            f"screen(s): {summary.critical} critical, {summary.warning} warning, "
            f"{summary.info} info"
        )


def get_reporter(
    output_format: str, stream: TextIO = sys.stdout, indent: int = 2
) -> JSONReporter | TextReporter:
    if output_format == "text":
        return TextReporter(stream)
    return JSONReporter(stream, indent=indent)
