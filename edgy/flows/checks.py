"""Whole-set heuristic checks.

Each check looks for content that implies a state (data that can fail to
load, actions that can be forbidden) and for any screen designing that
state. When the content is present and the state is absent everywhere,
a flow finding is emitted.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from ..findings import IdSequence
from ..models import (
    ComponentSuggestion,
    Element,
    FlowFinding,
    Recommendation,
    Screen,
    Severity,
)
from ..tree import flatten_all


@dataclass(frozen=True)
class FlowCheck:
    """One data-driven flow check."""

    id: str
    category: str
    severity: Severity
    title: str
    description: str
    recommendation: str
    # Any of these in a component family or layer name triggers the check
    requires_components: tuple[str, ...] = ()
    requires_names: tuple[str, ...] = ()
    # None of these may appear in a layer name or text
    absent_names: tuple[str, ...] = ()
    components: tuple[ComponentSuggestion, ...] = field(default_factory=tuple)

    def applies(self, elements: list[Element]) -> bool:
        return any(self._requires(e) for e in elements)

    def satisfied(self, elements: list[Element]) -> bool:
        return any(self._provides(e) for e in elements)

    def _requires(self, element: Element) -> bool:
        family = element.family
        if family and any(k in family for k in self.requires_components):
            return True
        name = element.name.lower()
        return any(k in name for k in self.requires_names)

    def _provides(self, element: Element) -> bool:
        haystacks = [element.name.lower()]
        if element.text_content:
            haystacks.append(element.text_content.lower())
        return any(k in h for k in self.absent_names for h in haystacks)


DEFAULT_FLOW_CHECKS: tuple[FlowCheck, ...] = (
    FlowCheck(
        id="connectivity/offline-handling",
        category="connectivity",
        severity=Severity.WARNING,
        title="No offline/connectivity error state in flow",
        description=(
            "This flow appears to involve data-dependent content but no screen "
            "handles connectivity loss or network errors."
        ),
        recommendation=(
            "Add a screen or overlay showing an offline/connectivity error state "
            "with a retry action."
        ),
        requires_components=("table", "card", "list"),
        requires_names=("data", "feed"),
        absent_names=("offline", "no connection", "network error", "retry"),
        components=(
            ComponentSuggestion(
                name="Alert (Destructive)",
                shadcn_id="alert",
                description="Connection error banner",
                variant="destructive",
            ),
            ComponentSuggestion(
                name="Button", shadcn_id="button", description="Retry action button"
            ),
        ),
    ),
    FlowCheck(
        id="permissions/no-unauthorized-state",
        category="permissions",
        severity=Severity.INFO,
        title="No permission/unauthorized state in flow",
        description=(
            "This flow may involve restricted actions but no screen shows a "
            "permission denied or unauthorized state."
        ),
        recommendation=(
            "Consider adding a state for when users lack permission to perform "
            "certain actions."
        ),
        requires_names=("admin", "settings", "edit", "manage"),
        absent_names=("unauthorized", "forbidden", "permission", "access denied"),
        components=(
            ComponentSuggestion(
                name="Alert", shadcn_id="alert", description="Permission denied message"
            ),
            ComponentSuggestion(
                name="Button (Disabled)",
                shadcn_id="button",
                description="Disabled state for unauthorized actions",
                variant="disabled",
            ),
        ),
    ),
)


class FlowCheckRunner:
    """Runs flow checks over the whole screen set."""

    def __init__(
        self,
        checks: tuple[FlowCheck, ...] = DEFAULT_FLOW_CHECKS,
        ids: IdSequence | None = None,
    ):
        self.checks = checks
        self.ids = ids or IdSequence("ff")

    def run(
        self,
        screens: list[Screen],
        accept: Callable[[str, Severity], bool] | None = None,
    ) -> list[FlowFinding]:
        """Run every check; ``accept`` can veto a finding by rule id and severity."""
        if not screens:
            return []
        elements = flatten_all([s.root for s in screens])
        findings = []
        for check in self.checks:
            if not check.applies(elements) or check.satisfied(elements):
                continue
            if accept is not None and not accept(check.id, check.severity):
                continue
            findings.append(
                FlowFinding(
                    id=self.ids.next(),
                    rule_id=check.id,
                    category=check.category,
                    severity=check.severity,
                    title=check.title,
                    description=check.description,
                    recommendation=Recommendation(
                        message=check.recommendation,
                        components=list(check.components),
                    ),
                )
            )
        return findings
