"""Finding generation from unmet expectations.

Findings get sequential ids from an explicit ``IdSequence`` that the
pipeline resets at the start of every run, so repeated runs over the
same input produce identical ids.
"""

import re
from dataclasses import replace

from .expectations import UnmetExpectation
from .models import (
    AffectedArea,
    ComponentSuggestion,
    Element,
    Finding,
    Recommendation,
    Screen,
    resolve_severity,
)
from .rules.schema import ComponentMapping, Rule, RuleComponent

TEMPLATE_VARIABLE = re.compile(r"\{\{(\w+)\}\}")
FLOW_CONTEXT_SPLIT = re.compile(r"[-–—]")


class IdSequence:
    """Sequential ids such as ``f-001``, resettable per run."""

    def __init__(self, prefix: str, width: int = 3):
        self.prefix = prefix
        self.width = width
        self._value = 0

    def next(self) -> str:
        self._value += 1
        return f"{self.prefix}-{self._value:0{self.width}d}"

    def reset(self) -> None:
        self._value = 0

    @property
    def issued(self) -> int:
        """Number of ids handed out since the last reset."""
        return self._value


def interpolate(template: str, variables: dict[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names render as the name."""
    return TEMPLATE_VARIABLE.sub(
        lambda m: variables.get(m.group(1)) or m.group(1), template
    )


def template_variables(element: Element | None, screen: Screen) -> dict[str, str]:
    """Variables available to finding templates."""
    text = None
    if element is not None:
        text = element.text_content or next(
            (c.text_content for c in element.children if c.is_text and c.text_content),
            None,
        )
    return {
        "element_name": (
            (element.component_name or element.name) if element else ""
        ) or "element",
        "element_text": text or (element.name if element else "") or "action",
        "screen_name": screen.name,
        "flow_context": FLOW_CONTEXT_SPLIT.split(screen.name)[0].strip() or "this",
    }


def rule_component_suggestion(component: RuleComponent) -> ComponentSuggestion:
    return ComponentSuggestion(
        name=component.label,
        shadcn_id=component.shadcn_id,
        description=f"{component.label} from shadcn/ui",
        variant=component.variant,
    )


class FindingGenerator:
    """Converts unmet expectations into findings, one per expectation."""

    def __init__(self, ids: IdSequence | None = None):
        self.ids = ids or IdSequence("f")

    def generate(self, unmet: list[UnmetExpectation], screen: Screen) -> list[Finding]:
        """Generate findings for one screen.

        Args:
            unmet: Unmet expectations of the screen.
            screen: The screen they belong to.

        Returns:
            Findings in the order of ``unmet``.
        """
        return [self._finding(expectation, screen) for expectation in unmet]

    def _finding(self, unmet: UnmetExpectation, screen: Screen) -> Finding:
        rule: Rule = unmet.rule
        elements = unmet.elements
        variables = template_variables(unmet.triggered.primary, screen)

        template = rule.finding_template
        title = rule.name
        description = rule.description
        message = rule.recommendation.message
        if template is not None:
            if template.title:
                title = interpolate(template.title, variables)
            if template.description:
                description = interpolate(template.description, variables)
            if template.recommendation:
                message = interpolate(template.recommendation, variables)

        return Finding(
            id=self.ids.next(),
            rule_id=rule.qualified_id,
            category=rule.category,
            severity=resolve_severity(rule.severity, rule.required),
            title=title,
            description=f"{description} ({unmet.reason})",
            recommendation=Recommendation(
                message=message,
                components=[
                    rule_component_suggestion(c) for c in rule.recommendation.components
                ],
            ),
            affected_nodes=[e.id for e in elements],
            affected_area=AffectedArea.from_elements(elements),
            annotation_target=rule.annotation_target,
            screen_id=screen.id,
        )


class ComponentEnricher:
    """Adds design-system suggestions mapped to a finding's category.

    Rule-specific suggestions stay first; mapped components are appended
    unless the same component and variant is already suggested.
    """

    def __init__(self, mappings: dict[str, ComponentMapping]):
        self.mappings = mappings

    def suggestions_for(self, category: str) -> list[ComponentSuggestion]:
        mapping = self.mappings.get(category)
        if mapping is None:
            return []
        return [
            ComponentSuggestion(
                name=m.display_name,
                shadcn_id=m.shadcn_id,
                description=m.usage,
                variant=m.variant,
            )
            for m in [*mapping.primary, *mapping.supporting]
        ]

    def enrich(self, findings: list[Finding]) -> list[Finding]:
        enriched = []
        for finding in findings:
            mapped = self.suggestions_for(finding.category)
            if not mapped:
                enriched.append(finding)
                continue
            existing = {c.key for c in finding.recommendation.components}
            components = list(finding.recommendation.components)
            for suggestion in mapped:
                if suggestion.key not in existing:
                    existing.add(suggestion.key)
                    components.append(suggestion)
            enriched.append(
                replace(
                    finding,
                    recommendation=replace(finding.recommendation, components=components),
                )
            )
        return enriched


class FlowDeduplicator:
    """Keeps one report per rule per flow group.

    Sibling screens usually trigger the same rule ("Login" and
    "Login - Error" both contain the form). The first screen in input
    order keeps the finding; later screens of the same flow drop it.
    Multiple instances within the first screen are all kept.
    """

    def __init__(self) -> None:
        self._seen: dict[str, set[str]] = {}

    def filter(
        self, unmet: list[UnmetExpectation], flow_prefix: str
    ) -> list[UnmetExpectation]:
        reported = self._seen.setdefault(flow_prefix, set())
        kept = [u for u in unmet if u.rule.qualified_id not in reported]
        reported.update(u.rule.qualified_id for u in kept)
        return kept


def generate_findings(
    unmet: list[UnmetExpectation], screen: Screen, ids: IdSequence | None = None
) -> list[Finding]:
    """Generate findings for one screen."""
    return FindingGenerator(ids).generate(unmet, screen)
