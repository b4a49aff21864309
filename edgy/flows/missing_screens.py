"""Missing screen findings for detected flow types.

Compares each detected flow type's expected screens against the analyzed
screens and reports the ones nothing matches.
"""

from collections.abc import Callable

from ..analysis_logging import LogCategory, get_category_logger
from ..findings import IdSequence
from ..models import (
    DEFAULT_PLACEHOLDER_HEIGHT,
    DEFAULT_PLACEHOLDER_WIDTH,
    ComponentSuggestion,
    MissingScreen,
    MissingScreenFinding,
    Placeholder,
    Recommendation,
    Screen,
    Severity,
    resolve_severity,
)
from ..rules.patterns import PatternCache
from ..rules.schema import ExpectedScreen, FlowRule
from ..tree import flatten
from .detector import DetectedFlowType

logger = get_category_logger(LogCategory.FLOWS)


def screen_exists(
    screens: list[Screen],
    expected: ExpectedScreen,
    patterns: PatternCache | None = None,
    rule_id: str = "",
) -> bool:
    """Check whether any analyzed screen matches an expected screen.

    Per screen, each name regex is tried against the screen name, then
    every element name, then every element text. Then each component
    substring is tried against every bound component family.
    """
    patterns = patterns or PatternCache()
    detection = expected.detection
    regexes = patterns.compile_all(detection.layer_name_patterns, rule_id)
    needles = [name.lower() for name in detection.component_names]

    for screen in screens:
        elements = flatten(screen.root)
        for regex in regexes:
            if regex.search(screen.name):
                return True
            if any(regex.search(e.name) for e in elements):
                return True
            if any(e.text_content and regex.search(e.text_content) for e in elements):
                return True
        for needle in needles:
            if any(e.family and needle in e.family for e in elements):
                return True
    return False


class MissingScreenGenerator:
    """Emits a finding per expected screen with no match."""

    def __init__(
        self,
        ids: IdSequence | None = None,
        patterns: PatternCache | None = None,
        default_width: float = DEFAULT_PLACEHOLDER_WIDTH,
        default_height: float = DEFAULT_PLACEHOLDER_HEIGHT,
    ):
        self.ids = ids or IdSequence("mf")
        self.patterns = patterns or PatternCache()
        self.default_width = default_width
        self.default_height = default_height

    def generate(
        self,
        screens: list[Screen],
        detected_flow_types: list[DetectedFlowType],
        flow_rules: list[FlowRule],
        accept: Callable[[str, Severity], bool] | None = None,
    ) -> list[MissingScreenFinding]:
        """Generate missing screen findings.

        Flow types without a flow rule are skipped. Placeholder sizes come
        from the first screen, falling back to the configured defaults.
        ``accept`` can veto a finding by "<flow type>/<screen id>" and
        severity before an id is assigned.
        """
        rules_by_type: dict[str, FlowRule] = {}
        for flow_rule in flow_rules:
            rules_by_type.setdefault(flow_rule.flow_type, flow_rule)

        first = screens[0] if screens else None
        width = first.width if first and first.width > 0 else self.default_width
        height = first.height if first and first.height > 0 else self.default_height

        findings: list[MissingScreenFinding] = []
        for detected in detected_flow_types:
            flow_rule = rules_by_type.get(detected.flow_type)
            if flow_rule is None:
                logger.debug(f"No flow rule for detected type '{detected.flow_type}'")
                continue

            for expected in flow_rule.expected_screens:
                rule_id = f"{flow_rule.flow_type}/{expected.id}"
                if screen_exists(screens, expected, self.patterns, rule_id):
                    continue
                severity = resolve_severity(expected.severity, expected.required)
                if accept is not None and not accept(rule_id, severity):
                    continue
                findings.append(
                    MissingScreenFinding(
                        id=self.ids.next(),
                        flow_type=flow_rule.flow_type,
                        flow_name=flow_rule.name,
                        severity=severity,
                        missing_screen=MissingScreen(
                            id=expected.id,
                            name=expected.name,
                            description=expected.description,
                        ),
                        recommendation=Recommendation(
                            message=(
                                f'Add a "{expected.name}" screen to complete your '
                                f"{flow_rule.name}."
                            ),
                            components=[
                                ComponentSuggestion(
                                    name=(
                                        f"{c.shadcn_id} ({c.variant})"
                                        if c.variant
                                        else c.shadcn_id
                                    ),
                                    shadcn_id=c.shadcn_id,
                                    description=c.label,
                                    variant=c.variant,
                                )
                                for c in expected.components
                            ],
                        ),
                        placeholder=Placeholder(
                            suggested_name=expected.name, width=width, height=height
                        ),
                    )
                )

        logger.debug(f"{len(findings)} missing screens across {len(detected_flow_types)} flows")
        return findings


def generate_missing_screen_findings(
    screens: list[Screen],
    detected_flow_types: list[DetectedFlowType],
    flow_rules: list[FlowRule],
    ids: IdSequence | None = None,
) -> list[MissingScreenFinding]:
    """Generate missing screen findings with a fresh generator."""
    return MissingScreenGenerator(ids).generate(screens, detected_flow_types, flow_rules)
