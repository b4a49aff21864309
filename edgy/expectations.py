"""Expectation checking for triggered rules.

A triggered rule is resolved when evidence of the expected state exists,
either in the same screen (``in_screen``) or in a sibling screen of the
same flow (``in_flow``). Any one satisfying sibling is enough, and a cue
difference counts in either direction of the pair, so an error variant
screen resolves the rule for itself as well as for its base. Rules that
declare no expectations are always unmet: the trigger alone is the
finding.
"""

from dataclasses import dataclass

from .analysis_logging import LogCategory, get_category_logger
from .models import Element
from .rules.engine import TriggeredRule
from .rules.patterns import PatternCache, matches_any
from .rules.schema import ExpectCondition, Rule
from .tree import flatten
from .visual_cues import CueKind, element_has_cue, sibling_has_new_cue, subtree_has_cue

logger = get_category_logger(LogCategory.RULES)

NO_EXPECTATIONS_REASON = "No matching state found"


@dataclass
class UnmetExpectation:
    """A triggered rule whose expectations were not satisfied."""

    triggered: TriggeredRule
    reason: str

    @property
    def rule(self) -> Rule:
        return self.triggered.rule

    @property
    def elements(self) -> list[Element]:
        return self.triggered.elements


def describe_condition(condition: ExpectCondition) -> str:
    """Short human-readable description of an expectation condition."""
    subject = " or ".join(condition.component_names) if condition.component_names else ""
    if condition.with_properties:
        props = ", ".join(f"{k}={v}" for k, v in condition.with_properties.items())
        subject = f"{subject} [{props}]" if subject else f"element with {props}"
    if condition.layer_name_patterns:
        layers = "layer matching " + " or ".join(condition.layer_name_patterns)
        subject = f"{subject} or {layers}" if subject else layers
    if condition.with_visual_cues:
        cues = "/".join(condition.with_visual_cues)
        return f"{cues} cue on {subject}" if subject else f"{cues} cue"
    return subject or "matching element"


def _properties_match(condition: ExpectCondition, element: Element) -> bool:
    props = {k.lower(): v.lower() for k, v in element.component_properties.items()}
    return all(
        props.get(key.lower()) == value.lower()
        for key, value in condition.with_properties.items()
    )


class ExpectationChecker:
    """Evaluates rule expectations against a screen and its flow siblings.

    Shares a PatternCache with the rule engine, so invalid regexes in
    expectation clauses land in the same warnings list.
    """

    def __init__(self, patterns: PatternCache | None = None):
        self.patterns = patterns or PatternCache()

    def check(
        self,
        triggered: list[TriggeredRule],
        screen_tree: Element,
        all_screen_trees: list[Element],
        flow_trees: list[Element] | None = None,
    ) -> list[UnmetExpectation]:
        """Return the triggered rules whose expectations are not met.

        Args:
            triggered: Triggered rules of one screen.
            screen_tree: Root of that screen.
            all_screen_trees: Roots of every analyzed screen.
            flow_trees: Roots of the screen's flow group. When None, every
                other analyzed screen counts as a sibling.

        Returns:
            Unmet expectations in trigger order.
        """
        scope = all_screen_trees if flow_trees is None else flow_trees
        siblings = [tree for tree in scope if tree is not screen_tree]

        screen_elements = flatten(screen_tree)
        sibling_elements = [flatten(tree) for tree in siblings]

        unmet: list[UnmetExpectation] = []
        for trigger in triggered:
            reason = self._unmet_reason(trigger.rule, screen_elements, sibling_elements)
            if reason is not None:
                unmet.append(UnmetExpectation(triggered=trigger, reason=reason))

        logger.debug(
            f"{len(unmet)} of {len(triggered)} triggers unmet in '{screen_tree.name}'",
            extra={"finding_count": len(unmet)},
        )
        return unmet

    def _unmet_reason(
        self,
        rule: Rule,
        screen_elements: list[Element],
        sibling_elements: list[list[Element]],
    ) -> str | None:
        expects = rule.expects
        if expects.is_empty:
            return NO_EXPECTATIONS_REASON

        reason = None
        if expects.in_screen:
            if any(
                self._in_screen(rule, condition, screen_elements)
                for condition in expects.in_screen
            ):
                return None
            reason = f"No {describe_condition(expects.in_screen[0])} in this screen"

        if expects.in_flow:
            if not sibling_elements:
                return reason or (
                    f"No sibling screen in this flow shows "
                    f"{describe_condition(expects.in_flow[0])}"
                )
            for condition in expects.in_flow:
                for elements in sibling_elements:
                    if self._in_flow(rule, condition, screen_elements, elements):
                        return None
            reason = reason or (
                f"No sibling screen shows {describe_condition(expects.in_flow[0])}"
            )
        return reason

    def _selects(self, rule: Rule, condition: ExpectCondition, element: Element) -> bool:
        """Component and property criteria together, or a layer name match."""
        if condition.component_names or condition.with_properties:
            component_ok = True
            if condition.component_names:
                family = element.family
                component_ok = bool(family) and any(
                    name.lower() in family for name in condition.component_names
                )
            if component_ok and condition.with_properties:
                component_ok = _properties_match(condition, element)
            if component_ok:
                return True

        if condition.layer_name_patterns:
            regexes = self.patterns.compile_all(
                condition.layer_name_patterns, rule.qualified_id
            )
            if matches_any(regexes, element.name, element.text_content):
                return True
        return False

    def _has_selector(self, condition: ExpectCondition) -> bool:
        return bool(
            condition.component_names
            or condition.with_properties
            or condition.layer_name_patterns
        )

    def _in_screen(
        self, rule: Rule, condition: ExpectCondition, elements: list[Element]
    ) -> bool:
        if not condition.with_visual_cues:
            return any(self._selects(rule, condition, e) for e in elements)

        cues = [CueKind(c) for c in condition.with_visual_cues]
        for element in elements:
            if self._has_selector(condition) and not self._selects(rule, condition, element):
                continue
            check = element_has_cue if element.is_text else subtree_has_cue
            if any(check(element, cue) for cue in cues):
                return True
        return False

    def _in_flow(
        self,
        rule: Rule,
        condition: ExpectCondition,
        base_elements: list[Element],
        sibling: list[Element],
    ) -> bool:
        if not condition.with_visual_cues:
            return any(self._selects(rule, condition, e) for e in sibling)

        # The state may live on either screen of the pair: a "Login - Error"
        # variant is itself the error state of its "Login" sibling.
        component_filter = condition.component_names or None
        for cue in condition.with_visual_cues:
            kind = CueKind(cue)
            if sibling_has_new_cue(base_elements, sibling, kind, component_filter):
                return True
            if sibling_has_new_cue(sibling, base_elements, kind, component_filter):
                return True

        # A layer named for the state ("Error message") also counts
        if condition.layer_name_patterns:
            regexes = self.patterns.compile_all(
                condition.layer_name_patterns, rule.qualified_id
            )
            return any(
                matches_any(regexes, e.name, e.text_content)
                for e in [*sibling, *base_elements]
            )
        return False


def check_expectations(
    triggered: list[TriggeredRule],
    screen_tree: Element,
    all_screen_trees: list[Element],
    flow_trees: list[Element] | None = None,
) -> list[UnmetExpectation]:
    """Check expectations with a fresh checker."""
    return ExpectationChecker().check(triggered, screen_tree, all_screen_trees, flow_trees)
