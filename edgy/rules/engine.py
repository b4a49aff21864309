"""Rule engine matching detected patterns against the rule corpus.

This module provides the RuleEngine class that manages rule registration
and evaluates rule triggers against one screen's detected patterns.
"""

import re
from dataclasses import dataclass

from ..analysis_logging import LogCategory, get_category_logger
from ..models import DetectedPattern, Element
from ..tree import ParentIndex
from .patterns import PatternCache, RuleWarning, matches_any
from .schema import Rule, TriggerClause

logger = get_category_logger(LogCategory.RULES)

# How a clause was satisfied, strongest first
MATCH_PATTERN_TYPE = "pattern_type"
MATCH_COMPONENT = "component_name"
MATCH_LAYER_NAME = "layer_name"


@dataclass
class TriggeredRule:
    """A rule paired with the pattern instance that satisfied its trigger."""

    rule: Rule
    pattern: DetectedPattern
    clause_index: int = 0
    match_type: str = MATCH_PATTERN_TYPE
    confidence: float | None = None
    # Pattern member that satisfied the clause
    element: Element | None = None

    @property
    def elements(self) -> list[Element]:
        return self.pattern.elements

    @property
    def primary(self) -> Element | None:
        return self.element if self.element is not None else self.pattern.primary


def _element_texts(element: Element) -> list[str]:
    """Name, own text, and the text of direct TEXT children."""
    texts = [element.name]
    if element.text_content:
        texts.append(element.text_content)
    texts.extend(
        child.text_content
        for child in element.children
        if child.is_text and child.text_content
    )
    return texts


def _contains_any(haystack: str, needles: list[str]) -> bool:
    lowered = haystack.lower()
    return any(needle.lower() in lowered for needle in needles)


class RuleEngine:
    """Engine for matching screen-level rules.

    Manages rule registration and per-screen trigger evaluation. Invalid
    regexes in rules are skipped and collected in ``warnings``; they never
    abort matching.
    """

    def __init__(
        self, rules: list[Rule] | None = None, patterns: PatternCache | None = None
    ):
        """Initialize the rule engine.

        Args:
            rules: Optional rules to register.
            patterns: Regex cache to share with other stages.
        """
        self._rules: dict[str, Rule] = {}
        self._rules_by_category: dict[str, list[Rule]] = {}
        self.patterns = patterns or PatternCache()
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        """Register a rule with the engine.

        Raises:
            ValueError: If a rule with the same qualified id is registered.
        """
        if rule.qualified_id in self._rules:
            raise ValueError(f"Rule {rule.qualified_id} is already registered")
        self._rules[rule.qualified_id] = rule
        self._rules_by_category.setdefault(rule.category, []).append(rule)

    def unregister(self, qualified_id: str) -> None:
        rule = self._rules.pop(qualified_id, None)
        if rule is None:
            return
        self._rules_by_category[rule.category] = [
            r for r in self._rules_by_category[rule.category]
            if r.qualified_id != qualified_id
        ]

    def get_rule(self, qualified_id: str) -> Rule | None:
        return self._rules.get(qualified_id)

    def get_rules_by_category(self, category: str) -> list[Rule]:
        return self._rules_by_category.get(category, [])

    @property
    def rules(self) -> list[Rule]:
        """All registered rules in registration order."""
        return list(self._rules.values())

    @property
    def warnings(self) -> list[RuleWarning]:
        """Non-fatal rule problems seen so far."""
        return self.patterns.warnings

    def match(
        self,
        patterns: list[DetectedPattern],
        screen_tree: Element | None = None,
        screen_name: str = "",
    ) -> list[TriggeredRule]:
        """Match all registered rules against one screen's patterns.

        One TriggeredRule is returned per (rule, triggering element): a rule
        fires separately for every pattern instance that satisfies one of
        its clauses, so later stages keep per-instance context. Every member
        of a pattern is a candidate, in pattern order; the first member that
        satisfies a clause triggers for that pattern. Aggregate patterns
        (search, navigation) therefore match on any of their elements.

        Args:
            patterns: Patterns detected in the screen.
            screen_tree: Screen root, used by parent/ancestor excludes.
            screen_name: Screen name, used by screen-name excludes.

        Returns:
            Triggered rules in rule order, then pattern order.
        """
        parents = ParentIndex(screen_tree) if screen_tree is not None else None
        present_types = {p.pattern_type.value for p in patterns}
        triggered: list[TriggeredRule] = []

        for rule in self._rules.values():
            if self._screen_excluded(rule, screen_name):
                continue
            seen: set[int] = set()
            for pattern in patterns:
                trigger = self._match_pattern(rule, pattern, present_types, parents, seen)
                if trigger is not None:
                    seen.add(id(trigger.element))
                    triggered.append(trigger)

        logger.debug(
            f"{len(triggered)} rule triggers for '{screen_name}'",
            extra={"finding_count": len(triggered)},
        )
        return triggered

    def _match_pattern(
        self,
        rule: Rule,
        pattern: DetectedPattern,
        present_types: set[str],
        parents: ParentIndex | None,
        seen: set[int],
    ) -> TriggeredRule | None:
        """Trigger for the first pattern member that passes a clause."""
        for element in pattern.elements:
            if id(element) in seen:
                continue
            hit = self._first_matching_clause(rule, pattern, element, present_types)
            if hit is None:
                continue
            clause_index, match_type = hit
            if self._element_excluded(rule, element, parents):
                continue

            confidence = None
            if rule.confidence_signals is not None:
                confidence = self._confidence(rule, element, match_type)
                if confidence < rule.confidence_signals.threshold:
                    continue

            return TriggeredRule(
                rule=rule,
                pattern=pattern,
                clause_index=clause_index,
                match_type=match_type,
                confidence=confidence,
                element=element,
            )
        return None

    def _first_matching_clause(
        self,
        rule: Rule,
        pattern: DetectedPattern,
        element: Element,
        present_types: set[str],
    ) -> tuple[int, str] | None:
        for index, clause in enumerate(rule.triggers.any_of):
            match_type = self._clause_matches(rule, clause, pattern, element, present_types)
            if match_type:
                return index, match_type
        return None

    def _clause_matches(
        self,
        rule: Rule,
        clause: TriggerClause,
        pattern: DetectedPattern,
        element: Element,
        present_types: set[str],
    ) -> str | None:
        """Evaluate one clause for a pattern member; every condition must hold.

        A clause whose regexes are all invalid cannot be satisfied and is
        skipped rather than treated as vacuously true.
        """
        match_type = None

        if clause.layer_name_patterns:
            regexes = self.patterns.compile_all(clause.layer_name_patterns, rule.qualified_id)
            if not regexes or not matches_any(regexes, *_element_texts(element)):
                return None
            match_type = MATCH_LAYER_NAME

        if clause.component_names:
            family = element.component_name or element.name
            if not _contains_any(family, clause.component_names):
                return None
            match_type = MATCH_COMPONENT

        if clause.pattern_types:
            if pattern.pattern_type.value not in clause.pattern_types:
                return None
            match_type = MATCH_PATTERN_TYPE

        if clause.co_occurs:
            first, second = clause.co_occurs
            if pattern.pattern_type.value != first or second not in present_types:
                return None
            match_type = MATCH_PATTERN_TYPE

        return match_type

    def _compiled(self, rule: Rule, patterns: list[str]) -> list[re.Pattern[str]]:
        return self.patterns.compile_all(patterns, rule.qualified_id)

    def _screen_excluded(self, rule: Rule, screen_name: str) -> bool:
        if rule.exclude is None or not rule.exclude.screen_name_patterns:
            return False
        regexes = self._compiled(rule, rule.exclude.screen_name_patterns)
        return matches_any(regexes, screen_name) is not None

    def _element_excluded(
        self, rule: Rule, element: Element, parents: ParentIndex | None
    ) -> bool:
        exclude = rule.exclude
        if exclude is None or parents is None:
            return False

        parent = parents.parent_of(element)
        if parent is not None:
            if exclude.parent_name_patterns and matches_any(
                self._compiled(rule, exclude.parent_name_patterns), parent.name
            ):
                return True
            if (
                exclude.parent_component_names
                and parent.component_name
                and _contains_any(parent.component_name, exclude.parent_component_names)
            ):
                return True

        if exclude.ancestor_name_keywords:
            for ancestor in parents.ancestors(element):
                if _contains_any(ancestor.name, exclude.ancestor_name_keywords):
                    return True
        return False

    @staticmethod
    def _confidence(rule: Rule, element: Element, match_type: str) -> float:
        """Multi-signal confidence score in [0, 1] for a trigger."""
        signals = rule.confidence_signals
        score = 0.0
        if match_type == MATCH_PATTERN_TYPE:
            score += signals.name_match + signals.component_match
        elif match_type == MATCH_LAYER_NAME:
            score += signals.name_match
        if match_type == MATCH_COMPONENT or element.component_name:
            score += signals.component_match
        if element.strokes or element.fills or element.children:
            score += signals.visual_match * 0.5
        return min(score, 1.0)


def match_rules(
    patterns: list[DetectedPattern],
    rules: list[Rule],
    screen_tree: Element | None = None,
    screen_name: str = "",
) -> list[TriggeredRule]:
    """Match rules against patterns with a throwaway engine."""
    return RuleEngine(rules).match(patterns, screen_tree, screen_name)
