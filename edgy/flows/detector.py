"""Flow type detection from screen content.

Infers which kinds of flows (authentication, checkout, ...) the analyzed
screens belong to, using the trigger signals declared by each flow rule.
"""

from dataclasses import dataclass, field
from typing import Any

from ..analysis_logging import LogCategory, get_category_logger
from ..models import Confidence, DetectedPattern, Screen
from ..rules.patterns import PatternCache, matches_any
from ..rules.schema import FlowRule
from ..tree import iter_elements

logger = get_category_logger(LogCategory.FLOWS)

MAX_REPORTED_SIGNALS = 5
SIGNAL_LABEL_LENGTH = 30


@dataclass
class DetectedFlowType:
    """A flow type inferred for the analyzed screen set."""

    flow_type: str
    name: str
    confidence: Confidence
    trigger_screens: list[str] = field(default_factory=list)
    trigger_signals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.flow_type,
            "name": self.name,
            "confidence": self.confidence.value,
            "trigger_screens": self.trigger_screens,
            "trigger_signals": self.trigger_signals,
        }


def score_confidence(screen_count: int, signal_count: int) -> Confidence:
    """High with 2+ screens and 3+ signals, medium with 1+ and 2+."""
    if screen_count >= 2 and signal_count >= 3:
        return Confidence.HIGH
    if screen_count >= 1 and signal_count >= 2:
        return Confidence.MEDIUM
    return Confidence.LOW


class FlowTypeDetector:
    """Evaluates flow rule triggers over every analyzed screen."""

    def __init__(self, patterns: PatternCache | None = None):
        self.patterns = patterns or PatternCache()

    def detect(
        self,
        screens: list[Screen],
        patterns_by_screen: dict[str, list[DetectedPattern]],
        flow_rules: list[FlowRule],
    ) -> list[DetectedFlowType]:
        """Detect flow types.

        Each flow type is reported once; the first flow rule declaring a
        type wins. Trigger clause fields are alternatives: any layer name
        regex, component family substring or pattern type counts as a
        signal.

        Args:
            screens: Analyzed screens in input order.
            patterns_by_screen: Detected patterns keyed by screen id.
            flow_rules: Flow rule corpus.

        Returns:
            Detected flow types in corpus order.
        """
        detected: list[DetectedFlowType] = []
        seen_types: set[str] = set()

        for flow_rule in flow_rules:
            if flow_rule.flow_type in seen_types:
                continue
            trigger_screens: list[str] = []
            signals: list[str] = []

            def hit(screen_id: str, signal: str) -> None:
                if screen_id not in trigger_screens:
                    trigger_screens.append(screen_id)
                signals.append(signal)

            for clause in flow_rule.triggers.any_of:
                regexes = self.patterns.compile_all(
                    clause.layer_name_patterns, f"flow:{flow_rule.flow_type}"
                )
                needles = [c.lower() for c in clause.component_names]

                for screen in screens:
                    if regexes and matches_any(regexes, screen.name):
                        hit(screen.id, f"screen: {screen.name[:SIGNAL_LABEL_LENGTH]}")
                    for element in iter_elements(screen.root):
                        if regexes and matches_any(
                            regexes, element.name, element.text_content
                        ):
                            hit(screen.id, f"layer: {element.name[:SIGNAL_LABEL_LENGTH]}")
                        family = element.family
                        if family and any(n in family for n in needles):
                            hit(screen.id, f"component: {element.component_name}")

                for pattern_type in clause.with_patterns:
                    for screen in screens:
                        screen_patterns = patterns_by_screen.get(screen.id, [])
                        if any(p.pattern_type.value == pattern_type for p in screen_patterns):
                            hit(screen.id, f"pattern: {pattern_type}")

            if not trigger_screens and not signals:
                continue

            seen_types.add(flow_rule.flow_type)
            unique_signals = list(dict.fromkeys(signals))
            confidence = score_confidence(len(trigger_screens), len(unique_signals))
            detected.append(
                DetectedFlowType(
                    flow_type=flow_rule.flow_type,
                    name=flow_rule.name,
                    confidence=confidence,
                    trigger_screens=trigger_screens,
                    trigger_signals=unique_signals[:MAX_REPORTED_SIGNALS],
                )
            )
            logger.debug(
                f"Detected {flow_rule.flow_type} flow ({confidence.value}) "
                f"from {len(unique_signals)} signals"
            )

        return detected


def detect_flow_types(
    screens: list[Screen],
    patterns_by_screen: dict[str, list[DetectedPattern]],
    flow_rules: list[FlowRule],
) -> list[DetectedFlowType]:
    """Detect flow types with a fresh detector."""
    return FlowTypeDetector().detect(screens, patterns_by_screen, flow_rules)
