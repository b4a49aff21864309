"""Rule corpus loading and matching."""

from .engine import RuleEngine, TriggeredRule, match_rules
from .loader import (
    BUNDLED_KNOWLEDGE_DIR,
    KnowledgeBase,
    load_component_mappings,
    load_flow_rules,
    load_knowledge,
    load_rules,
)
from .patterns import PatternCache, RuleWarning, strip_inline_flags
from .schema import ComponentMapping, ExpectedScreen, FlowRule, Rule

__all__ = [
    "BUNDLED_KNOWLEDGE_DIR",
    "ComponentMapping",
    "ExpectedScreen",
    "FlowRule",
    "KnowledgeBase",
    "PatternCache",
    "Rule",
    "RuleEngine",
    "RuleWarning",
    "TriggeredRule",
    "load_component_mappings",
    "load_flow_rules",
    "load_knowledge",
    "load_rules",
    "match_rules",
    "strip_inline_flags",
]
