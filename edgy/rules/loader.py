"""Loading of the rule corpus from a knowledge directory.

Layout of a knowledge directory::

    rules/*.yml                          screen-level rule documents
    flows/*.yml                          one flow rule per document
    components/component-mappings.yml    category -> component suggestions

Loading is all-or-nothing: the first unreadable or malformed document
raises ``RuleLoadError`` naming the file (and rule, where known).
"""

import re
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..analysis_logging import LogCategory, get_category_logger
from ..errors import RuleLoadError
from .schema import (
    ComponentMapping,
    ComponentMappingDocument,
    FlowRule,
    Rule,
    RuleDocument,
)

logger = get_category_logger(LogCategory.RULES)

BUNDLED_KNOWLEDGE_DIR = Path(__file__).resolve().parent.parent / "knowledge"
RULE_FILE_SUFFIXES = (".yml", ".yaml")

DEFAULT_RULES_DIR = "rules"
DEFAULT_FLOWS_DIR = "flows"
DEFAULT_MAPPINGS_FILE = "components/component-mappings.yml"


@dataclass
class KnowledgeBase:
    """A fully loaded, validated rule corpus."""

    rules: list[Rule] = field(default_factory=list)
    flow_rules: list[FlowRule] = field(default_factory=list)
    component_mappings: dict[str, ComponentMapping] = field(default_factory=dict)
    source: str = ""

    def get_rule(self, qualified_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.qualified_id == qualified_id:
                return rule
        return None

    def get_flow_rule(self, flow_type: str) -> FlowRule | None:
        for flow_rule in self.flow_rules:
            if flow_rule.flow_type == flow_type:
                return flow_rule
        return None

    @property
    def categories(self) -> list[str]:
        return sorted({rule.category for rule in self.rules})

    def iter_patterns(self) -> Iterator[tuple[str, str]]:
        """Yield (owner id, regex source) for every regex in the corpus."""
        for rule in self.rules:
            for clause in rule.triggers.any_of:
                for pattern in clause.layer_name_patterns:
                    yield rule.qualified_id, pattern
            for condition in rule.expects.in_screen + rule.expects.in_flow:
                for pattern in condition.layer_name_patterns:
                    yield rule.qualified_id, pattern
            if rule.exclude is not None:
                for pattern in (
                    rule.exclude.screen_name_patterns + rule.exclude.parent_name_patterns
                ):
                    yield rule.qualified_id, pattern
        for flow_rule in self.flow_rules:
            for flow_clause in flow_rule.triggers.any_of:
                for pattern in flow_clause.layer_name_patterns:
                    yield flow_rule.flow_type, pattern
            for expected in flow_rule.expected_screens:
                for pattern in expected.detection.layer_name_patterns:
                    yield f"{flow_rule.flow_type}/{expected.id}", pattern


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise RuleLoadError(f"cannot read file: {e}", source=str(path)) from e
    except yaml.YAMLError as e:
        raise RuleLoadError(f"invalid YAML: {e}", source=str(path)) from e


def _document_files(directory: Path) -> list[Path]:
    # Sorted for a stable rule order across platforms
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.suffix in RULE_FILE_SUFFIXES
    )


def default_category(document_name: str | None, path: Path) -> str:
    """Category for rules that do not declare one.

    The document name lower-cased with whitespace runs replaced by ``-``,
    or the file stem when the document has no name.
    """
    if document_name and document_name.strip():
        return re.sub(r"\s+", "-", document_name.strip().lower())
    return path.stem


def load_rule_file(path: Path) -> list[Rule]:
    """Load and validate one rule document."""
    data = _read_yaml(path)
    if data is None:
        logger.debug(f"Empty rule document {path}")
        return []
    if not isinstance(data, dict):
        raise RuleLoadError("document must be a mapping with a 'rules' list", source=str(path))

    try:
        document = RuleDocument.model_validate(data)
    except ValidationError as e:
        raise RuleLoadError(_format_validation_error(e), source=str(path)) from e

    category = default_category(document.name, path)
    rules: list[Rule] = []
    for index, raw in enumerate(document.rules):
        rule_id = raw.get("id") if isinstance(raw.get("id"), str) else f"#{index}"
        raw = dict(raw)
        if not raw.get("category"):
            raw["category"] = category
        try:
            rules.append(Rule.model_validate(raw))
        except ValidationError as e:
            raise RuleLoadError(
                _format_validation_error(e), source=str(path), rule_id=rule_id
            ) from e
    logger.debug(f"Loaded {len(rules)} rules from {path.name}")
    return rules


def load_rules(rules_dir: str | Path) -> list[Rule]:
    """Load every rule document in a directory.

    Raises:
        RuleLoadError: If the directory is missing, a document is malformed,
            or two rules share a qualified id.
    """
    rules_dir = Path(rules_dir)
    if not rules_dir.is_dir():
        raise RuleLoadError("rules directory not found", source=str(rules_dir))

    rules: list[Rule] = []
    seen: dict[str, Path] = {}
    for path in _document_files(rules_dir):
        for rule in load_rule_file(path):
            if rule.qualified_id in seen:
                raise RuleLoadError(
                    f"duplicate rule id (first defined in {seen[rule.qualified_id].name})",
                    source=str(path),
                    rule_id=rule.qualified_id,
                )
            seen[rule.qualified_id] = path
            rules.append(rule)
    return rules


def load_flow_rules(flows_dir: str | Path) -> list[FlowRule]:
    """Load every flow rule document in a directory.

    A missing directory yields no flow rules: flow-level analysis is
    optional, screen-level rules are not.
    """
    flows_dir = Path(flows_dir)
    if not flows_dir.is_dir():
        logger.debug(f"No flow rules directory at {flows_dir}")
        return []

    flow_rules: list[FlowRule] = []
    seen: set[str] = set()
    for path in _document_files(flows_dir):
        data = _read_yaml(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            raise RuleLoadError("flow document must be a mapping", source=str(path))
        try:
            flow_rule = FlowRule.model_validate(data)
        except ValidationError as e:
            raise RuleLoadError(
                _format_validation_error(e),
                source=str(path),
                rule_id=data.get("flow_type") if isinstance(data.get("flow_type"), str) else None,
            ) from e
        if flow_rule.flow_type in seen:
            raise RuleLoadError(
                "duplicate flow type", source=str(path), rule_id=flow_rule.flow_type
            )
        seen.add(flow_rule.flow_type)
        flow_rules.append(flow_rule)
    return flow_rules


def load_component_mappings(path: str | Path) -> dict[str, ComponentMapping]:
    """Load the category to component mapping document, if present."""
    path = Path(path)
    if not path.is_file():
        logger.warning(f"Component mappings not found at {path}")
        return {}
    data = _read_yaml(path)
    if data is None:
        return {}
    try:
        document = ComponentMappingDocument.model_validate(data)
    except ValidationError as e:
        raise RuleLoadError(_format_validation_error(e), source=str(path)) from e
    return dict(document.mappings)


def load_knowledge(
    directory: str | Path | None = None,
    rules_dir: str = DEFAULT_RULES_DIR,
    flows_dir: str = DEFAULT_FLOWS_DIR,
    mappings_file: str = DEFAULT_MAPPINGS_FILE,
) -> KnowledgeBase:
    """Load a complete knowledge directory.

    Args:
        directory: Knowledge root; the bundled corpus when None.
        rules_dir: Rule documents, relative to the root.
        flows_dir: Flow rule documents, relative to the root.
        mappings_file: Component mapping document, relative to the root.

    Returns:
        The validated corpus.

    Raises:
        RuleLoadError: On the first malformed document.
    """
    root = Path(directory) if directory else BUNDLED_KNOWLEDGE_DIR
    start = time.time()

    knowledge = KnowledgeBase(
        rules=load_rules(root / rules_dir),
        flow_rules=load_flow_rules(root / flows_dir),
        component_mappings=load_component_mappings(root / mappings_file),
        source=str(root),
    )

    duration_ms = (time.time() - start) * 1000
    logger.info(
        f"Loaded {len(knowledge.rules)} rules, {len(knowledge.flow_rules)} flow rules, "
        f"{len(knowledge.component_mappings)} component mappings from {root}",
        extra={"duration_ms": round(duration_ms, 2)},
    )
    return knowledge
