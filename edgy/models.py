"""Data models for screen analysis.

This module defines the core data structures used throughout the analysis
pipeline: the extracted element tree and screens it consumes, the detected
patterns it derives, and the findings it emits.

Screen data originates from arbitrary design files, so every ``from_dict``
on the input side is lenient: missing or ill-typed optional fields are
dropped instead of raising.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Color = tuple[float, float, float]

DEFAULT_PLACEHOLDER_WIDTH = 375
DEFAULT_PLACEHOLDER_HEIGHT = 812


class Severity(Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return {"critical": 3, "warning": 2, "info": 1}[self.value]

    def at_least(self, other: "Severity") -> bool:
        """Check if this severity is at or above another."""
        return self.rank >= other.rank


def resolve_severity(severity: Severity | None, required: bool) -> Severity:
    """Resolve a declared severity, falling back on the required flag.

    Used identically for screen-level rules and flow-level expected screens:
    an explicit severity wins, otherwise required resolves to WARNING and
    optional to INFO.
    """
    if severity is not None:
        return severity
    return Severity.WARNING if required else Severity.INFO


class PatternType(Enum):
    """Types of UI patterns the detector can recognize."""

    FORM = "form"
    FORM_FIELD = "form-field"
    LIST = "list"
    DATA_DISPLAY = "data-display"
    BUTTON = "button"
    DESTRUCTIVE_ACTION = "destructive-action"
    NAVIGATION = "navigation"
    SEARCH = "search"
    MEDIA = "media"
    MODAL = "modal"


class Confidence(Enum):
    """Confidence of a heuristic classification."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    return None


def _parse_colors(value: Any) -> list[Color]:
    """Parse a list of RGB colors, skipping entries that are not colors."""
    colors: list[Color] = []
    if not isinstance(value, list):
        return colors
    for entry in value:
        if isinstance(entry, dict):
            entry = [entry.get("r"), entry.get("g"), entry.get("b")]
        if not isinstance(entry, (list, tuple)) or len(entry) < 3:
            continue
        channels = entry[:3]
        if not all(
            isinstance(c, (int, float)) and not isinstance(c, bool) for c in channels
        ):
            continue
        colors.append((float(channels[0]), float(channels[1]), float(channels[2])))
    return colors


def _parse_properties(value: Any) -> dict[str, str]:
    """Parse component variant properties.

    Accepts both ``{"State": "Destructive"}`` and the extractor's
    ``{"State": {"value": "Destructive"}}`` shape.
    """
    properties: dict[str, str] = {}
    if not isinstance(value, dict):
        return properties
    for key, prop in value.items():
        if isinstance(prop, dict):
            prop = prop.get("value")
        if isinstance(prop, bool):
            prop = "true" if prop else "false"
        if isinstance(prop, (str, int, float)):
            properties[str(key)] = str(prop)
    return properties


@dataclass
class Element:
    """One node of a screen's visual tree.

    ``component_name`` is the bound component family (e.g. "Button"), set
    only for instances of reusable components. Child order is meaningful
    for sibling and proximity heuristics.
    """

    id: str
    name: str
    kind: str = "FRAME"
    visible: bool = True
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    component_name: str | None = None
    component_properties: dict[str, str] = field(default_factory=dict)
    text_content: str | None = None
    fills: list[Color] = field(default_factory=list)
    strokes: list[Color] = field(default_factory=list)
    stroke_weight: float | None = None
    children: list["Element"] = field(default_factory=list)

    @property
    def family(self) -> str:
        """Lower-cased component family name, empty when unbound."""
        return self.component_name.lower() if self.component_name else ""

    @property
    def is_text(self) -> bool:
        return self.kind == "TEXT"

    def _own_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind,
            "visible": self.visible,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "children": [],
        }
        if self.component_name is not None:
            result["componentName"] = self.component_name
        if self.component_properties:
            result["componentProperties"] = {
                key: {"value": value}
                for key, value in self.component_properties.items()
            }
        if self.text_content is not None:
            result["textContent"] = self.text_content
        if self.fills:
            result["fills"] = [list(c) for c in self.fills]
        if self.strokes:
            result["strokes"] = [list(c) for c in self.strokes]
        if self.stroke_weight is not None:
            result["strokeWeight"] = self.stroke_weight
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert the whole subtree to the extractor's JSON shape."""
        root = self._own_dict()
        stack = [(self, root)]
        while stack:
            element, data = stack.pop()
            for child in element.children:
                child_data = child._own_dict()
                data["children"].append(child_data)
                stack.append((child, child_data))
        return root

    @classmethod
    def _from_own_dict(cls, data: dict[str, Any], fallback_id: str) -> "Element":
        element_id = data.get("id")
        return cls(
            id=str(element_id) if element_id is not None else fallback_id,
            name=_as_str(data.get("name")) or "",
            kind=_as_str(data.get("type")) or "FRAME",
            visible=data.get("visible", True) is not False,
            x=_as_float(data.get("x")),
            y=_as_float(data.get("y")),
            width=_as_float(data.get("width")),
            height=_as_float(data.get("height")),
            component_name=_as_str(data.get("componentName")) or None,
            component_properties=_parse_properties(data.get("componentProperties")),
            text_content=_as_str(data.get("textContent")),
            fills=_parse_colors(data.get("fills")),
            strokes=_parse_colors(data.get("strokes")),
            stroke_weight=(
                _as_float(data["strokeWeight"])
                if isinstance(data.get("strokeWeight"), (int, float))
                else None
            ),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Element":
        """Create a subtree from the extractor's JSON shape.

        Built iteratively so deeply nested design files cannot exhaust the
        interpreter stack. Non-dict children are skipped.
        """
        if not isinstance(data, dict):
            data = {}
        root = cls._from_own_dict(data, fallback_id="root")
        stack = [(data, root)]
        while stack:
            raw, element = stack.pop()
            children = raw.get("children")
            if not isinstance(children, list):
                continue
            for index, raw_child in enumerate(children):
                if not isinstance(raw_child, dict):
                    continue
                child = cls._from_own_dict(
                    raw_child, fallback_id=f"{element.id}/{index}"
                )
                element.children.append(child)
                stack.append((raw_child, child))
        return root


@dataclass
class Screen:
    """One top-level design artifact with its own element tree."""

    id: str
    name: str
    root: Element
    order: int = 0
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "screen_id": self.id,
            "name": self.name,
            "order": self.order,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "node_tree": self.root.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], order: int = 0) -> "Screen":
        """Create from dictionary."""
        screen_id = data.get("screen_id", data.get("id"))
        screen_id = str(screen_id) if screen_id is not None else f"screen-{order}"
        raw_tree = data.get("node_tree")
        if isinstance(raw_tree, dict):
            root = Element.from_dict(raw_tree)
        else:
            root = Element(id=screen_id, name=_as_str(data.get("name")) or "")
        raw_order = data.get("order")
        return cls(
            id=screen_id,
            name=_as_str(data.get("name")) or "",
            root=root,
            order=raw_order if isinstance(raw_order, int) else order,
            x=_as_float(data.get("x")),
            y=_as_float(data.get("y")),
            width=_as_float(data.get("width")),
            height=_as_float(data.get("height")),
        )


@dataclass
class AnalysisInput:
    """The extraction step's output: a set of screens to analyze."""

    screens: list[Screen] = field(default_factory=list)
    analysis_id: str = ""
    timestamp: str = ""
    file_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisInput":
        """Create from dictionary.

        A missing or non-list ``screens`` value gives no screens, and non-dict
        screen entries are skipped.
        """
        raw_screens = data.get("screens")
        if not isinstance(raw_screens, list):
            raw_screens = []
        screens = [
            Screen.from_dict(raw, order=index)
            for index, raw in enumerate(raw_screens)
            if isinstance(raw, dict)
        ]
        return cls(
            screens=screens,
            analysis_id=str(data.get("analysis_id", "")),
            timestamp=str(data.get("timestamp", "")),
            file_name=str(data.get("file_name", "")),
        )


@dataclass
class DetectedPattern:
    """A heuristically detected UI pattern with back-references into the tree.

    Patterns are additive: one element may participate in several patterns
    (a delete button is both a ``button`` and a ``destructive-action``).
    """

    pattern_type: PatternType
    elements: list[Element]
    confidence: Confidence = Confidence.MEDIUM
    context: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def primary(self) -> Element | None:
        """The element the pattern is anchored on."""
        return self.elements[0] if self.elements else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.pattern_type.value,
            "nodes": [e.id for e in self.elements],
            "confidence": self.confidence.value,
            "context": self.context,
            "metadata": self.metadata,
        }


@dataclass
class ComponentSuggestion:
    """A design-system component recommended to resolve a finding."""

    name: str
    shadcn_id: str
    description: str = ""
    variant: str | None = None

    @property
    def key(self) -> str:
        """Identity used when merging suggestion lists."""
        return f"{self.shadcn_id}-{self.variant or ''}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "shadcn_id": self.shadcn_id,
            "description": self.description,
        }
        if self.variant:
            result["variant"] = self.variant
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComponentSuggestion":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            shadcn_id=data["shadcn_id"],
            description=data.get("description", ""),
            variant=data.get("variant"),
        )


@dataclass
class Recommendation:
    """Recommendation text plus component suggestions."""

    message: str
    components: list[ComponentSuggestion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "message": self.message,
            "components": [c.to_dict() for c in self.components],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recommendation":
        """Create from dictionary."""
        return cls(
            message=data["message"],
            components=[
                ComponentSuggestion.from_dict(c) for c in data.get("components", [])
            ],
        )


@dataclass
class AffectedArea:
    """Bounding box of the elements a finding points at."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_elements(cls, elements: list[Element]) -> "AffectedArea | None":
        """Compute the union bounding box in the elements' own coordinates.

        Extracted positions are parent-relative and are used unchanged.
        """
        if not elements:
            return None
        min_x = min(e.x for e in elements)
        min_y = min(e.y for e in elements)
        max_x = max(e.x + e.width for e in elements)
        max_y = max(e.y + e.height for e in elements)
        return cls(
            x=min_x,
            y=min_y,
            width=max_x - min_x,
            height=max_y - min_y,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AffectedArea":
        """Create from dictionary."""
        return cls(
            x=data["x"], y=data["y"], width=data["width"], height=data["height"]
        )


@dataclass
class Finding:
    """One missing or incomplete edge-case design on a screen."""

    id: str  # e.g. "f-001", sequential within one run
    rule_id: str  # "<category>/<rule id>"
    category: str
    severity: Severity
    title: str
    description: str
    recommendation: Recommendation
    affected_nodes: list[str] = field(default_factory=list)
    affected_area: AffectedArea | None = None
    annotation_target: str | None = None  # "element" | "screen"
    screen_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "rule_id": self.rule_id,
            "category": self.category,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "affected_nodes": self.affected_nodes,
            "recommendation": self.recommendation.to_dict(),
        }
        if self.affected_area:
            result["affected_area"] = self.affected_area.to_dict()
        if self.annotation_target:
            result["annotation_target"] = self.annotation_target
        if self.screen_id:
            result["screen_id"] = self.screen_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        """Create from dictionary."""
        area = data.get("affected_area")
        return cls(
            id=data["id"],
            rule_id=data["rule_id"],
            category=data["category"],
            severity=Severity(data["severity"]),
            title=data["title"],
            description=data["description"],
            recommendation=Recommendation.from_dict(data["recommendation"]),
            affected_nodes=data.get("affected_nodes", []),
            affected_area=AffectedArea.from_dict(area) if area else None,
            annotation_target=data.get("annotation_target"),
            screen_id=data.get("screen_id"),
        )


@dataclass
class FlowFinding:
    """A finding about the analyzed screen set as a whole."""

    id: str  # e.g. "ff-001"
    rule_id: str
    category: str
    severity: Severity
    title: str
    description: str
    recommendation: Recommendation

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "category": self.category,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation.to_dict(),
        }


@dataclass
class MissingScreen:
    """The expected screen a flow is missing."""

    id: str
    name: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass
class Placeholder:
    """Sizing hints for a placeholder frame of a missing screen."""

    suggested_name: str
    width: float = DEFAULT_PLACEHOLDER_WIDTH
    height: float = DEFAULT_PLACEHOLDER_HEIGHT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "suggested_name": self.suggested_name,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class MissingScreenFinding:
    """A finding scoped to a whole flow: an expected screen has no match."""

    id: str  # e.g. "mf-001", own sequence
    flow_type: str
    flow_name: str
    severity: Severity
    missing_screen: MissingScreen
    recommendation: Recommendation
    placeholder: Placeholder

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "flow_type": self.flow_type,
            "flow_name": self.flow_name,
            "severity": self.severity.value,
            "missing_screen": self.missing_screen.to_dict(),
            "recommendation": self.recommendation.to_dict(),
            "placeholder": self.placeholder.to_dict(),
        }


@dataclass
class ScreenResult:
    """Findings for one screen."""

    screen_id: str
    name: str
    findings: list[Finding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "screen_id": self.screen_id,
            "name": self.name,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass
class AnalysisSummary:
    """Finding counts for one run."""

    screens_analyzed: int = 0
    total_findings: int = 0
    critical: int = 0
    warning: int = 0
    info: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "screens_analyzed": self.screens_analyzed,
            "total_findings": self.total_findings,
            "critical": self.critical,
            "warning": self.warning,
            "info": self.info,
        }


@dataclass
class AnalysisOutput:
    """Complete result of one analysis run."""

    analysis_id: str
    completed_at: str
    summary: AnalysisSummary
    screens: list[ScreenResult] = field(default_factory=list)
    flow_findings: list[FlowFinding] = field(default_factory=list)
    missing_screen_findings: list[MissingScreenFinding] = field(default_factory=list)
    detected_flow_types: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def all_findings(self) -> list[Finding]:
        """Screen-level findings across all screens, in screen order."""
        return [f for screen in self.screens for f in screen.findings]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "analysis_id": self.analysis_id,
            "completed_at": self.completed_at,
            "summary": self.summary.to_dict(),
            "screens": [s.to_dict() for s in self.screens],
            "flow_findings": [f.to_dict() for f in self.flow_findings],
            "missing_screen_findings": [
                f.to_dict() for f in self.missing_screen_findings
            ],
            "detected_flow_types": self.detected_flow_types,
            "warnings": self.warnings,
        }
