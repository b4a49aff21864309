"""Validated shapes of the rule corpus.

Rule, flow rule and component mapping documents are human-authored YAML.
They are validated here at load time so the engine never has to trust
ad hoc field access: unknown keys, wrong types and unknown pattern types
are rejected at the boundary.
"""

from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ..models import PatternType, Severity


class CorpusModel(BaseModel):
    """Base model for corpus documents: strict about unknown keys."""

    model_config = ConfigDict(extra="forbid", frozen=True)


def _pattern_type_list(values: list[str]) -> list[str]:
    known = {p.value for p in PatternType}
    for value in values:
        if value not in known:
            raise ValueError(
                f"unknown pattern type '{value}' (expected one of {sorted(known)})"
            )
    return values


class TriggerClause(CorpusModel):
    """One trigger clause. Every field given must hold (AND)."""

    pattern_types: list[str] = Field(default_factory=list)
    layer_name_patterns: list[str] = Field(default_factory=list)
    component_names: list[str] = Field(default_factory=list)
    co_occurs: list[str] = Field(default_factory=list)

    @field_validator("pattern_types")
    @classmethod
    def check_pattern_types(cls, v: list[str]) -> list[str]:
        return _pattern_type_list(v)

    @field_validator("co_occurs")
    @classmethod
    def check_co_occurs(cls, v: list[str]) -> list[str]:
        if v and len(v) != 2:
            raise ValueError("co_occurs takes exactly two pattern types")
        return _pattern_type_list(v)

    @model_validator(mode="after")
    def check_not_empty(self) -> "TriggerClause":
        if not (
            self.pattern_types
            or self.layer_name_patterns
            or self.component_names
            or self.co_occurs
        ):
            raise ValueError("trigger clause has no conditions")
        return self


class TriggerSpec(CorpusModel):
    """A rule fires when any clause is satisfied."""

    any_of: list[TriggerClause] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def wrap_flat_clause(cls, data: Any) -> Any:
        # Older documents write a single clause without any_of
        if isinstance(data, dict) and "any_of" not in data:
            return {"any_of": [data]}
        return data


class ExpectCondition(CorpusModel):
    """Evidence that resolves a triggered rule.

    ``component_names`` and ``with_properties`` must hold on the same
    element; ``layer_name_patterns`` is an alternative match on names
    and text. ``with_visual_cues`` requires a cue on a matching element,
    compared against the current screen when checked across a flow.
    """

    component_names: list[str] = Field(default_factory=list)
    with_properties: dict[str, str] = Field(default_factory=dict)
    layer_name_patterns: list[str] = Field(default_factory=list)
    with_visual_cues: list[Literal["error", "warning", "success", "info"]] = Field(
        default_factory=list
    )

    @field_validator("with_properties", mode="before")
    @classmethod
    def stringify_properties(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {
                str(key): str(value).lower() if isinstance(value, bool) else str(value)
                for key, value in v.items()
            }
        return v


class Expectations(CorpusModel):
    in_screen: list[ExpectCondition] = Field(default_factory=list)
    in_flow: list[ExpectCondition] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.in_screen and not self.in_flow


class ExcludeSpec(CorpusModel):
    """Conditions under which a triggering element is ignored."""

    screen_name_patterns: list[str] = Field(default_factory=list)
    parent_name_patterns: list[str] = Field(default_factory=list)
    parent_component_names: list[str] = Field(default_factory=list)
    ancestor_name_keywords: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("ancestor_name_keywords", "ancestor_element_types"),
    )


class ConfidenceSignals(CorpusModel):
    """Weights for the optional trigger confidence score."""

    name_match: float = Field(default=0.5, ge=0.0, le=1.0)
    component_match: float = Field(default=0.3, ge=0.0, le=1.0)
    visual_match: float = Field(default=0.2, ge=0.0, le=1.0)
    threshold: float = Field(default=0.4, ge=0.0, le=1.0)


class FindingTemplate(CorpusModel):
    """Text templates with ``{{placeholder}}`` interpolation."""

    title: str | None = None
    description: str | None = None
    recommendation: str | None = None


class RuleComponent(CorpusModel):
    shadcn_id: str
    variant: str | None = None
    label: str


class RuleRecommendation(CorpusModel):
    message: str
    components: list[RuleComponent] = Field(default_factory=list)


class Rule(CorpusModel):
    """One screen-level rule."""

    id: str = Field(min_length=1)
    name: str
    description: str
    category: str = ""
    severity: Severity | None = None
    required: bool = True
    annotation_target: Literal["element", "screen"] | None = None
    triggers: TriggerSpec
    exclude: ExcludeSpec | None = None
    expects: Expectations = Field(default_factory=Expectations)
    confidence_signals: ConfidenceSignals | None = None
    finding_template: FindingTemplate | None = None
    recommendation: RuleRecommendation

    @property
    def qualified_id(self) -> str:
        """``<category>/<id>``, the id findings refer to."""
        return f"{self.category}/{self.id}"


class RuleDocument(CorpusModel):
    """A rule file: a named group of rules sharing a default category."""

    name: str | None = None
    description: str | None = None
    rules: list[dict[str, Any]] = Field(default_factory=list)


class FlowTriggerClause(CorpusModel):
    """Signals that suggest a flow type. Fields are alternatives (OR)."""

    layer_name_patterns: list[str] = Field(default_factory=list)
    component_names: list[str] = Field(default_factory=list)
    with_patterns: list[str] = Field(default_factory=list)

    @field_validator("with_patterns")
    @classmethod
    def check_patterns(cls, v: list[str]) -> list[str]:
        return _pattern_type_list(v)


class FlowTriggers(CorpusModel):
    any_of: list[FlowTriggerClause] = Field(default_factory=list)


class ScreenDetection(CorpusModel):
    layer_name_patterns: list[str] = Field(default_factory=list)
    component_names: list[str] = Field(default_factory=list)


class ExpectedScreen(CorpusModel):
    """A screen a complete flow of some type should contain."""

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    required: bool = True
    severity: Severity | None = None
    detection: ScreenDetection = Field(default_factory=ScreenDetection)
    components: list[RuleComponent] = Field(default_factory=list)


class FlowRule(CorpusModel):
    """Expected screens for one flow type."""

    flow_type: str = Field(min_length=1)
    name: str
    description: str = ""
    triggers: FlowTriggers = Field(default_factory=FlowTriggers)
    expected_screens: list[ExpectedScreen] = Field(default_factory=list)

    @field_validator("expected_screens")
    @classmethod
    def unique_screen_ids(cls, v: list[ExpectedScreen]) -> list[ExpectedScreen]:
        seen: set[str] = set()
        for screen in v:
            if screen.id in seen:
                raise ValueError(f"duplicate expected screen id '{screen.id}'")
            seen.add(screen.id)
        return v


class MappedComponent(CorpusModel):
    shadcn_id: str
    variant: str | None = None
    usage: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.shadcn_id} ({self.variant})" if self.variant else self.shadcn_id


class ComponentMapping(CorpusModel):
    """Design-system components recommended for one finding category."""

    description: str = ""
    primary: list[MappedComponent] = Field(default_factory=list)
    supporting: list[MappedComponent] = Field(default_factory=list)


class ComponentMappingDocument(CorpusModel):
    mappings: dict[str, ComponentMapping] = Field(default_factory=dict)
