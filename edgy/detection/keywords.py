"""Keyword tables for heuristic pattern classification.

Each table maps a set of lower-case keywords to one pattern type. Bound
component families are checked against ``component_keywords``; unbound
elements fall back to their layer name and ``layer_keywords``.
"""

import re
from dataclasses import dataclass

from ..models import Element, PatternType


@dataclass(frozen=True)
class KeywordTable:
    """Keywords that classify an element as one pattern type."""

    pattern_type: PatternType
    component_keywords: tuple[str, ...]
    layer_keywords: tuple[str, ...]
    # Also check the layer name of bound instances
    match_both: bool = False

    def matches_component(self, family: str) -> bool:
        return any(keyword in family for keyword in self.component_keywords)

    def matches_layer(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self.layer_keywords)

    def matches(self, element: Element) -> bool:
        """Classify by component family first, layer name otherwise."""
        if element.component_name:
            if self.matches_component(element.family):
                return True
            return self.match_both and self.matches_layer(element.name)
        return self.matches_layer(element.name)

    def matched_keyword(self, element: Element) -> str | None:
        """Return the first keyword that classified the element."""
        for keyword in self.component_keywords:
            if element.component_name and keyword in element.family:
                return keyword
        lowered = element.name.lower()
        for keyword in self.layer_keywords:
            if keyword in lowered:
                return keyword
        return None


_FORM_FIELD_KEYWORDS = (
    "input", "textfield", "text-field", "textarea", "select", "combobox",
    "datepicker", "date-picker", "radiogroup", "radio-group", "checkbox",
    "switch", "slider", "toggle",
)

FORM_FIELD = KeywordTable(
    pattern_type=PatternType.FORM_FIELD,
    component_keywords=_FORM_FIELD_KEYWORDS,
    layer_keywords=_FORM_FIELD_KEYWORDS,
)

BUTTON = KeywordTable(
    pattern_type=PatternType.BUTTON,
    component_keywords=("button", "btn", "cta", "icon-button", "iconbutton"),
    layer_keywords=("button", "btn", "cta"),
)

LIST = KeywordTable(
    pattern_type=PatternType.LIST,
    component_keywords=("list", "table", "grid", "feed", "timeline"),
    layer_keywords=("list", "grid", "table", "feed", "timeline", "cards"),
    match_both=True,
)

DATA_DISPLAY = KeywordTable(
    pattern_type=PatternType.DATA_DISPLAY,
    component_keywords=("card", "table", "avatar", "badge", "chart", "stat", "metric"),
    layer_keywords=(
        "card", "widget", "panel", "stats", "data", "info", "metric",
        "stat", "chart", "graph", "kpi",
    ),
)

MODAL = KeywordTable(
    pattern_type=PatternType.MODAL,
    component_keywords=(
        "dialog", "modal", "alertdialog", "alert-dialog", "sheet", "drawer",
        "overlay", "popover", "dropdown-menu", "context-menu",
    ),
    layer_keywords=(
        "modal", "dialog", "popup", "overlay", "drawer", "sheet",
        "bottom-sheet", "bottomsheet",
    ),
)

NAVIGATION = KeywordTable(
    pattern_type=PatternType.NAVIGATION,
    component_keywords=(
        "tabs", "tab", "navbar", "nav-bar", "sidebar", "breadcrumb",
        "navigation", "menu", "menubar", "stepper", "step",
    ),
    layer_keywords=(
        "nav", "tabs", "tab-bar", "tabbar", "sidebar", "breadcrumb",
        "menu", "stepper", "navigation",
    ),
)

SEARCH = KeywordTable(
    pattern_type=PatternType.SEARCH,
    component_keywords=("search", "filter", "query", "command"),
    layer_keywords=("search", "filter", "query", "find"),
    match_both=True,
)

MEDIA = KeywordTable(
    pattern_type=PatternType.MEDIA,
    component_keywords=("image", "avatar", "video", "carousel", "media"),
    layer_keywords=("image", "photo", "video", "thumbnail", "illustration", "hero"),
)

# Tables checked per element by the detector, in emission order
ELEMENT_TABLES: tuple[KeywordTable, ...] = (MODAL, MEDIA)
# Tables whose matches are aggregated into a single pattern per screen
AGGREGATE_TABLES: tuple[KeywordTable, ...] = (DATA_DISPLAY, NAVIGATION, SEARCH)

DESTRUCTIVE_KEYWORDS = (
    "delete", "remove", "destroy", "clear all", "revoke", "wipe",
    "unsubscribe", "deactivate", "erase", "discard", "terminate",
)

DESTRUCTIVE_VARIANT_VALUES = frozenset({"destructive", "danger", "delete"})

REQUIRED_PROPERTY_KEYS = frozenset({"required", "mandatory"})
TRUTHY_VALUES = frozenset({"true", "yes", "on", "1", "required"})

# Action verbs that mark small unbound layers as buttons
ACTION_VERB_PATTERN = re.compile(
    r"\b(submit|save|send|confirm|sign.?in|log.?in|register|sign.?up|cancel|"
    r"close|next|previous|back|continue|done|apply|add|create|update|edit|go|"
    r"ok|accept|decline|reject)\b",
    re.IGNORECASE,
)

FIELD_NAME_PATTERN = re.compile(r"\b(field|form.?field|text.?input)\b", re.IGNORECASE)

# Unbound frames with more children than this are layout, not buttons
MAX_BUTTON_FRAME_CHILDREN = 2

# Minimum number of same-shaped children for a repeating list
MIN_REPEATED_CHILDREN = 3

# Minimum number of form fields under one container for a form
MIN_FORM_FIELDS = 2
