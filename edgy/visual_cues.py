"""Visual cue classification.

Maps paint colors to semantic cues (error, warning, success, info) and
compares screens for cues that appear only in a variant screen, e.g. an
input that gains a red stroke in "Login - Error".
"""

from enum import Enum

from .models import Element
from .tree import iter_elements


class CueKind(Enum):
    """Semantic meaning inferred from a color."""

    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


def classify_color(r: float, g: float, b: float) -> CueKind | None:
    """Classify an RGB color (0-1 channels) into a visual cue.

    Thresholds work on channel relationships tuned to common UI palettes,
    not on an exact HSL conversion. The first satisfied check wins; the
    ranges are near-exclusive but not a strict partition.

    Returns:
        The cue, or None for neutral colors.
    """
    # Red: #FF0000, #DC2626, #EF4444, #B91C1C, #E53E3E
    if r > 0.6 and g < 0.35 and b < 0.35:
        return CueKind.ERROR

    # Red-orange used as error: #EA580C
    if r > 0.7 and g < 0.4 and b < 0.25:
        return CueKind.ERROR

    # Amber / yellow: #F59E0B, #EAB308, #D97706, #FFC107
    if r > 0.7 and g > 0.5 and b < 0.3:
        return CueKind.WARNING

    # Green: #22C55E, #16A34A, #10B981, #4ADE80
    if g > 0.5 and r < 0.4 and b < 0.5:
        return CueKind.SUCCESS

    # Teal-green
    if g > 0.45 and r < 0.25 and 0.3 < b < 0.7:
        return CueKind.SUCCESS

    # Blue: #3B82F6, #2563EB, #0EA5E9
    if b > 0.6 and r < 0.4 and g < 0.6:
        return CueKind.INFO

    return None


def element_has_cue(element: Element, cue: CueKind) -> bool:
    """Check if any stroke or fill on the element classifies to ``cue``."""
    for r, g, b in element.strokes:
        if classify_color(r, g, b) == cue:
            return True
    for r, g, b in element.fills:
        if classify_color(r, g, b) == cue:
            return True
    return False


def subtree_has_cue(element: Element, cue: CueKind) -> bool:
    """Check the element and all of its descendants for ``cue``."""
    return any(element_has_cue(node, cue) for node in iter_elements(element))


def _matches_filter(family: str, component_filter: list[str] | None) -> bool:
    if not component_filter:
        return True
    return any(name.lower() in family for name in component_filter)


def sibling_has_new_cue(
    base_elements: list[Element],
    sibling_elements: list[Element],
    cue: CueKind,
    component_filter: list[str] | None = None,
) -> bool:
    """Check whether a sibling screen shows ``cue`` where the base screen does not.

    Two passes:

    1. Component instances are paired by lower-cased family name (optionally
       restricted to families containing one of ``component_filter``). A
       cue-bearing sibling instance counts if the base screen has no
       instance of that family, or if every base instance lacks the cue.
    2. Cue-colored TEXT elements count unless the base screen has a TEXT
       element of the same name that carries the cue too. Helper text such
       as a red message under an input is often a sibling of the component
       rather than inside it.

    Args:
        base_elements: Flattened elements of the "normal" screen.
        sibling_elements: Flattened elements of a sibling screen.
        cue: The visual cue to look for.
        component_filter: Optional family-name substrings to compare.

    Returns:
        True if the sibling screen introduces the cue.
    """
    base_components: dict[str, list[Element]] = {}
    for element in base_elements:
        family = element.family
        if not family or not _matches_filter(family, component_filter):
            continue
        base_components.setdefault(family, []).append(element)

    for element in sibling_elements:
        family = element.family
        if not family or not _matches_filter(family, component_filter):
            continue
        if not subtree_has_cue(element, cue):
            continue

        counterparts = base_components.get(family)
        if not counterparts:
            return True
        if all(not subtree_has_cue(base, cue) for base in counterparts):
            return True

    base_texts: dict[str, list[Element]] = {}
    for element in base_elements:
        if element.is_text:
            base_texts.setdefault(element.name, []).append(element)

    for element in sibling_elements:
        if not element.is_text or not element_has_cue(element, cue):
            continue
        counterparts = base_texts.get(element.name, [])
        if not any(element_has_cue(base, cue) for base in counterparts):
            return True

    return False
