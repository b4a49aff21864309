"""Heuristic UI pattern detection over one screen's element tree.

The detector walks the tree once and classifies elements by name and
component family against the keyword tables in ``keywords``. Detection
never fails on odd screen data: an element without a name, component
or paint simply matches nothing.
"""

from collections import Counter
from dataclasses import dataclass

from ..analysis_logging import LogCategory, get_category_logger
from ..models import Confidence, DetectedPattern, Element, PatternType
from ..tree import ParentIndex, iter_elements
from ..visual_cues import CueKind, subtree_has_cue
from . import keywords as kw

logger = get_category_logger(LogCategory.PIPELINE)


@dataclass
class DetectorConfig:
    """Tuning knobs for the pattern detector."""

    # Skip invisible elements together with their subtrees
    skip_hidden: bool = True
    min_form_fields: int = kw.MIN_FORM_FIELDS
    min_repeated_children: int = kw.MIN_REPEATED_CHILDREN


def _texts(element: Element) -> list[str]:
    return [
        node.text_content
        for node in iter_elements(element)
        if node.is_text and node.text_content
    ]


def is_form_field(element: Element) -> bool:
    """Check whether an element is an input-like control."""
    if element.is_text:
        return False
    if kw.FORM_FIELD.matches(element):
        return True
    return not element.component_name and bool(
        kw.FIELD_NAME_PATTERN.search(element.name)
    )


def is_button(element: Element) -> bool:
    """Check whether an element is a button.

    Bound instances are judged by component family only. Unbound layers
    match by name keywords, then by an action verb in the name, except for
    frames with many children which are layout containers.
    """
    if element.component_name:
        return kw.BUTTON.matches_component(element.family)
    if kw.BUTTON.matches_layer(element.name):
        return True
    if element.kind == "FRAME" and len(element.children) > kw.MAX_BUTTON_FRAME_CHILDREN:
        return False
    return bool(kw.ACTION_VERB_PATTERN.search(element.name))


def has_destructive_variant(element: Element) -> bool:
    return any(
        value.lower() in kw.DESTRUCTIVE_VARIANT_VALUES
        for value in element.component_properties.values()
    )


def destructive_keyword(element: Element, include_texts: bool = False) -> str | None:
    """Return the destructive keyword found in name, family or text.

    Labels nested inside the element are searched only with
    ``include_texts``, which suits buttons but not large containers.
    """
    haystacks = [element.name.lower(), element.family]
    if element.text_content:
        haystacks.append(element.text_content.lower())
    elif include_texts:
        haystacks.extend(text.lower() for text in _texts(element)[:3])
    for keyword in kw.DESTRUCTIVE_KEYWORDS:
        if any(keyword in haystack for haystack in haystacks):
            return keyword
    return None


def infer_field_label(element: Element, parents: ParentIndex) -> str:
    """Infer a form field's label.

    Preference order: the nearest preceding TEXT sibling, then the first
    text inside the field (label or placeholder), then the layer name.
    """
    siblings = parents.siblings(element)
    position = next(
        (i for i, sibling in enumerate(siblings) if sibling is element), 0
    )
    for sibling in reversed(siblings[:position]):
        if sibling.is_text and sibling.text_content:
            return sibling.text_content.strip()
        if sibling.kind != "TEXT":
            break
    inner = _texts(element)
    if inner:
        return inner[0].strip()
    return element.name


def infer_field_required(element: Element, label: str) -> bool:
    """Required if marked with ``*``, the word required, or a property."""
    if "*" in label or "required" in label.lower():
        return True
    if "required" in element.name.lower():
        return True
    return any(
        key.lower() in kw.REQUIRED_PROPERTY_KEYS
        and value.lower() in kw.TRUTHY_VALUES
        for key, value in element.component_properties.items()
    )


def repeated_family(element: Element, minimum: int) -> tuple[str, int] | None:
    """Return the dominant child shape if repeated at least ``minimum`` times.

    Children are keyed by component family, or by element kind for
    unbound children.
    """
    if len(element.children) < minimum:
        return None
    shapes = Counter(
        child.family or child.kind for child in element.children if child.visible
    )
    if not shapes:
        return None
    shape, count = shapes.most_common(1)[0]
    if count < minimum or shape == "TEXT":
        return None
    return shape, count


class PatternDetector:
    """Detects UI patterns in a single screen.

    Patterns are additive. Descendants of a detected button or form field
    are not classified as buttons or fields again, so the label text
    inside a "Delete" button does not produce a second destructive action.
    """

    def __init__(self, config: DetectorConfig | None = None):
        self.config = config or DetectorConfig()

    def detect(self, root: Element) -> list[DetectedPattern]:
        """Detect all patterns in a screen tree.

        Args:
            root: Screen root element.

        Returns:
            Patterns in document order, grouped per element, followed by
            forms and the per-screen aggregate patterns.
        """
        parents = ParentIndex(root)
        patterns: list[DetectedPattern] = []
        fields: list[Element] = []
        aggregates: dict[PatternType, list[Element]] = {
            table.pattern_type: [] for table in kw.AGGREGATE_TABLES
        }

        # (element, inside a button or field)
        stack: list[tuple[Element, bool]] = [(root, False)]
        while stack:
            element, claimed = stack.pop()
            if self.config.skip_hidden and not element.visible:
                continue

            claims = False
            if not claimed and element is not root:
                if is_form_field(element):
                    fields.append(element)
                    patterns.append(self._form_field(element, parents))
                    claims = True
                elif is_button(element):
                    patterns.append(self._button(element))
                    destructive = self._destructive(element, is_button=True)
                    if destructive:
                        patterns.append(destructive)
                    claims = True
                else:
                    destructive = self._destructive(element, is_button=False)
                    if destructive:
                        patterns.append(destructive)
                        claims = True

            listing = self._list(element)
            if listing:
                patterns.append(listing)

            if element is not root:
                for table in kw.ELEMENT_TABLES:
                    if table.matches(element):
                        patterns.append(
                            DetectedPattern(
                                pattern_type=table.pattern_type,
                                elements=[element],
                                confidence=self._keyword_confidence(element),
                                context=f"{element.name} ({table.matched_keyword(element)})",
                            )
                        )
                for table in kw.AGGREGATE_TABLES:
                    if table.matches(element):
                        aggregates[table.pattern_type].append(element)

            for child in reversed(element.children):
                stack.append((child, claimed or claims))

        patterns.extend(self._forms(root, fields, parents))

        for table in kw.AGGREGATE_TABLES:
            matched = aggregates[table.pattern_type]
            if matched:
                patterns.append(
                    DetectedPattern(
                        pattern_type=table.pattern_type,
                        elements=matched,
                        confidence=(
                            Confidence.HIGH if len(matched) > 1 else Confidence.MEDIUM
                        ),
                        context=f"{len(matched)} element(s)",
                    )
                )

        logger.debug(
            f"Detected {len(patterns)} patterns in '{root.name}'",
            extra={"finding_count": len(patterns)},
        )
        return patterns

    @staticmethod
    def _keyword_confidence(element: Element) -> Confidence:
        return Confidence.HIGH if element.component_name else Confidence.MEDIUM

    def _form_field(self, element: Element, parents: ParentIndex) -> DetectedPattern:
        label = infer_field_label(element, parents)
        return DetectedPattern(
            pattern_type=PatternType.FORM_FIELD,
            elements=[element],
            confidence=self._keyword_confidence(element),
            context=label,
            metadata={
                "label": label,
                "required": infer_field_required(element, label),
            },
        )

    def _button(self, element: Element) -> DetectedPattern:
        return DetectedPattern(
            pattern_type=PatternType.BUTTON,
            elements=[element],
            confidence=self._keyword_confidence(element),
            context=element.name,
        )

    def _destructive(self, element: Element, is_button: bool) -> DetectedPattern | None:
        """Classify a destructive action.

        A destructive variant property is sufficient on its own. Otherwise
        a destructive keyword must be backed by an error-colored paint in
        the subtree, or by the element being a button.
        """
        variant = has_destructive_variant(element)
        keyword = destructive_keyword(element, include_texts=is_button)
        if not variant and not keyword:
            return None

        error_cue = subtree_has_cue(element, CueKind.ERROR)
        if variant or (keyword and error_cue):
            confidence = Confidence.HIGH
        elif keyword and is_button:
            confidence = Confidence.MEDIUM
        else:
            return None

        return DetectedPattern(
            pattern_type=PatternType.DESTRUCTIVE_ACTION,
            elements=[element],
            confidence=confidence,
            context=element.name,
            metadata={
                "keyword": keyword,
                "destructive_variant": variant,
                "error_cue": error_cue,
            },
        )

    def _list(self, element: Element) -> DetectedPattern | None:
        if element.is_text:
            return None
        repeated = repeated_family(element, self.config.min_repeated_children)
        if repeated:
            shape, count = repeated
            items = [
                child
                for child in element.children
                if (child.family or child.kind) == shape
            ]
            # Stacked inputs are a form, not a list
            if all(is_form_field(item) for item in items):
                repeated = None
        if repeated:
            return DetectedPattern(
                pattern_type=PatternType.LIST,
                elements=[element, *items],
                confidence=Confidence.HIGH if count >= 5 else Confidence.MEDIUM,
                context=f"{element.name}: {count}x {shape}",
                metadata={"item_shape": shape, "item_count": count},
            )
        if kw.LIST.matches(element):
            return DetectedPattern(
                pattern_type=PatternType.LIST,
                elements=[element],
                confidence=Confidence.LOW,
                context=element.name,
                metadata={"item_count": len(element.children)},
            )
        return None

    def _forms(
        self, root: Element, fields: list[Element], parents: ParentIndex
    ) -> list[DetectedPattern]:
        """Find the innermost containers holding enough form fields.

        A container is a form when it holds ``min_form_fields`` fields and
        none of its children does.
        """
        counts: Counter[int] = Counter()
        members: dict[int, list[Element]] = {}
        for field_element in fields:
            for ancestor in parents.ancestors(field_element):
                counts[id(ancestor)] += 1
                members.setdefault(id(ancestor), []).append(field_element)

        minimum = self.config.min_form_fields
        forms: list[DetectedPattern] = []
        for element in iter_elements(root, skip_hidden=self.config.skip_hidden):
            if counts[id(element)] < minimum:
                continue
            if any(counts[id(child)] >= minimum for child in element.children):
                continue
            contained = members[id(element)]
            forms.append(
                DetectedPattern(
                    pattern_type=PatternType.FORM,
                    elements=[element, *contained],
                    confidence=Confidence.HIGH,
                    context=f"{element.name}: {len(contained)} fields",
                    metadata={"field_count": len(contained)},
                )
            )
        return forms


def detect_patterns(root: Element, config: DetectorConfig | None = None) -> list[DetectedPattern]:
    """Detect patterns in a screen tree with a fresh detector."""
    return PatternDetector(config).detect(root)
