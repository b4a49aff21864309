"""Unit tests for edgy.visual_cues module."""

from edgy.models import Element
from edgy.tree import flatten
from edgy.visual_cues import (
    CueKind,
    classify_color,
    element_has_cue,
    sibling_has_new_cue,
    subtree_has_cue,
)


class TestClassifyColor:
    """Tests for classify_color."""

    def test_reds_are_errors(self):
        """Test Tailwind red-500, a dark red and pure red classify as error."""
        assert classify_color(0.937, 0.267, 0.267) == CueKind.ERROR
        assert classify_color(0.86, 0.15, 0.15) == CueKind.ERROR
        assert classify_color(1, 0, 0) == CueKind.ERROR

    def test_amber_is_warning(self):
        """Test Tailwind amber-500 classifies as warning."""
        assert classify_color(0.96, 0.62, 0.04) == CueKind.WARNING

    def test_green_is_success(self):
        """Test Tailwind green-500 classifies as success."""
        assert classify_color(0.13, 0.77, 0.37) == CueKind.SUCCESS

    def test_blue_is_info(self):
        """Test Tailwind blue-500 classifies as info."""
        assert classify_color(0.23, 0.51, 0.96) == CueKind.INFO

    def test_neutrals_have_no_cue(self):
        """Test greys, white and black are neutral."""
        for color in [(0.5, 0.5, 0.5), (1, 1, 1), (0, 0, 0), (0.9, 0.9, 0.9)]:
            assert classify_color(*color) is None


class TestElementCues:
    """Tests for element_has_cue and subtree_has_cue."""

    def test_stroke_carries_cue(self):
        """Test a red stroke gives an error cue."""
        element = Element(id="1", name="Input", strokes=[(1.0, 0.0, 0.0)])
        assert element_has_cue(element, CueKind.ERROR)
        assert not element_has_cue(element, CueKind.SUCCESS)

    def test_fill_carries_cue(self):
        """Test a green fill gives a success cue."""
        element = Element(id="1", name="Badge", fills=[(0.13, 0.77, 0.37)])
        assert element_has_cue(element, CueKind.SUCCESS)

    def test_subtree_finds_nested_cue(self):
        """Test a cue deep in the subtree is found."""
        leaf = Element(id="3", name="Dot", fills=[(1.0, 0.0, 0.0)])
        root = Element(
            id="1", name="Card", children=[Element(id="2", name="Row", children=[leaf])]
        )
        assert not element_has_cue(root, CueKind.ERROR)
        assert subtree_has_cue(root, CueKind.ERROR)

    def test_deep_tree_does_not_recurse(self):
        """Test very deep trees are walked without hitting the recursion limit."""
        root = Element(id="0", name="Root")
        current = root
        for i in range(1, 5000):
            child = Element(id=str(i), name="Nested")
            current.children.append(child)
            current = child
        current.fills = [(1.0, 0.0, 0.0)]

        assert subtree_has_cue(root, CueKind.ERROR)


class TestSiblingHasNewCue:
    """Tests for sibling_has_new_cue."""

    def test_login_error_variant(self, login_screen, login_error_screen):
        """Test the error variant introduces a red input and red text."""
        base = flatten(login_screen.root)
        sibling = flatten(login_error_screen.root)

        assert sibling_has_new_cue(base, sibling, CueKind.ERROR)
        assert sibling_has_new_cue(base, sibling, CueKind.ERROR, ["input"])
        assert not sibling_has_new_cue(base, sibling, CueKind.SUCCESS)

    def test_identical_screens_add_nothing(self, login_error_screen):
        """Test a screen compared with itself introduces no cue."""
        elements = flatten(login_error_screen.root)
        assert not sibling_has_new_cue(elements, elements, CueKind.ERROR)

    def test_component_filter_restricts_families(self):
        """Test only families in the filter are compared."""
        base = [Element(id="1", name="Badge", component_name="Badge")]
        sibling = [
            Element(
                id="2", name="Badge", component_name="Badge", fills=[(1.0, 0.0, 0.0)]
            )
        ]
        assert sibling_has_new_cue(base, sibling, CueKind.ERROR)
        assert not sibling_has_new_cue(base, sibling, CueKind.ERROR, ["input"])

    def test_text_with_same_cue_in_base_is_not_new(self):
        """Test red text already red in the base screen does not count."""
        base = [Element(id="1", name="Hint", kind="TEXT", fills=[(1.0, 0.0, 0.0)])]
        sibling = [Element(id="2", name="Hint", kind="TEXT", fills=[(1.0, 0.0, 0.0)])]
        assert not sibling_has_new_cue(base, sibling, CueKind.ERROR)
