"""Unit tests for edgy.flows.detector."""

from edgy.detection import detect_patterns
from edgy.flows import FlowTypeDetector, detect_flow_types
from edgy.flows.detector import score_confidence
from edgy.models import Confidence
from edgy.rules.schema import FlowRule

AUTH = FlowRule.model_validate(
    {
        "flow_type": "authentication",
        "name": "Authentication Flow",
        "triggers": {"any_of": [{"layer_name_patterns": ["(?i)log.?in"]}]},
    }
)

CRUD = FlowRule.model_validate(
    {
        "flow_type": "crud",
        "name": "CRUD Flow",
        "triggers": {
            "any_of": [{"with_patterns": ["destructive-action"], "component_names": ["row"]}]
        },
    }
)


def _patterns(screens):
    return {screen.id: detect_patterns(screen.root) for screen in screens}


class TestScoreConfidence:
    """Tests for score_confidence."""

    def test_levels(self):
        """Test the screen and signal thresholds."""
        assert score_confidence(2, 3) == Confidence.HIGH
        assert score_confidence(1, 3) == Confidence.MEDIUM
        assert score_confidence(1, 2) == Confidence.MEDIUM
        assert score_confidence(3, 1) == Confidence.LOW
        assert score_confidence(0, 0) == Confidence.LOW


class TestFlowTypeDetector:
    """Tests for FlowTypeDetector."""

    def test_authentication_from_names(self, sample_input):
        """Test login screens trigger the authentication flow."""
        screens = sample_input.screens
        detected = detect_flow_types(screens, _patterns(screens), [AUTH])

        assert len(detected) == 1
        flow = detected[0]
        assert flow.flow_type == "authentication"
        assert flow.confidence == Confidence.HIGH
        assert flow.trigger_screens == [screens[0].id, screens[1].id]
        assert flow.trigger_signals[:2] == ["screen: Login", "layer: Login"]

    def test_pattern_and_component_signals(self, dashboard_screen):
        """Test with_patterns and component names both count as signals."""
        screens = [dashboard_screen]
        detected = detect_flow_types(screens, _patterns(screens), [CRUD])

        assert [d.flow_type for d in detected] == ["crud"]
        assert "component: Row" in detected[0].trigger_signals
        assert "pattern: destructive-action" in detected[0].trigger_signals
        assert detected[0].confidence == Confidence.MEDIUM

    def test_signals_are_unique_and_capped(self, make_element, make_screen):
        """Test repeated signals are reported once and at most five."""
        rows = [make_element(f"Row {i}", kind="INSTANCE", component="Row") for i in range(8)]
        rows += [make_element("Row 0", kind="INSTANCE", component="Row")]
        screen = make_screen("Items", make_element("Items", children=rows))
        rule = FlowRule.model_validate(
            {
                "flow_type": "crud",
                "name": "CRUD",
                "triggers": {"any_of": [{"layer_name_patterns": ["row"]}]},
            }
        )
        detected = detect_flow_types([screen], {}, [rule])

        signals = detected[0].trigger_signals
        assert len(signals) == 5
        assert len(set(signals)) == 5

    def test_no_signal_no_flow(self, login_screen):
        """Test flows without any signal are not reported."""
        screens = [login_screen]
        assert detect_flow_types(screens, _patterns(screens), [CRUD]) == []

    def test_first_rule_per_type_wins(self, sample_input):
        """Test a flow type is reported once."""
        duplicate = AUTH.model_copy(update={"name": "Other"})
        screens = sample_input.screens
        detected = detect_flow_types(screens, _patterns(screens), [AUTH, duplicate])

        assert [d.name for d in detected] == ["Authentication Flow"]

    def test_invalid_regex_warns(self, login_screen):
        """Test invalid trigger regexes are skipped with a warning."""
        rule = FlowRule.model_validate(
            {
                "flow_type": "broken",
                "name": "Broken",
                "triggers": {"any_of": [{"layer_name_patterns": ["(login"]}]},
            }
        )
        detector = FlowTypeDetector()

        assert detector.detect([login_screen], {}, [rule]) == []
        assert len(detector.patterns.warnings) == 1

    def test_to_dict(self, sample_input):
        """Test the serialized shape."""
        screens = sample_input.screens
        data = detect_flow_types(screens, _patterns(screens), [AUTH])[0].to_dict()

        assert data["type"] == "authentication"
        assert data["confidence"] == "high"
        assert set(data) == {"type", "name", "confidence", "trigger_screens", "trigger_signals"}
