"""
Shared fixtures for the edgy test suite.

Provides test fixtures for:
- Element and screen builders
- Login / Login - Error / Dashboard sample screens and inputs
- Temporary knowledge corpora written with PyYAML
- The bundled knowledge corpus
"""

import itertools
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml

from edgy.analysis_logging import LOGGER_NAME
from edgy.models import AnalysisInput, Element, Screen
from edgy.rules import KnowledgeBase, load_knowledge
from edgy.rules.schema import Rule

RED = (0.937, 0.267, 0.267)
GREEN = (0.13, 0.77, 0.37)
GREY = (0.5, 0.5, 0.5)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def restore_edgy_logger() -> Iterator[None]:
    """Undo handler changes made by setup_logging during a test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


# ---------------------------------------------------------------------------
# Element and screen builders
# ---------------------------------------------------------------------------


ElementFactory = Callable[..., Element]


@pytest.fixture()
def make_element() -> ElementFactory:
    """Factory for elements with unique ids.

    Example:
        make_element("Email Input", kind="INSTANCE", component="Input")
    """
    ids = itertools.count(1)

    def factory(
        name: str,
        kind: str = "FRAME",
        children: list[Element] | None = None,
        component: str | None = None,
        text: str | None = None,
        **kwargs: Any,
    ) -> Element:
        return Element(
            id=f"n{next(ids)}",
            name=name,
            kind=kind,
            children=children or [],
            component_name=component,
            text_content=text,
            **kwargs,
        )

    return factory


@pytest.fixture()
def make_screen() -> Callable[..., Screen]:
    """Factory for screens wrapping a root element."""
    counter = itertools.count(1)

    def factory(name: str, root: Element, **kwargs: Any) -> Screen:
        index = next(counter)
        kwargs.setdefault("width", 375.0)
        kwargs.setdefault("height", 812.0)
        return Screen(id=f"s{index}", name=name, root=root, order=index - 1, **kwargs)

    return factory


def _login_children(make_element: ElementFactory, error: bool) -> list[Element]:
    email_strokes = [RED] if error else [GREY]
    children = [
        make_element("Email", kind="TEXT", text="Email", y=260, height=20),
        make_element(
            "Email Input",
            kind="INSTANCE",
            component="Input",
            strokes=email_strokes,
            x=24,
            y=280,
            width=327,
            height=48,
        ),
        make_element(
            "Password Input",
            kind="INSTANCE",
            component="Input",
            strokes=[GREY],
            x=24,
            y=350,
            width=327,
            height=48,
        ),
        make_element(
            "Sign In Button",
            kind="INSTANCE",
            component="Button",
            x=24,
            y=430,
            width=327,
            height=48,
            children=[make_element("Label", kind="TEXT", text="Sign In")],
        ),
    ]
    if error:
        children.insert(
            2,
            make_element(
                "Error Text", kind="TEXT", text="Invalid email address", fills=[RED]
            ),
        )
    return children


@pytest.fixture()
def login_screen(make_element, make_screen) -> Screen:
    """A login form: two inputs and a sign-in button, no error state."""
    root = make_element(
        "Login", width=375, height=812, children=_login_children(make_element, False)
    )
    return make_screen("Login", root)


@pytest.fixture()
def login_error_screen(make_element, make_screen) -> Screen:
    """The login form with a red email input and a red error message."""
    root = make_element(
        "Login - Error",
        width=375,
        height=812,
        children=_login_children(make_element, True),
    )
    return make_screen("Login - Error", root, x=500)


@pytest.fixture()
def dashboard_screen(make_element, make_screen) -> Screen:
    """A dashboard with a five-row list and a red "Delete Account" button."""
    rows = [
        make_element(
            f"Row {i}",
            kind="INSTANCE",
            component="Row",
            y=100 + i * 60,
            width=375,
            height=56,
            children=[make_element("Title", kind="TEXT", text=f"Project {i}")],
        )
        for i in range(5)
    ]
    root = make_element(
        "Dashboard",
        width=375,
        height=812,
        children=[
            make_element("Item List", children=rows, y=100, width=375, height=300),
            make_element(
                "Delete Account",
                kind="INSTANCE",
                component="Button",
                fills=[RED],
                x=24,
                y=700,
                width=327,
                height=48,
                children=[make_element("Label", kind="TEXT", text="Delete Account")],
            ),
        ],
    )
    return make_screen("Dashboard", root, x=1000)


@pytest.fixture()
def sample_input(login_screen, login_error_screen, dashboard_screen) -> AnalysisInput:
    """Login, Login - Error and Dashboard, in that order."""
    return AnalysisInput(
        screens=[login_screen, login_error_screen, dashboard_screen],
        analysis_id="test-run",
    )


@pytest.fixture()
def unresolved_input(login_screen, dashboard_screen) -> AnalysisInput:
    """Login without its error variant, then Dashboard."""
    return AnalysisInput(
        screens=[login_screen, dashboard_screen],
        analysis_id="unresolved-run",
    )


@pytest.fixture()
def sample_input_dict(sample_input) -> dict[str, Any]:
    """The sample input in the extractor's JSON shape."""
    return {
        "analysis_id": sample_input.analysis_id,
        "screens": [screen.to_dict() for screen in sample_input.screens],
    }


# ---------------------------------------------------------------------------
# Rule corpus
# ---------------------------------------------------------------------------


def rule_dict(**overrides: Any) -> dict[str, Any]:
    """A minimal valid rule document entry."""
    data: dict[str, Any] = {
        "id": "test-rule",
        "name": "Test rule",
        "description": "A rule used in tests.",
        "category": "test",
        "triggers": {"any_of": [{"pattern_types": ["form"]}]},
        "recommendation": {"message": "Fix it."},
    }
    data.update(overrides)
    return data


@pytest.fixture()
def make_rule() -> Callable[..., Rule]:
    """Factory for validated rules; keyword arguments override fields."""

    def factory(**overrides: Any) -> Rule:
        return Rule.model_validate(rule_dict(**overrides))

    return factory


FORM_ERROR_RULE = {
    "id": "form-field-errors",
    "name": "Form fields without error state",
    "description": "Inputs need an error state.",
    "severity": "critical",
    "triggers": {"any_of": [{"pattern_types": ["form"]}]},
    "expects": {
        "in_flow": [{"component_names": ["input"], "with_visual_cues": ["error"]}]
    },
    "recommendation": {
        "message": "Design an error variant.",
        "components": [{"shadcn_id": "input", "variant": "error", "label": "Input (error)"}],
    },
}

DELETE_RULE = {
    "id": "delete-no-confirmation",
    "name": "Destructive action without confirmation",
    "description": "Deleting needs confirmation.",
    "triggers": {"any_of": [{"pattern_types": ["destructive-action"]}]},
    "expects": {"in_flow": [{"component_names": ["alert-dialog", "dialog"]}]},
    "recommendation": {"message": "Add a confirmation dialog."},
}

AUTH_FLOW = {
    "flow_type": "authentication",
    "name": "Authentication Flow",
    "description": "Signing in.",
    "triggers": {"any_of": [{"layer_name_patterns": ["(?i)log.?in"]}]},
    "expected_screens": [
        {
            "id": "login",
            "name": "Login",
            "required": True,
            "detection": {"layer_name_patterns": ["(?i)log.?in"]},
        },
        {
            "id": "forgot-password",
            "name": "Forgot Password",
            "required": True,
            "detection": {"layer_name_patterns": ["(?i)(forgot|reset)"]},
            "components": [{"shadcn_id": "input", "label": "Email input"}],
        },
    ],
}

MAPPINGS = {
    "mappings": {
        "error-states": {
            "description": "Error feedback.",
            "primary": [{"shadcn_id": "alert", "variant": "destructive", "usage": "Banner"}],
            "supporting": [{"shadcn_id": "input", "variant": "error", "usage": "Field"}],
        }
    }
}


@pytest.fixture()
def write_corpus(tmp_path) -> Callable[..., Path]:
    """Write a knowledge directory with PyYAML and return its root.

    Args (of the returned callable):
        rules: {file name: rule document}.
        flows: {file name: flow document}.
        mappings: Component mapping document, or None to omit the file.
    """

    def factory(
        rules: dict[str, Any] | None = None,
        flows: dict[str, Any] | None = None,
        mappings: dict[str, Any] | None = None,
        name: str = "knowledge",
    ) -> Path:
        root = tmp_path / name
        (root / "rules").mkdir(parents=True)
        for file_name, document in (rules or {}).items():
            (root / "rules" / file_name).write_text(
                yaml.safe_dump(document, sort_keys=False), encoding="utf-8"
            )
        if flows is not None:
            (root / "flows").mkdir()
            for file_name, document in flows.items():
                (root / "flows" / file_name).write_text(
                    yaml.safe_dump(document, sort_keys=False), encoding="utf-8"
                )
        if mappings is not None:
            (root / "components").mkdir()
            (root / "components" / "component-mappings.yml").write_text(
                yaml.safe_dump(mappings, sort_keys=False), encoding="utf-8"
            )
        return root

    return factory


@pytest.fixture()
def small_corpus(write_corpus) -> Path:
    """Two error/destructive rules, an authentication flow and mappings."""
    return write_corpus(
        rules={
            "error-states.yml": {"name": "Error States", "rules": [FORM_ERROR_RULE]},
            "destructive.yml": {"name": "Destructive Actions", "rules": [DELETE_RULE]},
        },
        flows={"authentication.yml": AUTH_FLOW},
        mappings=MAPPINGS,
    )


@pytest.fixture()
def small_knowledge(small_corpus) -> KnowledgeBase:
    return load_knowledge(small_corpus)


@pytest.fixture(scope="session")
def bundled_knowledge() -> KnowledgeBase:
    """The corpus shipped with the package."""
    return load_knowledge()
