"""Flow grouping and flow-level analysis."""

from .checks import DEFAULT_FLOW_CHECKS, FlowCheck, FlowCheckRunner
from .detector import DetectedFlowType, FlowTypeDetector, detect_flow_types
from .grouper import extract_flow_prefix, get_flow_siblings, group_by_flow
from .missing_screens import (
    MissingScreenGenerator,
    generate_missing_screen_findings,
    screen_exists,
)

__all__ = [
    "DEFAULT_FLOW_CHECKS",
    "DetectedFlowType",
    "FlowCheck",
    "FlowCheckRunner",
    "FlowTypeDetector",
    "MissingScreenGenerator",
    "detect_flow_types",
    "extract_flow_prefix",
    "generate_missing_screen_findings",
    "get_flow_siblings",
    "group_by_flow",
    "screen_exists",
]
