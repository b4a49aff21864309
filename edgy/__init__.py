"""Edge-case analysis for UI design screens.

This package finds states a design is missing (error, empty, loading,
confirmation, ...) by detecting UI patterns in extracted screen trees and
matching them against a YAML rule corpus.

Main components:
- models: Screen trees, detected patterns and findings
- detection: Heuristic pattern detection
- rules: Rule corpus schema, loading and trigger matching
- expectations: Checks whether a triggered rule's expected state exists
- findings: Finding generation and component enrichment
- flows: Flow grouping, flow type detection and missing screens
- pipeline: End-to-end analysis run
- config: Configuration loading and validation
"""

__version__ = "0.1.0"

from .config import EdgyConfig, EdgyConfigLoader, load_config
from .errors import ConfigError, EdgyError, InputError, RuleLoadError
from .models import (
    AnalysisInput,
    AnalysisOutput,
    DetectedPattern,
    Element,
    Finding,
    FlowFinding,
    MissingScreenFinding,
    PatternType,
    Screen,
    Severity,
)
from .pipeline import AnalysisPipeline, analyze
from .rules import KnowledgeBase, load_knowledge

__all__ = [
    "__version__",
    # Pipeline
    "AnalysisPipeline",
    "analyze",
    # Config
    "EdgyConfig",
    "EdgyConfigLoader",
    "load_config",
    # Errors
    "ConfigError",
    "EdgyError",
    "InputError",
    "RuleLoadError",
    # Corpus
    "KnowledgeBase",
    "load_knowledge",
    # Models
    "AnalysisInput",
    "AnalysisOutput",
    "DetectedPattern",
    "Element",
    "Finding",
    "FlowFinding",
    "MissingScreenFinding",
    "PatternType",
    "Screen",
    "Severity",
]
