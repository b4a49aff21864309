"""Heuristic UI pattern detection."""

from .patterns import DetectorConfig, PatternDetector, detect_patterns

__all__ = ["DetectorConfig", "PatternDetector", "detect_patterns"]
