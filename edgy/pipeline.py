"""End-to-end analysis of one screen set.

The pipeline is synchronous and keeps no state across runs apart from
its id sequences, which ``run`` resets first. Given the same input and
corpus, two runs produce identical output apart from ``completed_at``.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .analysis_logging import LogCategory, get_category_logger
from .config import EdgyConfig
from .detection import DetectorConfig, PatternDetector
from .expectations import ExpectationChecker, UnmetExpectation
from .findings import ComponentEnricher, FindingGenerator, FlowDeduplicator, IdSequence
from .flows import (
    FlowCheckRunner,
    FlowTypeDetector,
    MissingScreenGenerator,
    extract_flow_prefix,
    get_flow_siblings,
    group_by_flow,
)
from .flows.detector import DetectedFlowType
from .models import (
    AnalysisInput,
    AnalysisOutput,
    AnalysisSummary,
    DetectedPattern,
    ScreenResult,
    Severity,
    resolve_severity,
)
from .rules import KnowledgeBase, PatternCache, RuleEngine, load_knowledge

logger = get_category_logger(LogCategory.PIPELINE)


@dataclass
class ScreenTrace:
    """Intermediate results for one screen, kept for inspection and tests."""

    screen_id: str
    flow_prefix: str
    patterns: list[DetectedPattern] = field(default_factory=list)
    triggered: int = 0
    unmet: list[UnmetExpectation] = field(default_factory=list)


class AnalysisPipeline:
    """Runs detection, rule matching, expectation checks and flow analysis."""

    def __init__(self, knowledge: KnowledgeBase, config: EdgyConfig | None = None):
        """Initialize the pipeline.

        Args:
            knowledge: Loaded rule corpus.
            config: Analysis configuration. Defaults apply when None.
        """
        self.knowledge = knowledge
        self.config = config or EdgyConfig()

        self.finding_ids = IdSequence("f")
        self.missing_screen_ids = IdSequence("mf")
        self.flow_finding_ids = IdSequence("ff")

        # One regex cache so every stage reports into the same warnings list
        self.patterns = PatternCache()
        self.detector = PatternDetector(
            DetectorConfig(skip_hidden=self.config.analysis.skip_hidden_elements)
        )
        self.engine = RuleEngine(knowledge.rules, patterns=self.patterns)
        self.checker = ExpectationChecker(self.patterns)
        self.generator = FindingGenerator(self.finding_ids)
        self.enricher = ComponentEnricher(knowledge.component_mappings)
        self.flow_detector = FlowTypeDetector(self.patterns)
        self.flow_checks = FlowCheckRunner(ids=self.flow_finding_ids)
        self.missing_screens = MissingScreenGenerator(
            ids=self.missing_screen_ids,
            patterns=self.patterns,
            default_width=self.config.placeholder.width,
            default_height=self.config.placeholder.height,
        )
        self.traces: list[ScreenTrace] = []

    @classmethod
    def from_config(cls, config: EdgyConfig | None = None) -> "AnalysisPipeline":
        """Create a pipeline, loading the corpus named by the configuration.

        Raises:
            RuleLoadError: If the corpus is malformed.
        """
        config = config or EdgyConfig()
        knowledge = load_knowledge(
            config.knowledge.directory,
            rules_dir=config.knowledge.rules_dir,
            flows_dir=config.knowledge.flows_dir,
            mappings_file=config.knowledge.mappings_file,
        )
        return cls(knowledge, config)

    def reset(self) -> None:
        """Reset id sequences and collected warnings for a fresh run."""
        self.finding_ids.reset()
        self.missing_screen_ids.reset()
        self.flow_finding_ids.reset()
        self.patterns.clear_warnings()
        self.traces = []

    def accepts(self, rule_id: str, severity: Severity, screen_name: str | None = None) -> bool:
        """Check ignore rules and the minimum severity."""
        if not severity.at_least(self.config.analysis.min_severity_level):
            return False
        return not self.config.is_rule_ignored(rule_id, screen_name)

    def run(self, analysis_input: AnalysisInput) -> AnalysisOutput:
        """Analyze a screen set.

        Args:
            analysis_input: Screens produced by the extraction step.

        Returns:
            Findings per screen, flow findings, missing screens and a summary.
        """
        self.reset()
        start = time.time()
        screens = analysis_input.screens
        analysis = self.config.analysis

        groups = group_by_flow(screens)
        all_trees = [screen.root for screen in screens]
        deduplicator = FlowDeduplicator() if analysis.dedupe_within_flows else None

        results: list[ScreenResult] = []
        patterns_by_screen: dict[str, list[DetectedPattern]] = {}

        for screen in screens:
            prefix = extract_flow_prefix(screen.name)
            patterns = self.detector.detect(screen.root)
            patterns_by_screen[screen.id] = patterns

            triggered = self.engine.match(patterns, screen.root, screen.name)
            flow_trees = [s.root for s in get_flow_siblings(screen, groups)]
            unmet = self.checker.check(triggered, screen.root, all_trees, flow_trees)

            unmet = [
                u
                for u in unmet
                if self.accepts(
                    u.rule.qualified_id,
                    resolve_severity(u.rule.severity, u.rule.required),
                    screen.name,
                )
            ]
            if deduplicator is not None:
                unmet = deduplicator.filter(unmet, prefix)

            findings = self.generator.generate(unmet, screen)
            if analysis.enrich_components:
                findings = self.enricher.enrich(findings)

            self.traces.append(
                ScreenTrace(
                    screen_id=screen.id,
                    flow_prefix=prefix,
                    patterns=patterns,
                    triggered=len(triggered),
                    unmet=unmet,
                )
            )
            results.append(ScreenResult(screen_id=screen.id, name=screen.name, findings=findings))
            logger.debug(
                f"Screen '{screen.name}': {len(patterns)} patterns, "
                f"{len(triggered)} triggered, {len(findings)} findings",
                extra={"screen_id": screen.id, "finding_count": len(findings)},
            )

        flow_findings = (
            self.flow_checks.run(screens, accept=self.accepts) if analysis.flow_checks else []
        )

        detected_flows: list[DetectedFlowType] = []
        if analysis.detect_flow_types:
            detected_flows = self.flow_detector.detect(
                screens, patterns_by_screen, self.knowledge.flow_rules
            )
        missing = self.missing_screens.generate(
            screens, detected_flows, self.knowledge.flow_rules, accept=self.accepts
        )

        severities = [f.severity for result in results for f in result.findings]
        severities += [f.severity for f in flow_findings]
        severities += [f.severity for f in missing]
        summary = AnalysisSummary(
            screens_analyzed=len(screens),
            total_findings=len(severities),
            critical=severities.count(Severity.CRITICAL),
            warning=severities.count(Severity.WARNING),
            info=severities.count(Severity.INFO),
        )

        duration_ms = (time.time() - start) * 1000
        logger.info(
            f"Analyzed {len(screens)} screens in {len(groups)} flows: "
            f"{summary.total_findings} findings",
            extra={"duration_ms": round(duration_ms, 2), "finding_count": summary.total_findings},
        )

        return AnalysisOutput(
            analysis_id=analysis_input.analysis_id,
            completed_at=datetime.now(timezone.utc).isoformat(),
            summary=summary,
            screens=results,
            flow_findings=flow_findings,
            missing_screen_findings=missing,
            detected_flow_types=[d.to_dict() for d in detected_flows],
            warnings=[w.to_dict() for w in self.patterns.warnings],
        )


def analyze(
    analysis_input: AnalysisInput,
    knowledge: KnowledgeBase | None = None,
    config: EdgyConfig | None = None,
) -> AnalysisOutput:
    """Run one analysis, loading the bundled corpus when none is given."""
    if knowledge is None:
        return AnalysisPipeline.from_config(config).run(analysis_input)
    return AnalysisPipeline(knowledge, config).run(analysis_input)
