"""Click-based CLI for design edge-case analysis."""

import json
import sys
from pathlib import Path
from typing import Any

import click

from . import __version__
from .analysis_logging import LogCategory, get_category_logger, setup_logging
from .config import EdgyConfig, EdgyConfigLoader
from .errors import EdgyError, InputError
from .models import AnalysisInput, Severity
from .pipeline import AnalysisPipeline
from .reporter import get_reporter
from .rules import KnowledgeBase, PatternCache, load_knowledge

logger = get_category_logger(LogCategory.CLI)

SEVERITY_CHOICES = [s.value for s in Severity]


def common_options(f: Any) -> Any:
    """Verbosity options shared by all commands."""
    f = click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")(f)
    f = click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")(f)
    return f


def knowledge_option(f: Any) -> Any:
    return click.option(
        "--knowledge-dir",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Rule corpus directory (default: bundled corpus)",
    )(f)


def fail(error: EdgyError) -> None:
    """Print a structured error and exit with its code."""
    click.echo(error.format(use_color=sys.stderr.isatty()), err=True)
    sys.exit(error.exit_code)


def read_input(source: str) -> AnalysisInput:
    """Read and parse the analysis input envelope.

    Raises:
        InputError: If the input is not a JSON object with a ``screens`` list.
    """
    try:
        if source == "-":
            text = click.get_text_stream("stdin").read()
        else:
            text = Path(source).read_text(encoding="utf-8")
    except OSError as e:
        raise InputError(f"Cannot read input: {e}", source=source) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputError(f"Input is not valid JSON: {e}", source=source) from e

    if not isinstance(data, dict):
        raise InputError("Input must be a JSON object", source=source)
    if not isinstance(data.get("screens"), list):
        raise InputError("Input must contain a 'screens' list", source=source)
    return AnalysisInput.from_dict(data)


def _check_verbosity(verbose: bool, quiet: bool) -> None:
    if quiet and verbose:
        click.echo("Error: --quiet and --verbose are mutually exclusive", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Edgy - finds missing edge-case states in UI design screens."""


@cli.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(allow_dash=True))
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write output here"
)
@knowledge_option
@click.option(
    "--config", "config_path", type=click.Path(path_type=Path), help="Configuration file path"
)
@click.option(
    "--format", "output_format", type=click.Choice(["json", "text"]), help="Output format"
)
@click.option(
    "--min-severity", type=click.Choice(SEVERITY_CHOICES), help="Drop findings below this level"
)
@common_options
def analyze(
    input_path: str,
    output: Path | None,
    knowledge_dir: Path | None,
    config_path: Path | None,
    output_format: str | None,
    min_severity: str | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Analyze extracted screens (INPUT is a JSON file, or - for stdin)."""
    _check_verbosity(verbose, quiet)

    try:
        config = EdgyConfigLoader().load(config_path)
        if knowledge_dir is not None:
            config.knowledge.directory = str(knowledge_dir)
        if min_severity is not None:
            config.analysis.min_severity = min_severity
        if output_format is not None:
            config.output.format = output_format

        setup_logging(
            level=config.logging.level,
            quiet=quiet,
            verbose=verbose,
            log_file=Path(config.logging.file) if config.logging.file else None,
            log_format=config.logging.format,
        )

        analysis_input = read_input(input_path)
        result = AnalysisPipeline.from_config(config).run(analysis_input)
    except EdgyError as e:
        fail(e)
        return

    if output is None:
        get_reporter(config.output.format, sys.stdout, config.output.indent).report(result)
        return

    with open(output, "w", encoding="utf-8") as f:
        get_reporter(config.output.format, f, config.output.indent).report(result)
    logger.info(f"Wrote {result.summary.total_findings} findings to {output}")


@cli.group()
def rules() -> None:
    """Inspect the rule corpus."""


def _load(knowledge_dir: Path | None, verbose: bool, quiet: bool) -> KnowledgeBase:
    _check_verbosity(verbose, quiet)
    setup_logging(quiet=quiet, verbose=verbose)
    config = EdgyConfig()
    return load_knowledge(
        knowledge_dir,
        rules_dir=config.knowledge.rules_dir,
        flows_dir=config.knowledge.flows_dir,
        mappings_file=config.knowledge.mappings_file,
    )


@rules.command("list")
@knowledge_option
@common_options
def list_rules(knowledge_dir: Path | None, verbose: bool, quiet: bool) -> None:
    """List loaded rules and flow rules."""
    try:
        knowledge = _load(knowledge_dir, verbose, quiet)
    except EdgyError as e:
        fail(e)
        return

    for category in knowledge.categories:
        click.echo(f"{category}:")
        for rule in knowledge.rules:
            if rule.category != category:
                continue
            severity = rule.severity.value if rule.severity else "-"
            click.echo(f"  {rule.qualified_id:<45} {severity:<8} {rule.name}")

    if knowledge.flow_rules:
        click.echo("flows:")
        for flow_rule in knowledge.flow_rules:
            click.echo(
                f"  {flow_rule.flow_type:<45} {len(flow_rule.expected_screens)} screens"
                f"  {flow_rule.name}"
            )

    click.echo(
        f"\n{len(knowledge.rules)} rules, {len(knowledge.flow_rules)} flow rules, "
        f"{len(knowledge.component_mappings)} component mappings"
    )


@rules.command("validate")
@knowledge_option
@common_options
def validate_rules(knowledge_dir: Path | None, verbose: bool, quiet: bool) -> None:
    """Load the corpus and report schema errors and invalid regexes."""
    try:
        knowledge = _load(knowledge_dir, verbose, quiet)
    except EdgyError as e:
        fail(e)
        return

    cache = PatternCache()
    for owner, pattern in knowledge.iter_patterns():
        cache.compile(pattern, owner)

    for warning in cache.warnings:
        click.echo(
            f"warning: {warning.rule_id}: {warning.pattern!r}: {warning.message}",
            err=True,
        )
    click.echo(
        f"OK: {len(knowledge.rules)} rules, {len(knowledge.flow_rules)} flow rules "
        f"({len(cache.warnings)} invalid patterns)"
    )


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
