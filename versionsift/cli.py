"""CLI interface for versionsift."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from versionsift.config import (
    AppSettings,
    ExecutionSettings,
    RulesSettings,
    ScanSettings,
    get_settings,
    set_settings,
)
from versionsift.extractors import StringSearchExtractor
from versionsift.formatters import format_as_json
from versionsift.models import ExecutionOptions, ScanReport
from versionsift.pipeline.rules import RuleBuilder, RuleEngine, RuleParseError, RuleRegistry
from versionsift.pipeline.rules_factory import build_registry
from versionsift.pipeline.scan import scan_path

console = Console()


def setup_logging(log_level: str) -> None:
    """Configure logging with rich handler."""
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _write_output(text: str, output_path: Path | None) -> None:
    """Write output text to file or stdout."""
    if output_path:
        output_path.write_text(text)
    else:
        click.echo(text)


def _load_registry(settings: RulesSettings) -> RuleRegistry:
    """Build the registry, exiting with a readable message on bad rule files."""
    try:
        return build_registry(settings)
    except (FileNotFoundError, RuleParseError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        sys.exit(1)


def display_file_results(report: ScanReport, show_errors: bool) -> None:
    """Display per-file results and rule failures."""
    if not report.files:
        console.print("\n[yellow]No files matched any rule.[/yellow]")
        return

    console.print(f"\n[bold cyan]Scanned {len(report.files)} candidate file(s):[/bold cyan]")
    for file_result in report.files:
        execution = file_result.execution
        best = execution.best_result
        if best:
            console.print(
                f"  [green]✓[/green] {escape(str(file_result.path))} → [bold]{escape(best.value)}[/bold] "
                f"[dim]({best.confidence:.0%}, {execution.rules_applied} rule(s))[/dim]"
            )
        else:
            console.print(f"  [dim]-[/dim] {escape(str(file_result.path))} [dim](nothing found)[/dim]")
        if show_errors:
            for failure in execution.errors:
                console.print(f"    [red]✗[/red] {escape(str(failure))}")


def display_failed_files(report: ScanReport) -> None:
    """Display files that could not be read."""
    if not report.failed_files:
        return

    console.print("\n[bold red]Failed Files:[/bold red]")
    for file_path, error in report.failed_files.items():
        console.print(f"  [red]✗[/red] {escape(str(file_path))}")
        console.print(f"    [dim]{escape(error)}[/dim]")


def display_summary(report: ScanReport) -> None:
    """Display the overall best result."""
    best = report.best_result
    if best is None:
        console.print("\n[yellow]No Python version detected.[/yellow]\n")
        return
    console.print(
        f"\n[bold green]Detected Python {escape(best.value)}[/bold green] "
        f"from {escape(best.source)} ({best.confidence:.0%} confidence)\n"
    )


def display_rules(registry: RuleRegistry) -> None:
    """Display the rules of a registry in priority order, with statistics."""
    table = Table(title="\n[bold cyan]Rules[/bold cyan]", show_header=True, header_style="bold")
    table.add_column("Priority", justify="right")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Pattern")
    table.add_column("Enabled", justify="center")
    table.add_column("Tags", style="dim")

    for rule in registry.list_rules():
        pattern = rule.condition.file_pattern
        if rule.condition.path_pattern is not None:
            pattern = f"{pattern} {rule.condition.path_pattern.pattern}".strip()
        table.add_row(
            str(rule.priority),
            escape(rule.name),
            escape(pattern),
            "✓" if rule.enabled else "✗",
            escape(", ".join(rule.tags)),
        )
    console.print(table)

    stats = registry.get_statistics()
    console.print(
        f"[dim]{stats.total_rules} rule(s): {stats.enabled_rules} enabled, "
        f"{stats.disabled_rules} disabled[/dim]\n"
    )


def _configure_settings(
    rules_file: Path | None,
    no_builtin: bool,
    execution: ExecutionSettings,
    scan: ScanSettings,
) -> AppSettings:
    """Configure application settings."""
    settings = AppSettings(
        rules=RulesSettings(rules_file=rules_file, include_builtin=not no_builtin),
        execution=execution,
        scan=scan,
    )
    set_settings(settings)
    return settings


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Set the logging level",
)
def main(log_level: str) -> None:
    """Detect the Python version a project targets from its files."""
    setup_logging(log_level.upper())


@main.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--rules-file",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML or JSON file with additional rules",
)
@click.option("--no-builtin", is_flag=True, default=False, help="Don't register the built-in rules")
@click.option("--tag", "tags", multiple=True, help="Only run rules with this tag (repeatable)")
@click.option(
    "--min-confidence",
    type=click.FloatRange(0.0, 1.0),
    default=0.0,
    help="Discard results below this confidence (default: 0.0)",
)
@click.option(
    "--max-results",
    type=click.IntRange(min=0),
    default=0,
    help="Maximum results per file (default: 0 = unlimited)",
)
@click.option("--first-match", is_flag=True, default=False, help="Stop at the first result per file")
@click.option("--workers", type=click.IntRange(min=1), default=4, help="Files processed concurrently")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Cancel remaining rule evaluation after this many seconds",
)
@click.option(
    "--ignore",
    type=str,
    default="",
    help="Comma-separated list of glob patterns to ignore files (e.g., 'docs/**,*.bak')",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format (default: console)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path (default: stdout)",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with error code 1 if any rule failed",
)
def scan(
    path: Path,
    rules_file: Path | None,
    no_builtin: bool,
    tags: tuple[str, ...],
    min_confidence: float,
    max_results: int,
    first_match: bool,
    workers: int,
    timeout: float | None,
    ignore: str,
    output_format: str,
    output: Path | None,
    strict: bool,
) -> None:
    """Scan a directory for Python version declarations."""
    settings = _configure_settings(
        rules_file,
        no_builtin,
        ExecutionSettings(
            stop_on_first_match=first_match,
            max_results=max_results,
            min_confidence=min_confidence,
            tags=list(tags),
        ),
        ScanSettings(
            workers=workers,
            timeout=timeout,
            ignore_patterns=[p.strip() for p in ignore.split(",") if p.strip()],
        ),
    )
    engine = RuleEngine(_load_registry(settings.rules))

    if output_format.lower() == "console":
        console.print(f"\nAnalyzing: [cyan]{escape(str(path))}[/cyan]")
        with console.status("[bold green]Scanning..."):
            report = _run_scan(path, engine, settings)
        display_file_results(report, show_errors=True)
        display_failed_files(report)
        display_summary(report)
        if output:
            output.write_text(format_as_json(report))
    else:
        report = _run_scan(path, engine, settings)
        _write_output(format_as_json(report), output)

    if strict and report.error_count:
        sys.exit(1)


def _run_scan(path: Path, engine: RuleEngine, settings: AppSettings) -> ScanReport:
    return scan_path(
        path,
        engine,
        settings.execution.to_options(),
        workers=settings.scan.workers,
        timeout=settings.scan.timeout,
        ignore_patterns=settings.scan.ignore_patterns,
        max_file_size=settings.scan.max_file_size,
    )


@main.command(name="rules")
@click.option(
    "--rules-file",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML or JSON file with additional rules",
)
@click.option("--no-builtin", is_flag=True, default=False, help="Don't list the built-in rules")
def list_rules(rules_file: Path | None, no_builtin: bool) -> None:
    """List the rules that a scan would use."""
    settings = RulesSettings(rules_file=rules_file, include_builtin=not no_builtin)
    display_rules(_load_registry(settings))


@main.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.argument("term")
@click.option("--regex", "is_regex", is_flag=True, default=False, help="Treat TERM as a regex")
@click.option("--case-sensitive", is_flag=True, default=False, help="Match case exactly")
@click.option(
    "--max-matches",
    type=click.IntRange(min=0),
    default=0,
    help="Maximum matches reported per file (default: 0 = unlimited)",
)
@click.option(
    "--file-pattern",
    "file_patterns",
    multiple=True,
    default=("*",),
    help="Only search files matching this glob (repeatable, default: *)",
)
def search(
    path: Path,
    term: str,
    is_regex: bool,
    case_sensitive: bool,
    max_matches: int,
    file_patterns: tuple[str, ...],
) -> None:
    """Search file contents for TERM."""
    try:
        extractor = StringSearchExtractor(
            search_term=term,
            is_regex=is_regex,
            case_sensitive=case_sensitive,
            max_matches=max_matches,
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        sys.exit(1)

    registry = RuleRegistry()
    for index, pattern in enumerate(file_patterns):
        registry.register(
            RuleBuilder(f"search-{index}").file_pattern(pattern).extractor(extractor).build()
        )

    settings = get_settings()
    report = scan_path(
        path,
        RuleEngine(registry),
        ExecutionOptions(stop_on_first_match=True),
        workers=settings.scan.workers,
        ignore_patterns=settings.scan.ignore_patterns,
        max_file_size=settings.scan.max_file_size,
    )

    total = 0
    for file_result in report.files:
        if not file_result.execution.found:
            continue
        content = file_result.path.read_bytes()
        for match in extractor.search(content, str(file_result.path)):
            total += 1
            console.print(
                f"[cyan]{escape(match.file_path)}[/cyan]:[dim]{match.line_number}[/dim]: "
                f"{escape(match.line_content)}"
            )
    console.print(f"\n[bold]{total}[/bold] match(es) in {report.files_seen} file(s)")


if __name__ == "__main__":
    main()
