"""Typer-based CLI for blast-radius impact analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__, config, config_manager
from .engine import BlastRadiusEngine
from .models import BlastRadiusResult, FileDependencyReport, ResolvedFile

console = Console()

app = typer.Typer(
    help="💥 Blast Radius: estimate what a change set touches before you ship it.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  Show or change persisted settings.", no_args_is_help=True)
app.add_typer(config_app, name="config")

_LEVEL_COLORS = {"critical": "red", "high": "yellow", "medium": "cyan", "low": "green"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Blast Radius v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline progress."),
):
    """Blast Radius: dependency-aware risk assessment for code changes."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _engine(app_id: str, apps_root: Optional[Path]) -> BlastRadiusEngine:
    settings = config_manager.load_settings()
    if apps_root is not None:
        settings.apps_root = apps_root
    app_dir = settings.apps_root / app_id
    if not app_dir.is_dir():
        raise typer.BadParameter(f"Application '{app_id}' not found under {settings.apps_root}.")
    return BlastRadiusEngine(settings=settings)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _level(level: str) -> str:
    color = _LEVEL_COLORS.get(level, "white")
    return f"[bold {color}]{level.upper()}[/bold {color}]"


def _match_label(resolved: ResolvedFile) -> str:
    if resolved.unverified:
        return "[yellow]unverified[/yellow]"
    if not resolved.exists:
        return "[red]not found[/red]"
    if resolved.edit_distance is not None:
        return f"{resolved.match_strategy.value} (distance {resolved.edit_distance})"
    return resolved.match_strategy.value


# ===================================================================
# analyze
# ===================================================================

@app.command("analyze")
def analyze(
    app_id: str = typer.Argument(..., metavar="APP", help="Application id (folder under the apps root)."),
    files: List[str] = typer.Argument(..., help="Changed files, as named in the change request."),
    depth: Optional[int] = typer.Option(
        None, "--depth", "-d", min=0, help="Dependent levels to follow (default: analysis.default_depth).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw analysis result as JSON."),
    apps_root: Optional[Path] = typer.Option(None, "--apps-root", help="Override the applications root."),
):
    """Analyze the blast radius of a set of changed files."""
    engine = _engine(app_id, apps_root)
    result = engine.analyze_blast_radius(app_id, files, depth)
    if as_json:
        _emit_json(result.to_dict())
        return
    _render_result(app_id, result)


def _render_result(app_id: str, result: BlastRadiusResult) -> None:
    risk = result.risk
    color = _LEVEL_COLORS.get(risk.level, "white")
    console.print(
        Panel.fit(
            f"{_level(risk.level)}  score [bold]{risk.score}[/bold]/100\n{risk.description}",
            title=f"[bold]Blast radius of {app_id}[/bold]",
            border_style=color,
        )
    )

    files = Table(title="\nChanged Files", show_header=True)
    files.add_column("Requested", style="cyan")
    files.add_column("Resolved")
    files.add_column("Match")
    for resolved in result.changed_files:
        files.add_row(
            resolved.requested_path,
            resolved.resolved_path if resolved.exists else "-",
            _match_label(resolved),
        )
    console.print(files)

    if result.components:
        table = Table(title="\nAffected Components", show_header=True)
        table.add_column("Path", style="cyan")
        table.add_column("Type")
        table.add_column("Depth", justify="right")
        for component in result.components:
            marker = " [dim](changed)[/dim]" if component.changed_directly else ""
            table.add_row(component.path + marker, component.archetype, str(component.depth))
        console.print(table)
        impact = result.impact
        console.print(
            f"  Direct dependents: {impact.direct_dependency_count} | "
            f"Transitive: {impact.transitive_dependency_count}"
        )

    if result.integrations:
        console.print("\n[bold yellow]Affected Integrations[/bold yellow]")
        for finding in result.integrations:
            console.print(f"  • {finding.type} {_level(finding.risk_level)} via {finding.example_file}")

    if result.tests:
        console.print("\n[bold]Affected Tests[/bold]")
        for test in result.tests:
            direct = " (directly changed)" if test.directly_affected else ""
            console.print(f"  • {test.path} ({test.test_type}){direct}")

    if result.recommendations:
        console.print(
            Panel(
                "\n".join(
                    f"  • {_level(r.priority)} {r.category}: {r.text} "
                    f"({', '.join(r.suggested_test_types)})"
                    for r in result.recommendations
                ),
                title="[bold yellow]📋 Recommendations[/bold yellow]",
                border_style="yellow",
            )
        )


# ===================================================================
# find-files / dependencies
# ===================================================================

@app.command("find-files")
def find_files(
    app_id: str = typer.Argument(..., metavar="APP", help="Application id."),
    paths: List[str] = typer.Argument(..., help="Paths to resolve."),
    as_json: bool = typer.Option(False, "--json", help="Print resolutions as JSON."),
    apps_root: Optional[Path] = typer.Option(None, "--apps-root", help="Override the applications root."),
):
    """Resolve loosely named paths to files of an application."""
    engine = _engine(app_id, apps_root)
    resolved = engine.resolve_files(app_id, paths)
    if as_json:
        _emit_json([r.to_dict() for r in resolved])
        return

    table = Table(title="File Resolution", show_header=True)
    table.add_column("Requested", style="cyan")
    table.add_column("Resolved")
    table.add_column("Match")
    table.add_column("Suggestions", style="dim")
    for r in resolved:
        table.add_row(
            r.requested_path,
            r.resolved_path if r.exists else "-",
            _match_label(r),
            ", ".join(r.suggestions),
        )
    console.print(table)


@app.command("dependencies")
def dependencies(
    app_id: str = typer.Argument(..., metavar="APP", help="Application id."),
    file: str = typer.Argument(..., help="File to inspect."),
    depth: Optional[int] = typer.Option(
        None, "--depth", "-d", min=0, help="Levels to walk (default: analysis.default_depth).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    apps_root: Optional[Path] = typer.Option(None, "--apps-root", help="Override the applications root."),
):
    """Show what a file depends on and what depends on it."""
    engine = _engine(app_id, apps_root)
    report = engine.get_file_dependencies(app_id, file, depth)
    if as_json:
        _emit_json(report.to_dict())
        return
    _render_dependencies(report)


def _render_dependencies(report: FileDependencyReport) -> None:
    resolved = report.file
    if not resolved.exists and not resolved.unverified:
        console.print(f"[red]No file matches '{resolved.requested_path}'.[/red]")
        if resolved.suggestions:
            console.print("Did you mean:")
            for suggestion in resolved.suggestions:
                console.print(f"  • {suggestion}")
        raise typer.Exit(code=1)

    console.print(f"[bold cyan]{resolved.resolved_path}[/bold cyan] ({_match_label(resolved)})")
    if report.insight and report.insight.component_type:
        console.print(f"  Type: {report.insight.component_type}")

    for title, walk in (
        ("Depends on", report.transitive_dependencies),
        ("Depended on by", report.transitive_dependents),
    ):
        table = Table(title=f"\n{title}", show_header=True)
        table.add_column("Path", style="cyan")
        table.add_column("Depth", justify="right")
        for path, level in walk:
            table.add_row(path, str(level))
        if not walk:
            table.add_row("[dim](none)[/dim]", "")
        console.print(table)


# ===================================================================
# config
# ===================================================================

@config_app.command("show")
def config_show(
    as_json: bool = typer.Option(False, "--json", help="Print settings as JSON."),
):
    """Show the effective settings."""
    settings = config_manager.load_settings()
    data = settings.to_dict()
    if as_json:
        _emit_json(data)
        return
    table = Table(title="Blast Radius Settings", show_header=True)
    table.add_column("Section", style="cyan")
    table.add_column("Key")
    table.add_column("Value")
    for section, values in data.items():
        for key, value in values.items():
            table.add_row(section, key, str(value))
    console.print(table)
    exists = "" if config.CONFIG_FILE.exists() else " (not created yet)"
    console.print(f"[dim]Config file: {config.CONFIG_FILE}{exists}[/dim]")


@config_app.command("set")
def config_set(
    section: str = typer.Argument(..., help=f"One of: {', '.join(config_manager.SECTIONS)}."),
    key: str = typer.Argument(..., help="Setting name."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist a single setting to the config file."""
    try:
        saved = config_manager.save_setting(section, key, value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if not saved:
        typer.echo(f"Could not write {config.CONFIG_FILE}.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved [{section}] {key} = {value}")


if __name__ == "__main__":
    app()
