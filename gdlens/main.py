"""gdlens CLI - Static analysis for Godot projects."""
import json
from pathlib import Path
from typing import Callable, Dict, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from gdlens.config import __version__, get_config
from gdlens.service import ProjectAnalyzer, is_error
from gdlens.utils.safe_console import SafeConsole

app = typer.Typer(
    name="gdlens",
    help="Static analysis for Godot projects: dead code, signals, autoloads, complexity",
    add_completion=False
)
# Use SafeConsole for Windows Unicode compatibility
console = SafeConsole(force_terminal=True)

HEAT_BAR = '█'


def _analyzer(project: Optional[Path], include_addons: bool,
              min_duplicate_lines: Optional[int] = None) -> ProjectAnalyzer:
    """Resolve settings from flags, .gdlens.json and the environment."""
    try:
        settings = get_config().to_settings(
            project_path=project,
            # Only an explicit flag overrides the configured value
            include_addons=True if include_addons else None,
            min_duplicate_lines=min_duplicate_lines,
        )
    except ValueError as e:
        console.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    return ProjectAnalyzer(settings)


def _emit(result: Dict, as_json: bool, render: Callable[[Dict], None]) -> None:
    """Print a tool result as JSON or through ``render``; errors exit with status 1."""
    if as_json:
        typer.echo(json.dumps(result, indent=2))
        if is_error(result):
            raise typer.Exit(1)
        return

    if is_error(result):
        console.error(result["message"])
        raise typer.Exit(1)
    render(result)


def _symbol_table(title: str, rows) -> Table:
    table = Table(title=title)
    table.add_column("Symbol", style="cyan")
    table.add_column("File", style="magenta", no_wrap=False)
    table.add_column("Line", style="green", justify="right")
    for row in rows:
        table.add_row(escape(row["name"]), escape(row["file"]), str(row["line"]))
    return table


# =========================================================================
# DEAD CODE
# =========================================================================

def _render_dead_code(result: Dict) -> None:
    summary = result["summary"]
    stats = result["filtering_stats"]

    table = Table(title="Dead Code Summary", show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Potentially Dead", justify="right", style="yellow")
    table.add_row("Functions", str(summary["total_functions"]), str(summary["potentially_dead_functions"]))
    table.add_row("Variables", str(summary["total_variables"]), str(summary["potentially_dead_variables"]))
    table.add_row("Signals", str(summary["total_signals"]), str(summary["potentially_dead_signals"]))
    console.print(table)

    for key, title in (("dead_functions", "Dead Functions"),
                       ("dead_variables", "Dead Variables"),
                       ("dead_signals", "Dead Signals")):
        if result[key]:
            console.print(_symbol_table(title, result[key]))

    if not any(result[key] for key in ("dead_functions", "dead_variables", "dead_signals")):
        console.print("[bold green]No dead code found![/bold green]\n")

    console.print(f"\n[bold yellow]Detection rate:[/bold yellow] {summary['detection_rate']}")
    console.print(f"  Files analyzed: {stats['files_analyzed']}")
    if stats["files_skipped"]:
        console.print(f"  Files skipped (unreadable): {stats['files_skipped']}")
    console.print(f"  Excluded as public API: {stats['excluded_as_public_api']}")
    console.print(f"  Excluded as documented: {stats['excluded_as_documented']}")
    console.print(f"[dim]{escape(result['note'])}[/dim]")


@app.command("dead-code")
def dead_code(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root (default: GDLENS_PROJECT_PATH or cwd)"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """List potentially dead functions, variables and signals."""
    analyzer = _analyzer(project, include_addons)
    if not as_json:
        console.heading("Analyzing project", str(analyzer.settings.project_path))
    _emit(analyzer.detect_dead_code(), as_json, _render_dead_code)


# =========================================================================
# SIGNALS
# =========================================================================

def _render_signals(result: Dict) -> None:
    flow = result["signal_flow"]

    table = Table(title="Signal Flow")
    table.add_column("Signal", style="cyan")
    table.add_column("Defined In", style="magenta")
    table.add_column("Connections", justify="right", style="green")
    table.add_column("Emissions", justify="right", style="green")
    for name, record in flow.items():
        table.add_row(
            escape(name),
            escape(record["defined_in"]),
            str(len(record["connected_to"])),
            str(len(record["emitted_from"])),
        )
    console.print(table)

    orphans = result["orphan_signals"]
    if orphans:
        console.print(f"\n[bold yellow]Orphan signals ({len(orphans)}):[/bold yellow]")
        for signal in orphans:
            console.print(f"  ⚠ {escape(signal['name'])} [dim]({escape(signal['file'])}:{signal['line']})[/dim]")
    else:
        console.print("\n[bold green]✓ No orphan signals[/bold green]")

    summary = result["summary"]
    console.print(
        f"\n  Signals: {summary['total_signals_defined']}  "
        f"Connections: {summary['total_connections']}  "
        f"Emissions: {summary['total_emissions']}"
    )


@app.command()
def signals(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Analyze a single script"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Show signal declarations, connections, emissions and orphans."""
    analyzer = _analyzer(project, include_addons)
    _emit(analyzer.analyze_signal_flow(file), as_json, _render_signals)


# =========================================================================
# AUTOLOADS
# =========================================================================

def _render_autoloads(result: Dict) -> None:
    if not result["autoloads"]:
        console.print("[yellow]No autoloads registered in project.godot[/yellow]")
        return

    tree = Tree("[bold]Autoload Dependency Graph[/bold]")
    for autoload in result["autoloads"]:
        name = autoload["name"]
        branch = tree.add(f"[cyan]{escape(name)}[/cyan] [dim]{escape(autoload['path'])}[/dim]")
        if result["dependencies"][name]:
            branch.add(f"depends on: {escape(', '.join(result['dependencies'][name]))}")
        if result["dependents"][name]:
            branch.add(f"used by: {escape(', '.join(result['dependents'][name]))}")
    console.print(tree)

    if result["warning"]:
        pairs = ", ".join(f"{a} ⇄ {b}" for a, b in result["circular_dependencies"])
        console.print(Panel(f"{escape(result['warning'])}\n{escape(pairs)}", border_style="red"))

    console.print(f"\n[bold blue]Suggested load order:[/bold blue] {escape(' → '.join(result['suggested_load_order']))}")


@app.command()
def autoloads(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Analyze autoload singletons: dependencies, mutual pairs, load order."""
    analyzer = _analyzer(project, include_addons=False)
    _emit(analyzer.analyze_autoloads(), as_json, _render_autoloads)


# =========================================================================
# COMPLEXITY
# =========================================================================

def _render_complexity(result: Dict) -> None:
    table = Table(title=f"Complexity: {escape(result['file'])}")
    table.add_column("Function", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Complexity", justify="right", style="yellow")
    table.add_column("Grade")
    for record in result["functions"]:
        table.add_row(escape(record["function"]), str(record["line"]),
                      str(record["complexity"]), record["grade"])
    console.print(table)

    summary = result["summary"]
    console.print(
        f"\n  Functions: {summary['total_functions']}  "
        f"Average: {summary['average_complexity']}  "
        f"High (>10): {summary['high_complexity']}"
    )


@app.command()
def complexity(
    file: str = typer.Argument(..., help="Script path, relative to the project root"),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Per-function cyclomatic complexity of one script."""
    analyzer = _analyzer(project, include_addons=False)
    _emit(analyzer.get_complexity(file), as_json, _render_complexity)


def _render_heatmap(result: Dict) -> None:
    files = result["top_complex_files"]
    if not files:
        console.print("[bold green]No notable complexity found![/bold green]")
    else:
        table = Table(title="Complexity Heatmap")
        table.add_column("Max", justify="right")
        table.add_column("", no_wrap=True)
        table.add_column("File", style="magenta")
        table.add_column("Avg", justify="right")
        for stats in files:
            worst = stats["max_complexity"]
            color = "red" if worst > 20 else "yellow" if worst > 12 else "green"
            bar = HEAT_BAR * min(worst, 30)
            table.add_row(str(worst), f"[{color}]{bar}[/{color}]", escape(stats["file"]),
                          str(stats["avg_complexity"]))
        console.print(table)

    console.print(f"\n[bold]{escape(result['health_assessment'])}[/bold]")
    for candidate in result["refactoring_candidates"]:
        console.print(
            f"  → {escape(candidate['file'])}: {escape(candidate['worst_function'])} "
            f"({candidate['complexity']}) - {candidate['suggestion']}"
        )


@app.command()
def heatmap(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Project-wide complexity heatmap and refactoring candidates."""
    analyzer = _analyzer(project, include_addons)
    _emit(analyzer.complexity_heatmap(), as_json, _render_heatmap)


# =========================================================================
# DUPLICATION
# =========================================================================

def _render_duplication(result: Dict) -> None:
    duplicates = result["duplicates"]
    if not duplicates:
        console.print("[bold green]No significant duplication found![/bold green]")
        return

    for index, group in enumerate(duplicates, 1):
        locations = "\n".join(
            f"{escape(loc['file'])}:{loc['line']} ({escape(loc['function'])})" for loc in group["locations"]
        )
        console.print(Panel(
            f"{locations}\n\n[dim]{escape(group['sample'])}[/dim]",
            title=f"Duplicate #{index} - {group['occurrences']} occurrences",
            border_style="yellow",
        ))

    console.print(f"\n[dim]{escape(result['recommendation'])}[/dim]")


@app.command()
def duplication(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    min_lines: Optional[int] = typer.Option(None, "--min-lines", "-m", min=1, help="Minimum function length (default 5)"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Find functions whose normalized bodies are identical."""
    analyzer = _analyzer(project, include_addons, min_duplicate_lines=min_lines)
    _emit(analyzer.find_duplication(), as_json, _render_duplication)


# =========================================================================
# SYMBOLS / FILES / SCENES
# =========================================================================

def _render_symbols(result: Dict) -> None:
    table = Table(title=f"Symbols: {escape(result['file'])}")
    table.add_column("Line", justify="right", style="green")
    table.add_column("Kind", style="yellow")
    table.add_column("Name", style="cyan")
    for symbol in result["symbols"]:
        table.add_row(str(symbol["line"]), symbol["kind"], escape(symbol["name"]))
    console.print(table)


@app.command()
def symbols(
    file: str = typer.Argument(..., help="Script path, relative to the project root"),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Outline of the declarations in one script."""
    analyzer = _analyzer(project, include_addons=False)
    _emit(analyzer.document_symbols(file), as_json, _render_symbols)


def _render_unused_files(result: Dict) -> None:
    found = False
    for key, title in (("unreferenced_scripts", "Unreferenced Scripts"),
                       ("unreferenced_scenes", "Unreferenced Scenes"),
                       ("unreferenced_resources", "Unreferenced Resources")):
        if not result[key]:
            continue
        found = True
        table = Table(title=title)
        table.add_column("File Path", style="cyan", no_wrap=False)
        table.add_column("Reason", style="magenta")
        for path in result[key]:
            table.add_row(escape(path), "Zero incoming res:// references")
        console.print(table)

    if not found:
        console.print("[bold green]No unused files found![/bold green]")

    summary = result["summary"]
    console.print(f"\n[bold yellow]{result['health']}[/bold yellow] "
                  f"({summary['waste_percentage']} of {summary['total_files']} files)")
    console.print(f"[dim]{escape(result['note'])}[/dim]")


@app.command("unused-files")
def unused_files(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """List scripts, scenes and resources nothing references."""
    analyzer = _analyzer(project, include_addons)
    _emit(analyzer.find_unused_files(), as_json, _render_unused_files)


def _add_scene_node(parent: Tree, node: Dict) -> None:
    script = " [green][S][/green]" if node["script"] else ""
    branch = parent.add(f"[cyan]{escape(node['name'])}[/cyan] ({escape(str(node['type']))}){script}")
    for child in node["children"]:
        _add_scene_node(branch, child)


def _render_scene_tree(result: Dict) -> None:
    root = result["tree"]
    script = " [green][S][/green]" if root["script"] else ""
    tree = Tree(f"[bold cyan]{escape(root['name'])}[/bold cyan] ({escape(str(root['type']))}){script}")
    for child in root["children"]:
        _add_scene_node(tree, child)
    console.print(tree)

    table = Table(title="Node Types")
    table.add_column("Type", style="yellow")
    table.add_column("Count", justify="right")
    for node_type, count in sorted(result["node_types"].items(), key=lambda item: -item[1]):
        table.add_row(escape(node_type), str(count))
    console.print(table)
    console.print(f"  Total nodes: {result['total_nodes']}  Scripts attached: {len(result['scripts'])}")


@app.command("scene-tree")
def scene_tree(
    scene: str = typer.Argument(..., help="Scene path, relative to the project root"),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    depth: int = typer.Option(10, "--depth", "-d", min=1, help="Maximum tree depth"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Render the node hierarchy of a scene."""
    analyzer = _analyzer(project, include_addons=False)
    _emit(analyzer.scene_tree(scene, depth), as_json, _render_scene_tree)


def _render_scene_issues(result: Dict) -> None:
    summary = result["summary"]
    if result["issues"]:
        table = Table(title="Scene Issues")
        table.add_column("Scene", style="cyan", no_wrap=False)
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Problem", style="magenta", no_wrap=False)
        for issue in result["issues"]:
            color = "red" if issue["severity"] == "error" else "yellow"
            table.add_row(
                escape(issue["scene"]),
                str(issue["line"]),
                f"[{color}]{issue['severity']}[/{color}]",
                escape(issue["message"]),
            )
        console.print(table)
    else:
        console.print("[bold green]All scenes are valid![/bold green]")

    console.print(f"\n[bold yellow]{result['health']}[/bold yellow] "
                  f"({summary['valid_scenes']} of {summary['scenes_checked']} scenes valid, "
                  f"{summary['errors']} errors, {summary['warnings']} warnings)")


@app.command("validate-scenes")
def validate_scenes(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Godot project root"),
    include_addons: bool = typer.Option(False, "--include-addons", help="Include addons/ in the analysis"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw report as JSON"),
):
    """Report missing resources, missing scripts and duplicate node names in scenes."""
    analyzer = _analyzer(project, include_addons)
    _emit(analyzer.validate_scenes(), as_json, _render_scene_issues)


def _version_callback(value: bool):
    if value:
        typer.echo(f"gdlens {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """gdlens - Static analysis for Godot projects."""
    pass


if __name__ == "__main__":
    app()
