"""Typer-based CLI for archidoc."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .check import format_drift_report
from .engine import ArchitectureCompiler, compile_records
from .errors import ArchidocError
from .health import format_health_report
from .heuristics import predicate_for, verifiable_patterns
from .ir import deserialize, serialize
from .merge import merge_ir
from .models import ModuleRecord, Relationship
from .relationships import discovered_from_data
from .reports import HealthReport
from .suggest import comment_style_for, detect_comment_style, init_template, suggest_annotation
from .tree import CompiledTree
from .validate import format_validation_report
from .verify import FITNESS_FUNCTIONS, check_fitness, format_fitness_result

console = Console()

FROM_IR_HELP = "Compile this JSON IR file ('-' for stdin) instead of scanning sources."
DISCOVERED_HELP = "JSON object of auto-discovered relationships per module."

app = typer.Typer(
    help="📐 archidoc: compile architecture documentation from annotated source trees.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"archidoc v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log pipeline progress to stderr."),
):
    """archidoc: architecture docs that cannot drift from the code."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@contextmanager
def _fail_on_errors() -> Iterator[None]:
    """Turn fatal engine errors into a red message and exit status 1."""
    try:
        yield
    except ArchidocError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}", soft_wrap=True)
        raise typer.Exit(code=1)


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    try:
        return Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read '{source}': {exc}")


def _load_ir(source: str) -> List[ModuleRecord]:
    return deserialize(_read_text(source))


def _load_discovered(source: Optional[str]) -> Optional[Dict[str, List[Relationship]]]:
    if source is None:
        return None
    try:
        data = json.loads(_read_text(source))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Discovered relationships in '{source}' are not JSON: {exc}")
    if not isinstance(data, dict):
        raise typer.BadParameter("Discovered relationships must be a JSON object keyed by module path.")
    return discovered_from_data(data)


def _compiler(root: Path, sidecars: bool = False) -> ArchitectureCompiler:
    compiler = ArchitectureCompiler(root)
    if sidecars:
        compiler.settings = replace(compiler.settings, sidecars=True)
    return compiler


def _compile(
    compiler: ArchitectureCompiler,
    from_ir: Optional[str],
    discovered: Optional[Dict[str, List[Relationship]]] = None,
) -> CompiledTree:
    records = _load_ir(from_ir) if from_ir else None
    return compiler.compile(records, discovered)


def _write_or_echo(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(text)
    console.print(f"[green]✓[/green] Wrote {escape(str(output))}", soft_wrap=True)


@app.command("generate")
def generate(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
    discovered: Optional[str] = typer.Option(None, "--discovered", help=DISCOVERED_HELP),
    sidecars: bool = typer.Option(False, "--sidecars", help="Also write diagram and CSV sidecar files."),
):
    """Compile the architecture and write ARCHITECTURE.md (plus sidecars)."""
    with _fail_on_errors():
        compiler = _compiler(root, sidecars)
        tree = _compile(compiler, from_ir, _load_discovered(discovered))
        written = compiler.generate(tree)

    for path in written:
        console.print(f"[green]✓[/green] {escape(str(path))}", soft_wrap=True)
    typer.echo(f"Generated {len(written)} artifact(s) for {len(tree)} module(s).")


@app.command("check")
def check(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
    discovered: Optional[str] = typer.Option(None, "--discovered", help=DISCOVERED_HELP),
    sidecars: bool = typer.Option(False, "--sidecars", help="Also compare the sidecar files."),
    diff: bool = typer.Option(False, "--diff", help="Show a unified diff for drifted files."),
):
    """Fail when generated documentation differs from what is on disk."""
    with _fail_on_errors():
        compiler = _compiler(root, sidecars)
        report = compiler.check(_compile(compiler, from_ir, _load_discovered(discovered)))

    typer.echo(format_drift_report(report, show_diff=diff), nl=False)
    if report.has_drift():
        raise typer.Exit(code=1)


@app.command("validate")
def validate(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
):
    """Report ghost entries and orphan files in the file tables."""
    with _fail_on_errors():
        compiler = ArchitectureCompiler(root)
        report = compiler.validate(_compile(compiler, from_ir))

    typer.echo(format_validation_report(report), nl=False)
    if not report.is_clean():
        raise typer.Exit(code=1)


def _health_table(report: HealthReport) -> Table:
    table = Table(title="Per-module health", show_header=True)
    table.add_column("Module", style="cyan")
    table.add_column("Level")
    table.add_column("Pattern")
    table.add_column("Files", justify="right")
    table.add_column("Planned", justify="right")
    table.add_column("Active", justify="right")
    table.add_column("Stable", justify="right", style="green")
    for element in report.per_element:
        pattern = f"{element.pattern} ({element.pattern_status})" if element.pattern else "-"
        table.add_row(
            escape(element.name),
            element.level,
            escape(pattern),
            str(element.file_count),
            str(element.files_planned),
            str(element.files_active),
            str(element.files_stable),
        )
    return table


@app.command("health")
def health(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
):
    """Summarize file health and pattern maturity."""
    with _fail_on_errors():
        compiler = ArchitectureCompiler(root)
        report = compiler.health(_compile(compiler, from_ir))

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    typer.echo(format_health_report(report), nl=False)
    if report.per_element:
        console.print(_health_table(report))


@app.command("emit-ir")
def emit_ir(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write IR here instead of stdout."),
):
    """Extract the project's IR with the configured adapter."""
    with _fail_on_errors():
        compiler = ArchitectureCompiler(root)
        tree = compiler.compile()
    _write_or_echo(serialize(tree.all_records()), output)


@app.command("validate-ir")
def validate_ir(
    source: str = typer.Argument("-", help="IR file, or '-' for stdin."),
):
    """Check an IR payload against the schema and the structural rules."""
    with _fail_on_errors():
        tree = compile_records(_load_ir(source))
    console.print(f"[green]✓[/green] IR is valid: {len(tree)} module(s)", soft_wrap=True)


@app.command("merge-ir")
def merge_ir_command(
    sources: List[str] = typer.Argument(..., help="IR files to merge."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write merged IR here instead of stdout."),
):
    """Merge IR files from several adapters; shared module paths are fatal."""
    with _fail_on_errors():
        merged = merge_ir([_load_ir(source) for source in sources])
    _write_or_echo(serialize(merged), output)


@app.command("verify")
def verify(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the updated IR here."),
):
    """Promote planned pattern claims that have structural evidence."""
    with _fail_on_errors():
        compiler = ArchitectureCompiler(root)
        result = compiler.verify(_compile(compiler, from_ir))

    for module_path in result.promoted:
        record = result.tree.get(module_path)
        pattern = record.pattern if record else "?"
        console.print(f"[green]✓[/green] {escape(module_path)}: {escape(pattern)} verified", soft_wrap=True)
    typer.echo(str(result))
    if output is not None:
        _write_or_echo(serialize(result.tree.all_records()), output)


@app.command("fitness")
def fitness(
    name: str = typer.Argument(..., help="Fitness function name, or a pattern name."),
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root."),
    from_ir: Optional[str] = typer.Option(None, "--from-ir", help=FROM_IR_HELP),
):
    """Run an architecture fitness function; fails when any module violates it."""
    if name not in FITNESS_FUNCTIONS and predicate_for(name) is None:
        known = ", ".join(sorted(FITNESS_FUNCTIONS) + verifiable_patterns())
        raise typer.BadParameter(f"Unknown fitness function '{name}'. Known: {known}")

    with _fail_on_errors():
        compiler = ArchitectureCompiler(root)
        tree = _compile(compiler, from_ir)
        if name in FITNESS_FUNCTIONS:
            result = FITNESS_FUNCTIONS[name](tree, root, compiler.settings)
        else:
            result = check_fitness(tree, root, name, compiler.settings)

    typer.echo(format_fitness_result(result), nl=False)
    if not result.passed:
        raise typer.Exit(code=1)


@app.command("suggest")
def suggest(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Package directory to annotate."),
):
    """Print an annotation scaffold for a package."""
    typer.echo(suggest_annotation(directory), nl=False)


@app.command("init")
def init(
    root: Path = typer.Argument(Path("."), exists=True, file_okay=False, help="Project root."),
    lang: Optional[str] = typer.Option(
        None, "--lang", "-l", help="python, rust or typescript; detected from the project manifest by default."
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the template here instead of stdout."),
):
    """Print a root-level annotation template for the project's entry file."""
    style = comment_style_for(lang) if lang else detect_comment_style(root)
    if style is None:
        if lang:
            raise typer.BadParameter(f"Unknown language '{lang}'. Known: python, rust, typescript")
        raise typer.BadParameter(
            "No Cargo.toml, package.json, pyproject.toml or setup.py found; pass --lang."
        )
    _write_or_echo(init_template(style), output)


if __name__ == "__main__":
    app()
