"""CLI interface for inkwell."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from inkwell.config import InkwellConfig, load_config, merge_cli_overrides
from inkwell.corpus import Corpus, load_corpus
from inkwell.errors import ContentRootError, CorpusReport, save_report
from inkwell.resolver import ResolvedCorpus, resolve
from inkwell.writer import export_corpus

app = typer.Typer(
    name="inkwell",
    help="Load blog posts and drafts, and resolve near-duplicate revisions.",
)

console = Console()
_stderr_console = Console(stderr=True)

EXIT_ERRORS = 1
EXIT_ROOT = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from inkwell import __version__

        console.print(f"inkwell {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log progress to stderr."),
    ] = False,
) -> None:
    """inkwell - front-matter content model for static blogs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


RootArg = Annotated[
    Optional[Path],
    typer.Argument(help="Content root directory. Defaults to [content] root."),
]
ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to an .inkwell.toml file."),
]


def _load(root: Path | None, config: InkwellConfig) -> tuple[Corpus, CorpusReport]:
    try:
        return load_corpus(root, config)
    except ContentRootError as exc:
        _stderr_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(EXIT_ROOT) from exc


def _print_errors(report: CorpusReport) -> None:
    if not report.errors:
        return
    console.print(f"[yellow]{report.error_count} problem(s):[/yellow]")
    for err in report.errors:
        where = f"{err.source}: " if err.source else ""
        console.print(f"  - [{err.error_type}] {where}{err.message}", markup=False)


@app.command()
def check(
    root: RootArg = None,
    config_path: ConfigOpt = None,
) -> None:
    """Load and validate every document; exit 1 if anything was rejected."""
    config = load_config(config_path)
    corpus, report = _load(root, config)

    table = Table(title=f"{len(corpus)} document(s)")
    table.add_column("id")
    table.add_column("status")
    table.add_column("date")
    table.add_column("title")
    for doc in corpus:
        table.add_row(
            doc.id,
            doc.status.value,
            doc.date.isoformat() if doc.date else "-",
            doc.title or "-",
        )
    console.print(table)
    _print_errors(report)

    if not report.success:
        raise typer.Exit(EXIT_ERRORS)


def _resolved_json(resolved: ResolvedCorpus) -> dict[str, object]:
    return {
        "canonical": [d.id for d in resolved.canonical],
        "revisions": resolved.revision_index,
        "ambiguous": [c.ids for c in resolved.ambiguous],
        "errors": [e.model_dump(mode="json", exclude={"timestamp"}) for e in resolved.report.errors],
    }


@app.command("resolve")
def resolve_cmd(
    root: RootArg = None,
    config_path: ConfigOpt = None,
    threshold: Annotated[
        Optional[float],
        typer.Option("--threshold", "-t", min=0.0, max=1.0, help="Similarity threshold."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print canonical ids and revision index as JSON."),
    ] = False,
) -> None:
    """Group near-duplicate documents and show the canonical of each cluster."""
    config = merge_cli_overrides(load_config(config_path), threshold=threshold)
    corpus, report = _load(root, config)
    resolved = resolve(corpus, config, report)

    if as_json:
        print(json.dumps(_resolved_json(resolved), indent=2))
        return

    table = Table(title=f"{len(resolved.clusters)} cluster(s)")
    table.add_column("canonical")
    table.add_column("history")
    table.add_column("note")
    for cluster in resolved.clusters:
        canonical = cluster.canonical
        if canonical is None:
            table.add_row("-", ", ".join(cluster.ids), Text(cluster.error or "", style="red"))
            continue
        history = " → ".join(d.id for d in cluster.historical) or "-"
        table.add_row(canonical.id, history, "")
    console.print(table)
    _print_errors(report)


@app.command()
def export(
    root: RootArg = None,
    config_path: ConfigOpt = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory. Defaults to [output] directory."),
    ] = None,
    history: Annotated[
        Optional[bool],
        typer.Option("--history/--no-history", help="Also write historical revisions."),
    ] = None,
) -> None:
    """Write canonical documents, the revision index, and the run report."""
    config = merge_cli_overrides(
        load_config(config_path),
        output_directory=str(output) if output is not None else None,
        include_history=history,
    )
    corpus, report = _load(root, config)
    resolved = resolve(corpus, config, report)

    output_dir = Path(config.output.directory)
    written = export_corpus(
        resolved, output_dir, include_history=config.output.include_history
    )
    report.finish()
    save_report(report, output_dir)

    console.print(f"[green]Wrote {len(written)} file(s) to {output_dir}[/green]")
    _print_errors(report)
    console.print(report.summary_text(), markup=False)


if __name__ == "__main__":
    app()
