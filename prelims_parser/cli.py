"""
CLI Interface
=============
Command-line interface for the question-paper import pipeline.

Usage:
    python -m prelims_parser.cli parse <paper_pdf> [--answer-key <key_pdf>] [options]
    python -m prelims_parser.cli key <key_pdf>
    python -m prelims_parser.cli info <pdf_path>
    python -m prelims_parser.cli serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .answer_key import AnswerKeyParser
from .engine import ImportPipeline, ParserConfig
from .errors import PdfImportError
from .layout import LayoutReconstructor
from .text_extractor import TextExtractor, open_pdf

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="prelims-parser")
def cli():
    """Prelims Parser — UPSC question paper and answer key importer."""
    pass


@cli.command()
@click.argument("paper_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--answer-key", "-k",
    "answer_key_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Answer key PDF to match against the paper",
)
@click.option(
    "--output", "-o",
    default=None,
    help="Write the JSON result to this file",
)
@click.option(
    "--line-tolerance",
    default=0.5,
    type=float,
    show_default=True,
    help="Same-line tolerance as a fraction of font size",
)
@click.option(
    "--column-gap",
    default=40.0,
    type=float,
    show_default=True,
    help="Horizontal gap (points) that separates two columns",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="Start page (1-indexed)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (1-indexed, inclusive)",
)
@click.option(
    "--parallel",
    is_flag=True,
    default=False,
    help="Extract paper and answer key on two workers",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    paper_path: str,
    answer_key_path: str,
    output: str,
    line_tolerance: float,
    column_gap: float,
    page_start: int,
    page_end: int,
    parallel: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Import a question paper PDF into structured question records."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 1, page_end or 99999)

    config = ParserConfig(
        line_tolerance=line_tolerance,
        column_gap=column_gap,
        page_range=page_range,
        parallel_extraction=parallel,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Prelims Parser v{__version__}[/]\n"
                f"[dim]Paper: {os.path.basename(paper_path)}[/]\n"
                f"[dim]Answer key: "
                f"{os.path.basename(answer_key_path) if answer_key_path else '(none)'}[/]",
                border_style="cyan",
            )
        )
        console.print()

    pipeline = ImportPipeline(config)
    result = pipeline.run_files(paper_path, answer_key_path)
    data = result.model_dump(mode="json")

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    if json_output:
        # Output clean JSON to stdout
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
    elif result.succeeded:
        _display_report(result)
        if output:
            console.print(f"[dim]Saved JSON output: {output}[/]")
    else:
        console.print(
            f"[red]Import failed ({result.failure.kind}):[/] "
            f"{result.failure.message}"
        )

    if not result.succeeded:
        sys.exit(1)


@cli.command()
@click.argument("key_path", type=click.Path(exists=True, dir_okay=False))
def key(key_path: str):
    """Show the entries read from an answer key PDF."""

    with open(key_path, "rb") as f:
        data = f.read()

    try:
        fragments = TextExtractor().extract(data)
    except PdfImportError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    lines = LayoutReconstructor().reconstruct_document(fragments)
    entries = AnswerKeyParser().parse(lines)

    table = Table(title=f"Answer Key — {len(entries)} entries", border_style="cyan")
    table.add_column("Question", justify="right", style="bold")
    table.add_column("Answer", justify="center")
    table.add_column("Explanation")

    for entry in entries:
        table.add_row(
            str(entry.question_number),
            entry.answer.value,
            (entry.explanation or "")[:60],
        )

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
def info(pdf_path: str):
    """Display PDF file information."""

    with open(pdf_path, "rb") as f:
        data = f.read()

    try:
        doc = open_pdf(data)
    except PdfImportError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    with doc:
        table = Table(title="PDF Information", border_style="cyan")
        table.add_column("Property", style="bold")
        table.add_column("Value")

        table.add_row("File", os.path.basename(pdf_path))
        table.add_row("Pages", str(doc.page_count))
        table.add_row(
            "File Size",
            f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
        )

        metadata = doc.metadata or {}
        for meta_key in ["title", "author", "subject", "creator", "producer"]:
            val = metadata.get(meta_key, "")
            if val:
                table.add_row(meta_key.title(), val)

        # Pages without a text layer cannot be imported
        text_pages = sum(1 for page in doc if page.get_text("text").strip())
        table.add_row("Pages With Text", f"{text_pages} / {doc.page_count}")

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP microservice for the web backend."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Prelims Parser Microservice[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_report(result):
    """Display the import report and the questions needing review."""
    report = result.report

    table = Table(title="Import Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    total = report.total_questions_detected
    table.add_row(
        "Total Questions Detected",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Answers Resolved",
        f"{report.resolved_answers} ({report.resolution_rate}%)",
        "[green]✓[/]" if report.resolution_rate == 100 else "[yellow]⚠[/]",
    )
    table.add_row(
        "Invalid Questions",
        str(report.invalid_count),
        status_icon(report.invalid_count),
    )
    table.add_row(
        "Unmatched Key Entries",
        str(len(report.orphan_key_numbers)),
        status_icon(len(report.orphan_key_numbers)),
    )
    table.add_row(
        "Missing Question Numbers",
        str(len(report.missing_question_numbers)),
        status_icon(len(report.missing_question_numbers)),
    )

    console.print(table)
    console.print()

    flagged = [
        q for q in result.questions
        if q.question_number in set(report.needs_review)
    ]
    if flagged:
        review = Table(title="Needs Review", border_style="yellow")
        review.add_column("Q", justify="right", style="bold")
        review.add_column("Issues")
        review.add_column("Question")

        for q in flagged:
            issues = ", ".join(sorted({a.type.value for a in q.anomalies}))
            review.add_row(
                str(q.question_number),
                issues or "unresolved_answer",
                q.question_text[:60],
            )

        console.print(review)
        console.print()

    console.print(f"[bold]{report.summary}[/]")
    console.print(
        f"[dim]Parser v{result.parser_version} | "
        f"Pages: {result.paper.total_pages} | "
        f"Lines: {result.paper.line_count} | "
        f"Timestamp: {result.parse_timestamp}[/]"
    )
    console.print()


# ─── Entry point (for python -m prelims_parser.cli) ───────────────────────────


if __name__ == "__main__":
    cli()
