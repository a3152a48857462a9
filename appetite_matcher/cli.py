"""Appetite matcher CLI — score, explain, and serve appetite matches.

Uses Typer for argument parsing and Rich for formatted terminal output.

Usage::

    python -m appetite_matcher.cli --help
    python -m appetite_matcher.cli match request.json
    python -m appetite_matcher.cli explain request.json --underwriter uw-123
    python -m appetite_matcher.cli init-db
    python -m appetite_matcher.cli serve --port 8002

A request file is a JSON object with ``client_profile`` and
``underwriter_appetites`` keys, the same body ``POST /v1/match`` accepts.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from appetite_matcher.config import settings
from appetite_matcher.matching.ranker import confidence_band

# ---------------------------------------------------------------------------
# App & console setup
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="appetite-matcher",
    help="Appetite Matcher CLI — score client risk profiles against underwriter appetite.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True, style="bold red")

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("appetite_matcher.cli")


def _load_request(path: Path):
    """Read and validate a match request file."""
    from appetite_matcher.api.schemas import MatchRequest

    return MatchRequest.model_validate_json(path.read_text(encoding="utf-8"))


_BAND_STYLES = {
    "strong": "green",
    "good": "cyan",
    "fair": "yellow",
    "weak": "dim",
}


def _score_style(score: int) -> str:
    return _BAND_STYLES[confidence_band(score)]


# ---------------------------------------------------------------------------
# Command: match
# ---------------------------------------------------------------------------


@app.command("match")
def match(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Match request JSON file"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON response"),
) -> None:
    """Score every appetite in a request file and show the suggestions.

    Examples:

      appetite-matcher match request.json

      appetite-matcher match request.json --json
    """
    try:
        from appetite_matcher.api.schemas import MatchResponse, MatchResultResponse
        from appetite_matcher.matching import MatchingEngine

        request = _load_request(request_file)
        run = MatchingEngine().match(request.client_profile, request.underwriter_appetites)

        if as_json:
            response = MatchResponse(
                top_matches=[MatchResultResponse.from_result(m) for m in run.top_matches],
                nearest_misses=[MatchResultResponse.from_result(m) for m in run.nearest_misses],
                total_evaluated=run.total_evaluated,
            )
            typer.echo(response.model_dump_json(indent=2))
            return

        client = request.client_profile
        console.print(
            Panel(
                f"[bold cyan]Appetite Matcher[/bold cyan]\n"
                f"Industry: [yellow]{client.industry}[/yellow]  "
                f"Product: [yellow]{client.insurance_product or 'n/a'}[/yellow]  "
                f"Candidates: [yellow]{run.total_evaluated}[/yellow]",
                title="Match",
                expand=False,
            )
        )

        if not run.top_matches and not run.nearest_misses:
            console.print("[yellow]No underwriters scored 50 or above for this client.[/yellow]")
            return

        for title, matches in (("Top Matches", run.top_matches), ("Nearest Misses", run.nearest_misses)):
            if not matches:
                continue
            table = Table(title=title, box=box.ROUNDED)
            table.add_column("Rank", style="dim", width=6)
            table.add_column("Underwriter", style="cyan")
            table.add_column("Score", justify="right")
            table.add_column("Band")
            table.add_column("Coverage")
            table.add_column("Industry")
            table.add_column("Explanation")
            for i, m in enumerate(matches, 1):
                style = _score_style(m.confidence_score)
                table.add_row(
                    str(i),
                    m.underwriter_name,
                    f"[{style}]{m.confidence_score}[/{style}]",
                    confidence_band(m.confidence_score),
                    m.coverage_fit,
                    m.industry_fit,
                    m.explanation,
                )
            console.print(table)

    except (OSError, ValidationError) as exc:
        err_console.print(f"Match failed: {exc}")
        logger.exception("CLI match command failed")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Command: explain
# ---------------------------------------------------------------------------


@app.command("explain")
def explain(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Match request JSON file"),
    underwriter: str = typer.Option(..., "--underwriter", "-u", help="Underwriter id to explain"),
) -> None:
    """Show the full score breakdown for one underwriter in a request file.

    Examples:

      appetite-matcher explain request.json --underwriter uw-123
    """
    try:
        from appetite_matcher.matching import AppetiteScorer
        from appetite_matcher.matching.weights import configured_weights

        request = _load_request(request_file)
        appetite = next(
            (a for a in request.underwriter_appetites if a.underwriter_id == underwriter),
            None,
        )
        if appetite is None:
            err_console.print(f"Underwriter '{underwriter}' not found in {request_file}")
            raise typer.Exit(1)

        scorer = AppetiteScorer(weights=configured_weights())
        result = scorer.score_match(request.client_profile, appetite)

        style = _score_style(result.confidence_score)
        console.print(
            Panel(
                f"[bold cyan]{result.underwriter_name}[/bold cyan]\n"
                f"Score: [{style}]{result.confidence_score}/{scorer.weights.max_score}[/{style}] "
                f"({confidence_band(result.confidence_score)})  "
                f"Last guide update: [yellow]{result.last_guide_update}[/yellow]",
                title="Explain",
                expand=False,
            )
        )

        table = Table(title="Score Breakdown", box=box.SIMPLE_HEAVY)
        table.add_column("Category", style="cyan")
        table.add_column("Points", justify="right")
        for category, points in result.score_breakdown.items():
            colour = "green" if points > 0 else "red" if points < 0 else "dim"
            table.add_row(category, f"[{colour}]{points:+d}[/{colour}]")
        console.print(table)

        console.print(
            f"Coverage: [yellow]{result.coverage_fit}[/yellow]  "
            f"Jurisdiction fit: [yellow]{result.jurisdiction_fit}[/yellow]  "
            f"Industry: [yellow]{result.industry_fit}[/yellow]  "
            f"Capacity diff: [yellow]{result.capacity_fit_diff:,.0f}[/yellow]"
        )
        if result.primary_reasons:
            console.print("\n[bold green]Reasons:[/bold green]")
            for reason in result.primary_reasons:
                console.print(f"  [green]+ {reason}[/green]")
        if result.failed_criteria:
            console.print("\n[bold yellow]Watch:[/bold yellow]")
            for failure in scorer.formatter.render_all(result.failed_criteria):
                console.print(f"  [yellow]- {failure}[/yellow]")
        if result.exclusions_hit:
            console.print(
                f"\n[bold red]Exclusions hit:[/bold red] {', '.join(result.exclusions_hit)}"
            )

    except (OSError, ValidationError) as exc:
        err_console.print(f"Explain failed: {exc}")
        logger.exception("CLI explain command failed")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Command: init-db
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db() -> None:
    """Create the appetite guide and match result tables."""
    try:
        from appetite_matcher.db import create_tables

        with console.status("[bold green]Creating tables...[/bold green]"):
            asyncio.run(create_tables())
        console.print("[green]Database tables ready.[/green]")
    except SQLAlchemyError as exc:
        err_console.print(f"init-db failed: {exc}")
        logger.exception("CLI init-db command failed")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Command: serve
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: settings.api_port)"),
) -> None:
    """Run the matching API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "appetite_matcher.api.routes:app",
        host=host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
