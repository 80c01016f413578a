"""CLI for trademark clearance searches."""

import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from clearmark.config import load_settings
from clearmark.connectors import build_connectors
from clearmark.embeddings import (
    check_embedding_availability,
    get_embedding_provider,
    list_embedding_providers,
)
from clearmark.errors import ClearmarkError
from clearmark.pipeline import JobService, outcome_for
from clearmark.trademark import SimilarityEngine, classify
from clearmark.trademark.models import JobStatus, RiskLevel, SearchJob, Source

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)

console = Console()

RISK_COLORS = {RiskLevel.HIGH: "red", RiskLevel.MEDIUM: "yellow", RiskLevel.LOW: "green"}
RISK_EMOJIS = {RiskLevel.HIGH: "🔴", RiskLevel.MEDIUM: "🟠", RiskLevel.LOW: "🟢"}
STATUS_COLORS = {
    JobStatus.PENDING: "dim",
    JobStatus.RUNNING: "cyan",
    JobStatus.DONE: "green",
    JobStatus.ERROR: "red",
}

MAX_HITS_SHOWN = 15


def setup_logging(level: str, verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def parse_classes_option(value: str, default: list[int]) -> list[int]:
    """Parse a comma separated list of Nice classes."""
    if not value:
        return list(default)
    try:
        return [int(c.strip()) for c in value.split(",") if c.strip()]
    except ValueError:
        raise click.BadParameter(
            f"Nice classes must be integers: {value}", param_hint="--classes"
        ) from None


def fail(ctx: click.Context, exc: Exception) -> None:
    """Print an error and exit with the code of its outcome."""
    outcome = outcome_for(exc)
    console.print(f"[red]Error:[/red] {exc}")
    ctx.exit(outcome.exit_code)


def risk_label(risk: RiskLevel) -> str:
    color = RISK_COLORS[risk]
    return f"[{color}]{RISK_EMOJIS[risk]} {risk.value}[/{color}]"


def print_job(job: SearchJob) -> None:
    """Render a job with its summary and hits."""
    status_color = STATUS_COLORS[job.status]
    header = (
        f"[bold]Query:[/bold] {job.query}\n"
        f"[bold]Classes:[/bold] {', '.join(map(str, job.nice_classes))}\n"
        f"[bold]Territory:[/bold] {job.territory.value}\n"
        f"[bold]Status:[/bold] [{status_color}]{job.status.value}[/{status_color}]"
    )
    if job.summary:
        header += f"\n[bold]Risk:[/bold] {risk_label(job.summary.global_risk)}"
    console.print(Panel(header, title=f"Trademark search – {job.id}"))

    if job.summary is None:
        if job.status is JobStatus.ERROR:
            console.print("[red]The last run failed. Run the job again.[/red]")
        else:
            console.print("[dim]No results yet. Use 'clearmark run' to start the search.[/dim]")
        return

    console.print(f"\n[bold]Recommendation:[/bold] {job.summary.recommendation}")

    for failure in job.summary.connector_failures:
        console.print(
            f"[yellow]⚠ {failure.source} unavailable ({failure.kind.value}): {failure.message}[/yellow]"
        )

    if not job.hits:
        console.print("\n[green]No conflicting marks found.[/green]")
        return

    console.print(f"\n[bold]Conflicting marks ({len(job.hits)}):[/bold]")

    table = Table()
    table.add_column("Mark", style="cyan")
    table.add_column("Number")
    table.add_column("Status")
    table.add_column("Classes")
    table.add_column("Sources")
    table.add_column("JW", justify="right")
    table.add_column("Lev", justify="right")
    table.add_column("Phon", justify="right")
    table.add_column("Sem", justify="right")
    table.add_column("Similarity", justify="right")
    table.add_column("Risk")

    for hit in job.hits[:MAX_HITS_SHOWN]:
        sim = hit.similarity
        color = RISK_COLORS[hit.risk]
        table.add_row(
            hit.text,
            hit.application_number or "-",
            hit.status_label or hit.status.value,
            ", ".join(map(str, hit.nice_classes[:5])),
            ", ".join(sorted(hit.sources)),
            f"{sim.jw:.2f}",
            f"{sim.lev:.2f}",
            f"{sim.ph:.0f}",
            f"{sim.sem:.2f}",
            f"[{color}]{hit.similarity_percent}%[/{color}]",
            risk_label(hit.risk),
        )

    console.print(table)

    if len(job.hits) > MAX_HITS_SHOWN:
        console.print(f"[dim]... and {len(job.hits) - MAX_HITS_SHOWN} more hits[/dim]")


def run_with_spinner(service: JobService, job_id: str):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Searching registries...", total=None)
        service.orchestrator.progress_callback = (
            lambda stage, message: progress.update(task, description=message)
        )
        try:
            return service.run_job(job_id)
        finally:
            service.orchestrator.progress_callback = None


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to the configuration file (default: config.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Trademark clearance search against INPI and EUIPO.

    Finds registered marks similar to a proposed name in the requested Nice
    classes and rates the overall conflict risk.
    """
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from None
    setup_logging(settings.logging.level, verbose)
    ctx.obj["settings"] = settings


def get_service(ctx: click.Context) -> JobService:
    """Build the job service lazily, once per invocation."""
    if "service" not in ctx.obj:
        ctx.obj["service"] = JobService(ctx.obj["settings"])
    return ctx.obj["service"]


@cli.command("create")
@click.argument("query")
@click.option("--classes", "-k", default="", help="Comma separated Nice classes (e.g. 9,35,42)")
@click.option(
    "--territory",
    "-t",
    default="EU",
    type=click.Choice(["FR", "EU", "ALL"], case_sensitive=False),
    help="Registries to search",
)
@click.pass_context
def create_job(ctx: click.Context, query: str, classes: str, territory: str) -> None:
    """Create a search job without running it."""
    settings = ctx.obj["settings"]
    nice_classes = parse_classes_option(classes, settings.search.default_nice_classes)

    try:
        job = get_service(ctx).create_job(query, nice_classes, territory)
    except ClearmarkError as e:
        fail(ctx, e)
        return

    console.print(f"[green]Job created:[/green] {job.id}")
    console.print(f"[dim]Run it with: clearmark run {job.id}[/dim]")


@cli.command("run")
@click.argument("job_id")
@click.pass_context
def run_job(ctx: click.Context, job_id: str) -> None:
    """Run the search of an existing job and show the results."""
    service = get_service(ctx)
    try:
        run_with_spinner(service, job_id)
        job = service.get_job(job_id)
    except ClearmarkError as e:
        fail(ctx, e)
        return

    print_job(job)


@cli.command("show")
@click.argument("job_id")
@click.pass_context
def show_job(ctx: click.Context, job_id: str) -> None:
    """Show a job with its latest results."""
    try:
        job = get_service(ctx).get_job(job_id)
    except ClearmarkError as e:
        fail(ctx, e)
        return

    print_job(job)


@cli.command("search")
@click.argument("query")
@click.option("--classes", "-k", default="", help="Comma separated Nice classes (e.g. 9,35,42)")
@click.option(
    "--territory",
    "-t",
    default="EU",
    type=click.Choice(["FR", "EU", "ALL"], case_sensitive=False),
    help="Registries to search",
)
@click.pass_context
def search(ctx: click.Context, query: str, classes: str, territory: str) -> None:
    """Create a job, run it and show the results.

    Examples:
        clearmark search MYNAME
        clearmark search MYNAME --classes 9,35,42 --territory ALL
    """
    settings = ctx.obj["settings"]
    nice_classes = parse_classes_option(classes, settings.search.default_nice_classes)

    service = get_service(ctx)
    try:
        job = service.create_job(query, nice_classes, territory)
        console.print(f"\n[bold]Checking: {job.query}[/bold]")
        console.print(f"[dim]Nice classes: {', '.join(map(str, job.nice_classes))}[/dim]")
        run_with_spinner(service, job.id)
        job = service.get_job(job.id)
    except ClearmarkError as e:
        fail(ctx, e)
        return

    console.print()
    print_job(job)


@cli.command("jobs")
@click.option("--limit", "-l", default=20, help="Number of jobs shown")
@click.pass_context
def list_jobs(ctx: click.Context, limit: int) -> None:
    """List recent search jobs."""
    service = get_service(ctx)
    try:
        jobs = service.list_jobs(limit=limit)
        counts = service.repository.count_by_status()
    except ClearmarkError as e:
        fail(ctx, e)
        return

    if not jobs:
        console.print("[yellow]No search jobs yet.[/yellow]")
        return

    table = Table(title="Search jobs")
    table.add_column("ID", style="dim")
    table.add_column("Query", style="bold cyan")
    table.add_column("Classes")
    table.add_column("Territory")
    table.add_column("Status")
    table.add_column("Risk")
    table.add_column("Hits", justify="right")
    table.add_column("Updated")

    for job in jobs:
        color = STATUS_COLORS[job.status]
        table.add_row(
            job.id,
            job.query,
            ", ".join(map(str, job.nice_classes)),
            job.territory.value,
            f"[{color}]{job.status.value}[/{color}]",
            risk_label(job.summary.global_risk) if job.summary else "-",
            str(job.summary.hit_count) if job.summary else "-",
            job.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(
        "[dim]" + "  ".join(f"{status}: {count}" for status, count in counts.items()) + "[/dim]"
    )


@cli.command("compare")
@click.argument("name_a")
@click.argument("name_b")
@click.option("--semantic/--no-semantic", default=False, help="Include the embedding signal")
@click.pass_context
def compare_names(ctx: click.Context, name_a: str, name_b: str, semantic: bool) -> None:
    """Show the similarity signals of two names."""
    settings = ctx.obj["settings"]
    engine = SimilarityEngine(settings.scoring.weights)

    emb_a = emb_b = None
    if semantic:
        embedder = get_embedding_provider(settings.embedding)
        emb_a = embedder.embed(name_a)
        emb_b = embedder.embed(name_b) if emb_a else None
        if emb_b is None:
            console.print("[yellow]⚠ Embeddings unavailable, semantic signal is 0.[/yellow]")

    vector = engine.score(name_a, name_b, emb_a, emb_b)
    weights = settings.scoring.weights

    table = Table(title=f"{name_a} vs {name_b}")
    table.add_column("Signal", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Weight", justify="right")

    table.add_row("Jaro-Winkler", f"{vector.jw:.4f}", f"{weights.jw:.2f}")
    table.add_row("Levenshtein", f"{vector.lev:.4f}", f"{weights.lev:.2f}")
    table.add_row("Phonetic", f"{vector.ph:.0f}", f"{weights.ph:.2f}")
    table.add_row("Semantic", f"{vector.sem:.4f}", f"{weights.sem:.2f}")
    table.add_row("[bold]Aggregate[/bold]", f"[bold]{vector.aggregate:.4f}[/bold]", "")

    console.print(table)
    console.print(f"[bold]Risk:[/bold] {risk_label(classify(vector.aggregate))}")


@cli.command("sources")
@click.pass_context
def list_sources(ctx: click.Context) -> None:
    """Show registry connectors and the embedding provider with their status."""
    settings = ctx.obj["settings"]
    connectors = build_connectors(settings)

    table = Table(title="Registries")
    table.add_column("Source", style="cyan")
    table.add_column("Connector")
    table.add_column("Enabled")
    table.add_column("Status")

    enabled = {Source.INPI: settings.inpi.enabled, Source.EUIPO: settings.euipo.enabled}
    mock = {Source.INPI: settings.inpi.mock, Source.EUIPO: settings.euipo.mock}

    for source, connector in connectors.items():
        if not enabled[source]:
            status = "[dim]Disabled[/dim]"
        elif mock[source]:
            status = "[yellow]Mock data[/yellow]"
        elif connector.is_configured:
            status = "[green]OK[/green]"
        else:
            status = "[red]Not configured[/red]"
        table.add_row(
            source.value,
            type(connector).__name__,
            "yes" if enabled[source] else "no",
            status,
        )

    console.print(table)

    available, message = check_embedding_availability(settings.embedding)
    color = "green" if available else "yellow"
    console.print(f"\n[bold]Embeddings:[/bold] [{color}]{message}[/{color}]")
    console.print(f"[dim]Providers: {', '.join(list_embedding_providers())}[/dim]")


def main() -> None:
    """Entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
