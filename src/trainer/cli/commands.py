"""CLI commands for the practice trainer.

Commands:
- init: create the database and seed it from the catalog
- next: show the next recommended problem
- submit: record an attempt
- open: open a problem link in the browser
- skills: mastery and unlock status per skill
- schedule: spaced-repetition schedule
"""

from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from trainer.config.app_config import configure_logging, load_app_config
from trainer.core.models import AttemptLog, ProblemView, Tier
from trainer.core.skill_graph import SkillGraphError
from trainer.core.trainer import Trainer, TrackNotFoundError
from trainer.db.catalog import CatalogError, load_catalog, seed_catalog
from trainer.db.storage import Storage, StorageError

app = typer.Typer(
    name="train",
    help="Spaced-repetition practice trainer with a prerequisite skill tree.",
    no_args_is_help=True,
)

console = Console()

TIER_COLORS = {
    Tier.REVIEW: "magenta",
    Tier.VARIATION: "cyan",
    Tier.DISCOVERY: "green",
    Tier.CRAM: "yellow",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Configure logging before any command runs."""
    config = load_app_config()
    configure_logging("debug" if verbose else config.log_level)


def _open_trainer_or_exit() -> Trainer:
    """Open the configured trainer, or exit with a helpful error."""
    config = load_app_config(force_reload=True)
    try:
        return Trainer.from_config(config)
    except (TrackNotFoundError, StorageError, SkillGraphError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _print_problem(view: ProblemView) -> None:
    color = TIER_COLORS.get(view.tier, "white")
    console.print(f"\n[bold {color}]{view.label}[/bold {color}]")
    console.print(f"  [bold]{view.title}[/bold]  [dim](id {view.id})[/dim]")
    console.print(f"  [dim]difficulty:[/dim] {view.difficulty}")
    if view.skills:
        console.print(f"  [dim]skills:[/dim]     {', '.join(view.skills)}")
    if view.url:
        console.print(f"  [dim]url:[/dim]        {view.url}")


# =============================================================================
# SETUP
# =============================================================================


@app.command()
def init(
    catalog: str | None = typer.Option(
        None, "--catalog", "-c", help="Catalog YAML (default: from config)"
    ),
) -> None:
    """Create the database and seed it from the catalog (one-time)."""
    config = load_app_config(force_reload=True)
    catalog_path = Path(catalog) if catalog else config.paths.catalog_path

    try:
        parsed = load_catalog(catalog_path)
        with Storage(config.paths.db_path) as storage:
            result = seed_catalog(storage, parsed)
    except CatalogError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except StorageError as e:
        console.print(f"[red]✗ Database error: {e}[/red]")
        raise typer.Exit(code=1)

    if result.seeded:
        console.print(f"[green]✓ {result.message}[/green]")
        console.print(f"  [dim]skills:[/dim]       {result.skills}")
        console.print(f"  [dim]problems:[/dim]     {result.problems}")
        console.print(f"  [dim]alternatives:[/dim] {result.alternatives}")
    else:
        console.print(f"[yellow]⚠ {result.message}[/yellow]")
    console.print(f"  [dim]db:[/dim]           {config.paths.db_path}")


# =============================================================================
# COMMAND SURFACE
# =============================================================================


@app.command(name="next")
def next_problem(
    open_link: bool = typer.Option(False, "--open", "-o", help="Open the problem URL"),
) -> None:
    """Show the next recommended problem."""
    with _open_trainer_or_exit() as trainer:
        try:
            view = trainer.next_recommendation()
        except StorageError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1)

    if view is None:
        console.print("[yellow]No problems available right now.[/yellow]")
        return

    _print_problem(view)
    console.print(f"\n  [dim]Submit with:[/dim] train submit {view.id} --minutes <m> --solved")

    if open_link and view.url:
        typer.launch(view.url)


@app.command()
def submit(
    problem_id: int = typer.Argument(..., help="Problem id (an alternative id is fine)"),
    minutes: float = typer.Option(..., "--minutes", "-m", min=0.0, help="Minutes spent"),
    solved: bool = typer.Option(True, "--solved/--failed", help="Whether you solved it"),
    read_solution: bool = typer.Option(
        False, "--read-solution", "-r", help="You read the solution"
    ),
    revealed_skills: bool = typer.Option(
        False, "--revealed-skills", help="You looked at the skill tags before solving"
    ),
) -> None:
    """Record an attempt and update the schedule and skill mastery."""
    log = AttemptLog(
        problem_id=problem_id,
        time_minutes=minutes,
        solved=solved,
        read_solution=read_solution,
        revealed_skills=revealed_skills,
    )

    with _open_trainer_or_exit() as trainer:
        result = trainer.submit_attempt(log)
        names = {}
        if result.success:
            try:
                names = {s.id: s.name for s in trainer.storage.list_skills()}
            except StorageError as e:
                console.print(f"[red]✗ {e}[/red]")
                raise typer.Exit(code=1)

    if not result.success:
        console.print(f"[red]✗ {result.message}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ {result.message}[/green]")
    outcome = result.outcome
    if outcome is None:
        return

    rep = outcome.repetition
    if outcome.resolved.is_alternative:
        console.print(f"  [dim]scheduled on parent:[/dim] {outcome.resolved.canonical_id}")
    console.print(f"  [dim]branch:[/dim]   {rep.outcome.value}")
    console.print(f"  [dim]ease:[/dim]     {rep.old_ease:.2f} → {rep.state.ease_factor:.2f}")
    console.print(
        f"  [dim]interval:[/dim] {rep.old_interval:.1f}d → {rep.state.interval_days:.1f}d"
    )
    console.print(f"  [dim]next:[/dim]     {_format_ts(rep.state.next_review_ts)}")

    for change in outcome.mastery:
        name = names.get(change.skill_id, str(change.skill_id))
        console.print(
            f"  [dim]{name}:[/dim] {change.old_mastery:.3f} → {change.new_mastery:.3f}"
            f" [dim](attempts {change.attempts})[/dim]"
        )


@app.command(name="open")
def open_url(
    url: str = typer.Argument(..., help="URL to open"),
) -> None:
    """Open an external link in the default browser."""
    code = typer.launch(url)
    if code != 0:
        console.print(f"[red]✗ Could not open {url}[/red]")
        raise typer.Exit(code=1)


# =============================================================================
# PROGRESS
# =============================================================================


@app.command()
def skills() -> None:
    """Show mastery, attempts and unlock status for every skill."""
    with _open_trainer_or_exit() as trainer:
        try:
            rows = trainer.skill_progress()
        except StorageError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1)

    table = Table(title="Skills")
    table.add_column("Skill")
    table.add_column("Mastery", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Status")

    for row in rows:
        if row.unlocked:
            status_text = "[green]unlocked[/green]"
        else:
            status_text = f"[red]locked[/red] [dim]({', '.join(row.locked_by)})[/dim]"
        table.add_row(row.name, f"{row.mastery:.2f}", str(row.attempts), status_text)

    console.print(table)


@app.command()
def schedule() -> None:
    """Show the spaced-repetition schedule, earliest due first."""
    with _open_trainer_or_exit() as trainer:
        try:
            reviews = trainer.review_schedule()
        except StorageError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1)

    if not reviews:
        console.print("[yellow]No problems tracked yet[/yellow]")
        console.print("  Use: train next")
        return

    table = Table(title="Review schedule")
    table.add_column("Id", justify="right")
    table.add_column("Problem")
    table.add_column("Ease", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Next review")

    for review in reviews:
        when = _format_ts(review.next_review_ts)
        if review.due:
            when = f"[bold red]{when} (due)[/bold red]"
        table.add_row(
            str(review.problem_id),
            review.title,
            f"{review.ease_factor:.2f}",
            f"{review.interval_days:.1f}d",
            when,
        )

    console.print(table)


if __name__ == "__main__":
    app()
