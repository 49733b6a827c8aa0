"""Accolade CLI: Typer + Rich terminal interface.

Commands: users, periods, candidates, vote, complete, status, shortlist,
top, rate, ratings, scores, winner, phase, export, config.
All output is Rich-powered; workflow errors print in red and exit 1.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from accolade import __version__
from accolade.config import AccoladeConfig, load_config
from accolade.errors import AccoladeError, ConfigError, QuorumNotMet
from accolade.schemas.eligibility import Profile, Role
from accolade.schemas.period import Period
from accolade.schemas.rating import CRITERIA, NUM_CRITERIA, CompletionState
from accolade.service import RecognitionService

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="accolade",
    help="Best-employee-of-the-quarter selection, rating, and scoring.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

users_app = typer.Typer(name="users", help="Manage the user directory.", no_args_is_help=True)
app.add_typer(users_app, name="users")

periods_app = typer.Typer(name="periods", help="Manage quarterly periods.", no_args_is_help=True)
app.add_typer(periods_app, name="periods")

config_app = typer.Typer(name="config", help="Show configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")


# ── Version callback ─────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"accolade {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Accolade: pick, rate, and rank the best employee of the quarter."""
    level = "DEBUG" if verbose else _load_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _load_config() -> AccoladeConfig:
    """Load configuration, exit on error."""
    try:
        return load_config()
    except (FileNotFoundError, ConfigError) as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _run(action: Callable[[RecognitionService], Awaitable[T]]) -> T:
    """Open the database, run one service action, and close it again.

    Workflow errors are printed and turned into exit status 1.
    """
    from accolade.persistence.database import close_db, init_db
    from accolade.persistence.directory import PeriodStore, UserDirectory

    config = _load_config()

    async def _go() -> T:
        db = await init_db(config.db_path)
        try:
            directory = UserDirectory(db)
            service = RecognitionService(
                db,
                periods=PeriodStore(db),
                roles=directory,
                profiles=directory,
                privileged_roles=config.privileged_roles,
            )
            return await action(service)
        finally:
            await close_db(db)

    try:
        return asyncio.run(_go())
    except AccoladeError as e:
        err_console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise typer.Exit(1) from None


def _run_db(action: Callable[..., Awaitable[T]]) -> T:
    """Run an action against the raw directory and period tables."""
    from accolade.persistence.database import close_db, init_db
    from accolade.persistence.directory import PeriodStore, UserDirectory

    config = _load_config()

    async def _go() -> T:
        db = await init_db(config.db_path)
        try:
            return await action(UserDirectory(db), PeriodStore(db))
        finally:
            await close_db(db)

    return asyncio.run(_go())


def _state_style(state: CompletionState) -> str:
    return {
        CompletionState.NONE: "dim",
        CompletionState.DRAFT: "yellow",
        CompletionState.COMPLETE: "green",
    }[state]


def _name(profiles: dict[str, Profile], user_id: str) -> str:
    profile = profiles.get(user_id)
    return profile.full_name if profile and profile.full_name else user_id


def parse_score_args(values: list[str]) -> dict[int, int] | list[int | None]:
    """Parse rating arguments.

    Accepts either ``c3=4`` / ``3=4`` pairs or up to 13 positional values,
    where ``-`` leaves a criterion untouched.
    """
    if all("=" in v for v in values):
        parsed: dict[int, int] = {}
        for item in values:
            key, _, raw = item.partition("=")
            key = key.strip().lower().removeprefix("c")
            try:
                parsed[int(key)] = int(raw)
            except ValueError:
                raise typer.BadParameter(f"Cannot parse score '{item}'") from None
        return parsed

    positional: list[int | None] = []
    for item in values:
        if item == "-":
            positional.append(None)
            continue
        try:
            positional.append(int(item))
        except ValueError:
            raise typer.BadParameter(f"Cannot parse score '{item}'") from None
    return positional


# ── users ────────────────────────────────────────────────────────


@users_app.command("add")
def users_add(
    user_id: str = typer.Argument(..., help="User id"),
    name: str = typer.Option("", "--name", help="Full name"),
    department: str = typer.Option("", "--department", help="Department"),
    position: str = typer.Option("", "--position", help="Job title"),
    role: Role = typer.Option(Role.REGULAR, "--role", help="Role in the organization"),
) -> None:
    """Add or update a user."""
    profile = Profile(user_id=user_id, full_name=name, department=department, position=position)

    async def _add(directory, _periods) -> None:
        await directory.add_user(profile, role)

    _run_db(_add)
    console.print(f"[green]✓[/green] Saved {user_id} ({role.value})")


@users_app.command("list")
def users_list() -> None:
    """List users and their roles."""

    async def _list(directory, _periods):
        return await directory.list_users_with_roles()

    users = _run_db(_list)
    if not users:
        console.print("[dim]No users found.[/dim]")
        return

    table = Table(title=f"Users ({len(users)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Department", style="dim")
    table.add_column("Role")
    for profile, role in users:
        style = "magenta" if role != Role.REGULAR else ""
        table.add_row(profile.user_id, profile.full_name, profile.department, Text(role.value, style=style))
    console.print(table)


# ── periods ──────────────────────────────────────────────────────


@periods_app.command("create")
def periods_create(
    year: int = typer.Argument(..., help="Calendar year"),
    quarter: int = typer.Argument(..., min=1, max=4, help="Quarter (1-4)"),
    activate: bool = typer.Option(False, "--activate", help="Make it the active period"),
) -> None:
    """Create a period spanning a calendar quarter."""
    period = Period.for_quarter(year, quarter)

    async def _create(_directory, periods) -> None:
        await periods.save_period(period)
        if activate:
            await periods.activate(period.id)

    _run_db(_create)
    suffix = " (active)" if activate else ""
    console.print(
        f"[green]✓[/green] Created {period.id}: "
        f"{period.start_date.isoformat()} to {period.end_date.isoformat()}{suffix}"
    )


@periods_app.command("activate")
def periods_activate(period_id: str = typer.Argument(..., help="Period id, e.g. 2025-Q3")) -> None:
    """Make a period the active one."""

    async def _activate(_directory, periods) -> bool:
        return await periods.activate(period_id)

    if not _run_db(_activate):
        err_console.print(f"[red]Period not found:[/red] {period_id}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {period_id} is now active")


@periods_app.command("complete")
def periods_complete(period_id: str = typer.Argument(..., help="Period id, e.g. 2025-Q3")) -> None:
    """Close a period. It becomes read-only."""

    async def _complete(_directory, periods) -> bool:
        return await periods.complete(period_id)

    if not _run_db(_complete):
        err_console.print(f"[red]Period not found:[/red] {period_id}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {period_id} completed")


@periods_app.command("list")
def periods_list() -> None:
    """List known periods, newest first."""

    async def _list(_directory, periods):
        return await periods.list_periods()

    periods = _run_db(_list)
    if not periods:
        console.print("[dim]No periods found.[/dim]")
        return

    table = Table(title="Periods")
    table.add_column("ID", style="cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Status")
    for p in periods:
        if p.is_completed:
            status = Text("COMPLETED", style="dim")
        elif p.is_active:
            status = Text("ACTIVE", style="green")
        else:
            status = Text("-")
        table.add_row(p.id, p.start_date.isoformat(), p.end_date.isoformat(), status)
    console.print(table)


# ── Pool and voting ──────────────────────────────────────────────


@app.command()
def candidates() -> None:
    """Show the active period's candidate pool."""

    async def _pool(service: RecognitionService):
        pool = await service.get_candidates()
        return pool, await service.get_profiles(pool)

    pool, profiles = _run(_pool)
    if not pool:
        console.print("[dim]No candidates in this period.[/dim]")
        return
    table = Table(title=f"Candidates ({len(pool)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    for i, cid in enumerate(pool, start=1):
        table.add_row(str(i), cid, _name(profiles, cid))
    console.print(table)


@app.command()
def vote(
    voter_id: str = typer.Argument(..., help="Voter user id"),
    candidate_ids: list[str] = typer.Argument(..., help="Exactly 5 candidate ids"),
    draft: bool = typer.Option(
        False, "--draft", help="Save the picks without marking voting complete",
    ),
) -> None:
    """Submit a voter's picks and, unless --draft, mark voting complete."""

    async def _vote(service: RecognitionService):
        picks = await service.submit_votes(voter_id, candidate_ids)
        status = None if draft else await service.mark_completed(voter_id)
        return picks, status

    picks, status = _run(_vote)
    console.print(f"[green]✓[/green] Saved {len(picks)} picks for {voter_id}")
    if status is not None:
        console.print(
            f"Voting progress: {status.completed_count}/{status.required_count}"
            + (" [green](quorum met)[/green]" if status.quorum_met else "")
        )


@app.command()
def complete(voter_id: str = typer.Argument(..., help="Voter user id")) -> None:
    """Mark a voter's saved picks as final."""
    status = _run(lambda service: service.mark_completed(voter_id))
    console.print(
        f"[green]✓[/green] {voter_id} completed voting "
        f"({status.completed_count}/{status.required_count})"
    )


@app.command()
def status(
    watch: bool = typer.Option(False, "--watch", "-w", help="Poll until quorum is met"),
) -> None:
    """Show voting progress toward quorum."""
    interval = _load_config().poll_interval_seconds
    while True:
        info = _run(lambda service: service.get_voting_status())
        label = "[green]quorum met[/green]" if info.quorum_met else "[yellow]waiting[/yellow]"
        console.print(f"Voting: {info.completed_count}/{info.required_count}, {label}")
        if not watch or info.quorum_met:
            return
        time.sleep(interval)


@app.command()
def shortlist() -> None:
    """Show the finalists, if they can be computed yet."""

    async def _shortlist(service: RecognitionService):
        try:
            finalists = await service.compute_shortlist()
        except QuorumNotMet as e:
            return None, e.status
        return finalists, await service.get_profiles(finalists)

    finalists, extra = _run(_shortlist)
    if finalists is None:
        console.print(
            f"[yellow]Waiting for votes:[/yellow] "
            f"{extra.completed_count}/{extra.required_count} voters have completed"
        )
        return
    if not finalists:
        console.print("[dim]No finalists in this period.[/dim]")
        return
    for i, cid in enumerate(finalists, start=1):
        console.print(f"  {i}. [cyan]{cid}[/cyan] {_name(extra, cid)}")


@app.command()
def top(n: int = typer.Option(5, "--limit", "-n", min=0, help="How many to show")) -> None:
    """Show the live vote tally."""
    counts = _run(lambda service: service.get_top_candidates(n))
    if not counts:
        console.print("[dim]No candidates.[/dim]")
        return
    table = Table(title="Vote tally")
    table.add_column("Candidate", style="cyan")
    table.add_column("Votes", justify="right")
    for vc in counts:
        table.add_row(vc.candidate_id, str(vc.votes))
    console.print(table)


# ── Rating ───────────────────────────────────────────────────────


@app.command()
def rate(
    rater_id: str = typer.Argument(..., help="Rater user id"),
    candidate_id: str = typer.Argument(..., help="Finalist being rated"),
    scores: list[str] = typer.Argument(
        None, help="13 scores (use - to skip one) or cN=score pairs",
    ),
    clear: list[int] = typer.Option(
        None, "--clear", help="Criterion number to reset (repeatable)",
    ),
) -> None:
    """Save scores (1-5) for a finalist. Unlisted criteria keep their value."""
    parsed = parse_score_args(scores or [])
    state = _run(
        lambda service: service.submit_rating(rater_id, candidate_id, parsed, clear or []),
    )
    console.print(
        f"[green]✓[/green] Rating saved: "
        f"[{_state_style(state)}]{state.value}[/{_state_style(state)}]"
    )


@app.command()
def ratings(rater_id: str = typer.Argument(..., help="Rater user id")) -> None:
    """Show a rater's scores for every finalist."""

    async def _ratings(service: RecognitionService):
        progress = await service.rater_progress(rater_id)
        stored = await service.get_user_ratings_map(rater_id)
        return progress, stored

    progress, stored = _run(_ratings)
    if not progress.states:
        console.print("[dim]No finalists to rate.[/dim]")
        return

    table = Table(title=f"Ratings by {rater_id}")
    table.add_column("Candidate", style="cyan")
    for i in range(1, NUM_CRITERIA + 1):
        table.add_column(f"c{i}", justify="right")
    table.add_column("State")
    for cid, state in progress.states.items():
        values = stored.get(cid) or [None] * NUM_CRITERIA
        table.add_row(
            cid,
            *("-" if v is None else str(v) for v in values),
            Text(state.value, style=_state_style(state)),
        )
    console.print(table)
    if progress.all_done:
        console.print("[green]All finalists rated.[/green]")


@app.command()
def criteria() -> None:
    """List the rating rubric."""
    for i, label in enumerate(CRITERIA, start=1):
        console.print(f"  [bold]c{i:<2}[/bold] {label}")


# ── Scoring ──────────────────────────────────────────────────────


@app.command()
def scores() -> None:
    """Show the leaderboard."""

    async def _scores(service: RecognitionService):
        board = await service.leaderboard()
        return board, await service.get_profiles(s.candidate_id for s in board)

    board, profiles = _run(_scores)
    if not board:
        console.print("[dim]No finalists yet.[/dim]")
        return

    table = Table(title="Leaderboard")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Candidate", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Raters", justify="right")
    table.add_column("Percent", justify="right")
    for rank, s in enumerate(board, start=1):
        table.add_row(
            str(rank), _name(profiles, s.candidate_id),
            str(s.total_score), str(s.num_raters), f"{s.score_percent:.1f}%",
        )
    console.print(table)


@app.command()
def winner(
    record: bool = typer.Option(False, "--record", help="Persist the computed winner"),
) -> None:
    """Show the period winner."""

    async def _winner(service: RecognitionService):
        if record:
            stored = await service.record_winner()
        else:
            stored = await service.get_winner()
        if stored is not None:
            return stored, True
        return await service.decide_winner(), False

    decision, recorded = _run(_winner)
    if decision is None:
        console.print("[dim]No winner yet: no finalist has a complete rating.[/dim]")
        return

    body = (
        f"[bold]{decision.winner_id}[/bold]\n"
        f"{decision.total_score} points from {decision.num_raters} raters"
    )
    if decision.is_tie:
        body += f"\n[yellow]Tied on total:[/yellow] {', '.join(decision.tied_candidates)}"
    title = "Winner" if recorded else "Provisional winner"
    console.print(Panel(body, title=title, border_style="green" if recorded else "yellow"))


@app.command()
def phase(
    user_id: str = typer.Argument(..., help="User id"),
    active: str = typer.Option(None, "--active", help="Finalist currently being rated"),
) -> None:
    """Show which workflow step a user is on."""
    current = _run(lambda service: service.resolve_phase(user_id, active))
    console.print(current.value)


@app.command()
def export(
    fmt: str = typer.Option("markdown", "--format", "-f", help="json or markdown"),
    output: Path = typer.Option(None, "--output", "-o", help="Write to a file"),
) -> None:
    """Export the active period's report."""
    from accolade.export import export_json, export_markdown

    if fmt not in ("json", "markdown"):
        raise typer.BadParameter("format must be 'json' or 'markdown'")

    report = _run(lambda service: service.build_report())
    text = export_json(report) if fmt == "json" else export_markdown(report)
    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {output}")
    else:
        console.print(text, markup=False, highlight=False)


# ── config ───────────────────────────────────────────────────────


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration."""
    config = _load_config()
    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("db_path", config.db_path)
    table.add_row("privileged_roles", ", ".join(r.value for r in config.privileged_roles))
    table.add_row("poll_interval_seconds", f"{config.poll_interval_seconds:g}")
    table.add_row("log_level", config.log_level)
    console.print(table)

