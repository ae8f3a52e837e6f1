"""Shelf maintenance commands."""

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import BookStats, ComparisonLog, PostgresRankingPersistence, ShelfStorage, get_connection
from ..exceptions import ShelfRankError
from ..logging_setup import configure_logging
from ..ranking import ShelfRanker, Tier, print_tier_summary
from ..ranking.tiers import format_score

console = Console()
shelf_app = typer.Typer(help="Inspect and maintain ranked tiers")


def _load() -> Config:
    config = Config()
    try:
        configure_logging(config.config.log_level)
    except FileNotFoundError:
        console.print("[red]Config file not found. Run 'shelfrank init' first.[/red]")
        raise typer.Exit(1)
    return config


def _user(config: Config, user: Optional[str]) -> str:
    try:
        return config.resolve_user(user)
    except ValueError as e:
        console.print(f"[red]{e}. Pass --user or set default_user in the config.[/red]")
        raise typer.Exit(1)


@shelf_app.command("list")
def shelf_list(
    tier: Optional[Tier] = typer.Option(None, "--tier", "-t", help="Only show this tier"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User ID (default from config)"),
) -> None:
    """Show ranked books, best first."""
    config = _load()
    user_id = _user(config, user)

    with get_connection(config.get_db_config()) as conn:
        entries = ShelfStorage().get_shelf(conn, user_id, tier)

    tiers: List[Tier] = [tier] if tier else list(Tier)
    for current in tiers:
        in_tier = [e for e in entries if e.tier == current]
        ranked = [e.to_ranked_book() for e in in_tier if e.rank_score is not None]
        if not in_tier:
            continue
        print_tier_summary(current, ranked)
        unranked = len(in_tier) - len(ranked)
        if unranked:
            console.print(f"[dim]  {unranked} {current.value} book(s) not ranked yet[/dim]")

    if not entries:
        console.print("[yellow]No books on this shelf.[/yellow]")


@shelf_app.command("remove")
def shelf_remove(
    book_id: str = typer.Argument(..., help="Shelf entry ID"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User ID (default from config)"),
) -> None:
    """Remove a book and respace its tier."""
    config = _load()
    user_id = _user(config, user)

    with get_connection(config.get_db_config()) as conn:
        entry = ShelfStorage().get_book(conn, user_id, book_id)
        if entry is None:
            console.print(f"[red]Shelf entry '{book_id}' not found.[/red]")
            raise typer.Exit(1)

        persistence = PostgresRankingPersistence(conn)
        if entry.tier is None:
            persistence.delete_book(user_id, book_id)
            console.print(f"[green]✅ Removed: {entry.title}[/green]")
            return

        ranker = ShelfRanker.from_config(persistence, config.config.ranking)
        try:
            remaining = ranker.remove_book(
                user_id,
                entry.tier,
                book_id,
                redistribute=config.config.ranking.redistribute_on_remove,
            )
        except ShelfRankError as e:
            console.print(f"[red]❌ Failed to update tier: {e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✅ Removed: {entry.title}[/green]")
    if remaining:
        print_tier_summary(entry.tier, remaining)


@shelf_app.command("redistribute")
def shelf_redistribute(
    tier: Tier = typer.Argument(..., help="Tier to respace"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User ID (default from config)"),
) -> None:
    """Space a tier's scores evenly, keeping its order."""
    config = _load()
    user_id = _user(config, user)

    with get_connection(config.get_db_config()) as conn:
        ranker = ShelfRanker.from_config(PostgresRankingPersistence(conn), config.config.ranking)
        try:
            books = ranker.redistribute_tier(user_id, tier)
        except ShelfRankError as e:
            console.print(f"[red]❌ Redistribution failed: {e}[/red]")
            raise typer.Exit(1)

    if not books:
        console.print(f"[yellow]No ranked books in {tier.value}.[/yellow]")
        return
    console.print(f"[green]✅ Redistributed {len(books)} books[/green]")
    print_tier_summary(tier, books)


@shelf_app.command("stats")
def shelf_stats(
    title: str = typer.Argument(..., help="Book title"),
) -> None:
    """Show the community score for a title."""
    config = _load()

    with get_connection(config.get_db_config()) as conn:
        stats = BookStats().community_score(conn, title)

    if not stats["rank_count"]:
        console.print(f"[yellow]Nobody has ranked '{title}' yet.[/yellow]")
        return
    console.print(
        f"[bold]{title}[/bold]: {format_score(stats['average_score'])} "
        f"average from {stats['rank_count']} reader(s)"
    )


@shelf_app.command("comparisons")
def shelf_comparisons(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User ID (default from config)"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of comparisons to show", min=1),
) -> None:
    """Show recent head-to-head answers."""
    config = _load()
    user_id = _user(config, user)

    with get_connection(config.get_db_config()) as conn:
        records = ComparisonLog().get_user_comparisons(conn, user_id, limit=limit)
        storage = ShelfStorage()
        titles = {}
        for record in records:
            for book_id in (record.winner_book_id, record.loser_book_id):
                if book_id not in titles:
                    entry = storage.get_book(conn, user_id, book_id)
                    titles[book_id] = entry.title if entry else book_id

    if not records:
        console.print("[yellow]No comparisons recorded.[/yellow]")
        return

    table = Table(title="Recent Comparisons")
    table.add_column("When", style="dim")
    table.add_column("Preferred", style="green")
    table.add_column("Over", style="red")
    for record in records:
        table.add_row(
            record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else "",
            titles[record.winner_book_id],
            titles[record.loser_book_id],
        )
    console.print(table)
