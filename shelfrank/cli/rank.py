"""Rank command implementation."""

from typing import List, Optional

import typer
from rich.console import Console
from rich.prompt import Prompt

from ..config import Config
from ..db import ComparisonLog, PostgresRankingPersistence, ShelfStorage, advisory_tier_lock, get_connection
from ..exceptions import InsertionInProgressError, IntegrityMismatchError, PersistenceWriteError
from ..logging_setup import configure_logging
from ..ranking import BookMeta, RankingSession, ShelfRanker, Tier, print_tier_summary
from ..ranking.tiers import format_score

console = Console()


def _describe(book) -> str:
    authors = f" [dim]by {', '.join(book.authors)}[/dim]" if book.authors else ""
    return f"[yellow]{book.title}[/yellow]{authors}"


def _run_comparisons(session: RankingSession) -> None:
    """Ask the user until the insertion point is found."""
    pair = session.current_comparison()
    while pair is not None:
        console.print("\n[bold]Which did you prefer?[/bold]")
        console.print(f"  1. {_describe(pair.book_a)}")
        console.print(f"  2. {_describe(pair.book_b)} ({format_score(pair.book_b.score)})")
        answer = Prompt.ask("Choice", choices=["1", "2"], console=console)
        session.choose(answer == "1")
        pair = session.current_comparison()


def _save(session: RankingSession) -> None:
    """Commit, offering to retry the write without repeating comparisons."""
    while True:
        try:
            outcome = session.commit()
        except (PersistenceWriteError, IntegrityMismatchError) as e:
            console.print(f"[red]❌ Failed to save ranking: {e}[/red]")
            if not typer.confirm("Retry saving?", default=True):
                raise typer.Exit(1)
            continue

        if outcome.fallback_used:
            console.print(
                "[yellow]⚠️  Tier redistribution could not be saved; only the new score was written.[/yellow]"
            )
        return


def rank_command(
    tier: Tier = typer.Option(..., "--tier", "-t", help="Tier the book was rated into"),
    title: Optional[str] = typer.Option(None, "--title", help="Title of a new shelf entry"),
    authors: List[str] = typer.Option([], "--author", "-a", help="Author (repeatable)"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url", help="Cover image URL"),
    book_id: Optional[str] = typer.Option(
        None,
        "--book-id",
        "-b",
        help="Existing shelf entry to (re)rank instead of adding a new one",
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User ID (default from config)"),
    onboarding: bool = typer.Option(False, "--onboarding", help="Mark comparisons as onboarding"),
) -> None:
    """Place a book into a tier by answering "which did you prefer?" questions."""
    try:
        config = Config()
        configure_logging(config.config.log_level)
        user_id = config.resolve_user(user)

        if book_id is None and not title:
            console.print("[red]Give either --title for a new book or --book-id for an existing one.[/red]")
            raise typer.Exit(1)

        with get_connection(config.get_db_config()) as conn:
            storage = ShelfStorage()
            if book_id is not None:
                entry = storage.get_book(conn, user_id, book_id)
                if entry is None:
                    console.print(f"[red]Shelf entry '{book_id}' not found.[/red]")
                    raise typer.Exit(1)
                if entry.tier != tier:
                    storage.set_tier(conn, user_id, entry.id, tier)
            else:
                entry = storage.add_book(conn, user_id, title, tier, authors=authors, cover_url=cover_url)
                console.print(f"[dim]Added '{entry.title}' to shelf ({entry.id})[/dim]")

            book = BookMeta(id=entry.id, title=entry.title, authors=entry.authors, cover_url=entry.cover_url)
            ranker = ShelfRanker.from_config(PostgresRankingPersistence(conn), config.config.ranking)

            with advisory_tier_lock(conn, user_id, tier):
                with ranker.begin(user_id, tier, book) as session:
                    _run_comparisons(session)
                    result = session.result()
                    _save(session)

            ComparisonLog().record_choices(conn, user_id, book.id, result.history, is_onboarding=onboarding)

        console.print(
            f"\n[green]✅ Ranked '{book.title}' #{result.position + 1} in {tier.value} "
            f"with score {format_score(result.score)}[/green]"
        )
        print_tier_summary(tier, result.books, highlight=book.id)

    except InsertionInProgressError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Ranking abandoned; no scores were saved[/yellow]")
        raise typer.Exit(1)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Ranking failed: {e}[/red]")
        raise typer.Exit(1)
