"""Init command implementation."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, save_config
from ..config.loader import default_config_path
from ..db import init_database, validate_connection

console = Console()


def init_command(
    config_path: Path = typer.Option(
        default_config_path(),
        "--config",
        "-c",
        help="Configuration file to write",
    ),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Default user ID"),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("shelfrank", "--db-name", help="Database name"),
    db_user: str = typer.Option("shelfrank_user", "--db-user", help="Database user"),
) -> None:
    """Write configuration and create the database schema."""
    console.print(Panel.fit("📚 Shelfrank - Initialization", style="bold blue"))

    config = ConfigModel(
        default_user=user,
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "SHELFRANK_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = config.postgres.model_dump()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export SHELFRANK_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
        console.print("✅ Database schema initialized")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ Shelfrank initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export SHELFRANK_DB_PASSWORD=your_password[/bold]\n"
            f"2. Rank a book: [bold]shelfrank rank --tier liked --title \"Dune\"[/bold]",
            style="green",
        )
    )
