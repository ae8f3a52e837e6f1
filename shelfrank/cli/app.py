"""Main CLI application."""

import atexit

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..db import close_pools
from .init import init_command
from .rank import rank_command
from .shelf import shelf_app

app = typer.Typer(
    name="shelfrank",
    help="Shelfrank - rank the books you read by comparing them",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("rank")(rank_command)
app.add_typer(shelf_app, name="shelf", help="Inspect and maintain ranked tiers")

atexit.register(close_pools)


if __name__ == "__main__":
    app()
