"""CLI commands for cacheaside.

Provides command-line interface using Typer:
- cacheaside serve: Run the API server
- cacheaside cache: Inspect and manage cache entries

Usage:
    cacheaside --help
    cacheaside serve --port 8080
    cacheaside cache get product 42
    cacheaside cache load 42
"""

import typer

from cacheaside.cli.cache_cmd import app as cache_app
from cacheaside.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="cacheaside",
    help="cacheaside: lock-guarded cache-aside over Redis",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """cacheaside: lock-guarded cache-aside over Redis."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
