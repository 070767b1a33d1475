"""`cacheaside serve`: run the HTTP API under uvicorn.

Defaults come from settings (CACHEASIDE_HOST, CACHEASIDE_PORT,
CACHEASIDE_LOG_LEVEL); flags override them.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from cacheaside.config import settings

app = typer.Typer(help="Run the cacheaside API server")
console = Console()


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Bind address"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Listen port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Restart on code changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Worker processes (ignored with --reload)"),
    log_level: str = typer.Option(
        settings.log_level.lower(), "--log-level", "-l", help="uvicorn log level"
    ),
) -> None:
    """Start the API server."""
    import uvicorn

    if reload:
        workers = 1

    summary = Table(show_header=False, box=None)
    summary.add_row("address", f"{host}:{port}")
    summary.add_row("redis", settings.redis_url)
    summary.add_row("cache ttl", f"{settings.cache_ttl}s")
    summary.add_row("lock", settings.global_lock_name or "per key")
    summary.add_row("workers", str(workers))
    console.print(f"[bold]{settings.app_name}[/bold]")
    console.print(summary)

    uvicorn.run(
        "cacheaside.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level.lower(),
    )
