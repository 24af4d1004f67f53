"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.session_store import JsonFileSessionStore
from core.config import AppSettings, write_user_env_vars
from core.session import SessionContext

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(settings: AppSettings) -> tuple[bool, str]:
    # Any HTTP answer means the service is reachable; auth is checked separately.
    try:
        async with build_async_client(settings) as client:
            response = await client.get("")
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or exc.__class__.__name__


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    session_path = settings.resolved_session_path()
    session = SessionContext(JsonFileSessionStore(session_path))

    table = Table(title="Console-Sync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("TLS verification", "OK" if settings.verify_tls else "OFF", str(settings.verify_tls))
    table.add_row("Session file", "OK" if session_path.exists() else "NEW", str(session_path))

    # Session
    if session.is_authenticated:
        table.add_row("Access token", "OK", "Present")
    else:
        table.add_row("Access token", "MISSING", "Run `console-sync session set-token <token>`")
    selected = session.selected_organization
    if selected is not None:
        table.add_row("Organization", "OK", f"{selected.name} ({selected.id})")
    else:
        table.add_row("Organization", "OPTIONAL", "Run `console-sync orgs select <name>`")

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(settings))
    table.add_row("API connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http and settings.verify_tls:
        _console.print(
            "\n[yellow]Note:[/yellow] A local dev certificate needs `CONSOLE_SYNC_VERIFY_TLS=false`."
        )


@app.command(name="setup")
def setup() -> None:
    """Interactive API setup (stores config in the user config .env)."""

    settings = AppSettings()
    base_url = typer.prompt("API base URL", default=settings.api_base_url, show_default=True).strip()
    verify = typer.confirm("Verify TLS certificates?", default=settings.verify_tls)

    if not base_url:
        raise typer.BadParameter("base_url is required")
    if not base_url.endswith("/"):
        base_url += "/"

    env_path = write_user_env_vars(
        {
            "CONSOLE_SYNC_API_BASE_URL": base_url,
            "CONSOLE_SYNC_VERIFY_TLS": "true" if verify else "false",
        }
    )

    _console.print(f"[green]Saved API config to:[/green] {env_path}")
