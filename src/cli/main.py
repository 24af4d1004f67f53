"""Operator CLI (Typer + Rich).

Each command opens one management screen for the requested resource (plus
its companions), runs a single operation and prints the resulting status
message. The session (token, selected organization) lives in a JSON file
so consecutive commands share it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.http_client import HttpRequestPipeline, build_async_client
from adapters.session_store import JsonFileSessionStore
from cli import doctor
from cli.ui_components import (
    build_entities_table,
    build_notification_panel,
    build_session_table,
    print_banner,
)
from core.catalog import CATALOG, COMPANIONS, get_resource
from core.config import AppSettings
from core.domain.models import FileUpload
from core.services.screen import ManagementScreen, OperationResult
from core.session import SessionContext

app = typer.Typer(no_args_is_help=True, help="Admin console resource synchronization CLI.")
session_app = typer.Typer(no_args_is_help=True, help="Bearer credential and selected organization.")
orgs_app = typer.Typer(no_args_is_help=True, help="Organization picker.")
app.add_typer(session_app, name="session")
app.add_typer(orgs_app, name="orgs")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def open_session(settings: AppSettings) -> SessionContext:
    return SessionContext(JsonFileSessionStore(settings.resolved_session_path()))


def parse_fields(values: list[str]) -> dict[str, Any]:
    """`key=value` pairs; values that parse as JSON keep their type."""

    fields: dict[str, Any] = {}
    for raw in values:
        if "=" not in raw:
            raise typer.BadParameter(f"expected key=value, got {raw!r}")
        key, value = raw.split("=", 1)
        key = key.strip()
        if not key:
            raise typer.BadParameter(f"empty field name in {raw!r}")
        try:
            fields[key] = json.loads(value)
        except json.JSONDecodeError:
            fields[key] = value
    return fields


def read_upload(path: Path | None) -> FileUpload | None:
    if path is None:
        return None
    if not path.is_file():
        raise typer.BadParameter(f"file not found: {path}")
    content_type, _ = mimetypes.guess_type(path.name)
    return FileUpload(filename=path.name, content=path.read_bytes(), content_type=content_type)


def _check_resource(name: str) -> str:
    if name not in CATALOG:
        raise typer.BadParameter(f"unknown resource {name!r}; choose from: {', '.join(sorted(CATALOG))}")
    return name


@asynccontextmanager
async def open_screen(
    settings: AppSettings,
    session: SessionContext,
    resource: str,
) -> AsyncIterator[ManagementScreen]:
    async with build_async_client(settings) as client:
        pipeline = HttpRequestPipeline(session=session, client=client)
        screen = ManagementScreen(pipeline=pipeline, session=session, settings=settings)
        for name in (resource, *COMPANIONS.get(resource, ())):
            screen.add_resource(get_resource(name))
        try:
            yield screen
        finally:
            screen.close()


def _report(screen: ManagementScreen, result: OperationResult) -> None:
    notification = screen.notifications.current
    if notification is not None:
        _console.print(build_notification_panel(notification))
    if not result.ok and not result.declined:
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests (DEBUG)."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def banner() -> None:
    """Print the banner and the configured API base URL."""

    print_banner(_console)
    _console.print(f"[dim]API:[/dim] {AppSettings().api_base_url}")


@session_app.command("set-token")
def session_set_token(
    token: str = typer.Argument(..., help="Bearer access token from the login exchange."),
    refresh_token: Optional[str] = typer.Option(None, "--refresh", help="Refresh token."),
) -> None:
    """Store the bearer credential for subsequent commands."""

    session = open_session(AppSettings())
    session.sign_in(token.strip(), refresh_token)
    _console.print("[green]Token stored.[/green]")


@session_app.command("show")
def session_show() -> None:
    """Show the persisted session keys (tokens masked)."""

    settings = AppSettings()
    store = JsonFileSessionStore(settings.resolved_session_path())
    _console.print(build_session_table(store.snapshot()))
    _console.print(f"[dim]{store.path}[/dim]")


@session_app.command("clear")
def session_clear() -> None:
    """Forget the credential and the selected organization."""

    session = open_session(AppSettings())
    session.sign_out()
    session.clear_selected_organization()
    _console.print("[green]Session cleared.[/green]")


@app.command("list")
def list_resource(
    resource: str = typer.Argument(..., callback=_check_resource),
    search: str = typer.Option("", "--search", "-s", help="Case-insensitive name filter."),
    filters: list[str] = typer.Option([], "--filter", "-F", help="List query parameter key=value (e.g. CategoryIndex=3)."),
) -> None:
    """Load a collection and print it, optionally filtered by name."""

    settings = AppSettings()
    session = open_session(settings)

    async def _run() -> None:
        async with open_screen(settings, session, resource) as screen:
            for key, value in parse_fields(filters).items():
                try:
                    screen.mirror(resource).set_filter(key, str(value))
                except ValueError as exc:
                    raise typer.BadParameter(str(exc)) from exc
            results = await screen.mount()
            failed = [r for r in results if not r.ok]
            if failed:
                _report(screen, failed[0])
            mirror = screen.mirror(resource)
            picker = screen.attach_picker(resource)
            _console.print(build_entities_table(mirror.config, picker.filter(search)))

    asyncio.run(_run())


@app.command()
def create(
    resource: str = typer.Argument(..., callback=_check_resource),
    field: list[str] = typer.Option([], "--field", "-f", help="key=value (repeatable)."),
    image: Optional[Path] = typer.Option(None, "--image", help="File for the resource's image field."),
) -> None:
    """Create a record and print the confirmed result."""

    settings = AppSettings()
    session = open_session(settings)
    draft = parse_fields(field)
    upload = read_upload(image)

    async def _run() -> None:
        async with open_screen(settings, session, resource) as screen:
            result = await screen.create(resource, draft, image=upload)
            _report(screen, result)
            mirror = screen.mirror(resource)
            if result.value is not None:
                _console.print(build_entities_table(mirror.config, [result.value]))
            elif len(mirror):
                _console.print(build_entities_table(mirror.config, mirror.entities))

    asyncio.run(_run())


@app.command()
def update(
    resource: str = typer.Argument(..., callback=_check_resource),
    entity_id: str = typer.Argument(..., metavar="ID"),
    field: list[str] = typer.Option([], "--field", "-f", help="key=value (repeatable)."),
    image: Optional[Path] = typer.Option(None, "--image", help="Replacement file for the image field."),
) -> None:
    """Update a record; the local copy is patched after the server accepts it."""

    settings = AppSettings()
    session = open_session(settings)
    patch = parse_fields(field)
    upload = read_upload(image)
    if not patch and upload is None:
        raise typer.BadParameter("nothing to update: pass --field and/or --image")

    async def _run() -> None:
        async with open_screen(settings, session, resource) as screen:
            await screen.mount()
            result = await screen.update(resource, entity_id, patch, new_image=upload)
            _report(screen, result)
            if result.value is not None:
                _console.print(build_entities_table(screen.mirror(resource).config, [result.value]))

    asyncio.run(_run())


@app.command()
def delete(
    resource: str = typer.Argument(..., callback=_check_resource),
    entity_id: str = typer.Argument(..., metavar="ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a record after confirmation."""

    settings = AppSettings()
    session = open_session(settings)

    def confirm(prompt: str) -> bool:
        return yes or typer.confirm(prompt, default=False)

    async def _run() -> None:
        async with open_screen(settings, session, resource) as screen:
            await screen.mount()
            result = await screen.delete(resource, entity_id, confirm)
            if result.declined:
                _console.print("[yellow]Cancelled.[/yellow]")
                return
            _report(screen, result)

    asyncio.run(_run())


@orgs_app.command("select")
def orgs_select(
    text: str = typer.Argument(..., help="Organization name (exact, case-insensitive)."),
    source: str = typer.Option(
        "memberships",
        "--source",
        help="Collection to pick from: memberships, user-organizations or organizations.",
    ),
) -> None:
    """Select the working organization by typing its name."""

    settings = AppSettings()
    session = open_session(settings)
    if source not in ("memberships", "user-organizations", "organizations"):
        raise typer.BadParameter(f"unsupported source {source!r}")

    async def _run() -> None:
        async with open_screen(settings, session, source) as screen:
            picker = screen.attach_picker(source, remember=True)
            result = await screen.load(source)
            if not result.ok:
                _report(screen, result)
            picker.type_text(text)
            submitted = screen.submit_selection()
            if submitted.ok and picker.selected is not None:
                ref = picker.selected.as_reference()
                _console.print(f"[green]Selected organization:[/green] {ref.name} [dim]({ref.id})[/dim]")
                return
            if submitted.ok:
                _console.print("[yellow]No organizations yet. Create an organization first.[/yellow]")
                raise typer.Exit(code=1)
            candidates = picker.candidates
            if candidates:
                _console.print(build_entities_table(screen.mirror(source).config, candidates))
            else:
                _console.print("[yellow]No matching organizations[/yellow]")
            _report(screen, submitted)

    asyncio.run(_run())


@orgs_app.command("current")
def orgs_current() -> None:
    """Show the persisted selected organization."""

    selected = open_session(AppSettings()).selected_organization
    if selected is None:
        _console.print("[yellow]No organization selected.[/yellow]")
        raise typer.Exit(code=1)
    _console.print(f"{selected.name} [dim]({selected.id})[/dim]")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
