"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Tables and panels are reused by several commands.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import Device, Entity, Notification, NotificationKind
from core.domain.resources import ResourceConfig

Column = tuple[str, Callable[[Entity], Any]]


def _field(name: str) -> Callable[[Entity], Any]:
    return lambda entity: getattr(entity, name, None)


def _device_status(entity: Entity) -> str:
    return entity.status.label() if isinstance(entity, Device) else ""


def _device_organization(entity: Entity) -> str:
    return entity.organization_name if isinstance(entity, Device) else ""


_EXTRA_COLUMNS: dict[str, list[Column]] = {
    "organizations": [("Title", _field("title")), ("Email", _field("email")), ("Image", _field("image"))],
    "user-organizations": [("Title", _field("title")), ("Email", _field("email"))],
    "devices": [("Organization", _device_organization), ("Status", _device_status)],
    "customers": [("Email", _field("email")), ("Phone", _field("phone"))],
    "categories": [("Status", _field("status"))],
    "products": [("Category", _field("category_id")), ("Price", _field("price")), ("Description", _field("description"))],
    "invoices": [("Customer", _field("customer_name")), ("Total", _field("total"))],
}


def print_banner(console: Console) -> None:
    title = Text("CONSOLE-SYNC", style="bold cyan")
    subtitle = Text("Organizations • Devices • Payments", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_entities_table(config: ResourceConfig[Any], entities: Iterable[Entity]) -> Table:
    """Rich table for one mirror's (filtered) contents."""

    table = Table(title=config.name.capitalize())
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="bold white")
    extra = _EXTRA_COLUMNS.get(config.name, [])
    for header, _ in extra:
        table.add_column(header, style="cyan")

    for entity in entities:
        cells = [entity.id, entity.display_name]
        for _, getter in extra:
            value = getter(entity)
            cells.append("" if value is None else str(value))
        table.add_row(*cells)
    return table


def build_session_table(snapshot: dict[str, str]) -> Table:
    table = Table(title="Session")
    table.add_column("Key", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")
    for key in sorted(snapshot):
        value = snapshot[key]
        if key.endswith("Token") and value:
            value = f"{value[:6]}…({len(value)} chars)"
        table.add_row(key, value)
    return table


def build_notification_panel(notification: Notification) -> Panel:
    """Panel styled by the notification kind; the kind carries no other meaning."""

    if notification.kind is NotificationKind.ERROR:
        return Panel(Text(notification.text), title="Error", border_style="red")
    return Panel(Text(notification.text), title="Success", border_style="green")
