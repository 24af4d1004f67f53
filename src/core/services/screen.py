"""Management screen orchestration.

A screen owns its mirrors, an optional organization picker and one
notification channel. Every operation goes through `_run`, the single place
where engine errors are caught and turned into an error message; nothing
below this layer shows messages, and nothing above it sees a `SyncError`
raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from core.config import AppSettings
from core.domain.errors import RequestError, SyncError
from core.domain.models import Entity, FileUpload, LoadState
from core.domain.resources import ResourceConfig
from core.interfaces.confirmation import Confirm
from core.interfaces.request_pipeline import RequestPipeline
from core.services.notifications import NotificationChannel
from core.services.resource_mirror import ResourceMirror
from core.services.selection import SelectionIndex
from core.session import SessionContext

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of one screen operation."""

    ok: bool
    op: str
    resource: str
    value: Any = None
    error: SyncError | None = None
    declined: bool = False


def describe_error(op: str, config: ResourceConfig[Any], exc: SyncError) -> str:
    """Human readable error text; server failures keep the body verbatim."""

    if isinstance(exc, RequestError):
        target = config.name if op == "load" else config.singular
        return f"Failed to {op} {target}: {exc.message}"
    return exc.message


class ManagementScreen:
    def __init__(
        self,
        *,
        pipeline: RequestPipeline,
        session: SessionContext,
        settings: AppSettings | None = None,
        notifications: NotificationChannel | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._session = session
        lifetime = settings.notification_lifetime_seconds if settings else 3.0
        self.notifications = notifications or NotificationChannel(lifetime)
        self._mirrors: dict[str, ResourceMirror[Any]] = {}
        self._picker: SelectionIndex[Any] | None = None
        self._auto_select = False
        self._closed = False

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def picker(self) -> SelectionIndex[Any] | None:
        return self._picker

    # -- wiring ----------------------------------------------------------

    def add_resource(self, config: ResourceConfig[Any]) -> ResourceMirror[Any]:
        if config.name in self._mirrors:
            raise ValueError(f"resource {config.name!r} already added")
        mirror: ResourceMirror[Any] = ResourceMirror(
            config, pipeline=self._pipeline, session=self._session
        )
        self._mirrors[config.name] = mirror
        self._link_parents()
        return mirror

    def _link_parents(self) -> None:
        for mirror in self._mirrors.values():
            link = mirror.config.parent
            if link is not None and link.resource in self._mirrors:
                mirror.link_parent(self._mirrors[link.resource])

    def attach_picker(
        self,
        resource: str,
        *,
        remember: bool = False,
        auto_select: bool = False,
    ) -> SelectionIndex[Any]:
        """Bind the organization picker to an already added resource.

        `auto_select` picks the persisted (or first) entity after a
        successful load of that resource, unless something is already
        selected.
        """

        self._picker = SelectionIndex(self.mirror(resource), session=self._session, remember=remember)
        self._auto_select = auto_select
        return self._picker

    def mirror(self, resource: str) -> ResourceMirror[Any]:
        try:
            return self._mirrors[resource]
        except KeyError:
            raise KeyError(f"unknown resource {resource!r}") from None

    @property
    def resources(self) -> list[str]:
        return list(self._mirrors)

    def loading(self, resource: str) -> bool:
        return self.mirror(resource).loading

    @property
    def any_loading(self) -> bool:
        return any(mirror.loading for mirror in self._mirrors.values())

    # -- operations ------------------------------------------------------

    async def _run(
        self,
        op: str,
        resource: str,
        action: Callable[[], Awaitable[Any]],
        success_text: str | None,
    ) -> OperationResult:
        config = self.mirror(resource).config
        try:
            value = await action()
        except SyncError as exc:
            logger.info("%s %s failed: %s", op, resource, exc)
            if not self._closed:
                self.notifications.error(describe_error(op, config, exc))
            return OperationResult(ok=False, op=op, resource=resource, error=exc)

        # The mirror was already updated by `action`; the message comes second.
        if not self._closed and success_text:
            self.notifications.success(success_text)
        return OperationResult(ok=True, op=op, resource=resource, value=value)

    async def mount(self) -> list[OperationResult]:
        """Load every mirror concurrently; either may finish first."""

        return list(await asyncio.gather(*(self.load(name) for name in self._mirrors)))

    async def load(self, resource: str) -> OperationResult:
        mirror = self.mirror(resource)

        async def action() -> Any:
            entities = await mirror.load()
            picker = self._picker
            if (
                self._auto_select
                and picker is not None
                and picker.mirror is mirror
                and mirror.state is LoadState.READY
                and picker.selection.is_empty
            ):
                picker.adopt_session_selection()
            return entities

        return await self._run("load", resource, action, None)

    async def create(
        self,
        resource: str,
        draft: Mapping[str, Any],
        *,
        image: FileUpload | None = None,
    ) -> OperationResult:
        mirror = self.mirror(resource)
        text = f"{mirror.config.singular.capitalize()} created successfully!"
        return await self._run("create", resource, lambda: mirror.create(draft, image=image), text)

    async def update(
        self,
        resource: str,
        entity_id: str,
        patch: Mapping[str, Any],
        *,
        new_image: FileUpload | None = None,
    ) -> OperationResult:
        mirror = self.mirror(resource)
        text = f"{mirror.config.singular.capitalize()} updated successfully!"
        return await self._run(
            "update",
            resource,
            lambda: mirror.update(entity_id, patch, new_image=new_image),
            text,
        )

    async def delete(self, resource: str, entity_id: str, confirm: Confirm) -> OperationResult:
        """Delete after an explicit yes; a "no" performs no request at all."""

        mirror = self.mirror(resource)
        singular = mirror.config.singular
        entity: Entity | None = mirror.get(entity_id)
        label = entity.display_name if entity is not None else entity_id
        prompt = f"Are you sure you want to delete this {singular} ({label})? This action cannot be undone."
        if not confirm(prompt):
            return OperationResult(ok=False, op="delete", resource=resource, declined=True)

        text = f"{singular.capitalize()} deleted successfully."
        return await self._run("delete", resource, lambda: mirror.delete(entity_id), text)

    def submit_selection(self) -> OperationResult:
        """Check the picker form: a selection, or "create one first"."""

        if self._picker is None:
            raise RuntimeError("no picker attached to this screen")
        resource = self._picker.mirror.name
        try:
            outcome = self._picker.require_selection()
        except SyncError as exc:
            if not self._closed:
                self.notifications.error(exc.message)
            return OperationResult(ok=False, op="select", resource=resource, error=exc)
        return OperationResult(ok=True, op="select", resource=resource, value=outcome)

    def close(self) -> None:
        """Tear down: late responses are discarded, the message timer stops."""

        self._closed = True
        for mirror in self._mirrors.values():
            mirror.dispose()
        self.notifications.clear()

