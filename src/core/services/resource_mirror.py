"""Resource Mirror: in-memory copy of one server-side collection.

The mirror only changes after the server confirmed an operation:
- load     -> replaces the whole sequence (the latest issued load wins;
              responses of superseded loads are discarded),
- create   -> appends the echoed entity, or reloads,
- update   -> merges the patch into the local entity (no full reload),
- delete   -> removes the entity.

A failed call leaves the sequence exactly as it was. Local preconditions
(credential, loading state, required fields) are checked before any I/O.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterator, Mapping, Sequence, TypeVar

from pydantic import ValidationError

from core.domain.errors import MirrorNotReady, SyncError, ValidationUnmet
from core.domain.models import Entity, FileUpload, LoadState
from core.domain.resources import BodyKind, CreateStrategy, ResourceConfig
from core.interfaces.request_pipeline import RequestPipeline
from core.session import SessionContext

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)

MirrorListener = Callable[["ResourceMirror[Any]"], None]


class ResourceMirror(Generic[EntityT]):
    def __init__(
        self,
        config: ResourceConfig[EntityT],
        *,
        pipeline: RequestPipeline,
        session: SessionContext,
        key: Callable[[EntityT], str] | None = None,
    ) -> None:
        self._config = config
        self._pipeline = pipeline
        self._session = session
        self._key: Callable[[EntityT], str] = key or (lambda entity: entity.id)

        self._entities: list[EntityT] = []
        self._state = LoadState.NOT_STARTED
        self._failure_reason: str | None = None
        self._load_ticket = 0
        self._disposed = False
        self._listeners: list[MirrorListener] = []
        self._parent: ResourceMirror[Any] | None = None
        self._filters: dict[str, str] = {}

    # -- read side -----------------------------------------------------

    @property
    def config(self) -> ResourceConfig[EntityT]:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def failure_reason(self) -> str | None:
        return self._failure_reason

    @property
    def loading(self) -> bool:
        return self._state is LoadState.LOADING

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def entities(self) -> tuple[EntityT, ...]:
        return tuple(self._entities)

    def ids(self) -> list[str]:
        return [self._key(entity) for entity in self._entities]

    def get(self, entity_id: str) -> EntityT | None:
        for entity in self._entities:
            if self._key(entity) == entity_id:
                return entity
        return None

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self.get(entity_id) is not None

    def __iter__(self) -> Iterator[EntityT]:
        return iter(tuple(self._entities))

    def __len__(self) -> int:
        return len(self._entities)

    # -- wiring ----------------------------------------------------------

    def subscribe(self, listener: MirrorListener) -> None:
        self._listeners.append(listener)

    @property
    def filters(self) -> dict[str, str]:
        return dict(self._filters)

    def set_filter(self, name: str, value: str | None) -> None:
        """Extra list query parameter; a blank value removes it. Applies from the next load."""

        if name not in self._config.filter_params:
            allowed = ", ".join(self._config.filter_params) or "none"
            raise ValueError(f"{self.name} has no list filter {name!r} (allowed: {allowed})")
        if value is None or not str(value).strip():
            self._filters.pop(name, None)
        else:
            self._filters[name] = str(value)

    def link_parent(self, parent: ResourceMirror[Any]) -> None:
        """Use `parent` to refresh the nested reference after an update."""

        self._parent = parent

    def dispose(self) -> None:
        """Tear down: later responses are dropped instead of applied."""

        self._disposed = True
        self._listeners.clear()
        self._parent = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- preconditions ---------------------------------------------------

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise MirrorNotReady(f"The {self.name} view was closed.")

    def _ensure_mutable(self) -> None:
        self._ensure_alive()
        self._session.require_access_token()
        if self.loading:
            raise MirrorNotReady(f"{self.name.capitalize()} are still loading. Try again in a moment.")

    def _organization_id(self) -> str:
        selected = self._session.selected_organization
        if selected is None:
            raise ValidationUnmet("Please select an organization first.")
        return selected.id

    def _list_params(self) -> dict[str, str] | None:
        params = dict(self._filters)
        if self._config.scope_param:
            params[self._config.scope_param] = self._organization_id()
        return params or None

    def _scoped_body(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        body = dict(fields)
        scope_field = self._config.scope_field
        if scope_field and not body.get(scope_field):
            body[scope_field] = self._organization_id()
        return body

    def _files(self, upload: FileUpload | None, kind: BodyKind) -> dict[str, FileUpload] | None:
        if upload is None:
            return None
        if not self._config.file_field or kind is not BodyKind.MULTIPART:
            raise ValidationUnmet(f"{self.name.capitalize()} do not accept file uploads.")
        return {self._config.file_field: upload}

    def _validate(self, fields: Mapping[str, Any]) -> None:
        problem = self._config.validate(fields)
        if problem:
            raise ValidationUnmet(problem)

    # -- local mutations -------------------------------------------------

    def _replace_all(self, entities: Sequence[EntityT]) -> None:
        seen: set[str] = set()
        unique: list[EntityT] = []
        for entity in entities:
            entity_id = self._key(entity)
            if entity_id in seen:
                logger.debug("Dropping duplicate %s id %s from list payload", self.name, entity_id)
                continue
            seen.add(entity_id)
            unique.append(entity)
        self._entities = unique

    def _upsert(self, entity: EntityT) -> None:
        entity_id = self._key(entity)
        replaced = [entity if self._key(e) == entity_id else e for e in self._entities]
        if entity_id not in self.ids():
            replaced.append(entity)
        self._entities = replaced

    def _index_of(self, entity_id: str) -> int | None:
        for index, entity in enumerate(self._entities):
            if self._key(entity) == entity_id:
                return index
        return None

    def _parent_ref(self, parent_id: Any) -> dict[str, str] | None:
        if self._parent is None or not parent_id:
            return None
        parent = self._parent.get(str(parent_id))
        if parent is None:
            return None
        return {"id": parent.id, "name": parent.display_name}

    # -- operations ------------------------------------------------------

    async def load(self) -> tuple[EntityT, ...]:
        self._ensure_alive()
        self._session.require_access_token()
        params = self._list_params()

        self._load_ticket += 1
        ticket = self._load_ticket
        self._state = LoadState.LOADING
        self._failure_reason = None

        try:
            entities = await self._pipeline.get_entities(
                self._config.list_path, self._config.model, params=params
            )
        except SyncError as exc:
            if self._disposed or ticket != self._load_ticket:
                logger.debug("Ignoring failure of superseded %s load: %s", self.name, exc)
                return self.entities
            self._state = LoadState.FAILED
            self._failure_reason = str(exc)
            self._notify()
            raise

        if self._disposed:
            logger.debug("Discarding %s load response after teardown", self.name)
            return self.entities
        if ticket != self._load_ticket:
            logger.debug("Discarding superseded %s load (ticket %s < %s)", self.name, ticket, self._load_ticket)
            return self.entities

        self._replace_all(entities)
        self._state = LoadState.READY
        self._notify()
        return self.entities

    async def create(
        self,
        draft: Mapping[str, Any],
        *,
        image: FileUpload | None = None,
    ) -> EntityT | None:
        """POST a new record; returns the merged entity when the server echoed one."""

        self._ensure_mutable()
        path = self._config.require_path(self._config.create_path, "create")
        body = self._scoped_body(draft)
        self._validate(body)
        files = self._files(image, self._config.body_kind)

        payload = await self._pipeline.call(
            "POST", path, body=body, body_kind=self._config.body_kind, files=files
        )
        if self._disposed:
            logger.debug("Discarding %s create response after teardown", self.name)
            return None

        if self._config.create_strategy is CreateStrategy.RELOAD:
            await self._refresh_after("create")
            return None

        try:
            created = self._config.model.model_validate(payload)
        except ValidationError:
            logger.debug("%s create echo is not an entity; reloading", self.name)
            await self._refresh_after("create")
            return None

        self._upsert(created)
        self._notify()
        return created

    async def _refresh_after(self, op: str) -> None:
        # The server already applied `op`; a failed refresh leaves the mirror FAILED.
        try:
            await self.load()
        except SyncError as exc:
            logger.warning("%s %s succeeded but reloading the list failed: %s", self.name, op, exc)

    async def update(
        self,
        entity_id: str,
        patch: Mapping[str, Any],
        *,
        new_image: FileUpload | None = None,
    ) -> EntityT | None:
        """PUT a patch; the local entity is merged only after a 2xx."""

        self._ensure_mutable()
        path = self._config.item_path(self._config.update_path, entity_id, "update")
        body = dict(patch)
        if self._config.id_body_field:
            body[self._config.id_body_field] = entity_id
        body = self._scoped_body(body)

        current = self.get(entity_id)
        merged_view = {**(current.wire_fields() if current else {}), **body}
        self._validate(merged_view)
        files = self._files(new_image, self._config.update_kind)

        await self._pipeline.call(
            "PUT", path, body=body, body_kind=self._config.update_kind, files=files
        )
        if self._disposed:
            logger.debug("Discarding %s update response after teardown", self.name)
            return None
        return await self._apply_patch(entity_id, patch, new_image)

    async def _apply_patch(
        self,
        entity_id: str,
        patch: Mapping[str, Any],
        new_image: FileUpload | None,
    ) -> EntityT | None:
        index = self._index_of(entity_id)
        if index is None:
            logger.debug("Updated %s %s is not mirrored locally", self.name, entity_id)
            return None

        local = {**self._entities[index].wire_fields(), **patch}
        if new_image is not None and self._config.file_field:
            # Shown until the next load brings the server URL.
            local[self._config.file_field] = new_image.local_reference
        link = self._config.parent
        if link is not None and link.id_field in patch:
            local[link.ref_field] = self._parent_ref(patch[link.id_field])

        try:
            updated = self._config.model.model_validate(local)
        except ValidationError:
            logger.warning("Patched %s %s no longer validates; reloading", self.name, entity_id)
            await self._refresh_after("update")
            return self.get(entity_id)

        entities = list(self._entities)
        entities[index] = updated
        self._entities = entities
        self._notify()
        return updated

    async def delete(self, entity_id: str) -> None:
        """DELETE a record. Callers must have asked the user for confirmation."""

        self._ensure_mutable()
        path = self._config.item_path(self._config.delete_path, entity_id, "delete")

        await self._pipeline.call("DELETE", path)
        if self._disposed:
            logger.debug("Discarding %s delete response after teardown", self.name)
            return

        self._entities = [e for e in self._entities if self._key(e) != entity_id]
        self._notify()
