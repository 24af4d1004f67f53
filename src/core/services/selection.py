"""Selection/Search Index over a loaded mirror.

Two independent behaviours:
- list filter: case-insensitive substring match on the display field,
  keeping mirror order;
- selection by typing: an exact (case-insensitive) display-name match
  selects the entity; anything else clears the selection and offers the
  substring matches as dropdown candidates.

The selection always points at an entity present in the mirror. The index
subscribes to the mirror and drops the selection when its entity vanishes.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Generic, Iterable, TypeVar

from core.domain.errors import ValidationUnmet
from core.domain.models import Entity, LoadState, SelectionState
from core.services.resource_mirror import ResourceMirror
from core.session import SessionContext

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)


class SubmitOutcome(str, Enum):
    SELECTED = "selected"
    CREATE_PARENT_FIRST = "create_parent_first"


def filter_entities(entities: Iterable[EntityT], query: str) -> list[EntityT]:
    """Entities whose display name contains `query`, case-insensitively."""

    needle = query.casefold()
    if not needle:
        return list(entities)
    return [entity for entity in entities if needle in entity.display_name.casefold()]


def find_exact(entities: Iterable[EntityT], text: str) -> EntityT | None:
    needle = text.casefold()
    if not needle:
        return None
    for entity in entities:
        if entity.display_name.casefold() == needle:
            return entity
    return None


class SelectionIndex(Generic[EntityT]):
    """Single-selection picker bound to one mirror.

    With `remember=True` every selection change is written to the session's
    selected-organization pointer (id + cached name only).
    """

    def __init__(
        self,
        mirror: ResourceMirror[EntityT],
        *,
        session: SessionContext | None = None,
        remember: bool = False,
    ) -> None:
        if remember and session is None:
            raise ValueError("remember=True needs a session to write to")
        self._mirror = mirror
        self._session = session
        self._remember = remember
        self._selection = SelectionState()
        self._query = ""
        self._remembered_id: str | None = None
        mirror.subscribe(self._on_mirror_changed)

    @property
    def mirror(self) -> ResourceMirror[EntityT]:
        return self._mirror

    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def selected(self) -> EntityT | None:
        if self._selection.is_empty:
            return None
        return self._mirror.get(self._selection.id)

    @property
    def query(self) -> str:
        return self._query

    @property
    def input_text(self) -> str:
        """What the text field shows: the chosen name, else the typed text."""

        return self._selection.display_name or self._query

    @property
    def dropdown_visible(self) -> bool:
        return bool(self._query) and self._selection.is_empty

    @property
    def candidates(self) -> list[EntityT]:
        if not self.dropdown_visible:
            return []
        return filter_entities(self._mirror, self._query)

    def filter(self, query: str) -> list[EntityT]:
        return filter_entities(self._mirror, query)

    def type_text(self, text: str) -> SelectionState:
        self._query = text
        match = find_exact(self._mirror, text)
        if match is not None:
            self._set(match)
        else:
            self._set_empty()
        return self._selection

    def pick(self, entity: EntityT | str) -> SelectionState:
        entity_id = entity if isinstance(entity, str) else entity.id
        target = self._mirror.get(entity_id)
        if target is None:
            raise ValidationUnmet(f"Unknown {self._mirror.config.singular}: {entity_id}")
        self._set(target)
        self._query = ""
        return self._selection

    def clear(self) -> None:
        self._query = ""
        self._set_empty()

    def require_selection(self) -> SubmitOutcome:
        """Submission gate of the picker form."""

        if len(self._mirror) == 0:
            return SubmitOutcome.CREATE_PARENT_FIRST
        if self._selection.is_empty:
            raise ValidationUnmet(f"Please select an {self._mirror.config.singular}")
        return SubmitOutcome.SELECTED

    def adopt_session_selection(self) -> SelectionState:
        """Select the persisted entity if still present, else the first one."""

        pointer = self._session.selected_organization if self._session else None
        match = None
        if pointer is not None:
            match = next((e for e in self._mirror if e.as_reference().id == pointer.id), None)
        if match is not None:
            self._set(match)
        elif len(self._mirror):
            self._set(self._mirror.entities[0])
        return self._selection

    def _set(self, entity: EntityT) -> None:
        self._selection = SelectionState(id=entity.id, display_name=entity.display_name)
        if self._remember and self._session is not None:
            ref = entity.as_reference()
            self._session.select_organization(ref.id, ref.name)
            self._remembered_id = ref.id

    def _set_empty(self) -> None:
        previous = self._selection
        self._selection = SelectionState()
        if self._remember and self._session is not None and not previous.is_empty:
            pointer = self._session.selected_organization
            if pointer is not None and pointer.id == self._remembered_id:
                self._session.clear_selected_organization()
            self._remembered_id = None

    def _on_mirror_changed(self, mirror: ResourceMirror[EntityT]) -> None:
        if self._selection.is_empty or mirror.state is LoadState.FAILED:
            return
        current = mirror.get(self._selection.id)
        if current is None:
            logger.debug("Selected %s %s left the mirror; clearing", mirror.name, self._selection.id)
            self._set_empty()
        elif current.display_name != self._selection.display_name:
            self._set(current)
