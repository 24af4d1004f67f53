"""Resource configuration: how one collection maps onto the REST service.

A `ResourceConfig` is pure data. The mirror reads endpoints, body encoding
and local validation rules from it, so adding a new screen's collection is a
matter of declaring a config, not writing a new synchronization path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Mapping, TypeVar
from urllib.parse import quote

from core.domain.errors import UnsupportedOperation
from core.domain.models import Entity

EntityT = TypeVar("EntityT", bound=Entity)

FieldValidator = Callable[[Mapping[str, Any]], "str | None"]


class BodyKind(str, Enum):
    JSON = "json"
    MULTIPART = "multipart"


class CreateStrategy(str, Enum):
    """How a confirmed create is merged into the mirror."""

    APPEND = "append"
    RELOAD = "reload"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def require_fields(*names: str, message: str | None = None) -> FieldValidator:
    """Validator that fails when any of `names` is missing or blank."""

    def check(fields: Mapping[str, Any]) -> str | None:
        missing = [name for name in names if _is_blank(fields.get(name))]
        if not missing:
            return None
        return message or f"Required field(s) missing: {', '.join(missing)}"

    return check


@dataclass(frozen=True)
class ParentLink:
    """A child record pointing at an entity of another resource.

    `id_field` holds the parent id on the wire; `ref_field` holds the nested
    `{id, name}` copy the list endpoint embeds.
    """

    resource: str
    id_field: str
    ref_field: str


@dataclass(frozen=True)
class ResourceConfig(Generic[EntityT]):
    """Endpoints and local rules of one resource collection.

    Path templates use an `{id}` placeholder. `scope_param` / `scope_field`
    tie the collection to the session's selected organization: the list call
    sends it as a query parameter, create/update bodies carry it as a field.
    `filter_params` names the optional extra list query parameters.
    """

    name: str
    model: type[EntityT]
    list_path: str
    create_path: str | None = None
    update_path: str | None = None
    delete_path: str | None = None
    body_kind: BodyKind = BodyKind.JSON
    update_body_kind: BodyKind | None = None
    create_strategy: CreateStrategy = CreateStrategy.APPEND
    file_field: str | None = None
    id_body_field: str | None = None
    scope_param: str | None = None
    scope_field: str | None = None
    filter_params: tuple[str, ...] = ()
    validators: tuple[FieldValidator, ...] = field(default_factory=tuple)
    parent: ParentLink | None = None
    label: str | None = None

    @property
    def update_kind(self) -> BodyKind:
        return self.update_body_kind or self.body_kind

    @property
    def singular(self) -> str:
        return self.label or self.name.rstrip("s")

    def item_path(self, template: str | None, entity_id: str, operation: str) -> str:
        if template is None:
            raise UnsupportedOperation(f"{self.name} does not support {operation}")
        return template.format(id=quote(str(entity_id), safe=""))

    def require_path(self, template: str | None, operation: str) -> str:
        if template is None:
            raise UnsupportedOperation(f"{self.name} does not support {operation}")
        return template

    def validate(self, fields: Mapping[str, Any]) -> str | None:
        for validator in self.validators:
            problem = validator(fields)
            if problem:
                return problem
        return None
