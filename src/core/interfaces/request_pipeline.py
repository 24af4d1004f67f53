"""Contract of the Request Pipeline as seen by the resource mirrors.

Rules:
- Both calls are asynchronous because they perform HTTP I/O.
- Failures are raised as `core.domain.errors.SyncError` subclasses; a
  successful call never returns an error value.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

from core.domain.models import Entity, FileUpload
from core.domain.resources import BodyKind

EntityT = TypeVar("EntityT", bound=Entity)


@runtime_checkable
class RequestPipeline(Protocol):
    async def call(
        self,
        method: str,
        path: str,
        *,
        body: Mapping[str, Any] | None = None,
        body_kind: BodyKind = BodyKind.JSON,
        files: Mapping[str, FileUpload] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one authenticated request and return the parsed JSON payload."""

        ...

    async def get_entities(
        self,
        path: str,
        model: type[EntityT],
        *,
        params: Mapping[str, str] | None = None,
    ) -> Sequence[EntityT]:
        """GET a JSON array and validate every element into `model`."""

        ...
