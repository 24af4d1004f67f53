"""httpx wrapper: the Request Pipeline.

Why a wrapper:
- Standardizes timeouts, headers, authentication and error classification
  so every resource behaves the same way.
- Easy to test: the `httpx.AsyncClient` can be built over an
  `httpx.MockTransport`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence, TypeVar

import httpx
from pydantic import ValidationError

from core.config import AppSettings
from core.domain.errors import RequestError
from core.domain.models import Entity, FileUpload
from core.domain.resources import BodyKind
from core.session import SessionContext

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)


def build_async_client(
    settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` bound to the API base URL.

    No Content-Type default is set: JSON bodies get it from httpx, and
    multipart bodies need httpx to write the boundary itself.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        verify=settings.verify_tls,
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _form_value(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False).encode("utf-8")
    return str(value).encode("utf-8")


def encode_multipart(
    body: Mapping[str, Any] | None,
    files: Mapping[str, FileUpload] | None,
) -> list[tuple[str, tuple[str | None, bytes] | tuple[str | None, bytes, str | None]]]:
    """Build httpx `files=` parts: plain fields carry no filename.

    Passing everything through `files=` forces multipart/form-data even when
    no file was chosen (httpx would otherwise urlencode `data=`).
    """

    parts: list[tuple[str, Any]] = []
    for key, value in (body or {}).items():
        if value is None:
            continue
        parts.append((key, (None, _form_value(value))))
    for key, upload in (files or {}).items():
        parts.append((key, (upload.filename, upload.content, upload.content_type)))
    return parts


def _parse_payload(response: httpx.Response) -> Any:
    if not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError:
        # Some endpoints answer a 2xx with a plain-text confirmation.
        return response.text


def error_message(response: httpx.Response) -> str:
    text = response.text
    if text:
        return text
    return f"HTTP status {response.status_code}"


class HttpRequestPipeline:
    """Authenticated single-attempt calls against the admin REST service.

    Contract:
    - No credential -> `Unauthenticated`, and the transport is never touched.
    - 2xx -> parsed JSON (`None` for an empty body).
    - non-2xx -> `RequestError(status, body text or "HTTP status <code>")`.
    - no response -> `RequestError(None, transport reason)`.
    """

    def __init__(self, *, session: SessionContext, client: httpx.AsyncClient) -> None:
        self._session = session
        self._client = client

    @property
    def session(self) -> SessionContext:
        return self._session

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
        response = await self._send(
            method, path, body=body, body_kind=body_kind, files=files, params=params
        )
        return _parse_payload(response)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        body: Mapping[str, Any] | None = None,
        body_kind: BodyKind = BodyKind.JSON,
        files: Mapping[str, FileUpload] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        token = self._session.require_access_token()
        headers = {"Authorization": f"Bearer {token}"}

        request_kwargs: dict[str, Any] = {}
        if body_kind is BodyKind.MULTIPART:
            request_kwargs["files"] = encode_multipart(body, files)
        elif body is not None:
            request_kwargs["json"] = dict(body)

        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(
                method,
                path,
                headers=headers,
                params=dict(params) if params else None,
                **request_kwargs,
            )
        except httpx.HTTPError as exc:
            reason = str(exc) or exc.__class__.__name__
            logger.warning("%s %s failed without a response: %s", method, path, reason)
            raise RequestError(None, reason) from exc

        if not response.is_success:
            logger.warning("%s %s -> HTTP %s", method, path, response.status_code)
            raise RequestError(response.status_code, error_message(response))
        return response

    async def get_entities(
        self,
        path: str,
        model: type[EntityT],
        *,
        params: Mapping[str, str] | None = None,
    ) -> Sequence[EntityT]:
        response = await self._send("GET", path, params=params)
        payload = _parse_payload(response)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RequestError(
                response.status_code,
                f"Expected a JSON array from {path}, got {type(payload).__name__}",
            )
        try:
            return [model.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise RequestError(
                response.status_code,
                f"Invalid {model.__name__} payload from {path}: {exc}",
            ) from exc
