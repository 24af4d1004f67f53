"""Session context: credential and selected-organization pointer.

Why an explicit object:
- Every component that needs the token or the selected organization gets
  the same `SessionContext` by reference instead of reading ambient global
  storage.
- The last-write-wins behaviour of concurrent writers becomes a visible,
  testable contract of this class.
"""

from __future__ import annotations

from core.domain.errors import Unauthenticated
from core.domain.models import OrganizationRef
from core.interfaces.session_store import SessionStore

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
SELECTED_ORGANIZATION_ID_KEY = "selectedOrganizationId"
SELECTED_ORGANIZATION_NAME_KEY = "selectedOrganizationName"


class SessionContext:
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def access_token(self) -> str | None:
        token = self._store.get(ACCESS_TOKEN_KEY)
        return token or None

    @property
    def refresh_token(self) -> str | None:
        return self._store.get(REFRESH_TOKEN_KEY) or None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def require_access_token(self) -> str:
        token = self.access_token
        if token is None:
            raise Unauthenticated()
        return token

    def sign_in(self, access_token: str, refresh_token: str | None = None) -> None:
        """Store the credential produced by the (external) login exchange."""

        self._store.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token is not None:
            self._store.set(REFRESH_TOKEN_KEY, refresh_token)

    def sign_out(self) -> None:
        self._store.delete(ACCESS_TOKEN_KEY)
        self._store.delete(REFRESH_TOKEN_KEY)

    @property
    def selected_organization(self) -> OrganizationRef | None:
        org_id = self._store.get(SELECTED_ORGANIZATION_ID_KEY)
        if not org_id:
            return None
        name = self._store.get(SELECTED_ORGANIZATION_NAME_KEY) or ""
        return OrganizationRef(id=org_id, name=name)

    def select_organization(self, org_id: str, name: str) -> None:
        self._store.set(SELECTED_ORGANIZATION_ID_KEY, org_id)
        self._store.set(SELECTED_ORGANIZATION_NAME_KEY, name)

    def clear_selected_organization(self) -> None:
        self._store.delete(SELECTED_ORGANIZATION_ID_KEY)
        self._store.delete(SELECTED_ORGANIZATION_NAME_KEY)
