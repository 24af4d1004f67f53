"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Server payloads are validated once, at the Request Pipeline boundary, so
  the engine never handles a record without an identifier or display name.
- `extra="allow"` keeps unknown fields, which preserves forward
  compatibility when the server adds columns.

Note:
- These models describe *what* the records are, not *how* they are fetched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


def _coerce_id(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class OrganizationRef(BaseModel):
    """Weak reference to an organization: identifier plus cached name."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(..., min_length=1, description="Organization identifier.")
    name: str = Field(default="", description="Cached display name.")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_id(value)


class Entity(BaseModel):
    """One server-side record of a resource collection.

    Subclasses name their display field through `display_field`; search and
    selection only ever look at that field and at `id`.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    display_field: ClassVar[str] = "name"

    id: str = Field(..., min_length=1, description="Stable unique identifier.")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @property
    def display_name(self) -> str:
        value = getattr(self, self.display_field, None)
        return value if isinstance(value, str) else ""

    def as_reference(self) -> OrganizationRef:
        """Weak `{id, name}` pointer to this record."""

        return OrganizationRef(id=self.id, name=self.display_name)

    def wire_fields(self) -> dict[str, Any]:
        """Fields as the server names them, extras included."""

        return self.model_dump(by_alias=True, mode="python")


class Organization(Entity):
    name: str = Field(..., min_length=1)
    title: str | None = None
    description: str | None = None
    email: str | None = None
    address: str | None = None
    image: str | None = Field(default=None, description="Image URL (or local reference after an upload).")


class OrganizationMembership(Entity):
    """Link between the signed-in user and an organization."""

    organization: OrganizationRef

    @property
    def display_name(self) -> str:
        return self.organization.name

    def as_reference(self) -> OrganizationRef:
        return self.organization


class DeviceStatus(IntEnum):
    ACTIVE = 0
    INACTIVE = 1

    def label(self) -> str:
        return "Active" if self is DeviceStatus.ACTIVE else "Inactive"


class Device(Entity):
    name: str = Field(..., min_length=1)
    organization_id: str | None = Field(default=None, alias="organizationId")
    organization: OrganizationRef | None = None
    status: DeviceStatus = DeviceStatus.ACTIVE
    create_date: datetime | None = Field(default=None, alias="createDate")

    @field_validator("organization_id", mode="before")
    @classmethod
    def coerce_organization_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @property
    def organization_name(self) -> str:
        if self.organization and self.organization.name:
            return self.organization.name
        return "Unknown Organization"


class Customer(Entity):
    name: str = Field(..., min_length=1)
    email: str | None = None
    phone: str | None = None


class Category(Entity):
    name: str = Field(..., min_length=1)
    status: int | None = None


class Product(Entity):
    name: str = Field(..., min_length=1)
    description: str | None = None
    price: float | None = None
    category_id: str | None = Field(default=None, alias="categoryId")
    image: str | None = None
    product_options: list[dict[str, Any]] | None = Field(default=None, alias="productOptions")

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, value: Any) -> Any:
        return _coerce_id(value)


class Invoice(Entity):
    """Payment document; displayed by its invoice number."""

    display_field: ClassVar[str] = "invoice_number"

    invoice_number: str = Field(..., min_length=1, alias="invoiceNumber")
    customer_name: str | None = Field(default=None, alias="customerName")
    total: float | None = None
    status: int | None = None

    @field_validator("invoice_number", mode="before")
    @classmethod
    def coerce_invoice_number(cls, value: Any) -> Any:
        return _coerce_id(value)


class LoadState(str, Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SelectionState(BaseModel):
    """Currently chosen entity of a picker (empty when `id` is blank)."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    display_name: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.id


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class FileUpload:
    """A file chosen on the client, sent as a multipart file part."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def local_reference(self) -> str:
        return f"local://{self.filename}"
