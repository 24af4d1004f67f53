"""Resource catalog of the admin console.

Every data-management screen is one (or two) of these configurations plus
the generic mirror. Paths are relative to `AppSettings.api_base_url`.
"""

from __future__ import annotations

from typing import Any

from core.domain.models import (
    Category,
    Customer,
    Device,
    Invoice,
    Organization,
    OrganizationMembership,
    Product,
)
from core.domain.resources import (
    BodyKind,
    CreateStrategy,
    ParentLink,
    ResourceConfig,
    require_fields,
)

ORGANIZATIONS: ResourceConfig[Organization] = ResourceConfig(
    name="organizations",
    label="organization",
    model=Organization,
    list_path="Organization/GetAll-organizations",
    create_path="Organization/create-organization",
    update_path="Organization/{id}",
    delete_path="Organization/{id}",
    body_kind=BodyKind.MULTIPART,
    file_field="image",
    validators=(require_fields("name", message="Organization name is required."),),
)

USER_ORGANIZATIONS: ResourceConfig[Organization] = ResourceConfig(
    name="user-organizations",
    label="organization",
    model=Organization,
    list_path="Organization/GetOrganizationsByUserId",
)

MEMBERSHIPS: ResourceConfig[OrganizationMembership] = ResourceConfig(
    name="memberships",
    label="organization",
    model=OrganizationMembership,
    list_path="OrganizationUser/get-organization-withits-user",
)

DEVICES: ResourceConfig[Device] = ResourceConfig(
    name="devices",
    label="device",
    model=Device,
    list_path="Device/get-device-with-organizations",
    create_path="Device/create-device",
    update_path="Device/update-with-org/{id}",
    delete_path="Device/{id}",
    validators=(
        require_fields("name", message="Device name is required."),
        require_fields("organizationId", message="Please select an organization"),
    ),
    parent=ParentLink(resource="organizations", id_field="organizationId", ref_field="organization"),
)

CUSTOMERS: ResourceConfig[Customer] = ResourceConfig(
    name="customers",
    label="customer",
    model=Customer,
    list_path="Customer/GetAll-customers-in-organization",
    create_path="Customer/create-customer",
    update_path="Customer/{id}",
    delete_path="Customer/{id}",
    scope_param="OrganizationId",
    scope_field="organizationId",
    validators=(require_fields("name", message="Customer name is required."),),
)

CATEGORIES: ResourceConfig[Category] = ResourceConfig(
    name="categories",
    label="category",
    model=Category,
    list_path="Product/get-category",
    create_path="Product/create-category",
    update_path="Product/update-category",
    delete_path="Product/delete-category?Id={id}",
    create_strategy=CreateStrategy.RELOAD,
    id_body_field="id",
    scope_param="Organization",
    scope_field="organization",
    validators=(require_fields("name", message="Category name is required."),),
)

PRODUCTS: ResourceConfig[Product] = ResourceConfig(
    name="products",
    label="product",
    model=Product,
    list_path="Product/get-productlist",
    create_path="Product/create-product",
    update_path="Product/{id}",
    delete_path="Product/{id}",
    body_kind=BodyKind.MULTIPART,
    update_body_kind=BodyKind.JSON,
    file_field="image",
    id_body_field="id",
    scope_param="Organization",
    scope_field="organizationId",
    filter_params=("CategoryIndex",),
    validators=(
        require_fields("name", message="Product name is required."),
        require_fields("categoryId", message="Please select a category."),
    ),
)

INVOICES: ResourceConfig[Invoice] = ResourceConfig(
    name="invoices",
    label="invoice",
    model=Invoice,
    list_path="Invoice/get-invoice-list",
    create_path="Invoice/create-invoice-new",
    create_strategy=CreateStrategy.RELOAD,
    scope_field="organizationId",
    validators=(require_fields("customerID", message="Please select a customer."),),
)

CATALOG: dict[str, ResourceConfig[Any]] = {
    config.name: config
    for config in (
        ORGANIZATIONS,
        USER_ORGANIZATIONS,
        MEMBERSHIPS,
        DEVICES,
        CUSTOMERS,
        CATEGORIES,
        PRODUCTS,
        INVOICES,
    )
}

# Resources a screen needs alongside the requested one (e.g. the device
# manager also loads organizations to resolve names and drive the picker,
# the product manager loads categories for its category filter).
COMPANIONS: dict[str, tuple[str, ...]] = {
    "devices": ("organizations",),
    "products": ("categories",),
}


def get_resource(name: str) -> ResourceConfig[Any]:
    try:
        return CATALOG[name]
    except KeyError:
        known = ", ".join(sorted(CATALOG))
        raise KeyError(f"unknown resource {name!r} (known: {known})") from None
