"""
Value enumerations for the pickup-point domain.

Cities, product types, reception statuses and caller roles are closed sets.
The ``parse_*`` helpers are the only place raw strings become enum members;
they raise the typed validation errors the services propagate.

The original deployment used Russian names for cities and product types, so
those are accepted as input aliases and normalised to the canonical value.
"""

from enum import Enum

from pvz_kernel.exceptions import (
    CityEmptyError,
    InvalidCityError,
    InvalidProductTypeError,
    InvalidRoleError,
    ProductTypeEmptyError,
    RoleEmptyError,
)


class City(str, Enum):
    """Cities where pickup points may be registered."""

    MOSCOW = "Moscow"
    SAINT_PETERSBURG = "Saint Petersburg"
    KAZAN = "Kazan"


class ProductType(str, Enum):
    """Kinds of goods a reception accepts."""

    ELECTRONICS = "electronics"
    CLOTHES = "clothes"
    SHOES = "shoes"


class ReceptionStatus(str, Enum):
    """Lifecycle status of a reception.

    Contract: IN_PROGRESS -> CLOSED, exactly once.  Never reopened.
    """

    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class Role(str, Enum):
    """Operational roles supplied by the identity collaborator."""

    EMPLOYEE = "employee"
    MODERATOR = "moderator"


_CITY_ALIASES: dict[str, City] = {
    "Москва": City.MOSCOW,
    "Санкт-Петербург": City.SAINT_PETERSBURG,
    "Казань": City.KAZAN,
}

_PRODUCT_TYPE_ALIASES: dict[str, ProductType] = {
    "электроника": ProductType.ELECTRONICS,
    "одежда": ProductType.CLOTHES,
    "обувь": ProductType.SHOES,
}


def parse_city(value: "str | City | None") -> City:
    """Normalise ``value`` to a City, raising CityEmptyError / InvalidCityError."""
    if isinstance(value, City):
        return value
    if value is None or not value.strip():
        raise CityEmptyError()
    raw = value.strip()
    if raw in _CITY_ALIASES:
        return _CITY_ALIASES[raw]
    try:
        return City(raw)
    except ValueError:
        raise InvalidCityError(raw, tuple(c.value for c in City)) from None


def parse_product_type(value: "str | ProductType | None") -> ProductType:
    """Normalise ``value`` to a ProductType."""
    if isinstance(value, ProductType):
        return value
    if value is None or not value.strip():
        raise ProductTypeEmptyError()
    raw = value.strip()
    if raw in _PRODUCT_TYPE_ALIASES:
        return _PRODUCT_TYPE_ALIASES[raw]
    try:
        return ProductType(raw)
    except ValueError:
        raise InvalidProductTypeError(raw, tuple(t.value for t in ProductType)) from None


def parse_role(value: "str | Role | None") -> Role:
    if isinstance(value, Role):
        return value
    if value is None or not value.strip():
        raise RoleEmptyError()
    try:
        return Role(value.strip())
    except ValueError:
        raise InvalidRoleError(value) from None
