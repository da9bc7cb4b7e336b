"""
pvz_services.access_policy -- role gate at the workflow boundary.

Responsibility:
    Decide whether a caller in a given role may perform a workflow
    operation.  A pure lookup: the caller's role has already been
    authenticated by the identity collaborator and is trusted as given.

Architecture position:
    Services layer.  Called by WorkflowGateway before delegating to a
    kernel service.  The kernel itself is role-agnostic.
"""

from __future__ import annotations

from enum import Enum

from pvz_kernel.domain.values import Role, parse_role
from pvz_kernel.exceptions import AccessDeniedError


class Operation(str, Enum):
    CREATE_PVZ = "create_pvz"
    LIST_PVZS = "list_pvzs"
    GET_PVZ = "get_pvz"
    CREATE_RECEPTION = "create_reception"
    CLOSE_RECEPTION = "close_reception"
    GET_RECEPTION = "get_reception"
    ADD_PRODUCT = "add_product"
    DELETE_LAST_PRODUCT = "delete_last_product"
    LIST_PRODUCTS = "list_products"


_BOTH = frozenset({Role.EMPLOYEE, Role.MODERATOR})

ALLOWED_ROLES: dict[Operation, frozenset[Role]] = {
    # Moderators register pickup points
    Operation.CREATE_PVZ: frozenset({Role.MODERATOR}),
    # Employees run the reception workflow
    Operation.CREATE_RECEPTION: frozenset({Role.EMPLOYEE}),
    Operation.CLOSE_RECEPTION: frozenset({Role.EMPLOYEE}),
    Operation.ADD_PRODUCT: frozenset({Role.EMPLOYEE}),
    Operation.DELETE_LAST_PRODUCT: frozenset({Role.EMPLOYEE}),
    # Reads
    Operation.LIST_PVZS: _BOTH,
    Operation.GET_PVZ: _BOTH,
    Operation.GET_RECEPTION: _BOTH,
    Operation.LIST_PRODUCTS: _BOTH,
}


def is_allowed(role: Role, operation: Operation) -> bool:
    """Return True iff ``role`` may perform ``operation``."""
    return role in ALLOWED_ROLES.get(operation, frozenset())


def ensure_allowed(role: "Role | str | None", operation: Operation) -> Role:
    """
    Check the policy and return the parsed role.

    Raises:
        RoleEmptyError: If no role was supplied.
        InvalidRoleError: If the role is not a known role.
        AccessDeniedError: If the role may not perform ``operation``.
    """
    parsed = parse_role(role)
    if not is_allowed(parsed, operation):
        raise AccessDeniedError(parsed.value, operation.value)
    return parsed
