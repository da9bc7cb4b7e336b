"""Outer workflow layer: access policy, gateway and bootstrap wiring."""

from pvz_services.access_policy import ALLOWED_ROLES, Operation, ensure_allowed, is_allowed
from pvz_services.bootstrap import KernelServices, build_gateway, build_services
from pvz_services.gateway import WorkflowGateway

__all__ = [
    "ALLOWED_ROLES",
    "KernelServices",
    "Operation",
    "WorkflowGateway",
    "build_gateway",
    "build_services",
    "ensure_allowed",
    "is_allowed",
]
