"""Workflow services for the pickup-point kernel."""

from pvz_kernel.services.base import BaseService
from pvz_kernel.services.product_service import ProductService
from pvz_kernel.services.pvz_service import PVZService
from pvz_kernel.services.reception_service import ReceptionService

__all__ = [
    "BaseService",
    "ProductService",
    "PVZService",
    "ReceptionService",
]
