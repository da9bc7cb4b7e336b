"""ORM models for the pickup-point kernel."""

from pvz_kernel.models.pickup_point import PickupPoint
from pvz_kernel.models.product import Product
from pvz_kernel.models.reception import Reception

__all__ = [
    "PickupPoint",
    "Product",
    "Reception",
]
