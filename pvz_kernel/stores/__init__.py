"""Entity stores: the only code that issues SQL against the models."""

from pvz_kernel.stores.base import BaseStore
from pvz_kernel.stores.product_store import ProductStore
from pvz_kernel.stores.pvz_store import PVZStore
from pvz_kernel.stores.reception_store import ReceptionStore

__all__ = [
    "BaseStore",
    "ProductStore",
    "PVZStore",
    "ReceptionStore",
]
