"""
pvz_services.bootstrap -- wire the kernel from settings.

``build_gateway`` is what a process entry point calls once at start-up:
it configures logging, initializes the module-level engine, creates the
tables if they are missing, and assembles stores, services and the
gateway around one TransactionManager.
"""

from __future__ import annotations

from dataclasses import dataclass

from pvz_config.settings import AppSettings
from pvz_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from pvz_kernel.db.transaction import TransactionManager
from pvz_kernel.domain.clock import Clock, SystemClock
from pvz_kernel.events import DomainEventSink, LoggingEventSink
from pvz_kernel.logging_config import configure_logging, get_logger
from pvz_kernel.services.product_service import ProductService
from pvz_kernel.services.pvz_service import PVZService
from pvz_kernel.services.reception_service import ReceptionService
from pvz_kernel.stores.product_store import ProductStore
from pvz_kernel.stores.pvz_store import PVZStore
from pvz_kernel.stores.reception_store import ReceptionStore
from pvz_services.gateway import WorkflowGateway

logger = get_logger("services.bootstrap")


@dataclass(frozen=True)
class KernelServices:
    transactions: TransactionManager
    pvz: PVZService
    receptions: ReceptionService
    products: ProductService


def build_services(
    transactions: TransactionManager,
    clock: Clock | None = None,
    events: DomainEventSink | None = None,
) -> KernelServices:
    """Assemble stores and services around ``transactions``."""
    clock = clock or SystemClock()
    events = events or LoggingEventSink()

    pvz_store = PVZStore(transactions, clock)
    reception_store = ReceptionStore(transactions, clock)
    product_store = ProductStore(transactions, clock)

    return KernelServices(
        transactions=transactions,
        pvz=PVZService(
            transactions, pvz_store, reception_store, product_store, events, clock
        ),
        receptions=ReceptionService(
            transactions, pvz_store, reception_store, events, clock
        ),
        products=ProductService(
            transactions, pvz_store, reception_store, product_store, events, clock
        ),
    )


def build_gateway(
    settings: AppSettings,
    clock: Clock | None = None,
    events: DomainEventSink | None = None,
    create_schema: bool = True,
) -> WorkflowGateway:
    """
    Build a ready-to-use WorkflowGateway from ``settings``.

    Args:
        settings: Loaded application settings.
        clock: Clock for timestamps (system clock by default).
        events: Domain event sink (logging sink by default).
        create_schema: Create missing tables on start-up.
    """
    configure_logging(level=settings.logging.level)

    db = settings.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    if create_schema:
        create_tables()

    services = build_services(TransactionManager(get_session_factory()), clock, events)

    logger.info("gateway_ready")
    return WorkflowGateway(services.pvz, services.receptions, services.products)
