"""
Typed exception hierarchy for the pickup-point kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Transport adapters (REST, RPC) map every failure to a wire-level status. Doing
that by parsing message strings is fragile, so:

  1. Every error has its own exception class (catch by type, not message).
  2. Every exception has a CODE class attribute (machine-readable, API-safe).
  3. Every exception has a KIND class attribute (``ErrorKind``), a closed set
     of categories that adapters can match exhaustively.
  4. Exceptions carry structured data (ids, offending values) as attributes.

Example:
    try:
        gateway.add_product(ctx, pvz_id, "electronics")
    except ReceptionClosedError as e:
        respond(400, code=e.code, reception_id=e.reception_id)
    except PVZKernelError as e:
        respond(500 if e.kind is ErrorKind.INFRASTRUCTURE else 400, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PVZKernelError (base)
    |
    +-- ValidationError                     kind=VALIDATION
    |   +-- CityEmptyError
    |   +-- InvalidCityError
    |   +-- ProductTypeEmptyError
    |   +-- InvalidProductTypeError
    |   +-- RoleEmptyError
    |   +-- InvalidRoleError
    |
    +-- NotFoundError                       kind=NOT_FOUND
    |   +-- PVZNotFoundError
    |   +-- ReceptionNotFoundError
    |   +-- ProductNotFoundError
    |
    +-- ConflictError                       kind=CONFLICT
    |   +-- ActiveReceptionExistsError
    |   +-- ReceptionClosedError
    |       +-- LatestReceptionClosedError  (also a NoActiveReceptionError)
    |
    +-- WorkflowStateError                  kind=STATE
    |   +-- NoActiveReceptionError
    |   +-- NoProductsToDeleteError
    |
    +-- AccessDeniedError                   kind=ACCESS
    |
    +-- RequestCancelledError               kind=CANCELLED
    |
    +-- StorageError                        kind=INFRASTRUCTURE

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | CITY_EMPTY                  | City not supplied
                | INVALID_CITY                | City outside the supported set
                | PRODUCT_TYPE_EMPTY          | Product type not supplied
                | INVALID_PRODUCT_TYPE        | Product type outside the supported set
                | ROLE_EMPTY                  | Caller role not supplied
                | INVALID_ROLE                | Caller role unknown
----------------|-----------------------------|-----------------------------------------
Not found       | PVZ_NOT_FOUND               | Pickup point id doesn't exist
                | RECEPTION_NOT_FOUND         | Reception id doesn't exist
                | PRODUCT_NOT_FOUND           | Product vanished before delete
----------------|-----------------------------|-----------------------------------------
Conflict        | ACTIVE_RECEPTION_EXISTS     | Pickup point already has an open reception
                | RECEPTION_CLOSED            | Reception already closed
----------------|-----------------------------|-----------------------------------------
State           | NO_ACTIVE_RECEPTION         | Pickup point has no open reception
                | NO_PRODUCTS_TO_DELETE       | Open reception has no products
----------------|-----------------------------|-----------------------------------------
Access          | ACCESS_DENIED               | Role may not perform the operation
----------------|-----------------------------|-----------------------------------------
Cancelled       | REQUEST_CANCELLED           | Caller cancelled or deadline passed
----------------|-----------------------------|-----------------------------------------
Infrastructure  | STORAGE_ERROR               | Database failure (wrapped, opaque)

===============================================================================
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of error categories used by adapters for status mapping."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STATE = "state"
    ACCESS = "access"
    CANCELLED = "cancelled"
    INFRASTRUCTURE = "infrastructure"


class PVZKernelError(Exception):
    """
    Base exception for all pickup-point kernel errors.

    All subclasses must have ``code`` and ``kind`` class attributes.
    """

    code: str = "PVZ_KERNEL_ERROR"
    kind: ErrorKind = ErrorKind.INFRASTRUCTURE

    @property
    def is_client_error(self) -> bool:
        """True when the caller, not the system, is at fault."""
        return self.kind not in (ErrorKind.INFRASTRUCTURE, ErrorKind.CANCELLED)


# Validation errors


class ValidationError(PVZKernelError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION


class CityEmptyError(ValidationError):
    """City was not supplied."""

    code: str = "CITY_EMPTY"

    def __init__(self) -> None:
        super().__init__("City must not be empty")


class InvalidCityError(ValidationError):
    """City is not one of the supported cities."""

    code: str = "INVALID_CITY"

    def __init__(self, city: str, allowed: tuple[str, ...] = ()):
        self.city = city
        self.allowed = allowed
        suffix = f" (allowed: {', '.join(allowed)})" if allowed else ""
        super().__init__(f"Unsupported city: {city!r}{suffix}")


class ProductTypeEmptyError(ValidationError):
    """Product type was not supplied."""

    code: str = "PRODUCT_TYPE_EMPTY"

    def __init__(self) -> None:
        super().__init__("Product type must not be empty")


class InvalidProductTypeError(ValidationError):
    """Product type is not one of the supported types."""

    code: str = "INVALID_PRODUCT_TYPE"

    def __init__(self, product_type: str, allowed: tuple[str, ...] = ()):
        self.product_type = product_type
        self.allowed = allowed
        suffix = f" (allowed: {', '.join(allowed)})" if allowed else ""
        super().__init__(f"Unsupported product type: {product_type!r}{suffix}")


class RoleEmptyError(ValidationError):
    """Caller role was not supplied."""

    code: str = "ROLE_EMPTY"

    def __init__(self) -> None:
        super().__init__("Role must not be empty")


class InvalidRoleError(ValidationError):
    """Caller role is not a known role."""

    code: str = "INVALID_ROLE"

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"Unknown role: {role!r}")


# Not-found errors


class NotFoundError(PVZKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND


class PVZNotFoundError(NotFoundError):
    """Pickup point with given ID was not found."""

    code: str = "PVZ_NOT_FOUND"

    def __init__(self, pvz_id: str):
        self.pvz_id = str(pvz_id)
        super().__init__(f"Pickup point not found: {pvz_id}")


class ReceptionNotFoundError(NotFoundError):
    """Reception with given ID was not found."""

    code: str = "RECEPTION_NOT_FOUND"

    def __init__(self, reception_id: str):
        self.reception_id = str(reception_id)
        super().__init__(f"Reception not found: {reception_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = str(product_id)
        super().__init__(f"Product not found: {product_id}")


# Conflict errors


class ConflictError(PVZKernelError):
    """Base exception for operations that clash with current state."""

    code: str = "CONFLICT"
    kind: ErrorKind = ErrorKind.CONFLICT


class ActiveReceptionExistsError(ConflictError):
    """
    Pickup point already has an in-progress reception.

    Raised both by the in-transaction re-check and when the storage-level
    partial unique index rejects a second active reception.
    """

    code: str = "ACTIVE_RECEPTION_EXISTS"

    def __init__(self, pvz_id: str, reception_id: str | None = None):
        self.pvz_id = str(pvz_id)
        self.reception_id = str(reception_id) if reception_id is not None else None
        super().__init__(
            f"Pickup point {pvz_id} already has an active reception"
            + (f" ({reception_id})" if reception_id is not None else "")
        )


class ReceptionClosedError(ConflictError):
    """Reception is closed and can no longer change."""

    code: str = "RECEPTION_CLOSED"

    def __init__(self, reception_id: str):
        self.reception_id = str(reception_id)
        super().__init__(f"Reception {reception_id} is already closed")


# Workflow state errors


class WorkflowStateError(PVZKernelError):
    """Base exception for operations that need a state that isn't there."""

    code: str = "WORKFLOW_STATE_ERROR"
    kind: ErrorKind = ErrorKind.STATE


class NoActiveReceptionError(WorkflowStateError):
    """Pickup point has no in-progress reception."""

    code: str = "NO_ACTIVE_RECEPTION"

    def __init__(self, pvz_id: str):
        self.pvz_id = str(pvz_id)
        super().__init__(f"Pickup point {pvz_id} has no active reception")


class LatestReceptionClosedError(NoActiveReceptionError, ReceptionClosedError):
    """
    Nothing is in progress at the pickup point and its latest reception is
    closed.

    Catchable as either NoActiveReceptionError or ReceptionClosedError.
    """

    code: str = "RECEPTION_CLOSED"
    kind: ErrorKind = ErrorKind.CONFLICT

    def __init__(self, pvz_id: str, reception_id: str):
        self.pvz_id = str(pvz_id)
        self.reception_id = str(reception_id)
        PVZKernelError.__init__(
            self,
            f"Pickup point {pvz_id} has no active reception; "
            f"reception {reception_id} is already closed",
        )


class NoProductsToDeleteError(WorkflowStateError):
    """Active reception has no products left to remove."""

    code: str = "NO_PRODUCTS_TO_DELETE"

    def __init__(self, reception_id: str):
        self.reception_id = str(reception_id)
        super().__init__(f"Reception {reception_id} has no products to delete")


# Access, cancellation and infrastructure


class AccessDeniedError(PVZKernelError):
    """Caller's role may not perform the requested operation."""

    code: str = "ACCESS_DENIED"
    kind: ErrorKind = ErrorKind.ACCESS

    def __init__(self, role: str, operation: str):
        self.role = role
        self.operation = operation
        super().__init__(f"Role {role!r} may not perform {operation!r}")


class RequestCancelledError(PVZKernelError):
    """The request was cancelled or ran past its deadline."""

    code: str = "REQUEST_CANCELLED"
    kind: ErrorKind = ErrorKind.CANCELLED

    def __init__(self, request_id: str, reason: str = "cancelled"):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Request {request_id} {reason}")


class StorageError(PVZKernelError):
    """
    Database failure that has no domain meaning.

    The original SQLAlchemy exception is chained as ``__cause__``.
    """

    code: str = "STORAGE_ERROR"
    kind: ErrorKind = ErrorKind.INFRASTRUCTURE

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")
