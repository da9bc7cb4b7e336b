"""
RequestContext -- the business context passed alongside every call.

Responsibility:
    Carries what the kernel needs to know about the request that triggered a
    workflow step: the caller's already-authenticated role, a correlation id
    for logs, and cancellation (explicit ``cancel()`` or a deadline).

Architecture position:
    Kernel > Domain.  Pure; no database access.  Transaction handles are NOT
    stored here -- they are passed explicitly next to the context.

Failure modes:
    - RequestCancelledError from ``raise_if_cancelled()`` once the request
      has been cancelled or its deadline has passed.  Stores call it before
      every storage round-trip and the transaction manager calls it before
      commit, so an in-flight unit of work rolls back.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from uuid import uuid4

from pvz_kernel.domain.values import Role
from pvz_kernel.exceptions import RequestCancelledError


@dataclass
class RequestContext:
    """Per-request context: role, correlation id and cancellation."""

    role: Role | None = None
    request_id: str = field(default_factory=lambda: uuid4().hex)
    deadline: float | None = None  # time.monotonic() value
    _cancelled: threading.Event = field(
        default_factory=threading.Event, repr=False, compare=False
    )

    @classmethod
    def background(cls, role: Role | None = None) -> RequestContext:
        """A context that is never cancelled unless ``cancel()`` is called."""
        return cls(role=role)

    @classmethod
    def with_timeout(cls, seconds: float, role: Role | None = None) -> RequestContext:
        """A context whose deadline is ``seconds`` from now."""
        return cls(role=role, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def is_cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self) -> None:
        """Raise RequestCancelledError if the request may no longer proceed."""
        if self._cancelled.is_set():
            raise RequestCancelledError(self.request_id, "cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise RequestCancelledError(self.request_id, "deadline exceeded")
