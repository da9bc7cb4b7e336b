"""
PVZ Kernel - pickup-point reception workflow

A transactional workflow core for a pickup-point network:
- One reception in progress per pickup point, enforced under concurrency
- Append/pop-last product log with never-reused sequence numbers
- Nested units of work joined into a single transaction
- Typed error hierarchy and structured logging
"""

__version__ = "0.1.0"
