"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization; columns store the `.value`.
"""

from __future__ import annotations

from enum import Enum


class QuoteStatus(str, Enum):
    """Approval lifecycle of a quote."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class QuotePaymentStatus(str, Enum):
    """Payment state recorded directly on the quote row (may lag child payments)."""

    PENDING = "pending"
    PAID = "paid"


class ReservationStatus(str, Enum):
    """Reservation lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Status of a single payment attempt against a reservation."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class UserRole(str, Enum):
    """Roles supplied by the identity collaborator; the engine never checks them."""

    GUEST = "guest"
    MEMBER = "member"
    MANAGER = "manager"
    ADMIN = "admin"


class ReconcileFilter(str, Enum):
    """Which derived payment bucket the reconciliation view returns."""

    PAID = "paid"
    PENDING = "pending"
    ALL = "all"
