"""Quote and QuoteItem models: a customer's multi-service order and its priced lines.

`Quote.total_price` is a cache of the sum of its items' `total_price`; only the
line-item synchronizer writes it. Approval fields keep the most recent approval
event and survive a cancelled approval.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import QuotePaymentStatus, QuoteStatus

if TYPE_CHECKING:
    from src.models.user import User


class Quote(TimestampMixin, Base):
    """A customer's in-progress or finalized multi-service order."""

    __tablename__ = "quotes"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str | None] = mapped_column(String(255))

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), default=QuoteStatus.DRAFT.value, nullable=False, index=True
    )
    payment_status: Mapped[str | None] = mapped_column(
        String(20), default=QuotePaymentStatus.PENDING.value, index=True
    )

    # Derived, rewritten on every synchronization
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Most recent approval event (not cleared on cancellation)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(String(100), comment="Approver id from the identity provider")
    # Set only when an approval is reversed
    cancellation_reason: Mapped[str | None] = mapped_column(String(1000))

    # Rejection note
    manager_note: Mapped[str | None] = mapped_column(String(1000))

    # Relationships
    owner: Mapped[User] = relationship("User")
    items: Mapped[list[QuoteItem]] = relationship("QuoteItem", back_populates="quote")

    def __repr__(self) -> str:
        return f"<Quote id={self.id} status={self.status} total={self.total_price}>"


class QuoteItem(TimestampMixin, Base):
    """One priced, quantified service attached to a quote."""

    __tablename__ = "quote_items"
    __table_args__ = (
        UniqueConstraint("quote_id", "service_kind", "service_id", name="uq_quote_items_service"),
    )

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("quotes.id"), nullable=False, index=True
    )
    service_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    quote: Mapped[Quote] = relationship("Quote", back_populates="items")

    def __repr__(self) -> str:
        return (
            f"<QuoteItem quote={self.quote_id} {self.service_kind}:{self.service_id} "
            f"qty={self.quantity} total={self.total_price}>"
        )
