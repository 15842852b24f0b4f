"""Reservation and ReservationPayment models.

A reservation is created when an approved quote is converted into a bookable
commitment. Payments are attempts against a single reservation; whether a
quote is "paid" is derived from them at read time and never stored here.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import PaymentStatus, ReservationStatus

if TYPE_CHECKING:
    from src.models.quote import Quote


class Reservation(TimestampMixin, Base):
    """A booking created from an approved quote."""

    __tablename__ = "reservations"

    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("quotes.id"), index=True
    )
    owner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"))

    reservation_type: Mapped[str] = mapped_column(String(20), nullable=False, comment="Service kind value")
    status: Mapped[str] = mapped_column(
        String(20), default=ReservationStatus.PENDING.value, nullable=False
    )

    # Relationships
    quote: Mapped[Quote | None] = relationship("Quote")
    payments: Mapped[list[ReservationPayment]] = relationship(
        "ReservationPayment", back_populates="reservation"
    )

    def __repr__(self) -> str:
        return f"<Reservation id={self.id} type={self.reservation_type} status={self.status}>"


class ReservationPayment(TimestampMixin, Base):
    """One payment attempt tied to a reservation."""

    __tablename__ = "reservation_payments"

    reservation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("reservations.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True
    )
    payment_method: Mapped[str | None] = mapped_column(String(50))

    reservation: Mapped[Reservation] = relationship("Reservation", back_populates="payments")

    def __repr__(self) -> str:
        return f"<ReservationPayment reservation={self.reservation_id} status={self.payment_status}>"
