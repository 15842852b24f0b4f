"""SQLAlchemy ORM models for the travel back office.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.base import Base
from src.models.enums import (
    PaymentStatus,
    QuotePaymentStatus,
    QuoteStatus,
    ReconcileFilter,
    ReservationStatus,
    UserRole,
)
from src.models.quote import Quote, QuoteItem
from src.models.reservation import Reservation, ReservationPayment
from src.models.service import (
    AirportPrice,
    AirportService,
    CabinPrice,
    CabinService,
    CarPrice,
    CarService,
    HotelPrice,
    HotelService,
    RentcarPrice,
    RentcarService,
    TourPrice,
    TourService,
)
from src.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Quote",
    "QuoteItem",
    "Reservation",
    "ReservationPayment",
    # Service records
    "CabinService",
    "CarService",
    "AirportService",
    "HotelService",
    "TourService",
    "RentcarService",
    # Price tables
    "CabinPrice",
    "CarPrice",
    "AirportPrice",
    "HotelPrice",
    "TourPrice",
    "RentcarPrice",
    # Enums
    "QuoteStatus",
    "QuotePaymentStatus",
    "ReservationStatus",
    "PaymentStatus",
    "UserRole",
    "ReconcileFilter",
]
