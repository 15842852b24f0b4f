"""Service records and their price-code catalogs.

Each service kind has two tables:
- a service record table (`cabin`, `car`, ...) holding the chosen price code
  and a cached `base_price`;
- a price table (`cabin_price`, `car_price`, ...) keyed by that code.

Price tables are maintained outside the engine and only read here. The
column holding the code is named `<kind>_code` in both tables; see
src/pricing/kinds.py for the mapping.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class ServiceRecordMixin:
    """Cached price shared by every service record table."""

    base_price: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), comment="Last price resolved from the kind's price table"
    )


class PriceCatalogMixin:
    """Authoritative unit price shared by every price table."""

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)


# ── Service records ──────────────────────────────────────────────────


class CabinService(ServiceRecordMixin, TimestampMixin, Base):
    """A cruise cabin booking row."""

    __tablename__ = "cabin"

    cabin_code: Mapped[str | None] = mapped_column(String(50), index=True)
    checkin: Mapped[date | None] = mapped_column(Date)
    guest_count: Mapped[int | None] = mapped_column(Integer)


class CarService(ServiceRecordMixin, TimestampMixin, Base):
    """A cruise-port car (shuttle) booking row."""

    __tablename__ = "car"

    car_code: Mapped[str | None] = mapped_column(String(50), index=True)
    car_count: Mapped[int | None] = mapped_column(Integer)


class AirportService(ServiceRecordMixin, TimestampMixin, Base):
    """An airport pickup or drop-off transfer."""

    __tablename__ = "airport"

    airport_code: Mapped[str | None] = mapped_column(String(50), index=True)
    pickup_location: Mapped[str | None] = mapped_column(String(255))
    flight_number: Mapped[str | None] = mapped_column(String(20))


class HotelService(ServiceRecordMixin, TimestampMixin, Base):
    """A hotel stay."""

    __tablename__ = "hotel"

    hotel_code: Mapped[str | None] = mapped_column(String(50), index=True)
    checkin: Mapped[date | None] = mapped_column(Date)
    nights: Mapped[int | None] = mapped_column(Integer)


class TourService(ServiceRecordMixin, TimestampMixin, Base):
    """A guided tour."""

    __tablename__ = "tour"

    tour_code: Mapped[str | None] = mapped_column(String(50), index=True)
    tour_date: Mapped[date | None] = mapped_column(Date)
    participant_count: Mapped[int | None] = mapped_column(Integer)


class RentcarService(ServiceRecordMixin, TimestampMixin, Base):
    """A rental car."""

    __tablename__ = "rentcar"

    rentcar_code: Mapped[str | None] = mapped_column(String(50), index=True)
    pickup_date: Mapped[date | None] = mapped_column(Date)
    rental_days: Mapped[int | None] = mapped_column(Integer)


# ── Price tables (read-only catalog) ─────────────────────────────────


class CabinPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "cabin_price"

    cabin_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    cruise: Mapped[str | None] = mapped_column(String(200))
    room_type: Mapped[str | None] = mapped_column(String(100))


class CarPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "car_price"

    car_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    car_type: Mapped[str | None] = mapped_column(String(100))


class AirportPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "airport_price"

    airport_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    route: Mapped[str | None] = mapped_column(String(200))


class HotelPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "hotel_price"

    hotel_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    hotel_name: Mapped[str | None] = mapped_column(String(200))
    room_type: Mapped[str | None] = mapped_column(String(100))


class TourPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "tour_price"

    tour_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    tour_name: Mapped[str | None] = mapped_column(String(200))


class RentcarPrice(PriceCatalogMixin, TimestampMixin, Base):
    __tablename__ = "rentcar_price"

    rentcar_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    vehicle_type: Mapped[str | None] = mapped_column(String(100))
