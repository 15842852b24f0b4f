"""Closed enumeration of service kinds and the tables behind each one.

Every kind owns a service record table and a price table; both carry the
price code in a column named ``<kind>_code``. This module is the only place
that maps a kind to table names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.errors import InvalidInputError


@dataclass(frozen=True)
class KindTables:
    """Table and column names for one service kind."""

    service_table: str
    price_table: str
    code_column: str


class ServiceKind(str, Enum):
    """Service kinds that can appear as quote line items."""

    CABIN = "cabin"
    CAR = "car"
    AIRPORT = "airport"
    HOTEL = "hotel"
    TOUR = "tour"
    RENTCAR = "rentcar"

    @property
    def tables(self) -> KindTables:
        return KIND_TABLES[self]

    @property
    def service_table(self) -> str:
        return KIND_TABLES[self].service_table

    @property
    def price_table(self) -> str:
        return KIND_TABLES[self].price_table

    @property
    def code_column(self) -> str:
        return KIND_TABLES[self].code_column

    @classmethod
    def parse(cls, value: ServiceKind | str) -> ServiceKind:
        """Coerce a raw kind string, raising InvalidInputError for unknown kinds."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            msg = f"Unknown service kind: {value!r} (valid: {valid})"
            raise InvalidInputError(msg) from None


KIND_TABLES: dict[ServiceKind, KindTables] = {
    ServiceKind.CABIN: KindTables("cabin", "cabin_price", "cabin_code"),
    ServiceKind.CAR: KindTables("car", "car_price", "car_code"),
    ServiceKind.AIRPORT: KindTables("airport", "airport_price", "airport_code"),
    ServiceKind.HOTEL: KindTables("hotel", "hotel_price", "hotel_code"),
    ServiceKind.TOUR: KindTables("tour", "tour_price", "tour_code"),
    ServiceKind.RENTCAR: KindTables("rentcar", "rentcar_price", "rentcar_code"),
}
