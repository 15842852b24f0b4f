"""Price resolution: service kinds and their authoritative price tables."""

from src.pricing.kinds import KindTables, ServiceKind
from src.pricing.resolver import resolve_price

__all__ = [
    "KindTables",
    "ServiceKind",
    "resolve_price",
]
