"""Price resolver: authoritative unit price for a (service kind, price code) pair.

Single lookup against the kind's price table. The stored value is returned
verbatim; a missing code yields None and is never defaulted to zero.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.db import queries
from src.errors import InvalidInputError
from src.pricing.kinds import ServiceKind

logger = logging.getLogger(__name__)


def normalize_price_code(price_code: str | None) -> str:
    """Strip a price code, raising InvalidInputError if nothing is left."""
    code = (price_code or "").strip()
    if not code:
        msg = "Price code must be a non-empty string"
        raise InvalidInputError(msg)
    return code


async def resolve_price(
    db: AsyncSession,
    service_kind: ServiceKind | str,
    price_code: str,
) -> Decimal | None:
    """Look up the unit price for a price code.

    Args:
        db: Database session.
        service_kind: A ServiceKind or its string value.
        price_code: Key into the kind's price table.

    Returns:
        The stored price, or None when the code has no entry.

    Raises:
        InvalidInputError: Unknown service kind or empty price code.
    """
    kind = ServiceKind.parse(service_kind)
    code = normalize_price_code(price_code)

    price = await queries.lookup_price(db, kind.price_table, kind.code_column, code)
    if price is None:
        logger.warning("Price code %s not found in %s", code, kind.price_table)
        return None

    logger.debug("Resolved %s %s -> %s", kind.value, code, price)
    return price
