"""Quote consistency: line-item price synchronization and the approval state machine."""

from src.quotes.lifecycle import QuoteLifecycle, quote_lifecycle
from src.quotes.sync import LineItemSynchronizer, line_item_synchronizer

__all__ = [
    "LineItemSynchronizer",
    "QuoteLifecycle",
    "line_item_synchronizer",
    "quote_lifecycle",
]
