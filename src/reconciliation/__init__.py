"""Reservation/payment reconciliation: read-only paid/pending view over quotes."""

from src.reconciliation.reconciler import Reconciler, reconciler

__all__ = ["Reconciler", "reconciler"]
