"""Initial schema: users, quotes, line items, service records, price tables, reservations, payments.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None

# (table, code column, extra columns) for each service kind
_SERVICE_TABLES: list[tuple[str, str, list[sa.Column]]] = [
    ("cabin", "cabin_code", [sa.Column("checkin", sa.Date()), sa.Column("guest_count", sa.Integer())]),
    ("car", "car_code", [sa.Column("car_count", sa.Integer())]),
    ("airport", "airport_code", [
        sa.Column("pickup_location", sa.String(255)),
        sa.Column("flight_number", sa.String(20)),
    ]),
    ("hotel", "hotel_code", [sa.Column("checkin", sa.Date()), sa.Column("nights", sa.Integer())]),
    ("tour", "tour_code", [sa.Column("tour_date", sa.Date()), sa.Column("participant_count", sa.Integer())]),
    ("rentcar", "rentcar_code", [sa.Column("pickup_date", sa.Date()), sa.Column("rental_days", sa.Integer())]),
]

_PRICE_TABLES: list[tuple[str, str, list[sa.Column]]] = [
    ("cabin_price", "cabin_code", [sa.Column("cruise", sa.String(200)), sa.Column("room_type", sa.String(100))]),
    ("car_price", "car_code", [sa.Column("car_type", sa.String(100))]),
    ("airport_price", "airport_code", [sa.Column("route", sa.String(200))]),
    ("hotel_price", "hotel_code", [
        sa.Column("hotel_name", sa.String(200)),
        sa.Column("room_type", sa.String(100)),
    ]),
    ("tour_price", "tour_code", [sa.Column("tour_name", sa.String(200))]),
    ("rentcar_price", "rentcar_code", [sa.Column("vehicle_type", sa.String(100))]),
]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    for table, code_column, extra in _SERVICE_TABLES:
        op.create_table(
            table,
            sa.Column(code_column, sa.String(50)),
            *extra,
            sa.Column("base_price", sa.Numeric(12, 2), comment="Last price resolved from the kind's price table"),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_{code_column}", table, [code_column])

    for table, code_column, extra in _PRICE_TABLES:
        op.create_table(
            table,
            sa.Column(code_column, sa.String(50), nullable=False),
            *extra,
            sa.Column("price", sa.Numeric(12, 2), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(code_column),
        )

    # ── Quotes and line items ─────────────────────────────────────────

    op.create_table(
        "quotes",
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("payment_status", sa.String(20)),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("approved_by", sa.String(100), comment="Approver id from the identity provider"),
        sa.Column("cancellation_reason", sa.String(1000)),
        sa.Column("manager_note", sa.String(1000), comment="Note recorded when the quote is rejected"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quotes_owner_id", "quotes", ["owner_id"])
    op.create_index("ix_quotes_status", "quotes", ["status"])
    op.create_index("ix_quotes_payment_status", "quotes", ["payment_status"])

    op.create_table(
        "quote_items",
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quotes.id"), nullable=False),
        sa.Column("service_kind", sa.String(20), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quote_id", "service_kind", "service_id", name="uq_quote_items_service"),
    )
    op.create_index("ix_quote_items_quote_id", "quote_items", ["quote_id"])

    # ── Reservations and payments ─────────────────────────────────────

    op.create_table(
        "reservations",
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quotes.id")),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("reservation_type", sa.String(20), nullable=False, comment="Service kind value"),
        sa.Column("status", sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reservations_quote_id", "reservations", ["quote_id"])

    op.create_table(
        "reservation_payments",
        sa.Column(
            "reservation_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("reservations.id"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column("payment_method", sa.String(50)),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reservation_payments_reservation_id", "reservation_payments", ["reservation_id"])
    op.create_index("ix_reservation_payments_payment_status", "reservation_payments", ["payment_status"])


def downgrade() -> None:
    op.drop_table("reservation_payments")
    op.drop_table("reservations")
    op.drop_table("quote_items")
    op.drop_table("quotes")
    for table, _, _ in reversed(_PRICE_TABLES):
        op.drop_table(table)
    for table, _, _ in reversed(_SERVICE_TABLES):
        op.drop_table(table)
    op.drop_table("users")
