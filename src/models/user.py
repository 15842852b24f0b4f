"""User model: quote owners, staff and approvers.

Owned by the identity collaborator; the engine only reads name/email/phone
to decorate reconciliation summaries.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import UserRole


class User(TimestampMixin, Base):
    """A customer or staff member of the back office."""

    __tablename__ = "users"

    name: Mapped[str | None] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.GUEST.value, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"
