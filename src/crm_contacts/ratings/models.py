"""
SQLAlchemy model for contact ratings.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crm_contacts.shared.database import Base, utcnow


class ContactRating(Base):
    """Score given to a contact from one module; immutable once created."""

    __tablename__ = "contact_ratings"
    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 5", name="ck_contact_ratings_score_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contact_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)
    module: Mapped[str] = mapped_column(String(50), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    rated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<ContactRating(id={self.id}, contact_id={self.contact_id}, score={self.score})>"
