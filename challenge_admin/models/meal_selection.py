"""Weekly meal selections submitted from the mobile app."""

from datetime import date, datetime

from sqlalchemy import String, Integer, Date, DateTime, Boolean, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, new_id


class MealSelection(Base, TimestampMixin):
    """A participant's A/B picks for one challenge week.

    selections structure (written by the mobile client):
    {
        "1_lunch": "A",
        "1_dinner": "B",
        ...
        "7_dinner": "A"
    }
    """

    __tablename__ = "meal_selections"
    __table_args__ = (Index("ix_meal_selections_user_week", "user_id", "challenge_week"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    challenge_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    selections: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    delivery_preference: Mapped[str | None] = mapped_column(String(50), nullable=True)
    locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    profile: Mapped["Profile"] = relationship("Profile", back_populates="meal_selections")

    def __repr__(self) -> str:
        return f"<MealSelection(id={self.id}, user={self.user_id}, week={self.challenge_week})>"
