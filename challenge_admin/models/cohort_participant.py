"""Enrollment records linking participants to cohorts."""

import enum
from datetime import datetime

from sqlalchemy import String, DateTime, Enum, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, new_id, utcnow


class EnrollmentStatus(str, enum.Enum):
    """Membership status of a participant in one cohort."""

    ACTIVE = "active"
    COMPLETED = "completed"
    LEFT = "left"


class CohortParticipant(Base, TimestampMixin):
    """Time-stamped participation record, one per (participant, cohort) pair."""

    __tablename__ = "cohort_participants"
    __table_args__ = (
        UniqueConstraint("user_id", "cohort_id", name="uq_cohort_participants_user_cohort"),
        # At most one active enrollment per participant across all cohorts
        Index(
            "uq_cohort_participants_one_active",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    cohort_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cohorts.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    left_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(
            EnrollmentStatus,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
            length=20,
        ),
        default=EnrollmentStatus.ACTIVE,
        nullable=False,
    )

    # Relationships
    profile: Mapped["Profile"] = relationship("Profile", back_populates="enrollments")
    cohort: Mapped["Cohort"] = relationship("Cohort", back_populates="enrollments")

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<CohortParticipant(user={self.user_id}, cohort={self.cohort_id}, "
            f"status={self.status.value})>"
        )
