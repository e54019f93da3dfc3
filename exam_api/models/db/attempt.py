"""
Attempt, AnswerRecord and Result database models.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exam_api.database import Base


class Attempt(Base):
    """
    Test attempt record.
    One student's run through one test; completed_at stays null until the
    result has been written.
    """

    __tablename__ = "attempts"

    # Primary key - UUID hex
    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    # References
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # Identity from the surrounding application; null for anonymous users
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Relationships
    answers: Mapped[list["AnswerRecord"]] = relationship(
        "AnswerRecord", back_populates="attempt", cascade="all, delete-orphan"
    )
    result: Mapped["Result | None"] = relationship(
        "Result", back_populates="attempt", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_completed(self) -> bool:
        """Check if attempt is completed."""
        return self.completed_at is not None


class AnswerRecord(Base):
    """
    Answer to a single question within an attempt.
    Upserted at boundary saves, never deleted.
    """

    __tablename__ = "answer_records"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Answer data
    selected_choice: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    is_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    points_awarded: Mapped[int] = mapped_column(default=0, nullable=False)
    answered_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")


class Result(Base):
    """Final score of an attempt (at most one per attempt)."""

    __tablename__ = "results"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    correct_count: Mapped[int] = mapped_column(default=0, nullable=False)
    total_questions: Mapped[int] = mapped_column(default=0, nullable=False)
    total_possible: Mapped[int] = mapped_column(default=0, nullable=False)
    percentage: Mapped[float] = mapped_column(default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="result")
