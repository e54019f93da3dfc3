"""
Test content models: tests, chapters, pieces and questions.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exam_api.database import Base
from exam_engine.tree import ChapterType, Visibility


class Test(Base):
    """
    A practice test.
    Read-only for the session engine; written by the content import.
    """

    __tablename__ = "tests"
    __test__ = False

    # Primary key - UUID hex
    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(20), default=Visibility.ALL.value, nullable=False
    )
    is_published: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    chapters: Mapped[list["Chapter"]] = relationship(
        "Chapter",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="Chapter.idx",
    )


class Chapter(Base):
    """Top-level section of a test (listening, reading or grammar)."""

    __tablename__ = "chapters"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    idx: Mapped[int] = mapped_column(nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Null means "use the default for this position"
    duration_seconds: Mapped[int | None] = mapped_column(nullable=True)

    # Relationships
    test: Mapped["Test"] = relationship("Test", back_populates="chapters")
    pieces: Mapped[list["Piece"]] = relationship(
        "Piece",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="Piece.idx",
    )
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="Question.idx",
    )

    @property
    def chapter_type(self) -> ChapterType:
        return ChapterType(self.type)


class Piece(Base):
    """
    Listening clip or reading passage.
    The transcript is never sent to the test-taking client.
    """

    __tablename__ = "pieces"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    chapter_id: Mapped[int] = mapped_column(
        ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    idx: Mapped[int] = mapped_column(nullable=False)

    # Listening
    audio_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Reading
    passage_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    passage: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    chapter: Mapped["Chapter"] = relationship("Chapter", back_populates="pieces")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="piece",
        cascade="all, delete-orphan",
        order_by="Question.idx",
    )


class Question(Base):
    """
    A multiple-choice question.
    Belongs to a piece (listening/reading) or directly to a chapter (grammar).
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    chapter_id: Mapped[int] = mapped_column(
        ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    piece_id: Mapped[int | None] = mapped_column(
        ForeignKey("pieces.id", ondelete="CASCADE"), nullable=True, index=True
    )
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)
    idx: Mapped[int] = mapped_column(nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    # Sentence shown with underlined parts, for error-spotting questions
    base_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    underlined_words_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    underlined_positions_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    chapter: Mapped["Chapter"] = relationship("Chapter", back_populates="questions")
    piece: Mapped["Piece | None"] = relationship("Piece", back_populates="questions")

    @property
    def options(self) -> list[str]:
        """Parse options from JSON."""
        if not self.options_json:
            return []
        try:
            return [str(item) for item in json.loads(self.options_json)]
        except (json.JSONDecodeError, TypeError):
            return []

    @options.setter
    def options(self, value: list[str] | None) -> None:
        """Serialize options to JSON."""
        self.options_json = json.dumps(list(value or []), ensure_ascii=False)

    @property
    def underlined_words(self) -> list[str]:
        """Parse underlined words from JSON."""
        if not self.underlined_words_json:
            return []
        try:
            return [str(item) for item in json.loads(self.underlined_words_json)]
        except (json.JSONDecodeError, TypeError):
            return []

    @underlined_words.setter
    def underlined_words(self, value: list[str] | None) -> None:
        self.underlined_words_json = (
            json.dumps(list(value), ensure_ascii=False) if value else None
        )

    @property
    def underlined_positions(self) -> list[tuple[int, int]]:
        """Parse underlined ``{start, end}`` positions from JSON."""
        if not self.underlined_positions_json:
            return []
        try:
            return [
                (int(item["start"]), int(item["end"]))
                for item in json.loads(self.underlined_positions_json)
            ]
        except (json.JSONDecodeError, TypeError, KeyError, ValueError):
            return []

    @underlined_positions.setter
    def underlined_positions(self, value: list[tuple[int, int]] | None) -> None:
        self.underlined_positions_json = (
            json.dumps([{"start": start, "end": end} for start, end in value]) if value else None
        )
