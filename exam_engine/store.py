"""Typed operations the engine needs from the external data store."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from exam_engine.tree import TestTree


@dataclass(frozen=True)
class AnswerRow:
    """One answer record, keyed by (attempt, question)."""

    question_id: str
    question_type: str
    selected_choice: str | None
    is_correct: bool
    points_awarded: int
    answered_at: datetime | None = None


@dataclass(frozen=True)
class ResultRow:
    """Final score of an attempt, keyed by attempt."""

    score: int
    total_questions: int
    percentage: float
    total_possible: int
    correct_count: int = 0


class AttemptStore(Protocol):
    """External store interface.

    Implementations raise :class:`exam_engine.errors.StoreError` on any
    backend failure and :class:`exam_engine.errors.TestNotFoundError` when
    a test id does not resolve.
    """

    async def load_test_tree(self, test_id: str) -> TestTree: ...

    async def create_attempt(self, test_id: str, user_id: str | None = None) -> str: ...

    async def upsert_answers(self, attempt_id: str, rows: list[AnswerRow]) -> None: ...

    async def upsert_result(self, attempt_id: str, result: ResultRow) -> None: ...

    async def complete_attempt(self, attempt_id: str, completed_at: datetime) -> None: ...
