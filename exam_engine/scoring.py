"""Scoring and persistence of answers and results."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Mapping

from exam_engine.errors import AnswerSaveError, FinalizeError, StoreError
from exam_engine.store import AnswerRow, AttemptStore, ResultRow
from exam_engine.tree import ChapterType, Question, TestTree

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_correct(selected: str | None, answer: str | None) -> bool:
    """Trimmed, case-sensitive string equality."""
    if selected is None or answer is None:
        return False
    return str(selected).strip() == str(answer).strip()


def points_for(question: Question, selected: str | None) -> int:
    return question.points if is_correct(selected, question.answer) else 0


def percentage(awarded: int, possible: int) -> float:
    """Awarded over possible as a percentage rounded half-up to 2 places."""
    if not possible:
        return 0.0
    value = Decimal(awarded) * 100 / Decimal(possible)
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def build_answer_rows(
    questions: Iterable[Question],
    drafts: Mapping[str, str],
    answered_at: datetime | None = None,
) -> list[AnswerRow]:
    """One row per question that has a non-null draft value."""
    rows = []
    for question in questions:
        selected = drafts.get(question.id)
        if selected is None:
            continue
        rows.append(
            AnswerRow(
                question_id=question.id,
                question_type=question.question_type.value,
                selected_choice=str(selected),
                is_correct=is_correct(selected, question.answer),
                points_awarded=points_for(question, selected),
                answered_at=answered_at,
            )
        )
    return rows


@dataclass(frozen=True)
class SectionScore:
    section: ChapterType
    awarded: int
    possible: int
    correct: int
    total: int

    @property
    def percentage(self) -> float:
        return percentage(self.awarded, self.possible)


@dataclass(frozen=True)
class ScoreSummary:
    awarded: int
    possible: int
    correct_count: int
    answered_count: int
    total_questions: int
    percentage: float
    sections: tuple[SectionScore, ...] = ()

    def to_result_row(self) -> ResultRow:
        return ResultRow(
            score=self.awarded,
            total_questions=self.total_questions,
            percentage=self.percentage,
            total_possible=self.possible,
            correct_count=self.correct_count,
        )


def compute_summary(tree: TestTree, drafts: Mapping[str, str]) -> ScoreSummary:
    """Score every question of the test against the draft answers.

    Unanswered questions award nothing but still count towards the
    possible total.
    """
    per_section: dict[ChapterType, list[int]] = {}
    awarded = possible = correct = answered = total = 0
    for question in tree.iter_questions():
        selected = drafts.get(question.id)
        points = points_for(question, selected)
        hit = is_correct(selected, question.answer)
        bucket = per_section.setdefault(question.question_type, [0, 0, 0, 0])
        bucket[0] += points
        bucket[1] += question.points
        bucket[2] += int(hit)
        bucket[3] += 1
        awarded += points
        possible += question.points
        correct += int(hit)
        answered += int(selected is not None)
        total += 1

    sections = tuple(
        SectionScore(section, *per_section[section])
        for section in ChapterType
        if section in per_section
    )
    return ScoreSummary(
        awarded=awarded,
        possible=possible,
        correct_count=correct,
        answered_count=answered,
        total_questions=total,
        percentage=percentage(awarded, possible),
        sections=sections,
    )


class AttemptRecorder:
    """Writes answer records and the final result for one attempt.

    Answer saves never raise: a failed batch is logged and kept pending so
    it is retried with the next boundary save. Only :meth:`finalize` can
    fail visibly.
    """

    def __init__(
        self,
        store: AttemptStore,
        attempt_id: str,
        tree: TestTree,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.attempt_id = attempt_id
        self.tree = tree
        self.clock = clock
        self.summary: ScoreSummary | None = None
        self.last_save_error: AnswerSaveError | None = None
        self._pending: dict[str, Question] = {}

    @property
    def finalized(self) -> bool:
        return self.summary is not None

    @property
    def pending_question_ids(self) -> list[str]:
        return list(self._pending)

    async def save(self, questions: Iterable[Question], drafts: Mapping[str, str]) -> bool:
        """Bulk upsert the drafts of ``questions`` plus any earlier failed batch."""
        batch = dict(self._pending)
        batch.update((q.id, q) for q in questions)
        rows = build_answer_rows(batch.values(), drafts, self.clock())
        if not rows:
            self._pending.clear()
            return True
        try:
            await self.store.upsert_answers(self.attempt_id, rows)
        except StoreError as exc:
            self._pending = batch
            self.last_save_error = AnswerSaveError(str(exc), [row.question_id for row in rows])
            logger.warning(
                "Saving %d answers for attempt %s failed, will retry: %s",
                len(rows),
                self.attempt_id,
                exc,
            )
            return False
        self._pending.clear()
        self.last_save_error = None
        return True

    async def finalize(self, drafts: Mapping[str, str], completed_at: datetime) -> ScoreSummary:
        """Write the result and mark the attempt complete; safe to call again.

        Raises:
            FinalizeError: if the result or the completion time cannot be stored.
        """
        if self.summary is not None:
            return self.summary

        if self._pending:
            await self.save((), drafts)

        summary = compute_summary(self.tree, drafts)
        try:
            await self.store.upsert_result(self.attempt_id, summary.to_result_row())
            await self.store.complete_attempt(self.attempt_id, completed_at)
        except StoreError as exc:
            logger.error("Finalizing attempt %s failed: %s", self.attempt_id, exc)
            raise FinalizeError("Could not save the test result", self.attempt_id) from exc

        self.summary = summary
        logger.info(
            "Attempt %s finalized: %d/%d (%.2f%%)",
            self.attempt_id,
            summary.awarded,
            summary.possible,
            summary.percentage,
        )
        return summary
