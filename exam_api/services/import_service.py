"""Service for importing test content from JSON payloads."""
import logging
import uuid

from sqlalchemy.orm import Session as DbSession

from exam_api.models.db.test import Chapter, Piece, Question, Test
from exam_api.models.tests import (
    GrammarChapter,
    ImportedQuestion,
    ListeningChapter,
    ReadingChapter,
    TestImport,
)

logger = logging.getLogger(__name__)


class ContentImportError(ValueError):
    """The payload holds no usable chapters."""


def _position(idx: int | None, fallback: int) -> int:
    return idx if idx is not None else fallback


def _question_row(
    question: ImportedQuestion,
    position: int,
    chapter_type: str,
) -> Question:
    row = Question(
        question_type=chapter_type,
        idx=_position(question.idx, position),
        question_text=question.question_text,
        answer=question.answer,
        hint=question.hint,
        explanation=question.explanation,
        explanation_en=question.explanation_en,
        points=question.points,
        base_text=question.base_text or None,
    )
    row.options = question.options
    row.underlined_words = question.underlined_words
    row.underlined_positions = [(pos.start, pos.end) for pos in question.underlined_positions]
    return row


def _chapter_row(
    chapter: GrammarChapter | ReadingChapter | ListeningChapter,
    position: int,
) -> Chapter:
    row = Chapter(
        idx=_position(chapter.idx, position),
        type=chapter.type,
        title=chapter.title,
        duration_seconds=chapter.duration_seconds,
    )
    if isinstance(chapter, GrammarChapter):
        for q_pos, question in enumerate(chapter.questions):
            row.questions.append(_question_row(question, q_pos, chapter.type))
        return row

    for p_pos, piece in enumerate(chapter.pieces):
        if not piece.questions:
            continue
        if isinstance(chapter, ListeningChapter):
            piece_row = Piece(
                idx=_position(piece.idx, p_pos),
                audio_url=piece.audio_url,
                transcript=piece.transcript,
            )
        else:
            piece_row = Piece(
                idx=_position(piece.idx, p_pos),
                passage_title=piece.passage_title,
                passage=piece.passage,
            )
        for q_pos, question in enumerate(piece.questions):
            question_row = _question_row(question, q_pos, chapter.type)
            # Questions of a piece also belong to its chapter
            row.questions.append(question_row)
            piece_row.questions.append(question_row)
        row.pieces.append(piece_row)
    return row


def import_test(db: DbSession, payload: TestImport) -> Test:
    """
    Create a test with all its chapters from an import payload.
    Chapters without questions are skipped; missing idx values are
    filled in from submission order.

    Raises:
        ContentImportError: if no chapter has any question.
    """
    chapters = [
        (position, chapter)
        for position, chapter in enumerate(payload.all_chapters())
        if not chapter.is_empty
    ]
    if not chapters:
        raise ContentImportError("No chapters with questions in payload")

    test = Test(
        id=uuid.uuid4().hex,
        title=payload.title.strip(),
        description=payload.description,
        visibility=payload.visibility.value,
        is_published=payload.is_published,
    )
    for position, chapter in chapters:
        test.chapters.append(_chapter_row(chapter, position))

    db.add(test)
    db.commit()
    db.refresh(test)
    logger.info("Imported test %s (%s) with %d chapters", test.id, test.title, len(chapters))
    return test
