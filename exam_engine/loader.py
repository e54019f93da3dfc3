"""Session Loader: resolves a test tree and opens an attempt for it."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping, Sequence

from exam_engine.errors import SessionInitError, StoreError, TestNotFoundError
from exam_engine.store import AttemptStore
from exam_engine.timing import DEFAULT_MINUTES_BY_INDEX, FALLBACK_MINUTES, resolve_duration
from exam_engine.tree import Chapter, TestTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedSession:
    attempt_id: str
    tree: TestTree
    user_id: str | None = None


def normalize_tree(
    tree: TestTree,
    default_minutes: Sequence[int] | Mapping[int, int] = DEFAULT_MINUTES_BY_INDEX,
    fallback_minutes: int = FALLBACK_MINUTES,
) -> TestTree:
    """Order chapters and their contents by idx and resolve chapter durations.

    Pieces without questions and chapters without any sub-items are dropped.
    """
    chapters: list[Chapter] = []
    for chapter in sorted(tree.chapters, key=lambda ch: ch.idx):
        pieces = tuple(
            replace(piece, questions=tuple(sorted(piece.questions, key=lambda q: q.idx)))
            for piece in sorted(chapter.pieces, key=lambda p: p.idx)
            if piece.questions
        )
        questions = tuple(sorted(chapter.questions, key=lambda q: q.idx))
        ordered = replace(chapter, pieces=pieces, questions=questions)
        if ordered.item_count == 0:
            logger.warning("Dropping empty chapter %s of test %s", chapter.id, tree.test.id)
            continue
        chapters.append(ordered)

    resolved = tuple(
        replace(
            chapter,
            duration_seconds=resolve_duration(
                chapter.duration_seconds, position, default_minutes, fallback_minutes
            ),
        )
        for position, chapter in enumerate(chapters)
    )
    return TestTree(test=tree.test, chapters=resolved)


class SessionLoader:
    """Loads the chapter tree for a test and creates one attempt per call."""

    def __init__(
        self,
        store: AttemptStore,
        default_minutes: Sequence[int] | Mapping[int, int] = DEFAULT_MINUTES_BY_INDEX,
        fallback_minutes: int = FALLBACK_MINUTES,
    ) -> None:
        self.store = store
        self.default_minutes = default_minutes
        self.fallback_minutes = fallback_minutes

    async def load(
        self,
        test_id: str,
        user_id: str | None = None,
        is_subscriber: bool | None = None,
    ) -> LoadedSession:
        """Load the test and create its attempt.

        Raises:
            SessionInitError: if the test cannot be resolved or taken, or the
                attempt cannot be created.
        """
        try:
            raw_tree = await self.store.load_test_tree(test_id)
        except TestNotFoundError as exc:
            raise SessionInitError("Test not found", test_id=test_id) from exc
        except StoreError as exc:
            logger.error("Failed to load test %s: %s", test_id, exc)
            raise SessionInitError("Could not load test", test_id=test_id) from exc

        if not raw_tree.test.is_published:
            raise SessionInitError("Test is not published", test_id=test_id)
        if not raw_tree.test.is_visible_to(is_subscriber):
            raise SessionInitError("Test is not available for this user", test_id=test_id)

        tree = normalize_tree(raw_tree, self.default_minutes, self.fallback_minutes)
        if not tree.chapters:
            raise SessionInitError("Test has no questions", test_id=test_id)

        try:
            attempt_id = await self.store.create_attempt(test_id, user_id)
        except StoreError as exc:
            logger.error("Failed to create attempt for test %s: %s", test_id, exc)
            raise SessionInitError("Could not create attempt", test_id=test_id) from exc

        logger.info(
            "Opened attempt %s for test %s (%d chapters, %d questions)",
            attempt_id,
            test_id,
            len(tree.chapters),
            tree.question_count,
        )
        return LoadedSession(attempt_id=attempt_id, tree=tree, user_id=user_id)
