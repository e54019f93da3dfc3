"""Navigation state machine for a test session.

The state is a plain frozen struct and every change goes through
:func:`reduce`, which returns the next state together with the side
effects the session has to carry out (saves, timer restarts, audio
resets). Nothing here touches the store, the clock or the media element.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Mapping, Union

from exam_engine.tree import Chapter, ChapterType, Question, TestTree

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    AWAITING_INTRO = "awaiting_intro"
    PLAYING_AUDIO = "playing_audio"
    ANSWERING = "answering"
    CHAPTER_COMPLETE = "chapter_complete"
    SESSION_COMPLETE = "session_complete"


@dataclass(frozen=True)
class NavState:
    chapter_index: int = 0
    item_index: int = 0
    phase: Phase = Phase.ANSWERING
    furthest_item: int = 0
    played: frozenset[int] = frozenset()
    answers: Mapping[str, str] = field(default_factory=dict)
    marked: frozenset[str] = frozenset()

    @property
    def is_finished(self) -> bool:
        return self.phase == Phase.SESSION_COMPLETE


# Events


@dataclass(frozen=True)
class SelectAnswer:
    question_id: str
    value: str | None


@dataclass(frozen=True)
class ToggleMark:
    question_id: str


@dataclass(frozen=True)
class AudioStarted:
    pass


@dataclass(frozen=True)
class AudioEnded:
    pass


@dataclass(frozen=True)
class Next:
    confirm: bool = False


@dataclass(frozen=True)
class Previous:
    pass


@dataclass(frozen=True)
class GoTo:
    question_id: str


@dataclass(frozen=True)
class Timeout:
    chapter_index: int


@dataclass(frozen=True)
class BeginNextChapter:
    pass


Event = Union[
    SelectAnswer, ToggleMark, AudioStarted, AudioEnded, Next, Previous, GoTo, Timeout,
    BeginNextChapter,
]


# Effects


@dataclass(frozen=True)
class SaveAnswers:
    questions: tuple[Question, ...]
    scope: str  # "piece" | "chapter"


@dataclass(frozen=True)
class LeaveChapter:
    chapter_index: int
    forced: bool = False


@dataclass(frozen=True)
class EnterChapter:
    chapter_index: int
    duration_seconds: int


@dataclass(frozen=True)
class EnterItem:
    chapter_index: int
    item_index: int
    phase: Phase


@dataclass(frozen=True)
class ConfirmUnanswered:
    question_ids: tuple[str, ...]


@dataclass(frozen=True)
class SessionFinished:
    pass


Effect = Union[SaveAnswers, LeaveChapter, EnterChapter, EnterItem, ConfirmUnanswered, SessionFinished]


@dataclass(frozen=True)
class Transition:
    state: NavState
    effects: tuple[Effect, ...] = ()
    accepted: bool = True
    reason: str | None = None


def _reject(state: NavState, reason: str, effects: tuple[Effect, ...] = ()) -> Transition:
    logger.debug("Rejected transition in %s: %s", state.phase.value, reason)
    return Transition(state=state, effects=effects, accepted=False, reason=reason)


def _entry_phase(chapter: Chapter, item_index: int, played: frozenset[int]) -> Phase:
    piece = chapter.piece_at(item_index)
    # A clip with no audio has nothing to wait for.
    if (
        chapter.type == ChapterType.LISTENING
        and item_index not in played
        and piece is not None
        and piece.audio_url
    ):
        return Phase.AWAITING_INTRO
    return Phase.ANSWERING


def unanswered_in_chapter(chapter: Chapter, answers: Mapping[str, str]) -> tuple[str, ...]:
    """Ids of the chapter's questions without a draft answer, in order."""
    return tuple(q.id for q in chapter.all_questions() if answers.get(q.id) is None)


def _enter_chapter(tree: TestTree, state: NavState, chapter_index: int) -> Transition:
    if chapter_index >= len(tree.chapters):
        return Transition(
            state=replace(state, phase=Phase.SESSION_COMPLETE),
            effects=(SessionFinished(),),
        )
    chapter = tree.chapters[chapter_index]
    phase = _entry_phase(chapter, 0, frozenset())
    new_state = replace(
        state,
        chapter_index=chapter_index,
        item_index=0,
        furthest_item=0,
        played=frozenset(),
        phase=phase,
    )
    effects: tuple[Effect, ...] = (
        EnterChapter(chapter_index, chapter.duration_seconds or 0),
        EnterItem(chapter_index, 0, phase),
    )
    if chapter.item_count == 0:
        new_state = replace(new_state, phase=Phase.CHAPTER_COMPLETE)
        effects = (EnterChapter(chapter_index, chapter.duration_seconds or 0),)
    return Transition(state=new_state, effects=effects)


def start(tree: TestTree) -> Transition:
    """Initial transition: enter the first chapter."""
    return _enter_chapter(tree, NavState(), 0)


def _complete_chapter(tree: TestTree, state: NavState, forced: bool) -> Transition:
    chapter = tree.chapters[state.chapter_index]
    return Transition(
        state=replace(state, phase=Phase.CHAPTER_COMPLETE),
        effects=(
            LeaveChapter(state.chapter_index, forced=forced),
            SaveAnswers(chapter.all_questions(), "chapter"),
        ),
    )


def _move_to_item(tree: TestTree, state: NavState, item_index: int, force_answering: bool) -> Transition:
    chapter = tree.chapters[state.chapter_index]
    phase = Phase.ANSWERING if force_answering else _entry_phase(chapter, item_index, state.played)
    effects: list[Effect] = []
    if chapter.has_pieces and item_index != state.item_index:
        effects.append(SaveAnswers(chapter.item_questions(state.item_index), "piece"))
    new_state = replace(
        state,
        item_index=item_index,
        furthest_item=max(state.furthest_item, item_index),
        phase=phase,
    )
    effects.append(EnterItem(state.chapter_index, item_index, phase))
    return Transition(state=new_state, effects=tuple(effects))


def _on_next(tree: TestTree, state: NavState, event: Next) -> Transition:
    if state.phase != Phase.ANSWERING:
        return _reject(state, f"cannot advance while {state.phase.value}")
    chapter = tree.chapters[state.chapter_index]
    if state.item_index + 1 < chapter.item_count:
        return _move_to_item(tree, state, state.item_index + 1, force_answering=False)

    unanswered = unanswered_in_chapter(chapter, state.answers)
    if unanswered and not event.confirm:
        return _reject(state, "unanswered questions", (ConfirmUnanswered(unanswered),))
    return _complete_chapter(tree, state, forced=False)


def _on_previous(tree: TestTree, state: NavState) -> Transition:
    if state.phase not in (Phase.ANSWERING, Phase.AWAITING_INTRO):
        return _reject(state, f"cannot go back while {state.phase.value}")
    if state.item_index == 0:
        return _reject(state, "already at the first item of the chapter")
    return _move_to_item(tree, state, state.item_index - 1, force_answering=True)


def _on_goto(tree: TestTree, state: NavState, event: GoTo) -> Transition:
    if state.phase not in (Phase.ANSWERING, Phase.AWAITING_INTRO):
        return _reject(state, f"cannot jump while {state.phase.value}")
    position = tree.locate(event.question_id)
    if position is None or position[0] != state.chapter_index:
        return _reject(state, "question is not in the current chapter")
    item_index = position[1]
    if item_index > state.furthest_item:
        return _reject(state, "question has not been reached yet")
    if item_index == state.item_index:
        return Transition(state=state)
    return _move_to_item(tree, state, item_index, force_answering=item_index < state.item_index)


def _on_select(tree: TestTree, state: NavState, event: SelectAnswer) -> Transition:
    if state.phase in (Phase.CHAPTER_COMPLETE, Phase.SESSION_COMPLETE):
        return _reject(state, "no chapter is open")
    position = tree.locate(event.question_id)
    if position is None or position[0] != state.chapter_index:
        return _reject(state, "question is not in the current chapter")
    if position[1] > state.furthest_item:
        return _reject(state, "question has not been reached yet")
    answers = dict(state.answers)
    if event.value is None:
        answers.pop(event.question_id, None)
    else:
        answers[event.question_id] = event.value
    return Transition(state=replace(state, answers=answers))


def _on_toggle_mark(tree: TestTree, state: NavState, event: ToggleMark) -> Transition:
    if tree.locate(event.question_id) is None:
        return _reject(state, "unknown question")
    marked = set(state.marked)
    marked.symmetric_difference_update({event.question_id})
    return Transition(state=replace(state, marked=frozenset(marked)))


def reduce(tree: TestTree, state: NavState, event: Event) -> Transition:
    """Apply one event to the navigation state."""
    if state.phase == Phase.SESSION_COMPLETE:
        return _reject(state, "session is complete")

    if isinstance(event, SelectAnswer):
        return _on_select(tree, state, event)
    if isinstance(event, ToggleMark):
        return _on_toggle_mark(tree, state, event)
    if isinstance(event, AudioStarted):
        if state.phase != Phase.AWAITING_INTRO:
            return _reject(state, "no audio is waiting to start")
        return Transition(
            state=replace(
                state, phase=Phase.PLAYING_AUDIO, played=state.played | {state.item_index}
            )
        )
    if isinstance(event, AudioEnded):
        if state.phase != Phase.PLAYING_AUDIO:
            return _reject(state, "no audio is playing")
        return Transition(state=replace(state, phase=Phase.ANSWERING))
    if isinstance(event, Next):
        return _on_next(tree, state, event)
    if isinstance(event, Previous):
        return _on_previous(tree, state)
    if isinstance(event, GoTo):
        return _on_goto(tree, state, event)
    if isinstance(event, Timeout):
        if event.chapter_index != state.chapter_index or state.phase == Phase.CHAPTER_COMPLETE:
            return _reject(state, "timeout for a chapter that is no longer open")
        return _complete_chapter(tree, state, forced=True)
    if isinstance(event, BeginNextChapter):
        if state.phase != Phase.CHAPTER_COMPLETE:
            return _reject(state, "current chapter is not complete")
        return _enter_chapter(tree, state, state.chapter_index + 1)
    raise TypeError(f"Unknown navigation event: {event!r}")
