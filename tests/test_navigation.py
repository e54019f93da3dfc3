import pytest

from exam_engine import navigation
from exam_engine.navigation import (
    AudioEnded,
    AudioStarted,
    BeginNextChapter,
    ConfirmUnanswered,
    EnterChapter,
    EnterItem,
    GoTo,
    LeaveChapter,
    NavState,
    Next,
    Phase,
    Previous,
    SaveAnswers,
    SelectAnswer,
    SessionFinished,
    Timeout,
    ToggleMark,
)
from exam_engine.tree import TestTree
from tests.support import grammar_tree


def apply(tree: TestTree, state: NavState, *events) -> NavState:
    for event in events:
        transition = navigation.reduce(tree, state, event)
        assert transition.accepted, transition.reason
        state = transition.state
    return state


def listening_done(tree: TestTree) -> NavState:
    """State at the last listening piece with both clips heard."""
    state = navigation.start(tree).state
    return apply(tree, state, AudioStarted(), AudioEnded(), Next(), AudioStarted(), AudioEnded())


def test_start_enters_first_chapter(tree: TestTree) -> None:
    transition = navigation.start(tree)
    assert transition.state.chapter_index == 0
    assert transition.state.item_index == 0
    assert transition.state.phase == Phase.AWAITING_INTRO
    assert transition.effects == (
        EnterChapter(0, 600),
        EnterItem(0, 0, Phase.AWAITING_INTRO),
    )


def test_next_blocked_until_audio_has_played(tree: TestTree) -> None:
    state = navigation.start(tree).state
    assert not navigation.reduce(tree, state, Next()).accepted

    state = apply(tree, state, AudioStarted())
    assert state.phase == Phase.PLAYING_AUDIO
    assert state.played == {0}
    rejected = navigation.reduce(tree, state, Next(confirm=True))
    assert not rejected.accepted
    assert rejected.state is state

    state = apply(tree, state, AudioEnded())
    transition = navigation.reduce(tree, state, Next())
    assert transition.accepted
    assert transition.state.item_index == 1
    assert transition.state.phase == Phase.AWAITING_INTRO
    save, enter = transition.effects
    assert isinstance(save, SaveAnswers) and save.scope == "piece"
    assert [q.id for q in save.questions] == ["l1", "l2"]
    assert enter == EnterItem(0, 1, Phase.AWAITING_INTRO)


def test_audio_events_out_of_phase_are_rejected(tree: TestTree) -> None:
    state = navigation.start(tree).state
    assert not navigation.reduce(tree, state, AudioEnded()).accepted
    state = apply(tree, state, AudioStarted())
    assert not navigation.reduce(tree, state, AudioStarted()).accepted


def test_last_item_asks_to_confirm_unanswered(tree: TestTree) -> None:
    state = listening_done(tree)
    state = apply(tree, state, SelectAnswer("l1", "A"))

    transition = navigation.reduce(tree, state, Next())
    assert not transition.accepted
    assert transition.effects == (ConfirmUnanswered(("l2", "l3")),)
    assert transition.state.chapter_index == 0

    transition = navigation.reduce(tree, state, Next(confirm=True))
    assert transition.accepted
    assert transition.state.phase == Phase.CHAPTER_COMPLETE
    leave, save = transition.effects
    assert leave == LeaveChapter(0, forced=False)
    assert save.scope == "chapter"
    assert [q.id for q in save.questions] == ["l1", "l2", "l3"]


def test_answered_chapter_completes_without_confirm(tree: TestTree) -> None:
    state = listening_done(tree)
    state = apply(tree, state, SelectAnswer("l1", "A"), SelectAnswer("l2", "B"), SelectAnswer("l3", "C"))
    transition = navigation.reduce(tree, state, Next())
    assert transition.accepted
    assert transition.state.phase == Phase.CHAPTER_COMPLETE


def test_begin_next_chapter(tree: TestTree) -> None:
    state = apply(tree, listening_done(tree), Next(confirm=True))
    assert not navigation.reduce(tree, state, Next()).accepted

    transition = navigation.reduce(tree, state, BeginNextChapter())
    assert transition.state.chapter_index == 1
    assert transition.state.item_index == 0
    assert transition.state.phase == Phase.ANSWERING
    assert transition.state.played == frozenset()
    assert transition.effects == (EnterChapter(1, 600), EnterItem(1, 0, Phase.ANSWERING))


def test_last_chapter_finishes_session() -> None:
    tree = grammar_tree(count=1)
    state = navigation.start(tree).state
    assert state.phase == Phase.ANSWERING
    state = apply(tree, state, SelectAnswer("g1", "A"), Next())
    transition = navigation.reduce(tree, state, BeginNextChapter())
    assert transition.state.phase == Phase.SESSION_COMPLETE
    assert transition.state.is_finished
    assert transition.effects == (SessionFinished(),)

    for event in (Next(confirm=True), SelectAnswer("g1", "B"), Timeout(0), Previous()):
        assert not navigation.reduce(tree, transition.state, event).accepted


def test_grammar_items_have_no_piece_saves() -> None:
    tree = grammar_tree(count=3)
    state = navigation.start(tree).state
    transition = navigation.reduce(tree, state, Next())
    assert transition.effects == (EnterItem(0, 1, Phase.ANSWERING),)


def test_select_answer_rules(tree: TestTree) -> None:
    state = navigation.start(tree).state
    state = apply(tree, state, SelectAnswer("l1", "A"), SelectAnswer("l1", "B"))
    assert state.answers == {"l1": "B"}

    not_reached = navigation.reduce(tree, state, SelectAnswer("l3", "A"))
    assert not not_reached.accepted
    other_chapter = navigation.reduce(tree, state, SelectAnswer("g1", "A"))
    assert not other_chapter.accepted
    unknown = navigation.reduce(tree, state, SelectAnswer("zz", "A"))
    assert not unknown.accepted

    state = apply(tree, state, SelectAnswer("l1", None))
    assert state.answers == {}


def test_previous_goes_back_to_answering(tree: TestTree) -> None:
    state = navigation.start(tree).state
    state = apply(tree, state, AudioStarted(), AudioEnded())
    assert not navigation.reduce(tree, state, Previous()).accepted

    state = apply(tree, state, Next())
    assert state.phase == Phase.AWAITING_INTRO
    transition = navigation.reduce(tree, state, Previous())
    assert transition.state.item_index == 0
    assert transition.state.phase == Phase.ANSWERING
    assert [q.id for q in transition.effects[0].questions] == ["l3"]

    # p2 was never played, so going forward again waits for its audio
    state = apply(tree, transition.state, Next())
    assert state.phase == Phase.AWAITING_INTRO


def test_heard_piece_is_not_replayed(tree: TestTree) -> None:
    state = listening_done(tree)
    state = apply(tree, state, Previous(), Next())
    assert state.item_index == 1
    assert state.phase == Phase.ANSWERING


def test_goto_only_reached_items(tree: TestTree) -> None:
    state = navigation.start(tree).state
    state = apply(tree, state, AudioStarted(), AudioEnded())
    assert not navigation.reduce(tree, state, GoTo("l3")).accepted
    assert not navigation.reduce(tree, state, GoTo("r1")).accepted

    state = listening_done(tree)
    state = apply(tree, state, GoTo("l1"))
    assert state.item_index == 0
    assert state.phase == Phase.ANSWERING
    state = apply(tree, state, GoTo("l3"))
    assert state.item_index == 1
    assert state.phase == Phase.ANSWERING


def test_timeout_forces_chapter_end(tree: TestTree) -> None:
    state = apply(tree, navigation.start(tree).state, AudioStarted())
    transition = navigation.reduce(tree, state, Timeout(0))
    assert transition.accepted
    assert transition.state.phase == Phase.CHAPTER_COMPLETE
    assert transition.effects[0] == LeaveChapter(0, forced=True)

    assert not navigation.reduce(tree, state, Timeout(1)).accepted
    assert not navigation.reduce(tree, transition.state, Timeout(0)).accepted


def test_toggle_mark(tree: TestTree) -> None:
    state = navigation.start(tree).state
    state = apply(tree, state, ToggleMark("l2"))
    assert state.marked == {"l2"}
    state = apply(tree, state, ToggleMark("l2"))
    assert state.marked == frozenset()
    assert not navigation.reduce(tree, state, ToggleMark("zz")).accepted


def test_unknown_event_type(tree: TestTree) -> None:
    with pytest.raises(TypeError):
        navigation.reduce(tree, NavState(), object())
