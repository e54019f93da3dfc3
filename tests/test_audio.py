import asyncio

from exam_engine.audio import AudioLockController, MirroredMediaElement
from tests.support import BlockedMedia


def _playing_controller(ended: list[str] | None = None):
    media = MirroredMediaElement()

    async def on_ended() -> None:
        if ended is not None:
            ended.append("ended")

    audio = AudioLockController(media, on_ended=on_ended)
    audio.load("p1", "/audio/p1.mp3")
    assert asyncio.run(audio.play())
    media.drain_commands()
    return audio, media


def test_load_resets_element() -> None:
    media = MirroredMediaElement()
    audio = AudioLockController(media)
    audio.load("p1", "/audio/p1.mp3")
    assert audio.piece_id == "p1"
    assert media.src == "/audio/p1.mp3"
    assert media.current_time == 0.0
    assert media.drain_commands()[-1] == {"action": "load", "src": "/audio/p1.mp3"}
    assert not audio.locked


def test_play_takes_lock() -> None:
    audio, media = _playing_controller()
    assert audio.locked
    assert audio.playing
    assert not media.paused


def test_pause_is_undone_while_locked() -> None:
    audio, media = _playing_controller()
    audio.on_time_update(12.5)
    media.report(paused=True)
    asyncio.run(audio.on_pause())
    assert media.drain_commands() == [
        {"action": "seek", "position": 12.5},
        {"action": "play"},
    ]
    assert not media.paused
    assert audio.locked


def test_seeking_snaps_back_while_locked() -> None:
    audio, media = _playing_controller()
    audio.on_time_update(8.0)
    assert audio.on_seeking(45.0) == 8.0
    assert media.drain_commands() == [{"action": "seek", "position": 8.0}]
    # a seek report for the snapped-back position needs no correction
    assert audio.on_seeking(8.0) == 8.0
    assert media.drain_commands() == []


def test_time_update_never_moves_backwards_while_locked() -> None:
    audio, _ = _playing_controller()
    audio.on_time_update(20.0)
    audio.on_time_update(3.0)
    assert audio.last_time == 20.0


def test_ended_releases_lock_once() -> None:
    ended: list[str] = []
    audio, _ = _playing_controller(ended)

    async def finish_twice() -> None:
        await audio.on_ended()
        await audio.on_ended()

    asyncio.run(finish_twice())
    assert ended == ["ended"]
    assert not audio.locked
    assert audio.is_completed("p1")
    # a finished piece cannot be played again
    assert asyncio.run(audio.play()) is False


def test_blocked_autoplay_falls_back_to_manual_play() -> None:
    media = BlockedMedia()
    audio = AudioLockController(media)
    audio.load("p1", "/audio/p1.mp3")
    assert asyncio.run(audio.play()) is False
    assert audio.manual_play_required
    assert "user gesture" in audio.last_error
    assert not audio.locked

    media.allowed = True
    assert asyncio.run(audio.play()) is True
    assert audio.locked
    assert not audio.manual_play_required
    assert audio.last_error is None


def test_client_reported_failure_requires_manual_play() -> None:
    audio, _ = _playing_controller()
    audio.on_play_failed("MEDIA_ERR_NETWORK")
    assert audio.manual_play_required
    assert not audio.locked
    assert audio.last_error == "MEDIA_ERR_NETWORK"


def test_missing_audio_url_requires_manual_play() -> None:
    audio = AudioLockController(MirroredMediaElement())
    audio.load("p9", None)
    assert audio.manual_play_required
    assert asyncio.run(audio.play()) is False


def test_reset_releases_everything() -> None:
    audio, media = _playing_controller()
    audio.on_time_update(30.0)
    audio.reset()
    assert audio.piece_id is None
    assert not audio.locked
    assert audio.last_time == 0.0
    assert media.src is None
    assert media.paused
    assert media.drain_commands() == [{"action": "pause"}, {"action": "load", "src": None}]


def test_pause_after_end_is_allowed() -> None:
    audio, media = _playing_controller()
    audio.on_time_update(40.0)
    asyncio.run(audio.on_ended())
    media.report(paused=True)
    asyncio.run(audio.on_pause())
    assert media.drain_commands() == []
    assert media.paused
    assert not audio.playing
