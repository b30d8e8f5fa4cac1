"""Tests for comedialab.narrator."""

from __future__ import annotations

import pytest

from comedialab.narrator import (
    FRONTEND_DIR,
    UNAVAILABLE_NOTICE,
    BrowserSpeechEngine,
    SpeechEvent,
    SpeechNarrator,
    event_from_component,
)

from conftest import FakeEngine


def _current_id(engine: FakeEngine) -> int:
    return engine.spoken[-1][0]


class TestStateMachine:
    def test_speak_enters_speaking_state(self, engine) -> None:
        narrator = SpeechNarrator(engine, lang="en-US")

        narrator.speak("hello there", "premise")

        assert narrator.speaking_part == "premise"
        assert narrator.progress == 0
        assert engine.spoken[-1][1:] == ("hello there", "en-US")

    def test_empty_text_stays_idle(self, engine) -> None:
        narrator = SpeechNarrator(engine)

        assert narrator.speak("   ", "setup") is None

        assert narrator.is_idle
        assert engine.spoken == []

    def test_new_utterance_cancels_previous(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("first", "premise")
        cancels = engine.cancels

        narrator.speak("second", "punchline")

        assert engine.cancels == cancels + 1
        assert narrator.speaking_part == "punchline"

    def test_end_and_error_return_to_idle(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("text", "premise")
        narrator.handle(SpeechEvent(_current_id(engine), "end"))
        assert narrator.is_idle

        narrator.speak("text", "setup")
        narrator.handle(SpeechEvent(_current_id(engine), "error"))
        assert narrator.is_idle
        assert narrator.progress == 0

    def test_unknown_part_is_rejected(self, engine) -> None:
        with pytest.raises(ValueError):
            SpeechNarrator(engine).speak("x", "title")


class TestProgress:
    def test_boundaries_update_progress(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("0123456789", "premise")
        utterance = _current_id(engine)

        narrator.handle(SpeechEvent(utterance, "boundary", "word", 5))
        assert narrator.progress == 50

        narrator.handle(SpeechEvent(utterance, "boundary", "sentence", 15))
        assert narrator.progress == 100

    def test_other_boundary_names_are_ignored(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("0123456789", "premise")

        narrator.handle(SpeechEvent(_current_id(engine), "boundary", "mark", 5))

        assert narrator.progress == 0

    def test_events_from_cancelled_utterance_are_discarded(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("old text here", "premise")
        old = _current_id(engine)
        narrator.speak("new text", "setup")

        narrator.handle(SpeechEvent(old, "boundary", "word", 4))
        narrator.handle(SpeechEvent(old, "end"))

        assert narrator.speaking_part == "setup"
        assert narrator.progress == 0

    def test_events_after_stop_are_discarded(self, engine) -> None:
        narrator = SpeechNarrator(engine)
        narrator.speak("text", "premise")
        utterance = _current_id(engine)

        narrator.stop()
        narrator.handle(SpeechEvent(utterance, "boundary", "word", 2))

        assert narrator.is_idle
        assert narrator.progress == 0


def test_unavailable_engine_notices_once() -> None:
    narrator = SpeechNarrator(FakeEngine(available=False))

    assert narrator.speak("hi", "premise") == UNAVAILABLE_NOTICE
    assert narrator.speak("hi", "premise") is None
    assert narrator.is_idle

    assert SpeechNarrator(None).speak("hi", "premise") == UNAVAILABLE_NOTICE



class TestBrowserBridge:
    def test_commands_are_sequenced(self) -> None:
        engine = BrowserSpeechEngine()
        narrator = SpeechNarrator(engine, lang="pt-BR")

        narrator.speak("first", "premise")
        first = engine.command
        narrator.speak("second", "setup")
        second = engine.command

        assert first["action"] == "speak"
        assert (second["action"], second["text"], second["lang"]) == ("speak", "second", "pt-BR")
        assert second["seq"] > first["seq"]
        assert second["session"] == first["session"] == engine.session

        narrator.stop()
        assert engine.command["action"] == "cancel"
        assert engine.command["seq"] > second["seq"]

    def test_sessions_differ(self) -> None:
        assert BrowserSpeechEngine().session != BrowserSpeechEngine().session

    def test_posted_events_drive_the_narrator_back_to_idle(self) -> None:
        engine = BrowserSpeechEngine()
        narrator = SpeechNarrator(engine)
        narrator.speak("0123456789", "punchline")
        utterance = engine.command["utteranceId"]

        narrator.handle(event_from_component(
            {"utteranceId": utterance, "kind": "boundary", "name": "word", "charIndex": 5}
        ))
        assert narrator.progress == 50

        end = event_from_component({"utteranceId": utterance, "kind": "end"})
        narrator.handle(end)
        assert narrator.is_idle

        # The bridge keeps returning its last value on later reruns.
        narrator.speak("again", "premise")
        narrator.handle(end)
        assert narrator.speaking_part == "premise"

    def test_unavailable_in_browser(self) -> None:
        engine = BrowserSpeechEngine()
        narrator = SpeechNarrator(engine)
        narrator.speak("text", "premise")
        event = event_from_component({"utteranceId": engine.command["utteranceId"], "kind": "unavailable"})

        assert narrator.handle(event) == UNAVAILABLE_NOTICE
        assert narrator.is_idle
        assert engine.available is False
        assert narrator.speak("text", "premise") is None

    @pytest.mark.parametrize(
        "value",
        [None, "end", {}, {"utteranceId": "1", "kind": "end"}, {"utteranceId": True, "kind": "end"},
         {"utteranceId": 1, "kind": "paused"}],
    )
    def test_unusable_values_are_ignored(self, value) -> None:
        assert event_from_component(value) is None

    def test_bad_char_index_defaults_to_zero(self) -> None:
        event = event_from_component({"utteranceId": 2, "kind": "boundary", "name": "word", "charIndex": "x"})

        assert event == SpeechEvent(2, "boundary", "word", 0)

    def test_frontend_page_ships_with_the_package(self) -> None:
        page = (FRONTEND_DIR / "index.html").read_text(encoding="utf-8")

        assert "streamlit:componentReady" in page
        assert "streamlit:setComponentValue" in page
