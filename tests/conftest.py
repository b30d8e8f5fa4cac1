"""Shared fixtures: an in-memory controller with fake AI and speech."""

from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from comedialab.controller import Controller
from comedialab.errors import RemoteFailure
from comedialab.models import JokeParts, Technique
from comedialab.narrator import SpeechNarrator
from comedialab.storage import MemoryStorage


class FakeAssistant:
    enabled = True

    def __init__(self) -> None:
        self.themes: List[str] = []
        self.suggestions: List[JokeParts] = []
        self.refined: Optional[JokeParts] = None
        self.refine_calls: List[Tuple[JokeParts, Technique]] = []
        self.theme_contexts: List[Optional[str]] = []

    def generate_themes(self, context=None):
        self.theme_contexts.append(context)
        return list(self.themes)

    def expand_theme(self, theme):
        return list(self.suggestions)

    def refine_joke(self, parts, technique):
        self.refine_calls.append((parts, technique))
        if self.refined is None:
            raise RemoteFailure("boom")
        return self.refined


class FakeEngine:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.spoken: List[Tuple[int, str, str]] = []
        self.cancels = 0

    def speak(self, utterance_id, text, lang):
        self.spoken.append((utterance_id, text, lang))

    def cancel(self):
        self.cancels += 1


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def controller(storage, assistant, engine, clock) -> Controller:
    ms = iter(range(1_700_000_000_000, 1_700_000_000_000 + 10_000))
    return Controller(
        storage,
        assistant,
        SpeechNarrator(engine),
        clock=clock,
        ms_clock=lambda: next(ms),
    )


def add_notes(controller: Controller, *texts: str) -> None:
    for text in texts:
        controller.set_diary_text(text)
        controller.add_diary_entry()
