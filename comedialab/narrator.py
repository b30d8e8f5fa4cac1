"""Read one joke field aloud at a time, with progress.

The narrator never queues: starting a new utterance cancels the current one,
and events that arrive for a cancelled utterance are ignored.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

PARTS = ("premise", "setup", "punchline")
UNAVAILABLE_NOTICE = "Speech synthesis is not available in this browser."
EVENT_KINDS = ("boundary", "end", "error", "unavailable")

# Static page served by the bidirectional speech component.
FRONTEND_DIR = Path(__file__).parent / "frontend" / "speech"


@dataclass(frozen=True)
class SpeechEvent:
    utterance_id: int
    kind: str  # one of EVENT_KINDS
    name: str = ""  # boundary name: "word" or "sentence"
    char_index: int = 0


class SpeechEngine(Protocol):
    available: bool

    def speak(self, utterance_id: int, text: str, lang: str) -> None: ...

    def cancel(self) -> None: ...


class SpeechNarrator:
    def __init__(self, engine: Optional[SpeechEngine], lang: str = "pt-BR") -> None:
        self.engine = engine
        self.lang = lang
        self.speaking_part: Optional[str] = None
        self.progress = 0.0
        self._current_id = 0
        self._text = ""
        self._notice_shown = False

    @property
    def is_idle(self) -> bool:
        return self.speaking_part is None

    def _reset(self) -> None:
        self.speaking_part = None
        self.progress = 0.0
        self._text = ""

    def _notice_once(self) -> Optional[str]:
        if self._notice_shown:
            return None
        self._notice_shown = True
        return UNAVAILABLE_NOTICE

    def speak(self, text: str, part: str) -> Optional[str]:
        """Start reading ``text`` for ``part``.

        Returns a notice for the user the first time speech is found to be
        unavailable, otherwise None.
        """
        if part not in PARTS:
            raise ValueError(f"unknown joke part: {part}")
        if not (text or "").strip():
            self.stop()
            return None
        if self.engine is None or not self.engine.available:
            return self._notice_once()
        self.engine.cancel()
        self._current_id += 1
        self._text = text
        self.speaking_part = part
        self.progress = 0.0
        self.engine.speak(self._current_id, text, self.lang)
        return None

    def stop(self) -> None:
        if self.speaking_part is not None and self.engine is not None:
            self.engine.cancel()
        # Anything still in flight belongs to a cancelled utterance now.
        self._current_id += 1
        self._reset()

    def handle(self, event: SpeechEvent) -> Optional[str]:
        """Apply an event from the engine; returns a notice for the user, if any."""
        if event.utterance_id != self._current_id or self.speaking_part is None:
            logger.debug("Ignoring stale speech event %s", event)
            return None
        if event.kind == "boundary":
            if event.name in ("word", "sentence") and self._text:
                self.progress = min(event.char_index / len(self._text) * 100, 100.0)
        elif event.kind == "end":
            self._reset()
        elif event.kind == "error":
            logger.warning("Speech synthesis error while reading %s", self.speaking_part)
            self._reset()
        elif event.kind == "unavailable":
            logger.info("Browser reports no speech synthesis")
            if self.engine is not None:
                self.engine.available = False
            self._reset()
            return self._notice_once()
        return None


def event_from_component(value: Any) -> Optional[SpeechEvent]:
    """Decode a value posted back by the speech bridge, or None if unusable."""
    if not isinstance(value, dict):
        return None
    utterance_id = value.get("utteranceId")
    kind = value.get("kind")
    if isinstance(utterance_id, bool) or not isinstance(utterance_id, int) or kind not in EVENT_KINDS:
        return None
    char_index = value.get("charIndex", 0)
    return SpeechEvent(
        utterance_id=utterance_id,
        kind=kind,
        name=str(value.get("name") or ""),
        char_index=char_index if isinstance(char_index, int) and not isinstance(char_index, bool) else 0,
    )


class BrowserSpeechEngine:
    """Hands Web Speech API commands to the speech bridge component.

    Every command carries a sequence number; the bridge runs each one once,
    no matter how many reruns render it.
    """

    def __init__(self) -> None:
        self.available = True
        # Tells this session's commands apart from a previous page load's.
        self.session = uuid.uuid4().hex
        self.command: Dict[str, Any] = {"session": self.session, "seq": 0, "action": "none"}

    def _issue(self, **command: Any) -> None:
        self.command = {"session": self.session, "seq": self.command["seq"] + 1, **command}

    def speak(self, utterance_id: int, text: str, lang: str) -> None:
        self._issue(action="speak", utteranceId=utterance_id, text=text, lang=lang)

    def cancel(self) -> None:
        self._issue(action="cancel")
