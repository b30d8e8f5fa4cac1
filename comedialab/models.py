from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from comedialab.errors import PersistenceReadFailure

TITLE_PREVIEW_CHARS = 30
IMPORTED_TITLE = "Imported from Diary"
IMPORTED_TAGS = ("diary", "draft")
DIARY_DRAFT_TITLE = "From the diary"
DIARY_DRAFT_TAGS = "diary"
_BASE36 = string.digits + string.ascii_lowercase


class Technique(str, Enum):
    CALLBACK = "Callback"
    PUN = "Pun"
    ONE_LINER = "One-liner"
    IRONY = "Irony"
    MISDIRECTION = "Misdirection"
    RULE_OF_THREE = "Rule of Three"
    EXAGGERATION = "Exaggeration"
    GREG_DEAN = "Greg Dean"
    LEO_LINS = "Leo Lins"
    SURPRISE = "Surprise"
    DRAMATIC_IRONY = "Dramatic Irony"
    SARCASM = "Sarcasm"

    @classmethod
    def from_label(cls, label: Any, default: Optional["Technique"] = None) -> "Technique":
        """Map a stored label back to a technique; unknown labels fall back."""
        fallback = default or cls.MISDIRECTION
        if isinstance(label, cls):
            return label
        for technique in cls:
            if technique.value == label or technique.name == label:
                return technique
        return fallback

    @classmethod
    def labels(cls) -> List[str]:
        return [t.value for t in cls]


DEFAULT_TECHNIQUE = Technique.MISDIRECTION


def now_ms() -> int:
    return int(time.time() * 1000)


class IdGenerator:
    """Timestamp ids that stay unique when two are made in the same millisecond."""

    def __init__(self) -> None:
        self._last_ms = -1
        self._seq = 0

    def __call__(self, ms: int) -> str:
        if ms == self._last_ms:
            self._seq += 1
            return f"{ms}-{self._seq}"
        self._last_ms = ms
        self._seq = 0
        return str(ms)


def imported_id(ms: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"imported-{ms}-{suffix}"


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _timestamp(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _require_id(data: Any, kind: str) -> str:
    if not isinstance(data, dict):
        raise PersistenceReadFailure(f"{kind} is not an object: {data!r}")
    raw_id = data.get("id")
    if not isinstance(raw_id, (str, int)) or isinstance(raw_id, bool) or raw_id == "":
        raise PersistenceReadFailure(f"{kind} has no usable id: {data!r}")
    return str(raw_id)


@dataclass(frozen=True)
class JokeParts:
    premise: str = ""
    setup: str = ""
    punchline: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"premise": self.premise, "setup": self.setup, "punchline": self.punchline}

    @classmethod
    def from_dict(cls, data: Any) -> "JokeParts":
        if not isinstance(data, dict):
            return cls()
        return cls(
            premise=_text(data.get("premise")),
            setup=_text(data.get("setup")),
            punchline=_text(data.get("punchline")),
        )


@dataclass(frozen=True)
class JokeBit:
    id: str
    title: str
    parts: JokeParts
    technique: Technique
    tags: List[str] = field(default_factory=list)
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "parts": self.parts.to_dict(),
            "technique": self.technique.value,
            "tags": list(self.tags),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "JokeBit":
        bit_id = _require_id(data, "joke")
        tags = data.get("tags")
        return cls(
            id=bit_id,
            title=_text(data.get("title")),
            parts=JokeParts.from_dict(data.get("parts")),
            technique=Technique.from_label(data.get("technique")),
            tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
            created_at=_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True)
class DiaryEntry:
    id: str
    text: str
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: Any) -> "DiaryEntry":
        entry_id = _require_id(data, "diary entry")
        return cls(
            id=entry_id,
            text=_text(data.get("text")),
            created_at=_timestamp(data.get("createdAt")),
        )

    def with_text(self, text: str) -> "DiaryEntry":
        return replace(self, text=text)


@dataclass
class Draft:
    """The single in-progress joke on the editor panel."""

    title: str = ""
    premise: str = ""
    setup: str = ""
    punchline: str = ""
    tags: str = ""
    technique: Technique = DEFAULT_TECHNIQUE

    def parts(self) -> JokeParts:
        return JokeParts(premise=self.premise, setup=self.setup, punchline=self.punchline)

    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    def default_title(self) -> str:
        if self.title:
            return self.title
        return self.premise[:TITLE_PREVIEW_CHARS] + "..."

    def apply_parts(self, parts: JokeParts) -> None:
        self.premise = parts.premise
        self.setup = parts.setup
        self.punchline = parts.punchline

    @classmethod
    def from_bit(cls, bit: JokeBit) -> "Draft":
        return cls(
            title=bit.title,
            premise=bit.parts.premise,
            setup=bit.parts.setup,
            punchline=bit.parts.punchline,
            tags=", ".join(bit.tags),
            technique=bit.technique,
        )
