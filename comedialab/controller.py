"""Application state and every operation that changes it.

The Streamlit page only reads :class:`AppState` and calls
:class:`Controller` methods; nothing else mutates the stores, which keeps
the selection set free of dangling ids and the stores most-recent-first.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from comedialab import storage as store
from comedialab.errors import RemoteFailure, ValidationError
from comedialab.filters import ALL_TECHNIQUES, filter_diary, filter_jokes
from comedialab.gateway import ComedyAssistant
from comedialab.models import (
    DIARY_DRAFT_TAGS,
    DIARY_DRAFT_TITLE,
    IMPORTED_TAGS,
    IMPORTED_TITLE,
    DiaryEntry,
    Draft,
    IdGenerator,
    JokeBit,
    JokeParts,
    Technique,
    imported_id,
    now_ms,
)
from comedialab.narrator import SpeechNarrator
from comedialab.shortcuts import PANELS

logger = logging.getLogger(__name__)

FEEDBACK_CLEAR_S = 3.0


@dataclass
class AppState:
    active_panel: str = "editor"
    jokes: List[JokeBit] = field(default_factory=list)
    diary: List[DiaryEntry] = field(default_factory=list)
    selected: Set[str] = field(default_factory=set)

    draft: Draft = field(default_factory=Draft)
    # Bumped whenever the draft is replaced from code, so widgets re-seed.
    draft_version: int = 0
    diary_text: str = ""
    diary_version: int = 0
    editing_diary_id: Optional[str] = None

    search_term: str = ""
    technique_filter: str = ALL_TECHNIQUES
    diary_search_term: str = ""

    theme_context: str = ""
    theme_ideas: List[str] = field(default_factory=list)
    expanded_themes: Dict[int, List[JokeParts]] = field(default_factory=dict)

    refining: bool = False
    loading_themes: bool = False
    expanding: Set[int] = field(default_factory=set)
    feedback: str = "idle"
    feedback_until: float = 0.0
    guide_section: Optional[str] = None


class Controller:
    def __init__(
        self,
        storage: store.KeyValueStorage,
        assistant: ComedyAssistant,
        narrator: SpeechNarrator,
        state: Optional[AppState] = None,
        clock: Callable[[], float] = time.time,
        ms_clock: Callable[[], int] = now_ms,
    ) -> None:
        self.storage = storage
        self.assistant = assistant
        self.narrator = narrator
        self.state = state or AppState()
        self.clock = clock
        self.ms_clock = ms_clock
        self._new_id = IdGenerator()

    @classmethod
    def load(
        cls, storage: store.KeyValueStorage, assistant: ComedyAssistant, narrator: SpeechNarrator, **kwargs
    ) -> "Controller":
        """Build a controller from whatever the storage holds."""
        diary = store.load_diary(storage)
        state = AppState(
            jokes=store.load_jokes(storage),
            diary=diary,
            selected=store.load_selection(storage, (e.id for e in diary)),
        )
        logger.info("Loaded %d jokes and %d diary entries", len(state.jokes), len(state.diary))
        return cls(storage, assistant, narrator, state=state, **kwargs)

    # ============================================================
    # PANELS
    # ============================================================
    def switch_panel(self, panel: str) -> None:
        if panel not in PANELS:
            raise ValueError(f"unknown panel: {panel}")
        self.state.active_panel = panel

    def open_guide_section(self, section_id: str) -> None:
        self.state.active_panel = "guide"
        self.state.guide_section = section_id

    def _replace_draft(self, draft: Draft) -> None:
        self.state.draft = draft
        self.state.draft_version += 1

    # ============================================================
    # PERSISTENCE
    # ============================================================
    def _persist_jokes(self) -> None:
        store.save_jokes(self.storage, self.state.jokes)

    def _persist_diary(self) -> None:
        store.save_diary(self.storage, self.state.diary)

    def _persist_selection(self) -> None:
        store.save_selection(self.storage, self.state.selected)

    # ============================================================
    # BIT STORE
    # ============================================================
    def save_joke(self) -> JokeBit:
        draft = self.state.draft
        if not draft.premise.strip() or not draft.punchline.strip():
            logger.info("Rejected save: premise or punchline is empty")
            raise ValidationError("Premise and punchline are required to save the joke!")
        ms = self.ms_clock()
        bit = JokeBit(
            id=self._new_id(ms),
            title=draft.default_title(),
            parts=draft.parts(),
            technique=draft.technique,
            tags=draft.tag_list(),
            created_at=ms,
        )
        self.state.jokes = [bit] + self.state.jokes
        self._persist_jokes()
        self._replace_draft(Draft(technique=draft.technique))
        self.state.active_panel = "library"
        logger.info("Saved joke %s", bit.id)
        return bit

    def remove_joke(self, joke_id: str) -> None:
        self.state.jokes = [j for j in self.state.jokes if j.id != joke_id]
        self._persist_jokes()

    def bulk_import(self) -> int:
        """Turn every selected diary entry into a draft bit; returns how many."""
        selected = self.state.selected
        if not selected:
            logger.info("Rejected bulk import: nothing selected")
            raise ValidationError("Select at least one diary entry to import.")
        ms = self.ms_clock()
        new_bits = [
            JokeBit(
                id=imported_id(ms),
                title=IMPORTED_TITLE,
                parts=JokeParts(premise=entry.text),
                technique=Technique.MISDIRECTION,
                tags=list(IMPORTED_TAGS),
                created_at=ms,
            )
            for entry in self.state.diary
            if entry.id in selected
        ]
        # Both collections change before either is written.
        self.state.jokes = new_bits + self.state.jokes
        self.state.selected = set()
        self._persist_jokes()
        self._persist_selection()
        self.state.active_panel = "library"
        logger.info("Imported %d diary entries", len(new_bits))
        return len(new_bits)

    def load_joke_into_lab(self, joke_id: str) -> None:
        bit = next((j for j in self.state.jokes if j.id == joke_id), None)
        if bit is None:
            return
        self._replace_draft(Draft.from_bit(bit))
        self.state.active_panel = "editor"

    def filtered_jokes(self) -> List[JokeBit]:
        return filter_jokes(self.state.jokes, self.state.search_term, self.state.technique_filter)

    def clear_library_filters(self) -> None:
        self.state.search_term = ""
        self.state.technique_filter = ALL_TECHNIQUES

    # ============================================================
    # DIARY STORE
    # ============================================================
    def set_diary_text(self, text: str) -> None:
        self.state.diary_text = text

    def add_diary_entry(self) -> Optional[DiaryEntry]:
        text = self.state.diary_text
        if not text.strip():
            return None
        editing = self.state.editing_diary_id
        if editing is not None:
            self.state.diary = [e.with_text(text) if e.id == editing else e for e in self.state.diary]
            entry = next((e for e in self.state.diary if e.id == editing), None)
            self.state.editing_diary_id = None
        else:
            ms = self.ms_clock()
            entry = DiaryEntry(id=self._new_id(ms), text=text, created_at=ms)
            self.state.diary = [entry] + self.state.diary
        self._persist_diary()
        self.state.diary_text = ""
        self.state.diary_version += 1
        return entry

    def begin_edit(self, entry_id: str) -> None:
        entry = next((e for e in self.state.diary if e.id == entry_id), None)
        if entry is None:
            return
        self.state.diary_text = entry.text
        self.state.editing_diary_id = entry.id
        self.state.diary_version += 1

    def cancel_edit(self) -> None:
        self.state.editing_diary_id = None
        self.state.diary_text = ""
        self.state.diary_version += 1

    def remove_diary_entry(self, entry_id: str) -> None:
        self.state.diary = [e for e in self.state.diary if e.id != entry_id]
        self._persist_diary()
        if entry_id in self.state.selected:
            self.state.selected = self.state.selected - {entry_id}
            self._persist_selection()
        if self.state.editing_diary_id == entry_id:
            self.cancel_edit()

    def toggle_select(self, entry_id: str) -> None:
        if entry_id in self.state.selected:
            self.state.selected = self.state.selected - {entry_id}
        elif any(e.id == entry_id for e in self.state.diary):
            self.state.selected = self.state.selected | {entry_id}
        else:
            return
        self._persist_selection()

    @property
    def all_selected(self) -> bool:
        return len(self.state.selected) == len(self.state.diary)

    def select_all(self) -> None:
        ids = {e.id for e in self.state.diary}
        if self.state.selected == ids:
            return
        self.state.selected = ids
        self._persist_selection()

    def select_none(self) -> None:
        if not self.state.selected:
            return
        self.state.selected = set()
        self._persist_selection()

    def toggle_select_all(self) -> None:
        if self.all_selected:
            self.select_none()
        else:
            self.select_all()

    def load_diary_into_lab(self, entry_id: str) -> None:
        entry = next((e for e in self.state.diary if e.id == entry_id), None)
        if entry is None:
            return
        self._replace_draft(
            Draft(
                title=DIARY_DRAFT_TITLE,
                premise=entry.text,
                tags=DIARY_DRAFT_TAGS,
                technique=self.state.draft.technique,
            )
        )
        self.state.active_panel = "editor"

    def filtered_diary(self) -> List[DiaryEntry]:
        return filter_diary(self.state.diary, self.state.diary_search_term)

    # ============================================================
    # AI
    # ============================================================
    @property
    def feedback_status(self) -> str:
        state = self.state
        if state.feedback in ("success", "error") and self.clock() >= state.feedback_until:
            state.feedback = "idle"
        return state.feedback

    def _set_feedback(self, status: str) -> None:
        self.state.feedback = status
        self.state.feedback_until = self.clock() + FEEDBACK_CLEAR_S

    def refine_draft(self) -> bool:
        """Ask the assistant to improve the draft; returns True on success."""
        draft = self.state.draft
        if not draft.premise.strip():
            logger.info("Rejected refine: premise is empty")
            raise ValidationError("A premise is required to refine the joke!")
        if self.state.refining:
            return False
        self.state.refining = True
        self.state.feedback = "refining"
        try:
            refined = self.assistant.refine_joke(draft.parts(), draft.technique)
        except RemoteFailure as e:
            logger.warning("Refine failed: %s", e)
            self._set_feedback("error")
            return False
        except Exception:
            self._set_feedback("error")
            raise
        finally:
            self.state.refining = False
        # Only the three parts change; title and tags stay as the user left them.
        self.state.draft.apply_parts(refined)
        self.state.draft_version += 1
        self._set_feedback("success")
        return True

    def fetch_themes(self, context: Optional[str] = None) -> List[str]:
        if self.state.loading_themes:
            return self.state.theme_ideas
        self.state.loading_themes = True
        self.state.expanded_themes = {}
        try:
            self.state.theme_ideas = self.assistant.generate_themes(context)
        finally:
            self.state.loading_themes = False
        return self.state.theme_ideas

    def expand_theme(self, index: int) -> List[JokeParts]:
        if index in self.state.expanding or not 0 <= index < len(self.state.theme_ideas):
            return self.state.expanded_themes.get(index, [])
        self.state.expanding = self.state.expanding | {index}
        try:
            suggestions = self.assistant.expand_theme(self.state.theme_ideas[index])
        finally:
            self.state.expanding = self.state.expanding - {index}
        self.state.expanded_themes = {**self.state.expanded_themes, index: suggestions}
        return suggestions

    def load_theme_into_lab(self, index: int) -> None:
        self._replace_draft(Draft(premise=self.state.theme_ideas[index], technique=self.state.draft.technique))
        self.state.active_panel = "editor"

    def load_suggestion_into_lab(self, index: int, n: int) -> None:
        suggestion = self.state.expanded_themes[index][n]
        self._replace_draft(
            Draft(
                title=self.state.theme_ideas[index],
                premise=suggestion.premise,
                setup=suggestion.setup,
                punchline=suggestion.punchline,
                technique=self.state.draft.technique,
            )
        )
        self.state.active_panel = "editor"

    # ============================================================
    # SPEECH
    # ============================================================
    def speak_part(self, part: str) -> Optional[str]:
        return self.narrator.speak(getattr(self.state.draft, part), part)
