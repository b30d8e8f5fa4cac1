# app.py: ComediaLab (stand-up writers' room)
import logging
from typing import Optional

import streamlit as st
import streamlit.components.v1 as components

from comedialab.config import configure_logging, load_settings
from comedialab.controller import Controller
from comedialab.errors import ValidationError
from comedialab.exports import (
    EXPORT_FORMATS,
    build_exports,
    export_signature,
    format_date,
)
from comedialab.filters import ALL_TECHNIQUES, count_words
from comedialab.gateway import ComedyAssistant
from comedialab.guide import (
    FRAGMENT_BRIDGE_SCRIPT,
    SECTION_PARAM,
    SECTIONS,
    section_from_fragment,
    share_payload,
)
from comedialab.models import Technique
from comedialab.narrator import (
    FRONTEND_DIR,
    PARTS,
    BrowserSpeechEngine,
    SpeechNarrator,
    event_from_component,
)
from comedialab.shortcuts import (
    BULK_IMPORT,
    BUTTON_LABELS,
    PANELS,
    REFINE,
    SAVE,
    shortcut_script,
)
from comedialab.storage import JsonFileStorage

# ============================================================
# CONFIG
# ============================================================
st.set_page_config(
    page_title="ComediaLab", layout="wide", initial_sidebar_state="expanded"
)

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level)
logger = logging.getLogger("comedialab.app")
_speech_bridge = components.declare_component("speech_bridge", path=str(FRONTEND_DIR))

PART_LABELS = {
    "premise": ("1. Premise", "E.g. Why do delivery apps charge a service fee if I'm the one who had to get up to grab the food?"),
    "setup": ("2. Setup", "Where does it happen? How do you feel?"),
    "punchline": ("3. Punchline", "What breaks the expectation?"),
}
# Toasts dismiss themselves, so the status never outlives its delay on screen.
FEEDBACK_TOASTS = {
    "success": ("✓ Joke refined!", "✨"),
    "error": ("✗ The AI could not refine this joke. Try again.", "⚠️"),
}


# ============================================================
# SESSION INIT
# ============================================================
def init_state() -> None:
    if "controller" in st.session_state:
        return
    engine = BrowserSpeechEngine()
    st.session_state.speech_engine = engine
    st.session_state.controller = Controller.load(
        JsonFileStorage(SETTINGS.data_dir),
        ComedyAssistant(SETTINGS),
        SpeechNarrator(engine, lang=SETTINGS.speech_lang),
    )
    st.session_state._flash = None
    st.session_state._deep_link_checked = False


def ctl() -> Controller:
    return st.session_state.controller


def flash(kind: str, message: str, icon: Optional[str] = None) -> None:
    """Show a message after the next rerun."""
    st.session_state._flash = (kind, message, icon)


def show_flash() -> None:
    pending = st.session_state.get("_flash")
    if not pending:
        return
    kind, message, icon = pending
    st.session_state._flash = None
    if kind == "toast":
        st.toast(message, icon=icon)
    else:
        getattr(st, kind)(message)


def check_deep_link() -> None:
    if st.session_state.get("_deep_link_checked"):
        return
    st.session_state._deep_link_checked = True
    section_id = section_from_fragment(st.query_params.get(SECTION_PARAM))
    if section_id:
        ctl().open_guide_section(section_id)


def sync_speech() -> None:
    """Render the speech bridge and apply the last event it posted back."""
    engine = st.session_state.speech_engine
    value = _speech_bridge(command=engine.command, key="speech_bridge", default=None)
    event = event_from_component(value)
    if event is None:
        return
    notice = ctl().narrator.handle(event)
    if notice:
        st.toast(notice, icon="🔇")


# ============================================================
# ACTIONS
# ============================================================
def do_save() -> None:
    try:
        bit = ctl().save_joke()
    except ValidationError as e:
        st.error(str(e))
        return
    flash("success", f"✓ Saved “{bit.title}” to your library")
    st.rerun()


def do_refine() -> None:
    c = ctl()
    try:
        with st.spinner("Refining with AI..."):
            c.refine_draft()
    except ValidationError as e:
        st.warning(str(e))
        return
    status = c.feedback_status
    if status in FEEDBACK_TOASTS:
        message, icon = FEEDBACK_TOASTS[status]
        flash("toast", message, icon)
    st.rerun()


def do_bulk_import() -> None:
    try:
        count = ctl().bulk_import()
    except ValidationError as e:
        st.warning(str(e))
        return
    flash("success", f"{count} ideas imported as drafts into your library!")
    st.rerun()


def do_speak(part: str) -> None:
    notice = ctl().speak_part(part)
    if notice:
        flash("warning", notice)
    st.rerun()


def _clear_library_filters() -> None:
    st.session_state.library_search = ""
    st.session_state.library_technique = ALL_TECHNIQUES
    ctl().clear_library_filters()


def _clear_diary_search() -> None:
    st.session_state.diary_search = ""
    ctl().state.diary_search_term = ""


def _toggle_diary_selection(entry_id: str) -> None:
    ctl().toggle_select(entry_id)


# ============================================================
# SIDEBAR
# ============================================================
def render_sidebar() -> None:
    c = ctl()
    st.sidebar.title("ComediaLab")
    st.sidebar.caption("WRITERS ROOM")
    for i, panel in enumerate(PANELS):
        label = BUTTON_LABELS[f"panel:{panel}"]
        is_active = c.state.active_panel == panel
        if st.sidebar.button(
            label,
            key=f"nav_{panel}",
            type="primary" if is_active else "secondary",
            use_container_width=True,
            help=f"Shortcut: {i + 1}",
        ):
            c.switch_panel(panel)
            st.rerun()

    st.sidebar.markdown("---")
    st.sidebar.caption(
        f"📚 {len(c.state.jokes)} jokes • 📓 {len(c.state.diary)} notes"
    )
    if c.assistant.enabled:
        st.sidebar.caption(f"🤖 AI: {SETTINGS.model}")
    else:
        st.sidebar.info(
            "🤖 AI features are off\n\n"
            "Set GEMINI_API_KEY as an environment variable or Streamlit secret."
        )
    st.sidebar.caption(
        "⌨️ 1-5 switch panels • Ctrl/⌘+S save • Ctrl/⌘+R refine • "
        "Ctrl/⌘+Shift+I import diary selection"
    )


# ============================================================
# EDITOR
# ============================================================
def render_editor() -> None:
    c = ctl()
    state = c.state
    draft = state.draft
    v = state.draft_version
    narrator = c.narrator

    st.header("Create a new bit")
    st.caption("Structure your idea following classic stand-up technique.")

    left, right = st.columns([2.4, 1])
    with left:
        for part in PARTS:
            label, placeholder = PART_LABELS[part]
            value = st.text_area(
                f"**{label}**",
                value=getattr(draft, part),
                key=f"draft_{part}_{v}",
                placeholder=placeholder,
                height=110 if part != "setup" else 140,
            )
            setattr(draft, part, value)
            count_col, speak_col = st.columns([4, 1])
            count_col.caption(f"{count_words(value)} words")
            if narrator.speaking_part == part:
                count_col.progress(int(narrator.progress), text="🔊 Reading...")
            with speak_col:
                if narrator.speaking_part == part:
                    if st.button("⏹ Stop", key=f"stop_{part}"):
                        narrator.stop()
                        st.rerun()
                elif st.button("🔊 Listen", key=f"speak_{part}", disabled=not value.strip()):
                    do_speak(part)

    with right:
        draft.title = st.text_input(
            "Title (optional)",
            value=draft.title,
            key=f"draft_title_{v}",
            placeholder="E.g. The slow Wi-Fi saga",
        )
        draft.tags = st.text_input(
            "Tags (comma separated)",
            value=draft.tags,
            key=f"draft_tags_{v}",
            placeholder="E.g. food, tech, relationships",
        )
        labels = Technique.labels()
        chosen = st.selectbox(
            "Technique",
            labels,
            index=labels.index(draft.technique.value),
            key=f"draft_technique_{v}",
        )
        draft.technique = Technique.from_label(chosen)

        if st.button(
            BUTTON_LABELS[REFINE],
            key="refine_btn",
            disabled=state.refining or not c.assistant.enabled,
            use_container_width=True,
            help="Ctrl/⌘+R",
        ):
            do_refine()
        if st.button(
            BUTTON_LABELS[SAVE],
            key="save_btn",
            type="primary",
            use_container_width=True,
            help="Ctrl/⌘+S",
        ):
            do_save()

        with st.expander("💡 Pro tip", expanded=False):
            st.caption(
                "Greg Dean: find the Connector in your setup, the word that allows two "
                "readings. Leo Lins: map every concept around the topic and link two "
                "distant points."
            )


# ============================================================
# LIBRARY
# ============================================================
def render_exports(jokes) -> None:
    """Build the export files on request only; they go stale when the list changes."""
    signature = export_signature(jokes)
    prepared = st.session_state.get("_export")
    if prepared is None or prepared[0] != signature:
        if st.button("⬇️ Prepare export", key="prepare_export"):
            with st.spinner("Building files..."):
                st.session_state._export = (signature, build_exports(jokes))
            st.rerun()
        return

    files = prepared[1]
    export_cols = st.columns(len(EXPORT_FORMATS))
    for col, (fmt, (label, mime, _)) in zip(export_cols, EXPORT_FORMATS.items()):
        col.download_button(
            label,
            data=files[fmt],
            file_name=f"comedialab_jokes.{fmt}",
            mime=mime,
            key=f"export_{fmt}",
        )


def render_library() -> None:
    c = ctl()
    state = c.state
    st.header("My Jokes")

    search_col, tech_col, clear_col = st.columns([3, 2, 1])
    with search_col:
        state.search_term = st.text_input(
            "Search",
            key="library_search",
            placeholder="Search everything...",
            label_visibility="collapsed",
        )
    with tech_col:
        options = [ALL_TECHNIQUES] + Technique.labels()
        state.technique_filter = st.selectbox(
            "Technique",
            options,
            key="library_technique",
            format_func=lambda o: "All techniques" if o == ALL_TECHNIQUES else o,
            label_visibility="collapsed",
        )
    with clear_col:
        st.button("Clear filters", key="clear_filters", on_click=_clear_library_filters)

    jokes = c.filtered_jokes()
    st.caption(f"{len(jokes)} of {len(state.jokes)} jokes")

    if jokes:
        render_exports(jokes)

    if not state.jokes:
        st.info("Your library is empty. Write a bit in the Lab and save it here.")
        return
    if not jokes:
        st.info("No jokes match these filters.")
        return

    grid = st.columns(2)
    for i, joke in enumerate(jokes):
        with grid[i % 2].container(border=True):
            top_col, del_col = st.columns([5, 1])
            top_col.caption(
                f"**{joke.technique.value}**"
                + (" • " + " ".join(f"#{t}" for t in joke.tags) if joke.tags else "")
            )
            if del_col.button("🗑️", key=f"del_joke_{joke.id}", help="Remove"):
                c.remove_joke(joke.id)
                st.rerun()
            st.subheader(joke.title)
            st.write(joke.parts.premise)
            if joke.parts.setup:
                st.markdown(f"_“{joke.parts.setup}”_")
            if joke.parts.punchline:
                st.markdown(f"**→ {joke.parts.punchline}**")
            act_col, date_col = st.columns([2, 1])
            if act_col.button("✏️ Refine in Lab", key=f"lab_joke_{joke.id}"):
                c.load_joke_into_lab(joke.id)
                st.rerun()
            date_col.caption(format_date(joke.created_at))


# ============================================================
# THEMES
# ============================================================
def render_themes() -> None:
    c = ctl()
    state = c.state
    st.header("Theme Inspirer")
    st.caption("Creative block? Let's dig up something funny.")

    ctx_col, btn_col = st.columns([3, 1])
    with ctx_col:
        state.theme_context = st.text_input(
            "Context",
            key="theme_context",
            placeholder="Context (e.g. work, marriage, gym)",
            label_visibility="collapsed",
        )
    with btn_col:
        if st.button(
            "🎲 Generate themes",
            key="generate_themes",
            disabled=state.loading_themes or not c.assistant.enabled,
            use_container_width=True,
        ):
            with st.spinner("Looking for themes..."):
                ideas = c.fetch_themes(state.theme_context or None)
            if not ideas:
                flash("info", "No themes came back this time.")
            st.rerun()

    for index, idea in enumerate(state.theme_ideas):
        with st.container(border=True):
            st.markdown(f"**{idea}**")
            exp_col, use_col = st.columns(2)
            if exp_col.button(
                "🧠 Expand",
                key=f"expand_{index}",
                disabled=index in state.expanding or not c.assistant.enabled,
            ):
                with st.spinner("Sketching approaches..."):
                    c.expand_theme(index)
                st.rerun()
            if use_col.button("✍️ Use in Lab", key=f"theme_lab_{index}"):
                c.load_theme_into_lab(index)
                st.rerun()

            for n, suggestion in enumerate(state.expanded_themes.get(index, [])):
                st.markdown(f"*Premise:* {suggestion.premise}")
                st.markdown(f"*Setup:* {suggestion.setup}")
                st.markdown(f"*Punchline:* **{suggestion.punchline}**")
                if st.button("Take this to the Lab", key=f"suggestion_{index}_{n}"):
                    c.load_suggestion_into_lab(index, n)
                    st.rerun()
                st.markdown("---")


# ============================================================
# DIARY
# ============================================================
def render_diary() -> None:
    c = ctl()
    state = c.state

    head_col, import_col = st.columns([3, 1])
    head_col.header("Idea Diary")
    with import_col:
        if st.button(
            BUTTON_LABELS[BULK_IMPORT],
            key="bulk_import_btn",
            disabled=not state.selected,
            use_container_width=True,
            help="Ctrl/⌘+Shift+I",
        ):
            do_bulk_import()
        if state.selected:
            st.caption(f"{len(state.selected)} selected")

    text = st.text_area(
        "Note",
        value=state.diary_text,
        key=f"diary_text_{state.diary_version}",
        placeholder="I noticed something funny on the subway today...",
        label_visibility="collapsed",
    )
    c.set_diary_text(text)

    editing = state.editing_diary_id is not None
    add_col, cancel_col, _ = st.columns([1, 1, 3])
    if add_col.button("💾 Update note" if editing else "➕ Add note", key="add_note"):
        c.add_diary_entry()
        st.rerun()
    if editing and cancel_col.button("✗ Cancel", key="cancel_edit"):
        c.cancel_edit()
        st.rerun()

    entries = c.filtered_diary()
    list_col, toggle_col = st.columns([3, 1])
    list_col.subheader(f"Your notes ({len(entries)} of {len(state.diary)})")
    if state.diary and toggle_col.button(
        "Select none" if c.all_selected else "Select all", key="toggle_select_all"
    ):
        c.toggle_select_all()
        st.rerun()

    search_col, clear_col = st.columns([4, 1])
    with search_col:
        state.diary_search_term = st.text_input(
            "Search the diary",
            key="diary_search",
            placeholder="Search the diary...",
            label_visibility="collapsed",
        )
    with clear_col:
        st.button("Clear", key="clear_diary_search", on_click=_clear_diary_search)

    if not state.diary:
        st.info("No notes yet. Write down anything that made you laugh today.")
        return
    if not entries:
        st.info("No notes match this search.")
        return

    for entry in entries:
        selected = entry.id in state.selected
        with st.container(border=True):
            check_col, body_col = st.columns([0.5, 6])
            with check_col:
                st.checkbox(
                    "Select",
                    value=selected,
                    key=f"sel_{entry.id}_{int(selected)}",
                    on_change=_toggle_diary_selection,
                    args=(entry.id,),
                    label_visibility="collapsed",
                )
            with body_col:
                st.caption(format_date(entry.created_at))
                st.write(entry.text)
                edit_col, del_col, lab_col = st.columns(3)
                if edit_col.button("✏️ Edit", key=f"edit_{entry.id}"):
                    c.begin_edit(entry.id)
                    st.rerun()
                if del_col.button("🗑️ Delete", key=f"delete_{entry.id}"):
                    c.remove_diary_entry(entry.id)
                    st.rerun()
                if lab_col.button("✍️ Turn into a bit", key=f"diary_lab_{entry.id}"):
                    c.load_diary_into_lab(entry.id)
                    st.rerun()


# ============================================================
# GUIDE
# ============================================================
def render_guide() -> None:
    c = ctl()
    linked: Optional[str] = c.state.guide_section
    st.header("Comedy Glossary")
    st.caption("Master the tools that turn observations into laughs.")

    for section in SECTIONS:
        st.markdown(f"<div id='{section.id}'></div>", unsafe_allow_html=True)
        with st.container(border=True):
            title_col, share_col = st.columns([4, 1])
            badge = f"`{section.badge}` " if section.badge else ""
            title_col.subheader(f"{badge}{section.title}")
            with share_col.popover("🔗 Share"):
                payload = share_payload(section.id, SETTINGS.base_url)
                st.caption(payload["text"])
                st.code(payload["url"], language=None)
            if linked == section.id:
                st.info("📍 You followed a link to this technique.")
            st.write(section.summary)
            for point in section.points:
                st.markdown(f"- {point}")
            if section.examples:
                with st.expander("Examples", expanded=linked == section.id):
                    for example, note in section.examples:
                        st.markdown(f"> _{example}_")
                        if note:
                            st.caption(note)

    if linked:
        components.html(
            f"<script>const el = window.parent.document.getElementById('{linked}');"
            "if (el) { el.scrollIntoView({behavior: 'smooth'}); }</script>",
            height=0,
        )
        c.state.guide_section = None


# ============================================================
# UI
# ============================================================
PANEL_RENDERERS = {
    "editor": render_editor,
    "library": render_library,
    "themes": render_themes,
    "diary": render_diary,
    "guide": render_guide,
}


def main_ui() -> None:
    # Before any panel renders, so speech state is current for this run.
    with st.sidebar:
        sync_speech()
    render_sidebar()
    show_flash()
    PANEL_RENDERERS[ctl().state.active_panel]()
    state = ctl().state
    components.html(shortcut_script(state.active_panel, len(state.selected)) + FRAGMENT_BRIDGE_SCRIPT, height=0)


# ============================================================
# STARTUP
# ============================================================
def main() -> None:
    init_state()
    check_deep_link()
    main_ui()


if __name__ == "__main__":
    main()
