"""Tests for comedialab.shortcuts."""

from __future__ import annotations

import json
import re

import pytest

from comedialab.shortcuts import (
    BINDINGS,
    BULK_IMPORT,
    BUTTON_LABELS,
    PANEL_KEYS,
    REFINE,
    SAVE,
    KeyPress,
    is_mac,
    resolve_shortcut,
    shortcut_script,
    suppresses_default,
)

MAC = "MacIntel"
LINUX = "Linux x86_64"


def _embedded(script: str, name: str):
    match = re.search(rf"const {name} = (.*?);\n", script)
    assert match, name
    return json.loads(match.group(1))


@pytest.mark.parametrize(
    "key,panel",
    [("1", "editor"), ("2", "library"), ("3", "themes"), ("4", "diary"), ("5", "guide")],
)
def test_digits_switch_panels_from_anywhere(key, panel) -> None:
    assert resolve_shortcut(KeyPress(key), "diary") == f"panel:{panel}"
    assert suppresses_default(KeyPress(key), "diary")


def test_repeated_digit_is_ignored() -> None:
    assert resolve_shortcut(KeyPress("2", repeat=True), "editor") is None
    assert not suppresses_default(KeyPress("2", repeat=True), "editor")
    assert resolve_shortcut(KeyPress("6"), "editor") is None


class TestEditorActions:
    def test_ctrl_on_other_platforms(self) -> None:
        assert resolve_shortcut(KeyPress("s", ctrl=True), "editor", platform=LINUX) == SAVE
        assert resolve_shortcut(KeyPress("R", ctrl=True), "editor", platform=LINUX) == REFINE
        assert resolve_shortcut(KeyPress("s", meta=True), "editor", platform=LINUX) is None

    def test_meta_on_mac(self) -> None:
        assert resolve_shortcut(KeyPress("s", meta=True), "editor", platform=MAC) == SAVE
        assert resolve_shortcut(KeyPress("s", ctrl=True), "editor", platform=MAC) is None

    def test_only_in_editor(self) -> None:
        assert resolve_shortcut(KeyPress("s", ctrl=True), "library") is None
        assert not suppresses_default(KeyPress("s", ctrl=True), "library")
        assert resolve_shortcut(KeyPress("s"), "editor") is None

    def test_reload_is_suppressed_in_editor(self) -> None:
        assert suppresses_default(KeyPress("r", ctrl=True), "editor", platform=LINUX)
        assert suppresses_default(KeyPress("r", meta=True), "editor", platform=MAC)


class TestBulkImport:
    def test_needs_a_selection(self) -> None:
        press = KeyPress("I", ctrl=True, shift=True)

        assert resolve_shortcut(press, "diary", selection_size=2) == BULK_IMPORT
        assert resolve_shortcut(press, "diary", selection_size=0) is None

    def test_default_is_suppressed_even_without_selection(self) -> None:
        assert suppresses_default(KeyPress("I", ctrl=True, shift=True), "diary")

    def test_needs_shift_and_diary_panel(self) -> None:
        assert resolve_shortcut(KeyPress("i", ctrl=True), "diary", selection_size=1) is None
        assert resolve_shortcut(KeyPress("i", ctrl=True, shift=True), "editor", selection_size=1) is None


def test_is_mac() -> None:
    assert is_mac(MAC)
    assert not is_mac(LINUX)
    assert not is_mac("")


class TestScript:
    def test_carries_the_binding_table(self) -> None:
        script = shortcut_script()

        assert _embedded(script, "panelKeys") == PANEL_KEYS
        assert _embedded(script, "labels") == BUTTON_LABELS
        bindings = _embedded(script, "bindings")
        assert [(b["key"], b["action"], b["panel"]) for b in bindings] == [
            (b.key, b.action, b.panel) for b in BINDINGS
        ]

    def test_carries_the_current_panel_and_selection(self) -> None:
        script = shortcut_script("diary", 3)

        match = re.search(r"__comedialabShortcutState = (.*?);\n", script)
        assert json.loads(match.group(1)) == {"panel": "diary", "selection": 3}

    def test_suppression_does_not_wait_for_an_enabled_button(self) -> None:
        script = shortcut_script()

        # The default is cancelled before the selection check and the click.
        claimed = script.index("if (!binding) { return; }")
        assert claimed < script.index("e.preventDefault();", claimed) < script.index("click(binding.action)")
        assert "!b.disabled" in script
