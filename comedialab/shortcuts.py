"""Global keyboard shortcuts.

The binding table lives here and is rendered into the page together with
the current panel and selection size, so the browser listener and
:func:`resolve_shortcut` follow the same rules.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

PANELS = ("editor", "library", "themes", "diary", "guide")
PANEL_KEYS: Dict[str, str] = {str(i + 1): panel for i, panel in enumerate(PANELS)}

SAVE = "save"
REFINE = "refine"
BULK_IMPORT = "bulk_import"


@dataclass(frozen=True)
class KeyPress:
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    repeat: bool = False


@dataclass(frozen=True)
class Binding:
    key: str
    action: str
    panel: str
    shift: bool = False  # when False, Shift is ignored
    needs_selection: bool = False


BINDINGS: Tuple[Binding, ...] = (
    Binding("s", SAVE, "editor"),
    Binding("r", REFINE, "editor"),
    Binding("i", BULK_IMPORT, "diary", shift=True, needs_selection=True),
)


def is_mac(platform: str) -> bool:
    return "MAC" in (platform or "").upper()


def match_binding(press: KeyPress, active_panel: str, platform: str = "") -> Optional[Binding]:
    """Return the binding that claims this keydown on the active panel.

    A claimed keydown always has its browser default suppressed, whether or
    not the action can run right now.
    """
    modifier = press.meta if is_mac(platform) else press.ctrl
    if not modifier:
        return None
    key = press.key.lower()
    for binding in BINDINGS:
        if binding.key == key and binding.panel == active_panel and (press.shift or not binding.shift):
            return binding
    return None


def suppresses_default(press: KeyPress, active_panel: str, platform: str = "") -> bool:
    if not press.repeat and press.key in PANEL_KEYS:
        return True
    return match_binding(press, active_panel, platform) is not None


def resolve_shortcut(
    press: KeyPress, active_panel: str, selection_size: int = 0, platform: str = ""
) -> Optional[str]:
    """Map a keydown to ``panel:<name>``, an action name, or None."""
    if not press.repeat and press.key in PANEL_KEYS:
        return f"panel:{PANEL_KEYS[press.key]}"
    binding = match_binding(press, active_panel, platform)
    if binding is None or (binding.needs_selection and selection_size <= 0):
        return None
    return binding.action


# Button labels the listener clicks; the app renders buttons with these labels.
BUTTON_LABELS: Dict[str, str] = {
    SAVE: "💾 Save to library",
    REFINE: "✨ Refine with AI",
    BULK_IMPORT: "📥 Import selected",
    "panel:editor": "✍️ Lab",
    "panel:library": "📚 My Jokes",
    "panel:themes": "💡 Themes & Insights",
    "panel:diary": "📓 Idea Diary",
    "panel:guide": "📖 Technique Guide",
}

# The listener is installed once per page; every rerun refreshes the state
# object it reads.
_SCRIPT = """
<script>
(function() {
  const doc = window.parent.document;
  doc.__comedialabShortcutState = %(state)s;
  if (doc.__comedialabShortcuts) { return; }
  doc.__comedialabShortcuts = true;
  const labels = %(labels)s;
  const panelKeys = %(panel_keys)s;
  const bindings = %(bindings)s;
  function click(action) {
    const label = labels[action];
    const btn = [...doc.querySelectorAll('button')].find(
      b => b.innerText && b.innerText.trim() === label && !b.disabled);
    if (btn) { btn.click(); }
  }
  doc.addEventListener('keydown', function(e) {
    const state = doc.__comedialabShortcutState;
    if (!e.repeat && panelKeys[e.key]) {
      e.preventDefault();
      click('panel:' + panelKeys[e.key]);
      return;
    }
    const isMac = navigator.platform.toUpperCase().indexOf('MAC') >= 0;
    const mod = isMac ? e.metaKey : e.ctrlKey;
    if (!mod) { return; }
    const key = e.key.toLowerCase();
    const binding = bindings.find(
      b => b.key === key && b.panel === state.panel && (e.shiftKey || !b.shift));
    if (!binding) { return; }
    e.preventDefault();
    if (binding.needs_selection && state.selection <= 0) { return; }
    click(binding.action);
  }, true);
})();
</script>
"""


def shortcut_script(active_panel: str = "editor", selection_size: int = 0) -> str:
    return _SCRIPT % {
        "state": json.dumps({"panel": active_panel, "selection": selection_size}),
        "labels": json.dumps(BUTTON_LABELS, ensure_ascii=False),
        "panel_keys": json.dumps(PANEL_KEYS),
        "bindings": json.dumps([asdict(b) for b in BINDINGS]),
    }
