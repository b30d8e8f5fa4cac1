import os
import logging
from dataclasses import dataclass

import streamlit as st

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_DATA_DIR = "autosave"
DEFAULT_SPEECH_LANG = "pt-BR"
DEFAULT_TIMEOUT_S = 60.0
DEFAULT_BASE_URL = "http://localhost:8501/"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _get_secret_or_empty(name: str) -> str:
    try:
        return str(st.secrets.get(name, ""))  # type: ignore[attr-defined]
    except Exception:
        return ""


def _setting(name: str, default: str = "") -> str:
    return os.getenv(name) or _get_secret_or_empty(name) or default


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    timeout_s: float = DEFAULT_TIMEOUT_S
    data_dir: str = DEFAULT_DATA_DIR
    speech_lang: str = DEFAULT_SPEECH_LANG
    log_level: str = "INFO"
    base_url: str = DEFAULT_BASE_URL

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def load_settings() -> Settings:
    """Read settings from the environment, then Streamlit secrets, then defaults."""
    api_key = _setting("GEMINI_API_KEY") or _setting("API_KEY")
    try:
        timeout_s = float(_setting("COMEDIALAB_TIMEOUT", str(DEFAULT_TIMEOUT_S)))
    except ValueError:
        timeout_s = DEFAULT_TIMEOUT_S
    return Settings(
        api_key=api_key,
        model=_setting("GEMINI_MODEL", DEFAULT_MODEL),
        timeout_s=timeout_s,
        data_dir=_setting("COMEDIALAB_DATA_DIR", DEFAULT_DATA_DIR),
        speech_lang=_setting("COMEDIALAB_SPEECH_LANG", DEFAULT_SPEECH_LANG),
        log_level=_setting("COMEDIALAB_LOG_LEVEL", "INFO").upper(),
        base_url=_setting("COMEDIALAB_BASE_URL", DEFAULT_BASE_URL),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_LOG_FORMAT)
    logging.getLogger("comedialab").setLevel(getattr(logging, level, logging.INFO))
