"""Comedy assistant backed by the Gemini ``generateContent`` endpoint.

Every operation is one round trip that asks for a JSON response matching a
schema. Theme generation and expansion degrade to empty results; refinement
raises :class:`RemoteFailure` so the caller can show an error state.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from comedialab import prompts
from comedialab.config import Settings
from comedialab.errors import RemoteFailure
from comedialab.models import JokeParts, Technique

logger = logging.getLogger(__name__)

API_URL_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
THEME_COUNT = 5
SUGGESTION_COUNT = 3

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def strip_json_fences(text: str) -> str:
    match = _JSON_FENCE_RE.search(text or "")
    return match.group(1).strip() if match else (text or "").strip()


def _response_text(data: Any) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise RemoteFailure(f"response has no candidates: {e}") from e
    if not isinstance(parts, list):
        raise RemoteFailure("response parts are not a list")
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    if not texts:
        raise RemoteFailure("response has no text parts")
    return "".join(texts)


def _parse_parts(data: Any) -> JokeParts:
    if not isinstance(data, dict):
        raise RemoteFailure(f"expected a joke object, got {type(data).__name__}")
    missing = [k for k in ("premise", "setup", "punchline") if not isinstance(data.get(k), str)]
    if missing:
        raise RemoteFailure(f"joke object is missing {', '.join(missing)}")
    return JokeParts(premise=data["premise"], setup=data["setup"], punchline=data["punchline"])


class ComedyAssistant:
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.settings.has_api_key

    def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"x-goog-api-key": self.settings.api_key, "Content-Type": "application/json"}
        if self._client is not None:
            return self._client.post(url, headers=headers, json=payload)
        with httpx.Client(timeout=self.settings.timeout_s) as client:
            return client.post(url, headers=headers, json=payload)

    def generate_json(self, prompt: str, schema: Dict[str, Any]) -> Any:
        """Send ``prompt`` and return the decoded JSON body of the answer."""
        if not self.enabled:
            raise RemoteFailure("GEMINI_API_KEY is not set")
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        url = API_URL_TEMPLATE.format(model=self.settings.model)
        logger.debug("Calling %s", self.settings.model)
        try:
            r = self._post(url, payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise RemoteFailure(f"request failed: {e}") from e
        except ValueError as e:
            raise RemoteFailure(f"response is not JSON: {e}") from e
        text = strip_json_fences(_response_text(data))
        try:
            return json.loads(text)
        except ValueError as e:
            raise RemoteFailure(f"model answer is not JSON: {text[:200]!r}") from e

    def generate_themes(self, context: Optional[str] = None) -> List[str]:
        try:
            data = self.generate_json(prompts.themes_prompt(context, THEME_COUNT), prompts.THEMES_SCHEMA)
            ideas = data.get("ideas") if isinstance(data, dict) else None
            if not isinstance(ideas, list):
                raise RemoteFailure("answer has no idea list")
        except RemoteFailure as e:
            logger.warning("Theme generation failed: %s", e)
            return []
        return [i.strip() for i in ideas if isinstance(i, str) and i.strip()]

    def expand_theme(self, theme: str) -> List[JokeParts]:
        try:
            data = self.generate_json(prompts.expand_prompt(theme, SUGGESTION_COUNT), prompts.SUGGESTIONS_SCHEMA)
            raw = data.get("suggestions") if isinstance(data, dict) else None
            if not isinstance(raw, list):
                raise RemoteFailure("answer has no suggestion list")
            return [_parse_parts(s) for s in raw]
        except RemoteFailure as e:
            logger.warning("Theme expansion failed for %r: %s", theme, e)
            return []

    def refine_joke(self, parts: JokeParts, technique: Technique) -> JokeParts:
        """Return an improved premise/setup/punchline; raises RemoteFailure."""
        data = self.generate_json(prompts.refine_prompt(parts, technique), prompts.REFINED_SCHEMA)
        return _parse_parts(data)
