"""Tests for comedialab.gateway using httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest

from comedialab.config import Settings
from comedialab.errors import RemoteFailure
from comedialab.gateway import ComedyAssistant, strip_json_fences
from comedialab.models import JokeParts, Technique
from comedialab.prompts import GREG_DEAN_INSTRUCTION, LEO_LINS_INSTRUCTION, technique_instruction

SETTINGS = Settings(api_key="test-key", model="gemini-test")


def _answer(payload: Any, raw: bool = False) -> Dict[str, Any]:
    text = payload if raw else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _assistant(handler, settings: Settings = SETTINGS) -> ComedyAssistant:
    return ComedyAssistant(settings, client=httpx.Client(transport=httpx.MockTransport(handler)))


def _replying(body: Any, status: int = 200, seen: List[httpx.Request] = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body)

    return handler


class TestGenerateJson:
    def test_request_shape(self) -> None:
        seen: List[httpx.Request] = []
        assistant = _assistant(_replying(_answer({"ideas": ["a"]}), seen=seen))

        assistant.generate_themes("work")

        request = seen[0]
        assert request.url.path.endswith("/models/gemini-test:generateContent")
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert body["generationConfig"]["responseSchema"]["required"] == ["ideas"]
        assert "work" in body["contents"][0]["parts"][0]["text"]

    def test_fenced_answer_is_accepted(self) -> None:
        fenced = '```json\n{"ideas": ["gym"]}\n```'
        assistant = _assistant(_replying(_answer(fenced, raw=True)))

        assert assistant.generate_themes() == ["gym"]

    def test_missing_key_is_a_remote_failure(self) -> None:
        assistant = ComedyAssistant(Settings(api_key=""))

        assert assistant.enabled is False
        with pytest.raises(RemoteFailure):
            assistant.generate_json("hi", {})


class TestFallbacks:
    @pytest.mark.parametrize(
        "body,status",
        [
            ({"error": "quota"}, 429),
            ({"candidates": []}, 200),
            (_answer("not json at all", raw=True), 200),
            (_answer({"ideas": "gym"}), 200),
            ({"candidates": [{"content": {"parts": [{"text": None}]}}]}, 200),
            ({"candidates": [{"content": {"parts": "text"}}]}, 200),
            ({"candidates": [{"content": {"parts": None}}]}, 200),
        ],
    )
    def test_themes_degrade_to_empty(self, body, status) -> None:
        assert _assistant(_replying(body, status)).generate_themes() == []

    def test_transport_error_degrades_to_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        assistant = _assistant(handler)

        assert assistant.generate_themes() == []
        assert assistant.expand_theme("gym") == []
        with pytest.raises(RemoteFailure):
            assistant.refine_joke(JokeParts("p", "s", "q"), Technique.PUN)

    @pytest.mark.parametrize(
        "error",
        [httpx.InvalidURL("bad url"), httpx.StreamConsumed()],
    )
    def test_non_transport_httpx_errors_are_remote_failures(self, error) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        assistant = _assistant(handler)

        assert assistant.generate_themes() == []
        with pytest.raises(RemoteFailure):
            assistant.refine_joke(JokeParts("p"), Technique.PUN)

    def test_null_text_part_fails_refine_cleanly(self) -> None:
        body = {"candidates": [{"content": {"parts": [{"text": None}]}}]}

        with pytest.raises(RemoteFailure):
            _assistant(_replying(body)).refine_joke(JokeParts("p"), Technique.PUN)

    def test_expand_rejects_malformed_suggestions(self) -> None:
        body = _answer({"suggestions": [{"premise": "p", "setup": "s"}]})

        assert _assistant(_replying(body)).expand_theme("gym") == []


class TestOperations:
    def test_expand_theme(self) -> None:
        body = _answer(
            {
                "suggestions": [
                    {"premise": "p1", "setup": "s1", "punchline": "q1"},
                    {"premise": "p2", "setup": "s2", "punchline": "q2"},
                ]
            }
        )

        result = _assistant(_replying(body)).expand_theme("gym")

        assert result == [JokeParts("p1", "s1", "q1"), JokeParts("p2", "s2", "q2")]

    def test_refine_joke(self) -> None:
        seen: List[httpx.Request] = []
        body = _answer({"premise": "X2", "setup": "Y", "punchline": "Z", "explanation": "why"})

        result = _assistant(_replying(body, seen=seen)).refine_joke(
            JokeParts("X", "", ""), Technique.GREG_DEAN
        )

        assert result == JokeParts("X2", "Y", "Z")
        prompt = json.loads(seen[0].content)["contents"][0]["parts"][0]["text"]
        assert GREG_DEAN_INSTRUCTION in prompt
        assert "Original premise: X" in prompt

    def test_refine_shape_mismatch_raises(self) -> None:
        body = _answer({"ideas": ["wrong operation"]})

        with pytest.raises(RemoteFailure):
            _assistant(_replying(body)).refine_joke(JokeParts("X"), Technique.PUN)


def test_technique_instructions() -> None:
    assert technique_instruction(Technique.GREG_DEAN) == GREG_DEAN_INSTRUCTION
    assert technique_instruction(Technique.LEO_LINS) == LEO_LINS_INSTRUCTION
    assert '"Callback"' in technique_instruction(Technique.CALLBACK)


def test_strip_json_fences() -> None:
    assert strip_json_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_json_fences('  {"a": 1} ') == '{"a": 1}'
