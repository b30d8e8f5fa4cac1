"""Tests for comedialab.guide."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest

from comedialab.guide import (
    SECTIONS,
    SECTIONS_BY_ID,
    section_from_fragment,
    share_payload,
    share_url,
)


def test_sections_are_unique_guide_anchors() -> None:
    assert len(SECTIONS) == 11
    assert len(SECTIONS_BY_ID) == len(SECTIONS)
    assert all(s.id.startswith("guide-") for s in SECTIONS)


class TestFragments:
    @pytest.mark.parametrize("fragment", ["#guide-pun", "guide-pun"])
    def test_known_section(self, fragment) -> None:
        assert section_from_fragment(fragment) == "guide-pun"

    @pytest.mark.parametrize("fragment", [None, "", "#guide-unknown", "#top", "#pun"])
    def test_anything_else_is_ignored(self, fragment) -> None:
        assert section_from_fragment(fragment) is None


def test_share_url_points_at_section() -> None:
    url = share_url("guide-irony", "https://lab.example/app?section=old#guide-pun")

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://lab.example/app"
    assert parse_qs(parts.query) == {"section": ["guide-irony"]}
    assert parts.fragment == "guide-irony"


def test_share_payload() -> None:
    payload = share_payload("guide-greg-dean", "https://lab.example/")

    assert "The Greg Dean System" in payload["title"]
    assert "The Greg Dean System" in payload["text"]
    assert payload["url"].endswith("#guide-greg-dean")
