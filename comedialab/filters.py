from typing import Iterable, List

from comedialab.models import DiaryEntry, JokeBit

ALL_TECHNIQUES = "all"


def _normalize_term(term: str) -> str:
    return (term or "").lower().strip()


def joke_matches(joke: JokeBit, search_term: str, technique_filter: str = ALL_TECHNIQUES) -> bool:
    term = _normalize_term(search_term)
    haystack = [
        joke.title,
        joke.parts.premise,
        joke.parts.setup,
        joke.parts.punchline,
        joke.technique.value,
        *joke.tags,
    ]
    matches_search = not term or any(term in field.lower() for field in haystack)
    matches_technique = technique_filter == ALL_TECHNIQUES or joke.technique.value == technique_filter
    return matches_search and matches_technique


def filter_jokes(
    jokes: Iterable[JokeBit], search_term: str = "", technique_filter: str = ALL_TECHNIQUES
) -> List[JokeBit]:
    """Library view: search across every text field and tag, AND the technique filter."""
    return [j for j in jokes if joke_matches(j, search_term, technique_filter)]


def filter_diary(entries: Iterable[DiaryEntry], search_term: str = "") -> List[DiaryEntry]:
    term = _normalize_term(search_term)
    return [e for e in entries if not term or term in e.text.lower()]


def count_words(text: str) -> int:
    if not text:
        return 0
    return len([w for w in text.split() if w])
