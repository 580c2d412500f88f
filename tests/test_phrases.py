from __future__ import annotations

import pytest

from errors import InvalidPhraseError
from phrases import (
    DEFAULT_TRIGGER_PHRASE,
    SUGGESTED_PHRASES,
    TriggerPhrase,
    normalize_phrase,
    phrase_variations,
    validate_phrase,
)


def test_normalize_lowercases_and_trims() -> None:
    assert normalize_phrase("  Say Cheese \n") == "say cheese"


def test_normalize_empty_falls_back_to_default() -> None:
    assert normalize_phrase("   ") == DEFAULT_TRIGGER_PHRASE
    assert normalize_phrase("", default=" Smile ") == "smile"


def test_variations_replace_one_occurrence_at_a_time() -> None:
    variants = phrase_variations("say cheese")

    assert "say cheeze" in variants
    assert "zay cheese" in variants
    assert "zay cheeze" in variants
    assert "say chise" in variants
    assert "say cheese" not in variants


def test_variations_follow_table_order() -> None:
    variants = phrase_variations("say cheese")

    assert variants.index("say chise") < variants.index("say cheeze")


def test_variations_are_deterministic_and_unique() -> None:
    first = phrase_variations("take photo")

    assert first == phrase_variations("take photo")
    assert len(first) == len(set(first))
    assert "tace photo" in first
    assert "take fotoo" not in first
    assert "take foto" in first


def test_variations_empty_for_phrase_without_substitutions() -> None:
    assert phrase_variations("mama") == []


def test_trigger_phrase_from_text() -> None:
    phrase = TriggerPhrase.from_text(" Say Cheese ")

    assert phrase.raw == "Say Cheese"
    assert phrase.normalized == "say cheese"
    assert "say cheeze" in phrase.variations


def test_trigger_phrase_from_blank_uses_default() -> None:
    phrase = TriggerPhrase.from_text("")

    assert phrase.raw == DEFAULT_TRIGGER_PHRASE
    assert phrase.normalized == DEFAULT_TRIGGER_PHRASE


@pytest.mark.parametrize("text", ["", "   ", "a", "a very long phrase", "cheese!", "take 2"])
def test_validate_rejects_bad_phrases(text: str) -> None:
    with pytest.raises(InvalidPhraseError):
        validate_phrase(text)


def test_validate_accepts_and_trims() -> None:
    assert validate_phrase("  Say Cheese ") == "Say Cheese"
    assert validate_phrase("ok") == "ok"


def test_suggested_phrases_are_valid() -> None:
    for phrase in SUGGESTED_PHRASES:
        assert validate_phrase(phrase) == phrase
