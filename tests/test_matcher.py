from __future__ import annotations

from matcher import evaluate
from phrases import phrase_variations


def test_partial_then_complete_transcript() -> None:
    first = evaluate("hey cam", 0, "camera me", phrase_variations("camera me"))
    assert first.matched is False
    assert first.new_cursor == 0

    second = evaluate("hey camera me now", first.new_cursor, "camera me", phrase_variations("camera me"))
    assert second.matched is True
    assert second.new_cursor == len("hey camera me")


def test_phonetic_variation_matches_mistranscription() -> None:
    transcript = "say cheeze please"

    result = evaluate(transcript, 0, "say cheese", phrase_variations("say cheese"))

    assert result.matched is True
    assert result.new_cursor == len("say cheeze")


def test_exact_match_wins_over_variation() -> None:
    result = evaluate("say cheeze then say cheese", 0, "say cheese", ["say cheeze"])

    assert result.matched is True
    assert result.new_cursor == len("say cheeze then say cheese")


def test_space_insensitive_fallback_moves_cursor_to_end() -> None:
    transcript = "saycheese"

    result = evaluate(transcript, 0, "say cheese", phrase_variations("say cheese"))

    assert result.matched is True
    assert result.new_cursor == len(transcript)


def test_space_insensitive_fallback_for_split_words() -> None:
    result = evaluate("ok came rame", 0, "camera me")

    assert result.matched is True
    assert result.new_cursor == len("ok came rame")


def test_no_match_keeps_cursor() -> None:
    result = evaluate("hello there", 3, "camera me", phrase_variations("camera me"))

    assert result.matched is False
    assert result.new_cursor == 3


def test_text_before_cursor_is_not_rescanned() -> None:
    result = evaluate("camera me and more", len("camera me"), "camera me")

    assert result.matched is False
    assert result.new_cursor == len("camera me")


def test_cursor_is_clamped_to_transcript_length() -> None:
    result = evaluate("camera", 40, "camera me")

    assert result.matched is False
    assert result.new_cursor == len("camera")


def test_empty_transcript_never_matches() -> None:
    result = evaluate("", 0, "camera me")

    assert result.matched is False
    assert result.new_cursor == 0


def test_cursor_is_monotonic_over_growing_transcript() -> None:
    updates = [
        "camera",
        "camera me",
        "camera me please",
        "camera me please camera",
        "camera me please camera me",
        "camera me please camera me cameraame",
    ]
    cursor = 0
    matches = 0
    for transcript in updates:
        result = evaluate(transcript, cursor, "camera me", phrase_variations("camera me"))
        assert cursor <= result.new_cursor <= len(transcript)
        cursor = result.new_cursor
        matches += int(result.matched)

    assert matches == 2
