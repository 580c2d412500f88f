"""Incremental trigger phrase matching against a growing transcript."""

from __future__ import annotations

from typing import Iterable

from models import MatchResult


def evaluate(
    transcript: str,
    cursor: int,
    phrase: str,
    variations: Iterable[str] = (),
) -> MatchResult:
    """Look for ``phrase`` in ``transcript`` at or after ``cursor``.

    Tiers, first hit wins: exact phrase, phonetic variations, then a
    space-insensitive comparison. Exact and variation hits move the cursor to
    the absolute end of the occurrence; the space-insensitive hit cannot be
    localized and moves it to the end of the transcript. Without a match the
    cursor is only clamped, since the phrase may still complete once more
    text arrives.
    """
    cursor = max(0, min(cursor, len(transcript)))
    if cursor >= len(transcript) or not phrase:
        return MatchResult(matched=False, new_cursor=cursor)

    end = _find_end(transcript, phrase, cursor)
    if end is not None:
        return MatchResult(matched=True, new_cursor=end)

    for variation in variations:
        if not variation:
            continue
        end = _find_end(transcript, variation, cursor)
        if end is not None:
            return MatchResult(matched=True, new_cursor=end)

    compact_phrase = phrase.replace(" ", "")
    if compact_phrase and compact_phrase in transcript[cursor:].replace(" ", ""):
        return MatchResult(matched=True, new_cursor=len(transcript))

    return MatchResult(matched=False, new_cursor=cursor)


def _find_end(transcript: str, needle: str, start: int) -> int | None:
    index = transcript.find(needle, start)
    if index == -1:
        return None
    return index + len(needle)
