"""Trigger phrase normalization, validation and phonetic variations."""

from __future__ import annotations

from dataclasses import dataclass

from errors import InvalidPhraseError

DEFAULT_TRIGGER_PHRASE = "camera me"
MIN_PHRASE_LENGTH = 2
MAX_PHRASE_LENGTH = 12

SUGGESTED_PHRASES = ("Say Cheese", "Smile", "Capture", "Take Photo", "Click", "Snap")

# Ordered (source, replacement) pairs. Order decides which variation is tried
# first by the matcher.
PHONETIC_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("ee", "i"),
    ("ee", "ea"),
    ("ea", "ee"),
    ("i", "ee"),
    ("c", "k"),
    ("k", "c"),
    ("ck", "k"),
    ("ph", "f"),
    ("f", "ph"),
    ("th", "d"),
    ("d", "th"),
    ("s", "z"),
    ("z", "s"),
    ("oo", "u"),
    ("u", "oo"),
    ("y", "ie"),
    ("ie", "y"),
)


def normalize_phrase(text: str, default: str = DEFAULT_TRIGGER_PHRASE) -> str:
    normalized = text.lower().strip()
    if normalized:
        return normalized
    return default.lower().strip()


def phrase_variations(normalized: str) -> list[str]:
    """Return single-substitution alternates for ``normalized``.

    Each table entry yields one variant per occurrence of its source
    substring, and one more with every occurrence replaced when the source
    appears more than once. The primary phrase itself is never returned.
    """
    variants: list[str] = []
    seen = {normalized}

    def add(candidate: str) -> None:
        if candidate not in seen:
            seen.add(candidate)
            variants.append(candidate)

    for source, replacement in PHONETIC_SUBSTITUTIONS:
        positions = _occurrences(normalized, source)
        for pos in positions:
            add(normalized[:pos] + replacement + normalized[pos + len(source):])
        if len(positions) > 1:
            add(normalized.replace(source, replacement))
    return variants


def _occurrences(text: str, needle: str) -> list[int]:
    positions = []
    start = text.find(needle)
    while start != -1:
        positions.append(start)
        start = text.find(needle, start + len(needle))
    return positions


def validate_phrase(text: str) -> str:
    """Return the trimmed phrase or raise ``InvalidPhraseError``."""
    trimmed = text.strip()
    if not trimmed:
        raise InvalidPhraseError("Trigger phrase cannot be empty.")
    if len(trimmed) < MIN_PHRASE_LENGTH:
        raise InvalidPhraseError(f"Trigger phrase needs at least {MIN_PHRASE_LENGTH} characters.")
    if len(trimmed) > MAX_PHRASE_LENGTH:
        raise InvalidPhraseError(f"Trigger phrase can have at most {MAX_PHRASE_LENGTH} characters.")
    if not all(ch.isalpha() or ch == " " for ch in trimmed):
        raise InvalidPhraseError("Trigger phrase can only contain letters and spaces.")
    return trimmed


@dataclass(frozen=True)
class TriggerPhrase:
    raw: str
    normalized: str
    variations: tuple[str, ...] = ()

    @classmethod
    def from_text(cls, text: str, default: str = DEFAULT_TRIGGER_PHRASE) -> "TriggerPhrase":
        normalized = normalize_phrase(text, default)
        raw = text.strip() or default
        return cls(raw=raw, normalized=normalized, variations=tuple(phrase_variations(normalized)))
