"""Conversion of human-readable names into DevCycle keys."""

import re

# Dots and underscores separate key segments
_SEGMENT_SEPARATORS = re.compile(r"[._]")
_WORD_SEPARATORS = re.compile(r"[\s\-]+")
# lower/digit -> Upper ("darkMode"), and acronym -> Word ("HTTPServer")
_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_INVALID_WORD_CHARS = re.compile(r"[^a-z0-9]")


def to_kebab(segment: str) -> str:
    """Convert camelCase or free text to kebab-case."""
    words = []
    for chunk in _WORD_SEPARATORS.split(segment):
        words.extend(w for w in _CASE_BOUNDARY.split(chunk) if w)
    cleaned = (_INVALID_WORD_CHARS.sub("", w.lower()) for w in words)
    return "-".join(w for w in cleaned if w)


def normalize_key(name: str) -> str:
    """
    Normalize a feature or variable name into a DevCycle key.

    Segments split on ``.`` or ``_`` are kebab-cased and rejoined with ``_``;
    characters outside ``[a-z0-9]`` are dropped from each word. Already
    normalized keys are returned unchanged.

    >>> normalize_key("discovery.newOrderTypeUi.ios")
    'discovery_new-order-type-ui_ios'
    """
    segments = [to_kebab(s) for s in _SEGMENT_SEPARATORS.split(name)]
    return "_".join(segments)
