"""
Sentence Splitter for the Chunking Pipeline

Regex-based sentence boundary detection that reports character offsets
instead of re-searching the source for sentence strings. Offsets let the
chunker build chunks as exact slices of the source, so repeated sentences
can never be matched at the wrong occurrence.

Design:
- A sentence ends at a run of terminators (.!?), optionally followed by
  closing quotes or brackets, followed by whitespace or the end of text
- Dots inside tokens (3.14, example.com) are not boundaries
- A handful of common abbreviations (Dr., e.g., vs.) do not end a sentence
- Trailing text without a terminator is the last sentence
- No external dependencies

Usage:
    from chunking.sentence_splitter import sentence_spans, split_sentences

    spans = sentence_spans("First one. Second one!")
    # [(0, 10), (11, 22)]
    sentences = split_sentences("First one. Second one!")
    # ["First one.", "Second one!"]
"""

import re

_BOUNDARY_PATTERN = re.compile(r"[.!?]+[\"')\]”’]*(?=\s|$)")

_WORD_BEFORE_PATTERN = re.compile(r"([A-Za-z][A-Za-z.]*)$")

# Abbreviations whose trailing dot is not a sentence boundary.
_ABBREVIATIONS = {
    "mr", "mrs", "ms", "dr", "prof", "st", "vs", "cf",
    "e.g", "i.e", "fig", "approx", "inc", "ltd", "jr", "sr",
}


def _is_abbreviation(text: str, start: int, boundary: re.Match) -> bool:
    if boundary.group() != ".":
        return False
    match = _WORD_BEFORE_PATTERN.search(text, start, boundary.start())
    return bool(match) and match.group(1).lower() in _ABBREVIATIONS


def trim_span(text: str, start: int, end: int) -> tuple[int, int] | None:
    """Shrink [start, end) past surrounding whitespace; None if nothing is left."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end


def sentence_spans(text: str) -> list[tuple[int, int]]:
    """
    Locate sentences in text.

    Args:
        text: Input text.

    Returns:
        List of (start, end) offsets, in order, with surrounding whitespace
        excluded. Empty/whitespace input returns an empty list.
    """
    if not text or not text.strip():
        return []

    spans: list[tuple[int, int]] = []
    position = 0

    for boundary in _BOUNDARY_PATTERN.finditer(text):
        if boundary.end() <= position:
            continue
        if _is_abbreviation(text, position, boundary):
            continue
        span = trim_span(text, position, boundary.end())
        if span:
            spans.append(span)
        position = boundary.end()

    tail = trim_span(text, position, len(text))
    if tail:
        spans.append(tail)

    return spans


def split_sentences(text: str) -> list[str]:
    """
    Split text into sentences.

    Args:
        text: Input text to split into sentences.

    Returns:
        List of sentence strings, stripped of surrounding whitespace.
    """
    if not text:
        return []
    return [text[start:end] for start, end in sentence_spans(text)]
