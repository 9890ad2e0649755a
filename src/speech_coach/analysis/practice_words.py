"""Practice word extraction from generated replies.

Replies mix instructional prose with short word lists. The grammar below
favours short comma- or line-delimited enumerations over narrative
sentences without requiring structured output from the model:

    line      := marker? body
    marker    := [0-9.\\-)\\s]+
    body      := comma_list | short_line
    comma_list:= segment ("," segment)*     at most 12 segments
    short_line:= token (ws token)*          1 to 4 tokens
    word      := normalised token matching ^[a-z']{2,20}$
"""

import re

import structlog

logger = structlog.get_logger()

MAX_COMMA_SEGMENTS = 12
MIN_LINE_TOKENS = 1
MAX_LINE_TOKENS = 4
MIN_WORD_LENGTH = 2
MAX_WORD_LENGTH = 20
MAX_WORDS = 40

_LIST_MARKER = re.compile(r"^[\d.\-)\s]+")
_NON_WORD_CHARS = re.compile(r"[^a-z']")
_LINE_BREAK = re.compile(r"\r?\n")


def normalize_token(token: str) -> str | None:
    """Lowercase, drop characters outside [a-z'], and bound the length."""
    word = _NON_WORD_CHARS.sub("", token.strip().lower())
    if MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH:
        return word
    return None


def line_candidates(line: str) -> list[str]:
    """Raw candidate tokens for a single reply line."""
    cleaned = _LIST_MARKER.sub("", line).strip()
    if "," in cleaned:
        segments = cleaned.split(",")
        if len(segments) <= MAX_COMMA_SEGMENTS:
            return segments
    tokens = cleaned.split()
    if MIN_LINE_TOKENS <= len(tokens) <= MAX_LINE_TOKENS:
        return tokens
    return []


def extract_practice_words(text: str) -> list[str]:
    """Extract up to 40 unique practice words in first-seen order.

    Args:
        text: Generated reply text.

    Returns:
        Normalised words, deduplicated, order preserved.
    """
    if not text:
        return []

    seen: dict[str, None] = {}
    for line in _LINE_BREAK.split(text):
        for token in line_candidates(line):
            word = normalize_token(token)
            if word is not None:
                seen.setdefault(word, None)

    words = list(seen)[:MAX_WORDS]
    if words:
        logger.debug("practice_words_extracted", count=len(words))
    return words
