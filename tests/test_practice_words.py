"""Tests for practice word extraction."""

import re

from speech_coach.analysis.practice_words import (
    MAX_WORDS,
    extract_practice_words,
    line_candidates,
    normalize_token,
)

WORD_RE = re.compile(r"^[a-z']{2,20}$")


def test_numbered_list():
    assert extract_practice_words("1. sun\n2. sea\n3. six") == ["sun", "sea", "six"]


def test_thirteen_comma_items_rejected():
    text = "Try saying: cat, hat, mat, sat, bat, fat, rat, pat, vat, gnat, gat, tat, zat"
    assert extract_practice_words(text) == []


def test_twelve_comma_items_accepted():
    text = "cat, hat, mat, sat, bat, fat, rat, pat, vat, gnat, gat, tat"
    assert len(extract_practice_words(text)) == 12


def test_prose_sentence_ignored():
    text = "Great job today! Let's keep practicing the s sound together."
    assert extract_practice_words(text) == []


def test_mixed_reply():
    text = (
        "Nice work on your last session.\n"
        "Here are some words to practice:\n"
        "sip, sun, see\n"
        "- Sock\n"
        "Say each one slowly and clearly three times."
    )
    assert extract_practice_words(text) == ["sip", "sun", "see", "sock"]


def test_dedup_preserves_first_seen_order():
    text = "sun, sea\nsea, sun, sip"
    assert extract_practice_words(text) == ["sun", "sea", "sip"]


def test_crlf_line_endings():
    assert extract_practice_words("1) red\r\n2) rose") == ["red", "rose"]


def test_apostrophes_kept():
    assert extract_practice_words("don't, can't") == ["don't", "can't"]


def test_empty_text():
    assert extract_practice_words("") == []


def test_output_bounds():
    lines = [", ".join(f"w{chr(97 + i)}{chr(97 + j)}" for j in range(10)) for i in range(10)]
    text = "\n".join(lines) + "\nx, " + "a" * 25 + ", ok, OK, 1234"
    words = extract_practice_words(text)
    assert len(words) <= MAX_WORDS
    assert len(words) == len(set(words))
    assert all(WORD_RE.match(w) for w in words)


def test_normalize_token():
    assert normalize_token("  Sun! ") == "sun"
    assert normalize_token("a") is None
    assert normalize_token("x" * 21) is None
    assert normalize_token("123") is None


def test_line_candidates_marker_stripping():
    assert line_candidates("12. - sun") == ["sun"]
    assert line_candidates("one two three four five") == []
