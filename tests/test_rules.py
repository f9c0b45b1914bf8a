import pytest

from _01_engine import rules


@pytest.mark.parametrize(
    "left, right",
    [
        ("The Cat!", "the   cat"),
        ("  Hello, World.  ", "hello world"),
        ("don't", "dont"),
        ("TAB\tseparated", "tab separated"),
    ],
)
def test_normalize_ignores_case_punctuation_and_spacing(left, right):
    assert rules.normalize(left) == rules.normalize(right)


def test_normalize_is_idempotent():
    for text in ("The Cat!", "  a  b  ", "Ünïcode Wörds?!", "", "..."):
        once = rules.normalize(text)
        assert rules.normalize(once) == once


def test_normalize_keeps_underscores_and_digits():
    assert rules.normalize("Route_66!") == "route_66"


def test_normalize_distinguishes_different_words():
    assert rules.normalize("fox") != rules.normalize("box")


@pytest.mark.parametrize(
    "prize, count, expected",
    [
        (10, 5, 2),
        (0, 5, 1),
        (0, 1, 1),
        (3, 5, 1),
        (99, 4, 24),
        (100, 25, 4),
    ],
)
def test_word_price(prize, count, expected):
    assert rules.word_price(prize, count) == expected


def test_word_price_never_zero():
    for prize in range(0, 30):
        for count in range(1, 26):
            assert rules.word_price(prize, count) >= 1


def test_split_words_uses_any_whitespace():
    assert rules.split_words("  a red\tfox\njumps  ") == ["a", "red", "fox", "jumps"]


def test_sentence_without_word():
    words = ["a", "red", "fox", "jumps", "over"]
    assert rules.sentence_without_word(words, 2) == "a red jumps over"
    assert rules.sentence_without_word(words, 0) == "red fox jumps over"


def test_challenge_image_prompt_embeds_sentence():
    prompt = rules.challenge_image_prompt("a red fox")
    assert "a red fox" in prompt
    assert prompt.startswith("A realistic, high-quality image representing:")


def test_normalize_keeps_accented_letters():
    assert rules.normalize("Naïve Café!") == "naïve café"
    assert rules.normalize("naïve") != rules.normalize("naive")
