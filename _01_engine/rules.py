"""Core rule constants and pure helpers for the Wordpix challenge engine."""

from __future__ import annotations

import re

MIN_WORDS = 1
MAX_WORDS = 25
MIN_WORD_PRICE = 1

DEFAULT_STARTING_BALANCE = 100

REFILL_THRESHOLD = 20
REFILL_AMOUNT = 5
REFILL_INTERVAL_SECONDS = 6 * 60 * 60

CREATION_MINUTE_WINDOW_SECONDS = 60
CREATION_MINUTE_MAX = 3
CREATION_DAY_WINDOW_SECONDS = 24 * 60 * 60
CREATION_DAY_MAX = 10

CHALLENGE_IMAGE_PROMPT = (
    "A realistic, high-quality image representing: {sentence}. Make it clear and visually appealing."
)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def split_words(sentence: str) -> list[str]:
    """Split a sentence into its whitespace-delimited tokens."""
    return sentence.split()


def normalize(text: str) -> str:
    """Canonical form used for every guess comparison.

    Lowercases, trims, drops anything that is neither a word character nor
    whitespace and collapses whitespace runs to a single space.

    Word characters are Unicode-aware, so accented letters are kept:
    ``"Naïve!"`` becomes ``"naïve"``, not ``"nave"``. A guess must match the
    accents of the hidden word.
    """
    text = text.lower().strip()
    text = _NON_WORD.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def word_price(prize_amount: int, word_count: int) -> int:
    """Price of one word hint for a challenge."""
    if word_count <= 0:
        return MIN_WORD_PRICE
    return max(MIN_WORD_PRICE, prize_amount // word_count)


def sentence_without_word(words: list[str], index: int) -> str:
    """The sentence with the token at ``index`` removed."""
    return " ".join(word for position, word in enumerate(words) if position != index)


def challenge_image_prompt(sentence: str) -> str:
    return CHALLENGE_IMAGE_PROMPT.format(sentence=sentence)


__all__ = [
    "CHALLENGE_IMAGE_PROMPT",
    "CREATION_DAY_MAX",
    "CREATION_DAY_WINDOW_SECONDS",
    "CREATION_MINUTE_MAX",
    "CREATION_MINUTE_WINDOW_SECONDS",
    "DEFAULT_STARTING_BALANCE",
    "MAX_WORDS",
    "MIN_WORDS",
    "MIN_WORD_PRICE",
    "REFILL_AMOUNT",
    "REFILL_INTERVAL_SECONDS",
    "REFILL_THRESHOLD",
    "challenge_image_prompt",
    "normalize",
    "sentence_without_word",
    "split_words",
    "word_price",
]
