"""Rule engine entry points.

Every mutation of a challenge runs while holding that challenge's lock, so
the purchase-once and solve-once rules hold under concurrent requests.
Credit movements go through :class:`~_01_engine.ledger.CreditLedger`, whose
account backend does its own per-user check-and-subtract.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from _01_engine import rules
from _01_engine.collaborators import ImageGenerator  # noqa: TC001
from _01_engine.exceptions import (
    AlreadyGuessedError,
    AlreadyPurchasedError,
    ChallengeNotFoundError,
    GameError,
    ImageGenerationError,
    InsufficientFundsError,
    RateLimitedError,
    ValidationError,
)
from _01_engine.ledger import CreditLedger  # noqa: TC001
from _01_engine.rate_limiter import SlidingWindowRateLimiter
from _01_engine.state import Challenge, ImageStatus, UserPurchase, Word, WordState, utcnow
from _01_engine.store import ChallengeStore, PurchaseStore  # noqa: TC001

logger = logging.getLogger(__name__)

BackgroundJob = Callable[[], None]

SOLVED_MESSAGE = "Congratulations! You solved the entire challenge! You won {reward} GC!"
LATE_SOLVE_MESSAGE = (
    "Congratulations! You solved the entire challenge! Unfortunately, you won't receive "
    "any reward as you weren't the first solver of this challenge."
)
ALREADY_SOLVED_MESSAGE = "You already solved this challenge."


@dataclass(frozen=True)
class PurchaseResult:
    challenge_id: str
    word_index: int
    word_length: int
    cost: int
    balance: int
    purchase: UserPurchase

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "wordIndex": self.word_index,
            "wordLength": self.word_length,
            "cost": self.cost,
            "balance": self.balance,
            "purchaseTime": self.purchase.purchase_time.isoformat(),
        }


@dataclass(frozen=True)
class GuessResult:
    correct: bool
    message: str
    reward: int = 0
    word_text: str | None = None
    challenge_solved: bool = False
    solution: str | None = None
    hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "correct": self.correct,
            "message": self.message,
            "reward": self.reward,
            "challengeSolved": self.challenge_solved,
        }
        if self.word_text is not None:
            body["wordText"] = self.word_text
        if self.solution is not None:
            body["solution"] = self.solution
        if self.hint is not None:
            body["hint"] = self.hint
        return body


class _KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._guard = Lock()

    def __call__(self, key: str) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            return lock

    def __contains__(self, key: str) -> bool:
        with self._guard:
            return key in self._locks


class ChallengeEngine:
    """Validates and applies every player action against a challenge."""

    def __init__(
        self,
        store: ChallengeStore,
        purchases: PurchaseStore,
        ledger: CreditLedger,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        image_generator: ImageGenerator | None = None,
        max_words: int = rules.MAX_WORDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.purchases = purchases
        self.ledger = ledger
        self.rate_limiter = rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter()
        self.image_generator = image_generator
        self.max_words = max_words
        self._clock = clock
        self._locks = _KeyedLocks()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = self.store.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    def _lock_for(self, challenge_id: str) -> Lock:
        """Lock for an existing challenge; unknown ids never get one."""
        self.get_challenge(challenge_id)
        return self._locks(challenge_id)

    def list_challenges(self) -> list[Challenge]:
        return self.store.list()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_challenge(self, sentence: str, creator_id: str, prize_amount: int = 0) -> Challenge:
        """Escrow the prize and open a new challenge.

        Raises:
            ValidationError: Empty creator, bad prize or word count outside 1..max_words.
            RateLimitedError: Creator exceeded the per-minute or per-day window.
            InsufficientFundsError: Creator cannot cover the prize; nothing is created.
        """
        if not isinstance(sentence, str) or not sentence.strip():
            raise ValidationError("Missing required fields")
        _require_user(creator_id)
        if isinstance(prize_amount, bool) or not isinstance(prize_amount, int) or prize_amount < 0:
            raise ValidationError("Prize amount must be a non-negative integer")

        sentence = sentence.strip()
        word_count = len(rules.split_words(sentence))
        if word_count < rules.MIN_WORDS:
            raise ValidationError("Sentence must contain at least one word")
        if word_count > self.max_words:
            raise ValidationError(f"Sentence too long (max {self.max_words} words)")
        # Checked before the limiter so an unaffordable prize does not use up a slot.
        if not self.ledger.can_afford(creator_id, prize_amount):
            raise InsufficientFundsError(creator_id, prize_amount, self.ledger.get(creator_id))

        limit = self.rate_limiter.check_challenge_creation(creator_id)
        if not limit.allowed:
            raise RateLimitedError(
                limit.error or "Rate limit exceeded",
                minute_remaining=limit.minute_remaining,
                day_remaining=limit.day_remaining,
                reset_time=(
                    datetime.fromtimestamp(limit.reset_time, tz=timezone.utc)
                    if limit.reset_time is not None
                    else None
                ),
            )

        self.ledger.debit(creator_id, prize_amount)
        challenge = Challenge.new(sentence, creator_id, prize_amount)
        challenge.created_at = self._clock()
        try:
            self.store.put(challenge)
        except Exception:
            self.ledger.credit(creator_id, prize_amount)
            raise

        logger.info(
            "Challenge %s created by %s (%d words, prize %d GC)",
            challenge.id,
            creator_id,
            word_count,
            prize_amount,
        )
        return challenge

    # ------------------------------------------------------------------
    # Word hints
    # ------------------------------------------------------------------

    def purchase_word(self, challenge_id: str, word_index: int, user_id: str) -> PurchaseResult:
        """Buy exclusive hint rights to one word.

        The caller is expected to run :meth:`word_hint_job` afterwards; the
        purchase itself never waits on image generation.

        Raises:
            ValidationError: Missing user or word index out of range.
            ChallengeNotFoundError: Unknown challenge.
            AlreadyPurchasedError: Someone bought this word first.
            InsufficientFundsError: Balance below the word price.
        """
        _require_user(user_id)
        _require_index(word_index)

        with self._lock_for(challenge_id):
            challenge = self.get_challenge(challenge_id)
            word = _word_at(challenge, word_index)

            existing = self.purchases.get(challenge_id, word_index)
            if word.is_purchased or existing is not None:
                owner = word.purchased_by or (existing.user_id if existing else None)
                raise AlreadyPurchasedError(word_index, owner)

            price = challenge.word_price
            self.ledger.debit(user_id, price)

            now = self._clock()
            purchase = UserPurchase(
                user_id=user_id,
                challenge_id=challenge_id,
                word_index=word_index,
                purchase_time=now,
                price=price,
            )
            try:
                held = self.purchases.add(purchase)
            except Exception:
                self.ledger.credit(user_id, price)
                raise
            if held is not None:
                self.ledger.credit(user_id, price)
                raise AlreadyPurchasedError(word_index, held.user_id)

            word.state = WordState.GENERATING
            word.purchased_by = user_id
            word.purchase_time = now
            try:
                self.store.put(challenge)
            except Exception:
                self.purchases.remove(challenge_id, word_index)
                self.ledger.credit(user_id, price)
                raise

        logger.info("Word %d of %s purchased by %s for %d GC", word_index, challenge_id, user_id, price)
        return PurchaseResult(
            challenge_id=challenge_id,
            word_index=word_index,
            word_length=len(word.text),
            cost=price,
            balance=self.ledger.get(user_id),
            purchase=purchase,
        )

    def word_hint_job(self, challenge_id: str, word_index: int) -> BackgroundJob:
        """Build the background job that renders the picture without one word."""

        def run() -> None:
            try:
                self.generate_word_hint(challenge_id, word_index)
            except GameError as exc:
                logger.warning("Hint job for word %d of %s abandoned: %s", word_index, challenge_id, exc.message)

        return run

    def generate_word_hint(self, challenge_id: str, word_index: int) -> WordState:
        """Render the hint image and record READY or FAILED on the word.

        Failures are recorded, never raised; the purchase debit stands either way.
        """
        challenge = self.get_challenge(challenge_id)
        _word_at(challenge, word_index)
        prompt = rules.challenge_image_prompt(
            rules.sentence_without_word([w.text for w in challenge.words], word_index)
        )

        url: str | None = None
        if self.image_generator is None:
            logger.warning("No image generator configured; hint for word %d of %s failed", word_index, challenge_id)
        else:
            try:
                url = self.image_generator.generate(prompt)
            except ImageGenerationError as exc:
                logger.warning(
                    "Hint generation for word %d of %s failed (%s): %s",
                    word_index,
                    challenge_id,
                    exc.kind,
                    exc.message,
                )
            except Exception:
                logger.exception("Unexpected error generating hint for word %d of %s", word_index, challenge_id)

        with self._lock_for(challenge_id):
            challenge = self.get_challenge(challenge_id)
            word = challenge.words[word_index]
            if url is not None:
                word.state = WordState.READY
                challenge.word_images[word_index] = url
            else:
                word.state = WordState.FAILED
            self.store.put(challenge)
            return word.state

    # ------------------------------------------------------------------
    # Challenge image
    # ------------------------------------------------------------------

    def challenge_image_job(self, challenge_id: str) -> BackgroundJob:
        """Build the background job that renders the main challenge image."""

        def run() -> None:
            try:
                self.generate_challenge_image(challenge_id)
            except ImageGenerationError as exc:
                logger.warning("Image generation for %s failed (%s): %s", challenge_id, exc.kind, exc.message)
            except Exception:
                logger.exception("Unexpected error generating image for %s", challenge_id)

        return run

    def generate_challenge_image(self, challenge_id: str) -> str:
        """Return the challenge image URL, generating it on first request.

        Raises:
            ChallengeNotFoundError: Unknown challenge.
            ImageGenerationError: The generator failed; the challenge is marked FAILED.
        """
        challenge = self.get_challenge(challenge_id)
        if challenge.image_url:
            return challenge.image_url
        if self.image_generator is None:
            raise ImageGenerationError("unknown", "Image generation is not configured")

        try:
            url = self.image_generator.generate(rules.challenge_image_prompt(challenge.sentence))
        except ImageGenerationError:
            with self._lock_for(challenge_id):
                challenge = self.get_challenge(challenge_id)
                if not challenge.image_url:
                    challenge.image_status = ImageStatus.FAILED
                    self.store.put(challenge)
            raise

        with self._lock_for(challenge_id):
            challenge = self.get_challenge(challenge_id)
            if not challenge.image_url:
                challenge.image_url = url
                challenge.image_status = ImageStatus.READY
                self.store.put(challenge)
            logger.info("Image ready for challenge %s", challenge_id)
            return challenge.image_url

    # ------------------------------------------------------------------
    # Guessing
    # ------------------------------------------------------------------

    def guess_word(self, challenge_id: str, word_index: int, guesser_id: str, guess: str) -> GuessResult:
        """Check one word guess and settle the prize if it completes the sentence.

        Raises:
            ValidationError: Missing fields or word index out of range.
            ChallengeNotFoundError: Unknown challenge.
            AlreadyGuessedError: The guesser already holds this word.
        """
        _require_user(guesser_id)
        _require_guess(guess)
        _require_index(word_index)

        with self._lock_for(challenge_id):
            challenge = self.get_challenge(challenge_id)
            word = _word_at(challenge, word_index)
            if word.is_guessed_by(guesser_id):
                raise AlreadyGuessedError(word_index)

            if rules.normalize(guess) != rules.normalize(word.text):
                return GuessResult(
                    correct=False,
                    message="Incorrect guess for this word. Try again!",
                    hint=f'Your guess: "{guess}"',
                )

            word.guessed_by[guesser_id] = True
            all_guessed, reward = self._settle(challenge, guesser_id)
            self.store.put(challenge)
            self.ledger.credit(guesser_id, reward)

        if not all_guessed:
            message = f'Correct! You guessed "{word.text}".'
        elif reward or challenge.solved_by == guesser_id:
            message = SOLVED_MESSAGE.format(reward=reward)
        else:
            message = LATE_SOLVE_MESSAGE
        return GuessResult(
            correct=True,
            message=message,
            reward=reward,
            word_text=word.text,
            challenge_solved=all_guessed,
            solution=challenge.sentence if all_guessed else None,
        )

    def guess_sentence(self, challenge_id: str, guesser_id: str, guess: str) -> GuessResult:
        """Check a whole-sentence guess.

        A match counts as guessing every word, then settles exactly like the
        per-word path: the first player to hold all words takes the prize.
        """
        _require_user(guesser_id)
        _require_guess(guess)

        with self._lock_for(challenge_id):
            challenge = self.get_challenge(challenge_id)
            if rules.normalize(guess) != rules.normalize(challenge.sentence):
                return GuessResult(
                    correct=False,
                    message="Incorrect guess. Try again!",
                    hint=f'Your guess: "{guess}"',
                )

            already_winner = challenge.solved_by == guesser_id
            for word in challenge.words:
                if not word.is_guessed_by(guesser_id):
                    word.guessed_by[guesser_id] = True
            _, reward = self._settle(challenge, guesser_id)
            self.store.put(challenge)
            self.ledger.credit(guesser_id, reward)

        if already_winner:
            message = ALREADY_SOLVED_MESSAGE
        elif challenge.solved_by == guesser_id:
            message = SOLVED_MESSAGE.format(reward=reward)
        else:
            message = LATE_SOLVE_MESSAGE
        return GuessResult(
            correct=True,
            message=message,
            reward=reward,
            challenge_solved=True,
            solution=challenge.sentence,
        )

    def _settle(self, challenge: Challenge, user_id: str) -> tuple[bool, int]:
        """Award the prize if ``user_id`` now holds every word and nobody won yet.

        Returns:
            ``(holds_all_words, reward)``.
        """
        if not challenge.has_guessed_all(user_id):
            return False, 0
        if challenge.solved_by is not None:
            return True, 0
        challenge.solved_by = user_id
        challenge.is_active = False
        logger.info("Challenge %s solved by %s; prize %d GC", challenge.id, user_id, challenge.prize_amount)
        return True, challenge.prize_amount


def _require_user(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("Missing required fields")


def _require_guess(guess: str) -> None:
    if not isinstance(guess, str) or not guess.strip():
        raise ValidationError("Missing required fields")


def _require_index(word_index: int) -> None:
    if isinstance(word_index, bool) or not isinstance(word_index, int):
        raise ValidationError("Invalid word index")


def _word_at(challenge: Challenge, word_index: int) -> Word:
    if not 0 <= word_index < challenge.word_count:
        raise ValidationError("Invalid word index")
    return challenge.words[word_index]


__all__ = [
    "BackgroundJob",
    "ChallengeEngine",
    "GuessResult",
    "PurchaseResult",
]
