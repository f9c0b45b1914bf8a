"""
Test suite for the challenge rules engine.

Covers creation with prize escrow, word hint purchases, per-word and
whole-sentence guessing, first-solver-wins settlement and background image
generation results.
"""

import pytest

from _01_engine.exceptions import (
    AlreadyGuessedError,
    AlreadyPurchasedError,
    ChallengeNotFoundError,
    ImageGenerationError,
    InsufficientFundsError,
    RateLimitedError,
    ValidationError,
)
from _01_engine.state import ImageStatus, WordState
from _01_engine.store import InMemoryChallengeStore

FOX_SENTENCE = "a red fox jumps over"

FOX_WORDS = FOX_SENTENCE.split()


def guess_all_words(engine, challenge_id, user_id):
    results = []
    for index, word in enumerate(FOX_WORDS):
        results.append(engine.guess_word(challenge_id, index, user_id, word))
    return results


class TestCreateChallenge:
    def test_new_challenge_is_open_and_locked(self, engine, accounts):
        challenge = engine.create_challenge(FOX_SENTENCE, "creator", prize_amount=10)

        assert challenge.word_count == 5
        assert challenge.is_active
        assert challenge.solved_by is None
        assert challenge.image_url is None
        assert all(word.state is WordState.LOCKED for word in challenge.words)
        assert all(not word.guessed_by for word in challenge.words)
        assert [word.position for word in challenge.words] == list(range(5))
        assert accounts.get_balance("creator") == 90

    def test_prize_zero_debits_nothing(self, engine, accounts):
        engine.create_challenge(FOX_SENTENCE, "creator")
        assert accounts.get_balance("creator") == 100

    def test_insufficient_funds_creates_nothing(self, engine, accounts):
        """Creator with 5 GC cannot fund a 10 GC prize."""
        accounts.set_balance("poor", 5)

        with pytest.raises(InsufficientFundsError):
            engine.create_challenge(FOX_SENTENCE, "poor", prize_amount=10)

        assert engine.list_challenges() == []
        assert accounts.get_balance("poor") == 5

    def test_fourth_creation_in_a_minute_is_rate_limited(self, engine):
        for _ in range(3):
            engine.create_challenge(FOX_SENTENCE, "creator")

        with pytest.raises(RateLimitedError) as exc_info:
            engine.create_challenge(FOX_SENTENCE, "creator")

        assert exc_info.value.minute_remaining == 0
        assert exc_info.value.to_dict()["minuteRemaining"] == 0
        assert len(engine.list_challenges()) == 3

    def test_unaffordable_prize_does_not_use_rate_limit_slot(self, engine, accounts):
        accounts.set_balance("poor", 5)
        for _ in range(3):
            with pytest.raises(InsufficientFundsError):
                engine.create_challenge(FOX_SENTENCE, "poor", prize_amount=10)

        challenge = engine.create_challenge(FOX_SENTENCE, "poor", prize_amount=0)

        assert challenge.created_by == "poor"
        assert accounts.get_balance("poor") == 5

    def test_rate_limit_is_per_user(self, engine):
        for _ in range(3):
            engine.create_challenge(FOX_SENTENCE, "creator")
        engine.create_challenge(FOX_SENTENCE, "someone-else")

    def test_rate_limited_creation_does_not_debit(self, engine, accounts):
        for _ in range(3):
            engine.create_challenge(FOX_SENTENCE, "creator")
        with pytest.raises(RateLimitedError):
            engine.create_challenge(FOX_SENTENCE, "creator", prize_amount=10)
        assert accounts.get_balance("creator") == 100

    @pytest.mark.parametrize("sentence", ["", "   ", " ".join(["word"] * 26)])
    def test_rejects_bad_word_count(self, engine, sentence):
        with pytest.raises(ValidationError):
            engine.create_challenge(sentence, "creator")

    def test_accepts_twenty_five_words(self, engine):
        challenge = engine.create_challenge(" ".join(["word"] * 25), "creator")
        assert challenge.word_count == 25

    @pytest.mark.parametrize("prize", [-1, 1.5, True])
    def test_rejects_bad_prize(self, engine, prize):
        with pytest.raises(ValidationError):
            engine.create_challenge(FOX_SENTENCE, "creator", prize_amount=prize)

    def test_rejects_missing_creator(self, engine):
        with pytest.raises(ValidationError):
            engine.create_challenge(FOX_SENTENCE, "")

    def test_store_failure_refunds_prize(self, ledger, accounts, clock):
        class BrokenStore(InMemoryChallengeStore):
            def put(self, challenge):
                raise OSError("disk full")

        from _01_engine.engine import ChallengeEngine
        from _01_engine.store import InMemoryPurchaseStore

        broken = ChallengeEngine(BrokenStore(), InMemoryPurchaseStore(), ledger, clock=clock)
        with pytest.raises(OSError):
            broken.create_challenge(FOX_SENTENCE, "creator", prize_amount=10)
        assert accounts.get_balance("creator") == 100


class TestPurchaseWord:
    def test_fox_scenario(self, engine, accounts, fox_challenge):
        """Prize 10 over 5 words prices each hint at 2 GC; the first buyer keeps the word."""
        assert fox_challenge.word_price == 2

        result = engine.purchase_word(fox_challenge.id, 2, "A")

        assert result.cost == 2
        assert result.word_length == 3
        assert result.balance == 98
        assert "text" not in result.to_dict()
        assert accounts.get_balance("A") == 98

        purchases = engine.purchases.list_for_challenge(fox_challenge.id)
        assert [(p.user_id, p.word_index) for p in purchases] == [("A", 2)]
        assert purchases[0].access_expires_at is None

        stored = engine.get_challenge(fox_challenge.id)
        word = stored.words[2]
        assert word.is_purchased
        assert word.purchased_by == "A"
        assert word.purchase_time is not None
        assert word.state is WordState.GENERATING

        with pytest.raises(AlreadyPurchasedError) as exc_info:
            engine.purchase_word(fox_challenge.id, 2, "B")
        assert exc_info.value.purchased_by == "A"
        assert accounts.get_balance("B") == 100

    def test_same_user_cannot_buy_twice(self, engine, accounts, fox_challenge):
        engine.purchase_word(fox_challenge.id, 0, "A")
        with pytest.raises(AlreadyPurchasedError):
            engine.purchase_word(fox_challenge.id, 0, "A")
        assert accounts.get_balance("A") == 98

    def test_free_challenge_words_cost_one(self, engine, accounts):
        challenge = engine.create_challenge(FOX_SENTENCE, "creator")
        result = engine.purchase_word(challenge.id, 4, "A")
        assert result.cost == 1
        assert accounts.get_balance("A") == 99

    def test_insufficient_funds_changes_nothing(self, engine, accounts, fox_challenge):
        accounts.set_balance("broke", 1)
        with pytest.raises(InsufficientFundsError):
            engine.purchase_word(fox_challenge.id, 1, "broke")

        assert accounts.get_balance("broke") == 1
        assert engine.purchases.get(fox_challenge.id, 1) is None
        assert engine.get_challenge(fox_challenge.id).words[1].state is WordState.LOCKED

    @pytest.mark.parametrize("index", [-1, 5, 100])
    def test_word_index_out_of_range(self, engine, fox_challenge, index):
        with pytest.raises(ValidationError):
            engine.purchase_word(fox_challenge.id, index, "A")

    def test_unknown_challenge(self, engine):
        with pytest.raises(ChallengeNotFoundError):
            engine.purchase_word("missing", 0, "A")

    def test_store_failure_rolls_back_purchase(self, ledger, accounts, clock):
        class FlakyStore(InMemoryChallengeStore):
            fail_next_put = False

            def put(self, challenge):
                if self.fail_next_put:
                    self.fail_next_put = False
                    raise OSError("disk full")
                super().put(challenge)

        from _01_engine.engine import ChallengeEngine
        from _01_engine.store import InMemoryPurchaseStore

        store = FlakyStore()
        flaky = ChallengeEngine(store, InMemoryPurchaseStore(), ledger, clock=clock)
        challenge = flaky.create_challenge(FOX_SENTENCE, "creator", prize_amount=10)

        store.fail_next_put = True
        with pytest.raises(OSError):
            flaky.purchase_word(challenge.id, 2, "bob")

        assert accounts.get_balance("bob") == 100
        assert flaky.purchases.get(challenge.id, 2) is None
        assert flaky.get_challenge(challenge.id).words[2].state is WordState.LOCKED

        retry = flaky.purchase_word(challenge.id, 2, "bob")
        assert retry.cost == 2
        assert accounts.get_balance("bob") == 98
        assert flaky.get_challenge(challenge.id).words[2].purchased_by == "bob"

    def test_unknown_challenge_allocates_no_lock(self, engine):
        with pytest.raises(ChallengeNotFoundError):
            engine.purchase_word("missing", 0, "A")
        with pytest.raises(ChallengeNotFoundError):
            engine.guess_word("missing", 0, "A", "fox")
        with pytest.raises(ChallengeNotFoundError):
            engine.guess_sentence("missing", "A", "a fox")
        assert "missing" not in engine._locks

    def test_hint_job_marks_word_ready(self, engine, generator, fox_challenge):
        engine.purchase_word(fox_challenge.id, 2, "A")
        engine.word_hint_job(fox_challenge.id, 2)()

        stored = engine.get_challenge(fox_challenge.id)
        assert stored.words[2].state is WordState.READY
        assert stored.word_images[2] == "https://images.test/1.png"
        assert "a red jumps over" in generator.prompts[-1]
        assert "fox" not in generator.prompts[-1]

    def test_hint_failure_keeps_debit_and_word_guessable(self, engine, accounts, fox_challenge, generator_factory):
        engine.image_generator = generator_factory(fail_kind="quota")
        engine.purchase_word(fox_challenge.id, 2, "A")
        engine.word_hint_job(fox_challenge.id, 2)()

        stored = engine.get_challenge(fox_challenge.id)
        assert stored.words[2].state is WordState.FAILED
        assert 2 not in stored.word_images
        assert accounts.get_balance("A") == 98

        result = engine.guess_word(fox_challenge.id, 2, "A", "fox")
        assert result.correct

    def test_hint_without_generator_fails_quietly(self, engine, fox_challenge):
        engine.image_generator = None
        engine.purchase_word(fox_challenge.id, 0, "A")
        assert engine.generate_word_hint(fox_challenge.id, 0) is WordState.FAILED


class TestGuessWord:
    def test_correct_guess_marks_only_that_user(self, engine, fox_challenge):
        result = engine.guess_word(fox_challenge.id, 2, "A", "  FOX! ")

        assert result.correct
        assert result.word_text == "fox"
        assert result.reward == 0
        assert not result.challenge_solved
        assert result.solution is None

        word = engine.get_challenge(fox_challenge.id).words[2]
        assert word.guessed_by == {"A": True}

    def test_wrong_guess_changes_nothing(self, engine, fox_challenge):
        before = engine.get_challenge(fox_challenge.id)
        result = engine.guess_word(fox_challenge.id, 2, "A", "dog")

        assert not result.correct
        assert result.word_text is None
        assert "fox" not in result.message
        assert engine.get_challenge(fox_challenge.id) == before

    def test_regussing_a_guessed_word_has_no_effect(self, engine, accounts, fox_challenge):
        engine.guess_word(fox_challenge.id, 2, "A", "fox")
        for guess in ("fox", "anything"):
            with pytest.raises(AlreadyGuessedError):
                engine.guess_word(fox_challenge.id, 2, "A", guess)
        assert engine.get_challenge(fox_challenge.id).words[2].guessed_by == {"A": True}
        assert accounts.get_balance("A") == 100

    def test_many_users_can_guess_the_same_word(self, engine, fox_challenge):
        engine.guess_word(fox_challenge.id, 0, "A", "a")
        engine.guess_word(fox_challenge.id, 0, "B", "A")
        assert engine.get_challenge(fox_challenge.id).words[0].guessed_by == {"A": True, "B": True}

    def test_first_to_guess_every_word_wins_prize(self, engine, accounts, fox_challenge):
        results = guess_all_words(engine, fox_challenge.id, "A")

        final = results[-1]
        assert final.challenge_solved
        assert final.reward == 10
        assert final.solution == FOX_SENTENCE
        assert "10 GC" in final.message
        assert all(r.reward == 0 for r in results[:-1])

        stored = engine.get_challenge(fox_challenge.id)
        assert stored.solved_by == "A"
        assert not stored.is_active
        assert accounts.get_balance("A") == 110

    def test_later_solver_gets_congratulations_only(self, engine, accounts, fox_challenge):
        guess_all_words(engine, fox_challenge.id, "A")
        results = guess_all_words(engine, fox_challenge.id, "C")

        final = results[-1]
        assert final.correct
        assert final.challenge_solved
        assert final.reward == 0
        assert "weren't the first solver" in final.message
        assert accounts.get_balance("C") == 100
        assert engine.get_challenge(fox_challenge.id).solved_by == "A"

    def test_purchasing_does_not_count_as_guessing(self, engine, fox_challenge):
        for index in range(5):
            engine.purchase_word(fox_challenge.id, index, "A")
        stored = engine.get_challenge(fox_challenge.id)
        assert stored.solved_by is None
        assert not stored.has_guessed_all("A")

    def test_blank_guess_rejected(self, engine, fox_challenge):
        with pytest.raises(ValidationError):
            engine.guess_word(fox_challenge.id, 0, "A", "   ")

    def test_index_out_of_range(self, engine, fox_challenge):
        with pytest.raises(ValidationError):
            engine.guess_word(fox_challenge.id, 5, "A", "fox")


class TestGuessSentence:
    def test_correct_sentence_wins_full_prize(self, engine, accounts, fox_challenge):
        result = engine.guess_sentence(fox_challenge.id, "A", "A red fox, jumps OVER!")

        assert result.correct
        assert result.reward == 10
        assert result.solution == FOX_SENTENCE
        stored = engine.get_challenge(fox_challenge.id)
        assert stored.solved_by == "A"
        assert not stored.is_active
        assert stored.has_guessed_all("A")
        assert accounts.get_balance("A") == 110

    def test_second_sentence_solver_gets_nothing(self, engine, accounts, fox_challenge):
        engine.guess_sentence(fox_challenge.id, "A", FOX_SENTENCE)
        result = engine.guess_sentence(fox_challenge.id, "B", FOX_SENTENCE)

        assert result.correct
        assert result.reward == 0
        assert accounts.get_balance("B") == 100
        assert engine.get_challenge(fox_challenge.id).solved_by == "A"

    def test_winner_repeating_sentence_is_not_paid_again(self, engine, accounts, fox_challenge):
        engine.guess_sentence(fox_challenge.id, "A", FOX_SENTENCE)
        result = engine.guess_sentence(fox_challenge.id, "A", FOX_SENTENCE)

        assert result.reward == 0
        assert result.message == "You already solved this challenge."
        assert accounts.get_balance("A") == 110

    def test_sentence_after_word_solve_pays_nothing(self, engine, accounts, fox_challenge):
        guess_all_words(engine, fox_challenge.id, "A")
        result = engine.guess_sentence(fox_challenge.id, "B", FOX_SENTENCE)
        assert result.reward == 0
        assert accounts.get_balance("A") == 110
        assert accounts.get_balance("B") == 100

    def test_wrong_sentence_changes_nothing(self, engine, fox_challenge):
        before = engine.get_challenge(fox_challenge.id)
        result = engine.guess_sentence(fox_challenge.id, "A", "a red fox jumps")
        assert not result.correct
        assert result.solution is None
        assert engine.get_challenge(fox_challenge.id) == before

    def test_sentence_guess_after_partial_words(self, engine, accounts, fox_challenge):
        engine.guess_word(fox_challenge.id, 0, "A", "a")
        result = engine.guess_sentence(fox_challenge.id, "A", FOX_SENTENCE)
        assert result.reward == 10
        assert accounts.get_balance("A") == 110


def test_solved_by_never_changes(engine, fox_challenge):
    engine.guess_sentence(fox_challenge.id, "A", FOX_SENTENCE)
    guess_all_words(engine, fox_challenge.id, "B")
    engine.guess_sentence(fox_challenge.id, "C", FOX_SENTENCE)
    for index in range(5):
        try:
            engine.purchase_word(fox_challenge.id, index, "D")
        except AlreadyPurchasedError:
            pass
    assert engine.get_challenge(fox_challenge.id).solved_by == "A"


class TestChallengeImage:
    def test_generates_once(self, engine, generator, fox_challenge):
        url = engine.generate_challenge_image(fox_challenge.id)
        again = engine.generate_challenge_image(fox_challenge.id)

        assert url == again == "https://images.test/1.png"
        assert len(generator.prompts) == 1
        assert FOX_SENTENCE in generator.prompts[0]
        stored = engine.get_challenge(fox_challenge.id)
        assert stored.image_url == url
        assert stored.image_status is ImageStatus.READY

    def test_failure_is_recorded_and_raised(self, engine, fox_challenge, generator_factory):
        engine.image_generator = generator_factory(fail_kind="safety")
        with pytest.raises(ImageGenerationError) as exc_info:
            engine.generate_challenge_image(fox_challenge.id)
        assert exc_info.value.kind == "safety"
        assert engine.get_challenge(fox_challenge.id).image_status is ImageStatus.FAILED

    def test_background_job_swallows_failure(self, engine, fox_challenge, generator_factory):
        engine.image_generator = generator_factory(fail_kind="timeout")
        engine.challenge_image_job(fox_challenge.id)()
        assert engine.get_challenge(fox_challenge.id).image_status is ImageStatus.FAILED

    def test_unknown_challenge(self, engine):
        with pytest.raises(ChallengeNotFoundError):
            engine.generate_challenge_image("missing")
