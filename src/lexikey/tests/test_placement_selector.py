"""Tests for the adaptive placement test."""
import random

import pytest

from conftest import make_words
from lexikey.models.engine_models import PhonicsGroup, PlacementAnswer, WordItem
from lexikey.services.placement_selector import (
    PLACEMENT_WORD_POOL,
    PlacementSelector,
    run_placement,
)
from lexikey.services.threshold_calibrator import default_params


def _word(difficulty: int, group: PhonicsGroup = PhonicsGroup.CVC, text: str = "word") -> WordItem:
    return WordItem(id=f"{text}{difficulty}", text=text, difficulty=difficulty, phonics_group=group.value)


def test_pool_ids_are_unique() -> None:
    """Every placement word can be told apart by id."""
    ids = [w.id for w in PLACEMENT_WORD_POOL]
    assert len(ids) == len(set(ids))
    assert {w.difficulty for w in PLACEMENT_WORD_POOL} == set(range(1, 11))


def test_first_word_is_difficulty_three(rng) -> None:
    """The test starts in the middle of the range."""
    selector = PlacementSelector(rng=rng)
    assert selector.select_next().difficulty == 3


@pytest.mark.parametrize("correct,seconds,expected", [
    (True, 1.5, 5),
    (True, 2.0, 4),
    (True, 4.0, 4),
    (False, 1.0, 2),
])
def test_difficulty_steps(rng, correct, seconds, expected) -> None:
    """Fast correct answers jump two, slow ones one, misses drop one."""
    selector = PlacementSelector(rng=rng)
    word = selector.select_next()
    selector.record(word, PlacementAnswer(correct=correct, time_spent=seconds))
    assert selector.select_next().difficulty == expected


def test_difficulty_is_clamped(rng) -> None:
    """Steps never leave the 1-10 range."""
    selector = PlacementSelector(rng=rng)
    selector.record(_word(10), PlacementAnswer(correct=True, time_spent=0.5))
    assert selector.next_difficulty() == 10
    selector.record(_word(1), PlacementAnswer(correct=False, time_spent=0.5))
    assert selector.next_difficulty() == 1


def test_words_are_not_repeated(rng) -> None:
    """Each pool word is used at most once."""
    selector = PlacementSelector(rng=rng)
    seen = set()
    while not selector.is_complete:
        word = selector.select_next()
        assert word.id not in seen
        seen.add(word.id)
        selector.record(word, PlacementAnswer(correct=True, time_spent=3.0))


def test_search_moves_to_nearest_difficulty(rng) -> None:
    """When the target difficulty is used up, nearby difficulties are tried."""
    pool = make_words([("cat", 1, "cvc"), ("ship", 6, "digraphs")])
    selector = PlacementSelector(pool=pool, rng=rng)
    first = selector.select_next()
    # Difficulty 3 is empty; 1 is closer than 6
    assert first.text == "cat"
    selector.record(first, PlacementAnswer(correct=True, time_spent=1.0))
    # Target 3 again; only "ship" is left, three steps away
    assert selector.select_next().text == "ship"


def test_exhausted_pool_ends_test(rng) -> None:
    """No word is returned once nothing usable remains."""
    pool = make_words([("cat", 3, "cvc")])
    selector = PlacementSelector(pool=pool, rng=rng)
    word = selector.select_next()
    selector.record(word, PlacementAnswer(correct=True, time_spent=1.0))
    assert selector.select_next() is None


def test_complete_test_returns_no_word(rng) -> None:
    """No more words after the configured number of answers."""
    selector = PlacementSelector(rng=rng, total_words=2)
    for _ in range(2):
        selector.record(selector.select_next(), PlacementAnswer(correct=True, time_spent=3.0))
    assert selector.is_complete
    assert selector.select_next() is None


def _selector_with(results) -> PlacementSelector:
    """Selector holding (difficulty, correct) answers."""
    selector = PlacementSelector(total_words=len(results))
    for i, (difficulty, correct) in enumerate(results):
        selector.record(_word(difficulty, text=f"w{i}"), PlacementAnswer(correct=correct, time_spent=2.5))
    return selector


@pytest.mark.parametrize("results,expected", [
    # 100% accuracy: raw average 4.5 rounds up
    ([(4, True), (5, True)], 5),
    # 90% accuracy: raw average of the correct ones
    ([(6, True)] * 9 + [(8, False)], 6),
    # 80% accuracy: average minus one
    ([(6, True)] * 8 + [(8, False)] * 2, 5),
    # 50% accuracy: average minus two
    ([(6, True), (7, True), (3, False), (4, False)], 5),
    # Low levels are clamped
    ([(1, True), (2, False), (1, False)], 1),
    # Nothing correct
    ([(3, False), (2, False)], 1),
])
def test_determine_level(results, expected) -> None:
    """Level is the accuracy-weighted average difficulty of correct answers."""
    assert _selector_with(results).determine_level() == expected


def test_weak_groups_from_misses() -> None:
    """Every generic group with a miss is weak."""
    selector = PlacementSelector(total_words=4)
    selector.record(_word(1, PhonicsGroup.CVC, "cat"), PlacementAnswer(correct=True, time_spent=1.0))
    selector.record(_word(4, PhonicsGroup.DIGRAPHS, "ship"), PlacementAnswer(correct=False, time_spent=1.0))
    selector.record(_word(2, PhonicsGroup.BLENDS, "frog"), PlacementAnswer(correct=False, time_spent=1.0))
    selector.record(_word(4, PhonicsGroup.DIGRAPHS, "chop"), PlacementAnswer(correct=True, time_spent=1.0))
    assert selector.weak_groups() == {PhonicsGroup.DIGRAPHS, PhonicsGroup.BLENDS}


def test_run_placement_strong_learner() -> None:
    """A fast, accurate learner is placed high with a calibrated threshold."""
    asked = []

    def answer(word: WordItem) -> PlacementAnswer:
        asked.append(word)
        return PlacementAnswer(correct=True, time_spent=0.2 * len(word.text) + 1.0)

    result = run_placement(answer, rng=random.Random(3))

    assert len(asked) == 20
    assert len(result.per_word_timings) == 20
    assert result.level >= 8
    assert result.weak_groups == set()
    assert result.threshold_params.sample_count == 20
    assert 0.1 <= result.threshold_params.seconds_per_char <= 2.0
    assert 0.4 <= result.threshold_params.base_time <= 1.0


def test_run_placement_struggling_learner() -> None:
    """A learner who misses everything starts at level 1 with default timing."""
    result = run_placement(
        lambda word: PlacementAnswer(correct=False, time_spent=5.0),
        rng=random.Random(3),
    )

    assert result.level == 1
    assert PhonicsGroup.CVC in result.weak_groups
    assert result.threshold_params.seconds_per_char == default_params().seconds_per_char
    assert result.threshold_params.sample_count == 0


def test_run_placement_stops_when_pool_runs_out(rng) -> None:
    """A small pool finishes the test early."""
    pool = make_words([("cat", 1, "cvc"), ("frog", 2, "blends"), ("cake", 3, "silent-e")])
    result = run_placement(lambda word: PlacementAnswer(correct=True, time_spent=3.0), pool=pool, rng=rng)
    assert len(result.per_word_timings) == 3
