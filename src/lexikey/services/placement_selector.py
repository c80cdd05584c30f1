"""Adaptive placement test.

The test starts in the middle of the difficulty range and steps up or down
after each answer: up two for a fast correct answer, up one for a slow one,
down one for a miss. The final level is derived from the difficulty of the
words the learner got right, and every phonics group with a miss is flagged
as weak.
"""
import logging
import math
import random
from typing import Callable, List, Optional, Sequence, Set

from lexikey import monitoring
from lexikey.config import settings
from lexikey.models.engine_models import (
    PhonicsGroup,
    PlacementAnswer,
    PlacementRecord,
    PlacementResult,
    WordItem,
)
from lexikey.services.phonics import to_generic_group
from lexikey.services.threshold_calibrator import calibrate_from_placement

logger = logging.getLogger(__name__)


def _pool(difficulty: int, group: PhonicsGroup, words: str, first: str = "a") -> List[WordItem]:
    return [
        WordItem(
            id=f"p{difficulty}{chr(ord(first) + i)}",
            text=text,
            difficulty=difficulty,
            phonics_group=group.value,
        )
        for i, text in enumerate(words.split())
    ]


PLACEMENT_WORD_POOL: List[WordItem] = [
    # 1: short-vowel CVC
    *_pool(1, PhonicsGroup.CVC, "cat dog bat pen sit run hot map red sun"),
    # 2: advanced CVC and initial blends
    *_pool(2, PhonicsGroup.CVC, "rat zip"),
    *_pool(2, PhonicsGroup.BLENDS, "frog drum swim spin flag stop", first="c"),
    # 3: silent e
    *_pool(3, PhonicsGroup.SILENT_E, "cake bike bone make time home cute rode hope"),
    # 4: consonant digraphs
    *_pool(4, PhonicsGroup.DIGRAPHS, "ship that when chop thin duck fish bath rich"),
    # 5: vowel teams
    *_pool(5, PhonicsGroup.VOWEL_TEAMS, "train rain boat play green team soap stay feet"),
    # 6: r-controlled vowels
    *_pool(6, PhonicsGroup.R_CONTROLLED, "bird star turn corn fern park hurt port girl"),
    # 7: diphthongs and complex vowels
    *_pool(7, PhonicsGroup.DIPHTHONGS, "cloud point house brown clown boil moon look shout"),
    # 8: three-letter blends and silent letters
    *_pool(8, PhonicsGroup.BLENDS, "bright string splash street scream spring knock wreck throw"),
    # 9: complex digraphs and silent gh
    *_pool(9, PhonicsGroup.DIGRAPHS, "thought taught through laugh phone catch match rough pitch"),
    # 10: multi-syllable and abstract
    *_pool(10, PhonicsGroup.BLENDS, "brought strength straight"),
    *_pool(10, PhonicsGroup.MULTI_SYLLABLE, "suddenly beautiful playground happiness understand", first="d"),
]


def _clamp_difficulty(difficulty: int) -> int:
    return max(settings.placement.min_difficulty, min(settings.placement.max_difficulty, difficulty))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class PlacementSelector:
    """Runs one placement test over a fixed word pool."""

    def __init__(
        self,
        pool: Optional[Sequence[WordItem]] = None,
        rng: Optional[random.Random] = None,
        total_words: Optional[int] = None,
    ):
        """Initialize the selector with a word pool and a random source."""
        self.pool = list(pool) if pool is not None else list(PLACEMENT_WORD_POOL)
        self.rng = rng or random.Random()
        self.total_words = total_words or settings.placement.total_words
        self.records: List[PlacementRecord] = []
        self.used_ids: Set[str] = set()

    @property
    def is_complete(self) -> bool:
        return len(self.records) >= self.total_words

    def next_difficulty(self) -> int:
        """Difficulty the next word should be drawn from."""
        if not self.records:
            return settings.placement.start_difficulty

        last = self.records[-1]
        difficulty = last.difficulty
        if last.correct:
            if last.answer.time_spent < settings.placement.fast_answer_seconds:
                difficulty += 2
            else:
                difficulty += 1
        else:
            difficulty -= 1
        return _clamp_difficulty(difficulty)

    def _available(self, difficulty: int) -> List[WordItem]:
        return [w for w in self.pool if w.difficulty == difficulty and w.id not in self.used_ids]

    def select_next(self) -> Optional[WordItem]:
        """Draw the next word, or None when the test is over or the pool is exhausted."""
        if self.is_complete:
            return None

        difficulty = self.next_difficulty()
        candidates = self._available(difficulty)

        offset = 1
        while not candidates and offset <= settings.placement.max_search_offset:
            candidates = self._available(difficulty + offset) + self._available(difficulty - offset)
            offset += 1

        if not candidates:
            logger.warning(f"No unused placement words near difficulty {difficulty}")
            return None

        word = self.rng.choice(candidates)
        self.used_ids.add(word.id)
        return word

    def record(self, word: WordItem, answer: PlacementAnswer) -> None:
        """Record the learner's answer to a word."""
        self.records.append(PlacementRecord(word=word, answer=answer))
        logger.debug(
            f"Placement answer {len(self.records)}: '{word.text}' (difficulty {word.difficulty}) "
            f"correct={answer.correct} in {answer.time_spent:.2f}s"
        )

    def determine_level(self) -> int:
        """Level from the average difficulty of correctly answered words."""
        correct = [r for r in self.records if r.correct]
        if not correct:
            return settings.placement.min_difficulty

        avg_difficulty = sum(r.difficulty for r in correct) / len(correct)
        accuracy = len(correct) / len(self.records)

        if accuracy >= 0.9:
            level = _round_half_up(avg_difficulty)
        elif accuracy >= 0.7:
            level = _round_half_up(avg_difficulty - 1)
        else:
            level = _round_half_up(avg_difficulty - 2)
        return _clamp_difficulty(level)

    def weak_groups(self) -> Set[PhonicsGroup]:
        """Every phonics group with at least one miss."""
        groups = set()
        for record in self.records:
            if record.correct:
                continue
            group = to_generic_group(record.word.phonics_group)
            if group is not None:
                groups.add(group)
        return groups

    def finish(self) -> PlacementResult:
        """Compute the result from the answers gathered so far."""
        samples = [
            (len(r.word.text), r.answer.time_spent) for r in self.records if r.correct
        ]
        result = PlacementResult(
            level=self.determine_level(),
            weak_groups=self.weak_groups(),
            per_word_timings=list(self.records),
            threshold_params=calibrate_from_placement(samples),
        )
        monitoring.placement_tests_completed.inc()
        logger.info(
            f"Placement finished after {len(self.records)} words: level {result.level}, "
            f"weak groups {sorted(g.value for g in result.weak_groups)}"
        )
        return result


def run_placement(
    answer_fn: Callable[[WordItem], PlacementAnswer],
    pool: Optional[Sequence[WordItem]] = None,
    rng: Optional[random.Random] = None,
    total_words: Optional[int] = None,
) -> PlacementResult:
    """Run a whole placement test, asking answer_fn for each word."""
    selector = PlacementSelector(pool=pool, rng=rng, total_words=total_words)
    while not selector.is_complete:
        word = selector.select_next()
        if word is None:
            logger.info("Placement pool exhausted; finishing early")
            break
        selector.record(word, answer_fn(word))
    return selector.finish()
