"""Skill level progression after each practice session."""
import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from lexikey.config import settings
from lexikey.models.engine_models import PhonicsGroup, WordOutcome
from lexikey.services.phonics import to_generic_group
from lexikey.services.threshold_calibrator import valid_seconds

logger = logging.getLogger(__name__)

# (min accuracy, max average seconds per word, level change); first match wins
PERFORMANCE_BANDS: List[Tuple[float, float, float]] = [
    (0.95, 2.5, 0.05),  # exceptional
    (0.85, 3.0, 0.03),  # good
    (0.75, 4.0, 0.01),  # decent
    (0.70, float("inf"), 0.0),  # consolidate at current level
    (0.50, float("inf"), -0.02),  # struggling
]
STRUGGLE_DELTA = -0.05
SLOW_TYPING_SECONDS = 5.0

# Session-level weak group detection
WEAK_GROUP_MIN_ATTEMPTS = 5
WEAK_GROUP_MAX_ACCURACY = 0.7


def clamp_level(level: float) -> float:
    """Clamp a level to the allowed range; non-finite levels become the minimum."""
    if not math.isfinite(level):
        return settings.session.min_level
    return min(max(level, settings.session.min_level), settings.session.max_level)


def next_level(current_level: float, accuracy: float, avg_seconds_per_word: float) -> float:
    """Calculate the learner's level after a session.

    Progress is slow on purpose: several strong sessions are needed to move a
    whole level, and accurate but slow typing only earns half the increase.
    """
    accuracy = min(max(accuracy, 0.0), 1.0) if math.isfinite(accuracy) else 0.0

    delta = STRUGGLE_DELTA
    for min_accuracy, max_seconds, band_delta in PERFORMANCE_BANDS:
        if accuracy >= min_accuracy and avg_seconds_per_word < max_seconds:
            delta = band_delta
            break

    if delta > 0 and avg_seconds_per_word > SLOW_TYPING_SECONDS:
        delta *= 0.5

    return clamp_level(clamp_level(current_level) + delta)


def session_performance(outcomes: Sequence[WordOutcome]) -> Tuple[float, float]:
    """Get (accuracy, average seconds per word) of a session.

    Accuracy counts every outcome. The average only uses finite, positive
    timings and is 0 when there are none.
    """
    if not outcomes:
        return 0.0, 0.0
    accuracy = sum(1 for o in outcomes if o.correct) / len(outcomes)
    timings = valid_seconds(o.time_spent for o in outcomes)
    if len(timings) < len(outcomes):
        logger.warning(f"Ignoring {len(outcomes) - len(timings)} invalid timings in session average")
    avg_seconds = sum(timings) / len(timings) if timings else 0.0
    return accuracy, avg_seconds


def detect_weak_groups(outcomes: Iterable[WordOutcome]) -> Set[PhonicsGroup]:
    """Find generic phonics groups the learner keeps missing.

    A group is weak when it was attempted at least five times and fewer than
    70% of those attempts were correct. Tags with no generic group are ignored.
    """
    totals: Dict[PhonicsGroup, List[int]] = defaultdict(lambda: [0, 0])
    for outcome in outcomes:
        group = to_generic_group(outcome.phonics_group)
        if group is None:
            continue
        totals[group][1] += 1
        if outcome.correct:
            totals[group][0] += 1

    weak = {
        group
        for group, (correct, total) in totals.items()
        if total >= WEAK_GROUP_MIN_ATTEMPTS and correct / total < WEAK_GROUP_MAX_ACCURACY
    }
    if weak:
        logger.info(f"Weak phonics groups detected: {sorted(g.value for g in weak)}")
    return weak
