"""Personalized hesitation thresholds.

A word attempt counts as hesitation when it takes longer than
``(base_time + len(word) * seconds_per_char) * safety_multiplier`` seconds.
The parameters are calibrated once from the placement test and then nudged
after every session with an exponential moving average, so one distracted
session cannot swing the threshold.
"""
import logging
import math
from datetime import datetime, UTC
from typing import Iterable, List, Optional, Tuple

from lexikey.config import settings
from lexikey.models.engine_models import ThresholdParams

logger = logging.getLogger(__name__)

# (word length, seconds spent)
TimingSample = Tuple[int, float]


def default_params() -> ThresholdParams:
    """Get the parameters used before any calibration data exists."""
    return ThresholdParams(
        base_time=settings.threshold.default_base_time,
        seconds_per_char=settings.threshold.default_seconds_per_char,
        safety_multiplier=settings.threshold.safety_multiplier,
        sample_count=0,
        last_updated=datetime.now(UTC),
    )


def get_hesitation_threshold(word_length: int, params: Optional[ThresholdParams] = None) -> float:
    """Get the time in seconds above which typing a word counts as hesitation."""
    params = params or default_params()
    return (params.base_time + word_length * params.seconds_per_char) * params.safety_multiplier


def is_hesitation(word_length: int, seconds: float, params: Optional[ThresholdParams] = None) -> bool:
    """Check whether an attempt took longer than the learner's threshold."""
    return seconds > get_hesitation_threshold(word_length, params)


def percentile(values: List[float], p: float) -> float:
    """Nearest-rank percentile of a list of numbers, 0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.ceil(p / 100 * len(ordered)) - 1
    return ordered[max(0, index)]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_seconds_per_char(value: float) -> float:
    return _clamp(value, settings.threshold.min_seconds_per_char, settings.threshold.max_seconds_per_char)


def derive_base_time(seconds_per_char: float) -> float:
    """Reading overhead as a share of typing speed, bounded."""
    return _clamp(
        seconds_per_char * settings.threshold.base_time_ratio,
        settings.threshold.min_base_time,
        settings.threshold.max_base_time,
    )


def is_valid_seconds(seconds: float) -> bool:
    """A timing is usable when it is finite and positive."""
    return math.isfinite(seconds) and seconds > 0


def valid_seconds(values: Iterable[float]) -> List[float]:
    """Drop non-finite, zero and negative timings."""
    return [v for v in values if is_valid_seconds(v)]


def seconds_per_char_samples(samples: Iterable[TimingSample]) -> List[float]:
    """Turn timing samples into per-character times, dropping invalid ones."""
    per_char = []
    for length, seconds in samples:
        if length <= 0 or not is_valid_seconds(seconds):
            continue
        value = seconds / length
        if math.isfinite(value) and value > 0:
            per_char.append(value)
    return per_char


def calibrate_from_placement(samples: Iterable[TimingSample]) -> ThresholdParams:
    """Initial calibration from the correct answers of a placement test."""
    per_char = seconds_per_char_samples(samples)
    if len(per_char) < settings.threshold.min_samples:
        logger.info(
            f"Only {len(per_char)} valid placement timings; using default threshold parameters"
        )
        return default_params()

    seconds_per_char = clamp_seconds_per_char(percentile(per_char, settings.threshold.percentile))
    params = ThresholdParams(
        base_time=derive_base_time(seconds_per_char),
        seconds_per_char=seconds_per_char,
        safety_multiplier=settings.threshold.safety_multiplier,
        sample_count=len(per_char),
        last_updated=datetime.now(UTC),
    )
    logger.info(
        f"Calibrated threshold: base_time={params.base_time:.3f}s, "
        f"seconds_per_char={params.seconds_per_char:.3f}s from {len(per_char)} samples"
    )
    return params


def adjust_from_session(
    current: ThresholdParams,
    samples: Iterable[TimingSample],
    adjustment_rate: Optional[float] = None,
) -> ThresholdParams:
    """Blend one session's timings into the existing parameters.

    Returns ``current`` itself when the session has too few valid samples.
    """
    if adjustment_rate is None:
        adjustment_rate = settings.threshold.adjustment_rate

    per_char = seconds_per_char_samples(samples)
    if len(per_char) < settings.threshold.min_samples:
        logger.debug(f"Only {len(per_char)} valid session timings; threshold unchanged")
        return current

    session_spc = clamp_seconds_per_char(percentile(per_char, settings.threshold.percentile))

    blended_spc = current.seconds_per_char * (1 - adjustment_rate) + session_spc * adjustment_rate
    blended_base = (
        current.base_time * (1 - adjustment_rate)
        + derive_base_time(session_spc) * adjustment_rate
    )

    return ThresholdParams(
        base_time=round(
            _clamp(blended_base, settings.threshold.min_base_time, settings.threshold.max_base_time), 3
        ),
        seconds_per_char=round(clamp_seconds_per_char(blended_spc), 3),
        safety_multiplier=current.safety_multiplier,
        sample_count=current.sample_count + len(per_char),
        last_updated=datetime.now(UTC),
    )
