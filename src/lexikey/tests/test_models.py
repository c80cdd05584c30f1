"""Tests for database models and engine value types."""
from datetime import UTC, datetime

import pytest
from faker import Faker
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lexikey.models.engine_models import (
    Frequency,
    LearnerProgress,
    LedgerPatch,
    PhonicsGroup,
    SessionSpec,
    StruggleEntry,
    WordItem,
)
from lexikey.models.models import Learner, PracticeSession, StruggleWord, ThresholdCalibration

fake = Faker()


def _learner(db: Session) -> Learner:
    learner = Learner(external_id=fake.uuid4())
    db.add(learner)
    db.commit()
    db.refresh(learner)
    return learner


def test_learner_creation(db: Session) -> None:
    """Test learner creation."""
    learner = _learner(db)

    assert learner.id is not None
    assert learner.current_level == 1.0
    assert learner.has_completed_placement is False
    assert learner.weak_phonics_groups == []
    assert learner.created_at is not None


def test_struggle_word_unique_per_learner(db: Session) -> None:
    """Test that a learner cannot hold the same struggle word twice."""
    learner = _learner(db)
    db.add(StruggleWord(learner_id=learner.id, word="ship", phonics_group="digraph-sh"))
    db.commit()

    db.add(StruggleWord(learner_id=learner.id, word="ship", phonics_group="digraph-sh"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    other = _learner(db)
    db.add(StruggleWord(learner_id=other.id, word="ship", phonics_group="digraph-sh"))
    db.commit()
    assert db.query(StruggleWord).count() == 2


def test_threshold_calibration(db: Session) -> None:
    """Test threshold calibration relationship."""
    learner = _learner(db)
    db.add(
        ThresholdCalibration(
            learner_id=learner.id,
            base_time=0.6,
            seconds_per_char=0.5,
            safety_multiplier=1.3,
            last_updated=datetime.now(UTC),
        )
    )
    db.commit()
    db.refresh(learner)

    assert learner.threshold.seconds_per_char == 0.5
    assert learner.threshold.sample_count == 0


def test_practice_session_key_unique(db: Session) -> None:
    """Test that a session key is recorded once per learner."""
    learner = _learner(db)
    for _ in range(2):
        db.add(PracticeSession(learner_id=learner.id, session_key="k1", previous_level=1.0, new_level=1.0))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_struggle_word_requires_learner(db: Session) -> None:
    """Test that foreign keys are enforced."""
    db.add(StruggleWord(learner_id=999, word="ship", phonics_group="digraph-sh"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


@pytest.mark.parametrize("percents,expected", [
    ((30, 50, 20), (30, 50, 20)),
    ((3, 5, 2), (30, 50, 20)),
    ((0, 0, 0), (30, 50, 20)),
    ((50, 50, 50), (100 / 3, 100 / 3, 100 / 3)),
    ((0, 100, 0), (0, 100, 0)),
])
def test_session_spec_normalizes_percentages(percents, expected) -> None:
    """Bucket percentages always sum to 100."""
    spec = SessionSpec(
        struggle_percent=percents[0],
        new_percent=percents[1],
        confidence_percent=percents[2],
    )
    assert (spec.struggle_percent, spec.new_percent, spec.confidence_percent) == pytest.approx(expected)
    assert spec.struggle_percent + spec.new_percent + spec.confidence_percent == pytest.approx(100)


@pytest.mark.parametrize("kwargs", [
    {"size": 0},
    {"starting_boosters": -1},
    {"struggle_percent": -10},
    {"capital_frequency": "always"},
])
def test_session_spec_rejects_invalid_values(kwargs) -> None:
    """Invalid session specs raise ValueError."""
    with pytest.raises(ValueError):
        SessionSpec(**kwargs)


def test_session_spec_defaults() -> None:
    """Defaults come from settings."""
    spec = SessionSpec()
    assert spec.size == 20
    assert spec.starting_boosters == 2
    assert spec.capital_frequency == Frequency.NEVER
    assert Frequency.SOMETIMES.probability == 0.15
    assert Frequency.OFTEN.probability == 0.35


def test_learner_progress_clamps_level() -> None:
    """Levels outside 1-10 are clamped and groups are parsed."""
    assert LearnerProgress(current_level=0.2).current_level == 1.0
    assert LearnerProgress(current_level=11).current_level == 10.0
    assert LearnerProgress(weak_phonics_groups={"cvc"}).weak_phonics_groups == {PhonicsGroup.CVC}


def test_word_item_prompt() -> None:
    """The prompt prefers the transformed text."""
    word = WordItem(id="w1", text="cat", difficulty=1, phonics_group="cvc-short-a")
    assert word.prompt == "cat"
    assert WordItem(id="w1", text="cat", difficulty=1, phonics_group="cvc", display_text="Cat!").prompt == "Cat!"


def test_ledger_patch_is_empty() -> None:
    """Patches without upserts or removals are empty."""
    assert LedgerPatch().is_empty
    assert not LedgerPatch(upserts=[StruggleEntry(word="cat", phonics_group="cvc")]).is_empty


@pytest.mark.parametrize("level", [float("nan"), float("inf"), float("-inf")])
def test_learner_progress_rejects_non_finite_level(level) -> None:
    """Non-finite levels are reset to the minimum."""
    assert LearnerProgress(current_level=level).current_level == 1.0
