"""Store interfaces consumed by the engine and their SQLAlchemy implementations."""
import logging
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lexikey.models.engine_models import (
    LearnerProgress,
    LedgerPatch,
    PhonicsGroup,
    StruggleEntry,
    StruggleStatus,
    ThresholdParams,
    WordItem,
    WordOutcome,
)
from lexikey.models.models import Learner, StruggleWord, ThresholdCalibration
from lexikey.services import struggle_ledger
from lexikey.services.threshold_calibrator import default_params

logger = logging.getLogger(__name__)

PROGRESS_FIELDS = {"current_level", "has_completed_placement", "weak_phonics_groups"}


class CatalogSource(Protocol):
    def all_words(self) -> List[WordItem]: ...


class ProgressStore(Protocol):
    def get_progress(self, learner_id: str) -> LearnerProgress: ...

    def save_progress(self, learner_id: str, partial: Dict[str, Any]) -> None: ...


class StruggleStore(Protocol):
    def list_entries(self, learner_id: str) -> List[StruggleEntry]: ...

    def apply_batch(self, learner_id: str, outcomes: Iterable[WordOutcome]) -> LedgerPatch: ...


class ThresholdStore(Protocol):
    def get_params(self, learner_id: str) -> ThresholdParams: ...

    def save_params(self, learner_id: str, params: ThresholdParams) -> None: ...


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops timezone info; stored datetimes are UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_entry(row: StruggleWord) -> StruggleEntry:
    return StruggleEntry(
        word=row.word,
        phonics_group=row.phonics_group,
        consecutive_correct=row.consecutive_correct,
        total_attempts=row.total_attempts,
        last_seen_at=_aware(row.last_seen_at),
    )


class SqlStore:
    """Shared learner lookup for the SQLAlchemy stores.

    With ``autocommit`` off, writes are only flushed and the caller commits
    or rolls back the whole unit of work.
    """

    def __init__(self, db: Session, autocommit: bool = True):
        """Initialize the store with a database session."""
        self.db = db
        self.autocommit = autocommit

    def _save(self) -> None:
        if self.autocommit:
            self.db.commit()
        else:
            self.db.flush()

    def get_learner(self, learner_id: str) -> Learner:
        learner = self.db.query(Learner).filter(Learner.external_id == learner_id).first()
        if not learner:
            raise ValueError(f"Learner {learner_id} not found")
        return learner

    def get_or_create_learner(self, learner_id: str) -> Learner:
        """Get existing learner or create a new one at level 1."""
        learner = self.db.query(Learner).filter(Learner.external_id == learner_id).first()
        if learner:
            return learner

        learner = Learner(
            external_id=learner_id,
            current_level=1.0,
            has_completed_placement=False,
            weak_phonics_groups=[],
        )
        self.db.add(learner)
        self._save()
        self.db.refresh(learner)
        logger.info(f"Created learner {learner_id}")
        return learner


class SqlStruggleStore(SqlStore):
    """Struggle ledger persisted in the struggle_words table."""

    def list_entries(self, learner_id: str, status: Optional[StruggleStatus] = None) -> List[StruggleEntry]:
        """Get the learner's struggle entries, optionally filtered by status."""
        learner = self.get_learner(learner_id)
        rows = (
            self.db.query(StruggleWord)
            .filter(StruggleWord.learner_id == learner.id)
            .order_by(StruggleWord.id)
            .all()
        )
        entries = [_to_entry(row) for row in rows]
        if status is not None:
            entries = [e for e in entries if e.status == StruggleStatus(status)]
        return entries

    def count(self, learner_id: str) -> int:
        """Get the number of words in the learner's struggle bucket."""
        learner = self.get_learner(learner_id)
        return self.db.query(StruggleWord).filter(StruggleWord.learner_id == learner.id).count()

    def apply_batch(self, learner_id: str, outcomes: Iterable[WordOutcome]) -> LedgerPatch:
        """Apply a session's outcomes in a single transaction."""
        learner = self.get_learner(learner_id)
        patch = struggle_ledger.apply_batch(self.list_entries(learner_id), list(outcomes))

        try:
            for word in patch.removed:
                (
                    self.db.query(StruggleWord)
                    .filter(
                        and_(
                            StruggleWord.learner_id == learner.id,
                            StruggleWord.word == word.lower(),
                        )
                    )
                    .delete(synchronize_session=False)
                )

            for entry in patch.upserts:
                row = (
                    self.db.query(StruggleWord)
                    .filter(
                        and_(
                            StruggleWord.learner_id == learner.id,
                            StruggleWord.word == entry.word.lower(),
                        )
                    )
                    .first()
                )
                if row is None:
                    row = StruggleWord(learner_id=learner.id, word=entry.word.lower())
                    self.db.add(row)
                row.phonics_group = entry.phonics_group
                row.consecutive_correct = entry.consecutive_correct
                row.total_attempts = entry.total_attempts
                row.last_seen_at = entry.last_seen_at

            self._save()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to apply struggle batch for learner {learner_id}")
            raise

        return patch

    def reset(self, learner_id: str) -> int:
        """Remove every word from the learner's struggle bucket."""
        learner = self.get_learner(learner_id)
        count = (
            self.db.query(StruggleWord)
            .filter(StruggleWord.learner_id == learner.id)
            .delete(synchronize_session=False)
        )
        self._save()
        logger.info(f"Reset struggle bucket for learner {learner_id} ({count} words)")
        return count


class SqlProgressStore(SqlStore):
    """Learner progress persisted in the learners table."""

    def __init__(
        self,
        db: Session,
        struggle_store: Optional[SqlStruggleStore] = None,
        autocommit: bool = True,
    ):
        super().__init__(db, autocommit)
        self.struggle_store = struggle_store or SqlStruggleStore(db, autocommit)

    def get_progress(self, learner_id: str) -> LearnerProgress:
        """Get the learner's progress including the struggle ledger."""
        learner = self.get_learner(learner_id)
        return LearnerProgress(
            current_level=learner.current_level,
            has_completed_placement=learner.has_completed_placement,
            weak_phonics_groups={PhonicsGroup(g) for g in learner.weak_phonics_groups or []},
            struggle_entries=self.struggle_store.list_entries(learner_id),
        )

    def save_progress(self, learner_id: str, partial: Dict[str, Any]) -> None:
        """Update some of the learner's progress fields."""
        unknown = set(partial) - PROGRESS_FIELDS
        if unknown:
            raise ValueError(f"Unknown progress fields: {sorted(unknown)}")

        learner = self.get_learner(learner_id)
        if "current_level" in partial:
            # Clamping goes through LearnerProgress
            learner.current_level = LearnerProgress(current_level=partial["current_level"]).current_level
        if "has_completed_placement" in partial:
            learner.has_completed_placement = bool(partial["has_completed_placement"])
        if "weak_phonics_groups" in partial:
            learner.weak_phonics_groups = sorted(
                PhonicsGroup(g).value for g in partial["weak_phonics_groups"]
            )
        self._save()


class SqlThresholdStore(SqlStore):
    """Threshold parameters persisted in the threshold_calibrations table."""

    def get_params(self, learner_id: str) -> ThresholdParams:
        """Get the learner's parameters, or the defaults before calibration."""
        learner = self.get_learner(learner_id)
        row = learner.threshold
        if row is None:
            return default_params()
        return ThresholdParams(
            base_time=row.base_time,
            seconds_per_char=row.seconds_per_char,
            safety_multiplier=row.safety_multiplier,
            sample_count=row.sample_count,
            last_updated=_aware(row.last_updated),
        )

    def save_params(self, learner_id: str, params: ThresholdParams) -> None:
        """Store the learner's parameters."""
        learner = self.get_learner(learner_id)
        row = learner.threshold
        if row is None:
            row = ThresholdCalibration(learner_id=learner.id)
            self.db.add(row)
        row.base_time = params.base_time
        row.seconds_per_char = params.seconds_per_char
        row.safety_multiplier = params.safety_multiplier
        row.sample_count = params.sample_count
        row.last_updated = params.last_updated
        self._save()
