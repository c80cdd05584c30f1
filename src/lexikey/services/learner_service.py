"""Learner service: runs the practice engine against a learner's stored state."""
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from sqlalchemy import and_
from sqlalchemy.orm import Session

from lexikey import monitoring
from lexikey.models.engine_models import (
    LedgerPatch,
    PlacementAnswer,
    PlacementResult,
    SessionResult,
    SessionSpec,
    WordItem,
    WordOutcome,
)
from lexikey.models.models import PracticeSession
from lexikey.services.practice_engine import PracticeEngine
from lexikey.services.stores import SqlProgressStore, SqlStruggleStore, SqlThresholdStore

logger = logging.getLogger(__name__)


class LearnerService:
    """Service for running placement tests and practice sessions for learners."""

    def __init__(self, db: Session, engine: Optional[PracticeEngine] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.engine = engine or PracticeEngine()
        # Stores only flush; each operation below commits once.
        self.struggle_store = SqlStruggleStore(db, autocommit=False)
        self.progress_store = SqlProgressStore(db, self.struggle_store, autocommit=False)
        self.threshold_store = SqlThresholdStore(db, autocommit=False)

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        """Commit the enclosed writes together, or roll all of them back."""
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Failed to {action}")
            raise

    def register_learner(self, learner_id: str) -> None:
        """Make sure the learner exists."""
        with self._transaction(f"register learner {learner_id}"):
            self.progress_store.get_or_create_learner(learner_id)

    def complete_placement(
        self, learner_id: str, answer_fn: Callable[[WordItem], PlacementAnswer]
    ) -> PlacementResult:
        """Run the placement test and store its level, weak groups and threshold."""
        result = self.engine.run_placement(answer_fn)

        with self._transaction(f"store placement for learner {learner_id}"):
            self.progress_store.get_or_create_learner(learner_id)
            self.progress_store.save_progress(
                learner_id,
                {
                    "current_level": float(result.level),
                    "has_completed_placement": True,
                    "weak_phonics_groups": result.weak_groups,
                },
            )
            self.threshold_store.save_params(learner_id, result.threshold_params)
        logger.info(f"Learner {learner_id} placed at level {result.level}")
        return result

    def build_session(self, learner_id: str, spec: Optional[SessionSpec] = None) -> List[WordItem]:
        """Build the learner's next practice session."""
        progress = self.progress_store.get_progress(learner_id)
        if not progress.has_completed_placement:
            logger.info(f"Learner {learner_id} has not completed placement; using level {progress.current_level}")
        return self.engine.build_session(progress, spec)

    def get_recorded_session(self, learner_id: str, session_key: str) -> Optional[PracticeSession]:
        """Get a finished session by its key."""
        learner = self.progress_store.get_learner(learner_id)
        return (
            self.db.query(PracticeSession)
            .filter(
                and_(
                    PracticeSession.learner_id == learner.id,
                    PracticeSession.session_key == session_key,
                )
            )
            .first()
        )

    def finish_session(
        self, learner_id: str, session_key: str, outcomes: Sequence[WordOutcome]
    ) -> SessionResult:
        """Apply a session's outcomes to the learner's stored state.

        Each session key is applied at most once. Submitting the same key again
        changes nothing and returns the recorded result flagged as duplicate.
        """
        recorded = self.get_recorded_session(learner_id, session_key)
        if recorded is not None:
            logger.warning(f"Session {session_key} for learner {learner_id} already finished; ignoring")
            monitoring.duplicate_submissions.inc()
            progress = self.progress_store.get_progress(learner_id)
            return SessionResult(
                new_level=recorded.new_level,
                threshold_params=self.threshold_store.get_params(learner_id),
                struggle_patch=LedgerPatch(),
                accuracy=recorded.accuracy,
                avg_seconds_per_word=recorded.avg_seconds_per_word,
                weak_phonics_groups=progress.weak_phonics_groups,
                duplicate=True,
            )

        progress = self.progress_store.get_progress(learner_id)
        params = self.threshold_store.get_params(learner_id)
        result = self.engine.finish_session(progress, outcomes, params)

        with self._transaction(f"finish session {session_key} for learner {learner_id}"):
            result.struggle_patch = self.struggle_store.apply_batch(learner_id, outcomes)
            self.progress_store.save_progress(
                learner_id,
                {
                    "current_level": result.new_level,
                    "weak_phonics_groups": result.weak_phonics_groups,
                },
            )
            if result.threshold_params is not params:
                self.threshold_store.save_params(learner_id, result.threshold_params)

            learner = self.progress_store.get_learner(learner_id)
            self.db.add(
                PracticeSession(
                    learner_id=learner.id,
                    session_key=session_key,
                    word_count=len(outcomes),
                    accuracy=result.accuracy,
                    avg_seconds_per_word=result.avg_seconds_per_word,
                    previous_level=progress.current_level,
                    new_level=result.new_level,
                    words_graduated=len(result.struggle_patch.graduated),
                )
            )
        return result
