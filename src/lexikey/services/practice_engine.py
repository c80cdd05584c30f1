"""Adaptive practice engine: placement, session building and session results."""
import logging
import random
from typing import Callable, List, Optional, Sequence

from lexikey import monitoring
from lexikey.models.engine_models import (
    LearnerProgress,
    PlacementAnswer,
    PlacementResult,
    SessionResult,
    SessionSpec,
    ThresholdParams,
    WordItem,
    WordOutcome,
)
from lexikey.services import struggle_ledger
from lexikey.services.catalog_service import WordCatalog, load_catalog
from lexikey.services.level_adjuster import detect_weak_groups, next_level, session_performance
from lexikey.services.placement_selector import run_placement
from lexikey.services.session_generator import SessionGenerator
from lexikey.services.threshold_calibrator import adjust_from_session, default_params

logger = logging.getLogger(__name__)


class PracticeEngine:
    """Entry point for the adaptive practice engine.

    The engine holds no learner state; everything it needs is passed in and
    everything it changes is returned.
    """

    def __init__(
        self,
        catalog: Optional[WordCatalog] = None,
        rng: Optional[random.Random] = None,
        placement_pool: Optional[Sequence[WordItem]] = None,
    ):
        """Initialize the engine with a catalog and a random source."""
        self.catalog = catalog if catalog is not None else load_catalog()
        self.rng = rng or random.Random()
        self.placement_pool = placement_pool
        self.generator = SessionGenerator(self.catalog, rng=self.rng)

    def run_placement(self, answer_fn: Callable[[WordItem], PlacementAnswer]) -> PlacementResult:
        """Run the placement test, asking answer_fn for each word."""
        return run_placement(answer_fn, pool=self.placement_pool, rng=self.rng)

    def build_session(self, progress: LearnerProgress, spec: Optional[SessionSpec] = None) -> List[WordItem]:
        """Build the next practice session for the learner."""
        return self.generator.generate(progress, spec)

    def finish_session(
        self,
        progress: LearnerProgress,
        outcomes: Sequence[WordOutcome],
        params: Optional[ThresholdParams] = None,
    ) -> SessionResult:
        """Compute the learner's new state from a session's outcomes."""
        params = params or default_params()
        outcomes = list(outcomes)

        if not outcomes:
            logger.info("Session finished without outcomes; nothing to update")
            return SessionResult(
                new_level=progress.current_level,
                threshold_params=params,
                struggle_patch=struggle_ledger.apply_batch(progress.struggle_entries, []),
                accuracy=0.0,
                avg_seconds_per_word=0.0,
                weak_phonics_groups=set(progress.weak_phonics_groups),
            )

        accuracy, avg_seconds = session_performance(outcomes)
        new_level = next_level(progress.current_level, accuracy, avg_seconds)
        patch = struggle_ledger.apply_batch(progress.struggle_entries, outcomes)
        samples = [(len(o.word), o.time_spent) for o in outcomes if o.correct]
        updated_params = adjust_from_session(params, samples)
        weak_groups = set(progress.weak_phonics_groups) | detect_weak_groups(outcomes)

        logger.info(
            f"Session finished: accuracy {accuracy:.0%}, {avg_seconds:.2f}s/word, "
            f"level {progress.current_level:.2f} -> {new_level:.2f}"
        )
        monitoring.sessions_finished.inc()
        if patch.graduated:
            monitoring.words_graduated.inc(len(patch.graduated))

        return SessionResult(
            new_level=new_level,
            threshold_params=updated_params,
            struggle_patch=patch,
            accuracy=accuracy,
            avg_seconds_per_word=avg_seconds,
            weak_phonics_groups=weak_groups,
        )
