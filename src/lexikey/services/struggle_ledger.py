"""Struggle ledger: per-learner mastery tracking with graduation.

A word enters the ledger the first time the learner struggles with it. Every
later struggle resets its consecutive-correct counter, every clean attempt
advances it, and the word graduates (leaves the ledger) once the counter
reaches the graduation streak.
"""
import logging
from dataclasses import replace
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional

from lexikey.config import settings
from lexikey.models.engine_models import LedgerPatch, StruggleEntry, WordOutcome

logger = logging.getLogger(__name__)


def is_struggle(outcome: WordOutcome, max_backspaces: Optional[int] = None) -> bool:
    """Decide whether an attempt counts as a struggle.

    Incorrect answers, flagged hesitation, and more than ``max_backspaces``
    corrections all count.
    """
    if max_backspaces is None:
        max_backspaces = settings.struggle.max_backspaces
    return (
        not outcome.correct
        or outcome.hesitation_detected
        or outcome.backspace_count > max_backspaces
    )


def record_outcome(
    entry: Optional[StruggleEntry],
    word: str,
    phonics_group: str,
    was_struggle: bool,
    now: Optional[datetime] = None,
) -> Optional[StruggleEntry]:
    """Apply one attempt to a word's ledger entry.

    Returns the updated entry, or None when the word is not (or no longer)
    in the ledger. The given entry is not modified.
    """
    now = now or datetime.now(UTC)

    if was_struggle:
        if entry is None:
            return StruggleEntry(
                word=word,
                phonics_group=phonics_group,
                consecutive_correct=0,
                total_attempts=1,
                last_seen_at=now,
            )
        return replace(
            entry,
            consecutive_correct=0,
            total_attempts=entry.total_attempts + 1,
            last_seen_at=now,
        )

    # Clean attempts never create entries
    if entry is None:
        return None

    consecutive = entry.consecutive_correct + 1
    if consecutive >= settings.struggle.graduation_streak:
        return None
    return replace(
        entry,
        consecutive_correct=consecutive,
        total_attempts=entry.total_attempts + 1,
        last_seen_at=now,
    )


def apply_batch(
    entries: Iterable[StruggleEntry],
    outcomes: Iterable[WordOutcome],
    max_backspaces: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LedgerPatch:
    """Apply a session's outcomes to the current ledger.

    Outcomes for different words are independent; repeated outcomes for the
    same word are applied in the order given.
    """
    now = now or datetime.now(UTC)
    original: Dict[str, StruggleEntry] = {e.word.lower(): e for e in entries}
    current: Dict[str, Optional[StruggleEntry]] = dict(original)
    touched: List[str] = []

    for outcome in outcomes:
        key = outcome.word.lower()
        if key not in touched:
            touched.append(key)
        before = current.get(key)
        after = record_outcome(
            before,
            word=before.word if before else outcome.word,
            phonics_group=before.phonics_group if before else outcome.phonics_group,
            was_struggle=is_struggle(outcome, max_backspaces),
            now=now,
        )
        if before is not None and after is None:
            logger.debug(f"Word '{before.word}' graduated")
        current[key] = after

    patch = LedgerPatch()
    for key in touched:
        before = original.get(key)
        after = current.get(key)
        if after is not None:
            patch.upserts.append(after)
        elif before is not None:
            patch.removed.append(before.word)
            patch.graduated.append(before.word)

    logger.info(
        f"Ledger batch: {len(patch.upserts)} updated, {len(patch.graduated)} graduated"
    )
    return patch


def apply_patch(entries: Iterable[StruggleEntry], patch: LedgerPatch) -> List[StruggleEntry]:
    """Get the ledger that results from applying a patch."""
    removed = {w.lower() for w in patch.removed}
    merged: Dict[str, StruggleEntry] = {
        e.word.lower(): e for e in entries if e.word.lower() not in removed
    }
    for entry in patch.upserts:
        merged[entry.word.lower()] = entry
    return list(merged.values())
