"""Adaptive session generator.

Builds a practice session from three weighted buckets:

- struggle words: ledger entries furthest from graduation, topped up with
  words from the learner's weak phonics groups
- new concepts: words around the learner's level
- confidence boosters: easy words below the learner's level

The first boosters open the session in a fixed order to build momentum, the
rest of the words are shuffled together behind them.
"""
import logging
import math
import random
from dataclasses import replace
from typing import List, Optional, Set

from lexikey import monitoring
from lexikey.config import settings
from lexikey.models.engine_models import LearnerProgress, SessionSpec, WordItem
from lexikey.services.catalog_service import WordCatalog

logger = logging.getLogger(__name__)

# Difficulty at or below which a word is always a confidence candidate
CONFIDENCE_FLOOR = 2
NEW_WORD_WINDOW = 1
WIDE_NEW_WORD_WINDOW = 2


class SessionGenerator:
    """Composes practice sessions from a word catalog."""

    def __init__(self, catalog: WordCatalog, rng: Optional[random.Random] = None):
        """Initialize the generator with a catalog and a random source."""
        self.catalog = catalog
        self.rng = rng or random.Random()

    def has_sufficient_content(self, level: float) -> bool:
        """Check whether the catalog has words up to the given level."""
        return level <= self.catalog.max_difficulty

    def generate(self, progress: LearnerProgress, spec: Optional[SessionSpec] = None) -> List[WordItem]:
        """Generate an ordered, duplicate-free session for the learner."""
        spec = spec or SessionSpec()
        level = progress.current_level

        if not self.has_sufficient_content(level):
            logger.warning(
                f"Learner level {level:.2f} exceeds catalog max difficulty "
                f"{self.catalog.max_difficulty}; widening selection"
            )
            monitoring.insufficient_content.inc()

        struggle_count = math.floor(spec.size * spec.struggle_percent / 100)
        new_count = math.floor(spec.size * spec.new_percent / 100)
        confidence_count = spec.size - struggle_count - new_count

        chosen: Set[str] = set()

        struggle_words = self._struggle_words(progress, struggle_count, chosen)
        new_count += struggle_count - len(struggle_words)

        new_words = self._new_words(level, new_count, chosen)
        confidence_count += new_count - len(new_words)

        easy_words = self._confidence_boosters(level, confidence_count, chosen)

        logger.info(
            f"Session buckets: {len(struggle_words)} struggle, {len(new_words)} new, "
            f"{len(easy_words)} confidence (requested {spec.size})"
        )

        starting_boost = easy_words[:spec.starting_boosters]
        remaining = easy_words[spec.starting_boosters:] + new_words + struggle_words
        self.rng.shuffle(remaining)

        session = [self._present(word, spec) for word in starting_boost + remaining]
        monitoring.sessions_built.inc()
        return session

    def _take(self, pool: List[WordItem], count: int, chosen: Set[str]) -> List[WordItem]:
        """Take up to count words from pool that are not chosen yet."""
        taken = []
        for word in pool:
            if len(taken) >= count:
                break
            key = word.text.lower()
            if key in chosen:
                continue
            chosen.add(key)
            taken.append(word)
        return taken

    def _struggle_words(self, progress: LearnerProgress, count: int, chosen: Set[str]) -> List[WordItem]:
        """Ledger words furthest from graduation, then weak-group words."""
        if count <= 0:
            return []

        default_difficulty = min(max(round(progress.current_level), 1), 10)
        ranked = sorted(progress.struggle_entries, key=lambda e: e.consecutive_correct)
        pool = []
        for entry in ranked:
            word = self.catalog.get_by_text(entry.word)
            if word is None:
                word = WordItem(
                    id=f"struggle-{entry.word.lower()}",
                    text=entry.word,
                    difficulty=default_difficulty,
                    phonics_group=entry.phonics_group,
                )
            pool.append(replace(word, is_struggle=True))
        words = self._take(pool, count, chosen)

        if len(words) < count and progress.weak_phonics_groups:
            group_pool = self.catalog.in_groups(progress.weak_phonics_groups)
            self.rng.shuffle(group_pool)
            group_pool = [replace(w, is_struggle=True) for w in group_pool]
            words += self._take(group_pool, count - len(words), chosen)

        return words

    def _new_words(self, level: float, count: int, chosen: Set[str]) -> List[WordItem]:
        """Words around the learner's level, capped to the catalog's range."""
        if count <= 0:
            return []

        target = min(level, self.catalog.max_difficulty)
        words: List[WordItem] = []
        for window in (NEW_WORD_WINDOW, WIDE_NEW_WORD_WINDOW):
            pool = self.catalog.filter(lambda w: abs(w.difficulty - target) <= window)
            self.rng.shuffle(pool)
            words += self._take(pool, count - len(words), chosen)
            if len(words) >= count:
                break
            logger.debug(f"Only {len(words)}/{count} new words within +/-{window}; widening")
        return words

    def _confidence_boosters(self, level: float, count: int, chosen: Set[str]) -> List[WordItem]:
        """Easy words below the learner's level."""
        if count <= 0:
            return []

        pool = self.catalog.filter(
            lambda w: w.difficulty < level or w.difficulty <= CONFIDENCE_FLOOR
        )
        self.rng.shuffle(pool)
        return self._take(pool, count, chosen)

    def _present(self, word: WordItem, spec: SessionSpec) -> WordItem:
        """Apply capitalization and punctuation transforms."""
        text = word.text
        if text and self.rng.random() < spec.capital_frequency.probability:
            text = text[0].upper() + text[1:]
        if self.rng.random() < spec.punctuation_frequency.probability:
            text += self.rng.choice(settings.session.punctuation_marks)
        if text == word.text:
            return word
        return replace(word, display_text=text)
