"""Word catalog: the static pool of practice items."""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from lexikey.config import settings
from lexikey.models.engine_models import PhonicsGroup, WordItem
from lexikey.services.phonics import matches_any_group

logger = logging.getLogger(__name__)


class WordCatalog:
    """Immutable, queryable collection of practice items."""

    def __init__(self, words: Iterable[WordItem]):
        """Initialize the catalog, keeping the first item for each word text."""
        unique: Dict[str, WordItem] = {}
        for word in words:
            key = word.text.lower()
            if key in unique:
                logger.debug(f"Skipping duplicate catalog word: {word.text}")
                continue
            unique[key] = word
        self._words: Tuple[WordItem, ...] = tuple(unique.values())
        self._by_text = unique

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self):
        return iter(self._words)

    def all_words(self) -> Tuple[WordItem, ...]:
        """Get every item in catalog order."""
        return self._words

    @property
    def max_difficulty(self) -> int:
        """Highest difficulty available, 0 for an empty catalog."""
        return max((w.difficulty for w in self._words), default=0)

    def get_by_text(self, text: str) -> Optional[WordItem]:
        """Get an item by its word text, ignoring case."""
        return self._by_text.get(text.lower())

    def filter(self, predicate: Callable[[WordItem], bool]) -> List[WordItem]:
        """Get the items matching a predicate, in catalog order."""
        return [w for w in self._words if predicate(w)]

    def by_difficulty(self, difficulty: int) -> List[WordItem]:
        """Get the items at one difficulty."""
        return self.filter(lambda w: w.difficulty == difficulty)

    def in_groups(self, groups: Iterable[PhonicsGroup]) -> List[WordItem]:
        """Get the items whose tag belongs to any of the given generic groups."""
        groups = list(groups)
        if not groups:
            return []
        return self.filter(lambda w: matches_any_group(w.phonics_group, groups))


class JsonCatalogSource:
    """Catalog source reading a JSON list of words.

    Each record holds ``id``, ``word``, ``difficultyLevel``, ``phonicsGroup``
    and optionally ``sentenceContext``.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else settings.catalog.words_file

    def all_words(self) -> List[WordItem]:
        """Load every word from the file."""
        with open(self.path, encoding="utf-8") as f:
            records = json.load(f)

        words = []
        for record in records:
            try:
                words.append(
                    WordItem(
                        id=str(record["id"]),
                        text=record["word"],
                        difficulty=int(record["difficultyLevel"]),
                        phonics_group=record["phonicsGroup"],
                        sentence_context=record.get("sentenceContext"),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid word record in {self.path}: {record!r}") from e

        logger.info(f"Loaded {len(words)} words from {self.path}")
        return words


@lru_cache(maxsize=None)
def load_catalog(path: Optional[Path] = None) -> WordCatalog:
    """Load the catalog once per process."""
    return WordCatalog(JsonCatalogSource(path).all_words())
