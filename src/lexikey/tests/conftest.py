"""Test configuration."""
import os
import random
from typing import Generator, List

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

# Import after environment setup
from sqlalchemy.orm import Session

from lexikey.models.base import Base, engine, get_db, init_db
from lexikey.models.engine_models import WordItem, WordOutcome
from lexikey.services.catalog_service import WordCatalog, load_catalog


@pytest.fixture(autouse=True)
def setup_database():
    """Recreate the schema before each test."""
    Base.metadata.drop_all(bind=engine)
    init_db()

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    yield from get_db()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so sessions are reproducible."""
    return random.Random(1234)


@pytest.fixture
def catalog() -> WordCatalog:
    """The bundled word catalog."""
    return load_catalog()


def make_words(spec: List[tuple]) -> List[WordItem]:
    """Build catalog items from (text, difficulty, tag) tuples."""
    return [
        WordItem(id=f"t{i}", text=text, difficulty=difficulty, phonics_group=tag)
        for i, (text, difficulty, tag) in enumerate(spec)
    ]


def make_outcome(word: str, correct: bool = True, time_spent: float = 1.5, **kwargs) -> WordOutcome:
    """Build a word outcome with sensible defaults."""
    return WordOutcome(
        word_id=kwargs.pop("word_id", f"id-{word}"),
        word=word,
        phonics_group=kwargs.pop("phonics_group", "cvc-short-a"),
        correct=correct,
        user_input=kwargs.pop("user_input", word if correct else ""),
        time_spent=time_spent,
        **kwargs,
    )
