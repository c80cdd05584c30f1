"""Value types exchanged with the adaptive practice engine."""
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import List, Optional, Set, Union
import logging
import math

from lexikey.config import FREQUENCY_PROBABILITIES, settings


logger = logging.getLogger(__name__)


class PhonicsGroup(str, Enum):
    """Generic spelling-pattern categories."""
    CVC = "cvc"
    SILENT_E = "silent-e"
    DIGRAPHS = "digraphs"
    BLENDS = "blends"
    VOWEL_TEAMS = "vowel-teams"
    R_CONTROLLED = "r-controlled"
    DIPHTHONGS = "diphthongs"
    REVERSALS = "reversals"
    MULTI_SYLLABLE = "multi-syllable"


class Frequency(str, Enum):
    """How often a presentation transform is applied."""
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"

    @property
    def probability(self) -> float:
        return FREQUENCY_PROBABILITIES[self.value]


class StruggleStatus(str, Enum):
    """Status derived from a struggle entry's consecutive-correct count."""
    STRUGGLING = "struggling"
    IMPROVING = "improving"


@dataclass(frozen=True)
class WordItem:
    """A practice item from the word catalog."""
    id: str
    text: str
    difficulty: int  # 1 (easy) to 10 (hard)
    phonics_group: str  # catalog tag, e.g. "cvc-short-a"
    sentence_context: Optional[str] = None
    display_text: Optional[str] = None  # text after capitalization/punctuation
    is_struggle: bool = False

    @property
    def prompt(self) -> str:
        """Text shown to the learner."""
        return self.display_text if self.display_text is not None else self.text


@dataclass
class StruggleEntry:
    """A word the learner has struggled with and not yet graduated."""
    word: str
    phonics_group: str
    consecutive_correct: int = 0  # 0-2, graduates (removed) at 3
    total_attempts: int = 1
    last_seen_at: Optional[datetime] = None

    @property
    def status(self) -> StruggleStatus:
        if self.consecutive_correct == 0:
            return StruggleStatus.STRUGGLING
        return StruggleStatus.IMPROVING

    @property
    def progress_to_graduation(self) -> str:
        return f"{self.consecutive_correct}/{settings.struggle.graduation_streak}"


@dataclass
class LearnerProgress:
    """Adaptive state of one learner."""
    current_level: float = 1.0
    has_completed_placement: bool = False
    weak_phonics_groups: Set[PhonicsGroup] = field(default_factory=set)
    struggle_entries: List[StruggleEntry] = field(default_factory=list)

    def __post_init__(self):
        level = float(self.current_level)
        if not math.isfinite(level):
            logger.warning(f"Non-finite level {level}, resetting to {settings.session.min_level}")
            level = settings.session.min_level
        self.current_level = min(max(level, settings.session.min_level), settings.session.max_level)
        self.weak_phonics_groups = {PhonicsGroup(g) for g in self.weak_phonics_groups}


@dataclass
class ThresholdParams:
    """Parameters of the personalized hesitation threshold."""
    base_time: float = settings.threshold.default_base_time
    seconds_per_char: float = settings.threshold.default_seconds_per_char
    safety_multiplier: float = settings.threshold.safety_multiplier
    sample_count: int = 0
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))


def _as_frequency(value: Union[Frequency, str]) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        raise ValueError(f"Unknown frequency: {value}") from None


@dataclass
class SessionSpec:
    """Composition of one practice session.

    Bucket percentages are renormalized to sum to 100 on construction, so a
    composition coming from three independent sliders is always consistent.
    """
    size: int = settings.session.size
    capital_frequency: Frequency = Frequency(settings.session.capital_frequency)
    punctuation_frequency: Frequency = Frequency(settings.session.punctuation_frequency)
    struggle_percent: float = settings.session.struggle_percent
    new_percent: float = settings.session.new_percent
    confidence_percent: float = settings.session.confidence_percent
    starting_boosters: int = settings.session.starting_boosters

    def __post_init__(self):
        if self.size < 1:
            raise ValueError("Session size must be positive")
        if self.starting_boosters < 0:
            raise ValueError("Starting boosters cannot be negative")

        self.capital_frequency = _as_frequency(self.capital_frequency)
        self.punctuation_frequency = _as_frequency(self.punctuation_frequency)

        percents = (self.struggle_percent, self.new_percent, self.confidence_percent)
        if any(p < 0 for p in percents):
            raise ValueError("Bucket percentages cannot be negative")

        total = sum(percents)
        if total == 0:
            logger.warning("All bucket percentages are zero, using 30/50/20")
            self.struggle_percent, self.new_percent, self.confidence_percent = 30.0, 50.0, 20.0
        elif total != 100:
            logger.debug(f"Renormalizing bucket percentages {percents} (sum {total})")
            self.struggle_percent = self.struggle_percent * 100 / total
            self.new_percent = self.new_percent * 100 / total
            self.confidence_percent = 100 - self.struggle_percent - self.new_percent


@dataclass
class WordOutcome:
    """Result of one attempted word."""
    word_id: str
    word: str
    phonics_group: str
    correct: bool
    user_input: str = ""
    time_spent: float = 0.0  # seconds
    backspace_count: int = 0
    hesitation_detected: bool = False


@dataclass
class LedgerPatch:
    """Changes to apply to a learner's struggle ledger after a session."""
    upserts: List[StruggleEntry] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    graduated: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.removed


@dataclass
class PlacementAnswer:
    """The learner's answer to one placement item."""
    correct: bool
    time_spent: float  # seconds
    backspace_count: int = 0
    user_input: str = ""


@dataclass
class PlacementRecord:
    """A placement item together with the answer it received."""
    word: WordItem
    answer: PlacementAnswer

    @property
    def difficulty(self) -> int:
        return self.word.difficulty

    @property
    def correct(self) -> bool:
        return self.answer.correct


@dataclass
class PlacementResult:
    """Outcome of a completed placement test."""
    level: int
    weak_groups: Set[PhonicsGroup]
    per_word_timings: List[PlacementRecord]
    threshold_params: ThresholdParams


@dataclass
class SessionResult:
    """Everything a finished session changes for the learner."""
    new_level: float
    threshold_params: ThresholdParams
    struggle_patch: LedgerPatch
    accuracy: float
    avg_seconds_per_word: float
    weak_phonics_groups: Set[PhonicsGroup] = field(default_factory=set)
    duplicate: bool = False
