"""Configuration settings for the practice engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent
PACKAGE_DIR = Path(__file__).parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Bundled word list
DEFAULT_WORDS_FILE = PACKAGE_DIR / "data" / "words.json"

# Frequency name -> probability of applying a presentation transform
FREQUENCY_PROBABILITIES = {
    "never": 0.0,
    "sometimes": 0.15,
    "often": 0.35,
}


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///lexikey.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class CatalogSettings:
    """Word catalog settings."""
    words_file: Path = Path(os.getenv("WORDS_FILE", str(DEFAULT_WORDS_FILE)))


@dataclass
class SessionSettings:
    """Default practice session composition."""
    size: int = int(os.getenv("SESSION_WORD_COUNT", "20"))
    struggle_percent: float = float(os.getenv("STRUGGLE_PERCENT", "30"))
    new_percent: float = float(os.getenv("NEW_PERCENT", "50"))
    confidence_percent: float = float(os.getenv("CONFIDENCE_PERCENT", "20"))
    starting_boosters: int = int(os.getenv("STARTING_BOOSTERS", "2"))
    capital_frequency: str = os.getenv("CAPITAL_FREQUENCY", "never")
    punctuation_frequency: str = os.getenv("PUNCTUATION_FREQUENCY", "never")
    punctuation_marks: tuple[str, ...] = (".", ",", "!", "?")
    min_level: float = 1.0
    max_level: float = 10.0


@dataclass
class StruggleSettings:
    """Struggle ledger settings."""
    graduation_streak: int = 3
    max_backspaces: int = int(os.getenv("MAX_BACKSPACES", "3"))


@dataclass
class ThresholdSettings:
    """Hesitation threshold calibration settings."""
    default_base_time: float = 0.7
    default_seconds_per_char: float = 0.4
    safety_multiplier: float = 1.3
    min_seconds_per_char: float = 0.1
    max_seconds_per_char: float = 2.0
    min_base_time: float = 0.4
    max_base_time: float = 1.0
    base_time_ratio: float = 0.5
    percentile: float = 75.0
    min_samples: int = 3
    adjustment_rate: float = float(os.getenv("THRESHOLD_ADJUSTMENT_RATE", "0.05"))


@dataclass
class PlacementSettings:
    """Placement test settings."""
    total_words: int = int(os.getenv("PLACEMENT_WORD_COUNT", "20"))
    start_difficulty: int = 3
    fast_answer_seconds: float = 2.0
    max_search_offset: int = 5
    min_difficulty: int = 1
    max_difficulty: int = 10


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_catalog_settings() -> CatalogSettings:
    """Get catalog settings."""
    return CatalogSettings()


def get_session_settings() -> SessionSettings:
    """Get session settings."""
    return SessionSettings()


def get_struggle_settings() -> StruggleSettings:
    """Get struggle ledger settings."""
    return StruggleSettings()


def get_threshold_settings() -> ThresholdSettings:
    """Get threshold settings."""
    return ThresholdSettings()


def get_placement_settings() -> PlacementSettings:
    """Get placement settings."""
    return PlacementSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    catalog: CatalogSettings = field(default_factory=get_catalog_settings)
    session: SessionSettings = field(default_factory=get_session_settings)
    struggle: StruggleSettings = field(default_factory=get_struggle_settings)
    threshold: ThresholdSettings = field(default_factory=get_threshold_settings)
    placement: PlacementSettings = field(default_factory=get_placement_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.session.size < 1:
            raise ValueError("SESSION_WORD_COUNT must be positive")

        percents = (
            self.session.struggle_percent,
            self.session.new_percent,
            self.session.confidence_percent,
        )
        if any(p < 0 for p in percents):
            raise ValueError("Session bucket percentages cannot be negative")

        if self.session.starting_boosters < 0:
            raise ValueError("STARTING_BOOSTERS cannot be negative")

        for name in (self.session.capital_frequency, self.session.punctuation_frequency):
            if name not in FREQUENCY_PROBABILITIES:
                raise ValueError(f"Unknown frequency: {name}")

        if self.struggle.max_backspaces < 0:
            raise ValueError("MAX_BACKSPACES cannot be negative")

        if not 0 < self.threshold.adjustment_rate <= 1:
            raise ValueError("THRESHOLD_ADJUSTMENT_RATE must be in (0, 1]")

        if self.placement.total_words < 1:
            raise ValueError("PLACEMENT_WORD_COUNT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
