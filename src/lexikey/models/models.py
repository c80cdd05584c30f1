"""Database models for learner state."""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from lexikey.models.base import Base, TimestampMixin


class Learner(Base, TimestampMixin):
    """Learner model holding adaptive progress."""

    __tablename__ = "learners"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String, unique=True, nullable=False)
    current_level = Column(Float, default=1.0, nullable=False)
    has_completed_placement = Column(Boolean, default=False, nullable=False)
    weak_phonics_groups = Column(JSON, default=list, nullable=False)  # list of PhonicsGroup values

    # Relationships
    struggle_words = relationship(
        "StruggleWord", back_populates="learner", cascade="all, delete-orphan"
    )
    threshold = relationship(
        "ThresholdCalibration", back_populates="learner", uselist=False, cascade="all, delete-orphan"
    )
    practice_sessions = relationship(
        "PracticeSession", back_populates="learner", cascade="all, delete-orphan"
    )


class StruggleWord(Base, TimestampMixin):
    """Word in a learner's struggle bucket."""

    __tablename__ = "struggle_words"
    __table_args__ = (UniqueConstraint("learner_id", "word", name="uq_struggle_learner_word"),)

    id = Column(Integer, primary_key=True)
    learner_id = Column(Integer, ForeignKey("learners.id"), nullable=False, index=True)
    word = Column(String, nullable=False)  # lowercased word text
    phonics_group = Column(String, nullable=False)
    consecutive_correct = Column(Integer, default=0, nullable=False)  # 0-2, graduates at 3
    total_attempts = Column(Integer, default=1, nullable=False)
    last_seen_at = Column(DateTime(timezone=True))

    # Relationships
    learner = relationship("Learner", back_populates="struggle_words")


class ThresholdCalibration(Base, TimestampMixin):
    """Personalized hesitation threshold parameters."""

    __tablename__ = "threshold_calibrations"

    learner_id = Column(Integer, ForeignKey("learners.id"), primary_key=True)
    base_time = Column(Float, nullable=False)
    seconds_per_char = Column(Float, nullable=False)
    safety_multiplier = Column(Float, nullable=False)
    sample_count = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    learner = relationship("Learner", back_populates="threshold")


class PracticeSession(Base, TimestampMixin):
    """A finished practice session, recorded once per session key."""

    __tablename__ = "practice_sessions"
    __table_args__ = (UniqueConstraint("learner_id", "session_key", name="uq_session_learner_key"),)

    id = Column(Integer, primary_key=True)
    learner_id = Column(Integer, ForeignKey("learners.id"), nullable=False, index=True)
    session_key = Column(String, nullable=False)
    word_count = Column(Integer, default=0, nullable=False)
    accuracy = Column(Float, default=0.0, nullable=False)
    avg_seconds_per_word = Column(Float, default=0.0, nullable=False)
    previous_level = Column(Float, nullable=False)
    new_level = Column(Float, nullable=False)
    words_graduated = Column(Integer, default=0, nullable=False)

    # Relationships
    learner = relationship("Learner", back_populates="practice_sessions")
