"""
Pydantic schemas for the per-user profile document and its sub-records
"""
from datetime import datetime
from enum import Enum
from pydantic import Field, field_validator, model_validator
from typing import Any, Dict, List, Optional

from quizgenius.schemas.base import DocumentModel, coerce_count, coerce_datetime, epoch_millis


class UserStats(DocumentModel):
    """Aggregate statistics, mutated only by the stats reconciler"""
    quizzes_taken: int = 0
    quizzes_created: int = 0
    average_score: int = 0
    learning_streak: int = 0
    total_questions: int = 0
    correct_answers: int = 0
    topics_mastered: int = 0
    time_spent: int = 0  # minutes
    last_quiz_date: Optional[datetime] = None

    @field_validator(
        "quizzes_taken", "quizzes_created", "average_score", "learning_streak",
        "total_questions", "correct_answers", "topics_mastered", "time_spent",
        mode="before",
    )
    @classmethod
    def default_counts(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("last_quiz_date", mode="before")
    @classmethod
    def parse_last_quiz_date(cls, value: Any) -> Optional[datetime]:
        return coerce_datetime(value)

    @model_validator(mode="after")
    def clamp(self):
        self.average_score = min(self.average_score, 100)
        self.correct_answers = min(self.correct_answers, self.total_questions)
        return self

    @classmethod
    def from_raw(cls, raw: Any) -> "UserStats":
        """Build stats from whatever the document holds, never failing"""
        return cls.model_validate(raw if isinstance(raw, dict) else {})


class QuizAttempt(DocumentModel):
    """One scored pass through a saved quiz"""
    timestamp: datetime
    score: int = Field(..., ge=0, le=100)
    time_spent: int = Field(0, ge=0)  # seconds

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> Any:
        return coerce_datetime(value) or value


class SavedQuiz(DocumentModel):
    """A generated quiz kept for retries"""
    id: str
    topic: str
    difficulty: str
    questions: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None
    attempts: List[QuizAttempt] = Field(default_factory=list)

    @field_validator("created_at", "last_attempt_at", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> Optional[datetime]:
        return coerce_datetime(value)

    @field_validator("attempts", mode="before")
    @classmethod
    def attempts_list(cls, value: Any) -> List[Any]:
        return value if isinstance(value, list) else []


class ActivityKind(str, Enum):
    QUIZ_TAKEN = "quiz_taken"
    QUIZ_CREATED = "quiz_created"
    ACHIEVEMENT_EARNED = "achievement_earned"
    TOPIC_MASTERED = "topic_mastered"
    STREAK = "streak"


class ActivityEntry(DocumentModel):
    """An item in the recent activity feed"""
    id: Optional[str] = None
    kind: ActivityKind = Field(ActivityKind.QUIZ_TAKEN, alias="type")
    topic: Optional[str] = None
    score: Optional[int] = None
    correct_answers: Optional[int] = None
    total_questions: Optional[int] = None
    difficulty: Optional[str] = None
    timestamp: datetime
    details: Optional[str] = None
    quiz_id: Optional[str] = None  # lookup only, not ownership

    @field_validator("kind", mode="before")
    @classmethod
    def legacy_kind(cls, value: Any) -> Any:
        # older clients wrote "quiz-taken", "achievement", "topic-mastered"
        if isinstance(value, str):
            value = value.replace("-", "_")
            return "achievement_earned" if value == "achievement" else value
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any) -> Any:
        return coerce_datetime(value) or value


class GauntletScore(DocumentModel):
    """A completed gauntlet session"""
    id: str
    topic: str
    difficulty: str = "medium"
    score: int = 0
    correct_answers: int = 0
    questions_answered: int = 0
    strikes: int = 0
    best_streak: int = 0
    time_spent: int = 0  # seconds
    date: int = 0  # epoch milliseconds

    @field_validator(
        "score", "correct_answers", "questions_answered", "strikes",
        "best_streak", "time_spent",
        mode="before",
    )
    @classmethod
    def default_numbers(cls, value: Any) -> int:
        return coerce_count(value)

    @field_validator("date", mode="before")
    @classmethod
    def epoch_date(cls, value: Any) -> int:
        moment = coerce_datetime(value)
        return epoch_millis(moment) if moment else 0


class Preferences(DocumentModel):
    difficulty: str = Field("medium", pattern="^(easy|medium|hard|expert)$")
    quiz_length: str = "10-20"
    time_limit: str = Field("standard", pattern="^(none|relaxed|standard|challenge)$")
    interests: List[str] = Field(default_factory=list)


class ProfileCreate(DocumentModel):
    """Schema for creating a profile after sign-in"""
    uid: str = Field(..., min_length=1, max_length=128)
    username: str = Field(..., min_length=3, max_length=32, pattern="^[A-Za-z0-9_]+$")
    display_name: Optional[str] = None
    email: str = Field(..., min_length=3)
    photo_url: Optional[str] = None
    avatar: Optional[Dict[str, int]] = None
    preferences: Preferences = Field(default_factory=Preferences)


class UsernameAvailability(DocumentModel):
    username: str
    available: bool


class UsernameSuggestions(DocumentModel):
    suggestions: List[str]


class UserSummary(DocumentModel):
    """Figures shown on the dashboard and stats pages"""
    uid: str
    stats: UserStats
    accuracy: int
    saved_quizzes: int
    gauntlet_challenges: int
    best_gauntlet_score: int
    average_gauntlet_score: int
    total_gauntlet_points: int
    rank: str
    recent_activity: List[ActivityEntry]
