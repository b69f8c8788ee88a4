"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import Field, model_validator
from typing import List, Optional

from quizgenius.config import settings
from quizgenius.schemas.base import DocumentModel
from quizgenius.schemas.profile import UserStats

OPTION_LABELS = ("A", "B", "C", "D")


class QuestionRecord(DocumentModel):
    """A validated multiple choice question with four lettered options"""
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: str = Field(..., pattern="^[A-D]$")
    explanation: str = Field(..., min_length=1)


class QuizGenerateRequest(DocumentModel):
    """Request schema for quiz generation"""
    topic: str = Field(..., min_length=1, max_length=200, description="Quiz topic")
    difficulty: str = Field(
        "medium", pattern="^(easy|medium|hard|expert)$", description="Quiz difficulty"
    )
    number_of_questions: int = Field(
        5, ge=1, le=settings.MAX_QUIZ_QUESTIONS, description="Number of questions"
    )
    preferred_style: Optional[str] = Field(
        "mixed", pattern="^(conceptual|practical|mixed)$", description="Question style"
    )
    fresh: bool = Field(False, description="Skip the cache and always call the model")


class QuizGenerateResponse(DocumentModel):
    """Response containing generated questions"""
    questions: List[QuestionRecord]


class AttemptSubmission(DocumentModel):
    """One completed pass through a quiz"""
    topic: str = Field(..., min_length=1)
    difficulty: str = Field(..., min_length=1)
    correct_answers: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    time_spent: int = Field(0, ge=0, description="Time spent in seconds")
    questions: List[QuestionRecord] = Field(default_factory=list)
    is_retry: bool = False
    existing_quiz_id: Optional[str] = None

    @model_validator(mode="after")
    def check_counts(self):
        if self.correct_answers > self.total_questions:
            raise ValueError("correctAnswers cannot exceed totalQuestions")
        return self


class AttemptResponse(DocumentModel):
    """Outcome of submitting an attempt"""
    accuracy: int
    performance_score: int
    quiz_id: Optional[str] = None
    stats: UserStats
    saved: bool
    message: Optional[str] = None
