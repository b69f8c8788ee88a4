"""
Pydantic schemas for gauntlet mode
"""
from pydantic import Field, model_validator
from typing import List, Optional

from quizgenius.schemas.base import DocumentModel
from quizgenius.schemas.profile import GauntletScore


class GauntletSubmission(DocumentModel):
    """Final state of a gauntlet session"""
    topic: str = Field(..., min_length=1)
    difficulty: str = Field(..., min_length=1)
    score: int = Field(..., ge=0)
    correct_answers: int = Field(0, ge=0)
    questions_answered: int = Field(0, ge=0)
    strikes: int = Field(0, ge=0, le=3)
    best_streak: int = Field(0, ge=0)
    time_spent: int = Field(0, ge=0, description="Time spent in seconds")

    @model_validator(mode="after")
    def check_counts(self):
        if self.correct_answers > self.questions_answered:
            raise ValueError("correctAnswers cannot exceed questionsAnswered")
        return self


class GauntletResultResponse(DocumentModel):
    score_id: str
    score: int
    rank: str
    accuracy: int
    saved: bool
    message: Optional[str] = None


class GauntletTopScores(DocumentModel):
    scores: List[GauntletScore]


class RankInfo(DocumentModel):
    name: str
    points_required: int


class GauntletAnswer(DocumentModel):
    """One answered gauntlet question"""
    is_correct: bool
    streak: int = Field(0, ge=0, description="Correct answers in a row including this one")
    time_left: int = Field(..., ge=0, le=180, description="Seconds left on the clock")
    strikes: int = Field(0, ge=0, description="Strikes after this answer")


class GauntletAnswerScore(DocumentModel):
    points: int
    game_over: bool
