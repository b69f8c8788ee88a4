"""
Quiz generation, attempt submission and saved quiz endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List
import logging
from quizgenius.api.dependencies import require_profile
from quizgenius.database import get_db
from quizgenius.errors import QuizGeniusError, ModelRequestError, PersistenceError
from quizgenius.schemas.profile import SavedQuiz
from quizgenius.schemas.quiz import (
    QuizGenerateRequest,
    QuizGenerateResponse,
    AttemptSubmission,
    AttemptResponse,
)
from quizgenius.services.profile_service import profile_service
from quizgenius.services.quiz_generation_service import quiz_generation_service
from quizgenius.services.stats_service import stats_service


router = APIRouter(prefix="/api", tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.post("/quiz/generate", response_model=QuizGenerateResponse)
async def generate_quiz(request: QuizGenerateRequest):
    """
    Generate a multiple choice quiz with Gemini

    - Checks cache first unless `fresh` is set
    - Repairs and validates the model output
    - Any failure returns 500 with a retry message
    """
    try:
        questions = quiz_generation_service.generate_quiz(
            topic=request.topic,
            difficulty=request.difficulty,
            number_of_questions=request.number_of_questions,
            preferred_style=request.preferred_style,
            fresh=request.fresh,
        )
    except QuizGeniusError as e:
        logger.error(f"Error generating quiz: {str(e)}")
        return JSONResponse(status_code=500, content={"error": e.user_message})
    except Exception as e:
        logger.error(f"Unexpected error generating quiz: {str(e)}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": ModelRequestError.user_message})

    logger.info(f"Generated {len(questions)} questions on {request.topic}")
    return QuizGenerateResponse(questions=questions)


@router.post("/users/{user_id}/attempts", response_model=AttemptResponse)
async def submit_attempt(
    user_id: str, submission: AttemptSubmission, db: Session = Depends(get_db)
):
    """
    Record a completed quiz attempt

    - First attempts update averages, counters and topic mastery
    - Retries (`isRetry` with `existingQuizId`) only add an attempt record
    - Saving is best effort: a failed write returns `saved: false`
    """
    snapshot = require_profile(db, user_id)
    document, migrated = profile_service.migrate_profile(snapshot.document)

    result = stats_service.reconcile(
        submission,
        prior_stats=document.get("stats"),
        prior_quizzes=document.get("savedQuizzes"),
        prior_activity=document.get("recentActivity"),
        is_retry=submission.is_retry,
        existing_quiz_id=submission.existing_quiz_id,
    )

    fields = dict(document) if migrated else {}
    fields.update({
        "stats": result.stats.to_document(),
        "savedQuizzes": result.saved_quizzes,
        "recentActivity": result.activity,
    })

    saved, message = True, None
    try:
        profile_service.update_profile(db, user_id, fields, expected_version=snapshot.version)
    except PersistenceError as e:
        logger.error(f"Error saving stats for {user_id}: {str(e)}")
        saved, message = False, e.user_message

    return AttemptResponse(
        accuracy=result.accuracy,
        performance_score=stats_service.performance_score(
            result.accuracy, submission.time_spent, submission.total_questions
        ),
        quiz_id=result.quiz_id,
        stats=result.stats,
        saved=saved,
        message=message,
    )


@router.get("/users/{user_id}/quizzes", response_model=List[SavedQuiz])
async def list_saved_quizzes(user_id: str, db: Session = Depends(get_db)):
    """Saved quizzes, newest first"""
    snapshot = require_profile(db, user_id, persist_migration=True)

    quizzes = []
    for raw in snapshot.document.get("savedQuizzes", []):
        try:
            quizzes.append(SavedQuiz.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable saved quiz for {user_id}: {str(e)}")
    return quizzes


@router.get("/users/{user_id}/quizzes/{quiz_id}", response_model=SavedQuiz)
async def get_saved_quiz(user_id: str, quiz_id: str, db: Session = Depends(get_db)):
    """One saved quiz, for retrying"""
    snapshot = require_profile(db, user_id, persist_migration=True)

    for raw in snapshot.document.get("savedQuizzes", []):
        if isinstance(raw, dict) and raw.get("id") == quiz_id:
            try:
                return SavedQuiz.model_validate(raw)
            except ValidationError as e:
                logger.error(f"Saved quiz {quiz_id} is unreadable: {str(e)}")
                break

    raise HTTPException(status_code=404, detail="Quiz not found")
