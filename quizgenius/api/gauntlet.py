"""
Gauntlet mode endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from quizgenius.api.dependencies import require_profile
from quizgenius.database import get_db
from quizgenius.errors import PersistenceError
from quizgenius.schemas.gauntlet import (
    GauntletAnswer,
    GauntletAnswerScore,
    GauntletSubmission,
    GauntletResultResponse,
    GauntletTopScores,
    RankInfo,
)
from quizgenius.services.gauntlet_service import gauntlet_service
from quizgenius.services.profile_service import profile_service
from quizgenius.services.stats_service import stats_service

router = APIRouter(prefix="/api", tags=["gauntlet"])
logger = logging.getLogger(__name__)


@router.post("/users/{user_id}/gauntlet", response_model=GauntletResultResponse, status_code=201)
async def submit_gauntlet(
    user_id: str, submission: GauntletSubmission, db: Session = Depends(get_db)
):
    """
    Record a finished gauntlet session

    - Flattens legacy topic-keyed score maps before appending
    - Adds a gauntlet entry to recent activity
    - Saving is best effort: a failed write returns `saved: false`
    """
    snapshot = require_profile(db, user_id)
    document, migrated = profile_service.migrate_profile(snapshot.document)

    new_score, scores, _ = gauntlet_service.record_score(document.get("gauntletScores"), submission)
    activity = stats_service.push_activity(
        document.get("recentActivity"),
        gauntlet_service.activity_entry(submission).to_document(),
    )

    fields = dict(document) if migrated else {}
    fields.update({
        "gauntletScores": [s.to_document() for s in scores],
        "recentActivity": activity,
    })

    saved, message = True, None
    try:
        profile_service.update_profile(db, user_id, fields, expected_version=snapshot.version)
    except PersistenceError as e:
        logger.error(f"Error saving gauntlet score for {user_id}: {str(e)}")
        saved, message = False, e.user_message

    return GauntletResultResponse(
        score_id=new_score.id,
        score=new_score.score,
        rank=gauntlet_service.rank_for_score(new_score.score),
        accuracy=gauntlet_service.session_accuracy(
            submission.correct_answers, submission.questions_answered
        ),
        saved=saved,
        message=message,
    )


@router.get("/users/{user_id}/gauntlet/top", response_model=GauntletTopScores)
async def top_gauntlet_scores(user_id: str, db: Session = Depends(get_db)):
    """A user's ten best gauntlet scores"""
    snapshot = require_profile(db, user_id, persist_migration=True)
    scores, _ = gauntlet_service.migrate_scores(snapshot.document.get("gauntletScores"))
    return GauntletTopScores(scores=gauntlet_service.top_scores(scores))


@router.get("/gauntlet/ranks", response_model=List[RankInfo])
async def gauntlet_ranks():
    """Rank ladder, highest first"""
    return gauntlet_service.ranks()


@router.post("/gauntlet/answers", response_model=GauntletAnswerScore)
async def score_gauntlet_answer(answer: GauntletAnswer):
    """Points for one answer and whether the session is over"""
    return GauntletAnswerScore(
        points=gauntlet_service.score_answer(answer.is_correct, answer.streak, answer.time_left),
        game_over=gauntlet_service.is_over(answer.strikes, answer.time_left),
    )
