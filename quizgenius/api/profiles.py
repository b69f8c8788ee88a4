"""
Profile and username endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Any, Dict
import logging

from quizgenius.api.dependencies import require_profile
from quizgenius.database import get_db
from quizgenius.errors import PersistenceError
from quizgenius.schemas.profile import (
    ProfileCreate,
    UsernameAvailability,
    UsernameSuggestions,
    UserSummary,
)
from quizgenius.services.analytics_service import analytics_service
from quizgenius.services.profile_service import profile_service

router = APIRouter(prefix="/api", tags=["profiles"])
logger = logging.getLogger(__name__)


@router.post("/users", status_code=201)
async def create_profile(profile: ProfileCreate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Create a profile after first sign-in

    Seeds zeroed stats and empty quiz, activity and gauntlet collections.
    """
    try:
        snapshot = profile_service.create_profile(db, profile)
    except PersistenceError as e:
        logger.warning(f"Profile creation failed for {profile.uid}: {str(e)}")
        raise HTTPException(status_code=409, detail=e.user_message)
    return snapshot.document


@router.get("/users/{user_id}")
async def get_profile(user_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Full profile document, migrated to the current shape"""
    return require_profile(db, user_id, persist_migration=True).document


@router.get("/users/{user_id}/stats", response_model=UserSummary)
async def get_user_stats(user_id: str, db: Session = Depends(get_db)):
    """
    Dashboard figures

    - Stats counters and overall accuracy
    - Gauntlet challenge count, best, average and total points
    - Recent activity
    """
    snapshot = require_profile(db, user_id, persist_migration=True)
    return analytics_service.get_user_summary(user_id, snapshot.document)


@router.get("/usernames/suggestions", response_model=UsernameSuggestions)
async def suggest_usernames(name: str = Query(..., min_length=1, max_length=64)):
    """Username variations built from a display name"""
    return UsernameSuggestions(suggestions=profile_service.username_variations(name))


@router.get("/usernames/{username}/available", response_model=UsernameAvailability)
async def check_username(username: str, db: Session = Depends(get_db)):
    """Whether a username is free (case-insensitive, at least 3 characters)"""
    try:
        available = profile_service.is_username_available(db, username)
    except PersistenceError:
        raise HTTPException(status_code=503, detail="Profile store unavailable. Please try again later.")
    return UsernameAvailability(username=username.lower(), available=available)
