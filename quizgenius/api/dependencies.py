"""
Shared helpers for API routers
"""
import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from quizgenius.errors import PersistenceError
from quizgenius.services.profile_service import profile_service, ProfileSnapshot

logger = logging.getLogger(__name__)


def require_profile(db: Session, user_id: str, persist_migration: bool = False) -> ProfileSnapshot:
    """
    Load a profile or fail the request

    Raises:
        HTTPException: 404 when the profile does not exist, 503 when the
            store cannot be read
    """
    try:
        if persist_migration:
            snapshot = profile_service.load_migrated(db, user_id)
        else:
            snapshot = profile_service.get_profile(db, user_id)
    except PersistenceError as e:
        logger.error(f"Profile read failed for {user_id}: {str(e)}")
        raise HTTPException(status_code=503, detail="Profile store unavailable. Please try again later.")

    if snapshot is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return snapshot
