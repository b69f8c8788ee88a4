"""
Profile document store
Whole-document reads, partial-field merge writes and on-load migration
"""
import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from quizgenius.errors import PersistenceError, StaleProfileError
from quizgenius.models import UserProfile
from quizgenius.schemas.profile import ProfileCreate, UserStats, Preferences
from quizgenius.services.gauntlet_service import gauntlet_service

logger = logging.getLogger(__name__)

LIST_FIELDS = ("savedQuizzes", "recentActivity", "gauntletScores")


@dataclass
class ProfileSnapshot:
    """A profile document together with the version it was read at"""
    uid: str
    document: Dict[str, Any]
    version: int


class ProfileService:
    """
    Service for reading and writing profile documents

    Writes merge top-level fields into the stored document. Passing the
    version a document was read at turns the write into a compare-and-swap,
    so two concurrent submissions cannot silently overwrite each other.
    """

    MIN_USERNAME_LENGTH = 3

    def get_profile(self, db: Session, uid: str) -> Optional[ProfileSnapshot]:
        """
        Read a profile

        Returns:
            ProfileSnapshot or None when the user has no profile
        """
        try:
            row = db.query(UserProfile).filter(UserProfile.uid == uid).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read profile {uid}: {str(e)}")
            raise PersistenceError(f"Failed to read profile {uid}") from e

        if not row:
            return None
        document = row.document if isinstance(row.document, dict) else {}
        return ProfileSnapshot(uid=row.uid, document=dict(document), version=row.version)

    def create_profile(self, db: Session, profile: ProfileCreate) -> ProfileSnapshot:
        """
        Create a profile with zeroed stats and empty collections

        Raises:
            PersistenceError: uid or username already taken, or the write failed
        """
        now = datetime.now(timezone.utc).isoformat()
        document = {
            "uid": profile.uid,
            "username": profile.username,
            "displayName": profile.display_name or profile.username,
            "email": profile.email,
            "preferences": profile.preferences.to_document(),
            "stats": UserStats().to_document(),
            "savedQuizzes": [],
            "recentActivity": [],
            "gauntletScores": [],
            "createdAt": now,
            "updatedAt": now,
        }
        if profile.photo_url:
            document["photoURL"] = profile.photo_url
        if profile.avatar:
            document["avatar"] = profile.avatar

        row = UserProfile(
            uid=profile.uid,
            username=profile.username.lower(),
            document=document,
            version=1,
        )
        try:
            db.add(row)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise PersistenceError(
                f"Profile {profile.uid} or username {profile.username} already exists",
                user_message="Profile or username already exists.",
            ) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create profile {profile.uid}: {str(e)}")
            raise PersistenceError(f"Failed to create profile {profile.uid}") from e

        logger.info(f"Profile created: {profile.uid}")
        return ProfileSnapshot(uid=profile.uid, document=document, version=1)

    def update_profile(
        self,
        db: Session,
        uid: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> ProfileSnapshot:
        """
        Merge fields into a stored profile

        Args:
            db: Database session
            uid: Profile owner
            fields: Top-level document fields to replace
            expected_version: Version the caller read; None writes unconditionally

        Returns:
            The snapshot as written

        Raises:
            StaleProfileError: The profile changed since expected_version
            PersistenceError: Profile missing or the write failed
        """
        try:
            current = self.get_profile(db, uid)
            if current is None:
                raise PersistenceError(f"Profile {uid} not found")
            if expected_version is not None and current.version != expected_version:
                raise StaleProfileError(
                    f"Profile {uid} is at version {current.version}, expected {expected_version}"
                )

            document = dict(current.document)
            document.update(fields)
            document["updatedAt"] = datetime.now(timezone.utc).isoformat()

            result = db.execute(
                update(UserProfile)
                .where(UserProfile.uid == uid, UserProfile.version == current.version)
                .values(document=document, version=current.version + 1, updated_at=func.now())
            )
            if result.rowcount != 1:
                db.rollback()
                raise StaleProfileError(f"Profile {uid} changed during update")
            db.commit()
        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update profile {uid}: {str(e)}")
            raise PersistenceError(f"Failed to update profile {uid}") from e

        logger.info(f"Profile {uid} updated: {', '.join(sorted(fields))}")
        return ProfileSnapshot(uid=uid, document=document, version=current.version + 1)

    def migrate_profile(self, document: Any) -> Tuple[Dict[str, Any], bool]:
        """
        Bring a stored document to the current shape

        Fills absent stats and preferences, turns non-list collections into
        lists, flattens legacy gauntlet scores and repairs id-less ones.
        Pure: the caller decides whether to persist.

        Returns:
            Tuple of (document, changed)
        """
        doc = dict(document) if isinstance(document, dict) else {}
        changed = not isinstance(document, dict)

        if not isinstance(doc.get("stats"), dict):
            doc["stats"] = UserStats().to_document()
            changed = True

        if not isinstance(doc.get("preferences"), dict):
            doc["preferences"] = Preferences().to_document()
            changed = True

        raw_scores = doc.get("gauntletScores")
        if isinstance(raw_scores, (dict, list)):
            scores, migrated = gauntlet_service.migrate_scores(raw_scores)
            if migrated:
                doc["gauntletScores"] = [s.to_document() for s in scores]
                changed = True

        for name in LIST_FIELDS:
            if not isinstance(doc.get(name), list):
                doc[name] = []
                changed = True

        if changed:
            logger.info(f"Migrated profile document {doc.get('uid', '<unknown>')}")
        return doc, changed

    def load_migrated(self, db: Session, uid: str) -> Optional[ProfileSnapshot]:
        """
        Read a profile and persist the migrated shape if it was stale

        A failed migration write is logged and the migrated copy is still
        returned; the next read retries it.
        """
        snapshot = self.get_profile(db, uid)
        if snapshot is None:
            return None

        document, changed = self.migrate_profile(snapshot.document)
        if not changed:
            return snapshot

        try:
            return self.update_profile(db, uid, document, expected_version=snapshot.version)
        except PersistenceError as e:
            logger.warning(f"Could not persist migrated profile {uid}: {str(e)}")
            return ProfileSnapshot(uid=uid, document=document, version=snapshot.version)

    def is_username_available(self, db: Session, username: str) -> bool:
        if not username or len(username) < self.MIN_USERNAME_LENGTH:
            return False
        try:
            taken = db.query(UserProfile.uid).filter(UserProfile.username == username.lower()).first()
        except SQLAlchemyError as e:
            logger.error(f"Username lookup failed: {str(e)}")
            raise PersistenceError("Username lookup failed") from e
        return taken is None

    def username_variations(self, base_name: str) -> List[str]:
        """Lower-case alphanumeric base plus a few random numeric suffixes"""
        clean = re.sub(r"[^a-z0-9]", "", base_name.lower())

        def number() -> int:
            return random.randint(0, 999)

        return [
            clean,
            f"{clean}{number()}",
            f"{clean}_{number()}",
            f"{clean}{number()}{number()}",
        ]


# Global instance
profile_service = ProfileService()
