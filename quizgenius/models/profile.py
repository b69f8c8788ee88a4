"""
UserProfile model - one document per user
"""
from sqlalchemy import Column, String, Integer, JSON, TIMESTAMP, text
from sqlalchemy.dialects.postgresql import JSONB
from quizgenius.database import Base


class UserProfile(Base):
    """
    User profiles table - the whole profile (stats, saved quizzes, activity,
    gauntlet scores) lives in a single JSON document
    """
    __tablename__ = "user_profiles"

    uid = Column(String(128), primary_key=True)
    username = Column(String(64), unique=True, nullable=False, index=True)  # lower-cased
    document = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    version = Column(Integer, nullable=False, default=1)  # compare-and-swap guard
    created_at = Column(TIMESTAMP, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(TIMESTAMP, server_default=text("CURRENT_TIMESTAMP"))

    def __repr__(self):
        return f"<UserProfile(uid={self.uid}, username={self.username}, version={self.version})>"
