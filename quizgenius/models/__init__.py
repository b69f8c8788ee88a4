"""
Database models package
"""
from quizgenius.models.profile import UserProfile

__all__ = ["UserProfile"]
