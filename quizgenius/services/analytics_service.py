"""
Analytics service for dashboard and stats figures
"""
import logging
from typing import Any, Dict, List
from pydantic import ValidationError

from quizgenius.schemas.profile import UserStats, ActivityEntry, UserSummary
from quizgenius.services.gauntlet_service import gauntlet_service
from quizgenius.services.stats_service import calculate_accuracy, round_half_up

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for deriving display figures from a profile document"""

    def get_user_summary(self, uid: str, document: Dict[str, Any]) -> UserSummary:
        """
        Summarize a (migrated) profile document

        Args:
            uid: Profile owner
            document: Profile document

        Returns:
            UserSummary with accuracy, gauntlet figures and recent activity
        """
        stats = UserStats.from_raw(document.get("stats"))
        scores, _ = gauntlet_service.migrate_scores(document.get("gauntletScores"))
        saved = document.get("savedQuizzes")

        points = [s.score for s in scores]
        best = max(points) if points else 0
        total = sum(points)
        average = round_half_up(total / len(points)) if points else 0

        return UserSummary(
            uid=uid,
            stats=stats,
            accuracy=calculate_accuracy(stats.correct_answers, stats.total_questions),
            saved_quizzes=len(saved) if isinstance(saved, list) else 0,
            gauntlet_challenges=len(scores),
            best_gauntlet_score=best,
            average_gauntlet_score=average,
            total_gauntlet_points=total,
            rank=gauntlet_service.rank_for_score(best),
            recent_activity=self.parse_activity(document.get("recentActivity")),
        )

    def parse_activity(self, raw: Any) -> List[ActivityEntry]:
        """Readable activity entries, skipping any that are malformed"""
        entries = []
        for item in raw if isinstance(raw, list) else []:
            try:
                entries.append(ActivityEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable activity entry: {str(e)}")
        return entries


# Global instance
analytics_service = AnalyticsService()
