"""
Stat reconciliation service
Folds one quiz attempt into a user's aggregate statistics
"""
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from quizgenius.schemas.base import epoch_millis
from quizgenius.schemas.profile import (
    UserStats,
    SavedQuiz,
    QuizAttempt,
    ActivityEntry,
    ActivityKind,
)
from quizgenius.schemas.quiz import AttemptSubmission

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values"""
    return int(math.floor(value + 0.5))


def calculate_accuracy(correct_answers: int, total_questions: int) -> int:
    """Percentage of correct answers, 0 when there were no questions"""
    if total_questions <= 0:
        return 0
    return min(100, round_half_up(100 * correct_answers / total_questions))


@dataclass
class ReconcileResult:
    """Next state of every profile field an attempt touches"""
    stats: UserStats
    saved_quizzes: List[Dict[str, Any]]
    activity: List[Dict[str, Any]]
    accuracy: int
    quiz_id: Optional[str]


class StatsService:
    """
    Service for reconciling quiz attempts into user statistics

    Rules:
    - Streak: first quiz starts at 1; under 20h since the last quiz is the
      same session; 20h to 48h counts as a new day; over 48h resets the
      streak before counting today
    - First attempts move quizzesTaken, the running average, the question
      counters and topic mastery; retries move none of them
    - Time and lastQuizDate always move

    Every input may be missing or malformed; nothing here raises.
    """

    NEW_DAY_HOURS = 20
    STREAK_BREAK_HOURS = 48
    MASTERY_THRESHOLD = 80
    ACTIVITY_LIMIT = 10

    def reconcile(
        self,
        attempt: AttemptSubmission,
        prior_stats: Any,
        prior_quizzes: Any,
        prior_activity: Any,
        is_retry: bool,
        existing_quiz_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ReconcileResult:
        """
        Compute the next stats, saved quizzes and activity feed

        Args:
            attempt: The completed attempt
            prior_stats: Stored stats sub-document (any shape)
            prior_quizzes: Stored saved quizzes (any shape)
            prior_activity: Stored activity feed (any shape)
            is_retry: Attempt replays an already saved quiz
            existing_quiz_id: Saved quiz being retried
            now: Clock override

        Returns:
            ReconcileResult with document-ready collections
        """
        now = now or datetime.now(timezone.utc)
        stats = UserStats.from_raw(prior_stats)
        accuracy = calculate_accuracy(attempt.correct_answers, attempt.total_questions)
        minutes = round_half_up(attempt.time_spent / 60)

        next_stats = UserStats(
            quizzes_taken=stats.quizzes_taken if is_retry else stats.quizzes_taken + 1,
            quizzes_created=stats.quizzes_created,
            average_score=stats.average_score if is_retry else self.running_average(
                stats.average_score, stats.quizzes_taken, accuracy
            ),
            learning_streak=self.next_streak(stats.learning_streak, stats.last_quiz_date, now),
            total_questions=stats.total_questions + (0 if is_retry else attempt.total_questions),
            correct_answers=stats.correct_answers + (0 if is_retry else attempt.correct_answers),
            topics_mastered=stats.topics_mastered + (
                1 if accuracy >= self.MASTERY_THRESHOLD and not is_retry else 0
            ),
            time_spent=stats.time_spent + minutes,
            last_quiz_date=now,
        )

        quizzes = list(prior_quizzes) if isinstance(prior_quizzes, list) else []
        new_attempt = QuizAttempt(timestamp=now, score=accuracy, time_spent=attempt.time_spent)

        if is_retry and existing_quiz_id:
            quiz_id = existing_quiz_id
            quizzes = self._append_attempt(quizzes, existing_quiz_id, new_attempt)
        else:
            # also a retry without a quiz id; its counters were held above
            quiz_id = self._new_quiz_id(now)
            saved = SavedQuiz(
                id=quiz_id,
                topic=attempt.topic,
                difficulty=attempt.difficulty,
                questions=[q.to_document() for q in attempt.questions],
                created_at=now,
                last_attempt_at=now,
                attempts=[new_attempt],
            )
            quizzes = [saved.to_document()] + quizzes

        entry = ActivityEntry(
            id=str(uuid.uuid4()),
            kind=ActivityKind.QUIZ_TAKEN,
            topic=attempt.topic,
            score=accuracy,
            correct_answers=attempt.correct_answers,
            total_questions=attempt.total_questions,
            difficulty=attempt.difficulty,
            timestamp=now,
            details=(
                f"{'Retried' if is_retry else 'Completed'} {attempt.difficulty} quiz "
                f"on {attempt.topic} with {accuracy}% accuracy"
            ),
            quiz_id=quiz_id,
        )
        activity = self.push_activity(prior_activity, entry.to_document())

        logger.info(
            f"Reconciled attempt: accuracy={accuracy}, retry={is_retry}, "
            f"streak={next_stats.learning_streak}, quizzes_taken={next_stats.quizzes_taken}"
        )

        return ReconcileResult(
            stats=next_stats,
            saved_quizzes=quizzes,
            activity=activity,
            accuracy=accuracy,
            quiz_id=quiz_id,
        )

    def next_streak(self, streak: int, last_quiz_date: Optional[datetime], now: datetime) -> int:
        """Learning streak after a quiz taken at ``now``"""
        if last_quiz_date is None:
            return 1

        hours = (now - last_quiz_date).total_seconds() / 3600
        if hours < self.NEW_DAY_HOURS:
            return streak
        if hours > self.STREAK_BREAK_HOURS:
            logger.info("Streak reset: more than 48 hours since the last quiz")
            streak = 0
        return streak + 1

    @staticmethod
    def running_average(average: int, count: int, score: int) -> int:
        return round_half_up((average * count + score) / (count + 1))

    def push_activity(self, prior_activity: Any, entry: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Prepend an entry and keep the newest ACTIVITY_LIMIT"""
        activity = list(prior_activity) if isinstance(prior_activity, list) else []
        return ([entry] + activity)[:self.ACTIVITY_LIMIT]

    @staticmethod
    def performance_score(accuracy: int, time_spent: int, total_questions: int) -> int:
        """
        Display score: 70% accuracy, 30% time used against a minute per question
        """
        if total_questions <= 0:
            return round_half_up(accuracy * 0.7)
        time_factor = min(1.0, time_spent / (total_questions * 60))
        return round_half_up(accuracy * 0.7 + time_factor * 30)

    @staticmethod
    def _append_attempt(
        quizzes: List[Any],
        quiz_id: Optional[str],
        attempt: QuizAttempt
    ) -> List[Any]:
        for index, quiz in enumerate(quizzes):
            if isinstance(quiz, dict) and quiz_id and quiz.get("id") == quiz_id:
                attempts = quiz.get("attempts")
                updated = dict(quiz)
                updated["attempts"] = [attempt.to_document()] + (attempts if isinstance(attempts, list) else [])
                updated["lastAttemptAt"] = attempt.to_document()["timestamp"]
                quizzes[index] = updated
                return quizzes

        logger.warning(f"Saved quiz {quiz_id} not found, attempt not attached")
        return quizzes

    @staticmethod
    def _new_quiz_id(now: datetime) -> str:
        return f"{epoch_millis(now)}-{uuid.uuid4().hex[:9]}"


# Global instance
stats_service = StatsService()
