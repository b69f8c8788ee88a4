"""
Gauntlet mode service
Scoring, ranks and the gauntlet score collection (including its legacy shape)
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from quizgenius.schemas.base import epoch_millis
from quizgenius.schemas.gauntlet import GauntletSubmission, RankInfo
from quizgenius.schemas.profile import GauntletScore, ActivityEntry, ActivityKind
from quizgenius.services.stats_service import round_half_up, calculate_accuracy

logger = logging.getLogger(__name__)


DEFAULT_TOPIC = "General"


def repair_score(entry: Dict[str, Any], topic: Any, default_date: int) -> GauntletScore:
    """
    Canonical record from a loosely typed score object

    A missing id becomes a fresh ``legacy-`` id, a missing topic becomes
    DEFAULT_TOPIC, a missing date becomes ``default_date`` and every other
    missing number becomes 0.
    """
    return GauntletScore(
        id=str(entry.get("id") or f"legacy-{uuid.uuid4().hex[:8]}"),
        topic=str(topic or DEFAULT_TOPIC),
        difficulty=str(entry.get("difficulty") or "medium"),
        score=entry.get("score"),
        correct_answers=entry.get("correctAnswers"),
        questions_answered=entry.get("questionsAnswered") or entry.get("totalQuestions"),
        strikes=entry.get("strikes"),
        best_streak=entry.get("bestStreak"),
        time_spent=entry.get("timeSpent"),
        date=entry.get("date") or default_date,
    )


@dataclass
class FlatScores:
    """Canonical shape: a list of score records"""
    scores: List[GauntletScore] = field(default_factory=list)
    repaired: bool = False  # some stored entry lacked an id or was not an object


@dataclass
class LegacyScores:
    """Old shape: topic -> list of loosely typed score objects"""
    by_topic: Dict[str, Any] = field(default_factory=dict)

    def flatten(self, now: Optional[datetime] = None) -> FlatScores:
        """
        Convert to canonical records

        Topic comes from the map key, the rest is filled by repair_score.
        Non-object entries are discarded.
        """
        default_date = epoch_millis(now or datetime.now(timezone.utc))
        scores = []
        for topic, entries in self.by_topic.items():
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                scores.append(repair_score(entry, topic, default_date))
        return FlatScores(scores=scores)


GauntletScoreStore = Union[FlatScores, LegacyScores]


class GauntletService:
    """
    Service for gauntlet sessions

    Scoring per correct answer: 100 base points, a streak bonus of 10 per
    answer in the current streak capped at 100, and up to 50 points for
    time left on the 180 second clock. Three strikes end a session.
    """

    BASE_POINTS = 100
    STREAK_BONUS_STEP = 10
    STREAK_BONUS_CAP = 100
    TIME_BONUS_MAX = 50
    SESSION_SECONDS = 180
    STRIKE_LIMIT = 3
    LEADERBOARD_SIZE = 10

    RANKS = (
        ("Legendary Master", 1000),
        ("Grandmaster", 800),
        ("Expert Challenger", 600),
        ("Skilled Quizzer", 400),
        ("Knowledge Seeker", 200),
        ("Novice", 0),
    )

    def load_score_store(self, raw: Any, now: Optional[datetime] = None) -> GauntletScoreStore:
        """
        Classify the stored gauntletScores field by shape

        Flat entries are repaired rather than dropped, so a write of the
        loaded list never loses a stored score.
        """
        if isinstance(raw, dict):
            return LegacyScores(by_topic=raw)

        default_date = epoch_millis(now or datetime.now(timezone.utc))
        store = FlatScores()
        for entry in raw if isinstance(raw, list) else []:
            if not isinstance(entry, dict):
                logger.warning(f"Discarding non-object gauntlet score: {entry!r}")
                store.repaired = True
                continue
            if not entry.get("id"):
                store.repaired = True
            store.scores.append(repair_score(entry, entry.get("topic"), default_date))
        return store

    def migrate_scores(self, raw: Any, now: Optional[datetime] = None) -> Tuple[List[GauntletScore], bool]:
        """
        Canonical score list from whatever is stored

        Returns:
            Tuple of (scores, migrated) where migrated is True when the
            stored value was the legacy map or a flat entry was repaired
        """
        store = self.load_score_store(raw, now)
        if isinstance(store, LegacyScores):
            flat = store.flatten(now)
            logger.info(f"Flattened {len(flat.scores)} legacy gauntlet scores")
            return flat.scores, True
        if store.repaired:
            logger.info("Repaired stored gauntlet scores")
        return store.scores, store.repaired

    def record_score(
        self,
        raw_scores: Any,
        submission: GauntletSubmission,
        now: Optional[datetime] = None
    ) -> Tuple[GauntletScore, List[GauntletScore], bool]:
        """
        Append a finished session to the score collection

        Returns:
            Tuple of (new_score, all_scores, migrated)
        """
        now = now or datetime.now(timezone.utc)
        scores, migrated = self.migrate_scores(raw_scores, now)

        new_score = GauntletScore(
            id=str(uuid.uuid4()),
            topic=submission.topic,
            difficulty=submission.difficulty,
            score=submission.score,
            correct_answers=submission.correct_answers,
            questions_answered=submission.questions_answered,
            strikes=submission.strikes,
            best_streak=submission.best_streak,
            time_spent=submission.time_spent,
            date=epoch_millis(now),
        )
        return new_score, scores + [new_score], migrated

    def activity_entry(self, submission: GauntletSubmission, now: Optional[datetime] = None) -> ActivityEntry:
        """Activity feed entry for a finished session"""
        return ActivityEntry(
            id=str(uuid.uuid4()),
            kind=ActivityKind.QUIZ_TAKEN,
            topic=submission.topic,
            score=submission.score,
            correct_answers=submission.correct_answers,
            total_questions=submission.questions_answered,
            difficulty="gauntlet",
            timestamp=now or datetime.now(timezone.utc),
            details=f"Gauntlet Challenge: {submission.correct_answers} correct, score: {submission.score}",
        )

    def top_scores(self, scores: List[GauntletScore]) -> List[GauntletScore]:
        return sorted(scores, key=lambda s: s.score, reverse=True)[:self.LEADERBOARD_SIZE]

    def score_answer(self, is_correct: bool, streak: int, time_left: int) -> int:
        """
        Points for one answer

        Args:
            is_correct: Whether the answer was right
            streak: Correct answers in a row including this one
            time_left: Seconds left on the session clock
        """
        if not is_correct:
            return 0
        streak_bonus = min(streak * self.STREAK_BONUS_STEP, self.STREAK_BONUS_CAP)
        time_left = max(0, min(time_left, self.SESSION_SECONDS))
        time_bonus = round_half_up(time_left / self.SESSION_SECONDS * self.TIME_BONUS_MAX)
        return self.BASE_POINTS + streak_bonus + time_bonus

    def is_over(self, strikes: int, time_left: int) -> bool:
        return strikes >= self.STRIKE_LIMIT or time_left <= 0

    def rank_for_score(self, score: int) -> str:
        for name, required in self.RANKS:
            if score >= required:
                return name
        return self.RANKS[-1][0]

    def ranks(self) -> List[RankInfo]:
        return [RankInfo(name=name, points_required=required) for name, required in self.RANKS]

    def session_accuracy(self, correct_answers: int, questions_answered: int) -> int:
        return calculate_accuracy(correct_answers, questions_answered)


# Global instance
gauntlet_service = GauntletService()
