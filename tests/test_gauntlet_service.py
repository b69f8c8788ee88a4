from datetime import datetime, timezone

import pytest

from quizgenius.schemas.base import epoch_millis
from quizgenius.schemas.gauntlet import GauntletSubmission
from quizgenius.schemas.profile import GauntletScore
from quizgenius.services.gauntlet_service import (
    FlatScores,
    LegacyScores,
    gauntlet_service,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_submission(score=450, correct=4, answered=5):
    return GauntletSubmission(
        topic="Geography",
        difficulty="hard",
        score=score,
        correct_answers=correct,
        questions_answered=answered,
        strikes=1,
        best_streak=3,
        time_spent=95,
    )


def test_legacy_map_is_flattened_before_append():
    legacy = {"history": [{"score": 50, "correctAnswers": 3}]}

    new_score, scores, migrated = gauntlet_service.record_score(legacy, make_submission(), now=NOW)

    assert migrated
    assert len(scores) == 2
    old = scores[0]
    assert old.topic == "history"
    assert old.id.startswith("legacy-")
    assert old.score == 50
    assert old.correct_answers == 3
    assert old.questions_answered == 0
    assert old.difficulty == "medium"
    assert old.date == epoch_millis(NOW)
    assert scores[1] is new_score
    assert new_score.date == epoch_millis(NOW)


def test_legacy_entries_keep_their_own_fields():
    legacy = {
        "science": [
            {"id": "abc", "score": 0, "totalQuestions": 7, "difficulty": "easy", "date": 1700000000000},
            "garbage",
        ],
        "broken": "not a list",
    }

    scores, migrated = gauntlet_service.migrate_scores(legacy, NOW)

    assert migrated
    assert len(scores) == 1
    assert scores[0].id == "abc"
    assert scores[0].score == 0
    assert scores[0].questions_answered == 7
    assert scores[0].difficulty == "easy"
    assert scores[0].date == 1700000000000


def test_store_shape_is_classified():
    assert isinstance(gauntlet_service.load_score_store({"history": []}), LegacyScores)
    assert isinstance(gauntlet_service.load_score_store([]), FlatScores)
    assert gauntlet_service.load_score_store(None).scores == []


def test_flat_list_passes_through():
    stored = [GauntletScore(id="1", topic="Art", score=300, date=epoch_millis(NOW)).to_document()]

    scores, migrated = gauntlet_service.migrate_scores(stored)

    assert not migrated
    assert [s.to_document() for s in scores] == stored


def test_flat_entry_without_id_survives_record_score():
    stored = [{"topic": "history", "score": 700}, {"id": "kept", "score": "90"}, 42]

    new_score, scores, migrated = gauntlet_service.record_score(stored, make_submission(), now=NOW)

    assert migrated
    assert [s.score for s in scores] == [700, 90, 450]
    repaired = scores[0]
    assert repaired.id.startswith("legacy-")
    assert repaired.topic == "history"
    assert repaired.date == epoch_millis(NOW)
    assert scores[1].id == "kept"
    assert scores[1].topic == "General"
    assert scores[2] is new_score


def test_iso_dates_are_stored_as_epoch_millis():
    score = GauntletScore(id="1", topic="Art", date="2026-03-01T12:00:00Z")

    assert score.date == epoch_millis(NOW)


def test_activity_entry_is_tagged_gauntlet():
    entry = gauntlet_service.activity_entry(make_submission(), now=NOW).to_document()

    assert entry["type"] == "quiz_taken"
    assert entry["difficulty"] == "gauntlet"
    assert entry["totalQuestions"] == 5
    assert entry["details"] == "Gauntlet Challenge: 4 correct, score: 450"


def test_top_scores_are_sorted_and_capped():
    scores = [GauntletScore(id=str(i), topic="Art", score=i * 10) for i in range(15)]

    top = gauntlet_service.top_scores(scores)

    assert len(top) == 10
    assert top[0].score == 140
    assert top[-1].score == 50


@pytest.mark.parametrize("is_correct, streak, time_left, expected", [
    (True, 1, 180, 160),
    (True, 15, 180, 250),
    (True, 3, 90, 155),
    (True, 0, 0, 100),
    (False, 9, 180, 0),
])
def test_score_answer(is_correct, streak, time_left, expected):
    assert gauntlet_service.score_answer(is_correct, streak, time_left) == expected


def test_session_ends_on_three_strikes_or_no_time():
    assert not gauntlet_service.is_over(2, 10)
    assert gauntlet_service.is_over(3, 10)
    assert gauntlet_service.is_over(0, 0)


@pytest.mark.parametrize("score, rank", [
    (0, "Novice"),
    (199, "Novice"),
    (200, "Knowledge Seeker"),
    (650, "Expert Challenger"),
    (1000, "Legendary Master"),
    (5000, "Legendary Master"),
])
def test_rank_for_score(score, rank):
    assert gauntlet_service.rank_for_score(score) == rank


def test_ranks_are_listed_highest_first():
    ranks = gauntlet_service.ranks()

    assert [r.points_required for r in ranks] == [1000, 800, 600, 400, 200, 0]


def test_submission_rejects_more_correct_than_answered():
    with pytest.raises(ValueError):
        make_submission(correct=6, answered=5)
