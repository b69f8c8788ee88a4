import pytest

from quizgenius.errors import PersistenceError, StaleProfileError
from quizgenius.schemas.profile import ProfileCreate
from quizgenius.services.profile_service import profile_service


def test_create_profile_seeds_defaults(profile):
    document = profile.document

    assert profile.version == 1
    assert document["username"] == "Alice"
    assert document["displayName"] == "Alice"
    assert document["stats"]["quizzesTaken"] == 0
    assert document["preferences"]["difficulty"] == "medium"
    assert document["savedQuizzes"] == []
    assert document["recentActivity"] == []
    assert document["gauntletScores"] == []


def test_get_profile_reads_back(db, profile):
    snapshot = profile_service.get_profile(db, "user-1")

    assert snapshot.document == profile.document
    assert profile_service.get_profile(db, "nobody") is None


def test_duplicate_username_is_rejected(db, profile):
    with pytest.raises(PersistenceError) as exc_info:
        profile_service.create_profile(
            db, ProfileCreate(uid="user-2", username="ALICE", email="other@example.com")
        )

    assert exc_info.value.user_message == "Profile or username already exists."


def test_update_merges_fields_and_bumps_version(db, profile, stored_document):
    updated = profile_service.update_profile(
        db, "user-1", {"displayName": "Alice L."}, expected_version=profile.version
    )

    assert updated.version == 2
    document, version = stored_document("user-1")
    assert version == 2
    assert document["displayName"] == "Alice L."
    assert document["email"] == "alice@example.com"


def test_stale_version_is_refused(db, profile, stored_document):
    profile_service.update_profile(db, "user-1", {"displayName": "First"}, expected_version=1)

    with pytest.raises(StaleProfileError):
        profile_service.update_profile(db, "user-1", {"displayName": "Second"}, expected_version=1)

    document, version = stored_document("user-1")
    assert document["displayName"] == "First"
    assert version == 2


def test_update_of_missing_profile_fails(db):
    with pytest.raises(PersistenceError):
        profile_service.update_profile(db, "nobody", {"displayName": "x"})


def test_migrate_fills_missing_fields():
    document, changed = profile_service.migrate_profile({"uid": "old", "gauntletScores": {"math": [{"score": 10}]}})

    assert changed
    assert document["stats"]["quizzesTaken"] == 0
    assert document["preferences"]["timeLimit"] == "standard"
    assert document["savedQuizzes"] == []
    assert document["recentActivity"] == []
    assert document["gauntletScores"][0]["topic"] == "math"
    assert document["gauntletScores"][0]["score"] == 10


def test_migrate_repairs_flat_scores_without_id():
    document, changed = profile_service.migrate_profile(
        {"uid": "old", "gauntletScores": [{"topic": "history", "score": 700}]}
    )

    assert changed
    assert document["gauntletScores"][0]["score"] == 700
    assert document["gauntletScores"][0]["id"].startswith("legacy-")


def test_migrate_leaves_current_documents_alone(profile):
    document, changed = profile_service.migrate_profile(profile.document)

    assert not changed
    assert document == profile.document


def test_load_migrated_persists_the_new_shape(db, insert_document, stored_document):
    insert_document("legacy", {"uid": "legacy", "gauntletScores": {"history": [{"score": 50}]}})

    snapshot = profile_service.load_migrated(db, "legacy")

    assert isinstance(snapshot.document["gauntletScores"], list)
    document, version = stored_document("legacy")
    assert version == 2
    assert document["gauntletScores"][0]["topic"] == "history"


def test_username_availability(db, profile):
    assert not profile_service.is_username_available(db, "alice")
    assert not profile_service.is_username_available(db, "ab")
    assert profile_service.is_username_available(db, "bob")


def test_username_variations():
    suggestions = profile_service.username_variations("Jane Doe!")

    assert suggestions[0] == "janedoe"
    assert len(suggestions) == 4
    assert all(s.startswith("janedoe") for s in suggestions)
    assert suggestions[2].startswith("janedoe_")
