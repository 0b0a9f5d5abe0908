from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from app.core.errors import UserNotFound
from app.db import crud, models as db_models


def make_case(db, user_id="user-1", case_number="BN2025000001", case_type="Civil", language="hindi", **kwargs):
    return crud.create_case(
        db,
        user_id=user_id,
        case_number=case_number,
        case_type=case_type,
        case_details="details",
        conversation_summary="summary",
        filing_questions=["Q1?", "Q2?"],
        user_responses=["A1", ""],
        language=language,
        **kwargs,
    )


def test_get_user_fills_defaults(db):
    db.add(db_models.User(id="legacy", email="old@example.com", created_at=datetime.now(timezone.utc)))
    db.commit()

    user = crud.get_user(db, "legacy")

    assert user.name == "BoloNyay User"
    assert user.user_type == "petitioner"
    assert user.language == "english"


def test_get_user_defaults_are_not_written_back(db):
    db.add(db_models.User(id="legacy", email="old@example.com", created_at=datetime.now(timezone.utc)))
    db.commit()

    user = crud.get_user(db, "legacy")
    assert user.name == "BoloNyay User"
    assert user not in db.dirty
    db.commit()

    assert db.execute(text("SELECT name FROM users WHERE id = 'legacy'")).scalar() is None


def test_create_user_duplicate_email_returns_existing(db):
    first = crud.create_user(db, email="asha@example.com", name="Asha")
    second = crud.create_user(db, email="asha@example.com", name="Someone else")

    assert second.id == first.id
    assert crud.get_user_by_email(db, "asha@example.com").name == "Asha"


def test_ensure_user_creates_missing_user(db):
    user = crud.ensure_user(db, "auth-uid-9")

    assert user.id == "auth-uid-9"
    assert crud.ensure_user(db, "auth-uid-9").id == "auth-uid-9"


def test_create_case_requires_existing_user(db):
    with pytest.raises(UserNotFound):
        make_case(db, user_id="ghost")


def test_create_case_rejects_misaligned_responses(db):
    crud.create_user(db, email="asha@example.com", user_id="user-1")
    with pytest.raises(ValueError):
        crud.create_case(db, "user-1", "BN2025000009", "Civil", "", "", ["Q1?"], [], "hindi")


def test_create_case_and_status_update(db):
    crud.create_user(db, email="asha@example.com", user_id="user-1")
    case = make_case(db)
    created_updated_at = case.updated_at

    assert case.status == "filed"
    assert crud.get_case_by_case_number(db, "BN2025000001").id == case.id

    updated = crud.update_case_status(db, case.id, db_models.CaseStatusEnum.UNDER_REVIEW)

    assert updated.status == "under_review"
    assert updated.updated_at >= created_updated_at
    assert db_models.CaseStatusEnum(updated.status).display_name == "Under Review"
    assert crud.update_case_status(db, "missing", db_models.CaseStatusEnum.PENDING) is None


def test_user_cases_and_sessions_newest_first(db):
    crud.create_user(db, email="asha@example.com", user_id="user-1")
    now = datetime.now(timezone.utc)
    older_session = crud.build_session("user-1", [{"type": "user_transcription", "content": "hi"}],
                                       started_at=now - timedelta(hours=1), language="hindi")
    newer_session = crud.build_session("user-1", [], started_at=now, language="hindi", case_number="BN2025000002")
    crud.save_conversation_session(db, older_session)
    crud.save_conversation_session(db, newer_session)
    first_case = make_case(db, case_number="BN2025000001")
    second_case = make_case(db, case_number="BN2025000002")
    second_case.created_at = first_case.created_at + timedelta(minutes=5)
    db.commit()

    assert [s.id for s in crud.get_user_sessions(db, "user-1")] == [newer_session.id, older_session.id]
    assert older_session.total_messages == 1
    assert [c.case_number for c in crud.get_user_cases(db, "user-1")] == ["BN2025000002", "BN2025000001"]


def test_save_session_for_unknown_user_raises(db):
    session = crud.build_session("ghost", [], started_at=datetime.now(timezone.utc), language="hindi")
    with pytest.raises(UserNotFound):
        crud.save_conversation_session(db, session)


def test_case_statistics(db):
    crud.create_user(db, email="a@example.com", user_id="user-1")
    crud.create_user(db, email="b@example.com", user_id="user-2")
    make_case(db, case_number="BN2025000001", case_type="Civil")
    make_case(db, case_number="BN2025000002", case_type="Criminal", language="gujarati")
    make_case(db, user_id="user-2", case_number="BN2025000003", case_type="Civil")

    stats = crud.get_case_statistics(db)
    assert stats["total_cases"] == 3
    assert stats["by_case_type"] == {"Civil": 2, "Criminal": 1}
    assert stats["by_status"] == {"filed": 3}
    assert stats["by_language"] == {"hindi": 2, "gujarati": 1}

    assert crud.get_case_statistics(db, user_id="user-2")["total_cases"] == 1
