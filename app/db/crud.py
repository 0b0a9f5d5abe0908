# app/db/crud.py
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.exc import IntegrityError
from app.db import models as db_models
from app.core.errors import UserNotFound
from typing import Optional, List, Dict, Any
from collections import Counter
import logging
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "BoloNyay User"
DEFAULT_USER_LANGUAGE = "english"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Users ---

def get_user(db: Session, user_id: str) -> Optional[db_models.User]:
    db_user = db.query(db_models.User).filter(db_models.User.id == user_id).first()
    if db_user:
        # Records written by older clients may lack these fields; fill them for reading only
        if not db_user.name:
            set_committed_value(db_user, "name", DEFAULT_USER_NAME)
        if not db_user.user_type:
            set_committed_value(db_user, "user_type", db_models.UserTypeEnum.PETITIONER.value)
        if not db_user.language:
            set_committed_value(db_user, "language", DEFAULT_USER_LANGUAGE)
    return db_user


def get_user_by_email(db: Session, email: str) -> Optional[db_models.User]:
    return db.query(db_models.User).filter(db_models.User.email == email).first()


def create_user(
    db: Session,
    email: Optional[str],
    name: Optional[str] = None,
    user_type: db_models.UserTypeEnum = db_models.UserTypeEnum.PETITIONER,
    language: str = DEFAULT_USER_LANGUAGE,
    user_id: Optional[str] = None,
) -> db_models.User:
    db_user = db_models.User(
        id=user_id or str(uuid.uuid4()),
        email=email,
        name=name or DEFAULT_USER_NAME,
        user_type=db_models.UserTypeEnum(user_type).value,
        language=language or DEFAULT_USER_LANGUAGE,
        created_at=utcnow(),
    )
    db.add(db_user)
    try:
        db.commit()
        db.refresh(db_user)
    except IntegrityError:
        db.rollback()
        logger.warning(f"IntegrityError creating user {email}, likely already exists. Fetching existing.")
        existing_user = get_user_by_email(db, email) if email else None
        if not existing_user:
            logger.error(f"CRITICAL: IntegrityError for user {email} but could not fetch it.")
            raise
        return existing_user
    logger.info(f"Created user {db_user.id} ({db_user.user_type}).")
    return db_user


def ensure_user(db: Session, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> db_models.User:
    db_user = get_user(db, user_id)
    if db_user:
        return db_user
    logger.info(f"User {user_id} not found. Creating a default record.")
    return create_user(db, email=email, name=name, user_id=user_id)


# --- Conversation sessions ---

def build_session(
    user_id: str,
    messages: List[Dict[str, Any]],
    started_at: datetime,
    language: str,
    case_number: Optional[str] = None,
    azure_session_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> db_models.ConversationSession:
    return db_models.ConversationSession(
        id=session_id or str(uuid.uuid4()),
        user_id=user_id,
        messages=list(messages),
        started_at=started_at,
        ended_at=utcnow(),
        language=language,
        azure_session_id=azure_session_id,
        total_messages=len(messages),
        case_number=case_number,
    )


def save_conversation_session(db: Session, session: db_models.ConversationSession, commit: bool = True) -> db_models.ConversationSession:
    if get_user(db, session.user_id) is None:
        raise UserNotFound(f"No user with id {session.user_id}")
    db.add(session)
    if commit:
        db.commit()
        db.refresh(session)
    else:
        db.flush()
    logger.info(f"Saved conversation session {session.id} with {session.total_messages} messages.")
    return session


def get_user_sessions(db: Session, user_id: str) -> List[db_models.ConversationSession]:
    return (
        db.query(db_models.ConversationSession)
        .filter(db_models.ConversationSession.user_id == user_id)
        .order_by(db_models.ConversationSession.started_at.desc())
        .all()
    )


# --- Cases ---

def get_case(db: Session, case_id: str) -> Optional[db_models.Case]:
    return db.query(db_models.Case).filter(db_models.Case.id == case_id).first()


def get_case_by_case_number(db: Session, case_number: str) -> Optional[db_models.Case]:
    return db.query(db_models.Case).filter(db_models.Case.case_number == case_number).first()


def create_case(
    db: Session,
    user_id: str,
    case_number: str,
    case_type: str,
    case_details: str,
    conversation_summary: str,
    filing_questions: List[str],
    user_responses: List[str],
    language: str,
    session_id: Optional[str] = None,
    azure_session_id: Optional[str] = None,
    commit: bool = True,
) -> db_models.Case:
    if get_user(db, user_id) is None:
        raise UserNotFound(f"No user with id {user_id}")
    if len(filing_questions) != len(user_responses):
        raise ValueError(f"{len(filing_questions)} questions but {len(user_responses)} responses for case {case_number}")

    now = utcnow()
    db_case = db_models.Case(
        id=str(uuid.uuid4()),
        case_number=case_number,
        user_id=user_id,
        case_type=case_type,
        case_details=case_details,
        conversation_summary=conversation_summary,
        filing_questions=list(filing_questions),
        user_responses=list(user_responses),
        status=db_models.CaseStatusEnum.FILED.value,
        created_at=now,
        updated_at=now,
        session_id=session_id,
        azure_session_id=azure_session_id,
        language=language,
    )
    db.add(db_case)
    if commit:
        db.commit()
        db.refresh(db_case)
    else:
        db.flush()
    logger.info(f"Created case {db_case.case_number} (ID: {db_case.id}) for user {user_id}.")
    return db_case


def get_user_cases(db: Session, user_id: str) -> List[db_models.Case]:
    return (
        db.query(db_models.Case)
        .filter(db_models.Case.user_id == user_id)
        .order_by(db_models.Case.created_at.desc())
        .all()
    )


def update_case_status(db: Session, case_id: str, status: db_models.CaseStatusEnum) -> Optional[db_models.Case]:
    db_case = get_case(db, case_id)
    if db_case:
        db_case.status = db_models.CaseStatusEnum(status).value
        db_case.updated_at = utcnow()
        db.commit()
        db.refresh(db_case)
        logger.info(f"Case {db_case.case_number} status set to {db_case.status}.")
    return db_case


def get_case_statistics(db: Session, user_id: Optional[str] = None) -> Dict[str, Any]:
    query = db.query(db_models.Case)
    if user_id:
        query = query.filter(db_models.Case.user_id == user_id)
    cases = query.all()
    return {
        "total_cases": len(cases),
        "by_status": dict(Counter(case.status for case in cases)),
        "by_case_type": dict(Counter(case.case_type for case in cases)),
        "by_language": dict(Counter(case.language for case in cases)),
    }
