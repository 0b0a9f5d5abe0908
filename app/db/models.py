# app/db/models.py
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.sql import func
from app.db.session import Base
import enum


# --- Enums ---
class CaseStatusEnum(str, enum.Enum):
    FILED = "filed"
    UNDER_REVIEW = "under_review"
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def display_name(self) -> str:
        return CASE_STATUS_DISPLAY_NAMES[self]


CASE_STATUS_DISPLAY_NAMES = {
    CaseStatusEnum.FILED: "Filed",
    CaseStatusEnum.UNDER_REVIEW: "Under Review",
    CaseStatusEnum.PENDING: "Pending",
    CaseStatusEnum.COMPLETED: "Completed",
    CaseStatusEnum.REJECTED: "Rejected",
}


class UserTypeEnum(str, enum.Enum):
    PETITIONER = "petitioner"
    ADVOCATE = "advocate"


class MessageTypeEnum(str, enum.Enum):
    USER_TRANSCRIPTION = "user_transcription"
    AI_RESPONSE = "ai_response"


# --- Tables ---
class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=True)
    user_type = Column(String, default=UserTypeEnum.PETITIONER.value, nullable=True)
    language = Column(String, default="english", nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"


class Case(Base):
    __tablename__ = "cases"

    id = Column(String, primary_key=True, index=True)
    case_number = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)

    case_type = Column(String, nullable=False)
    case_details = Column(Text, nullable=False, default="")
    conversation_summary = Column(Text, nullable=False, default="")

    # Index-aligned lists stored as JSON arrays
    filing_questions = Column(JSON, nullable=False, default=list)
    user_responses = Column(JSON, nullable=False, default=list)

    status = Column(String, default=CaseStatusEnum.FILED.value, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    session_id = Column(String, ForeignKey("sessions.id"), nullable=True)
    azure_session_id = Column(String, nullable=True)
    language = Column(String, nullable=False, default="hindi")

    def __repr__(self):
        return f"<Case(case_number='{self.case_number}', status='{self.status}')>"


class ConversationSession(Base):
    __tablename__ = "sessions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    # Stores: [{"id": "...", "type": "user_transcription", "content": "...", "timestamp": "...", "language": "..."}]
    messages = Column(JSON, nullable=False, default=list)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    language = Column(String, nullable=False, default="hindi")
    azure_session_id = Column(String, nullable=True)
    total_messages = Column(Integer, nullable=False, default=0)
    case_number = Column(String, nullable=True)

    def __repr__(self):
        return f"<ConversationSession(id='{self.id}', messages={self.total_messages})>"
