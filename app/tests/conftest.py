# app/tests/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import AppSettings
from app.db.session import Base
from app.db import models  # noqa: F401  registers tables on Base.metadata
from app.models_api.cases import CaseRecord


@pytest.fixture
def test_settings(tmp_path):
    return AppSettings(
        BHASHINI_AUTH_KEY="test-bhashini-key",
        BHASHINI_CONFIG_ENDPOINT="https://bhashini.test/config",
        BHASHINI_INFERENCE_ENDPOINT="https://bhashini.test/inference",
        BHASHINI_PIPELINE_ID="pipeline-123",
        AZURE_OPENAI_ENDPOINT="https://unit-test.openai.azure.com/",
        AZURE_OPENAI_API_KEY="test-azure-key",
        AZURE_OPENAI_DEPLOYMENT="gpt-4.1",
        AZURE_OPENAI_API_VERSION="2024-02-15-preview",
        MAX_RECORDING_SECONDS=30,
        SAMPLE_RATE=16000,
        API_ACCESS_KEY="test-api-key",
        DATA_LOCATION=str(tmp_path / "data"),
    )


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def case_record():
    return CaseRecord(
        id="case-1",
        case_number="BN2025123456",
        user_id="user-1",
        case_type="Criminal - Theft",
        case_details="Mobile phone stolen at the bus stand.",
        conversation_summary="Complete conversation summary:\n\nUser said: My phone was stolen.\n\n",
        filing_questions=["When did it happen?", "Where did it happen?"],
        user_responses=["Yesterday evening", "Bus stand"],
        language="hindi",
    )
