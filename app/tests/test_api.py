import io
import os
import zipfile

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from app.main import app
from app.api import deps
from app.core.errors import (
    DocumentRenderError, NetworkError, NoTranscriptFound, PersistenceError, ReportStorageError,
)
from app.core.security import get_api_key
from app.models_api.documents import (
    CaseAnalysis, ExtractedCaseFields, ExtractedFormData, StructuredDocumentContent,
)
from app.services.document_composer import DocumentComposer
from app.services.report_store import ReportStore

DRAFT_REPLY = """CASE SUMMARY: The complainant's phone was stolen.
KEY FACTS:
- Phone stolen at the bus stand
LEGAL ISSUES:
- Theft under Section 379 IPC
RELIEF SOUGHT:
- Recovery of the phone
NEXT STEPS:
- Lodge an FIR
"""


@pytest.fixture
def fake_assistant():
    assistant = MagicMock()
    assistant.analyze_legal_case = AsyncMock(return_value="I understand your situation.")
    assistant.analyze_case_for_filing = AsyncMock(return_value=CaseAnalysis(
        case_type="Criminal - Theft", case_details="Phone stolen", questions=["Your name?", "Where?"]
    ))
    assistant.extract_detailed_case_info = AsyncMock(return_value=ExtractedCaseFields.model_validate(
        {"petitioner": {"name": "Asha Patel"}}
    ))
    assistant.process_content_for_pdf = AsyncMock(return_value=DRAFT_REPLY)
    assistant.chatbot_reply = AsyncMock(return_value=" वकील से सलाह लें। ")
    return assistant


@pytest.fixture
def fake_speech_client():
    speech_client = MagicMock()
    speech_client.transcribe = AsyncMock(return_value="Bus stand")
    return speech_client


@pytest.fixture
def report_store(tmp_path):
    return ReportStore(str(tmp_path / "reports"))


@pytest.fixture
def client(test_settings, db_session_factory, fake_assistant, fake_speech_client, report_store):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_api_key] = lambda: "test-api-key"
    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_db_session_factory] = lambda: db_session_factory
    app.dependency_overrides[deps.get_current_settings] = lambda: test_settings
    app.dependency_overrides[deps.get_legal_assistant] = lambda: fake_assistant
    app.dependency_overrides[deps.get_speech_client] = lambda: fake_speech_client
    app.dependency_overrides[deps.get_report_store] = lambda: report_store
    app.state.filing_sessions = {}
    app.state.chat_sessions = {}
    yield TestClient(app)
    app.dependency_overrides.clear()


def open_session(client):
    response = client.post("/api/v1/filing/sessions", json={"user_id": "user-1", "language": "hin"})
    assert response.status_code == 201
    return response.json()


def test_full_filing_flow(client):
    session = open_session(client)
    sid = session["id"]
    assert session["state"] == "idle"
    assert session["language"] == "hindi"

    turn = client.post(f"/api/v1/filing/sessions/{sid}/messages", json={"text": "My phone was stolen"})
    assert turn.status_code == 200
    assert turn.json()["reply"] == "I understand your situation."

    analysis = client.post(f"/api/v1/filing/sessions/{sid}/classify").json()
    assert analysis["questions"] == ["Your name?", "Where?"]

    answer = client.put(f"/api/v1/filing/sessions/{sid}/answers/0", json={"text": "Asha Patel"}).json()
    assert answer == {"accepted": True, "question_index": 0, "ready_to_file": False}

    started = client.post(f"/api/v1/filing/sessions/{sid}/recording/start", json={"question_index": 1})
    assert started.json()["state"] == "recording"
    stopped = client.post(f"/api/v1/filing/sessions/{sid}/recording/stop", content=b"\x01\x02audio",
                          headers={"Content-Type": "application/octet-stream"})
    assert stopped.json()["question_index"] == 1
    assert client.get(f"/api/v1/filing/sessions/{sid}").json()["ready_to_file"] is True

    case = client.post(f"/api/v1/filing/sessions/{sid}/finalize")
    assert case.status_code == 200
    case_body = case.json()
    assert case_body["status"] == "filed"
    assert case_body["user_responses"] == ["Asha Patel", "Bus stand"]

    report = client.post(f"/api/v1/filing/sessions/{sid}/document")
    assert report.status_code == 201
    report_body = report.json()
    assert report_body["case_id"] == case_body["id"]
    assert report_body["metadata"]["template"] == "Criminal Complaint"

    download = client.get(f"/api/v1/reports/{report_body['id']}/download")
    assert download.status_code == 200
    assert download.content.startswith(b"%PDF")
    assert client.get(f"/api/v1/reports/{report_body['id']}").json()["is_downloaded"] is True

    fetched = client.get(f"/api/v1/cases/{case_body['id']}").json()
    assert fetched["case_number"] == case_body["case_number"]
    patched = client.patch(f"/api/v1/cases/{case_body['id']}/status", json={"status": "under_review"})
    assert patched.json()["status"] == "under_review"

    user_cases = client.get("/api/v1/users/user-1/cases").json()
    assert [c["id"] for c in user_cases] == [case_body["id"]]
    sessions = client.get("/api/v1/users/user-1/sessions").json()
    assert sessions[0]["case_number"] == case_body["case_number"]


def test_recording_errors_map_to_status_codes(client):
    sid = open_session(client)["id"]

    denied = client.post(f"/api/v1/filing/sessions/{sid}/recording/start", json={"permission_granted": False})
    assert denied.status_code == 403

    assert client.post(f"/api/v1/filing/sessions/{sid}/recording/start", json={}).status_code == 200
    busy = client.post(f"/api/v1/filing/sessions/{sid}/recording/start", json={})
    assert busy.status_code == 409

    finalize_too_early = client.post(f"/api/v1/filing/sessions/{sid}/finalize")
    assert finalize_too_early.status_code == 409


def test_upstream_failure_maps_to_bad_gateway(client, fake_assistant):
    fake_assistant.analyze_legal_case.side_effect = NetworkError("HTTP 503")
    sid = open_session(client)["id"]

    response = client.post(f"/api/v1/filing/sessions/{sid}/messages", json={"text": "hello"})

    assert response.status_code == 502
    assert client.get(f"/api/v1/filing/sessions/{sid}").json()["state"] == "error"


def test_unknown_ids_return_not_found(client):
    assert client.get("/api/v1/filing/sessions/nope").status_code == 404
    assert client.get("/api/v1/cases/nope").status_code == 404
    assert client.get("/api/v1/reports/nope").status_code == 404
    assert client.get("/api/v1/users/nope").status_code == 404
    assert client.delete("/api/v1/filing/sessions/nope").status_code == 404


def test_chat_and_language_validation(client):
    chat = client.post("/api/v1/filing/chat", json={"text": "किराया"})
    assert chat.json() == {"reply": "वकील से सलाह लें।"}

    validated = client.post("/api/v1/language/validate", json={"label": "guj"}).json()
    assert validated == {"language": "gujarati", "code": "gu", "display_name": "Gujarati"}


def test_user_creation_conflict(client):
    created = client.post("/api/v1/users", json={"email": "asha@example.com", "name": "Asha"})
    assert created.status_code == 201
    assert created.json()["user_type"] == "petitioner"
    assert client.post("/api/v1/users", json={"email": "asha@example.com"}).status_code == 409


def test_voice_chat_session_keeps_and_clears_history(client, fake_speech_client, fake_assistant):
    fake_speech_client.transcribe = AsyncMock(return_value="किराया")
    created = client.post("/api/v1/filing/chat/sessions", json={"language": "hin"})
    assert created.status_code == 201
    chat_id = created.json()["id"]

    spoken = client.post(f"/api/v1/filing/chat/sessions/{chat_id}/audio", content=b"\x01\x02audio",
                         headers={"Content-Type": "application/octet-stream"})
    assert spoken.json() == {"transcript": "किराया", "reply": "वकील से सलाह लें।", "total_messages": 2}
    fake_assistant.chatbot_reply.assert_awaited_with("किराया")

    typed = client.post(f"/api/v1/filing/chat/sessions/{chat_id}/messages", json={"text": "जमानत"})
    assert typed.json()["total_messages"] == 4
    history = client.get(f"/api/v1/filing/chat/sessions/{chat_id}").json()["messages"]
    assert [m["is_user"] for m in history] == [True, False, True, False]

    cleared = client.delete(f"/api/v1/filing/chat/sessions/{chat_id}/messages")
    assert cleared.json()["messages"] == []
    assert client.post(f"/api/v1/filing/chat/sessions/{chat_id}/audio", content=b"").status_code == 400

    assert client.delete(f"/api/v1/filing/chat/sessions/{chat_id}").status_code == 204
    assert client.get(f"/api/v1/filing/chat/sessions/{chat_id}").status_code == 404


def test_voice_chat_transcription_failure_maps_to_bad_gateway(client, fake_speech_client):
    fake_speech_client.transcribe = AsyncMock(side_effect=NoTranscriptFound("Transcript is empty"))
    chat_id = client.post("/api/v1/filing/chat/sessions", json={}).json()["id"]

    response = client.post(f"/api/v1/filing/chat/sessions/{chat_id}/audio", content=b"\x01audio",
                           headers={"Content-Type": "application/octet-stream"})

    assert response.status_code == 502
    session = client.get(f"/api/v1/filing/chat/sessions/{chat_id}").json()
    assert session["messages"] == []
    assert session["error_message"].startswith("Voice processing failed")


def test_local_storage_errors_map_to_internal_error():
    assert deps.http_error_from(PersistenceError("duplicate case number")).status_code == 500
    assert deps.http_error_from(ReportStorageError("disk full")).status_code == 500
    assert deps.http_error_from(DocumentRenderError("font missing")).status_code == 500


def test_export_cleanup_and_storage_totals(client, report_store, case_record, test_settings):
    assert client.get("/api/v1/reports/export").status_code == 404

    rendered = DocumentComposer().render(case_record, StructuredDocumentContent())
    report = report_store.save(rendered.pdf_bytes, rendered.file_name, case_record,
                               rendered.template.display_name, rendered.page_count)

    exported = client.get("/api/v1/reports/export")
    assert exported.status_code == 200
    with zipfile.ZipFile(io.BytesIO(exported.content)) as archive:
        assert archive.namelist() == [report.file_name]
    assert os.listdir(os.path.join(test_settings.DATA_LOCATION, "exports")) == []

    cleanup = client.post("/api/v1/reports/cleanup", json={"older_than_days": 30}).json()
    assert cleanup == {"removed_reports": 0, "remaining_reports": 1, "remaining_size_bytes": report.file_size}


def test_detect_audio_and_voice_autofill(client, fake_speech_client, fake_assistant):
    fake_speech_client.detect_language_from_audio = AsyncMock(return_value="hin")
    detected = client.post("/api/v1/language/detect-audio", content=b"\x01audio",
                           headers={"Content-Type": "application/octet-stream"})
    assert detected.json() == {"language": "hindi", "code": "hi", "display_name": "Hindi", "detected_code": "hin"}

    fake_speech_client.transcribe = AsyncMock(return_value="मेरा नाम आशा है")
    fake_assistant.extract_form_data = AsyncMock(return_value=ExtractedFormData(fullName="Asha"))
    filled = client.post("/api/v1/users/voice-autofill", content=b"\x01audio",
                         headers={"Content-Type": "application/octet-stream"}).json()
    assert filled["has_data"] is True

    fake_assistant.extract_form_data = AsyncMock(return_value=ExtractedFormData(confidence="low"))
    empty = client.post("/api/v1/users/voice-autofill", content=b"\x01audio",
                        headers={"Content-Type": "application/octet-stream"}).json()
    assert empty["has_data"] is False
