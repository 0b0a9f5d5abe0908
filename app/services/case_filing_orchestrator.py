# app/services/case_filing_orchestrator.py
import enum
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import InvalidFilingState, PermissionDenied, PersistenceError, RecordingInProgress
from app.db import crud
from app.db.models import MessageTypeEnum
from app.models_api.cases import CaseRecord
from app.models_api.documents import CaseAnalysis, ExtractedCaseFields
from app.models_api.reports import SavedReport
from app.services import response_parsers
from app.services.document_composer import DocumentComposer
from app.services.language_service import Language, language_code, validate
from app.services.legal_assistant import LegalAssistant
from app.services.report_store import ReportStore
from app.utils.common import compact_text

logger = logging.getLogger(__name__)

CONTEXT_MESSAGE_COUNT = 6
WAV_HEADER_BYTES = 44
CASE_NUMBER_ATTEMPTS = 5


class FilingState(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    RESPONDING = "responding"
    CLASSIFYING = "classifying"
    AWAITING_ANSWER = "awaiting_answer"
    EXTRACTING = "extracting"
    FINALIZING = "finalizing"
    FILED = "filed"
    ERROR = "error"


class ConversationTurn(BaseModel):
    transcript: str
    reply: Optional[str] = None
    question_index: Optional[int] = None


def generate_case_number(year: Optional[int] = None) -> str:
    year = year or datetime.now().year
    return f"BN{year}{random.randint(100000, 999999)}"


def align_responses(questions: List[str], responses: List[str]) -> List[str]:
    """Pad with empty strings or truncate so there is exactly one response per question."""
    aligned = list(responses[:len(questions)])
    aligned.extend([""] * (len(questions) - len(aligned)))
    return aligned


def truncate_recording(audio_bytes: bytes, max_pcm_bytes: int) -> bytes:
    header = WAV_HEADER_BYTES if audio_bytes[:4] == b"RIFF" else 0
    limit = header + max_pcm_bytes
    if len(audio_bytes) > limit:
        logger.warning(f"Recording of {len(audio_bytes)} bytes exceeds the maximum length. Truncating to {limit} bytes.")
        return audio_bytes[:limit]
    return audio_bytes


async def generate_document_for_case(
    case_record: CaseRecord,
    assistant: LegalAssistant,
    composer: DocumentComposer,
    report_store: ReportStore,
    fields: Optional[ExtractedCaseFields] = None,
) -> SavedReport:
    """Draft, render and store the filing document for a persisted case."""
    questions = case_record.filing_questions
    responses = align_responses(questions, case_record.user_responses)
    if fields is None:
        fields = await assistant.extract_detailed_case_info(
            case_record.case_type, case_record.case_details, case_record.conversation_summary, questions, responses
        )
    draft = await assistant.process_content_for_pdf(
        case_record.case_number, case_record.case_type, case_record.case_details,
        case_record.conversation_summary, questions, responses,
    )
    content = response_parsers.build_structured_content(response_parsers.parse_sections(draft), fields)
    rendered = composer.render(case_record, content)
    return report_store.save(rendered.pdf_bytes, rendered.file_name, case_record,
                             rendered.template.display_name, rendered.page_count)


class CaseFilingOrchestrator:
    """Drives one filing session from the first recording to a persisted case.

    Every step awaits the previous one; any external failure moves the session to
    ERROR, drops the in-progress filing data and re-raises to the caller.
    """

    def __init__(
        self,
        user_id: str,
        speech_client,
        assistant: LegalAssistant,
        db_session_factory: Callable[[], Session],
        composer: DocumentComposer,
        report_store: ReportStore,
        language: str = Language.HINDI.value,
        max_recording_bytes: int = 30 * 16000 * 2,
    ):
        self.id = str(uuid.uuid4())
        self.user_id = user_id
        self.speech_client = speech_client
        self.assistant = assistant
        self.db_session_factory = db_session_factory
        self.composer = composer
        self.report_store = report_store
        self.language = validate(language)
        self.max_recording_bytes = max_recording_bytes

        self.state = FilingState.IDLE
        self.error_message: Optional[str] = None
        self.started_at = datetime.now(timezone.utc)
        self.messages: List[Dict[str, Any]] = []

        self._recording_target: Optional[int] = None
        self._recording_active = False
        self._state_before_recording = FilingState.IDLE

        self.analysis: Optional[CaseAnalysis] = None
        self.user_responses: List[str] = []
        self.extracted_fields: Optional[ExtractedCaseFields] = None
        self.case_record: Optional[CaseRecord] = None

    # --- State helpers ---

    def _require(self, *states: FilingState) -> None:
        if self.state not in states:
            allowed = ", ".join(state.value for state in states)
            raise InvalidFilingState(f"Session is '{self.state.value}', expected one of: {allowed}")

    def _fail(self, error: Exception) -> None:
        self.state = FilingState.ERROR
        self.error_message = str(error)
        self._recording_active = False
        self._recording_target = None
        self.analysis = None
        self.user_responses = []
        self.extracted_fields = None
        logger.error(f"Filing session {self.id} aborted: {error}")

    @property
    def ready_to_file(self) -> bool:
        return bool(self.analysis and self.analysis.questions and all(r.strip() for r in self.user_responses))

    def _append_message(self, message_type: MessageTypeEnum, content: str) -> None:
        self.messages.append({
            "id": str(uuid.uuid4()),
            "type": message_type.value,
            "content": content,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "language": self.language.value,
        })

    def conversation_context(self) -> str:
        if not self.messages:
            return ""
        lines = ["Previous conversation:"]
        for message in self.messages[-CONTEXT_MESSAGE_COUNT:]:
            speaker = "User" if message["type"] == MessageTypeEnum.USER_TRANSCRIPTION.value else "Legal Expert"
            lines.append(f"{speaker}: {message['content']}")
        return "\n".join(lines) + "\n"

    def conversation_summary(self) -> str:
        summary = "Complete conversation summary:\n\n"
        for message in self.messages:
            if message["type"] == MessageTypeEnum.USER_TRANSCRIPTION.value:
                summary += f"User said: {message['content']}\n\n"
            else:
                summary += f"Legal Expert responded: {message['content']}\n\n"
        return summary

    # --- Recording ---

    def begin_recording(self, permission_granted: bool = True, question_index: Optional[int] = None) -> None:
        if self._recording_active:
            raise RecordingInProgress("A recording is already active for this session")
        if not permission_granted:
            raise PermissionDenied("Microphone permission denied")
        if question_index is None:
            self._require(FilingState.IDLE, FilingState.ERROR)
        else:
            self._require(FilingState.AWAITING_ANSWER)
        self._state_before_recording = self.state
        self._recording_active = True
        self._recording_target = question_index
        self.error_message = None
        self.state = FilingState.RECORDING
        logger.info(f"Filing session {self.id}: recording started (question index: {question_index}).")

    def cancel_recording(self) -> None:
        if not self._recording_active:
            return
        self._recording_active = False
        self._recording_target = None
        self.state = self._state_before_recording

    async def finish_recording(self, audio_bytes: bytes) -> ConversationTurn:
        if not self._recording_active:
            raise InvalidFilingState("No active recording found")
        target = self._recording_target
        self._recording_active = False
        self._recording_target = None
        self.state = FilingState.TRANSCRIBING

        audio = truncate_recording(audio_bytes, self.max_recording_bytes)
        try:
            transcript = await self.speech_client.transcribe(audio, language_code(self.language))
        except Exception as e:
            self._fail(e)
            raise

        if target is None:
            self.state = FilingState.IDLE
            return await self.add_user_message(transcript)
        self.state = FilingState.AWAITING_ANSWER
        self.submit_case_response(transcript, target)
        return ConversationTurn(transcript=transcript, question_index=target)

    # --- Conversation ---

    async def add_user_message(self, text: str) -> ConversationTurn:
        """One conversation turn. The message and the reply enter the history together, once the reply arrives."""
        self._require(FilingState.IDLE, FilingState.ERROR)
        context = self.conversation_context()
        prompt_text = f"{context}\nLatest message: {text}" if context else text
        self.state = FilingState.RESPONDING
        try:
            reply = await self.assistant.analyze_legal_case(prompt_text, language_code(self.language))
        except Exception as e:
            if self.state == FilingState.RESPONDING:
                self._fail(e)
            raise
        self._append_message(MessageTypeEnum.USER_TRANSCRIPTION, text)
        self._append_message(MessageTypeEnum.AI_RESPONSE, reply)
        if self.state == FilingState.RESPONDING:
            self.state = FilingState.IDLE
            self.error_message = None
        return ConversationTurn(transcript=text, reply=reply)

    # --- Filing ---

    async def start_case_filing(self) -> CaseAnalysis:
        self._require(FilingState.IDLE, FilingState.ERROR)
        if not self.messages:
            raise InvalidFilingState("Nothing to file: the conversation is empty")
        self.state = FilingState.CLASSIFYING
        try:
            analysis = await self.assistant.analyze_case_for_filing(self.conversation_summary(), language_code(self.language))
        except Exception as e:
            self._fail(e)
            raise
        self.analysis = analysis
        self.user_responses = [""] * len(analysis.questions)
        self.state = FilingState.AWAITING_ANSWER
        self.error_message = None
        logger.info(f"Filing session {self.id}: classified as '{analysis.case_type}' with {len(analysis.questions)} questions.")
        return analysis

    def submit_case_response(self, text: str, question_index: int) -> bool:
        self._require(FilingState.AWAITING_ANSWER)
        if question_index < 0 or question_index >= len(self.user_responses):
            logger.warning(f"Filing session {self.id}: ignoring response for out-of-range question {question_index}.")
            return False
        self.user_responses[question_index] = compact_text(text)
        return True

    async def finalize(self) -> CaseRecord:
        self._require(FilingState.AWAITING_ANSWER)
        analysis = self.analysis
        questions = list(analysis.questions)
        responses = align_responses(questions, self.user_responses)
        summary = self.conversation_summary()

        self.state = FilingState.EXTRACTING
        try:
            fields = await self.assistant.extract_detailed_case_info(
                analysis.case_type, analysis.case_details, summary, questions, responses
            )
        except Exception as e:
            self._fail(e)
            raise

        self.state = FilingState.FINALIZING
        try:
            record = self._persist(analysis, summary, questions, responses)
        except Exception as e:
            self._fail(e)
            raise

        self.extracted_fields = fields
        self.case_record = record
        self.state = FilingState.FILED
        logger.info(f"Filing session {self.id}: case {record.case_number} filed.")
        return record

    def _persist(self, analysis: CaseAnalysis, summary: str, questions: List[str], responses: List[str]) -> CaseRecord:
        db = self.db_session_factory()
        try:
            case_number = generate_case_number()
            for _ in range(CASE_NUMBER_ATTEMPTS):
                if crud.get_case_by_case_number(db, case_number) is None:
                    break
                case_number = generate_case_number()

            session = crud.build_session(
                user_id=self.user_id,
                messages=self.messages,
                started_at=self.started_at,
                language=self.language.value,
                case_number=case_number,
            )
            crud.save_conversation_session(db, session, commit=False)
            db_case = crud.create_case(
                db,
                user_id=self.user_id,
                case_number=case_number,
                case_type=analysis.case_type,
                case_details=analysis.case_details,
                conversation_summary=summary,
                filing_questions=questions,
                user_responses=responses,
                language=self.language.value,
                session_id=session.id,
                commit=False,
            )
            db.commit()
            db.refresh(db_case)
            return CaseRecord.model_validate(db_case)
        except Exception as e:
            db.rollback()
            if isinstance(e, (SQLAlchemyError, ValueError)):
                raise PersistenceError(f"Could not save case {case_number}: {e}") from e
            raise
        finally:
            db.close()

    async def generate_document(self) -> SavedReport:
        self._require(FilingState.FILED)
        return await generate_document_for_case(
            self.case_record, self.assistant, self.composer, self.report_store, self.extracted_fields
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "state": self.state,
            "language": self.language.value,
            "error_message": self.error_message,
            "messages": self.messages,
            "case_type": self.analysis.case_type if self.analysis else None,
            "case_details": self.analysis.case_details if self.analysis else None,
            "questions": list(self.analysis.questions) if self.analysis else [],
            "user_responses": list(self.user_responses),
            "ready_to_file": self.ready_to_file,
            "case_record": self.case_record,
        }
