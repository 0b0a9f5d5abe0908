# app/services/voice_chatbot.py
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from app.services.case_filing_orchestrator import truncate_recording
from app.services.language_service import Language, language_code, validate
from app.services.legal_assistant import LegalAssistant

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    is_user: bool
    language: str = Language.HINDI.value
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChatTurn(BaseModel):
    transcript: str
    reply: str


class VoiceChatbot:
    """Short spoken Q&A with the legal chatbot, independent of any case filing.

    Each reply answers the latest message on its own; the history is kept for the
    client to display and is dropped by clear().
    """

    def __init__(self, speech_client, assistant: LegalAssistant, language: str = Language.HINDI.value,
                 max_recording_bytes: int = 30 * 16000 * 2):
        self.id = str(uuid.uuid4())
        self.speech_client = speech_client
        self.assistant = assistant
        self.language = validate(language)
        self.max_recording_bytes = max_recording_bytes
        self.history: List[ChatMessage] = []
        self.error_message: Optional[str] = None

    async def send_text(self, text: str) -> ChatTurn:
        try:
            reply = (await self.assistant.chatbot_reply(text)).strip()
        except Exception as e:
            self.error_message = str(e)
            logger.error(f"Chat session {self.id}: reply failed: {e}")
            raise
        self.history.append(ChatMessage(content=text, is_user=True, language=self.language.value))
        self.history.append(ChatMessage(content=reply, is_user=False, language=self.language.value))
        self.error_message = None
        return ChatTurn(transcript=text, reply=reply)

    async def send_audio(self, audio_bytes: bytes) -> ChatTurn:
        audio = truncate_recording(audio_bytes, self.max_recording_bytes)
        try:
            transcript = await self.speech_client.transcribe(audio, language_code(self.language))
        except Exception as e:
            self.error_message = f"Voice processing failed: {e}"
            logger.error(f"Chat session {self.id}: transcription failed: {e}")
            raise
        return await self.send_text(transcript)

    def clear(self) -> None:
        logger.info(f"Chat session {self.id}: clearing {len(self.history)} message(s).")
        self.history = []
        self.error_message = None
