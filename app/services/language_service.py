# app/services/language_service.py
import enum
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class Language(str, enum.Enum):
    HINDI = "hindi"
    GUJARATI = "gujarati"
    ENGLISH = "english"
    URDU = "urdu"
    MARATHI = "marathi"


SUPPORTED_LANGUAGES = [language.value for language in Language]

LANGUAGE_ALIASES = {
    "hi": Language.HINDI, "hin": Language.HINDI, "hindi": Language.HINDI,
    "gu": Language.GUJARATI, "guj": Language.GUJARATI, "gujarati": Language.GUJARATI,
    "en": Language.ENGLISH, "eng": Language.ENGLISH, "english": Language.ENGLISH,
    "ur": Language.URDU, "urd": Language.URDU, "urdu": Language.URDU,
    "mr": Language.MARATHI, "mar": Language.MARATHI, "marathi": Language.MARATHI,
}

LANGUAGE_CODES = {
    Language.HINDI: "hi",
    Language.GUJARATI: "gu",
    Language.ENGLISH: "en",
    Language.URDU: "ur",
    Language.MARATHI: "mr",
}

# Fallback for raw labels matching no alias
VALIDATION_DEFAULT = Language.HINDI
# Fallback for LLM text identification replies
TEXT_DETECTION_DEFAULT = Language.ENGLISH


def _lookup(raw_label: Optional[str]) -> Optional[Language]:
    if not raw_label:
        return None
    return LANGUAGE_ALIASES.get(raw_label.strip().lower())


def validate(raw_label: Optional[str]) -> Language:
    """Map a raw language label (code or name) onto the supported set, defaulting to Hindi."""
    language = _lookup(raw_label)
    if language is None:
        logger.info(f"Unrecognised language label '{raw_label}', defaulting to {VALIDATION_DEFAULT.value}.")
        return VALIDATION_DEFAULT
    return language


def normalize_text_detection(reply: Optional[str]) -> Language:
    """Interpret an LLM language-identification reply, defaulting to English."""
    cleaned = (reply or "").strip().lower()
    if cleaned in SUPPORTED_LANGUAGES:
        return Language(cleaned)
    logger.info(f"Language identification reply '{cleaned}' not supported, defaulting to {TEXT_DETECTION_DEFAULT.value}.")
    return TEXT_DETECTION_DEFAULT


def normalize_llm_validation(reply: Optional[str]) -> Language:
    cleaned = (reply or "").strip().lower()
    if cleaned in SUPPORTED_LANGUAGES:
        return Language(cleaned)
    return VALIDATION_DEFAULT


def language_code(language: Language) -> str:
    return LANGUAGE_CODES[Language(language)]


def language_display_name(code_or_name: Optional[str]) -> str:
    """Human readable name used inside prompts."""
    language = _lookup(code_or_name)
    return {
        Language.HINDI: "Hindi",
        Language.GUJARATI: "Gujarati",
        Language.URDU: "Urdu",
        Language.MARATHI: "Marathi",
    }.get(language, "English")


class LanguageService:
    """Language detection over text (LLM) and audio (Bhashini ALD)."""

    def __init__(self, assistant, speech_client):
        self.assistant = assistant
        self.speech_client = speech_client

    async def detect_from_text(self, text: str) -> Language:
        reply = await self.assistant.identify_language(text)
        return normalize_text_detection(reply)

    async def detect_from_audio(self, audio_bytes: bytes) -> str:
        return await self.speech_client.detect_language_from_audio(audio_bytes)

    async def validate_with_llm(self, detected_label: str) -> Language:
        reply = await self.assistant.validate_detected_language(detected_label)
        return normalize_llm_validation(reply)

    async def detect_spoken_language(self, audio_bytes: bytes) -> Tuple[str, Language]:
        """Raw ALD code plus the supported language it validates to."""
        code = await self.detect_from_audio(audio_bytes)
        language = validate(code)
        logger.info(f"Spoken language detected as '{code}', validated to {language.value}.")
        return code, language
