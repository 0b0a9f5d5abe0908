import pytest
from unittest.mock import AsyncMock, MagicMock

from app.services.language_service import (
    Language, LanguageService, language_code, language_display_name, normalize_text_detection, validate,
)


@pytest.mark.parametrize("label, expected", [
    ("hin", Language.HINDI),
    ("  GU ", Language.GUJARATI),
    ("eng", Language.ENGLISH),
    ("Urdu", Language.URDU),
    ("mr", Language.MARATHI),
    ("xx", Language.HINDI),
    ("", Language.HINDI),
    (None, Language.HINDI),
])
def test_validate_maps_aliases_and_defaults_to_hindi(label, expected):
    assert validate(label) == expected


def test_validate_is_idempotent():
    for label in ["hin", "gu", "english", "xx", "MAR", "urd"]:
        once = validate(label)
        assert validate(once.value) == once


def test_text_detection_defaults_to_english():
    assert normalize_text_detection(" Gujarati\n") == Language.GUJARATI
    assert normalize_text_detection("tamil") == Language.ENGLISH


def test_language_display_names():
    assert language_display_name("hi") == "Hindi"
    assert language_display_name("gujarati") == "Gujarati"
    assert language_display_name("ur") == "Urdu"
    assert language_display_name("mr") == "Marathi"
    assert language_display_name("ta") == "English"
    assert language_code(Language.GUJARATI) == "gu"


@pytest.mark.asyncio
async def test_detect_from_text_uses_assistant_reply():
    assistant = MagicMock()
    assistant.identify_language = AsyncMock(return_value="marathi")
    service = LanguageService(assistant, MagicMock())

    assert await service.detect_from_text("माझं नाव आशा आहे") == Language.MARATHI
    assistant.identify_language.assert_awaited_once_with("माझं नाव आशा आहे")


@pytest.mark.asyncio
async def test_validate_with_llm_defaults_to_hindi():
    assistant = MagicMock()
    assistant.validate_detected_language = AsyncMock(return_value="klingon")
    service = LanguageService(assistant, MagicMock())

    assert await service.validate_with_llm("xx") == Language.HINDI


@pytest.mark.asyncio
async def test_detect_spoken_language_validates_ald_code():
    speech_client = MagicMock()
    speech_client.detect_language_from_audio = AsyncMock(return_value="hin")
    service = LanguageService(MagicMock(), speech_client)

    assert await service.detect_from_audio(b"audio") == "hin"
    assert await service.detect_spoken_language(b"audio") == ("hin", Language.HINDI)
