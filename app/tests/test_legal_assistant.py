import pytest
from unittest.mock import AsyncMock, MagicMock

from app.services.legal_assistant import LegalAssistant, format_question_answers


def make_assistant(reply):
    llm_client = MagicMock()
    llm_client.complete = AsyncMock(return_value=reply)
    return LegalAssistant(llm_client), llm_client


def call_parameters(llm_client):
    kwargs = llm_client.complete.await_args.kwargs
    return kwargs["max_tokens"], kwargs["temperature"]


def test_format_question_answers_pairs_by_index():
    text = format_question_answers(["Name?", "Place?"], ["Asha", ""])
    assert text == "Q: Name?\nA: Asha\n\nQ: Place?\nA: "


@pytest.mark.asyncio
async def test_identify_language_call_parameters():
    assistant, llm_client = make_assistant("hindi")

    assert await assistant.identify_language("नमस्ते") == "hindi"
    assert call_parameters(llm_client) == (10, 0.1)


@pytest.mark.asyncio
async def test_analyze_case_for_filing_parses_reply():
    assistant, llm_client = make_assistant("CASE TYPE: Consumer\nCASE DETAILS: Defective fridge\nQUESTIONS:\n- Bill number?")

    analysis = await assistant.analyze_case_for_filing("Complete conversation summary:\n\n", "gu")

    assert analysis.case_type == "Consumer"
    assert analysis.questions == ["Bill number?"]
    assert call_parameters(llm_client) == (800, 0.2)
    user_prompt = llm_client.complete.await_args.args[1]
    assert "Write questions in Gujarati" in user_prompt


@pytest.mark.asyncio
async def test_extract_detailed_case_info_includes_qa_pairs():
    assistant, llm_client = make_assistant('{"petitioner": {"name": "Asha"}}')

    fields = await assistant.extract_detailed_case_info(
        "Civil", "Land dispute", "summary", ["Your name?", "Address?"], ["Asha", ""]
    )

    assert fields.petitioner.name == "Asha"
    assert fields.petitioner.address == "Address to be filled"
    assert call_parameters(llm_client) == (800, 0.1)
    assert "Q: Address?\nA: " in llm_client.complete.await_args.args[1]


@pytest.mark.asyncio
async def test_process_content_for_pdf_strips_formatting():
    assistant, llm_client = make_assistant("**CASE SUMMARY:** A dispute.\n## KEY FACTS:\n- Fact one")

    content = await assistant.process_content_for_pdf("BN2025000001", "Civil", "details", "summary", [], [])

    assert "*" not in content and "#" not in content
    assert "- Fact one" in content
    assert call_parameters(llm_client) == (1500, 0.2)


@pytest.mark.asyncio
async def test_extract_form_data_skips_llm_for_blank_input():
    assistant, llm_client = make_assistant("{}")

    form = await assistant.extract_form_data("   ")

    assert form.confidence == "low"
    llm_client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_chatbot_reply_parameters():
    assistant, llm_client = make_assistant("वकील से सलाह लें।")

    await assistant.chatbot_reply("मेरा किराया वापस नहीं मिल रहा")

    assert call_parameters(llm_client) == (80, 0.7)
