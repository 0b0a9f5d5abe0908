from app.models_api.documents import SectionKind
from app.services import response_parsers


CLASSIFICATION_REPLY = """CASE TYPE: Criminal - Theft

CASE DETAILS:
The user's mobile phone was stolen at the bus stand.

QUESTIONS:
- What is your full name and address?
- When did the theft happen?
Some stray commentary line
- Do you know the accused?
"""

DRAFT_REPLY = """Intro text that is not a section
CASE SUMMARY: The petitioner lost a phone.
It happened at the bus stand.

KEY FACTS:
- Phone stolen on 12 March
- FIR not yet lodged
not a bullet

LEGAL ISSUES:
- Theft under Section 379 IPC

RELIEF SOUGHT:
- Recovery of the phone

NEXT STEPS:
- Lodge an FIR
"""


def test_parse_case_analysis_reads_all_headers():
    analysis = response_parsers.parse_case_analysis(CLASSIFICATION_REPLY)

    assert analysis.case_type == "Criminal - Theft"
    assert analysis.case_details == "The user's mobile phone was stolen at the bus stand."
    assert analysis.questions == [
        "What is your full name and address?",
        "When did the theft happen?",
        "Do you know the accused?",
    ]
    assert analysis.missing_headers == []


def test_parse_case_analysis_inline_details_and_missing_questions():
    analysis = response_parsers.parse_case_analysis("CASE TYPE: Civil\nCASE DETAILS: Land dispute with neighbour")

    assert analysis.case_type == "Civil"
    assert analysis.case_details == "Land dispute with neighbour"
    assert analysis.questions == []
    assert analysis.missing_headers == ["QUESTIONS:"]


def test_parse_sections_tags_each_section():
    sections = response_parsers.parse_sections(DRAFT_REPLY)

    assert [section.kind for section in sections] == [
        SectionKind.CASE_SUMMARY, SectionKind.KEY_FACTS, SectionKind.LEGAL_ISSUES,
        SectionKind.RELIEF_SOUGHT, SectionKind.NEXT_STEPS,
    ]
    assert sections[0].items == ["The petitioner lost a phone.", "It happened at the bus stand."]
    assert sections[1].items == ["Phone stolen on 12 March", "FIR not yet lodged"]


def test_build_structured_content_uses_sections_and_fields():
    fields = response_parsers.decode_extracted_fields('{"petitioner": {"name": "Asha"}}')
    content = response_parsers.build_structured_content(response_parsers.parse_sections(DRAFT_REPLY), fields)

    assert content.case_summary == "The petitioner lost a phone. It happened at the bus stand."
    assert content.legal_issues == ["Theft under Section 379 IPC"]
    assert content.next_steps == ["Lodge an FIR"]
    assert content.fields.petitioner.name == "Asha"


def test_clean_formatting_symbols_keeps_bullets():
    cleaned = response_parsers.clean_formatting_symbols("## KEY FACTS:\n- **Phone** stolen `x`")

    assert "KEY FACTS:" in cleaned
    assert "- Phone stolen x" in cleaned
    assert "*" not in cleaned and "#" not in cleaned and "`" not in cleaned
    assert response_parsers.clean_formatting_symbols("a\n\n\nb") == "a\n\nb"


def test_decode_extracted_fields_missing_petitioner_uses_placeholders():
    fields = response_parsers.decode_extracted_fields(
        '```json\n{"respondent": {"name": "Ravi", "phone": ""}, "witnesses": ["Meena", null, " "]}\n```'
    )

    assert fields.petitioner.name == "Name to be filled"
    assert fields.petitioner.address == "Address to be filled"
    assert fields.respondent.name == "Ravi"
    assert fields.respondent.phone == "Phone to be filled"
    assert fields.respondent.relationship == "Relationship to be filled"
    assert fields.incident.description == "Detailed incident description to be filled"
    assert fields.amounts.damages == "0"
    assert fields.witnesses == ["Meena"]
    assert fields.urgent_factors == []


def test_decode_extracted_fields_garbage_yields_placeholders():
    fields = response_parsers.decode_extracted_fields("I could not find anything useful.")

    assert fields.petitioner.name == "Name to be filled"
    assert fields.incident.place == "Place to be filled"


def test_decode_extracted_fields_json_wrapped_in_prose():
    fields = response_parsers.decode_extracted_fields(
        'Here is the data: {"incident": {"place": "Pune"}, "urgentFactors": ["threats"]} Thanks.'
    )

    assert fields.incident.place == "Pune"
    assert fields.urgent_factors == ["threats"]


def test_decode_form_data_maps_null_strings():
    form = response_parsers.decode_form_data(
        '{"fullName": "Asha Patel", "email": "null", "mobileNumber": 9876543210, "state": "Gujarat", '
        '"district": "", "confidence": "high"}'
    )

    assert form.full_name == "Asha Patel"
    assert form.email is None
    assert form.mobile_number == "9876543210"
    assert form.district is None
    assert form.confidence == "high"
    assert form.has_any_data


def test_decode_form_data_never_raises():
    form = response_parsers.decode_form_data("not json at all")

    assert form.confidence == "low"
    assert not form.has_any_data
