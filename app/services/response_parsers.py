# app/services/response_parsers.py
import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError
from app.models_api.documents import (
    CaseAnalysis,
    ExtractedCaseFields,
    ExtractedFormData,
    ParsedSection,
    SectionKind,
    StructuredDocumentContent,
)

logger = logging.getLogger(__name__)

CASE_TYPE_HEADER = "CASE TYPE:"
CASE_DETAILS_HEADER = "CASE DETAILS:"
QUESTIONS_HEADER = "QUESTIONS:"

SECTION_HEADERS: Dict[str, SectionKind] = {
    "CASE SUMMARY:": SectionKind.CASE_SUMMARY,
    "KEY FACTS:": SectionKind.KEY_FACTS,
    "LEGAL ISSUES:": SectionKind.LEGAL_ISSUES,
    "RELIEF SOUGHT:": SectionKind.RELIEF_SOUGHT,
    "NEXT STEPS:": SectionKind.NEXT_STEPS,
}

# Longest first so that "---" is removed before "--" and "-" bullets survive
FORMATTING_SYMBOLS = ["**", "*", "###", "##", "#", "```", "`", "---", "--", "___", "__", "~~", "[", "]"]


def strip_markdown_json(text: str) -> str:
    """Strips JSON markdown code fences if present."""
    text = text.strip()
    if text.startswith("```json") and text.endswith("```"):
        text = text[len("```json"): -len("```")]
    elif text.startswith("```") and text.endswith("```"):
        text = text[len("```"): -len("```")]
    return text.strip()


def clean_formatting_symbols(text: str) -> str:
    cleaned = text
    for symbol in FORMATTING_SYMBOLS:
        cleaned = cleaned.replace(symbol, "")
    cleaned = cleaned.replace("  ", " ")
    cleaned = cleaned.replace("\n\n\n", "\n\n")
    return cleaned


def _after_header(line: str, header: str) -> str:
    return line.split(header, 1)[1].strip()


def parse_case_analysis(text: str) -> CaseAnalysis:
    """Parse a classification reply into case type, details and dash-prefixed questions."""
    case_type = ""
    details = ""
    questions: List[str] = []
    seen = set()
    section: Optional[str] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if CASE_TYPE_HEADER in line:
            case_type = _after_header(line, CASE_TYPE_HEADER)
            seen.add(CASE_TYPE_HEADER)
            section = None
        elif CASE_DETAILS_HEADER in line:
            seen.add(CASE_DETAILS_HEADER)
            details = _after_header(line, CASE_DETAILS_HEADER)
            section = None if details else "details"
        elif QUESTIONS_HEADER in line:
            seen.add(QUESTIONS_HEADER)
            section = "questions"
        elif not line:
            continue
        elif section == "details":
            details = line
            section = None
        elif section == "questions" and line.startswith("-"):
            question = line.lstrip("-").strip()
            if question:
                questions.append(question)

    missing = [header for header in (CASE_TYPE_HEADER, CASE_DETAILS_HEADER, QUESTIONS_HEADER) if header not in seen]
    if missing:
        logger.warning(f"Case analysis reply is missing headers: {missing}")
    return CaseAnalysis(case_type=case_type, case_details=details, questions=questions, missing_headers=missing)


def parse_sections(text: str) -> List[ParsedSection]:
    """Split a drafting reply into tagged sections keyed on the fixed headers."""
    sections: List[ParsedSection] = []
    current: Optional[ParsedSection] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        header = next((h for h in SECTION_HEADERS if line.upper().startswith(h)), None)
        if header:
            current = ParsedSection(kind=SECTION_HEADERS[header])
            sections.append(current)
            inline = line[len(header):].strip()
            if inline and current.kind == SectionKind.CASE_SUMMARY:
                current.items.append(inline)
            continue
        if current is None:
            continue
        if current.kind == SectionKind.CASE_SUMMARY:
            current.items.append(line)
        elif line.startswith("- "):
            item = line[2:].strip()
            if item:
                current.items.append(item)
    return sections


def build_structured_content(sections: List[ParsedSection],
                             fields: Optional[ExtractedCaseFields] = None) -> StructuredDocumentContent:
    content = StructuredDocumentContent(fields=fields or ExtractedCaseFields())
    for section in sections:
        if section.kind == SectionKind.CASE_SUMMARY:
            joined = " ".join(section.items)
            content.case_summary = f"{content.case_summary} {joined}".strip()
        else:
            getattr(content, section.kind.value).extend(section.items)
    return content


def _decode_json_object(text: str) -> Optional[dict]:
    cleaned = strip_markdown_json(text or "")
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError:
        # Models sometimes wrap the object in prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            decoded = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            return None
    return decoded if isinstance(decoded, dict) else None


def decode_extracted_fields(text: str) -> ExtractedCaseFields:
    decoded = _decode_json_object(text)
    if decoded is None:
        logger.warning("Extraction reply was not a JSON object. Using placeholders for every field.")
        return ExtractedCaseFields()
    try:
        return ExtractedCaseFields.model_validate(decoded)
    except ValidationError as e:
        logger.warning(f"Extraction reply did not match the expected shape: {e}. Using placeholders.")
        return ExtractedCaseFields()


def empty_form_data() -> ExtractedFormData:
    return ExtractedFormData(confidence="low")


def decode_form_data(text: str) -> ExtractedFormData:
    decoded = _decode_json_object(text)
    if decoded is None:
        logger.warning("Form extraction reply was not valid JSON. Returning empty form data.")
        return empty_form_data()
    # The model writes the string "null" for missing values
    cleaned = {key: (None if value is None or value in ("null", "") else str(value)) for key, value in decoded.items()}
    try:
        return ExtractedFormData.model_validate(cleaned)
    except ValidationError as e:
        logger.warning(f"Form extraction reply had unexpected types: {e}. Returning empty form data.")
        return empty_form_data()
