# app/models_api/documents.py
import enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


def _placeholder(value: Any, placeholder: str) -> str:
    if value is None:
        return placeholder
    text = str(value).strip()
    return text if text else placeholder


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class PartyInfo(BaseModel):
    name: str = "Name to be filled"
    age: str = "Age to be filled"
    occupation: str = "Occupation to be filled"
    address: str = "Address to be filled"
    phone: str = "Phone to be filled"
    relationship: str = "Relationship to be filled"

    @field_validator("*", mode="before")
    @classmethod
    def _fill_missing(cls, value, info):
        return _placeholder(value, cls.model_fields[info.field_name].default)


class IncidentInfo(BaseModel):
    date: str = "Date to be filled"
    time: str = "Time to be filled"
    place: str = "Place to be filled"
    description: str = "Detailed incident description to be filled"

    @field_validator("*", mode="before")
    @classmethod
    def _fill_missing(cls, value, info):
        return _placeholder(value, cls.model_fields[info.field_name].default)


class AmountInfo(BaseModel):
    damages: str = "0"
    expenses: str = "0"

    @field_validator("*", mode="before")
    @classmethod
    def _fill_missing(cls, value, info):
        return _placeholder(value, cls.model_fields[info.field_name].default)


class ExtractedCaseFields(BaseModel):
    """Structured fields pulled out of a filing conversation.

    Every scalar resolves to a readable placeholder when the model could not find
    a value, so document rendering never sees None or an empty string.
    """
    petitioner: PartyInfo = Field(default_factory=PartyInfo)
    respondent: PartyInfo = Field(default_factory=PartyInfo)
    incident: IncidentInfo = Field(default_factory=IncidentInfo)
    amounts: AmountInfo = Field(default_factory=AmountInfo)
    witnesses: List[str] = []
    urgent_factors: List[str] = Field(default_factory=list, alias="urgentFactors")

    @field_validator("petitioner", "respondent", "incident", "amounts", mode="before")
    @classmethod
    def _nested_or_empty(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("witnesses", "urgent_factors", mode="before")
    @classmethod
    def _clean_list(cls, value):
        return _string_list(value)

    class Config:
        populate_by_name = True


class SectionKind(str, enum.Enum):
    CASE_SUMMARY = "case_summary"
    KEY_FACTS = "key_facts"
    LEGAL_ISSUES = "legal_issues"
    RELIEF_SOUGHT = "relief_sought"
    NEXT_STEPS = "next_steps"


class ParsedSection(BaseModel):
    kind: SectionKind
    items: List[str] = []


class StructuredDocumentContent(BaseModel):
    case_summary: str = ""
    key_facts: List[str] = []
    legal_issues: List[str] = []
    relief_sought: List[str] = []
    next_steps: List[str] = []
    fields: ExtractedCaseFields = Field(default_factory=ExtractedCaseFields)


class CaseAnalysis(BaseModel):
    case_type: str = ""
    case_details: str = ""
    questions: List[str] = []
    missing_headers: List[str] = []


class ExtractedFormData(BaseModel):
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    mobile_number: Optional[str] = Field(None, alias="mobileNumber")
    state: Optional[str] = None
    district: Optional[str] = None
    user_id: Optional[str] = Field(None, alias="userId")
    confidence: Optional[str] = None

    @property
    def has_any_data(self) -> bool:
        return any([self.full_name, self.email, self.mobile_number, self.state, self.district, self.user_id])

    class Config:
        populate_by_name = True
