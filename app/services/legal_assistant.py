# app/services/legal_assistant.py
import logging
from typing import List, Sequence

from app.models_api.documents import CaseAnalysis, ExtractedCaseFields, ExtractedFormData
from app.services import response_parsers
from app.services.language_service import language_display_name
from app.services.llm_gateway import AzureOpenAIClient

logger = logging.getLogger(__name__)

LANGUAGE_SYSTEM_PROMPT = "You are a language detection expert. You must respond with only the language name in lowercase."
VALIDATION_SYSTEM_PROMPT = "You are a language validation expert. You must respond with only the validated language name in lowercase."
ADVISOR_SYSTEM_PROMPT = ("You are a helpful legal assistant AI for Indian legal system. You provide preliminary legal "
                         "guidance and analysis in simple, understandable language.")
FILING_SYSTEM_PROMPT = ("You are a legal case filing expert for Indian legal system. You analyze conversations and "
                        "prepare structured case filing questionnaires.")
EXTRACTION_SYSTEM_PROMPT = "You are a legal data extraction expert. Extract case information and respond with only valid JSON."
DRAFTING_SYSTEM_PROMPT = ("You are a legal document drafting expert for Indian courts. You transform case conversations "
                          "into formal legal document content.")
FORM_SYSTEM_PROMPT = "You are a precise form data extraction AI. Always respond with valid JSON only."
CHATBOT_SYSTEM_PROMPT = """आप "न्याय" हैं, एक कानूनी सहायक। संक्षिप्त और स्पष्ट उत्तर दें।

निर्देश:
• 2-3 वाक्यों में मुख्य बात बताएं
• सरल हिंदी का प्रयोग करें
• केवल जरूरी जानकारी दें
• वकील से सलाह लेने की सिफारिश करें"""


def format_question_answers(questions: Sequence[str], responses: Sequence[str]) -> str:
    return "\n\n".join(f"Q: {question}\nA: {answer}" for question, answer in zip(questions, responses))


class LegalAssistant:
    """Prompt-level operations on top of the chat-completion primitive."""

    def __init__(self, llm_client: AzureOpenAIClient):
        self.llm_client = llm_client

    async def identify_language(self, text: str) -> str:
        prompt = (
            "You are a language detection expert for an Indian legal assistance app. Analyze the following text "
            "and identify which language it is written in.\n\n"
            "SUPPORTED LANGUAGES: Hindi, Gujarati, English, Urdu, Marathi\n\n"
            f"TEXT TO ANALYZE: \"{text}\"\n\n"
            "RESPONSE: Reply with ONLY the language name in lowercase (hindi, gujarati, english, urdu, or marathi). "
            "No explanations."
        )
        return await self.llm_client.complete(LANGUAGE_SYSTEM_PROMPT, prompt, max_tokens=10, temperature=0.1)

    async def validate_detected_language(self, detected_language: str) -> str:
        prompt = (
            "You are a language validation expert for an Indian legal assistance app. A Bhashini ALD (Automatic "
            "Language Detection) model has detected a language from audio speech.\n\n"
            f"DETECTED LANGUAGE: \"{detected_language}\"\n\n"
            "SUPPORTED LANGUAGES: hindi, gujarati, english, urdu, marathi\n\n"
            "VALIDATION TASK:\n"
            "1. Check if the detected language is one of our supported languages\n"
            "2. Map common variations to correct language codes:\n"
            "   - \"hi\" or \"hin\" -> \"hindi\"\n"
            "   - \"gu\" or \"guj\" -> \"gujarati\"\n"
            "   - \"en\" or \"eng\" -> \"english\"\n"
            "   - \"ur\" or \"urd\" -> \"urdu\"\n"
            "   - \"mr\" or \"mar\" -> \"marathi\"\n"
            "3. If the detected language is not supported, default to \"hindi\"\n"
            "4. Ensure the response is always one of our 5 supported languages\n\n"
            "RESPONSE: Reply with ONLY the validated language name in lowercase (hindi, gujarati, english, urdu, or "
            "marathi). No explanations."
        )
        return await self.llm_client.complete(VALIDATION_SYSTEM_PROMPT, prompt, max_tokens=10, temperature=0.1)

    async def analyze_legal_case(self, transcription: str, language: str) -> str:
        """Conversational reply to a user's spoken legal concern."""
        language_name = language_display_name(language)
        prompt_parts = [
            "You are a compassionate and expert legal advisor AI for BoloNyay app, helping Indian citizens access "
            f"justice. A user just shared their legal concern with you in {language_name}.",
            "",
            "USER'S CONCERN:",
            f"\"{transcription}\"",
            "",
            "YOUR ROLE: Act like a caring legal expert who truly understands their situation. Listen carefully, "
            "provide helpful guidance, and ask thoughtful questions to better help them.",
            "",
            f"RESPONSE STYLE: Write naturally in {language_name} without using formatting symbols like asterisks, "
            "brackets, or mathematical symbols. Use simple, warm, conversational language that shows you understand "
            "their concern.",
            "",
            "STRUCTURE YOUR RESPONSE AS:",
            "मैं आपकी स्थिति समझ गया हूँ / I understand your situation",
            "यह कानूनी मामला है / This appears to be a legal matter related to",
            "आपकी मुख्य समस्याएं हैं / Your main concerns are",
            "मेरी सलाह है / My advice to you is",
            "आपको तुरंत ये काम करने चाहिए / You should immediately do these things",
            "महत्वपूर्ण बातें / Important things to remember",
            "मुझे आपसे कुछ और जानना है / I need to know more from you",
            "आगे क्या करना है / What to do next",
            "",
            "IMPORTANT GUIDELINES:",
            f"- Write in pure conversational {language_name} without any English mixing unless necessary for legal terms",
            "- NO formatting symbols, asterisks, bullets, or mathematical characters",
            "- Provide specific legal guidance based on Indian laws, including relevant acts and procedures",
            "- Ask 3-4 smart questions that show you're thinking deeply about their case",
        ]
        return await self.llm_client.complete(ADVISOR_SYSTEM_PROMPT, "\n".join(prompt_parts),
                                              max_tokens=1200, temperature=0.3)

    def _case_filing_prompt(self, conversation_summary: str, language: str) -> str:
        return f"""You are an expert legal case filing specialist for Indian courts with 20+ years experience. A user has shared their legal concern and wants to file a formal case.

CONVERSATION SUMMARY:
{conversation_summary}

TASK BREAKDOWN:

1. CASE TYPE IDENTIFICATION - Determine the exact legal category:
   • Civil Cases: Property disputes, contract breaches, defamation, money recovery, partnership disputes
   • Criminal Cases: Cheating, fraud, harassment, domestic violence, theft, assault
   • Family Cases: Divorce, maintenance, child custody, dowry harassment, domestic violence
   • Consumer Cases: Product defects, service failures, unfair trade practices
   • Labor Cases: Wrongful termination, salary disputes, workplace harassment
   • Property Cases: Land disputes, illegal possession, boundary issues, property fraud
   • Commercial Cases: Business disputes, trademark violations, competition issues

2. LEGAL FOUNDATION - Summarize the core legal issue with relevant Indian laws

3. COMPREHENSIVE QUESTIONNAIRE - Generate 8-12 specific questions covering personal details and standing, factual timeline and evidence, parties involved, financial impact, legal relief sought, supporting documents, urgency, jurisdiction, previous legal actions and witnesses.

RESPONSE FORMAT (use exact headers):

CASE TYPE: [Specific category with subcategory, e.g., "Civil Case - Property Dispute", "Criminal Case - Cheating and Fraud"]

CASE DETAILS: [Detailed summary with relevant Indian legal provisions like IPC sections, Civil Procedure Code, specific acts]

QUESTIONS:
- आपका पूरा नाम, पता और उम्र क्या है? (What is your full name, address and age?)
- घटना की सटीक तारीख और समय क्या था? (What was the exact date and time of the incident?)
- [Continue with case-specific questions...]

GUIDELINES:
- Ask 8-12 comprehensive questions (not just 5-6)
- Questions should be specific to the identified case type
- Frame questions for voice input (clear, simple language)
- Include questions about supporting documents, evidence, limitation periods and urgency

Write questions in {language_display_name(language)} that are optimized for voice responses."""

    async def analyze_case_for_filing(self, conversation_summary: str, language: str) -> CaseAnalysis:
        reply = await self.llm_client.complete(FILING_SYSTEM_PROMPT, self._case_filing_prompt(conversation_summary, language),
                                               max_tokens=800, temperature=0.2)
        analysis = response_parsers.parse_case_analysis(reply)
        logger.info(f"Case analysis: type='{analysis.case_type}', {len(analysis.questions)} questions.")
        return analysis

    async def extract_detailed_case_info(self, case_type: str, case_details: str, conversation_summary: str,
                                         questions: List[str], responses: List[str]) -> ExtractedCaseFields:
        prompt = f"""You are an expert legal data extraction AI for Indian legal documents. Extract specific information from the case conversation to fill legal document fields.

CASE INFORMATION:
Case Type: {case_type}
Case Details: {case_details}
Conversation Summary: {conversation_summary}

QUESTIONS & RESPONSES:
{format_question_answers(questions, responses)}

EXTRACT the following information in EXACT JSON format. If information is not available, use appropriate placeholder text:

{{
  "petitioner": {{
    "name": "Extract actual name or use 'Name to be filled'",
    "age": "Extract age or use 'Age to be filled'",
    "occupation": "Extract occupation or use 'Occupation to be filled'",
    "address": "Extract full address or use 'Address to be filled'",
    "phone": "Extract phone number or use 'Phone to be filled'"
  }},
  "respondent": {{
    "name": "Extract respondent/accused name or use 'Respondent name to be filled'",
    "age": "Extract age or use 'Age to be filled'",
    "occupation": "Extract occupation or use 'Occupation to be filled'",
    "address": "Extract address or use 'Address to be filled'",
    "relationship": "Extract relationship to petitioner or use 'Relationship to be filled'"
  }},
  "incident": {{
    "date": "Extract exact date or use 'Date to be filled'",
    "time": "Extract time or use 'Time to be filled'",
    "place": "Extract specific location or use 'Place to be filled'",
    "description": "Extract detailed incident description"
  }},
  "amounts": {{
    "damages": "Extract monetary amounts claimed or use '0'",
    "expenses": "Extract expenses incurred or use '0'"
  }},
  "witnesses": ["Extract witness names or use empty array"],
  "urgentFactors": ["Extract urgency reasons or use standard reasons"]
}}

IMPORTANT:
- Extract real information from conversation when available
- Use professional placeholder text when information is missing
- Ensure JSON is valid and properly formatted
- Don't include explanations, only the JSON response"""
        reply = await self.llm_client.complete(EXTRACTION_SYSTEM_PROMPT, prompt, max_tokens=800, temperature=0.1)
        return response_parsers.decode_extracted_fields(reply)

    async def process_content_for_pdf(self, case_number: str, case_type: str, case_details: str,
                                      conversation_summary: str, questions: List[str], responses: List[str]) -> str:
        prompt = f"""You are an expert legal document drafting specialist for Indian courts with 25+ years of experience. Your task is to transform a voice-recorded case consultation into a structured, professional legal document content suitable for court filing.

CASE INFORMATION:
Case Number: {case_number}
Case Type: {case_type}
Case Details: {case_details}
Conversation Summary: {conversation_summary}

FILING QUESTIONS & RESPONSES:
{format_question_answers(questions, responses)}

RESPONSE FORMAT (use exact headers):

CASE SUMMARY:
[Write a comprehensive legal summary in formal court language, incorporating relevant Indian legal provisions like IPC sections, CPC, CrPC, specific acts.]

KEY FACTS:
- [Fact 1: Chronological fact with legal relevance]
- [Continue with all relevant facts]

LEGAL ISSUES:
- [Issue 1: Primary legal violation/right infringement]
- [Continue with all applicable legal issues]

RELIEF SOUGHT:
- [Relief 1: Primary remedy with legal basis]
- [Relief 2: Monetary compensation/damages]
- [Relief 3: Injunctive or declaratory relief]
- [Relief 4: Costs and other legal remedies]

NEXT STEPS:
- [Step 1: Immediate legal action required]
- [Step 2: Evidence collection requirements]
- [Step 3: Procedural compliance measures]
- [Step 4: Timeline and limitation considerations]

Use formal legal language appropriate for Indian courts, reference specific legal provisions where applicable, and preserve all factual content."""
        reply = await self.llm_client.complete(DRAFTING_SYSTEM_PROMPT, prompt, max_tokens=1500, temperature=0.2)
        return response_parsers.clean_formatting_symbols(reply)

    async def extract_form_data(self, transcription: str) -> ExtractedFormData:
        """Pull account-form fields out of a spoken sentence. Never raises on a bad reply."""
        if not transcription.strip():
            return response_parsers.empty_form_data()
        prompt = (
            "Extract form data from this Hindi/English speech for account creation:\n"
            f"Speech: \"{transcription}\"\n\n"
            "Extract: full name, email, mobile number, state, district\n\n"
            "Respond ONLY with JSON:\n"
            "{\n"
            "    \"fullName\": \"extracted name or null\",\n"
            "    \"email\": \"extracted email or null\",\n"
            "    \"mobileNumber\": \"10-digit number or null\",\n"
            "    \"state\": \"extracted state or null\",\n"
            "    \"district\": \"extracted district or null\",\n"
            "    \"confidence\": \"high, medium or low\"\n"
            "}"
        )
        reply = await self.llm_client.complete(FORM_SYSTEM_PROMPT, prompt, max_tokens=300, temperature=0.1)
        return response_parsers.decode_form_data(reply)

    async def chatbot_reply(self, text: str) -> str:
        return await self.llm_client.complete(CHATBOT_SYSTEM_PROMPT, text, max_tokens=80, temperature=0.7)
