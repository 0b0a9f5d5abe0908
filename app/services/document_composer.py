# app/services/document_composer.py
"""
Court-filing document composition.

Rendering runs in two passes. The planning pass wraps every item into lines
(measured with the PDF's own fonts), then places the items on pages, breaking when
cursor + height would cross the printable limit and forcing a fresh page for the
verification footer when it no longer fits. Items taller than a page body are
split across pages at line boundaries. The drawing pass then renders every block
at its planned position with the total page count already known, so every page
carries a correct "Page N of M" stamp.
"""
import enum
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fpdf import FPDF, XPos, YPos
from fpdf.errors import FPDFException
from pydantic import BaseModel

from app.core.errors import DocumentRenderError
from app.models_api.cases import CaseRecord
from app.models_api.documents import PartyInfo, StructuredDocumentContent

logger = logging.getLogger(__name__)

# --- Layout constants (points, A4) ---
PAGE_WIDTH = 595
PAGE_HEIGHT = 842
MARGIN = 50
FOOTER_HEIGHT = 200
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
MAX_CONTENT_Y = PAGE_HEIGHT - MARGIN - FOOTER_HEIGHT

CHARS_PER_LINE = 80
TITLE_HEIGHT = 25
ITEM_GAP = 5
SECTION_GAP = 15

LINE_HEIGHT = 14
PARTY_BOX_WIDTH = 480
PARTY_BOX_HEIGHT = 85
HEADER_BLOCK_HEIGHT = 95
PARTIES_BLOCK_HEIGHT = 240
FIRST_PAGE_BODY_TOP = MARGIN + HEADER_BLOCK_HEIGHT + PARTIES_BLOCK_HEIGHT
CONTINUATION_TOP = MARGIN + 30
PAGE_STAMP_Y = PAGE_HEIGHT - 30

C_BLACK = (15, 23, 42)
C_GRAY = (100, 116, 139)
C_BOX = (71, 85, 105)

BRANDING = "Generated by BoloNyay Legal Assistant | AI-Powered Legal Document Creation"
DISCLAIMER = "This document is AI-generated and should be reviewed by a qualified legal professional before filing."
COURT_TITLE = "IN THE HON'BLE COURT OF COMPETENT JURISDICTION"
COURT_LOCATION = "AT [CITY NAME]"

DEFAULT_SUMMARY = ("This matter pertains to the case as described above. "
                   "The petitioner seeks appropriate relief from this Hon'ble Court.")
DEFAULT_LEGAL_ISSUES = [
    "Whether the act complained of constitutes a violation of the petitioner's rights.",
    "Whether the petitioner is entitled to the relief sought.",
    "Whether there has been any procedural irregularity.",
    "Whether the matter falls within the jurisdiction of this Hon'ble Court.",
]
DEFAULT_GROUNDS = [
    "The petitioner submits that all material facts have been disclosed.",
    "The case involves issues of law and fact that require judicial determination.",
    "The petitioner has no adequate alternative remedy.",
    "The matter is urgent and requires immediate attention of this Hon'ble Court.",
]
DEFAULT_RELIEFS = [
    "Grant the relief as prayed for in the petition",
    "Pass appropriate orders and directions as this Hon'ble Court deems fit",
    "Award costs of this petition to the petitioner",
    "Pass such other and further orders as this Hon'ble Court may deem fit and proper in the circumstances of the case",
]
PRAYER_INTRO = ("In the premises aforesaid, the Petitioner most respectfully prays that this Hon'ble Court "
                "may graciously be pleased to:")
DECLARATION = ("AND FOR SUCH OTHER AND FURTHER RELIEF AS THIS HON'BLE COURT MAY DEEM FIT AND PROPER "
               "IN THE CIRCUMSTANCES OF THE CASE.")

ROMAN_NUMERALS = ["i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x",
                  "xi", "xii", "xiii", "xiv", "xv", "xvi", "xvii", "xviii", "xix", "xx"]

LATIN1_REPLACEMENTS = {
    "‘": "'", "’": "'", "“": '"', "”": '"',
    "–": "-", "—": "-", "•": "-", "…": "...", "₹": "Rs.",
}


# --- Templates ---

class DocumentTemplate(str, enum.Enum):
    CIVIL = "civil"
    CRIMINAL = "criminal"
    FAMILY = "family"
    CONSUMER = "consumer"
    LABOR = "labor"
    WRIT = "writ"

    @property
    def display_name(self) -> str:
        return TEMPLATE_DISPLAY_NAMES[self]

    @property
    def header_title(self) -> str:
        return TEMPLATE_HEADER_TITLES[self]


TEMPLATE_KEYWORDS: List[Tuple[DocumentTemplate, Tuple[str, ...]]] = [
    (DocumentTemplate.CIVIL, ("civil", "property", "contract")),
    (DocumentTemplate.CRIMINAL, ("criminal", "fir", "fraud")),
    (DocumentTemplate.FAMILY, ("family", "divorce", "custody")),
    (DocumentTemplate.CONSUMER, ("consumer", "service", "product")),
    (DocumentTemplate.LABOR, ("labor", "employment", "salary")),
    (DocumentTemplate.WRIT, ("writ", "constitutional", "government")),
]

TEMPLATE_DISPLAY_NAMES = {
    DocumentTemplate.CIVIL: "Civil Case",
    DocumentTemplate.CRIMINAL: "Criminal Complaint",
    DocumentTemplate.FAMILY: "Family Petition",
    DocumentTemplate.CONSUMER: "Consumer Complaint",
    DocumentTemplate.LABOR: "Labor Dispute",
    DocumentTemplate.WRIT: "Writ Petition",
}

TEMPLATE_HEADER_TITLES = {
    DocumentTemplate.CIVIL: "CIVIL SUIT",
    DocumentTemplate.CRIMINAL: "CRIMINAL COMPLAINT",
    DocumentTemplate.FAMILY: "FAMILY PETITION",
    DocumentTemplate.CONSUMER: "CONSUMER COMPLAINT",
    DocumentTemplate.LABOR: "LABOR PETITION",
    DocumentTemplate.WRIT: "WRIT PETITION",
}

PARTY_CASE_TYPES = ["CRIMINAL", "FAMILY", "CONSUMER", "LABOR", "WRIT"]


def select_template(case_type: Optional[str]) -> DocumentTemplate:
    lowered = (case_type or "").lower()
    for template, keywords in TEMPLATE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return template
    return DocumentTemplate.CIVIL


def party_case_type(header_title: str) -> str:
    upper = header_title.upper()
    return next((kind for kind in PARTY_CASE_TYPES if kind in upper), "CIVIL")


def party_labels(case_kind: str) -> Tuple[str, str]:
    if case_kind == "CRIMINAL":
        return "COMPLAINANT", "ACCUSED"
    return "PETITIONER", "RESPONDENT"


# --- Content sections ---

class SectionStyle(str, enum.Enum):
    HEADING = "heading"
    PARAGRAPHS = "paragraphs"
    LETTERED = "lettered"
    ROMAN = "roman"
    PRAYER = "prayer"
    DECLARATION = "declaration"


class ContentSection(BaseModel):
    title: Optional[str] = None
    items: List[str]
    style: SectionStyle = SectionStyle.PARAGRAPHS


def _or_default(items: List[str], defaults: List[str]) -> List[str]:
    cleaned = [item for item in items if item and item.strip()]
    return cleaned if cleaned else list(defaults)


def incident_sentence(content: StructuredDocumentContent) -> str:
    incident = content.fields.incident
    return (f"On {incident.date} at {incident.time}, at {incident.place}, "
            f"the following incident occurred: {incident.description}")


def build_sections(content: StructuredDocumentContent, first_party_label: str = "PETITIONER") -> List[ContentSection]:
    """Ordered logical sections; empty lists fall back to boilerplate."""
    summary = content.case_summary.strip() or DEFAULT_SUMMARY
    return [
        ContentSection(items=[f"THE HUMBLE PETITION OF THE {first_party_label} ABOVE NAMED", "MOST RESPECTFULLY SHOWETH:"],
                       style=SectionStyle.HEADING),
        ContentSection(title="1. FACTS OF THE CASE:", items=[incident_sentence(content), summary],
                       style=SectionStyle.PARAGRAPHS),
        ContentSection(title="2. CAUSE OF ACTION:", items=_or_default(content.legal_issues, DEFAULT_LEGAL_ISSUES),
                       style=SectionStyle.LETTERED),
        ContentSection(title="3. GROUNDS AND SUBMISSIONS:", items=_or_default(content.key_facts, DEFAULT_GROUNDS),
                       style=SectionStyle.ROMAN),
        ContentSection(title="4. PRAYER/RELIEF SOUGHT:",
                       items=[PRAYER_INTRO] + _or_default(content.relief_sought, DEFAULT_RELIEFS),
                       style=SectionStyle.PRAYER),
        ContentSection(items=[DECLARATION], style=SectionStyle.DECLARATION),
    ]


def estimate_lines(text: str) -> int:
    return max(1, -(-len(text) // CHARS_PER_LINE))


def block_height(line_count: int, with_title: bool = False) -> float:
    return (TITLE_HEIGHT if with_title else 0) + line_count * LINE_HEIGHT + ITEM_GAP


# --- Planning pass ---

class PlannedBlock(BaseModel):
    """A run of wrapped lines from one item, placed at a fixed y on its page."""
    section_index: int
    position: int
    first_line: int = 0
    line_count: int
    with_title: bool = False
    y: float

    @property
    def bottom(self) -> float:
        return self.y + block_height(self.line_count, self.with_title)


class PagePlan(BaseModel):
    number: int
    continuation: bool = False
    blocks: List[PlannedBlock] = []
    footer_y: Optional[float] = None


def plan_pages(sections: List[ContentSection], line_counts: Optional[List[List[int]]] = None) -> List[PagePlan]:
    """
    Assign every item to a page. An item moves to a fresh page when it would cross
    MAX_CONTENT_Y; an item taller than a whole page body is split at line boundaries.
    A section title always travels with the first lines of its first item.
    """
    if line_counts is None:
        line_counts = [[estimate_lines(item) for item in section.items] for section in sections]

    pages = [PagePlan(number=1)]
    y = FIRST_PAGE_BODY_TOP

    def new_page() -> float:
        pages.append(PagePlan(number=len(pages) + 1, continuation=True))
        return CONTINUATION_TOP

    for index, section in enumerate(sections):
        for position, total_lines in enumerate(line_counts[index]):
            with_title = bool(section.title) and position == 0
            first_line = 0
            while first_line < total_lines:
                remaining = total_lines - first_line
                needed = block_height(remaining, with_title)
                if y + needed > MAX_CONTENT_Y:
                    fits_fresh_page = CONTINUATION_TOP + needed <= MAX_CONTENT_Y
                    room = int((MAX_CONTENT_Y - y - block_height(0, with_title)) // LINE_HEIGHT)
                    if y > CONTINUATION_TOP and (fits_fresh_page or room < 1):
                        y = new_page()
                        continue
                    take = max(1, min(room, remaining))
                else:
                    take = remaining
                block = PlannedBlock(section_index=index, position=position, first_line=first_line,
                                     line_count=take, with_title=with_title, y=y)
                pages[-1].blocks.append(block)
                y = block.bottom
                first_line += take
                with_title = False
                if first_line < total_lines:
                    y = new_page()
        y += SECTION_GAP

    if y + FOOTER_HEIGHT > PAGE_HEIGHT - MARGIN:
        y = new_page()
    pages[-1].footer_y = y
    return pages


# --- Drawing pass ---

class RenderedDocument(BaseModel):
    pdf_bytes: bytes
    page_count: int
    template: DocumentTemplate
    file_name: str


def document_file_name(case_number: str, template: DocumentTemplate, when: datetime) -> str:
    template_part = template.display_name.replace(" ", "_")
    return f"BoloNyay_{case_number}_{template_part}_{when.strftime('%Y-%m-%d_%H-%M-%S')}.pdf"


class DocumentComposer:
    def __init__(self, unicode_font_path: Optional[str] = None):
        self.unicode_font_path = unicode_font_path
        self.font_family = "Helvetica"

    def _new_pdf(self) -> FPDF:
        pdf = FPDF(unit="pt", format=(PAGE_WIDTH, PAGE_HEIGHT))
        pdf.set_margins(MARGIN, MARGIN, MARGIN)
        pdf.set_auto_page_break(False)
        pdf.set_creator("BoloNyay Legal Assistant")
        if self.unicode_font_path:
            for style in ("", "B", "I"):
                pdf.add_font("BoloNyayUnicode", style, self.unicode_font_path)
            self.font_family = "BoloNyayUnicode"
        return pdf

    def _text(self, text: str) -> str:
        if self.unicode_font_path:
            return text
        for original, replacement in LATIN1_REPLACEMENTS.items():
            text = text.replace(original, replacement)
        return text.encode("latin-1", "replace").decode("latin-1")

    def _font(self, pdf: FPDF, style: str, size: float, color=C_BLACK) -> None:
        pdf.set_font(self.font_family, style, size)
        pdf.set_text_color(*color)

    def _fit(self, pdf: FPDF, text: str, width: float) -> str:
        text = self._text(text)
        if pdf.get_string_width(text) <= width:
            return text
        while text and pdf.get_string_width(text + "...") > width:
            text = text[:-1]
        return text + "..."

    def _centered(self, pdf: FPDF, y: float, height: float, text: str) -> None:
        pdf.set_xy(MARGIN, y)
        pdf.cell(CONTENT_WIDTH, height, self._text(text), align="C")

    def _draw_header(self, pdf: FPDF, header_title: str, case_number: str, year: int) -> None:
        self._font(pdf, "B", 14)
        self._centered(pdf, MARGIN, 18, COURT_TITLE)
        self._font(pdf, "", 11)
        self._centered(pdf, MARGIN + 22, 14, COURT_LOCATION)
        self._font(pdf, "B", 12)
        self._centered(pdf, MARGIN + 42, 16, f"{header_title} NO. _____ OF {year}")
        self._font(pdf, "", 10)
        self._centered(pdf, MARGIN + 62, 14, f"CASE NO: {case_number} OF {year}")
        pdf.set_draw_color(*C_BOX)
        pdf.line(MARGIN, MARGIN + 82, PAGE_WIDTH - MARGIN, MARGIN + 82)

    def _draw_party_box(self, pdf: FPDF, y: float, party: PartyInfo, label: str) -> None:
        x = (PAGE_WIDTH - PARTY_BOX_WIDTH) / 2
        inner = PARTY_BOX_WIDTH - 20
        pdf.set_draw_color(*C_BOX)
        pdf.rect(x, y, PARTY_BOX_WIDTH, PARTY_BOX_HEIGHT)
        self._font(pdf, "B", 11)
        pdf.set_xy(x + 10, y + 8)
        pdf.cell(inner, 14, self._fit(pdf, party.name, inner))
        self._font(pdf, "", 10)
        pdf.set_xy(x + 10, y + 26)
        pdf.cell(inner, 12, self._fit(pdf, f"Age: {party.age}, Occupation: {party.occupation}", inner))
        pdf.set_xy(x + 10, y + 42)
        pdf.cell(inner, 12, self._fit(pdf, f"Address: {party.address}", inner))
        self._font(pdf, "B", 10)
        pdf.set_xy(x + 10, y + 62)
        pdf.cell(inner, 14, f"... {label}", align="R")

    def _draw_parties(self, pdf: FPDF, content: StructuredDocumentContent, labels: Tuple[str, str]) -> None:
        top = MARGIN + HEADER_BLOCK_HEIGHT
        self._font(pdf, "B", 11)
        pdf.set_xy(MARGIN, top)
        pdf.cell(CONTENT_WIDTH, 14, "BETWEEN:")
        self._draw_party_box(pdf, top + 22, content.fields.petitioner, labels[0])
        self._font(pdf, "B", 11)
        self._centered(pdf, top + 22 + PARTY_BOX_HEIGHT + 8, 14, "AND")
        self._draw_party_box(pdf, top + 22 + PARTY_BOX_HEIGHT + 30, content.fields.respondent, labels[1])

    def _draw_continuation_header(self, pdf: FPDF, header_title: str, case_number: str) -> None:
        self._font(pdf, "B", 10, C_GRAY)
        self._centered(pdf, MARGIN, 14, f"{header_title} - CASE NO: {case_number} (Continued)")
        pdf.set_draw_color(*C_BOX)
        pdf.line(MARGIN, MARGIN + 20, PAGE_WIDTH - MARGIN, MARGIN + 20)

    def _item_text(self, section: ContentSection, position: int) -> Tuple[str, float]:
        item = section.items[position]
        if section.style == SectionStyle.LETTERED:
            return f"{chr(ord('a') + position % 26)}. {item}", 15
        if section.style == SectionStyle.ROMAN:
            numeral = ROMAN_NUMERALS[position] if position < len(ROMAN_NUMERALS) else str(position + 1)
            return f"{numeral}. {item}", 15
        if section.style == SectionStyle.PRAYER and position > 0:
            return f"({position}) {item};", 15
        return item, 0

    def _item_font(self, pdf: FPDF, section: ContentSection) -> str:
        if section.style in (SectionStyle.HEADING, SectionStyle.DECLARATION):
            self._font(pdf, "B", 11)
            return "C" if section.style == SectionStyle.HEADING else "J"
        self._font(pdf, "", 11)
        return "J"

    def wrap_items(self, pdf: FPDF, sections: List[ContentSection]) -> List[List[List[str]]]:
        """Wrapped lines of every item, per section, as the drawing pass will lay them out."""
        wrapped = []
        for section in sections:
            section_lines = []
            for position in range(len(section.items)):
                text, indent = self._item_text(section, position)
                align = self._item_font(pdf, section)
                lines = pdf.multi_cell(CONTENT_WIDTH - indent, LINE_HEIGHT, self._text(text), align=align,
                                       dry_run=True, output="LINES")
                section_lines.append(lines or [""])
            wrapped.append(section_lines)
        return wrapped

    def _draw_block(self, pdf: FPDF, section: ContentSection, block: PlannedBlock, lines: List[str]) -> None:
        y = block.y
        if block.with_title:
            self._font(pdf, "B", 12)
            pdf.set_xy(MARGIN, y)
            pdf.cell(CONTENT_WIDTH, 16, self._text(section.title))
            y += TITLE_HEIGHT

        text, indent = self._item_text(section, block.position)
        align = self._item_font(pdf, section)
        if block.first_line == 0 and block.line_count == len(lines):
            body = self._text(text)
        else:
            body = "\n".join(lines[block.first_line:block.first_line + block.line_count])
            align = "L"
        pdf.set_xy(MARGIN + indent, y)
        pdf.multi_cell(CONTENT_WIDTH - indent, LINE_HEIGHT, body, align=align,
                       new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def _draw_footer(self, pdf: FPDF, y: float, petitioner_name: str, first_label: str, when: datetime) -> None:
        self._font(pdf, "B", 11)
        pdf.set_xy(MARGIN, y)
        pdf.cell(CONTENT_WIDTH, 14, "VERIFICATION:")
        self._font(pdf, "", 10)
        pdf.set_xy(MARGIN, y + 18)
        verification = (f"I, {petitioner_name}, the Petitioner above named, do hereby verify that the contents of the "
                        "above petition are true and correct to the best of my knowledge and belief and that nothing "
                        "material has been concealed therein.")
        pdf.multi_cell(CONTENT_WIDTH, 12, self._text(verification), align="J", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        pdf.set_xy(MARGIN, y + 68)
        pdf.cell(CONTENT_WIDTH / 2, 14, "Place: ____________________")
        pdf.cell(CONTENT_WIDTH / 2, 14, f"Date: {when.strftime('%d/%m/%Y')}", align="R")

        box_width, box_height = 180, 45
        box_x = PAGE_WIDTH - MARGIN - box_width
        pdf.set_draw_color(*C_BOX)
        pdf.rect(box_x, y + 90, box_width, box_height)
        self._font(pdf, "B", 9)
        pdf.set_xy(box_x, y + 138)
        pdf.cell(box_width, 12, f"SIGNATURE OF {first_label}", align="C")

        self._font(pdf, "I", 8, C_GRAY)
        self._centered(pdf, y + 162, 10, BRANDING)
        self._centered(pdf, y + 174, 10, DISCLAIMER)

    def _stamp_page_number(self, pdf: FPDF, number: int, total: int) -> None:
        self._font(pdf, "", 9, C_GRAY)
        self._centered(pdf, PAGE_STAMP_Y, 12, f"Page {number} of {total}")

    def render(self, case_record: CaseRecord, content: StructuredDocumentContent,
               when: Optional[datetime] = None) -> RenderedDocument:
        try:
            return self._render(case_record, content, when or datetime.now())
        except (OSError, FPDFException) as e:
            logger.error(f"Rendering failed for case {case_record.case_number}: {e}")
            raise DocumentRenderError(f"Could not render the document for case {case_record.case_number}: {e}") from e

    def _render(self, case_record: CaseRecord, content: StructuredDocumentContent, when: datetime) -> RenderedDocument:
        template = select_template(case_record.case_type)
        header_title = template.header_title
        labels = party_labels(party_case_type(header_title))

        sections = build_sections(content, labels[0])
        pdf = self._new_pdf()
        pdf.add_page()
        wrapped = self.wrap_items(pdf, sections)
        plan = plan_pages(sections, [[len(lines) for lines in section_lines] for section_lines in wrapped])
        total_pages = len(plan)
        logger.info(f"Rendering {template.value} document for case {case_record.case_number}: "
                    f"{len(sections)} sections over {total_pages} page(s).")

        for page in plan:
            if page.number > 1:
                pdf.add_page()
            if page.continuation:
                self._draw_continuation_header(pdf, header_title, case_record.case_number)
            else:
                self._draw_header(pdf, header_title, case_record.case_number, when.year)
                self._draw_parties(pdf, content, labels)
            for block in page.blocks:
                self._draw_block(pdf, sections[block.section_index], block,
                                 wrapped[block.section_index][block.position])
            if page.footer_y is not None:
                self._draw_footer(pdf, page.footer_y, content.fields.petitioner.name, labels[0], when)
            self._stamp_page_number(pdf, page.number, total_pages)

        return RenderedDocument(
            pdf_bytes=bytes(pdf.output()),
            page_count=total_pages,
            template=template,
            file_name=document_file_name(case_record.case_number, template, when),
        )
