# app/services/report_store.py
import json
import os
import shutil
import uuid
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any

import fitz  # PyMuPDF
from pydantic import ValidationError

from app.core.errors import ReportStorageError
from app.models_api.cases import CaseRecord
from app.models_api.reports import ReportMetadata, SavedReport
from app.utils.common import sanitize_filename

logger = logging.getLogger(__name__)

INDEX_FILENAME = "reports_index.json"
SUMMARY_LIMIT = 200

CASE_CATEGORIES = [
    ("criminal", "Criminal Law"),
    ("civil", "Civil Law"),
    ("family", "Family Law"),
    ("consumer", "Consumer Protection"),
    ("labor", "Labor Law"),
]


def count_pdf_pages(pdf_bytes: bytes) -> int:
    with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
        return document.page_count


def report_title(template: str, case_number: str, when: datetime) -> str:
    medium_date = f"{when.strftime('%b')} {when.day}, {when.year}"
    return f"{template} Report - {case_number} - {medium_date}"


def report_tags(case_record: CaseRecord) -> List[str]:
    tags = [case_record.case_type, case_record.language]
    lowered = case_record.case_type.lower()
    category = next((label for keyword, label in CASE_CATEGORIES if keyword in lowered), None)
    if category:
        tags.append(category)
    tags.append(case_record.status_display_name)
    seen = set()
    unique_tags = []
    for tag in tags:
        if tag and tag not in seen:
            seen.add(tag)
            unique_tags.append(tag)
    return unique_tags


def summarize(text: str) -> str:
    if len(text) >= SUMMARY_LIMIT:
        return text[:SUMMARY_LIMIT] + "..."
    return text


class ReportStore:
    """Generated documents on disk plus a JSON index of their metadata.

    The index is self-healing: entries whose file has disappeared are dropped on
    load and the index is rewritten.
    """

    def __init__(self, reports_dir: str):
        self.reports_dir = os.path.abspath(reports_dir)
        self.index_path = os.path.join(self.reports_dir, INDEX_FILENAME)
        os.makedirs(self.reports_dir, exist_ok=True)

    # --- Index I/O ---

    def _read_index(self) -> List[SavedReport]:
        if not os.path.exists(self.index_path):
            return []
        try:
            with open(self.index_path, 'r') as f:
                raw_entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read or parse {self.index_path}: {e}. Treating index as empty.")
            return []

        reports = []
        for entry in raw_entries if isinstance(raw_entries, list) else []:
            try:
                reports.append(SavedReport.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed report index entry: {e}")
        return reports

    def _write_index(self, reports: List[SavedReport]) -> None:
        tmp_path = self.index_path + ".tmp"
        with open(tmp_path, 'w') as f:
            json.dump([report.model_dump(mode="json") for report in reports], f, indent=4)
        os.replace(tmp_path, self.index_path)

    def _load(self) -> List[SavedReport]:
        reports = self._read_index()
        existing = [report for report in reports if os.path.exists(report.file_path)]
        if len(existing) != len(reports):
            logger.warning(f"Dropping {len(reports) - len(existing)} report(s) whose files are missing. Rewriting index.")
            self._write_index(existing)
        return sorted(existing, key=lambda report: report.created_at, reverse=True)

    # --- Operations ---

    def save(self, pdf_bytes: bytes, file_name: str, case_record: CaseRecord, template: str,
             page_count: Optional[int] = None, when: Optional[datetime] = None) -> SavedReport:
        when = when or datetime.now(timezone.utc)
        report_id = str(uuid.uuid4())
        stored_name = f"{report_id}_{sanitize_filename(file_name, default_name='report.pdf')}"
        file_path = os.path.join(self.reports_dir, stored_name)

        if page_count is None:
            page_count = count_pdf_pages(pdf_bytes)

        try:
            with open(file_path, 'wb') as f:
                f.write(pdf_bytes)
        except OSError as e:
            raise ReportStorageError(f"Could not write report file {stored_name}: {e}") from e

        report = SavedReport(
            id=report_id,
            case_id=case_record.id,
            case_number=case_record.case_number,
            case_type=case_record.case_type,
            report_title=report_title(template, case_record.case_number, when),
            file_name=stored_name,
            file_path=file_path,
            file_size=len(pdf_bytes),
            created_at=when,
            metadata=ReportMetadata(
                template=template,
                language=case_record.language,
                page_count=page_count,
                is_official_document=True,
                tags=report_tags(case_record),
                summary=summarize(case_record.conversation_summary),
            ),
        )
        reports = self._read_index()
        reports.append(report)
        try:
            self._write_index(reports)
        except OSError as e:
            os.remove(file_path)
            raise ReportStorageError(f"Could not update the report index for {stored_name}: {e}") from e
        logger.info(f"Saved report {report.id} for case {report.case_number} ({report.file_size} bytes, {page_count} page(s)).")
        return report

    def list(self) -> List[SavedReport]:
        return self._load()

    def get(self, report_id: str) -> Optional[SavedReport]:
        return next((report for report in self._load() if report.id == report_id), None)

    def delete(self, report_id: str) -> bool:
        reports = self._read_index()
        target = next((report for report in reports if report.id == report_id), None)
        if target is None:
            return False
        if os.path.exists(target.file_path):
            os.remove(target.file_path)
        self._write_index([report for report in reports if report.id != report_id])
        logger.info(f"Deleted report {report_id} ({target.file_name}).")
        return True

    def search(self, query: str) -> List[SavedReport]:
        needle = (query or "").strip().lower()
        reports = self._load()
        if not needle:
            return reports
        return [
            report for report in reports
            if needle in report.report_title.lower()
            or needle in report.case_number.lower()
            or needle in report.case_type.lower()
            or any(needle in tag.lower() for tag in report.metadata.tags)
        ]

    def mark_accessed(self, report_id: str) -> Optional[SavedReport]:
        reports = self._read_index()
        for position, report in enumerate(reports):
            if report.id == report_id:
                updated = report.model_copy(update={
                    "last_accessed_at": datetime.now(timezone.utc),
                    "is_downloaded": True,
                    "download_progress": 1.0,
                })
                reports[position] = updated
                self._write_index(reports)
                return updated
        return None

    def reports_for_case(self, case_id: str) -> List[SavedReport]:
        return [report for report in self._load() if report.case_id == case_id]

    def total_storage_bytes(self) -> int:
        return sum(report.file_size for report in self._load())

    def cleanup_older_than(self, days: int = 90, now: Optional[datetime] = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        stale = [report for report in self._load() if report.created_at < cutoff]
        for report in stale:
            self.delete(report.id)
        if stale:
            logger.info(f"Removed {len(stale)} report(s) older than {days} days.")
        return len(stale)

    def statistics(self) -> Dict[str, Any]:
        reports = self._load()
        total_size = sum(report.file_size for report in reports)
        return {
            "total_reports": len(reports),
            "total_size_bytes": total_size,
            "average_size_bytes": total_size / len(reports) if reports else 0.0,
            "by_case_type": dict(Counter(report.case_type for report in reports)),
            "by_language": dict(Counter(report.metadata.language for report in reports)),
            "by_template": dict(Counter(report.metadata.template for report in reports)),
        }

    def export_all(self, target_dir: str) -> List[str]:
        os.makedirs(target_dir, exist_ok=True)
        exported = []
        for report in self._load():
            destination = os.path.join(target_dir, report.file_name)
            shutil.copy2(report.file_path, destination)
            exported.append(destination)
        logger.info(f"Exported {len(exported)} report(s) to {target_dir}.")
        return exported
