# app/api/routers/reports.py
import logging
import os
import shutil
from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from app.core.config import AppSettings
from app.api.deps import get_current_settings, get_read_api_key, get_write_api_key, get_report_store
from app.models_api import reports as api_models
from app.services.report_store import ReportStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[api_models.SavedReport])
async def list_reports(
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    return report_store.list()


@router.get("/search", response_model=List[api_models.SavedReport])
async def search_reports(
    q: str = "",
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    return report_store.search(q)


@router.get("/statistics", response_model=api_models.ReportStatisticsResponse)
async def get_report_statistics(
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    return report_store.statistics()


@router.post("/cleanup", response_model=api_models.ReportCleanupResponse)
async def cleanup_reports(
    payload: api_models.ReportCleanupRequest,
    settings: AppSettings = Depends(get_current_settings),
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_write_api_key)
):
    days = payload.older_than_days or settings.REPORT_RETENTION_DAYS
    removed = report_store.cleanup_older_than(days)
    return api_models.ReportCleanupResponse(
        removed_reports=removed,
        remaining_reports=len(report_store.list()),
        remaining_size_bytes=report_store.total_storage_bytes(),
    )


@router.get("/export")
async def export_reports(
    settings: AppSettings = Depends(get_current_settings),
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    """Every stored report bundled into one zip archive."""
    export_name = f"BoloNyay_Reports_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}"
    export_dir = os.path.join(settings.DATA_LOCATION, "exports", export_name)
    try:
        exported = report_store.export_all(export_dir)
        if not exported:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No reports to export.")
        archive_path = shutil.make_archive(export_dir, "zip", export_dir)
    except OSError as e:
        logger.error(f"Failed to export reports to {export_dir}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to export reports.")
    finally:
        shutil.rmtree(export_dir, ignore_errors=True)
    logger.info(f"Serving export archive {archive_path} with {len(exported)} report(s).")
    return FileResponse(archive_path, media_type="application/zip", filename=os.path.basename(archive_path),
                        background=BackgroundTask(os.remove, archive_path))


@router.get("/{report_id}", response_model=api_models.SavedReport)
async def get_report(
    report_id: str,
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    report = report_store.get(report_id)
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found.")
    return report


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_read_api_key)
):
    report = report_store.mark_accessed(report_id) if report_store.get(report_id) else None
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found.")
    logger.info(f"Serving report {report_id} ({report.file_name}).")
    return FileResponse(report.file_path, media_type="application/pdf", filename=report.file_name)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: str,
    report_store: ReportStore = Depends(get_report_store),
    api_key: str = Depends(get_write_api_key)
):
    if not report_store.delete(report_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found.")
    return None
