"""Admin results router: summary, CSV export and clear of the audit log."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from mailprefs.api.deps import get_audit_store, get_settings_dep
from mailprefs.core.config import Settings
from mailprefs.core.exceptions import StorageError, bad_request, internal_error
from mailprefs.core.security import require_admin
from mailprefs.schemas.schemas import ClearResponse, RecordOut, ResultsResponse
from mailprefs.services.actions import exportable_actions, with_summary_defaults
from mailprefs.services.audit_service import AuditStore
from mailprefs.services.export_service import export_filename, render_csv

logger = logging.getLogger("mailprefs.admin")

router = APIRouter(prefix="/results", tags=["admin"], dependencies=[Depends(require_admin)])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "-"


@router.get("", response_model=ResultsResponse)
def results(
    request: Request,
    store: AuditStore = Depends(get_audit_store),
):
    """Action counts plus every record, newest first."""
    logger.info("Results requested from %s", _client_ip(request))
    try:
        summary = with_summary_defaults(store.summarize())
        records = store.list_all()
    except StorageError as e:
        logger.error("Failed to load results: %s", e.message)
        raise internal_error("Internal Server Error: Failed to retrieve records")

    logger.info("Retrieved %d records for results view", len(records))
    return ResultsResponse(
        summary=summary,
        total=len(records),
        records=[RecordOut(date=r.formatted_date, email=r.email, action=r.action) for r in records],
    )


@router.get("/csv/{action}")
def download_csv(
    action: str,
    request: Request,
    store: AuditStore = Depends(get_audit_store),
    settings: Settings = Depends(get_settings_dep),
):
    """Download the records for one action tag as CSV."""
    tag = action.strip().upper()
    logger.info("CSV download for %s requested from %s", tag, _client_ip(request))
    if tag not in exportable_actions(settings.EXTRA_ACTION_TAGS):
        logger.warning("Rejected CSV download for unknown action %r", action)
        raise bad_request("Invalid action type")

    try:
        records = store.list_by_action(tag)
    except StorageError as e:
        logger.error("Failed to load %s records for CSV: %s", tag, e.message)
        raise internal_error("Internal Server Error: Failed to retrieve records")

    filename = export_filename(tag, settings.DISPLAY_TIMEZONE)
    logger.info("Generated CSV for %s with %d records", tag, len(records))
    return Response(
        content=render_csv(records),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/clear", response_model=ClearResponse)
def clear_records(
    request: Request,
    store: AuditStore = Depends(get_audit_store),
):
    """Delete every audit record. There is no undo."""
    logger.warning("Clear records requested from %s", _client_ip(request))
    try:
        deleted = store.clear()
    except StorageError as e:
        logger.error("Failed to clear records: %s", e.message)
        raise internal_error("Failed to clear records")

    return ClearResponse(message="All records cleared successfully", deleted=deleted)
