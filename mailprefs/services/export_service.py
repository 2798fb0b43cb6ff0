"""CSV export of audit records."""

import csv
import io
from datetime import datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from mailprefs.services.audit_service import DisplayRecord

CSV_HEADER = ["Date", "Email", "Action"]


def render_csv(records: Iterable[DisplayRecord]) -> str:
    """Header plus one line per record; header only when there are none."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for record in records:
        writer.writerow([record.formatted_date, record.email, record.action])
    return buffer.getvalue()


def export_filename(action: str, tz: str = "Australia/Sydney") -> str:
    """``{action}_records_{YYYY-MM-DD}.csv`` dated in the display timezone."""
    today = datetime.now(ZoneInfo(tz)).strftime("%Y-%m-%d")
    return f"{action.lower()}_records_{today}.csv"
