"""Report stage (Spreadfill)"""

from .exceptions import ReportOutlineError
from .models import (
    PLACEHOLDER,
    OutlineSection,
    OutlineSubsection,
    ReportOutline,
    ReportResult,
    ReportSection,
    SectionStatus,
    is_valid_section_content,
    parse_outline,
    render_report,
)
from .service import ReportService

__all__ = [
    "PLACEHOLDER",
    "OutlineSection",
    "OutlineSubsection",
    "ReportOutline",
    "ReportOutlineError",
    "ReportResult",
    "ReportSection",
    "ReportService",
    "SectionStatus",
    "is_valid_section_content",
    "parse_outline",
    "render_report",
]
