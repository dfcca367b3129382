"""Shared API enums"""

from enum import StrEnum


class ResultKind(StrEnum):
    DESCRIPTION = "description"
    TRANSCRIPTION = "transcription"
    REPORT = "report"


class EventType(StrEnum):
    """Push stream event types besides plain status updates."""

    STATUS = "status"
    DESCRIPTION_CONTENT = "description_content"
    TRANSCRIPTION_CONTENT = "transcription_content"
    REPORT_CONTENT = "report_content"
