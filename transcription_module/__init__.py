"""Transcription stage"""

from .service import (
    TranscriptChunk,
    TranscriptionService,
    build_transcript_document,
    clean_transcript,
    error_marker,
    join_chunks,
    last_lines,
)

__all__ = [
    "TranscriptChunk",
    "TranscriptionService",
    "build_transcript_document",
    "clean_transcript",
    "error_marker",
    "join_chunks",
    "last_lines",
]
