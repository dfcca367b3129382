"""Upload assembly: single-shot and chunked transfers into job directories"""

from .assembler import PartReceipt, UploadAssembler
from .exceptions import (
    InvalidPartError,
    UnsupportedSourceError,
    UploadAlreadyStartedError,
    UploadError,
    UploadIncompleteError,
    UploadSessionNotFoundError,
    UploadTooLargeError,
)
from .session import UploadSession, expected_parts
from .stores import InMemorySessionStore, RedisSessionStore, SessionStore

__all__ = [
    "InMemorySessionStore",
    "InvalidPartError",
    "PartReceipt",
    "RedisSessionStore",
    "SessionStore",
    "UnsupportedSourceError",
    "UploadAlreadyStartedError",
    "UploadAssembler",
    "UploadError",
    "UploadIncompleteError",
    "UploadSession",
    "UploadSessionNotFoundError",
    "UploadTooLargeError",
    "expected_parts",
]
