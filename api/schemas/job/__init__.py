"""Job submission, upload and status schemas"""

from .request import InitUploadRequest, ProcessingOptionsRequest, ProcessUploadedRequest
from .response import ChunkReceiptResponse, InitUploadResponse, JobSubmittedResponse

__all__ = [
    "ChunkReceiptResponse",
    "InitUploadRequest",
    "InitUploadResponse",
    "JobSubmittedResponse",
    "ProcessUploadedRequest",
    "ProcessingOptionsRequest",
]
