"""Upload assembly errors"""


class UploadError(Exception):
    """Base class for upload errors."""


class UploadTooLargeError(UploadError):
    """Declared file or delivered part exceeds its ceiling."""

    def __init__(self, what: str, size: int, limit: int):
        self.what = what
        self.size = size
        self.limit = limit
        super().__init__(f"{what} too large: {size} bytes (limit {limit} bytes)")


class InvalidPartError(UploadError):
    """Part index or part count does not match the session."""


class UploadSessionNotFoundError(UploadError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Upload session not found: {job_id}")


class UploadIncompleteError(UploadError):
    def __init__(self, job_id: str, received: int, expected: int):
        self.job_id = job_id
        self.received = received
        self.expected = expected
        super().__init__(f"Upload incomplete for {job_id}: {received}/{expected} parts received")


class UnsupportedSourceError(UploadError):
    """Neither the extension nor the MIME type is accepted."""

    def __init__(self, filename: str, mime_type: str | None):
        self.filename = filename
        self.mime_type = mime_type
        super().__init__(f"Unsupported file type: {filename} ({mime_type or 'unknown MIME type'})")


class UploadAlreadyStartedError(UploadError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Processing already started for {job_id}")
