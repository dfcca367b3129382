"""Custom API exceptions"""

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base exception for API HTTP errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BadRequestError(APIException):
    """Malformed or incomplete request (HTTP 400)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class NotFoundError(APIException):
    """Resource not found (HTTP 404)."""

    def __init__(self, resource: str, resource_id: int | str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with id {resource_id} not found",
        )


class APIValidationError(APIException):
    """Validation error (HTTP 422). Avoids naming clash with Pydantic's ValidationError."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class ConflictError(APIException):
    """Data conflict (HTTP 409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class PayloadTooLargeError(APIException):
    """Upload or chunk over its size ceiling (HTTP 413)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=detail,
        )
