"""Error schemas"""

from pydantic import BaseModel

from .config import BASE_MODEL_CONFIG


class ErrorResponse(BaseModel):
    """Unified error body produced by the exception handlers."""

    model_config = BASE_MODEL_CONFIG

    error: str
    detail: str | list[dict] | None = None
