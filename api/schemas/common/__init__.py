"""Common schemas"""

from .config import BASE_MODEL_CONFIG
from .errors import ErrorResponse
from .health import HealthCheckResponse

__all__ = [
    "BASE_MODEL_CONFIG",
    "ErrorResponse",
    "HealthCheckResponse",
]
