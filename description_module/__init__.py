"""Description stage"""

from .exceptions import DescriptionError
from .service import DescriptionArtifact, DescriptionService

__all__ = ["DescriptionArtifact", "DescriptionError", "DescriptionService"]
