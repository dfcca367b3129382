"""Gemini generation adapter: config, tiers, prompts and the invoke service"""

from .config import GeminiConfig
from .exceptions import FileProcessingError, GeminiError, GenerationError
from .service import GeminiService
from .tiers import TIER_MODELS, Tier, TierModels, get_tier_models

__all__ = [
    "TIER_MODELS",
    "FileProcessingError",
    "GeminiConfig",
    "GeminiError",
    "GeminiService",
    "GenerationError",
    "Tier",
    "TierModels",
    "get_tier_models",
]
