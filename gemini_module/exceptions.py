"""Generation adapter errors"""


class GeminiError(Exception):
    """Base class for generation adapter errors."""


class GenerationError(GeminiError):
    """Generation call failed after all attempts."""

    def __init__(self, model: str, attempts: int, reason: str):
        self.model = model
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Gemini API error ({model}, {attempts} attempt(s)): {reason}")


class FileProcessingError(GeminiError):
    """Uploaded attachment did not become ACTIVE."""

    def __init__(self, path: str, state: str):
        self.path = path
        self.state = state
        super().__init__(f"File processing failed: {path} (state={state})")
