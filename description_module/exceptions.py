"""Description stage errors"""


class DescriptionError(Exception):
    """Description stage could not produce a merged description."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Description failed: {reason}")
