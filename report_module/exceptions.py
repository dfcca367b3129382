"""Report stage errors"""


class ReportOutlineError(Exception):
    """Outline could not be generated or parsed; the report stage cannot continue."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Report outline failed: {reason}")
