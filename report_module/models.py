"""Report outline and section models"""

import json
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

PLACEHOLDER = "*Error generating content*"
REPORT_TITLE = "# Meeting Report"


class OutlineSubsection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str


class OutlineSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    subsections: list[OutlineSubsection]


class ReportOutline(BaseModel):
    """Ordered report headings, generated once.

    Also used as the response schema of the outline call, so fields carry no
    defaults.
    """

    model_config = ConfigDict(frozen=True)

    sections: list[OutlineSection]

    def entries(self) -> list[tuple[str, str]]:
        return [(s.title, s.description) for s in self.sections]


class SectionStatus(StrEnum):
    PENDING = "pending"
    OK = "ok"
    ERROR = "error"


class ReportSection(BaseModel):
    index: int
    title: str
    body: str = PLACEHOLDER
    status: SectionStatus = SectionStatus.PENDING

    def render(self) -> str:
        return f"## {self.title}\n\n{self.body.strip()}"


class ReportResult(BaseModel):
    outline: ReportOutline
    sections: list[ReportSection]
    document: str


def render_report(sections: list[ReportSection]) -> str:
    """Document in outline order, whatever order the sections finished in."""
    ordered = sorted(sections, key=lambda s: s.index)
    return "\n\n".join([REPORT_TITLE, *(s.render() for s in ordered)]) + "\n"


def is_valid_section_content(content: str) -> bool:
    """Reject JSON bodies, near-empty bodies and bodies made only of headings."""
    stripped = content.strip()
    if stripped.startswith(("{", "[")):
        try:
            json.loads(stripped)
            return False
        except ValueError:
            pass

    if len(stripped) < 10:
        return False

    return not all(line.startswith("#") or not line.strip() for line in stripped.split("\n"))


def parse_outline(text: str) -> ReportOutline:
    """Parse the outline call's JSON; raises ValueError when unusable."""
    outline = ReportOutline.model_validate_json(text)
    if not outline.sections:
        raise ValueError("outline has no sections")
    return outline
