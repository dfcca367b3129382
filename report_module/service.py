"""Spreadfill report generation: one outline call, then every section filled concurrently"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from gemini_module.prompts import (
    REPORT_PLAIN_TEXT_SUFFIX,
    build_report_headings_prompt,
    build_report_section_prompt,
)
from gemini_module.service import GeminiService
from logger import format_details, get_logger

from .exceptions import ReportOutlineError
from .models import (
    PLACEHOLDER,
    OutlineSection,
    ReportOutline,
    ReportResult,
    ReportSection,
    SectionStatus,
    is_valid_section_content,
    parse_outline,
    render_report,
)

logger = get_logger("report")

OUTLINE_TEMPERATURE = 0.2
OUTLINE_ATTEMPTS = 3
SECTION_TEMPERATURE = 0.3
SECTION_ATTEMPTS = 3
PLAIN_TEXT_ATTEMPTS = 2

StepLog = Callable[[dict[str, Any]], Awaitable[None]]


class ReportService:
    """Builds the meeting report from the description and full transcript."""

    def __init__(
        self,
        generator: GeminiService,
        model: str,
        concurrency: int = 8,
        instructions: str | None = None,
    ):
        self.generator = generator
        self.model = model
        self.concurrency = max(1, concurrency)
        self.instructions = instructions

    async def generate_outline(self, description: str, transcript: str) -> ReportOutline:
        """Phase 1. Raises ReportOutlineError on call failure or unusable JSON."""
        prompt = build_report_headings_prompt(description, transcript, self.instructions)
        try:
            text = await self.generator.invoke(
                self.model,
                prompt,
                temperature=OUTLINE_TEMPERATURE,
                response_schema=ReportOutline,
                max_attempts=OUTLINE_ATTEMPTS,
            )
        except Exception as e:
            raise ReportOutlineError(str(e)) from e

        try:
            return parse_outline(text)
        except ValueError as e:
            raise ReportOutlineError(f"unparseable outline: {e}") from e

    async def generate_section(
        self,
        outline: ReportOutline,
        index: int,
        description: str,
        transcript: str,
    ) -> ReportSection:
        """Phase 2 for one entry. Never raises: failures become the placeholder."""
        entry: OutlineSection = outline.sections[index]
        section = ReportSection(index=index, title=entry.title)
        prompt = build_report_section_prompt(
            outline.entries(),
            entry.title,
            entry.description,
            description,
            transcript,
            subsections=[(s.title, s.description) for s in entry.subsections],
            instructions=self.instructions,
        )

        try:
            body = await self.generator.invoke(
                self.model, prompt, temperature=SECTION_TEMPERATURE, max_attempts=SECTION_ATTEMPTS
            )
            if not is_valid_section_content(body):
                logger.warning(f"Report | Invalid content for section '{entry.title}', retrying as plain text")
                body = await self.generator.invoke(
                    self.model,
                    prompt + REPORT_PLAIN_TEXT_SUFFIX,
                    temperature=SECTION_TEMPERATURE,
                    max_attempts=PLAIN_TEXT_ATTEMPTS,
                )
                if not is_valid_section_content(body):
                    raise ValueError("invalid content format")
        except Exception as e:
            logger.warning(f"Report | Failed to generate section '{entry.title}': {e}")
            section.body = PLACEHOLDER
            section.status = SectionStatus.ERROR
            return section

        section.body = body.strip()
        section.status = SectionStatus.OK
        return section

    async def generate(
        self,
        description: str,
        transcript: str,
        on_outline: Callable[[ReportOutline, str], Awaitable[None]] | None = None,
        on_section: Callable[[ReportSection, str], Awaitable[None]] | None = None,
        step_log: StepLog | None = None,
    ) -> ReportResult:
        """Outline, then fill all sections concurrently.

        ``on_outline`` receives the placeholder-seeded document once the outline
        exists; ``on_section`` receives each resolved section and the re-rendered
        document, which always keeps outline order.
        """
        await self._log(step_log, {"step": "initial_prompt"})
        try:
            outline = await self.generate_outline(description, transcript)
        except ReportOutlineError as e:
            await self._log(step_log, {"step": "error", "error": str(e)})
            raise

        await self._log(step_log, {"step": "generate_structure", "data": outline.model_dump()})
        logger.info("Report outline ready | " + format_details(sections=len(outline.sections)))

        sections = [ReportSection(index=i, title=s.title) for i, s in enumerate(outline.sections)]
        if on_outline is not None:
            await on_outline(outline, render_report(sections))

        semaphore = asyncio.Semaphore(self.concurrency)
        update_lock = asyncio.Lock()

        async def fill(index: int) -> None:
            async with semaphore:
                result = await self.generate_section(outline, index, description, transcript)
            async with update_lock:
                sections[index] = result
                await self._log(
                    step_log,
                    {
                        "step": "generate_section",
                        "data": {"section": result.title, "sectionIndex": index, "status": result.status.value},
                    },
                )
                if on_section is not None:
                    await on_section(result, render_report(sections))

        # A failing callback cancels the remaining fills
        try:
            async with asyncio.TaskGroup() as group:
                for i in range(len(sections)):
                    group.create_task(fill(i))
        except ExceptionGroup as errors:
            raise errors.exceptions[0] from None

        failed = sum(1 for s in sections if s.status == SectionStatus.ERROR)
        logger.info("Report complete | " + format_details(sections=len(sections), errors=failed))
        return ReportResult(outline=outline, sections=sections, document=render_report(sections))

    @staticmethod
    async def _log(step_log: StepLog | None, entry: dict[str, Any]) -> None:
        if step_log is not None:
            await step_log(entry)
