"""Diarized transcription of overlapping audio segments with carried context"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gemini_module.prompts import build_transcription_prompt
from gemini_module.service import GeminiService
from logger import format_details, get_logger
from media_module.segments import MediaSegment

logger = get_logger("transcription")

CONTEXT_LINES = 20
TRANSCRIPTION_TEMPERATURE = 0.2
TRANSCRIPTION_ATTEMPTS = 3

StepLog = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class TranscriptChunk:
    """Result for one audio segment: cleaned text or a recorded failure."""

    index: int
    raw_text: str = ""
    cleaned_text: str = ""
    context: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        """Text used in the transcript: cleaned output or the error marker."""
        return self.cleaned_text if self.ok else error_marker(self.index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "cleaned_text": self.cleaned_text,
            "context": self.context,
            "error": self.error,
        }


def error_marker(index: int) -> str:
    return f"[Transcription error for chunk {index + 1}]"


def clean_transcript(text: str) -> str:
    """Trim and put a blank line before each ``~[Speaker]~`` marker."""
    return text.strip().replace("~[", "\n\n~[")


def last_lines(text: str, count: int = CONTEXT_LINES) -> str:
    """Last ``count`` non-empty lines of ``text``."""
    lines = [line for line in text.split("\n") if line.strip()]
    return "\n".join(lines[-count:])


def join_chunks(chunks: list[TranscriptChunk]) -> str:
    return "\n\n".join(chunk.text.strip() for chunk in sorted(chunks, key=lambda c: c.index))


def build_transcript_document(
    merged_description: str,
    chunks: list[TranscriptChunk],
    audio_description: str | None = None,
    image_description: str | None = None,
) -> str:
    """Full transcript markdown: descriptions first, then the ordered chunks."""
    parts = ["# Meeting Description", merged_description.strip()]
    parts += ["# Audio Analysis", (audio_description or "").strip()]
    if image_description:
        parts += ["# Visual Analysis", image_description.strip()]
    parts.append("# Full Transcription")
    body = join_chunks(chunks)
    if body:
        parts.append(body)
    return "\n\n".join(parts) + "\n"


class TranscriptionService:
    """Transcribes segments strictly in order, one call per segment."""

    def __init__(self, generator: GeminiService, model: str, instructions: str | None = None):
        self.generator = generator
        self.model = model
        self.instructions = instructions

    async def transcribe(
        self,
        segments: list[MediaSegment],
        description: str,
        on_chunk: Callable[[TranscriptChunk, list[TranscriptChunk]], Awaitable[None]] | None = None,
        step_log: StepLog | None = None,
    ) -> list[TranscriptChunk]:
        """Transcribe ``segments`` in index order.

        Each prompt carries the last lines of the last successful chunk. A
        failed chunk is recorded with an error marker and does not change the
        context passed on. ``on_chunk`` receives each finished chunk and the
        ordered list so far.
        """
        ordered = sorted(segments, key=lambda s: s.index)
        total = len(ordered)
        chunks: list[TranscriptChunk] = []
        context = ""

        for position, segment in enumerate(ordered):
            prompt = build_transcription_prompt(
                description,
                position + 1,
                total,
                previous=context,
                instructions=self.instructions,
            )
            chunk = TranscriptChunk(index=position, context=context)

            with logger.contextualize(chunk=f"{position + 1}/{total}"):
                try:
                    raw = await self.generator.invoke(
                        self.model,
                        prompt,
                        [segment.path],
                        temperature=TRANSCRIPTION_TEMPERATURE,
                        max_attempts=TRANSCRIPTION_ATTEMPTS,
                    )
                    chunk.raw_text = raw
                    chunk.cleaned_text = clean_transcript(raw)
                    context = last_lines(chunk.cleaned_text)
                    logger.info(
                        "Chunk transcribed | "
                        + format_details(file=Path(segment.path).name, chars=len(chunk.cleaned_text))
                    )
                except Exception as e:
                    chunk.error = str(e)
                    logger.error(f"Chunk transcription failed | {e}")

            chunks.append(chunk)
            if step_log is not None:
                await step_log(
                    {"chunkIndex": position, "prompt": prompt, "response": chunk.raw_text, "error": chunk.error}
                )
            if on_chunk is not None:
                await on_chunk(chunk, list(chunks))

        failed = sum(1 for c in chunks if not c.ok)
        logger.info("Transcription complete | " + format_details(chunks=total, errors=failed))
        return chunks
