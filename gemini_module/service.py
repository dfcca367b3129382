"""Multimodal generation via the Gemini API (google-genai)"""

import asyncio
import time
from pathlib import Path
from typing import Any

from google import genai
from google.genai import types

from logger import get_logger
from utils.media_types import detect_mime_type

from .config import GeminiConfig
from .exceptions import FileProcessingError, GenerationError

logger = get_logger("gemini")


class GeminiService:
    """Asynchronous wrapper over the google-genai client.

    One ``invoke`` call uploads the attachments, waits until the API has
    processed them, runs a single generation with retries and deletes the
    uploads again whatever the outcome.
    """

    def __init__(self, config: GeminiConfig, client: genai.Client | None = None):
        if client is None and not config.has_api_key:
            raise ValueError("Gemini API key is not configured")
        self.config = config
        self._client = client or genai.Client(api_key=config.api_key)

    async def invoke(
        self,
        model: str,
        prompt: str,
        attachments: list[str] | None = None,
        *,
        temperature: float | None = None,
        response_schema: Any = None,
        max_attempts: int | None = None,
    ) -> str:
        """Generate text for ``prompt`` with ``attachments`` (local file paths) in context.

        Returns the response text. An empty response counts as a failed
        attempt. Raises GenerationError once every attempt failed.
        """
        attempts = max(1, max_attempts or self.config.retry_attempts)
        attachments = attachments or []
        file_names = ", ".join(Path(a).name for a in attachments) or "-"
        generation_config = self.config.to_generation_config(temperature, response_schema)

        uploaded: list[Any] = []
        last_error: Exception | None = None
        try:
            for attempt in range(1, attempts + 1):
                start_time = time.time()
                try:
                    logger.info(f"Gemini | Attempt {attempt}/{attempts} | model={model} | files={file_names}")

                    # Uploads survive between attempts; only missing ones are sent
                    while len(uploaded) < len(attachments):
                        uploaded.append(await self._upload_file(attachments[len(uploaded)]))

                    parts = [types.Part.from_uri(file_uri=f.uri, mime_type=f.mime_type) for f in uploaded]
                    parts.append(types.Part.from_text(text=prompt))

                    response = await self._client.aio.models.generate_content(
                        model=model,
                        contents=[types.Content(role="user", parts=parts)],
                        config=generation_config,
                    )
                    text = (response.text or "").strip()
                    if not text:
                        raise ValueError("empty response")

                    elapsed = time.time() - start_time
                    logger.info(f"Gemini | Success: model={model} | elapsed={elapsed:.1f}s | chars={len(text)}")
                    return text

                except FileProcessingError:
                    raise
                except Exception as exc:
                    last_error = exc
                    elapsed = time.time() - start_time
                    error_info = self._format_error_info(exc)
                    error_msg = f"{exc} | {error_info}" if error_info else str(exc)
                    logger.warning(f"Gemini | Error: attempt={attempt}/{attempts} | elapsed={elapsed:.1f}s | {error_msg}")

                    if attempt < attempts and self.config.retry_delay > 0:
                        logger.info(f"Gemini | Retry in {self.config.retry_delay:.1f}s")
                        await asyncio.sleep(self.config.retry_delay)
        finally:
            await self._delete_files(uploaded)

        raise GenerationError(model, attempts, str(last_error)) from last_error

    async def _upload_file(self, path: str) -> Any:
        """Upload one attachment and wait until it leaves the PROCESSING state."""
        mime_type = detect_mime_type(path)
        uploaded = await self._client.aio.files.upload(
            file=path,
            config=types.UploadFileConfig(mime_type=mime_type, display_name=Path(path).name),
        )

        deadline = time.monotonic() + self.config.file_processing_timeout
        while self._state_name(uploaded) == "PROCESSING":
            if time.monotonic() > deadline:
                raise FileProcessingError(path, "PROCESSING (timeout)")
            await asyncio.sleep(self.config.file_poll_interval)
            uploaded = await self._client.aio.files.get(name=uploaded.name)

        state = self._state_name(uploaded)
        if state == "FAILED":
            raise FileProcessingError(path, state)

        logger.debug(f"Gemini | Uploaded {Path(path).name} as {uploaded.name} ({mime_type})")
        return uploaded

    async def _delete_files(self, uploaded: list[Any]) -> None:
        for file in uploaded:
            try:
                await self._client.aio.files.delete(name=file.name)
            except Exception as exc:
                logger.warning(f"Gemini | Failed to delete uploaded file {file.name}: {exc}")

    @staticmethod
    def _state_name(file: Any) -> str:
        state = getattr(file, "state", None)
        if state is None:
            return "ACTIVE"
        return getattr(state, "name", None) or str(state)

    @staticmethod
    def _format_error_info(exc: Exception) -> str:
        """Extract status code and message details from a google-genai error."""
        parts: list[str] = []
        code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
        if code:
            parts.append(f"status={code}")
        status = getattr(exc, "status", None)
        if status and status != code:
            parts.append(f"reason={status}")
        return " | ".join(parts)
