"""Reconstructs a source file from a single-shot or chunked upload"""

import asyncio
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import aiofiles

from config.settings import UploadSettings
from file_storage.path_builder import JobPathBuilder
from logger import format_details, get_logger, short_job_id

from .exceptions import (
    InvalidPartError,
    UnsupportedSourceError,
    UploadAlreadyStartedError,
    UploadIncompleteError,
    UploadSessionNotFoundError,
    UploadTooLargeError,
)
from .session import UploadSession, expected_parts
from .stores import SessionStore

logger = get_logger("upload")

STREAM_READ_SIZE = 1024 * 1024

MIME_EXTENSIONS = {
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/webm": ".webm",
}


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass
class PartReceipt:
    chunk_index: int
    received_chunks: int
    total_chunks: int
    complete: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_index": self.chunk_index,
            "received_chunks": self.received_chunks,
            "total_chunks": self.total_chunks,
            "complete": self.complete,
        }


class UploadAssembler:
    """Owns upload sessions and the files they write into job directories."""

    def __init__(self, store: SessionStore, paths: JobPathBuilder, settings: UploadSettings):
        self.store = store
        self.paths = paths
        self.settings = settings

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_source(self, filename: str, mime_type: str | None) -> str:
        """Return the source extension to store under; raises UnsupportedSourceError."""
        extension = Path(filename or "").suffix.lower()
        mime = (mime_type or "").split(";")[0].strip().lower()

        if extension in self.settings.allowed_extensions:
            return extension
        if mime in self.settings.allowed_mime_types:
            return MIME_EXTENSIONS.get(mime, extension)
        raise UnsupportedSourceError(filename, mime_type)

    def check_declared_size(self, size: int) -> None:
        if size > self.settings.max_file_size_bytes:
            raise UploadTooLargeError("File", size, self.settings.max_file_size_bytes)

    # ------------------------------------------------------------------
    # Chunked path
    # ------------------------------------------------------------------

    async def init(
        self,
        filename: str,
        size: int,
        mime_type: str | None = None,
        options: dict[str, Any] | None = None,
        api_key: str | None = None,
    ) -> UploadSession:
        """Open a session; nothing is accepted when the declared size is over the ceiling."""
        await self.purge_expired()
        if size <= 0:
            raise InvalidPartError("File size must be positive")
        self.check_declared_size(size)
        self.validate_source(filename, mime_type)

        session = UploadSession(
            job_id=uuid.uuid4().hex,
            filename=filename,
            size=size,
            mime_type=mime_type,
            options=options or {},
            api_key=api_key,
            expected_parts=expected_parts(size, self.settings.chunk_size_bytes),
        )
        self.paths.parts_dir(session.job_id).mkdir(parents=True, exist_ok=True)
        await self.store.save(session)

        logger.info(
            f"Upload initialized | Job={short_job_id(session.job_id)} | "
            + format_details(file=filename, size=size, parts=session.expected_parts)
        )
        return session

    async def get_session(self, job_id: str) -> UploadSession:
        await self.purge_expired()
        session = await self.store.get(job_id)
        if session is None:
            raise UploadSessionNotFoundError(job_id)
        return session

    async def put_part(self, job_id: str, index: int, data: bytes, total_parts: int | None = None) -> PartReceipt:
        """Store one part. Re-delivery overwrites; delivery after completion is a no-op."""
        if len(data) > self.settings.max_chunk_size_bytes:
            raise UploadTooLargeError("Chunk", len(data), self.settings.max_chunk_size_bytes)

        session = await self.get_session(job_id)
        async with self.store.lock(job_id):
            session = await self.store.get(job_id)
            if session is None:
                raise UploadSessionNotFoundError(job_id)

            if session.completed:
                logger.debug(f"Duplicate part after completion ignored | Job={short_job_id(job_id)} | index={index}")
                return self._receipt(session, index)

            if total_parts is not None and total_parts != session.expected_parts:
                raise InvalidPartError(f"Expected {session.expected_parts} chunks, got total_chunks={total_parts}")
            if not 0 <= index < session.expected_parts:
                raise InvalidPartError(f"Chunk index {index} out of range [0, {session.expected_parts})")

            part_path = self.paths.part_file(job_id, index)
            part_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(part_path, "wb") as f:
                await f.write(data)
            session.parts[index] = str(part_path)

            if session.received_parts == session.expected_parts:
                try:
                    session.assembled_path = await self._assemble(session)
                except InvalidPartError:
                    # Parts are gone; the client has to deliver them again
                    session.parts.clear()
                    await self.store.save(session)
                    raise
                session.completed = True

            await self.store.save(session)

        logger.info(
            f"Chunk received | Job={short_job_id(job_id)} | "
            + format_details(index=index, received=session.received_parts, total=session.expected_parts)
        )
        return self._receipt(session, index)

    async def _assemble(self, session: UploadSession) -> str:
        """Concatenate parts by index into the source file and drop the parts."""
        extension = self.validate_source(session.filename, session.mime_type)
        target = self.paths.source_file(session.job_id, extension)

        written = 0
        async with aiofiles.open(target, "wb") as out:
            for index in range(session.expected_parts):
                async with aiofiles.open(session.parts[index], "rb") as part:
                    data = await part.read()
                written += len(data)
                await out.write(data)

        await asyncio.to_thread(shutil.rmtree, self.paths.parts_dir(session.job_id), True)
        if written != session.size:
            target.unlink(missing_ok=True)
            raise InvalidPartError(f"Assembled size {written} does not match declared file_size={session.size}")
        logger.info(f"Upload assembled | Job={short_job_id(session.job_id)} | " + format_details(bytes=written))
        return str(target)

    @staticmethod
    def _receipt(session: UploadSession, index: int) -> PartReceipt:
        return PartReceipt(
            chunk_index=index,
            received_chunks=session.received_parts,
            total_chunks=session.expected_parts,
            complete=session.completed,
        )

    async def claim_for_processing(self, job_id: str) -> UploadSession:
        """Mark an assembled upload as started, exactly once."""
        session = await self.get_session(job_id)
        async with self.store.lock(job_id):
            session = await self.store.get(job_id)
            if session is None:
                raise UploadSessionNotFoundError(job_id)
            if not session.completed:
                raise UploadIncompleteError(job_id, session.received_parts, session.expected_parts)
            if session.processing_started:
                raise UploadAlreadyStartedError(job_id)
            session.processing_started = True
            await self.store.save(session)
        return session

    # ------------------------------------------------------------------
    # Single-shot path
    # ------------------------------------------------------------------

    async def store_single(
        self,
        job_id: str,
        filename: str,
        mime_type: str | None,
        stream: AsyncReadable,
        declared_size: int | None = None,
    ) -> tuple[str, int]:
        """Stream a multipart upload into the job directory, enforcing the same ceiling."""
        extension = self.validate_source(filename, mime_type)
        if declared_size is not None:
            self.check_declared_size(declared_size)

        target = self.paths.source_file(job_id, extension)
        target.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        try:
            async with aiofiles.open(target, "wb") as out:
                while chunk := await stream.read(STREAM_READ_SIZE):
                    written += len(chunk)
                    if written > self.settings.max_file_size_bytes:
                        raise UploadTooLargeError("File", written, self.settings.max_file_size_bytes)
                    await out.write(chunk)
        except UploadTooLargeError:
            target.unlink(missing_ok=True)
            raise

        logger.info(f"Upload stored | Job={short_job_id(job_id)} | " + format_details(file=filename, bytes=written))
        return str(target), written

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def purge_expired(self) -> int:
        """Drop sessions past their TTL, with their files unless a job took them over."""
        expired = await self.store.pop_expired(self.settings.session_ttl_seconds)
        for session in expired:
            if not session.processing_started:
                self.paths.delete_job_files(session.job_id)
        if expired:
            logger.info("Upload sessions expired | " + format_details(count=len(expired)))
        return len(expired)
