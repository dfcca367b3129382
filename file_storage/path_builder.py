"""Storage path builder for consistent per-job path generation"""

import re
import shutil
from pathlib import Path

from logger import get_logger

logger = get_logger("storage")

JOB_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")

ARTIFACT_FILES = {
    "description": "description.md",
    "transcription": "transcription.md",
    "report": "report.md",
}


def is_valid_job_id(job_id: str) -> bool:
    """Job ids are uuid4 hex strings; anything else never reaches the filesystem."""
    return bool(JOB_ID_PATTERN.match(job_id or ""))


class JobPathBuilder:
    """Build paths inside ``<jobs_dir>/<job_id>/``"""

    def __init__(self, base_path: str = "uploads"):
        """
        Initialize path builder.

        Args:
            base_path: Root directory holding one directory per job
        """
        self.base = Path(base_path)

    # Job directories
    def job_root(self, job_id: str) -> Path:
        """
        Get job root directory.

        Returns:
            Path like: uploads/8a5d3f10c2a14c7e9d6b2f0e1a3c4b5d
        """
        if not is_valid_job_id(job_id):
            raise ValueError(f"Invalid job id: {job_id!r}")
        return self.base / job_id

    def parts_dir(self, job_id: str) -> Path:
        """Chunked upload scratch directory"""
        return self.job_root(job_id) / "parts"

    def part_file(self, job_id: str, index: int) -> Path:
        return self.parts_dir(job_id) / f"part-{index}"

    def audio_dir(self, job_id: str) -> Path:
        return self.job_root(job_id) / "audio"

    def screenshots_dir(self, job_id: str) -> Path:
        return self.job_root(job_id) / "screenshots"

    # Job files
    def source_file(self, job_id: str, extension: str) -> Path:
        """
        Get path to the reconstructed source.

        Returns:
            Path like: uploads/<job_id>/source.mp4
        """
        extension = extension.lower()
        if extension and not extension.startswith("."):
            extension = f".{extension}"
        return self.job_root(job_id) / f"source{extension}"

    def result_file(self, job_id: str) -> Path:
        return self.job_root(job_id) / "result.json"

    def error_file(self, job_id: str) -> Path:
        return self.job_root(job_id) / "error.json"

    def artifact_file(self, job_id: str, kind: str) -> Path:
        """
        Get path to a markdown artifact.

        Args:
            job_id: Job id
            kind: description, transcription or report

        Returns:
            Path like: uploads/<job_id>/report.md
        """
        try:
            return self.job_root(job_id) / ARTIFACT_FILES[kind]
        except KeyError:
            raise ValueError(f"Unknown artifact kind: {kind}") from None

    def step_log_file(self, job_id: str, file_name: str) -> Path:
        """Stage log, e.g. intermediate_output.json"""
        return self.job_root(job_id) / file_name

    # Helpers
    def delete_job_files(self, job_id: str) -> None:
        """Delete the entire job directory."""
        job_dir = self.job_root(job_id)
        if job_dir.exists():
            shutil.rmtree(job_dir)
            logger.info(f"Deleted job directory: {job_dir}")
        else:
            logger.warning(f"Job directory not found: {job_dir}")

    def delete_scratch(self, job_id: str) -> None:
        """Remove segments, screenshots and upload parts; keep records and artifacts."""
        for directory in (self.audio_dir(job_id), self.screenshots_dir(job_id), self.parts_dir(job_id)):
            if directory.exists():
                shutil.rmtree(directory, ignore_errors=True)
                logger.debug(f"Removed scratch directory: {directory}")
