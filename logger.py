import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# Extra keys rendered in the context zone, in display order
CONTEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("job_id", "Job"),
    ("stage", "Stage"),
    ("tier", "Tier"),
    ("chunk", "Chunk"),
)

NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "hpack", "google_genai")


def http_filter(record) -> bool:
    """Drop INFO/DEBUG records from HTTP and SDK client libraries."""
    if record["name"].startswith(NOISY_LOGGERS):
        return record["level"].no >= logging.WARNING
    return True


def _context_zone(record) -> str:
    """``Job=8a5d3f10 • Stage=transcription • Tier=business`` from contextualize() extras."""
    extra = record["extra"]
    return " • ".join(f"{label}={extra[key]}" for key, label in CONTEXT_FIELDS if extra.get(key) is not None)


def _make_format(colored: bool):
    """Line format with zones separated by | and an optional context zone."""
    if colored:
        head = (
            "<green>{time:YY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{extra[module]: <12}</cyan> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
        )
        tail = " | <level>{message}</level>\n{exception}"
    else:
        head = "{time:YY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]: <12} | {name}:{function}:{line}"
        tail = " | {message}\n{exception}"

    def formatter(record) -> str:
        ctx = _context_zone(record)
        # Context values are user data; escape braces so loguru does not re-format them
        ctx_zone = f" | {ctx}".replace("{", "{{").replace("}", "}}") if ctx else ""
        return head + ctx_zone + tail

    return formatter


def _file_sinks(log_file: str | None) -> list[dict[str, Any]]:
    """File sinks enabled through LOG_FILE, ERROR_LOG_FILE and JSON_LOG_FILE."""
    plain = _make_format(colored=False)
    sinks = [
        {"path": log_file, "format": plain, "level": "INFO", "retention": "7 days", "filter": http_filter},
        {"path": os.getenv("ERROR_LOG_FILE"), "format": plain, "level": "ERROR", "retention": "14 days"},
        {
            "path": os.getenv("JSON_LOG_FILE"),
            "serialize": True,
            "level": "INFO",
            "retention": "7 days",
            "filter": http_filter,
        },
    ]
    return [sink for sink in sinks if sink["path"]]


def setup_logger(log_level: str | None = None, log_file: str | None = None) -> None:
    """Configure the console sink and any file sinks enabled by environment."""
    logger.remove()
    logger.configure(extra={"module": "app", **{key: None for key, _ in CONTEXT_FIELDS}})

    logger.add(
        sys.stderr,
        format=_make_format(colored=True),
        level=log_level or os.getenv("LOG_LEVEL", "INFO"),
        colorize=True,
        filter=http_filter,
    )

    for sink in _file_sinks(log_file or os.getenv("LOG_FILE")):
        path = Path(sink.pop("path"))
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, rotation="10 MB", compression="zip", **sink)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(module_name: str | None = None):
    """Get configured logger, optionally bound to a module name."""
    if module_name:
        return logger.bind(module=module_name)
    return logger


def short_job_id(job_id: Any) -> str:
    """First 8 chars of a job id for compact logging."""
    return str(job_id)[:8] if job_id else "unknown"


def format_details(**kwargs: Any) -> str:
    """key=value pairs joined with • for the details zone.

    Example: "Transcription complete | chunks=3 • errors=0 • chars=18211"
    """
    return " • ".join(f"{k}={v}" for k, v in kwargs.items())


def format_status_change(entity: str, old: str, new: str) -> str:
    """Example: "Job: description_complete → transcription_in_progress" """
    return f"{entity}: {old} → {new}"


setup_logger()
