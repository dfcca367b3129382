"""FastAPI dependency injection"""

from functools import lru_cache

from fastapi import Depends

from api.pipeline.events import JobEventBus
from api.pipeline.orchestrator import JobOrchestrator
from api.pipeline.runner import JobRunner
from api.services.job_service import JobService
from config.settings import Settings, get_settings
from file_storage import JobStore, get_job_store
from gemini_module import GeminiConfig, GeminiService
from media_module import MediaDecomposer
from upload_module import InMemorySessionStore, RedisSessionStore, SessionStore, UploadAssembler


def get_app_settings() -> Settings:
    return get_settings()


def get_store() -> JobStore:
    return get_job_store()


@lru_cache
def get_event_bus() -> JobEventBus:
    return JobEventBus()


def create_session_store(settings: Settings) -> SessionStore:
    """Session store selected by UPLOAD_SESSION_BACKEND."""
    if settings.upload.session_backend == "redis":
        return RedisSessionStore.from_url(
            settings.redis.url,
            key_prefix=settings.redis.key_prefix,
            ttl_seconds=settings.upload.session_ttl_seconds,
        )
    return InMemorySessionStore()


@lru_cache
def get_session_store() -> SessionStore:
    return create_session_store(get_settings())


@lru_cache
def get_assembler() -> UploadAssembler:
    return UploadAssembler(get_session_store(), get_job_store().paths, get_settings().upload)


def create_generator(api_key: str | None) -> GeminiService:
    return GeminiService(GeminiConfig().with_api_key(api_key))


@lru_cache
def get_runner() -> JobRunner:
    orchestrator = JobOrchestrator(
        store=get_job_store(),
        events=get_event_bus(),
        settings=get_settings(),
        generator_factory=create_generator,
        decomposer_factory=MediaDecomposer,
    )
    return JobRunner(orchestrator)


def get_job_service(
    store: JobStore = Depends(get_store),
    assembler: UploadAssembler = Depends(get_assembler),
    runner: JobRunner = Depends(get_runner),
    settings: Settings = Depends(get_app_settings),
) -> JobService:
    return JobService(store, assembler, runner, settings)


def reset_dependencies() -> None:
    """Drop cached singletons (useful for testing)."""
    for factory in (get_event_bus, get_session_store, get_assembler, get_runner):
        factory.cache_clear()
