"""Job orchestrator: decomposition → description → transcription → report"""

import asyncio
from collections.abc import Callable
from pathlib import Path

from api.pipeline.cancellation import CancellationToken, JobCancelledError
from api.pipeline.events import JobEventBus, build_status_event
from api.pipeline.state_machine import (
    PROGRESS_DECOMPOSED,
    PROGRESS_PROBED,
    advance,
    set_progress,
    transcription_progress,
)
from config.settings import Settings
from description_module import DescriptionService
from file_storage.job_store import JobStore
from gemini_module import GeminiService, get_tier_models
from logger import format_details, get_logger, short_job_id
from media_module import DecomposeConfig, MediaDecomposer
from models.job import JobError, JobRecord, JobStatus, StageStatus, StageType
from report_module import ReportOutline, ReportSection, ReportService
from transcription_module import TranscriptChunk, TranscriptionService, build_transcript_document
from utils import format_duration

logger = get_logger("pipeline")

GeneratorFactory = Callable[[str | None], GeminiService]
DecomposerFactory = Callable[[DecomposeConfig], MediaDecomposer]


def result_link(job_id: str, kind: str) -> str:
    return f"/api/results/{job_id}/{kind}"


class JobOrchestrator:
    """Runs one job end to end; the only place exceptions turn into the failed state."""

    def __init__(
        self,
        store: JobStore,
        events: JobEventBus,
        settings: Settings,
        generator_factory: GeneratorFactory,
        decomposer_factory: DecomposerFactory = MediaDecomposer,
    ):
        self.store = store
        self.events = events
        self.settings = settings
        self.generator_factory = generator_factory
        self.decomposer_factory = decomposer_factory

    async def _update(self, job_id: str, mutate: Callable[[JobRecord], None]) -> JobRecord:
        """Persist a change, then publish the new snapshot."""
        record = await self.store.update(job_id, mutate)
        self.events.publish(job_id, build_status_event(record))
        return record

    async def _update_if_active(self, job_id: str, mutate: Callable[[JobRecord], None]) -> JobRecord:
        """Like _update, but a job already in a terminal state is left untouched and silent."""

        def guarded(r: JobRecord) -> None:
            if not r.status.is_terminal:
                mutate(r)

        record = await self.store.update(job_id, guarded)
        if not record.status.is_terminal:
            self.events.publish(job_id, build_status_event(record))
        return record

    async def run(self, job_id: str, api_key: str | None, token: CancellationToken | None = None) -> JobRecord:
        token = token or CancellationToken()
        record = await self.store.require(job_id)
        stage_name = "decomposition"

        with logger.contextualize(job_id=short_job_id(job_id), tier=record.options.tier.value):
            try:
                models = get_tier_models(record.options.tier)
                generator = self.generator_factory(api_key)
                instructions = record.options.instructions

                # Decomposition
                stage_name = "decomposition"
                media, record = await self._decompose(record)
                token.raise_if_cancelled()

                # Description
                stage_name = StageType.DESCRIPTION.value
                with logger.contextualize(stage=stage_name):
                    await self._update(job_id, lambda r: self._start_stage(
                        r, StageType.DESCRIPTION, JobStatus.DESCRIPTION_IN_PROGRESS, "Generating description..."
                    ))
                    description = await DescriptionService(generator, models.description, instructions).describe(
                        media,
                        record.input.original_filename,
                        step_log=self.store.step_logger(job_id, "intermediate_output.json"),
                    )
                    file_name = await self.store.write_artifact(job_id, "description", description.merged_description)

                    def finish_description(r: JobRecord) -> None:
                        r.description = description.merged_description
                        r.outputs.description = file_name
                        r.download_links["description"] = result_link(job_id, "description")
                        r.get_stage(StageType.DESCRIPTION).mark_completed(
                            {"branches_failed": sorted(description.errors)}
                        )
                        advance(r, JobStatus.DESCRIPTION_COMPLETE, "Description complete")

                    record = await self._update(job_id, finish_description)
                token.raise_if_cancelled()

                # Transcription
                stage_name = StageType.TRANSCRIPTION.value
                with logger.contextualize(stage=stage_name):
                    total = len(media.segments)
                    await self._update(job_id, lambda r: self._start_stage(
                        r,
                        StageType.TRANSCRIPTION,
                        JobStatus.TRANSCRIPTION_IN_PROGRESS,
                        f"Transcribing {total} audio segment(s)...",
                    ))

                    def render(chunks: list[TranscriptChunk]) -> str:
                        return build_transcript_document(
                            description.merged_description,
                            chunks,
                            description.audio_description,
                            description.image_description,
                        )

                    async def on_chunk(chunk: TranscriptChunk, chunks: list[TranscriptChunk]) -> None:
                        document = render(chunks)

                        def apply(r: JobRecord) -> None:
                            r.transcription = document
                            set_progress(
                                r,
                                transcription_progress(len(chunks), total),
                                f"Transcribed segment {len(chunks)}/{total}",
                            )

                        await self._update(job_id, apply)

                    chunks = await TranscriptionService(generator, models.transcription, instructions).transcribe(
                        media.segments,
                        description.merged_description,
                        on_chunk=on_chunk,
                        step_log=self.store.step_logger(job_id, "transcription_progress.json"),
                    )
                    transcript = render(chunks)
                    file_name = await self.store.write_artifact(job_id, "transcription", transcript)
                    failed_chunks = sum(1 for c in chunks if not c.ok)

                    def finish_transcription(r: JobRecord) -> None:
                        r.transcription = transcript
                        r.outputs.transcription = file_name
                        r.download_links["transcription"] = result_link(job_id, "transcription")
                        r.get_stage(StageType.TRANSCRIPTION).mark_completed(
                            {"chunks": len(chunks), "failed_chunks": failed_chunks}
                        )
                        advance(r, JobStatus.TRANSCRIPTION_COMPLETE, "Transcription complete")

                    record = await self._update(job_id, finish_transcription)
                token.raise_if_cancelled()

                # Report
                if record.options.generate_report:
                    stage_name = StageType.REPORT.value
                    with logger.contextualize(stage=stage_name):
                        record = await self._report(
                            job_id, generator, models.report, instructions, description.merged_description, transcript
                        )
                    token.raise_if_cancelled()

                record = await self._update(job_id, lambda r: advance(r, JobStatus.COMPLETED, "Processing complete!"))
                logger.info("Job completed | " + format_details(outputs=len(record.outputs.produced())))
                return record

            except JobCancelledError:
                return await self._fail(job_id, stage_name, "cancelled")
            except asyncio.CancelledError:
                await asyncio.shield(self._fail(job_id, stage_name, "cancelled"))
                raise
            except Exception as e:
                logger.opt(exception=e).error(f"Job failed at {stage_name}: {e}")
                return await self._fail(job_id, stage_name, str(e))
            finally:
                if not self.settings.pipeline.keep_intermediates:
                    self.store.delete_scratch(job_id)

    async def _decompose(self, record: JobRecord):
        job_id = record.job_id
        options = record.options
        config = DecomposeConfig.from_settings(
            self.settings.processing,
            segment_minutes=options.segment_minutes,
            screenshot_count=options.screenshot_count,
            overlap_minutes=options.overlap_minutes,
        )
        decomposer = self.decomposer_factory(config)
        source = record.input.stored_path

        await self._update(job_id, lambda r: set_progress(r, 0, "Analyzing media..."))
        media_info = await decomposer.get_media_info(source)

        def probed(r: JobRecord) -> None:
            r.input.duration = media_info.duration
            r.input.is_video = media_info.is_video
            set_progress(r, PROGRESS_PROBED, "Splitting media...")

        await self._update(job_id, probed)

        media = await decomposer.decompose(source, str(self.store.job_dir(job_id)), media_info=media_info)
        record = await self._update(
            job_id,
            lambda r: set_progress(
                r,
                PROGRESS_DECOMPOSED,
                f"Media split into {len(media.segments)} segment(s) and {len(media.screenshots)} screenshot(s)",
            ),
        )
        logger.info(
            "Decomposition complete | "
            + format_details(
                source=Path(source).name,
                duration=format_duration(media.media_info.duration),
                segments=len(media.segments),
                screenshots=len(media.screenshots),
            )
        )
        return media, record

    async def _report(
        self,
        job_id: str,
        generator: GeminiService,
        model: str,
        instructions: str | None,
        description: str,
        transcript: str,
    ) -> JobRecord:
        await self._update(job_id, lambda r: self._start_stage(
            r, StageType.REPORT, JobStatus.REPORT_IN_PROGRESS, "Generating report outline..."
        ))

        async def on_outline(outline: ReportOutline, document: str) -> None:
            def apply(r: JobRecord) -> None:
                r.report = document
                r.message = f"Writing {len(outline.sections)} report section(s)..."

            await self._update_if_active(job_id, apply)

        async def on_section(section: ReportSection, document: str) -> None:
            def apply(r: JobRecord) -> None:
                r.report = document
                r.message = f"Report section ready: {section.title}"

            await self._update_if_active(job_id, apply)

        service = ReportService(generator, model, self.settings.pipeline.report_concurrency, instructions)
        result = await service.generate(
            description,
            transcript,
            on_outline=on_outline,
            on_section=on_section,
            step_log=self.store.step_logger(job_id, "report_generation.json"),
        )
        file_name = await self.store.write_artifact(job_id, "report", result.document)

        def finish(r: JobRecord) -> None:
            r.report = result.document
            r.outputs.report = file_name
            r.download_links["report"] = result_link(job_id, "report")
            r.get_stage(StageType.REPORT).mark_completed({"sections": len(result.sections)})
            advance(r, JobStatus.REPORT_COMPLETE, "Report complete")

        return await self._update(job_id, finish)

    @staticmethod
    def _start_stage(record: JobRecord, stage: StageType, status: JobStatus, message: str) -> None:
        record.get_stage(stage).mark_in_progress()
        advance(record, status, message)

    async def _fail(self, job_id: str, stage_name: str, reason: str) -> JobRecord:
        error = JobError(error=reason, stage=stage_name)

        def apply(r: JobRecord) -> None:
            if r.status.is_terminal:
                return
            for stage in r.stages:
                if stage.status == StageStatus.IN_PROGRESS:
                    stage.mark_failed(reason)
                elif stage.status == StageStatus.PENDING:
                    stage.mark_skipped()
            r.error = error
            advance(r, JobStatus.FAILED, f"Processing failed: {reason}")

        record = await self._update(job_id, apply)
        await self.store.write_error(job_id, error)
        logger.warning(f"Job failed | stage={stage_name} | error={reason}")
        return record
