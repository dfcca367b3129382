"""Content description: screenshots and tag sample described in parallel, then merged"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gemini_module.prompts import (
    build_audio_description_prompt,
    build_image_description_prompt,
    build_merge_description_prompt,
)
from gemini_module.service import GeminiService
from logger import format_details, get_logger
from media_module.segments import DecompositionResult

from .exceptions import DescriptionError

logger = get_logger("description")

StepLog = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class DescriptionArtifact:
    """Outputs of the description stage; only ``merged_description`` feeds later stages."""

    merged_description: str
    audio_description: str | None = None
    image_description: str | None = None
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "merged_description": self.merged_description,
            "audio_description": self.audio_description,
            "image_description": self.image_description,
            "errors": dict(self.errors),
        }


class DescriptionService:
    """Describe a decomposed source with one model."""

    def __init__(self, generator: GeminiService, model: str, instructions: str | None = None):
        self.generator = generator
        self.model = model
        self.instructions = instructions

    async def describe_images(self, screenshots: list[str]) -> str:
        prompt = build_image_description_prompt([Path(p).name for p in screenshots], self.instructions)
        return await self.generator.invoke(self.model, prompt, screenshots)

    async def describe_audio(self, tag_sample: str, source_name: str) -> str:
        prompt = build_audio_description_prompt(source_name, self.instructions)
        return await self.generator.invoke(self.model, prompt, [tag_sample])

    async def describe(
        self,
        media: DecompositionResult,
        source_name: str,
        step_log: StepLog | None = None,
    ) -> DescriptionArtifact:
        """Run both branches concurrently and merge whatever succeeded.

        Raises DescriptionError when both branches fail or the merge fails.
        """
        screenshots = [s.path for s in media.screenshots]
        branches: dict[str, Awaitable[str]] = {}
        if screenshots:
            branches["image"] = self.describe_images(screenshots)
        branches["audio"] = self.describe_audio(media.tag_sample, source_name)

        results = await asyncio.gather(*branches.values(), return_exceptions=True)

        outputs: dict[str, str] = {}
        errors: dict[str, str] = {}
        for name, result in zip(branches, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors[name] = str(result)
                logger.warning(f"Description | {name} branch failed: {result}")
                await self._log(step_log, {"step": f"{name}_description", "error": str(result)})
            else:
                outputs[name] = result
                await self._log(step_log, {"step": f"{name}_description", f"{name}Description": result})

        if not outputs:
            raise DescriptionError("; ".join(f"{name}: {error}" for name, error in errors.items()))

        # Image first, matching the order the branches were described in
        descriptions = [outputs[name] for name in ("image", "audio") if name in outputs]
        merge_prompt = build_merge_description_prompt(descriptions, self.instructions)
        try:
            merged = await self.generator.invoke(self.model, merge_prompt)
        except Exception as e:
            await self._log(step_log, {"step": "merge", "prompt": merge_prompt, "error": str(e)})
            raise DescriptionError(f"merge: {e}") from e

        await self._log(step_log, {"step": "merge", "prompt": merge_prompt, "finalDescription": merged})
        logger.info(
            "Description complete | "
            + format_details(branches=len(outputs), failed=len(errors), chars=len(merged))
        )

        return DescriptionArtifact(
            merged_description=merged,
            audio_description=outputs.get("audio"),
            image_description=outputs.get("image"),
            errors=errors,
        )

    @staticmethod
    async def _log(step_log: StepLog | None, entry: dict[str, Any]) -> None:
        if step_log is not None:
            await step_log(entry)
