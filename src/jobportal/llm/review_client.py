from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from jobportal.config import Settings, get_settings
from jobportal.errors import AIServiceFailed, InvalidRequest, ReviewGenerationFailed
from jobportal.llm.prompts import REVIEW_RESPONSE_SCHEMA
from jobportal.llm.providers import JsonSchemaFormat, LLMProvider, PromptPart, build_provider
from jobportal.types import CANONICAL_DECISIONS, ReviewDraft

logger = logging.getLogger(__name__)


class AIReviewClient:
    """Schema-constrained text-to-structure calls against the external model.

    The client returns what the model produced; stamping review defaults is
    left to the caller.
    """

    def __init__(self, settings: Settings | None = None, provider: LLMProvider | None = None):
        self.settings = settings or get_settings()
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = build_provider(self.settings)
        return self._provider

    async def generate_review(
        self,
        segments: list[str],
        schema: dict[str, Any] = REVIEW_RESPONSE_SCHEMA,
    ) -> ReviewDraft:
        parts = [PromptPart.from_text(segment) for segment in segments]
        try:
            data = await asyncio.to_thread(
                self.provider.complete_json,
                model=self.settings.ai_model,
                parts=parts,
                response_format=JsonSchemaFormat(name="review_outcome", schema=schema),
            )
        except Exception as exc:
            raise ReviewGenerationFailed(f"AI review call failed: {exc}") from exc

        if not data:
            raise ReviewGenerationFailed("AI review returned no parseable JSON object")

        try:
            draft = ReviewDraft.model_validate(data)
        except ValidationError as exc:
            raise ReviewGenerationFailed(f"AI review violated the response schema: {exc}") from exc

        if self.settings.review_strict_decisions and draft.decision not in CANONICAL_DECISIONS:
            raise ReviewGenerationFailed(f"AI review returned unknown decision {draft.decision!r}")
        return draft

    async def generate_text(self, prompt: str | None = None, image: str | None = None) -> str:
        parts: list[PromptPart] = []
        if prompt:
            parts.append(PromptPart.from_text(prompt))
        if image:
            parts.append(PromptPart.from_image(image))
        if not parts:
            raise InvalidRequest("prompt or image is required")

        try:
            if image:
                response = await asyncio.to_thread(
                    self.provider.complete_parts,
                    model=self.settings.ai_model,
                    parts=parts,
                )
            else:
                response = await asyncio.to_thread(
                    self.provider.complete_text,
                    model=self.settings.ai_model,
                    prompt=prompt,
                )
        except Exception as exc:
            logger.warning("AI text generation failed: %s", exc)
            raise AIServiceFailed("AI text generation failed") from exc
        return response.content
