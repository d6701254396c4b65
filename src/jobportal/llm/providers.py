from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from openai import OpenAI

from jobportal.config import Settings
from jobportal.types import ModelResponse

logger = logging.getLogger(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,", re.IGNORECASE)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int


@dataclass(slots=True)
class PromptPart:
    kind: Literal["text", "image"]
    text: str = ""
    data: str = ""
    mime_type: str = "image/jpeg"

    @classmethod
    def from_text(cls, text: str) -> PromptPart:
        return cls(kind="text", text=text)

    @classmethod
    def from_image(cls, image: str, default_mime: str = "image/jpeg") -> PromptPart:
        data, mime_type = strip_data_uri(image)
        return cls(kind="image", data=data, mime_type=mime_type or default_mime)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(slots=True)
class JsonSchemaFormat:
    name: str
    schema: dict[str, Any]


def strip_data_uri(image: str) -> tuple[str, str | None]:
    """Split an optional ``data:image/...;base64,`` prefix off a base64 blob."""
    match = _DATA_URI_PREFIX.match(image)
    if not match:
        return image, None
    return image[match.end():], match.group("mime").lower()


class LLMProvider:
    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(self, *, model: str, prompt: str) -> ModelResponse:
        return self.complete_parts(model=model, parts=[PromptPart.from_text(prompt)])

    def complete_json(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        response_format: JsonSchemaFormat,
    ) -> dict[str, Any]:
        response = self.complete_parts(model=model, parts=parts, response_format=response_format)
        return parse_json(response.content)

    def complete_parts(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        response_format: JsonSchemaFormat | None = None,
    ) -> ModelResponse:
        try:
            return self._complete_via_responses(model=model, parts=parts, response_format=response_format)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat_completions(model=model, parts=parts, response_format=response_format)

    def _complete_via_responses(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        response_format: JsonSchemaFormat | None,
    ) -> ModelResponse:
        content: list[dict[str, Any]] = []
        for part in parts:
            if part.kind == "image":
                content.append({"type": "input_image", "image_url": part.data_url})
            else:
                content.append({"type": "input_text", "text": part.text})

        kwargs: dict[str, Any] = {"model": model, "input": [{"role": "user", "content": content}]}
        if response_format is not None:
            kwargs["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": response_format.name,
                    "schema": response_format.schema,
                }
            }

        response = self.client.responses.create(**kwargs)
        text = getattr(response, "output_text", "") or ""
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "responses"
        return ModelResponse(content=text, raw=raw)

    def _complete_via_chat_completions(
        self,
        *,
        model: str,
        parts: list[PromptPart],
        response_format: JsonSchemaFormat | None,
    ) -> ModelResponse:
        content: list[dict[str, Any]] = []
        for part in parts:
            if part.kind == "image":
                content.append({"type": "image_url", "image_url": {"url": part.data_url}})
            else:
                content.append({"type": "text", "text": part.text})

        kwargs: dict[str, Any] = {"model": model, "messages": [{"role": "user", "content": content}]}
        if response_format is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": response_format.name, "schema": response_format.schema},
            }

        response = self.client.chat.completions.create(**kwargs)
        text = self._extract_chat_text(response)
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        raw["api_path"] = "chat_completions"
        return ModelResponse(content=text, raw=raw)

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            return True

        message = str(exc).strip().lower()
        if not message:
            return False

        return "not found" in message or "404" in message


def parse_json(content: str) -> dict[str, Any]:
    candidate = content.strip()
    if not candidate:
        return {}

    if "```" in candidate:
        for part in candidate.split("```"):
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if part.startswith("{") and part.endswith("}"):
                candidate = part
                break

    try:
        value = json.loads(candidate)
        return value if isinstance(value, dict) else {}
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON model output")
        return {}


def build_provider(settings: Settings) -> LLMProvider:
    return LLMProvider(
        ProviderConfig(
            name="ai",
            base_url=settings.ai_base_url,
            api_key=settings.ai_api_key,
            timeout_sec=settings.ai_timeout_sec,
        )
    )
