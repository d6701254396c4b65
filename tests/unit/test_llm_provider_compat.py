from __future__ import annotations

from types import SimpleNamespace

import pytest

from jobportal.llm.providers import (
    JsonSchemaFormat,
    LLMProvider,
    PromptPart,
    ProviderConfig,
    parse_json,
    strip_data_uri,
)


class DummyAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FakeResponsePayload:
    def __init__(self, *, output_text: str = "", raw: dict | None = None):
        self.output_text = output_text
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeChatPayload:
    def __init__(self, *, content: str, raw: dict | None = None):
        self.choices = [SimpleNamespace(message=SimpleNamespace(content=content))]
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeEndpoint:
    def __init__(self, fn):
        self._fn = fn

    def create(self, **kwargs):
        return self._fn(**kwargs)


class FakeClient:
    def __init__(self, *, responses_fn, chat_fn):
        self.responses = FakeEndpoint(responses_fn)
        self.chat = SimpleNamespace(completions=FakeEndpoint(chat_fn))


def _provider_with_fake_client(fake_client: FakeClient) -> LLMProvider:
    provider = LLMProvider(
        ProviderConfig(
            name="ai",
            base_url="http://localhost:9999/v1",
            api_key="dummy",
            timeout_sec=5,
        )
    )
    provider.client = fake_client
    return provider


def _not_found(**kwargs):
    raise DummyAPIError("Not found", status_code=404)


def test_complete_text_uses_responses_when_available() -> None:
    chat_called = {"value": False}

    def responses_fn(**kwargs):
        return FakeResponsePayload(output_text="RESP_OK", raw={"id": "resp_1"})

    def chat_fn(**kwargs):
        chat_called["value"] = True
        return FakeChatPayload(content="CHAT_OK")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    result = provider.complete_text(model="gemini-2.5-flash-lite", prompt="ping")

    assert result.content == "RESP_OK"
    assert result.raw["api_path"] == "responses"
    assert chat_called["value"] is False


def test_complete_text_falls_back_to_chat_on_responses_not_found() -> None:
    def chat_fn(**kwargs):
        return FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=_not_found, chat_fn=chat_fn))
    result = provider.complete_text(model="gemini-2.5-flash-lite", prompt="ping")

    assert result.content == "CHAT_OK"
    assert result.raw["api_path"] == "chat_completions"


def test_non_404_errors_are_not_retried_on_chat() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("rate limited", status_code=429)

    def chat_fn(**kwargs):
        raise AssertionError("chat path must not be used")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    with pytest.raises(DummyAPIError, match="rate limited"):
        provider.complete_text(model="gemini-2.5-flash-lite", prompt="ping")


def test_complete_json_sends_schema_on_both_paths() -> None:
    seen: dict = {}

    def chat_fn(**kwargs):
        seen.update(kwargs)
        return FakeChatPayload(content='```json\n{"decision": "Qualified"}\n```')

    provider = _provider_with_fake_client(FakeClient(responses_fn=_not_found, chat_fn=chat_fn))
    schema = {"type": "object", "properties": {"decision": {"type": "string"}}}
    payload = provider.complete_json(
        model="gemini-2.5-flash-lite",
        parts=[PromptPart.from_text("first"), PromptPart.from_text("second")],
        response_format=JsonSchemaFormat(name="review_outcome", schema=schema),
    )

    assert payload == {"decision": "Qualified"}
    assert seen["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "review_outcome", "schema": schema},
    }
    assert [part["text"] for part in seen["messages"][0]["content"]] == ["first", "second"]


def test_responses_path_encodes_images_as_data_urls() -> None:
    seen: dict = {}

    def responses_fn(**kwargs):
        seen.update(kwargs)
        return FakeResponsePayload(output_text="a cat")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=_not_found))
    provider.complete_parts(
        model="gemini-2.5-flash-lite",
        parts=[PromptPart.from_text("describe"), PromptPart.from_image("data:image/png;base64,AAAA")],
    )

    content = seen["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "describe"}
    assert content[1] == {"type": "input_image", "image_url": "data:image/png;base64,AAAA"}
    assert "text" not in seen


def test_strip_data_uri() -> None:
    assert strip_data_uri("data:image/jpeg;base64,QUJD") == ("QUJD", "image/jpeg")
    assert strip_data_uri("QUJD") == ("QUJD", None)


def test_parse_json_tolerates_garbage() -> None:
    assert parse_json("") == {}
    assert parse_json("not json") == {}
    assert parse_json("[1, 2]") == {}
