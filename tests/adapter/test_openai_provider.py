"""
OpenAI-Compatible Provider Tests

HTTP is served by httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from context_engine.storage import InMemorySettingStore
from model_adapter.providers import (
    ChatMessage,
    ChatRequest,
    InvocationParams,
    OpenAICompatibleProvider,
    ProviderErrorCode,
    resolve_provider,
)


def make_request(image_urls=()):
    return ChatRequest(
        system_prompt="SYSTEM",
        messages=(
            ChatMessage(role="user", content="earlier question"),
            ChatMessage(role="assistant", content="earlier answer"),
            ChatMessage(role="user", content="current question"),
        ),
        image_urls=tuple(image_urls),
    )


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class Recorder:

    def __init__(self, status=200, body=None, raw=None, error=None):
        self.status = status
        self.body = body if body is not None else completion("hello")
        self.raw = raw
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"simulated {self.error.__name__}", request=request)
        if self.raw is not None:
            return httpx.Response(self.status, text=self.raw)
        return httpx.Response(self.status, json=self.body)


def make_provider(recorder, factory=OpenAICompatibleProvider.grok):
    return factory("secret-key", transport=httpx.MockTransport(recorder))


class TestPayload:

    def test_endpoint_headers_and_body(self):
        recorder = Recorder()
        response = make_provider(recorder).invoke(make_request(), InvocationParams(max_tokens=1000))

        assert response.success
        assert response.content == "hello"
        sent = recorder.requests[0]
        assert str(sent.url) == "https://api.x.ai/v1/chat/completions"
        assert sent.headers["Authorization"] == "Bearer secret-key"
        body = json.loads(sent.content)
        assert body["model"] == "grok-4-1-fast-reasoning"
        assert body["max_tokens"] == 1000
        assert "temperature" not in body
        assert body["messages"] == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "earlier question"},
            {"role": "assistant", "content": "earlier answer"},
            {"role": "user", "content": "current question"},
        ]

    def test_images_attach_to_last_turn(self):
        provider = OpenAICompatibleProvider("k")
        payload = provider.build_payload(
            make_request(["data:image/jpeg;base64,AAAA"]),
            InvocationParams(temperature=0.2),
        )
        assert payload["temperature"] == 0.2
        assert payload["model"] == "gpt-4o"
        assert payload["messages"][-1] == {
            "role": "user",
            "content": [
                {"type": "text", "text": "current question"},
                {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAAA"}},
            ],
        }
        assert payload["messages"][1]["content"] == "earlier question"

    def test_version(self):
        provider = make_provider(Recorder(), OpenAICompatibleProvider.openai)
        assert provider.provider_id == "openai"
        assert provider.get_version().model_id == "gpt-4o"


class TestErrorMapping:

    @pytest.mark.parametrize("recorder,code", [
        (Recorder(status=429, body={"error": "slow down"}), ProviderErrorCode.RATE_LIMITED),
        (Recorder(status=500, body={"error": "boom"}), ProviderErrorCode.API_ERROR),
        (Recorder(status=401, body={"error": "bad key"}), ProviderErrorCode.API_ERROR),
        (Recorder(raw="<html>not json</html>"), ProviderErrorCode.INVALID_RESPONSE),
        (Recorder(body={"choices": []}), ProviderErrorCode.INVALID_RESPONSE),
        (Recorder(error=httpx.ReadTimeout), ProviderErrorCode.TIMEOUT),
        (Recorder(error=httpx.ConnectError), ProviderErrorCode.NETWORK_ERROR),
    ])
    def test_failures_are_values(self, recorder, code):
        response = make_provider(recorder).invoke(make_request(), InvocationParams())
        assert response.success is False
        assert response.error_code == code
        assert response.content is None

    def test_api_error_message_carries_status(self):
        response = make_provider(Recorder(status=503, raw="unavailable")).invoke(
            make_request(), InvocationParams()
        )
        assert "503" in response.error_message

    def test_content_filter_is_a_failure(self):
        body = {"choices": [{"message": {"content": ""}, "finish_reason": "content_filter"}]}
        response = make_provider(Recorder(body=body)).invoke(make_request(), InvocationParams())
        assert response.success is False
        assert response.error_code == ProviderErrorCode.CONTENT_FILTERED

    def test_normal_finish_is_success(self):
        body = {"choices": [{"message": {"content": "fine"}, "finish_reason": "stop"}]}
        response = make_provider(Recorder(body=body)).invoke(make_request(), InvocationParams())
        assert response.content == "fine"

    def test_null_content_is_empty_reply(self):
        recorder = Recorder(body=completion(None))
        response = make_provider(recorder).invoke(make_request(), InvocationParams())
        assert response.success
        assert response.content == ""


class TestResolveProvider:

    def test_grok_preferred(self):
        store = InMemorySettingStore({"grok_api_key": "g", "openai_api_key": "o"})
        assert resolve_provider(store).provider_id == "grok"

    def test_openai_fallback(self):
        store = InMemorySettingStore({"openai_api_key": "o"})
        assert resolve_provider(store).provider_id == "openai"

    def test_not_configured(self):
        assert resolve_provider(InMemorySettingStore()) is None
        assert resolve_provider(InMemorySettingStore({"grok_api_key": ""})) is None
