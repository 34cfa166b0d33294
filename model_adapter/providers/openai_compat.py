"""
OpenAI-Compatible Chat Provider
===============================

Chat-completions over HTTP for any OpenAI-compatible endpoint
(x.ai Grok, OpenAI).

EXPLICIT FAILURE STATES:
- Request timeout → TIMEOUT
- Connection failure → NETWORK_ERROR
- HTTP 429 → RATE_LIMITED
- Other non-2xx → API_ERROR
- Unparseable body / no choices → INVALID_RESPONSE
- finish_reason "content_filter" → CONTENT_FILTERED

No retries: a failed call is reported once and the caller decides.
"""

from __future__ import annotations
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from context_engine.storage import SettingStore

from .base import (
    LLMProvider,
    ProviderVersion,
    ProviderResponse,
    ProviderErrorCode,
    ChatRequest,
    InvocationParams,
)


GROK_BASE_URL = "https://api.x.ai/v1"
GROK_MODEL = "grok-4-1-fast-reasoning"
OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_MODEL = "gpt-4o"

GROK_KEY_SETTING = "grok_api_key"
OPENAI_KEY_SETTING = "openai_api_key"


class OpenAICompatibleProvider(LLMProvider):

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENAI_BASE_URL,
        model: str = OPENAI_MODEL,
        provider_name: str = "openai",
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Args:
            api_key: Bearer token for the endpoint
            base_url: API root, without the /chat/completions suffix
            model: Model identifier sent with every request
            transport: Optional httpx transport (tests use MockTransport)
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._provider_name = provider_name
        self._transport = transport
        self._version = ProviderVersion(
            provider_id=provider_name,
            model_id=model,
            api_version="v1"
        )

    @classmethod
    def grok(cls, api_key: str, **kwargs) -> 'OpenAICompatibleProvider':
        return cls(api_key, base_url=GROK_BASE_URL, model=GROK_MODEL, provider_name="grok", **kwargs)

    @classmethod
    def openai(cls, api_key: str, **kwargs) -> 'OpenAICompatibleProvider':
        return cls(api_key, base_url=OPENAI_BASE_URL, model=OPENAI_MODEL, provider_name="openai", **kwargs)

    @property
    def provider_id(self) -> str:
        return self._provider_name

    def get_version(self) -> ProviderVersion:
        return self._version

    def build_payload(self, request: ChatRequest, params: InvocationParams) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": request.system_prompt}
        ]
        for message in request.messages[:-1]:
            messages.append({"role": message.role, "content": message.content})

        # Images ride on the current (last) user turn
        if request.messages:
            last = request.messages[-1]
            if request.image_urls:
                parts: List[Dict[str, Any]] = [{"type": "text", "text": last.content}]
                parts.extend(
                    {"type": "image_url", "image_url": {"url": url}}
                    for url in request.image_urls
                )
                messages.append({"role": last.role, "content": parts})
            else:
                messages.append({"role": last.role, "content": last.content})

        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_tokens": params.max_tokens,
        }
        if params.temperature is not None:
            payload["temperature"] = params.temperature
        return payload

    def invoke(
        self,
        request: ChatRequest,
        params: InvocationParams
    ) -> ProviderResponse:
        invoked_at = datetime.now(timezone.utc)
        start = time.time()
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=params.timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    f"{self._base_url}/chat/completions",
                    headers=headers,
                    json=self.build_payload(request, params),
                )
        except httpx.TimeoutException as e:
            return self._failure(ProviderErrorCode.TIMEOUT, str(e) or "Request timed out", invoked_at, start)
        except httpx.TransportError as e:
            return self._failure(ProviderErrorCode.NETWORK_ERROR, str(e), invoked_at, start)

        if response.status_code == 429:
            return self._failure(ProviderErrorCode.RATE_LIMITED, response.text, invoked_at, start)
        if response.status_code >= 400:
            return self._failure(
                ProviderErrorCode.API_ERROR,
                f"{self._provider_name} API error {response.status_code}: {response.text}",
                invoked_at,
                start,
            )

        try:
            data = response.json()
            choice = data["choices"][0]
            content = (choice.get("message") or {}).get("content") or ""
            finish_reason = choice.get("finish_reason")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            return self._failure(
                ProviderErrorCode.INVALID_RESPONSE,
                f"{self._provider_name} API returned no usable choices",
                invoked_at,
                start,
            )

        if finish_reason == "content_filter":
            return self._failure(
                ProviderErrorCode.CONTENT_FILTERED,
                f"{self._provider_name} withheld the reply (content filter)",
                invoked_at,
                start,
            )

        return ProviderResponse(
            success=True,
            content=content,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=(time.time() - start) * 1000,
        )

    def _failure(
        self,
        code: ProviderErrorCode,
        message: str,
        invoked_at: datetime,
        start: float
    ) -> ProviderResponse:
        return ProviderResponse(
            success=False,
            error_code=code,
            error_message=message,
            provider_version=self._version,
            invoked_at=invoked_at,
            latency_ms=(time.time() - start) * 1000,
        )


def resolve_provider(
    store: SettingStore,
    transport: Optional[httpx.BaseTransport] = None
) -> Optional[OpenAICompatibleProvider]:
    """
    Provider configured in the setting store.

    Grok takes precedence over OpenAI. None when neither key is set.
    """
    grok_key = store.get_setting(GROK_KEY_SETTING)
    if grok_key:
        return OpenAICompatibleProvider.grok(grok_key, transport=transport)
    openai_key = store.get_setting(OPENAI_KEY_SETTING)
    if openai_key:
        return OpenAICompatibleProvider.openai(openai_key, transport=transport)
    return None
