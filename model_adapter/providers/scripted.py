"""
Scripted LLM Provider
=====================

Deterministic provider for tests and offline runs.

GUARANTEES:
- Replies are replayed from the script in call order
- Every request is recorded for inspection
- Once the script is exhausted, replies derive from hash(system + user)
- Explicit failure modes can be triggered
"""

from __future__ import annotations
import hashlib
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .base import (
    LLMProvider,
    ProviderVersion,
    ProviderResponse,
    ProviderErrorCode,
    ChatRequest,
    InvocationParams,
)


class ScriptedProvider(LLMProvider):

    def __init__(
        self,
        replies: Sequence[str] = (),
        failure_mode: Optional[ProviderErrorCode] = None,
        fail_on_call: Optional[int] = None
    ):
        """
        Args:
            replies: Replies returned in order, one per invocation
            failure_mode: Error code used for failing calls
            fail_on_call: 1-based call number that fails; every call
                fails when failure_mode is set and this is None
        """
        self._replies = list(replies)
        self._failure_mode = failure_mode
        self._fail_on_call = fail_on_call
        self._requests: List[ChatRequest] = []
        self._version = ProviderVersion(
            provider_id="scripted",
            model_id="scripted-deterministic-v1",
            api_version="1.0.0"
        )

    @property
    def provider_id(self) -> str:
        return "scripted"

    def get_version(self) -> ProviderVersion:
        return self._version

    @property
    def requests(self) -> List[ChatRequest]:
        return list(self._requests)

    @property
    def call_count(self) -> int:
        return len(self._requests)

    def _should_fail(self, call_number: int) -> bool:
        if self._failure_mode is None:
            return False
        return self._fail_on_call is None or self._fail_on_call == call_number

    def invoke(
        self,
        request: ChatRequest,
        params: InvocationParams
    ) -> ProviderResponse:
        invoked_at = datetime.now(timezone.utc)
        self._requests.append(request)
        call_number = len(self._requests)

        if self._should_fail(call_number):
            return ProviderResponse(
                success=False,
                error_code=self._failure_mode,
                error_message=f"Scripted provider configured to fail: {self._failure_mode.value}",
                provider_version=self._version,
                invoked_at=invoked_at,
            )

        if call_number <= len(self._replies):
            content = self._replies[call_number - 1]
        else:
            content = self._deterministic_reply(request)

        return ProviderResponse(
            success=True,
            content=content,
            provider_version=self._version,
            invoked_at=invoked_at,
        )

    @staticmethod
    def _deterministic_reply(request: ChatRequest) -> str:
        """Same (system prompt, user turn) → same reply."""
        digest = hashlib.sha256(
            f"{request.system_prompt}|{request.user_text}".encode()
        ).hexdigest()[:16]
        return f"scripted reply {digest}"
