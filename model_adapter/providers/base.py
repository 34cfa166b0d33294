"""
LLM Provider Abstraction Layer
==============================

Abstract interface for chat-completion providers (x.ai Grok, OpenAI, ...).

BOUNDARY ENFORCEMENT:
- Providers are stateless invocation handlers
- Failures are explicit ProviderResponse values, never exceptions
- Retry policy does not live here
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple
from enum import Enum


class ProviderErrorCode(Enum):
    """Explicit failure codes for LLM invocations."""
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    INVALID_RESPONSE = "invalid_response"
    CONTENT_FILTERED = "content_filtered"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class ProviderVersion:
    """Immutable provider version info."""
    provider_id: str       # "grok" | "openai" | "scripted"
    model_id: str          # "grok-4-1-fast-reasoning" | "gpt-4o"
    api_version: str


@dataclass(frozen=True)
class ChatMessage:
    role: str              # "user" | "assistant"
    content: str


@dataclass(frozen=True)
class ChatRequest:
    """
    One chat-completion call.

    The system prompt carries the rendered evidence context; messages are
    the prior conversation followed by the current user turn.
    """
    system_prompt: str
    messages: Tuple[ChatMessage, ...] = field(default_factory=tuple)
    image_urls: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def user_text(self) -> str:
        """Content of the last user turn."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


@dataclass(frozen=True)
class ProviderResponse:
    """
    Immutable response from LLM provider.

    INVARIANT: Either (success=True, content set) or (success=False, error set)
    """
    success: bool
    content: Optional[str] = None

    # Failure info (only set if success=False)
    error_code: Optional[ProviderErrorCode] = None
    error_message: Optional[str] = None

    provider_version: Optional[ProviderVersion] = None
    invoked_at: Optional[datetime] = None
    latency_ms: float = 0.0

    def __post_init__(self):
        if self.success and self.content is None:
            raise ValueError("Successful response must have content")
        if not self.success and self.error_code is None:
            raise ValueError("Failed response must have error_code")


@dataclass(frozen=True)
class InvocationParams:
    """Frozen invocation parameters."""
    temperature: Optional[float] = None
    max_tokens: int = 4096
    timeout_seconds: float = 60.0


class LLMProvider(ABC):
    """
    Abstract LLM provider interface.

    GUARANTEES:
    - Invocations are stateless
    - Failures are explicit ProviderResponse with error_code
    """

    @abstractmethod
    def invoke(
        self,
        request: ChatRequest,
        params: InvocationParams
    ) -> ProviderResponse:
        """
        Invoke the LLM with the given request.

        MUST return ProviderResponse, never raise exceptions.
        """
        pass

    @abstractmethod
    def get_version(self) -> ProviderVersion:
        pass

    @property
    @abstractmethod
    def provider_id(self) -> str:
        pass
