"""
LLM Providers Package
=====================

Provider implementations for LLM invocation.

Available providers:
- ScriptedProvider: Deterministic replies for testing
- OpenAICompatibleProvider: Chat completions over HTTP (Grok, OpenAI)
"""

from .base import (
    LLMProvider,
    ProviderVersion,
    ProviderResponse,
    ProviderErrorCode,
    ChatMessage,
    ChatRequest,
    InvocationParams,
)
from .scripted import ScriptedProvider
from .openai_compat import OpenAICompatibleProvider, resolve_provider

__all__ = [
    'LLMProvider',
    'ProviderVersion',
    'ProviderResponse',
    'ProviderErrorCode',
    'ChatMessage',
    'ChatRequest',
    'InvocationParams',
    'ScriptedProvider',
    'OpenAICompatibleProvider',
    'resolve_provider',
]
