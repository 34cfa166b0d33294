"""
Model Adapter Package

ARCHITECTURAL BOUNDARY:
=======================
This package is the ONLY place where the language model is called.

DIRECTION OF DEPENDENCY:
========================
model_adapter → context_engine

DESIGN PRINCIPLES:
==================
1. Prompts are pure functions of rendered case context
2. At most two model calls per chat turn
3. Model outputs are ADVISORY and validated before use
4. Failed calls are explicit, never silently retried
"""

from .providers import (
    LLMProvider,
    ProviderResponse,
    ProviderErrorCode,
    ChatMessage,
    ChatRequest,
    InvocationParams,
    ScriptedProvider,
    OpenAICompatibleProvider,
    resolve_provider,
)
from .prompts import CanonicalPrompt, build_chat_system_prompt, build_case_review_prompt
from .session import EscalatingChatSession, ChatOutcome
from .review import (
    CaseStrengthReview,
    CaseReviewService,
    ReviewOutcome,
    extract_review,
)

__all__ = [
    # Providers
    'LLMProvider', 'ProviderResponse', 'ProviderErrorCode',
    'ChatMessage', 'ChatRequest', 'InvocationParams',
    'ScriptedProvider', 'OpenAICompatibleProvider', 'resolve_provider',
    # Prompts
    'CanonicalPrompt', 'build_chat_system_prompt', 'build_case_review_prompt',
    # Chat
    'EscalatingChatSession', 'ChatOutcome',
    # Review
    'CaseStrengthReview', 'CaseReviewService', 'ReviewOutcome', 'extract_review',
]
