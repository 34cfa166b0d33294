"""
Escalating Chat Session
=======================

Runs one user chat turn through the two-pass context protocol.

CALL PATH:
    evidence → partition → pass-1 render → model → detector
        → (only on escalation) pass-2 render → model

GUARANTEES:
- At most two sequential model calls per turn
- Pass 2 is assembled only when the detector fires
- A failed model call raises ProviderInvocationError; no hidden retries
- Identical evidence + `now` → identical system prompts
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from context_engine.assembly import assemble_pass
from context_engine.config import ContextConfig
from context_engine.contracts import (
    CaseProfile,
    CaseSummary,
    ContextPass,
    Error,
    ErrorCode,
    EvidenceEntry,
    PartitionSets,
    ProviderInvocationError,
)
from context_engine.escalation import EscalationProtocol, EscalationState
from context_engine.observability import AuditEventType, AuditTrail
from context_engine.rendering import render_case_summary, render_profile, render_timeline

from .prompts import CanonicalPrompt, build_chat_system_prompt
from .providers.base import ChatMessage, ChatRequest, InvocationParams, LLMProvider


EMPTY_REPLY_FALLBACK = "I apologize, I couldn't generate a response. Please try again."


@dataclass(frozen=True)
class ChatOutcome:
    """Result of one chat turn."""
    response: str
    context_pass: ContextPass
    model_calls: int
    escalated: bool
    states: Tuple[EscalationState, ...]
    prompt_hashes: Tuple[str, ...]


class EscalatingChatSession:

    def __init__(
        self,
        provider: LLMProvider,
        config: Optional[ContextConfig] = None,
        params: Optional[InvocationParams] = None,
        audit: Optional[AuditTrail] = None
    ):
        self._provider = provider
        self._config = config or ContextConfig()
        self._params = params or InvocationParams()
        self._audit = audit

    def chat_history(self, entries: Sequence[EvidenceEntry]) -> List[ChatMessage]:
        """Last N chat turns, oldest first."""
        limit = self._config.chat_history_limit
        chats = [e for e in entries if e.is_chat]
        recent = chats[-limit:] if limit > 0 else []
        return [
            ChatMessage(role="assistant" if e.is_ai else "user", content=e.content)
            for e in recent
        ]

    def system_prompt(
        self,
        partitions: PartitionSets,
        context_pass: ContextPass,
        summary: CaseSummary,
        profile: Optional[CaseProfile] = None,
        base_prompt: Optional[str] = None
    ) -> CanonicalPrompt:
        included = assemble_pass(partitions, context_pass)
        if self._audit is not None:
            self._audit.record(AuditEventType.CONTEXT, "assembled", context_pass.value, {
                'entries': len(included),
                'backfill_truncated': partitions.truncated_count,
            })
        return build_chat_system_prompt(
            evidence_text=render_timeline(included),
            context_pass=context_pass,
            case_text=render_case_summary(summary),
            profile_text=render_profile(profile),
            base_prompt=base_prompt,
        )

    def _call(self, prompt: CanonicalPrompt, messages: Tuple[ChatMessage, ...],
              image_urls: Tuple[str, ...], context_pass: ContextPass) -> str:
        request = ChatRequest(
            system_prompt=prompt.prompt_text,
            messages=messages,
            image_urls=image_urls,
        )
        response = self._provider.invoke(request, self._params)
        if self._audit is not None:
            self._audit.record(AuditEventType.PROVIDER, "invoked", context_pass.value, {
                'provider': self._provider.provider_id,
                'success': response.success,
                'prompt_hash': prompt.prompt_hash[:16],
            })
        if not response.success:
            code = response.error_code.value if response.error_code else None
            message = (
                f"{self._provider.provider_id} call failed on {context_pass.value}: "
                f"{response.error_message}"
            )
            if self._audit is not None:
                error = Error(
                    code=ErrorCode.PROVIDER_FAILED,
                    message=message,
                    timestamp=response.invoked_at or datetime.now(timezone.utc),
                ).with_context('provider_code', code or "")
                self._audit.record_error(error, entity_id=context_pass.value)
            raise ProviderInvocationError(message, error_code=code)
        return response.content or ""

    def respond(
        self,
        message: str,
        entries: Sequence[EvidenceEntry],
        now: datetime,
        summary: CaseSummary,
        profile: Optional[CaseProfile] = None,
        base_prompt: Optional[str] = None,
        image_urls: Sequence[str] = ()
    ) -> ChatOutcome:
        """
        Answer one user message.

        Args:
            entries: Full case log (evidence and chat), upstream order
            now: Reference time for the recency window
        """
        partitions = self._config.partitioner().partition(entries, now)
        messages = tuple(self.chat_history(entries)) + (ChatMessage(role="user", content=message),)
        images = tuple(image_urls)
        protocol = EscalationProtocol(self._config.detector())
        hashes = []

        pass1 = self.system_prompt(partitions, ContextPass.PASS_1, summary, profile, base_prompt)
        hashes.append(pass1.prompt_hash)
        reply = self._call(pass1, messages, images, ContextPass.PASS_1)
        protocol.record_pass1(reply or EMPTY_REPLY_FALLBACK)

        if protocol.check():
            if self._audit is not None:
                self._audit.record(AuditEventType.ESCALATION, "escalated", ContextPass.PASS_2.value, {
                    'phrase': protocol.matched_phrase,
                })
            pass2 = self.system_prompt(partitions, ContextPass.PASS_2, summary, profile, base_prompt)
            hashes.append(pass2.prompt_hash)
            protocol.record_pass2(self._call(pass2, messages, images, ContextPass.PASS_2))

        return ChatOutcome(
            response=protocol.final_response,
            context_pass=protocol.final_pass,
            model_calls=protocol.model_calls,
            escalated=protocol.escalated,
            states=protocol.history,
            prompt_hashes=tuple(hashes),
        )
