"""
Context Escalation
==================

Decides whether a first-pass model reply asks for more history, and
enforces the two-pass ceiling.

DETECTOR:
A fixed, case-insensitive phrase match. Cheap and explainable; a false
positive costs one bounded extra call, a false negative returns the
pass-1 answer. Neither is fatal.

PROTOCOL:
    PASS1_PENDING --pass 1 reply--> PASS1_DONE --check--> ESCALATION_CHECK
    ESCALATION_CHECK --no signal--> DONE
    ESCALATION_CHECK --signal--> PASS2_PENDING --pass 2 reply--> DONE

The pass-2 reply is never checked again: at most two model calls.
"""

from __future__ import annotations
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .contracts.base import InvalidTransition
from .contracts.context import ContextPass


DEFAULT_ESCALATION_PHRASES: Tuple[str, ...] = (
    "need more context",
    "need additional context",
    "need more information",
    "insufficient information",
    "not enough information",
    "can't determine",
    "cannot determine",
    "unclear from the timeline",
    "incomplete timeline",
    "older logs",
)


class EscalationDetector:
    """Substring matcher over a curated phrase list."""

    def __init__(self, phrases: Iterable[str] = DEFAULT_ESCALATION_PHRASES):
        self._phrases = tuple(p.lower() for p in phrases if p)

    @property
    def phrases(self) -> Tuple[str, ...]:
        return self._phrases

    def matched_phrase(self, response_text: Optional[str]) -> Optional[str]:
        """First phrase found in the reply, or None."""
        if not response_text:
            return None
        text = response_text.lower()
        for phrase in self._phrases:
            if phrase in text:
                return phrase
        return None

    def needs_more_context(self, response_text: Optional[str]) -> bool:
        return self.matched_phrase(response_text) is not None


def needs_more_context(response_text: Optional[str]) -> bool:
    """Detector with the default phrase list."""
    return EscalationDetector().needs_more_context(response_text)


class EscalationState(Enum):
    PASS1_PENDING = "pass1_pending"
    PASS1_DONE = "pass1_done"
    ESCALATION_CHECK = "escalation_check"
    PASS2_PENDING = "pass2_pending"
    DONE = "done"


class EscalationProtocol:
    """
    Single-request escalation state machine.

    One instance per user action. Driving it out of order raises
    InvalidTransition instead of silently making a third call.
    """

    def __init__(self, detector: Optional[EscalationDetector] = None):
        self._detector = detector or EscalationDetector()
        self._state = EscalationState.PASS1_PENDING
        self._history: List[EscalationState] = [self._state]
        self._pass1_response: Optional[str] = None
        self._pass2_response: Optional[str] = None
        self._matched_phrase: Optional[str] = None

    @property
    def state(self) -> EscalationState:
        return self._state

    @property
    def history(self) -> Tuple[EscalationState, ...]:
        return tuple(self._history)

    @property
    def is_done(self) -> bool:
        return self._state is EscalationState.DONE

    @property
    def escalated(self) -> bool:
        return self._matched_phrase is not None

    @property
    def matched_phrase(self) -> Optional[str]:
        return self._matched_phrase

    @property
    def model_calls(self) -> int:
        return (self._pass1_response is not None) + (self._pass2_response is not None)

    @property
    def next_pass(self) -> Optional[ContextPass]:
        """Pass whose reply the protocol is waiting for, if any."""
        if self._state is EscalationState.PASS1_PENDING:
            return ContextPass.PASS_1
        if self._state is EscalationState.PASS2_PENDING:
            return ContextPass.PASS_2
        return None

    def _move(self, expected: EscalationState, target: EscalationState):
        if self._state is not expected:
            raise InvalidTransition(
                f"Cannot move to {target.value} from {self._state.value} "
                f"(expected {expected.value})"
            )
        self._state = target
        self._history.append(target)

    def record_pass1(self, response: str):
        self._move(EscalationState.PASS1_PENDING, EscalationState.PASS1_DONE)
        self._pass1_response = response

    def check(self) -> bool:
        """Run the detector on the pass-1 reply. Returns True on escalation."""
        self._move(EscalationState.PASS1_DONE, EscalationState.ESCALATION_CHECK)
        self._matched_phrase = self._detector.matched_phrase(self._pass1_response)
        if self._matched_phrase is None:
            self._move(EscalationState.ESCALATION_CHECK, EscalationState.DONE)
            return False
        self._move(EscalationState.ESCALATION_CHECK, EscalationState.PASS2_PENDING)
        return True

    def record_pass2(self, response: str):
        self._move(EscalationState.PASS2_PENDING, EscalationState.DONE)
        self._pass2_response = response

    @property
    def final_pass(self) -> ContextPass:
        if self._pass2_response:
            return ContextPass.PASS_2
        return ContextPass.PASS_1

    @property
    def final_response(self) -> str:
        """Pass-2 reply when non-empty, else the pass-1 reply."""
        if not self.is_done:
            raise InvalidTransition(f"Protocol not finished: {self._state.value}")
        if self._pass2_response:
            return self._pass2_response
        return self._pass1_response or ""
