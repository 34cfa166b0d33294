"""
Base Contracts and Shared Types

Foundational types used by every layer of the context engine.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- Layers may import types but MUST NOT modify this module
- All records are frozen dataclasses for immutability guarantee
- Decoding of untrusted values NEVER raises (see Severity.parse)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# SEVERITY (Ordered, three tiers)
# =============================================================================

class Severity(str, Enum):
    """
    Priority tier of an evidence entry.

    Ordering: CRITICAL > IMPORTANT > ROUTINE.
    """
    CRITICAL = "critical"
    IMPORTANT = "important"
    ROUTINE = "routine"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _SEVERITY_RANK[self]

    @property
    def is_high_priority(self) -> bool:
        """Critical and important entries are always part of the context."""
        return self is not Severity.ROUTINE

    @property
    def prompt_tag(self) -> str:
        """Tag emitted in rendered prompt lines. Routine carries none."""
        if self is Severity.ROUTINE:
            return ""
        return f" [{self.value.upper()}]"

    @staticmethod
    def parse(value: object) -> Optional[Severity]:
        """
        Decode an untrusted severity value.

        Returns None for anything that is not one of the three tiers.
        Never raises.
        """
        if isinstance(value, Severity):
            return value
        if not isinstance(value, str):
            return None
        try:
            return Severity(value)
        except ValueError:
            return None


_SEVERITY_RANK = {
    Severity.ROUTINE: 0,
    Severity.IMPORTANT: 1,
    Severity.CRITICAL: 2,
}


# =============================================================================
# ENTRY TYPES
# =============================================================================

class EvidenceType(str, Enum):
    """Type tags that count as evidence. Everything else is excluded."""
    CALL = "call"
    TEXT = "text"
    EMAIL = "email"
    PHOTO = "photo"
    DOCUMENT = "document"
    NOTE = "note"
    SERVICE = "service"


EVIDENCE_TYPES = frozenset(t.value for t in EvidenceType)

CHAT_TYPE = "chat"

# Photo list includes photos attached to other entries
PHOTO_TYPES = frozenset({
    "photo",
    "call_photo",
    "text_photo",
    "email_photo",
    "chat_photo",
    "service_photo",
})


def ensure_utc(value: datetime) -> datetime:
    """All timestamps are UTC. Naive values are interpreted as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_millis(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for degraded paths.

    None of these fail a request on their own: they are recorded
    and the caller falls back to the safe default.
    """
    CACHE_READ_FAILED = auto()
    CACHE_WRITE_FAILED = auto()
    CACHE_PAYLOAD_MALFORMED = auto()
    PROVIDER_FAILED = auto()
    REVIEW_UNPARSEABLE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


class InvalidTransition(Exception):
    """Raised when the escalation protocol is driven out of order."""
    pass


class ProviderInvocationError(Exception):
    """
    Raised when a model call fails.

    Fatal to the current attempt. Retry policy belongs to the caller.
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class ReviewParseError(ValueError):
    """Raised when a model reply does not contain a valid case review."""
    pass
