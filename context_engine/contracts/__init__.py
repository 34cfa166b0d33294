"""
Context Engine Contracts

Immutable data shared by every layer of the engine.
"""

from .base import (
    Severity,
    EvidenceType,
    EVIDENCE_TYPES,
    PHOTO_TYPES,
    CHAT_TYPE,
    ErrorCode,
    Error,
    InvalidTransition,
    ProviderInvocationError,
    ReviewParseError,
    ensure_utc,
    iso_millis,
)
from .evidence import (
    EvidenceEntry,
    TimelineEntry,
    CaseProfile,
    CaseSummary,
)
from .context import (
    ContextPass,
    PartitionSets,
    IncludedSet,
    CacheRecord,
)

__all__ = [
    'Severity', 'EvidenceType', 'EVIDENCE_TYPES', 'PHOTO_TYPES', 'CHAT_TYPE',
    'ErrorCode', 'Error',
    'InvalidTransition', 'ProviderInvocationError', 'ReviewParseError',
    'ensure_utc', 'iso_millis',
    'EvidenceEntry', 'TimelineEntry', 'CaseProfile', 'CaseSummary',
    'ContextPass', 'PartitionSets', 'IncludedSet', 'CacheRecord',
]
