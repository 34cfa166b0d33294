"""
Case Evidence Context Engine

Turns a growing case evidence log into a bounded, prioritized and
deterministic prompt context, and gates expensive whole-case analyses
behind an evidence fingerprint.

DIRECTION OF DEPENDENCY:
========================
model_adapter → context_engine

NEVER:
- The engine importing from model_adapter
- The engine performing the model call itself
- Reading the wall clock inside partitioning (`now` is a parameter)
"""

__version__ = "0.1.0"

from .contracts import (
    Severity,
    EvidenceType,
    EVIDENCE_TYPES,
    EvidenceEntry,
    TimelineEntry,
    CaseProfile,
    CaseSummary,
    ContextPass,
    PartitionSets,
    IncludedSet,
    CacheRecord,
)
from .severity import SeverityClassifier, classify_entry, DEFAULT_SEVERITY_TABLE
from .timeline import build_timeline, partition_timeline, TimelinePartitioner
from .assembly import assemble_context, assemble_pass
from .rendering import render_timeline, render_context, NO_EVIDENCE_SENTINEL
from .escalation import (
    EscalationDetector,
    EscalationProtocol,
    EscalationState,
    needs_more_context,
)
from .fingerprint import compute_fingerprint
from .cache import AnalysisCache, CachedAnalysis, cached_analysis
from .config import ContextConfig
from .observability import AuditTrail, AuditEventType

__all__ = [
    # Contracts
    'Severity', 'EvidenceType', 'EVIDENCE_TYPES',
    'EvidenceEntry', 'TimelineEntry', 'CaseProfile', 'CaseSummary',
    'ContextPass', 'PartitionSets', 'IncludedSet', 'CacheRecord',
    # Classification & partitioning
    'SeverityClassifier', 'classify_entry', 'DEFAULT_SEVERITY_TABLE',
    'build_timeline', 'partition_timeline', 'TimelinePartitioner',
    'assemble_context', 'assemble_pass',
    # Rendering
    'render_timeline', 'render_context', 'NO_EVIDENCE_SENTINEL',
    # Escalation
    'EscalationDetector', 'EscalationProtocol', 'EscalationState', 'needs_more_context',
    # Cache
    'compute_fingerprint', 'AnalysisCache', 'CachedAnalysis', 'cached_analysis',
    # Ambient
    'ContextConfig', 'AuditTrail', 'AuditEventType',
]
