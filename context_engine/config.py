"""
Engine Configuration

Static, injectable settings for partitioning, escalation and caching.

WHY FROZEN:
Config must not change during a request. Changes require a new
config instance.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
import os

from .contracts.base import Severity
from .cache import DEFAULT_KEY_PREFIX
from .escalation import DEFAULT_ESCALATION_PHRASES, EscalationDetector
from .fingerprint import FINGERPRINT_LENGTH
from .severity import DEFAULT_SEVERITY_TABLE, SeverityClassifier
from .timeline import MAX_BACKFILL, RECENT_WINDOW_DAYS, TimelinePartitioner


ENV_PREFIX = "CASECTX_"


@dataclass(frozen=True)
class ContextConfig:
    recent_window_days: int = RECENT_WINDOW_DAYS
    max_backfill: int = MAX_BACKFILL
    severity_defaults: Mapping[str, Severity] = field(
        default_factory=lambda: dict(DEFAULT_SEVERITY_TABLE)
    )
    escalation_phrases: Tuple[str, ...] = DEFAULT_ESCALATION_PHRASES
    cache_key_prefix: str = DEFAULT_KEY_PREFIX
    fingerprint_length: int = FINGERPRINT_LENGTH

    # Prompt building
    chat_history_limit: int = 10
    review_photo_limit: int = 5

    def __post_init__(self):
        if self.recent_window_days < 0:
            raise ValueError("recent_window_days must be >= 0")
        if self.max_backfill < 0:
            raise ValueError("max_backfill must be >= 0")
        if not 1 <= self.fingerprint_length <= 64:
            raise ValueError("fingerprint_length must be between 1 and 64")
        if self.chat_history_limit < 0 or self.review_photo_limit < 0:
            raise ValueError("limits must be >= 0")

    def classifier(self) -> SeverityClassifier:
        return SeverityClassifier(self.severity_defaults)

    def detector(self) -> EscalationDetector:
        return EscalationDetector(self.escalation_phrases)

    def partitioner(self) -> TimelinePartitioner:
        return TimelinePartitioner(
            classifier=self.classifier(),
            recent_window_days=self.recent_window_days,
            max_backfill=self.max_backfill,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ContextConfig':
        """
        Defaults overridden by CASECTX_* variables.

        CASECTX_RECENT_WINDOW_DAYS, CASECTX_MAX_BACKFILL,
        CASECTX_CACHE_KEY_PREFIX, CASECTX_FINGERPRINT_LENGTH
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            recent_window_days=int(env.get(f"{ENV_PREFIX}RECENT_WINDOW_DAYS", defaults.recent_window_days)),
            max_backfill=int(env.get(f"{ENV_PREFIX}MAX_BACKFILL", defaults.max_backfill)),
            cache_key_prefix=env.get(f"{ENV_PREFIX}CACHE_KEY_PREFIX", defaults.cache_key_prefix),
            fingerprint_length=int(env.get(f"{ENV_PREFIX}FINGERPRINT_LENGTH", defaults.fingerprint_length)),
        )
