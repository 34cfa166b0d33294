"""
Case Strength Review
====================

Whole-case litigation assessment, gated by the evidence fingerprint.

FLOW:
    fingerprint(evidence) == cached fingerprint → cached review
    otherwise → prompt → model → validated review → cache overwrite

Model output is ADVISORY: it is validated into CaseStrengthReview and
rejected (ReviewParseError) when it does not fit the schema. Cached
payloads that no longer validate are treated as a miss.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Literal, Optional, Sequence
import json
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from context_engine.assembly import assemble_pass
from context_engine.cache import AnalysisCache, cached_analysis
from context_engine.config import ContextConfig
from context_engine.contracts import (
    CaseProfile,
    CaseSummary,
    ContextPass,
    Error,
    ErrorCode,
    EvidenceEntry,
    ProviderInvocationError,
    ReviewParseError,
)
from context_engine.observability import AuditEventType, AuditTrail
from context_engine.rendering import build_photo_list, render_evidence_timeline

from .prompts import REVIEW_SYSTEM_PROMPT, build_case_review_prompt, case_duration_days
from .providers.base import ChatMessage, ChatRequest, InvocationParams, LLMProvider


# Greedy: first "{" through last "}" of the reply
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class Violation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    description: str
    severity: Literal["high", "medium", "low"]


class CaseStrengthReview(BaseModel):
    """Validated case review as returned by the model."""
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    evidence_score: float = Field(alias="evidenceScore", ge=1, le=10)
    recommendation: Literal["strong", "moderate", "weak"]
    violations: List[Violation] = Field(default_factory=list)
    timeline_analysis: str = Field(default="", alias="timelineAnalysis")
    next_steps: List[str] = Field(default_factory=list, alias="nextSteps")
    strength_factors: List[str] = Field(default_factory=list, alias="strengthFactors")
    weakness_factors: List[str] = Field(default_factory=list, alias="weaknessFactors")

    def to_payload(self) -> dict:
        """JSON-compatible dict with the wire (camelCase) field names."""
        return self.model_dump(by_alias=True)


def extract_review(text: Optional[str]) -> CaseStrengthReview:
    """Pull the JSON object out of a model reply and validate it."""
    match = _JSON_BLOCK.search(text or "")
    if match is None:
        raise ReviewParseError("No JSON object in model reply")
    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        raise ReviewParseError(f"Malformed JSON in model reply: {e}") from e
    try:
        return CaseStrengthReview.model_validate(data)
    except ValidationError as e:
        raise ReviewParseError(f"Model reply does not match review schema: {e}") from e


def _is_valid_payload(payload: Any) -> bool:
    try:
        CaseStrengthReview.model_validate(payload)
    except ValidationError:
        return False
    return True


@dataclass(frozen=True)
class ReviewOutcome:
    review: CaseStrengthReview
    fingerprint: str
    cached: bool


class CaseReviewService:
    """
    Cached case-strength review.

    Unchanged evidence → the model is called once, ever. Any change to an
    evidence entry (not to chat) → one new call and a cache overwrite.
    """

    def __init__(
        self,
        provider: LLMProvider,
        cache: AnalysisCache,
        config: Optional[ContextConfig] = None,
        image_loader: Optional[Callable[[str], Optional[str]]] = None,
        params: Optional[InvocationParams] = None,
        audit: Optional[AuditTrail] = None
    ):
        """
        Args:
            image_loader: Maps a photo's file reference to an image URL
                (data: or http) for multimodal review; None skips images
        """
        self._provider = provider
        self._cache = cache
        self._config = config or ContextConfig()
        self._image_loader = image_loader
        self._params = params or InvocationParams()
        self._audit = audit

    def _record_error(self, code: ErrorCode, message: str, detail: str):
        if self._audit is None:
            return
        error = Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
        ).with_context('detail', detail)
        self._audit.record_error(error, entity_id="case_review")

    def _image_urls(self, file_urls: Sequence[Optional[str]]) -> tuple:
        if self._image_loader is None:
            return ()
        urls = []
        for file_url in file_urls:
            if not file_url:
                continue
            url = self._image_loader(file_url)
            if url:
                urls.append(url)
        return tuple(urls)

    def _compute(
        self,
        entries: Sequence[EvidenceEntry],
        now: datetime,
        summary: CaseSummary,
        profile: Optional[CaseProfile]
    ) -> dict:
        classifier = self._config.classifier()
        partitions = self._config.partitioner().partition(entries, now)
        timeline = render_evidence_timeline(assemble_pass(partitions, ContextPass.PASS_2))
        photos = build_photo_list(entries, classifier)

        prompt = build_case_review_prompt(
            summary=summary,
            timeline=timeline,
            photos=photos,
            duration_days=case_duration_days(entries, now, summary),
            profile=profile,
        )

        limit = self._config.review_photo_limit
        recent_photos = photos[-limit:] if limit > 0 else []
        request = ChatRequest(
            system_prompt=REVIEW_SYSTEM_PROMPT,
            messages=(ChatMessage(role="user", content=prompt.prompt_text),),
            image_urls=self._image_urls([p.file_url for p in recent_photos]),
        )
        response = self._provider.invoke(request, self._params)
        if self._audit is not None:
            self._audit.record(AuditEventType.PROVIDER, "invoked", "case_review", {
                'provider': self._provider.provider_id,
                'success': response.success,
                'prompt_hash': prompt.prompt_hash[:16],
            })
        if not response.success:
            code = response.error_code.value if response.error_code else None
            message = f"{self._provider.provider_id} review call failed: {response.error_message}"
            self._record_error(ErrorCode.PROVIDER_FAILED, message, code or "")
            raise ProviderInvocationError(message, error_code=code)
        try:
            review = extract_review(response.content)
        except ReviewParseError as e:
            self._record_error(ErrorCode.REVIEW_UNPARSEABLE, str(e), prompt.prompt_hash[:16])
            raise
        return review.to_payload()

    def review(
        self,
        case_id: object,
        entries: Sequence[EvidenceEntry],
        now: datetime,
        summary: CaseSummary,
        profile: Optional[CaseProfile] = None
    ) -> ReviewOutcome:
        outcome = cached_analysis(
            self._cache,
            case_id,
            entries,
            compute=lambda: self._compute(entries, now, summary, profile),
            classifier=self._config.classifier(),
            fingerprint_length=self._config.fingerprint_length,
            accept=_is_valid_payload,
            audit=self._audit,
        )
        return ReviewOutcome(
            review=CaseStrengthReview.model_validate(outcome.result),
            fingerprint=outcome.fingerprint,
            cached=outcome.cached,
        )
