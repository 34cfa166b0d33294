"""
Canonical Prompt Generation
===========================

Pure functions building model prompts from rendered case context.

INVARIANT: same inputs → same prompt_hash.
No wall-clock reads: case duration is computed against an explicit `now`.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence
import hashlib

from context_engine.contracts import (
    CaseProfile, CaseSummary, ContextPass, EvidenceEntry, ensure_utc,
)
from context_engine.rendering import (
    NO_PROFILE_SENTINEL,
    PhotoRow,
    TimelineRow,
    render_photo_list,
    render_timeline_rows,
)


DEFAULT_BASE_PROMPT = "You are a tenant advocacy assistant."

HIGH_PRIORITY_NOTICE = (
    "Items tagged [CRITICAL] or [IMPORTANT] are high-priority evidence. "
    "Always reference these when relevant."
)

REVIEW_SYSTEM_PROMPT = (
    "You are a legal analyst. Always respond with valid JSON matching the requested format."
)


@dataclass(frozen=True)
class CanonicalPrompt:
    """
    Frozen prompt with hash for deterministic tracking.

    INVARIANT: same kind + same inputs → same prompt_hash
    """
    kind: str
    prompt_text: str
    prompt_hash: str

    @staticmethod
    def create(kind: str, prompt_text: str) -> 'CanonicalPrompt':
        return CanonicalPrompt(
            kind=kind,
            prompt_text=prompt_text,
            prompt_hash=hashlib.sha256(prompt_text.encode()).hexdigest()
        )


def build_chat_system_prompt(
    evidence_text: str,
    context_pass: ContextPass,
    case_text: str,
    profile_text: str = "",
    base_prompt: Optional[str] = None
) -> CanonicalPrompt:
    """System prompt for one chat pass, evidence context embedded."""
    text = f"""{base_prompt or DEFAULT_BASE_PROMPT}

## TENANT PROFILE
{profile_text or NO_PROFILE_SENTINEL}

## CURRENT CASE
{case_text}

## EVIDENCE & COMMUNICATION LOG
{HIGH_PRIORITY_NOTICE}
{evidence_text}

Remember: You have access to the tenant's case information above. Use this context to provide personalized, actionable advice. Reference specific dates, communications, and evidence when relevant.

IMPORTANT: The TENANT PROFILE section contains the USER's personal information - NOT yours. Never offer contact details of your own.

If the log above is not enough to answer, say that you need more context instead of guessing.

CONTEXT-PASS MODE: {context_pass.mode_label}"""
    return CanonicalPrompt.create(f"chat_{context_pass.value}", text)


def case_duration_days(
    entries: Sequence[EvidenceEntry],
    now: datetime,
    summary: Optional[CaseSummary] = None
) -> int:
    """Whole days from the first logged entry (or case creation) to `now`."""
    if entries:
        start = entries[0].created_at
    elif summary is not None and summary.created_at is not None:
        start = ensure_utc(summary.created_at)
    else:
        return 0
    return max(0, (ensure_utc(now) - start).days)


def _line(label: str, value: Optional[str]) -> str:
    return f"{label}: {value}" if value else ""


def build_case_review_prompt(
    summary: CaseSummary,
    timeline: Sequence[TimelineRow],
    photos: Sequence[PhotoRow],
    duration_days: int,
    profile: Optional[CaseProfile] = None
) -> CanonicalPrompt:
    """Case-strength review prompt with the required JSON output schema."""
    profile = profile or CaseProfile()
    if profile.address:
        unit = f", Unit {profile.unit_number}" if profile.unit_number else ""
        address_line = f"Property Address: {profile.address}{unit}"
    else:
        address_line = "Address: Not provided"

    profile_lines = "\n".join(line for line in (
        _line("Name", profile.full_name) or "Name: Not provided",
        address_line,
        _line("Property Management", profile.rental_agency),
        _line("Property Manager", profile.property_manager_name),
        _line("Lease Start", profile.lease_start_date),
        _line("Monthly Rent", profile.monthly_rent),
    ) if line)

    text = f"""You are a legal analyst specializing in tenant rights and housing law. Analyze this tenant's case and provide a comprehensive litigation assessment.

## TENANT PROFILE
{profile_lines}

## CASE INFORMATION
Title: {summary.title}
Description: {summary.description}
Status: {summary.status}
Case Duration: {duration_days} days
Total Evidence Items: {len(timeline)}
Photos Documented: {len(photos)}

## EVIDENCE TIMELINE
Items tagged [CRITICAL] or [IMPORTANT] are high-priority evidence that must be addressed in your analysis.
{render_timeline_rows(timeline)}

## PHOTO EVIDENCE
{render_photo_list(photos)}

## ANALYSIS INSTRUCTIONS
Pay special attention to entries marked [CRITICAL]: these represent health hazards, legal deadlines, or severe conditions. Entries marked [IMPORTANT] indicate significant communications or documentation.

Based on the tenant's location ({profile.address or 'address not provided'}), identify relevant local housing codes and tenant protection laws. Analyze:

1. Timeline Analysis: chronology of events, landlord response times, patterns of delay or neglect.
2. Code Violations: habitability, safety and health requirements, local ordinances.
3. Evidence Strength: written vs verbal communications, photo documentation, dated records.
4. Landlord Response Pattern: acknowledgement, unfinished repairs, signs of retaliation.
5. Litigation Recommendation: strong, moderate or weak.

## REQUIRED OUTPUT FORMAT
Provide your response in this exact JSON format:
{{
  "summary": "2-3 sentence executive summary of the case",
  "evidenceScore": <number 1-10>,
  "recommendation": "strong" | "moderate" | "weak",
  "violations": [
    {{
      "code": "Specific code or law citation",
      "description": "What the violation is",
      "severity": "high" | "medium" | "low"
    }}
  ],
  "timelineAnalysis": "Analysis of the timeline and landlord response patterns",
  "nextSteps": ["Specific actionable step"],
  "strengthFactors": ["Factors strengthening the case"],
  "weaknessFactors": ["Factors weakening the case"]
}}"""
    return CanonicalPrompt.create("case_review", text)
