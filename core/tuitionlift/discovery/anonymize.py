"""
Profile anonymization applied before any external call.

Only GPA, major, income bracket, Pell status and scrubbed activity labels
leave the system. The raw SAI never does; at most its band, and only after
the student approved SAI-band search. The merit-first flag says only that
the SAI is above the merit-lean threshold.
"""

import re

from tuitionlift.discovery.base import AnonymizedProfile
from tuitionlift.schemas.profile import (
    MERIT_LEAN_THRESHOLD,
    FinancialProfile,
    MeritPreference,
    UserProfile,
)

MAX_SPIKES = 10
MAX_SPIKE_LENGTH = 100

_SPIKE_PII_PATTERNS = [
    re.compile(r"\b(?:mr\.?|mrs\.?|ms\.?|dr\.?)\s+\w+", re.IGNORECASE),
    re.compile(r"coach\s+\w+", re.IGNORECASE),
    re.compile(r"\bteam\s+[A-Z][a-z]+"),
    re.compile(r"\d{3}[-.]?\d{3}[-.]?\d{4}"),
]


def sai_band(sai: int) -> str:
    """Search-safe SAI band aligned with federal need tiers."""
    if sai <= 0:
        return "-1500-0"
    if sai <= 2000:
        return "0-2000"
    if sai <= 5000:
        return "2000-5000"
    if sai <= 15000:
        return "5000-15000"
    if sai <= 35000:
        return "15000-35000"
    return "35000+"


def scrub_spikes(raw: list[str]) -> list[str]:
    """Keep activity labels; replace any that look like names or phone numbers."""
    safe = []
    for i, label in enumerate(raw[:MAX_SPIKES]):
        text = str(label).strip()[:MAX_SPIKE_LENGTH]
        if not text:
            continue
        if any(p.search(text) for p in _SPIKE_PII_PATTERNS):
            safe.append(f"{{{{SPIKE_{i + 1}}}}}")
        else:
            safe.append(text)
    return safe


def is_merit_first(user: UserProfile | None, financial: FinancialProfile | None) -> bool:
    """Student chose "merit_only" and their SAI sits at or above the merit-lean threshold."""
    if user is None or user.merit_filter_preference != MeritPreference.MERIT_ONLY:
        return False
    sai = financial.estimated_sai if financial else None
    return sai is not None and sai >= MERIT_LEAN_THRESHOLD


def anonymize_profile(
    user: UserProfile | None,
    financial: FinancialProfile | None,
    include_sai_band: bool = False,
) -> AnonymizedProfile:
    """
    Build the external-safe view of a student's profile.

    Args:
        user: Academic profile
        financial: Financial profile (raw SAI stays local)
        include_sai_band: Add the SAI band; callers pass True only when
            SAI-band search was requested and approved

    Returns:
        AnonymizedProfile
    """
    major = user.major.strip() if user and user.major and user.major.strip() else None
    band = None
    if include_sai_band and financial is not None and financial.estimated_sai is not None:
        band = sai_band(financial.estimated_sai)

    return AnonymizedProfile(
        gpa=user.gpa if user else None,
        major=major,
        income_bracket=financial.household_income_bracket if financial else None,
        pell_eligible=financial.is_pell_eligible if financial else None,
        spikes=scrub_spikes(user.spikes) if user else [],
        sai_band=band,
        merit_first=is_merit_first(user, financial),
    )
