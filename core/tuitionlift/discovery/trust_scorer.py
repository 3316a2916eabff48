"""
Domain Trust Scorer - Source reputation for scholarship pages.

Upfront-fee language is a hard exclusion (score 0). Otherwise the score is
a base for the domain tier plus a longevity credit:

    .edu / .gov     high_trust         base 75
    .org / .com     vetted_commercial  base 50
    anything else   under_review       base 25

Domain age is not looked up; every domain gets the fixed midpoint age.
"""

import re
from urllib.parse import urlparse

from tuitionlift.discovery.base import TrustScore, TrustScorer
from tuitionlift.schemas.profile import DiscoveryResult, TrustReport, TrustTier

FEE_PATTERNS = [
    re.compile(r"application fee", re.IGNORECASE),
    re.compile(r"processing fee", re.IGNORECASE),
    re.compile(r"guarantee fee", re.IGNORECASE),
    re.compile(r"upfront fee", re.IGNORECASE),
    re.compile(r"\$[\d,]+\s*(?:application|processing|to apply)", re.IGNORECASE),
    re.compile(r"pay.*(?:application|processing|fee)", re.IGNORECASE),
]

FEE_REPORT = "Fee required (application, processing, or guarantee fee detected). Excluded."

DEFAULT_DOMAIN_AGE_YEARS = 12

_BASE_SCORES = {
    TrustTier.HIGH_TRUST: 75,
    TrustTier.VETTED_COMMERCIAL: 50,
    TrustTier.UNDER_REVIEW: 25,
}

_TIER_LABELS = {
    TrustTier.HIGH_TRUST: "High-trust .edu/.gov source",
    TrustTier.VETTED_COMMERCIAL: "Vetted commercial source",
    TrustTier.UNDER_REVIEW: "Under review (unknown domain)",
}


def suggests_upfront_fee(title: str, content: str) -> bool:
    text = f"{title} {content}"
    return any(p.search(text) for p in FEE_PATTERNS)


def hostname_of(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host.removeprefix("www.")


def domain_tier(hostname: str) -> TrustTier:
    if hostname.endswith((".edu", ".gov")):
        return TrustTier.HIGH_TRUST
    if hostname.endswith((".org", ".com")):
        return TrustTier.VETTED_COMMERCIAL
    return TrustTier.UNDER_REVIEW


def longevity_score(years: int) -> int:
    """Map domain age in years to a 0-25 credit."""
    if years <= 0:
        return 0
    if years >= 10:
        return 25
    if years >= 5:
        return 20
    if years >= 3:
        return 15
    if years >= 1:
        return 10
    return 5


class DomainTrustScorer(TrustScorer):
    def __init__(self, domain_age_years: int = DEFAULT_DOMAIN_AGE_YEARS):
        self.domain_age_years = domain_age_years

    def score(self, result: DiscoveryResult) -> TrustScore:
        hostname = hostname_of(result.url) or "unknown"

        if suggests_upfront_fee(result.title, result.content):
            return TrustScore(
                score=0,
                report=TrustReport(
                    tier=TrustTier.UNDER_REVIEW,
                    domain=hostname,
                    longevity_score=0,
                    fee_check="fail",
                    summary=FEE_REPORT,
                ),
            )

        tier = domain_tier(hostname)
        longevity = longevity_score(self.domain_age_years)
        total = max(0, min(100, _BASE_SCORES[tier] + longevity))

        if longevity >= 15:
            note = f"; domain established (longevity +{longevity})"
        elif longevity > 0:
            note = f"; longevity +{longevity}"
        else:
            note = ""

        return TrustScore(
            score=total,
            report=TrustReport(
                tier=tier,
                domain=hostname,
                longevity_score=longevity,
                fee_check="pass",
                summary=f"{_TIER_LABELS[tier]}{note}; no fees.",
            ),
        )
