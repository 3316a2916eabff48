"""
Need-Match Scorer - How well a scholarship fits the student's financial need.

Signals inferred from the page text (need-based, Pell-targeted, last-dollar,
merit-only) are compared against the student's need tier. Scores run 0-100
with 50 as neutral; without a financial profile every result scores 50.
The raw SAI is only read here, locally.
"""

import re
from dataclasses import dataclass

from tuitionlift.discovery.base import NeedMatchScorer
from tuitionlift.schemas.profile import DiscoveryResult, FinancialProfile, IncomeBracket

NEUTRAL_SCORE = 50

_NEED_BASED = [
    re.compile(r"\bneed[- ]?based\b"),
    re.compile(r"\bfinancial need\b"),
    re.compile(r"\blow income\b"),
    re.compile(r"\bincome[- ]?based\b"),
]
_PELL = [re.compile(r"\bpell\b"), re.compile(r"\bfederal aid\b")]
_LAST_DOLLAR = [
    re.compile(r"\blast[- ]?dollar\b"),
    re.compile(r"\bgap[- ]?filling\b"),
    re.compile(r"\bfills?\s+(the\s+)?gap\b"),
]
_MERIT = re.compile(r"\bmerit\b")

# Need tier when only the bracket is known (0 = highest need)
_BRACKET_TIERS = {
    IncomeBracket.LOW: 0,
    IncomeBracket.MODERATE: 2,
    IncomeBracket.MIDDLE: 3,
    IncomeBracket.UPPER_MIDDLE: 4,
    IncomeBracket.HIGH: 5,
}


@dataclass(frozen=True)
class NeedSignals:
    need_based: bool
    pell_targeted: bool
    last_dollar: bool
    merit_only: bool


def infer_need_signals(title: str, content: str) -> NeedSignals:
    text = f"{title} {content}".lower()
    need_based = any(p.search(text) for p in _NEED_BASED)
    pell = any(p.search(text) for p in _PELL)
    last_dollar = any(p.search(text) for p in _LAST_DOLLAR)
    merit_only = bool(_MERIT.search(text)) and not (need_based or pell or last_dollar)
    return NeedSignals(
        need_based=need_based or pell or last_dollar,
        pell_targeted=pell,
        last_dollar=last_dollar,
        merit_only=merit_only,
    )


def need_tier(profile: FinancialProfile) -> int:
    """0 (highest need) .. 5 (minimal need)."""
    sai = profile.estimated_sai
    if sai is None:
        return _BRACKET_TIERS.get(profile.household_income_bracket, 3)
    if sai <= 0:
        return 0
    if sai <= 2000:
        return 1
    if sai <= 5000:
        return 2
    if sai <= 15000:
        return 3
    if sai <= 35000:
        return 4
    return 5


class SignalNeedMatchScorer(NeedMatchScorer):
    def score(self, profile: FinancialProfile | None, result: DiscoveryResult) -> int:
        if profile is None:
            return NEUTRAL_SCORE

        signals = infer_need_signals(result.title, result.content)
        tier = need_tier(profile)
        pell = profile.is_pell_eligible
        bracket = profile.household_income_bracket
        low_need = bracket in (IncomeBracket.LOW, IncomeBracket.MODERATE)
        high_income = bracket in (IncomeBracket.UPPER_MIDDLE, IncomeBracket.HIGH)

        score = NEUTRAL_SCORE
        if signals.last_dollar:
            if pell or tier <= 1:
                score += 45
            elif tier <= 2:
                score += 35
            elif tier <= 3:
                score += 20
            else:
                score -= 15
        elif signals.need_based:
            if pell and low_need:
                score += 40
            elif pell or tier <= 2:
                score += 30
            elif tier <= 3:
                score += 15
            elif high_income:
                score -= 25
        elif signals.merit_only:
            if high_income:
                score += 5
            elif tier <= 2:
                score -= 10

        return max(0, min(100, score))
