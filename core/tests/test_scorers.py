"""Tests for trust scoring, need matching and hit deduplication."""

import pytest
from fakes import make_financial

from tuitionlift.discovery import DomainTrustScorer, SearchHit, SignalNeedMatchScorer, deduplicate
from tuitionlift.discovery.need_match_scorer import infer_need_signals, need_tier
from tuitionlift.discovery.trust_scorer import (
    FEE_REPORT,
    domain_tier,
    hostname_of,
    longevity_score,
    suggests_upfront_fee,
)
from tuitionlift.schemas.profile import (
    DiscoveryResult,
    FinancialProfile,
    IncomeBracket,
    TrustTier,
)


def _result(url="https://www.stateu.edu/aid", title="Grant", content="") -> DiscoveryResult:
    return DiscoveryResult(
        id="r1", discovery_run_id="run-1", title=title, url=url, content=content, relevance=0.5
    )


class TestDomainTrustScorer:
    @pytest.mark.parametrize(
        "url,score,tier",
        [
            ("https://www.stateu.edu/aid", 100, TrustTier.HIGH_TRUST),
            ("https://studentaid.gov/grants", 100, TrustTier.HIGH_TRUST),
            ("https://foundation.org/award", 75, TrustTier.VETTED_COMMERCIAL),
            ("https://scholarships.com/x", 75, TrustTier.VETTED_COMMERCIAL),
            ("https://grants.example.io/x", 50, TrustTier.UNDER_REVIEW),
        ],
    )
    def test_tier_scores(self, url, score, tier):
        trust = DomainTrustScorer().score(_result(url=url))
        assert trust.score == score
        assert trust.report.tier == tier
        assert trust.report.fee_check == "pass"
        assert trust.report.summary.endswith("no fees.")

    def test_fee_language_scores_zero(self):
        trust = DomainTrustScorer().score(
            _result(content="Submit with a $30 application fee by May 1.")
        )
        assert trust.score == 0
        assert trust.report.fee_check == "fail"
        assert trust.report.summary == FEE_REPORT

    def test_young_domain_gets_less_credit(self):
        trust = DomainTrustScorer(domain_age_years=2).score(_result())
        assert trust.score == 85
        assert "longevity +10" in trust.report.summary

    def test_report_names_domain(self):
        trust = DomainTrustScorer().score(_result())
        assert trust.report.domain == "stateu.edu"
        assert trust.report.longevity_score == 25


def test_fee_patterns():
    assert suggests_upfront_fee("", "Processing Fee required")
    assert suggests_upfront_fee("", "You must pay before we review your essay fee")
    assert not suggests_upfront_fee("Free scholarship", "No cost to apply")


def test_domain_helpers():
    assert hostname_of("https://WWW.Example.EDU/path") == "example.edu"
    assert hostname_of("not a url") == ""
    assert domain_tier("agency.gov") == TrustTier.HIGH_TRUST
    assert domain_tier("unknown") == TrustTier.UNDER_REVIEW
    assert [longevity_score(y) for y in (0, 1, 3, 5, 10)] == [0, 10, 15, 20, 25]


class TestNeedMatchScorer:
    def test_neutral_without_profile(self):
        assert SignalNeedMatchScorer().score(None, _result(content="need-based grant")) == 50

    def test_need_based_for_pell_moderate(self):
        result = _result(content="A need-based grant for Pell eligible students.")
        assert SignalNeedMatchScorer().score(make_financial(sai=1500), result) == 90

    def test_last_dollar_for_pell(self):
        result = _result(content="A last-dollar award that fills the gap.")
        assert SignalNeedMatchScorer().score(make_financial(sai=1500), result) == 95

    def test_merit_only_penalized_for_high_need(self):
        result = _result(content="A merit scholarship.")
        assert SignalNeedMatchScorer().score(make_financial(sai=1500), result) == 40

    def test_need_based_penalized_for_high_income(self):
        profile = FinancialProfile(
            estimated_sai=50000,
            is_pell_eligible=False,
            household_income_bracket=IncomeBracket.HIGH,
        )
        result = _result(content="Awarded on financial need.")
        assert SignalNeedMatchScorer().score(profile, result) == 25

    def test_merit_bonus_for_high_income(self):
        profile = FinancialProfile(
            estimated_sai=50000,
            is_pell_eligible=False,
            household_income_bracket=IncomeBracket.HIGH,
        )
        assert SignalNeedMatchScorer().score(profile, _result(content="merit award")) == 55

    def test_bracket_used_when_sai_unknown(self):
        profile = FinancialProfile(
            estimated_sai=None,
            is_pell_eligible=False,
            household_income_bracket=IncomeBracket.LOW,
        )
        assert need_tier(profile) == 0

    def test_signals(self):
        signals = infer_need_signals("Merit and need-based award", "")
        assert signals.need_based
        assert not signals.merit_only


class TestDeduplicate:
    def test_merges_same_url(self):
        hits = [
            SearchHit(title="Low", url="https://a.edu/x", content="first", score=0.2),
            SearchHit(title="Other", url="https://b.org/y", content="b", score=0.5),
            SearchHit(title="High", url="https://a.edu/x", content="second", score=0.9),
        ]
        merged = deduplicate(hits)

        assert [h.url for h in merged] == ["https://a.edu/x", "https://b.org/y"]
        assert merged[0].title == "High"
        assert merged[0].score == 0.9
        assert merged[0].content == "second\n\nfirst"

    def test_drops_blank_urls(self):
        hits = [SearchHit(title="x", url="  ", content="", score=1.0)]
        assert deduplicate(hits) == []

    def test_identical_content_not_repeated(self):
        hits = [
            SearchHit(title="a", url="https://a.edu", content="same", score=0.1),
            SearchHit(title="b", url="https://a.edu", content="same", score=0.2),
        ]
        assert deduplicate(hits)[0].content == "same"
