"""External collaborators used by the discovery nodes."""

from tuitionlift.discovery.anonymize import anonymize_profile, sai_band, scrub_spikes
from tuitionlift.discovery.base import (
    AnonymizedProfile,
    CycleCheck,
    CycleVerifier,
    LoadedProfile,
    NeedMatchScorer,
    ProfileLoader,
    QueryGenerator,
    ResultSink,
    SearchClient,
    SearchHit,
    SearchQuery,
    TrustScore,
    TrustScorer,
)
from tuitionlift.discovery.categories import infer_categories
from tuitionlift.discovery.cycle_verifier import AcademicCycleVerifier
from tuitionlift.discovery.deduplicator import deduplicate
from tuitionlift.discovery.need_match_scorer import SignalNeedMatchScorer
from tuitionlift.discovery.profile_loader import JsonProfileLoader, require_complete
from tuitionlift.discovery.query_generator import LiteLLMQueryGenerator, TemplateQueryGenerator
from tuitionlift.discovery.result_sink import FileResultSink, InMemoryResultSink
from tuitionlift.discovery.search_client import TavilySearchClient
from tuitionlift.discovery.trust_scorer import DomainTrustScorer

__all__ = [
    "AcademicCycleVerifier",
    "AnonymizedProfile",
    "CycleCheck",
    "CycleVerifier",
    "DomainTrustScorer",
    "FileResultSink",
    "InMemoryResultSink",
    "JsonProfileLoader",
    "LiteLLMQueryGenerator",
    "LoadedProfile",
    "NeedMatchScorer",
    "ProfileLoader",
    "QueryGenerator",
    "ResultSink",
    "SearchClient",
    "SearchHit",
    "SearchQuery",
    "SignalNeedMatchScorer",
    "TavilySearchClient",
    "TemplateQueryGenerator",
    "TrustScore",
    "TrustScorer",
    "anonymize_profile",
    "deduplicate",
    "infer_categories",
    "require_complete",
    "sai_band",
    "scrub_spikes",
]
