"""
Collaborator interfaces consumed by the discovery nodes.

Nodes depend only on these abstractions; the concrete implementations in
this package (Tavily search, domain trust scoring, ...) are wired together
by ``tuitionlift.agent``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from tuitionlift.schemas.profile import (
    DiscoveryResult,
    FinancialProfile,
    IncomeBracket,
    TrustReport,
    UserProfile,
    VerificationStatus,
)


class AnonymizedProfile(BaseModel):
    """The only profile view allowed to leave the system."""

    gpa: float | None = None
    major: str | None = None
    income_bracket: IncomeBracket | None = None
    pell_eligible: bool | None = None
    spikes: list[str] = Field(default_factory=list)
    sai_band: str | None = None  # Set only after the user approved SAI-band search
    merit_first: bool = False  # Student asked for merit aid and is above the need tiers

    model_config = ConfigDict(frozen=True, extra="forbid")


@dataclass(frozen=True)
class LoadedProfile:
    user_profile: UserProfile | None
    financial_profile: FinancialProfile | None


@dataclass(frozen=True)
class SearchQuery:
    """One search call: all query strings plus pacing between them."""

    terms: list[str]
    batch_delay_ms: int = 2000
    max_results: int = 10


@dataclass(frozen=True)
class SearchHit:
    title: str
    url: str
    content: str = ""
    score: float = 0.0


@dataclass(frozen=True)
class TrustScore:
    score: int
    report: TrustReport = field(default_factory=TrustReport)


@dataclass(frozen=True)
class CycleCheck:
    status: VerificationStatus
    deadline: date | None = None

    @property
    def active(self) -> bool:
        return self.status == VerificationStatus.VERIFIED


class ProfileLoader(ABC):
    @abstractmethod
    async def load(self, user_id: str) -> LoadedProfile:
        """Load a user's profiles. Missing data comes back as ``None``."""
        ...


class QueryGenerator(ABC):
    @abstractmethod
    async def generate(self, profile: AnonymizedProfile) -> list[str]:
        """Turn an anonymized profile into search query strings."""
        ...


class SearchClient(ABC):
    @abstractmethod
    async def search(self, query: SearchQuery) -> list[SearchHit]:
        """Run every term in ``query`` and return the raw hits."""
        ...


class TrustScorer(ABC):
    @abstractmethod
    def score(self, result: DiscoveryResult) -> TrustScore:
        """Score source trustworthiness 0..100; 0 means excluded."""
        ...


class CycleVerifier(ABC):
    @abstractmethod
    def verify(self, result: DiscoveryResult) -> CycleCheck:
        """Check the result's deadline against the academic cycle."""
        ...


class NeedMatchScorer(ABC):
    @abstractmethod
    def score(self, profile: FinancialProfile | None, result: DiscoveryResult) -> int:
        """Score how well a scholarship fits the student's financial need, 0..100."""
        ...


class ResultSink(ABC):
    @abstractmethod
    async def persist(self, thread_id: str, results: list[DiscoveryResult]) -> None:
        """Store verified results. Must be idempotent for a repeated list."""
        ...
