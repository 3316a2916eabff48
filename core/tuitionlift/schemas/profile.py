"""
Discovery Schemas - Profiles, results and milestones carried in workflow state.

Every entity here is immutable once created; nodes build new lists instead of
mutating the ones they received.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

SAI_MIN = -1500
SAI_MAX = 999_999

# SAI at or above which a "merit_only" student gets merit-first queries
MERIT_LEAN_THRESHOLD = 30_000


class IncomeBracket(StrEnum):
    """Household income tier derived from the Student Aid Index."""

    LOW = "Low"
    MODERATE = "Moderate"
    MIDDLE = "Middle"
    UPPER_MIDDLE = "Upper-Middle"
    HIGH = "High"


class TrustTier(StrEnum):
    """Source reputation tier assigned by the trust scorer."""

    HIGH_TRUST = "high_trust"
    VETTED_COMMERCIAL = "vetted_commercial"
    UNDER_REVIEW = "under_review"


class VerificationStatus(StrEnum):
    """Outcome of checking a deadline against the academic cycle."""

    VERIFIED = "verified"
    POTENTIALLY_EXPIRED = "potentially_expired"
    AMBIGUOUS_DEADLINE = "ambiguous_deadline"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"


class MeritPreference(StrEnum):
    SHOW_ALL = "show_all"
    MERIT_ONLY = "merit_only"


class MilestoneStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def income_bracket_for_sai(sai: int) -> IncomeBracket:
    """
    Map a Student Aid Index onto a household income bracket.

    Args:
        sai: Student Aid Index (-1500..999999)

    Returns:
        The bracket the SAI falls into
    """
    if sai <= 0:
        return IncomeBracket.LOW
    if sai <= 5000:
        return IncomeBracket.MODERATE
    if sai <= 15000:
        return IncomeBracket.MIDDLE
    if sai <= 35000:
        return IncomeBracket.UPPER_MIDDLE
    return IncomeBracket.HIGH


class UserProfile(BaseModel):
    """Academic profile of the student the run is for."""

    id: str
    major: str | None = None
    state: str | None = None
    gpa: float | None = Field(default=None, ge=0, le=6)
    spikes: list[str] = Field(default_factory=list)  # Extracurricular "spike" labels
    merit_filter_preference: MeritPreference = MeritPreference.SHOW_ALL

    model_config = ConfigDict(frozen=True)


class FinancialProfile(BaseModel):
    """Financial aid data; estimated_sai is the sensitive value behind the HITL gate."""

    estimated_sai: int | None = Field(default=None, ge=SAI_MIN, le=SAI_MAX)
    is_pell_eligible: bool = False
    household_income_bracket: IncomeBracket | None = None

    model_config = ConfigDict(frozen=True)


class TrustReport(BaseModel):
    """Explanation attached to a trust score."""

    tier: TrustTier = TrustTier.UNDER_REVIEW
    domain: str = ""
    longevity_score: int = 0
    fee_check: str = "pass"  # "pass" | "fail"
    summary: str = ""

    model_config = ConfigDict(frozen=True)


class DiscoveryResult(BaseModel):
    """
    One scholarship candidate.

    Search fills the identity and content fields; Verify adds trust and
    need-match scores, the deadline check and categories.
    """

    id: str
    discovery_run_id: str
    title: str
    url: str
    content: str = ""
    relevance: float = 0.0
    trust_score: int | None = None
    need_match_score: int | None = None
    trust_report: TrustReport | None = None
    verification_status: VerificationStatus | None = None
    deadline: str | None = None  # ISO date
    categories: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ActiveMilestone(BaseModel):
    """A prioritized application step surfaced to the student."""

    id: str
    scholarship_id: str
    title: str
    priority: int
    status: MilestoneStatus = MilestoneStatus.PENDING
    composite_score: float = 0.0

    model_config = ConfigDict(frozen=True)


class Message(BaseModel):
    """User-facing message produced by a node."""

    role: str = "assistant"
    content: str
    node: str | None = None

    model_config = ConfigDict(frozen=True)


class ErrorLogEntry(BaseModel):
    """Durable record of a node fault: ``{node, message, timestamp}``."""

    node: str
    message: str
    timestamp: str  # ISO 8601 format

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_exception(cls, node: str, exc: BaseException) -> "ErrorLogEntry":
        message = str(exc) or type(exc).__name__
        return cls(node=node, message=message, timestamp=datetime.now(UTC).isoformat())
