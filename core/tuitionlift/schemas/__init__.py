"""Schema definitions for discovery runs."""

from tuitionlift.schemas.profile import (
    ActiveMilestone,
    DiscoveryResult,
    ErrorLogEntry,
    FinancialProfile,
    IncomeBracket,
    Message,
    MilestoneStatus,
    TrustReport,
    TrustTier,
    UserProfile,
)

__all__ = [
    "ActiveMilestone",
    "DiscoveryResult",
    "ErrorLogEntry",
    "FinancialProfile",
    "IncomeBracket",
    "Message",
    "MilestoneStatus",
    "TrustReport",
    "TrustTier",
    "UserProfile",
]
