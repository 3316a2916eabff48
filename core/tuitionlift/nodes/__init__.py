"""Discovery graph nodes."""

from tuitionlift.nodes.base import (
    PRIORITIZE,
    RECOVERY,
    SAI_CONFIRM,
    SEARCH,
    VERIFY,
    DiscoveryNode,
)
from tuitionlift.nodes.prioritize import PrioritizeNode
from tuitionlift.nodes.recovery import RecoveryNode
from tuitionlift.nodes.sai_confirm import SaiConfirmNode
from tuitionlift.nodes.search import SearchNode
from tuitionlift.nodes.verify import VerifyNode

__all__ = [
    "PRIORITIZE",
    "RECOVERY",
    "SAI_CONFIRM",
    "SEARCH",
    "VERIFY",
    "DiscoveryNode",
    "PrioritizeNode",
    "RecoveryNode",
    "SaiConfirmNode",
    "SearchNode",
    "VerifyNode",
]
