"""Load student profiles from JSON files and enforce run preconditions."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tuitionlift.discovery.base import LoadedProfile, ProfileLoader
from tuitionlift.errors import ProfileIncompleteError
from tuitionlift.schemas.profile import (
    SAI_MAX,
    SAI_MIN,
    FinancialProfile,
    MeritPreference,
    UserProfile,
    income_bracket_for_sai,
)

logger = logging.getLogger(__name__)

UNDECIDED_MAJOR = "Undecided"


def is_sai_in_valid_range(sai: Any) -> bool:
    """Federal Student Aid Index range check (-1500..999999)."""
    return isinstance(sai, int) and not isinstance(sai, bool) and SAI_MIN <= sai <= SAI_MAX


def is_undecided_major(major: str | None) -> bool:
    return (major or "").strip().lower() in ("", "undecided")


def require_complete(profile: LoadedProfile, user_id: str) -> None:
    """
    Reject a profile that cannot drive discovery.

    Raises:
        ProfileIncompleteError: No user profile, or missing major or state
    """
    user = profile.user_profile
    if user is None:
        raise ProfileIncompleteError(user_id, ["profile"])
    missing = []
    if not (user.major or "").strip():
        missing.append("major")
    if not (user.state or "").strip():
        missing.append("state")
    if missing:
        raise ProfileIncompleteError(user_id, missing)


class JsonProfileLoader(ProfileLoader):
    """
    Reads ``{profiles_dir}/{user_id}.json``.

    File layout:
        {
          "user_profile": {"major": "...", "state": "...", "gpa": 3.6, "spikes": [...],
                           "merit_filter_preference": "merit_only"},
          "financial_profile": {"estimated_sai": 1800, "is_pell_eligible": true}
        }

    ``household_income_bracket`` is always derived from the SAI at read time.
    A blank or "undecided" major is stored as "Undecided".
    Any merit preference other than "merit_only" means "show_all".
    An SAI outside the federal range drops the financial profile.
    """

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = Path(profiles_dir)

    async def load(self, user_id: str) -> LoadedProfile:
        path = self.profiles_dir / f"{user_id}.json"

        def _read() -> dict | None:
            if not path.exists():
                return None
            with open(path, encoding="utf-8-sig") as f:
                return json.load(f)

        data = await asyncio.to_thread(_read)
        if data is None:
            logger.warning(f"No profile file for user {user_id}")
            return LoadedProfile(user_profile=None, financial_profile=None)

        return LoadedProfile(
            user_profile=self._user_profile(user_id, data.get("user_profile")),
            financial_profile=self._financial_profile(user_id, data.get("financial_profile")),
        )

    @staticmethod
    def _user_profile(user_id: str, raw: dict | None) -> UserProfile | None:
        if not raw:
            return None
        fields = {**raw, "id": user_id}
        if is_undecided_major(fields.get("major")):
            fields["major"] = UNDECIDED_MAJOR
        if fields.get("merit_filter_preference") != MeritPreference.MERIT_ONLY:
            fields["merit_filter_preference"] = MeritPreference.SHOW_ALL
        try:
            return UserProfile.model_validate(fields)
        except ValidationError as e:
            logger.warning(f"Invalid user profile for {user_id}: {e}")
            return None

    @staticmethod
    def _financial_profile(user_id: str, raw: dict | None) -> FinancialProfile | None:
        if not raw:
            return None
        sai = raw.get("estimated_sai")
        if sai is not None and not is_sai_in_valid_range(sai):
            logger.warning(f"Rejecting out-of-range SAI for {user_id}")
            return None
        return FinancialProfile(
            estimated_sai=sai,
            is_pell_eligible=bool(raw.get("is_pell_eligible", False)),
            household_income_bracket=income_bracket_for_sai(sai) if sai is not None else None,
        )
