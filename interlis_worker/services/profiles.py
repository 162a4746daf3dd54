"""Validation profile lookup."""

import logging
from typing import Protocol

from interlis_worker.config import ProfileSettings
from interlis_worker.models.domain import Profile

logger = logging.getLogger(__name__)


class ProfileProvider(Protocol):
    """Protocol for sources of validation profiles."""

    def get_profiles(self) -> list[Profile]:
        """Return the available profiles in display order."""
        ...


class SettingsProfileProvider:
    """Profiles declared in configuration (PROFILES_PROFILES)."""

    def __init__(self, settings: ProfileSettings):
        self.settings = settings

    def get_profiles(self) -> list[Profile]:
        return list(self.settings.profiles)

    def resolve(self, profile_id: str | None) -> Profile | None:
        """Find a profile by id, falling back to the configured default.

        Args:
            profile_id: Requested profile id, or None for the default profile

        Returns:
            The matching profile, or None if it is not offered
        """
        wanted = profile_id or self.settings.default_profile_id
        for profile in self.get_profiles():
            if profile.id == wanted:
                return profile

        logger.info(f"Profile <{wanted}> is not available")
        return None
