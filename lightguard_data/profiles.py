"""
Profile operations for the admin user management screen.

Thin typed layer over the record service for the ``profiles`` table.
"""

from typing import Any, Dict, List, Optional, get_args

from .config import settings
from .exceptions import InvalidPayloadError
from .logging_config import get_logger
from .models import Profile, ProfileRole
from .record_service import RecordService

logger = get_logger(__name__)

PROFILE_ROLES = frozenset(get_args(ProfileRole))


class ProfileService:
    """Read and update admin/user profiles."""

    def __init__(self, records: RecordService, table: Optional[str] = None):
        self.records = records
        self.table = table or settings.PROFILES_TABLE

    async def get_all_profiles(self) -> List[Profile]:
        """Fetch every profile."""
        return await self.records.fetch_many(self.table, row_model=Profile)

    async def get_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        """Fetch one profile, or None if it does not exist."""
        return await self.records.fetch_by_id(self.table, profile_id, row_model=Profile)

    async def update_profile(
        self, profile_id: str, changes: Dict[str, Any]
    ) -> Optional[Profile]:
        """
        Apply a partial update to a profile.

        Args:
            profile_id: Profile identifier
            changes: Columns to change

        Returns:
            The updated profile, or None if no profile has that id

        Raises:
            InvalidPayloadError: If the changes touch ``id`` or set an unknown role
            RemoteWriteError: If the store rejects the update
        """
        if "id" in changes and changes["id"] != profile_id:
            raise InvalidPayloadError("id", changes["id"], "profile id cannot be changed")
        if "role" in changes and changes["role"] not in PROFILE_ROLES:
            raise InvalidPayloadError(
                "role", changes["role"], f"must be one of {sorted(PROFILE_ROLES)}"
            )

        logger.info("profile_update", profile_id=profile_id, fields=sorted(changes))
        return await self.records.update(self.table, profile_id, changes, row_model=Profile)

    async def set_active(self, profile_id: str, is_active: bool) -> Optional[Profile]:
        """Activate or deactivate a profile."""
        return await self.update_profile(profile_id, {"is_active": is_active})

    async def set_role(self, profile_id: str, role: str) -> Optional[Profile]:
        """Change a profile's role."""
        return await self.update_profile(profile_id, {"role": role})
