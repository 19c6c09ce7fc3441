"""
Interest profile service.
Keeps a device-local interest list and mirrors it to the remote profile.
"""
import logging
from typing import List

from feedcore.models.interfaces import ProfileRepository
from feedcore.models.schemas import InterestProfile

logger = logging.getLogger(__name__)


class InterestProfileService:
    """
    Monotonically growing interest profiles.

    The local copy is authoritative for ranking; the remote copy is best
    effort and merged in on sync.
    """

    def __init__(
        self,
        local_repo: ProfileRepository,
        remote_repo: ProfileRepository,
    ) -> None:
        self._local = local_repo
        self._remote = remote_repo

    async def _load_local(self, user_id: str) -> InterestProfile:
        profile = await self._local.get_profile(user_id)
        return profile or InterestProfile(user_id=user_id)

    async def get_interests(self, user_id: str) -> List[str]:
        """Interests used for ranking, in the order they were recorded."""
        profile = await self._load_local(user_id)
        return list(profile.interests)

    async def record_interest(self, user_id: str, category: str) -> bool:
        """
        Record a category the user engaged with.

        Returns:
            True if the profile grew
        """
        category = (category or "").strip()
        if not category:
            return False

        profile = await self._load_local(user_id)
        if not profile.add(category):
            return False

        await self._local.save_profile(profile)
        logger.info(f"Recorded interest '{category}'", extra={"user_id": user_id})

        try:
            await self._remote.save_profile(profile.model_copy(deep=True))
        except Exception as exc:
            logger.warning(
                f"Remote interest update failed: {exc}", extra={"user_id": user_id}
            )
        return True

    async def sync(self, user_id: str) -> InterestProfile:
        """Merge the remote profile into the local one and persist it locally."""
        profile = await self._load_local(user_id)
        try:
            remote = await self._remote.get_profile(user_id)
        except Exception as exc:
            logger.warning(
                f"Remote profile unavailable, using local copy: {exc}",
                extra={"user_id": user_id},
            )
            return profile

        if remote is not None and profile.merge(remote.interests):
            await self._local.save_profile(profile)
            logger.info(
                f"Merged remote interests ({len(profile.interests)} total)",
                extra={"user_id": user_id},
            )
        return profile
