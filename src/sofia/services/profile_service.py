"""About Me profile with change tracking."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from ..core.exceptions import NotFoundError
from ..database import AboutMeProfile, utcnow
from ..repositories.profile_repository import AboutMeRepository, ProfileHistoryRepository


def calculate_completeness(
    best_life_elements: Optional[List[Any]],
    concerns: Optional[List[Any]],
    confidence_level: Optional[int],
) -> int:
    """40 for best-life elements, 40 for concerns, 20 for a confidence level."""
    completeness = 0
    if best_life_elements:
        completeness += 40
    if concerns:
        completeness += 40
    if confidence_level:
        completeness += 20
    return completeness


class ProfileService:
    """Updates the About Me profile and records what changed."""

    # stored attribute -> history variable name
    TRACKED_FIELDS = {
        "best_life_elements": "bestLifeElements",
        "concerns": "concerns",
        "confidence_level": "confidenceLevel",
    }

    def __init__(self, about_me_repo: AboutMeRepository, history_repo: ProfileHistoryRepository):
        self.about_me_repo = about_me_repo
        self.history_repo = history_repo

    async def get_about_me(self, user_id: UUID) -> Optional[AboutMeProfile]:
        return await self.about_me_repo.get_by_user(user_id)

    async def update_about_me(self, user_id: UUID, updates: Dict[str, Any]) -> AboutMeProfile:
        """
        Replace the About Me profile.

        Each tracked field whose value differs from the stored one gets a
        ``profile_variable_history`` row with source ``manual``.
        """
        profile = await self.about_me_repo.get_by_user(user_id)
        if not profile:
            raise NotFoundError("About Me profile")

        for attr, variable_name in self.TRACKED_FIELDS.items():
            previous = getattr(profile, attr)
            new = updates.get(attr)
            if previous != new:
                await self.history_repo.create(
                    user_id=user_id,
                    variable_name=variable_name,
                    variable_value=new,
                    previous_value=previous,
                    source="manual",
                    source_details={
                        "action": "about_me_update",
                        "timestamp": utcnow().isoformat(),
                    },
                )

        if updates.get("confidence_level") != profile.confidence_level:
            profile.confidence_timestamp = utcnow()

        profile.best_life_elements = updates.get("best_life_elements") or []
        profile.concerns = updates.get("concerns") or []
        profile.confidence_level = updates.get("confidence_level")
        profile.user_defined_next_steps = updates.get("user_defined_next_steps")
        profile.profile_completeness = calculate_completeness(
            profile.best_life_elements,
            profile.concerns,
            profile.confidence_level,
        )

        await self.about_me_repo.session.flush()
        return profile
