"""
Service: joining a pact.

The participant set only grows. Joining records the user's membership
(primary and secondary activity picked by `is_primary`) and appends the
user to the pact.
"""

from typing import List

import structlog

from errors import ConflictException, NotFoundException
from guards import load_pact, require_ids
from models import PactMembership
from repo_pacts import ActivityRepo, PactRepo, UserRepo

logger = structlog.get_logger("pacts")


class PactService:
    def __init__(self, pact_repo: PactRepo, activity_repo: ActivityRepo, user_repo: UserRepo):
        self.pact_repo = pact_repo
        self.activity_repo = activity_repo
        self.user_repo = user_repo

    def join_pact(self, user_id: str, pact_id: str, activity_ids: List[str]) -> dict:
        require_ids(userId=user_id, pactId=pact_id)

        user = self.user_repo.get_user(user_id)
        if user is None:
            raise NotFoundException("User not found")
        pact = load_pact(self.pact_repo, pact_id)

        wanted = list(dict.fromkeys(activity_ids or []))
        activities = self.activity_repo.get_activities_in_pact(pact.id, wanted)
        if len(activities) != len(wanted):
            raise NotFoundException("One or more activities not found or do not belong to this pact")

        if pact.has_participant(user.id):
            raise ConflictException("User is already a participant in this pact")

        primary = next((a for a in activities if a.is_primary), None)
        secondary = next((a for a in activities if not a.is_primary), None)
        membership = PactMembership(
            pact_id=pact.id,
            primary_activity_id=primary.id if primary else None,
            secondary_activity_id=secondary.id if secondary else None,
        )

        if not self.pact_repo.add_participant(pact.id, user.id):
            # another request added the user between our read and write
            raise ConflictException("User is already a participant in this pact")
        self.user_repo.set_membership(user.id, membership)
        logger.info("pact_joined", pact_id=pact.id, user_id=user.id)

        user = user.model_copy(update={"membership": membership})
        pact = pact.model_copy(update={"participants": pact.participants + [user.id]})
        return {
            "user": user.model_dump(mode="json"),
            "pact": pact.model_dump(mode="json"),
        }
