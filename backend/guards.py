"""
Entity guards shared by the services.

The order of checks decides which error a caller sees first, so every
write path goes through these helpers instead of repeating them.
"""

from typing import Optional, Tuple

from errors import ForbiddenException, NotFoundException, ValidationException
from models import Activity, Pact, User
from repo_pacts import ActivityRepo, PactRepo, UserRepo


def require_ids(**ids: Optional[str]) -> None:
    """Raise `ValidationException` naming every blank identifier."""

    missing = [name for name, value in ids.items() if not value]
    if missing:
        raise ValidationException(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


def load_pact(pact_repo: PactRepo, pact_id: str) -> Pact:
    pact = pact_repo.get_pact(pact_id)
    if pact is None:
        raise NotFoundException("Pact not found")
    return pact


def require_participant(pact: Pact, user_id: str) -> None:
    if not pact.has_participant(user_id):
        raise ForbiddenException("User is not a participant of this pact")


def load_activity_in_pact(activity_repo: ActivityRepo, pact_id: str, activity_id: str) -> Activity:
    activity = activity_repo.get_activity(activity_id)
    if activity is None or activity.pact_id != pact_id:
        raise NotFoundException("Activity not found in this pact")
    return activity


def load_pact_scope(
    pact_repo: PactRepo,
    activity_repo: ActivityRepo,
    user_repo: UserRepo,
    pact_id: str,
    activity_id: str,
    user_id: str,
) -> Tuple[Pact, Activity, User]:
    """Validate a (pact, activity, user) triple for a write.

    Order: identifiers present, pact exists, activity exists, user exists,
    activity belongs to the pact, user participates in the pact.
    """

    require_ids(pactId=pact_id, activityId=activity_id, userId=user_id)

    pact = load_pact(pact_repo, pact_id)
    activity = activity_repo.get_activity(activity_id)
    if activity is None:
        raise NotFoundException("Activity not found")
    user = user_repo.get_user(user_id)
    if user is None:
        raise NotFoundException("User not found")
    if activity.pact_id != pact.id:
        raise NotFoundException("Activity not found in this pact")
    require_participant(pact, user.id)
    return pact, activity, user
