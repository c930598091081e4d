"""Identifier drift repair for technicians.

A technician cached locally under one id can come back from authentication
with another. The cached user and every intervention pointing at the old id
are rewritten to the authoritative one.
"""

from datetime import datetime
from typing import Mapping

from schemas.records import AuthUser, Intervention, Role, User


def find_drifted_technician(users: Mapping[str, User], auth_user: AuthUser) -> str | None:
    """
    Return the stale cached id for the authenticated technician, if any.

    The cached record is matched on username and company; the first match
    decides. Non-technicians never drift.
    """
    if auth_user.role != Role.TECHNICIAN:
        return None
    for user in users.values():
        if user.username == auth_user.username and user.company_id == auth_user.company_id:
            return user.id if user.id != auth_user.id else None
    return None


def rekey_technician(users: Mapping[str, User], interventions: Mapping[str, Intervention],
                     old_id: str, new_id: str, now: datetime) -> tuple[dict[str, User], dict[str, Intervention]]:
    """
    Build new user and intervention collections with old_id replaced by new_id.

    The inputs are left untouched so the caller can swap both collections at
    once. The re-keyed user keeps its position; a record already stored under
    new_id is superseded by it. Re-pointed interventions get updated_at = now.
    """
    new_users: dict[str, User] = {}
    for user_id, user in users.items():
        if user_id == old_id:
            new_users[new_id] = user.model_copy(update={"id": new_id})
        elif user_id == new_id:
            continue
        else:
            new_users[user_id] = user

    new_interventions = {
        intervention_id: (
            intervention.model_copy(update={"technician_id": new_id, "updated_at": now})
            if intervention.technician_id == old_id else intervention
        )
        for intervention_id, intervention in interventions.items()
    }
    return new_users, new_interventions
