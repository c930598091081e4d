"""Role-scoped visibility: which records the current actor may observe.

Every function here is pure. Views are recomputed from the full collections
on each read and never stored.
"""

from typing import Iterable

from schemas.records import (
    Administrator, Appointment, Company, CompanyActor, Intervention, TechnicianActor, User,
)


def visible_interventions(actor, interventions: Iterable[Intervention]) -> list[Intervention]:
    """
    Filter interventions down to the actor's scope.

    Rules:
    1. Administrator → everything
    2. Company → interventions of its own company
    3. Technician → interventions of its company assigned to it or still unclaimed
    4. No actor → nothing
    """
    if isinstance(actor, Administrator):
        return list(interventions)

    if isinstance(actor, CompanyActor):
        if actor.company_id is None:
            return []
        return [i for i in interventions if i.company_id == actor.company_id]

    if isinstance(actor, TechnicianActor):
        if actor.company_id is None:
            return []
        return [
            i for i in interventions
            if i.company_id == actor.company_id
            and (i.technician_id == actor.user_id or i.technician_id is None)
        ]

    return []


def visible_appointments(actor, appointments: Iterable[Appointment],
                         visible: Iterable[Intervention]) -> list[Appointment]:
    """Appointments linked to a visible intervention, plus every unlinked one."""
    # Administrators included: an appointment linked to a deleted intervention is hidden
    if actor is None:
        return []
    visible_ids = {i.id for i in visible}
    return [
        a for a in appointments
        if a.intervention_id is None or a.intervention_id in visible_ids
    ]


def visible_companies(actor, companies: Iterable[Company]) -> list[Company]:
    if isinstance(actor, Administrator):
        return list(companies)
    if isinstance(actor, CompanyActor) and actor.company_id is not None:
        return [c for c in companies if c.id == actor.company_id]
    return []


def visible_users(actor, users: Iterable[User]) -> list[User]:
    if isinstance(actor, Administrator):
        return list(users)
    if isinstance(actor, CompanyActor) and actor.company_id is not None:
        return [u for u in users if u.company_id == actor.company_id]
    return []


def unassigned_interventions(interventions: Iterable[Intervention]) -> list[Intervention]:
    """Interventions not yet handed to any company (administrator backlog)."""
    return [i for i in interventions if not i.company_id]
