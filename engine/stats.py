"""Administrator overview figures."""

from typing import Iterable

from schemas.records import Company, Intervention, Role, User
from schemas.results import CompanyCount, GlobalStats


def global_stats(interventions: Iterable[Intervention], companies: Iterable[Company],
                 users: Iterable[User]) -> GlobalStats:
    """Counts over the full, unfiltered collections."""
    interventions = list(interventions)
    by_status: dict[str, int] = {}
    by_company: dict[str, CompanyCount] = {}

    for intervention in interventions:
        status = intervention.status.value
        by_status[status] = by_status.get(status, 0) + 1
        if intervention.company_id:
            entry = by_company.setdefault(intervention.company_id, CompanyCount(
                company_id=intervention.company_id,
                company_name=intervention.company_name or "Senza Ditta",
                count=0,
            ))
            entry.count += 1

    return GlobalStats(
        total_interventions=len(interventions),
        by_status=by_status,
        by_company=list(by_company.values()),
        total_companies=len(list(companies)),
        total_technicians=sum(1 for u in users if u.role == Role.TECHNICIAN),
        unassigned_count=sum(1 for i in interventions if not i.company_id),
    )
