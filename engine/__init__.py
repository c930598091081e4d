from engine.visibility import (
    visible_interventions, visible_appointments, visible_companies, visible_users, unassigned_interventions,
)
from engine.merge import merge, diff_from_baseline, has_legacy_identifiers, index_by_id
from engine.rekey import find_drifted_technician, rekey_technician
from engine.numbering import InterventionNumberer
from engine.stats import global_stats

__all__ = [
    "visible_interventions", "visible_appointments", "visible_companies", "visible_users",
    "unassigned_interventions", "merge", "diff_from_baseline", "has_legacy_identifiers", "index_by_id",
    "find_drifted_technician", "rekey_technician", "InterventionNumberer", "global_stats",
]
