"""Application state: the four working collections and their role-scoped views.

All mutation goes through the methods below. Each mutation is applied in
memory first, then the touched collection is written back to the local
store as its difference from the baseline.
"""

import logging
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from config import settings
from engine import (
    InterventionNumberer, diff_from_baseline, find_drifted_technician, global_stats,
    has_legacy_identifiers, index_by_id, merge, rekey_technician, unassigned_interventions,
    visible_appointments, visible_companies, visible_interventions, visible_users,
)
from schemas.records import (
    Appointment, AuthUser, Company, Intervention, InterventionStatus, Record, User, new_id, utcnow,
)
from schemas.results import ActionResult, GlobalStats
from seed_data import Baseline, build_baseline
from services.local_store import LocalStore

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, type[Record]] = {
    "interventions": Intervention,
    "appointments": Appointment,
    "companies": Company,
    "users": User,
}

REGISTERED_USERS_KEY = "registered_users"

_LABELS = {
    "interventions": "Intervention",
    "appointments": "Appointment",
    "companies": "Company",
    "users": "User",
}

# Fields a caller may never overwrite through an update
_IMMUTABLE_FIELDS = {"id", "created_at"}


def _normalize_updates(updates: dict) -> dict:
    return {
        to_snake(key): value for key, value in updates.items()
        if to_snake(key) not in _IMMUTABLE_FIELDS
    }


def _failure(action: str, message: str, code: str = "invalid") -> ActionResult:
    return ActionResult(action=action, success=False, message=message, code=code)


class AppState:
    """
    Process-wide state over interventions, appointments, companies and users.

    Args:
        auth: the session providing the current user (and so the actor)
        local_store: on-device key-value store holding the cached edits
        baseline: seeded collections; built from the fixtures when omitted
        numberer: intervention number sequence; seeded from the baseline when omitted
    """

    def __init__(self, auth, local_store: LocalStore, baseline: Baseline | None = None,
                 numberer: InterventionNumberer | None = None):
        self.auth = auth
        self.local_store = local_store
        baseline = baseline or build_baseline()
        self._baseline: dict[str, dict[str, Record]] = {
            name: index_by_id(getattr(baseline, name)) for name in COLLECTIONS
        }
        self._data: dict[str, dict[str, Record]] = {
            name: dict(records) for name, records in self._baseline.items()
        }
        self.numberer = numberer or InterventionNumberer(
            settings.INTERVENTION_NUMBER_PREFIX,
            (i.number for i in self._baseline["interventions"].values()),
        )
        self.is_loaded = False
        auth.add_login_listener(self.reconcile_identity)

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def _read_cache(self, name: str) -> Any:
        try:
            return self.local_store.get_json(self.local_store.key(name))
        except ValueError as e:
            logger.error(f"Corrupt cache for {name}, ignoring it: {str(e)}")
        except Exception as e:
            logger.error(f"Failed to read cache for {name}: {str(e)}")
        return None

    def load(self) -> None:
        """Layer the locally cached edits over the baseline, then repair identity drift."""
        raw = {name: self._read_cache(name) for name in COLLECTIONS}

        if any(has_legacy_identifiers(items) for items in raw.values() if isinstance(items, list)):
            logger.warning("Cached data uses legacy identifiers, clearing local cache")
            keys = [self.local_store.key(name) for name in COLLECTIONS]
            keys.append(self.local_store.key(REGISTERED_USERS_KEY))
            try:
                self.local_store.multi_remove(keys)
            except Exception as e:
                logger.error(f"Failed to clear legacy cache: {str(e)}")
            self.auth.registered_users.clear()
        else:
            for name, model in COLLECTIONS.items():
                items = raw[name]
                if items is None:
                    continue
                if not isinstance(items, list):
                    logger.error(f"Cache for {name} is not a list, ignoring it")
                    continue
                try:
                    cached = [model.model_validate(item) for item in items]
                except ValidationError as e:
                    logger.error(f"Cache for {name} failed validation, ignoring it: {e.error_count()} errors")
                    continue
                self._data[name] = merge(self._baseline[name], index_by_id(cached))
                logger.info(f"Loaded {len(cached)} cached {name}")

        self.is_loaded = True
        if self.auth.user is not None:
            self.reconcile_identity(self.auth.user)

    def rebase(self, snapshot: dict[str, list[Record]]) -> None:
        """
        Replace the baseline of the given collections with a fresh server snapshot.

        Records that differ from the old baseline are pending local edits;
        they are layered over the new baseline exactly as on load.
        """
        for name, records in snapshot.items():
            pending = index_by_id(diff_from_baseline(self._data[name], self._baseline[name]))
            self._baseline[name] = index_by_id(records)
            self._data[name] = merge(self._baseline[name], pending)
            self._persist(name)
        logger.info(f"Baseline replaced from server: {', '.join(snapshot)}")

    def _persist(self, name: str) -> None:
        """Write the records differing from the baseline; clear the key when none do."""
        if not self.is_loaded:
            return
        key = self.local_store.key(name)
        try:
            changed = diff_from_baseline(self._data[name], self._baseline[name])
            if changed:
                self.local_store.set_json(key, [record.to_wire() for record in changed])
            else:
                self.local_store.remove(key)
        except Exception as e:
            # The in-memory mutation stands; the next successful write catches up
            logger.error(f"Failed to persist {name}: {str(e)}")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def actor(self):
        return self.auth.actor

    @property
    def interventions(self) -> list[Intervention]:
        return visible_interventions(self.actor, self._data["interventions"].values())

    @property
    def appointments(self) -> list[Appointment]:
        return visible_appointments(self.actor, self._data["appointments"].values(), self.interventions)

    @property
    def companies(self) -> list[Company]:
        return visible_companies(self.actor, self._data["companies"].values())

    @property
    def users(self) -> list[User]:
        return visible_users(self.actor, self._data["users"].values())

    @property
    def unassigned_interventions(self) -> list[Intervention]:
        if self.actor is None:
            return []
        return unassigned_interventions(self.interventions)

    @property
    def all_interventions_count(self) -> int:
        return len(self._data["interventions"])

    def all_interventions(self) -> list[Intervention]:
        """Every intervention, ignoring the actor's scope."""
        return list(self._data["interventions"].values())

    def all_companies(self) -> list[Company]:
        return list(self._data["companies"].values())

    def all_users(self) -> list[User]:
        return list(self._data["users"].values())

    def get_intervention_by_id(self, intervention_id: str) -> Intervention | None:
        return self._data["interventions"].get(intervention_id)

    def get_appointment_by_id(self, appointment_id: str) -> Appointment | None:
        return self._data["appointments"].get(appointment_id)

    def get_company_by_id(self, company_id: str) -> Company | None:
        return self._data["companies"].get(company_id)

    def get_user_by_id(self, user_id: str) -> User | None:
        return self._data["users"].get(user_id)

    def get_users_by_company(self, company_id: str) -> list[User]:
        return [u for u in self._data["users"].values() if u.company_id == company_id]

    def global_stats(self) -> GlobalStats:
        return global_stats(
            self._data["interventions"].values(),
            self._data["companies"].values(),
            self._data["users"].values(),
        )

    # ------------------------------------------------------------------
    # Generic mutation helpers
    # ------------------------------------------------------------------

    def _insert(self, name: str, record: Record, first: bool = False) -> None:
        if first:
            self._data[name] = {record.id: record, **self._data[name]}
        else:
            self._data[name] = {**self._data[name], record.id: record}
        self._persist(name)

    def _update(self, name: str, action: str, record_id: str, updates: dict,
                touch: bool = False) -> ActionResult:
        current = self._data[name].get(record_id)
        if current is None:
            return _failure(action, f"{_LABELS[name]} {record_id} not found", code="not_found")

        values = {**current.model_dump(), **_normalize_updates(updates)}
        if touch:
            values["updated_at"] = utcnow()
        try:
            updated = type(current).model_validate(values)
        except ValidationError as e:
            logger.warning(f"{action} rejected for {record_id}: {e.error_count()} validation errors")
            return _failure(action, f"Invalid data: {str(e)}")

        self._data[name] = {**self._data[name], record_id: updated}
        self._persist(name)
        return ActionResult(action=action, success=True, message=f"Updated {record_id}",
                            data={"id": record_id})

    def _delete(self, name: str, action: str, record_id: str) -> ActionResult:
        if record_id not in self._data[name]:
            return _failure(action, f"{_LABELS[name]} {record_id} not found", code="not_found")
        self._data[name] = {k: v for k, v in self._data[name].items() if k != record_id}
        self._persist(name)
        return ActionResult(action=action, success=True, message=f"Deleted {record_id}",
                            data={"id": record_id})

    # ------------------------------------------------------------------
    # Interventions
    # ------------------------------------------------------------------

    def add_intervention(self, data: dict) -> ActionResult:
        """
        Create an intervention with a fresh id and the next sequence number.

        The data is validated before a number is drawn, so a rejected create
        leaves both the collection and the counter untouched.
        """
        now = utcnow()
        values = {
            **_normalize_updates(data),
            "id": new_id(),
            "number": "",
            "status": InterventionStatus.ASSIGNED,
            "created_at": now,
            "updated_at": now,
        }
        if values.get("company_id") and not values.get("assigned_at"):
            values["assigned_at"] = now
        try:
            intervention = Intervention.model_validate(values)
        except ValidationError as e:
            logger.warning(f"Intervention create rejected: {e.error_count()} validation errors")
            return _failure("add_intervention", f"Invalid data: {str(e)}")

        intervention = intervention.model_copy(update={"number": self.numberer.next()})
        self._insert("interventions", intervention, first=True)
        logger.info(f"Intervention created: {intervention.number} ({intervention.id})")
        return ActionResult(
            action="add_intervention",
            success=True,
            message=f"Intervention {intervention.number} created",
            data={"id": intervention.id, "number": intervention.number},
        )

    def update_intervention(self, intervention_id: str, updates: dict) -> ActionResult:
        return self._update("interventions", "update_intervention", intervention_id, updates, touch=True)

    def delete_intervention(self, intervention_id: str) -> ActionResult:
        return self._delete("interventions", "delete_intervention", intervention_id)

    def bulk_assign_to_company(self, intervention_ids: list[str], company_id: str,
                               company_name: str) -> ActionResult:
        """Hand interventions to a company and reset them to assegnato. Unknown ids are skipped."""
        now = utcnow()
        targets = set(intervention_ids)
        assigned = []
        interventions = {}
        for record_id, intervention in self._data["interventions"].items():
            if record_id in targets:
                intervention = intervention.model_copy(update={
                    "company_id": company_id,
                    "company_name": company_name,
                    "assigned_at": now,
                    "assigned_by": "Admin",
                    "status": InterventionStatus.ASSIGNED,
                    "updated_at": now,
                })
                assigned.append(record_id)
            interventions[record_id] = intervention

        if not assigned:
            return _failure("bulk_assign_to_company", "No matching interventions", code="not_found")

        self._data["interventions"] = interventions
        self._persist("interventions")
        logger.info(f"Assigned {len(assigned)} interventions to {company_name}")
        return ActionResult(
            action="bulk_assign_to_company",
            success=True,
            message=f"{len(assigned)} interventions assigned to {company_name}",
            data={"assigned": assigned},
        )

    def close_interventions(self, intervention_ids: list[str], closed_by: str,
                            email_sent_to: str | None = None) -> ActionResult:
        now = utcnow()
        targets = set(intervention_ids)
        closed = []
        interventions = {}
        for record_id, intervention in self._data["interventions"].items():
            if record_id in targets:
                intervention = intervention.model_copy(update={
                    "status": InterventionStatus.CLOSED,
                    "closed_at": now,
                    "closed_by": closed_by,
                    "email_sent_to": email_sent_to,
                    "updated_at": now,
                })
                closed.append(record_id)
            interventions[record_id] = intervention

        if not closed:
            return _failure("close_interventions", "No matching interventions", code="not_found")

        self._data["interventions"] = interventions
        self._persist("interventions")
        logger.info(f"Closed {len(closed)} interventions (by {closed_by})")
        return ActionResult(
            action="close_interventions",
            success=True,
            message=f"{len(closed)} interventions closed",
            data={"closed": closed},
        )

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    def add_appointment(self, data: dict) -> ActionResult:
        try:
            appointment = Appointment.model_validate({**_normalize_updates(data), "id": new_id()})
        except ValidationError as e:
            logger.warning(f"Appointment create rejected: {e.error_count()} validation errors")
            return _failure("add_appointment", f"Invalid data: {str(e)}")

        self._insert("appointments", appointment)
        return ActionResult(action="add_appointment", success=True,
                            message=f"Appointment for {appointment.client_name} created",
                            data={"id": appointment.id})

    def update_appointment(self, appointment_id: str, updates: dict) -> ActionResult:
        return self._update("appointments", "update_appointment", appointment_id, updates)

    def delete_appointment(self, appointment_id: str) -> ActionResult:
        return self._delete("appointments", "delete_appointment", appointment_id)

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def add_company(self, data: dict) -> ActionResult:
        try:
            company = Company.model_validate({**_normalize_updates(data), "id": new_id(), "created_at": utcnow()})
        except ValidationError as e:
            return _failure("add_company", f"Invalid data: {str(e)}")

        self._insert("companies", company)
        logger.info(f"Company created: {company.name} ({company.id})")
        return ActionResult(action="add_company", success=True, message=f"Company {company.name} created",
                            data={"id": company.id})

    def update_company(self, company_id: str, updates: dict) -> ActionResult:
        return self._update("companies", "update_company", company_id, updates)

    def delete_company(self, company_id: str) -> ActionResult:
        """Remove the company only. Interventions and users keep their now dangling reference."""
        return self._delete("companies", "delete_company", company_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, data: dict, existing_id: str | None = None) -> ActionResult:
        try:
            user = User.model_validate({
                **_normalize_updates(data),
                "id": existing_id or new_id(),
                "created_at": utcnow(),
            })
        except ValidationError as e:
            return _failure("add_user", f"Invalid data: {str(e)}")

        self._insert("users", user)
        logger.info(f"User created: {user.username} ({user.role.value})")
        return ActionResult(action="add_user", success=True, message=f"User {user.username} created",
                            data={"id": user.id})

    def update_user(self, user_id: str, updates: dict) -> ActionResult:
        return self._update("users", "update_user", user_id, updates)

    def delete_user(self, user_id: str) -> ActionResult:
        return self._delete("users", "delete_user", user_id)

    # ------------------------------------------------------------------
    # Identity drift
    # ------------------------------------------------------------------

    def reconcile_identity(self, auth_user: AuthUser) -> bool:
        """
        Re-key a technician cached under a stale id to the authenticated id.

        Both collections are rebuilt off to the side and swapped together.
        Returns True when a repair happened.
        """
        if not self.is_loaded:
            return False
        old_id = find_drifted_technician(self._data["users"], auth_user)
        if old_id is None:
            return False

        users, interventions = rekey_technician(
            self._data["users"], self._data["interventions"], old_id, auth_user.id, utcnow(),
        )
        self._data["users"], self._data["interventions"] = users, interventions
        logger.info(f"Re-keyed technician {auth_user.username}: {old_id} -> {auth_user.id}")
        self._persist("users")
        self._persist("interventions")
        return True

