"""Tests for the pure engine — visibility, merge, drift repair, numbering, stats."""

import pytest
from datetime import timedelta

from engine import (
    InterventionNumberer, diff_from_baseline, find_drifted_technician, global_stats,
    has_legacy_identifiers, index_by_id, merge, rekey_technician, unassigned_interventions,
    visible_appointments, visible_companies, visible_interventions, visible_users,
)
from engine.numbering import parse_sequence
from schemas.records import (
    Administrator, AuthUser, CompanyActor, InterventionStatus, TechnicianActor,
)
from seed_data import ALEX_ID, BILLO_ID, GBD_ID, GBD_NAME, LUCA_ID, SOLARPRO_ID

from conftest import NOW

ADMIN = Administrator(user_id="admin")
GBD = CompanyActor(user_id="ditta", company_id=GBD_ID)
SOLARPRO = CompanyActor(user_id="solarpro", company_id=SOLARPRO_ID)
ALEX = TechnicianActor(user_id=ALEX_ID, company_id=GBD_ID)
LUCA = TechnicianActor(user_id=LUCA_ID, company_id=SOLARPRO_ID)


def _numbers(interventions):
    return sorted(i.number for i in interventions)


class TestVisibleInterventions:
    """Role-scoped intervention visibility."""

    @pytest.mark.parametrize("actor", [ADMIN, GBD, SOLARPRO, ALEX, LUCA, None])
    def test_always_a_subset(self, baseline, actor):
        visible = visible_interventions(actor, baseline.interventions)
        assert all(i in baseline.interventions for i in visible)

    def test_administrator_sees_everything(self, baseline):
        assert visible_interventions(ADMIN, baseline.interventions) == baseline.interventions

    def test_company_sees_own_company(self, baseline):
        visible = visible_interventions(GBD, baseline.interventions)
        assert _numbers(visible) == [f"INT-2025-00{n}" for n in range(1, 7)]

    def test_technician_sees_own_and_unclaimed(self, baseline):
        visible = visible_interventions(ALEX, baseline.interventions)
        assert _numbers(visible) == ["INT-2025-001", "INT-2025-002", "INT-2025-004", "INT-2025-005"]

    def test_technician_rule_holds_for_every_record(self, baseline):
        visible = {i.id for i in visible_interventions(ALEX, baseline.interventions)}
        for intervention in baseline.interventions:
            expected = intervention.company_id == GBD_ID and intervention.technician_id in (ALEX_ID, None)
            assert (intervention.id in visible) == expected

    def test_other_company_technician_sees_nothing_of_gbd(self, baseline):
        visible = visible_interventions(LUCA, baseline.interventions)
        assert all(i.company_id == SOLARPRO_ID for i in visible)
        assert _numbers(visible) == ["INT-2025-007", "INT-2025-008"]

    def test_no_actor_sees_nothing(self, baseline):
        assert visible_interventions(None, baseline.interventions) == []

    def test_company_actor_without_company_sees_nothing(self, baseline):
        actor = CompanyActor(user_id="ditta", company_id=None)
        assert visible_interventions(actor, baseline.interventions) == []

    def test_technician_without_company_sees_nothing(self, baseline):
        actor = TechnicianActor(user_id="x", company_id=None)
        assert visible_interventions(actor, baseline.interventions) == []


class TestVisibleOtherCollections:
    """Appointments, companies and users follow the actor's scope."""

    def test_appointments_follow_visible_interventions(self, baseline):
        visible = visible_interventions(ALEX, baseline.interventions)
        appointments = visible_appointments(ALEX, baseline.appointments, visible)
        assert [a.id for a in appointments] == ["apt-001"]

    def test_unlinked_appointments_always_visible(self, baseline):
        unlinked = baseline.appointments[0].model_copy(update={"id": "apt-x", "intervention_id": None})
        visible = visible_interventions(SOLARPRO, baseline.interventions)
        appointments = visible_appointments(SOLARPRO, [*baseline.appointments, unlinked], visible)
        assert [a.id for a in appointments] == ["apt-x"]

    def test_administrator_loses_appointments_of_deleted_interventions(self, baseline):
        remaining = [i for i in baseline.interventions if i.id != "00000002-0002-0002-0002-000000000002"]
        appointments = visible_appointments(ADMIN, baseline.appointments, remaining)
        assert [a.id for a in appointments] == ["apt-002"]

    def test_no_actor_no_appointments(self, baseline):
        assert visible_appointments(None, baseline.appointments, baseline.interventions) == []

    def test_companies(self, baseline):
        assert len(visible_companies(ADMIN, baseline.companies)) == 2
        assert [c.id for c in visible_companies(GBD, baseline.companies)] == [GBD_ID]
        assert visible_companies(ALEX, baseline.companies) == []

    def test_users(self, baseline):
        assert len(visible_users(ADMIN, baseline.users)) == 6
        assert {u.company_id for u in visible_users(GBD, baseline.users)} == {GBD_ID}
        assert visible_users(ALEX, baseline.users) == []
        assert visible_users(None, baseline.users) == []

    def test_unassigned(self, baseline):
        assert _numbers(unassigned_interventions(baseline.interventions)) == [
            "INT-2025-009", "INT-2025-010", "INT-2025-011",
        ]


class TestMerge:
    """Cached records win over the baseline, whole-record."""

    def test_cached_record_wins(self, baseline):
        base = index_by_id(baseline.interventions)
        first = baseline.interventions[0]
        edited = first.model_copy(update={"status": InterventionStatus.IN_PROGRESS})
        merged = merge(base, {edited.id: edited})
        assert merged[first.id].status == InterventionStatus.IN_PROGRESS

    def test_baseline_kept_without_cache(self, baseline):
        base = index_by_id(baseline.interventions)
        assert merge(base, {}) == base

    def test_cached_wins_even_when_older(self, baseline):
        base = index_by_id(baseline.interventions)
        first = baseline.interventions[0]
        stale = first.model_copy(update={"description": "old", "updated_at": NOW - timedelta(days=30)})
        assert merge(base, {stale.id: stale})[first.id].description == "old"

    def test_new_records_appended_in_order(self, baseline):
        base = index_by_id(baseline.interventions[:2])
        extra = [baseline.interventions[5], baseline.interventions[3]]
        merged = merge(base, index_by_id(extra))
        assert list(merged) == [r.id for r in baseline.interventions[:2]] + [r.id for r in extra]

    def test_diff_only_changed_or_new(self, baseline):
        base = index_by_id(baseline.interventions)
        edited = baseline.interventions[2].model_copy(update={"description": "changed"})
        new = baseline.interventions[0].model_copy(update={"id": "new-id"})
        collection = merge(base, index_by_id([edited, new]))
        assert [r.id for r in diff_from_baseline(collection, base)] == [edited.id, "new-id"]

    def test_diff_empty_for_baseline(self, baseline):
        base = index_by_id(baseline.interventions)
        assert diff_from_baseline(dict(base), base) == []


class TestLegacyIdentifiers:
    """Detection of cached data written with pre-UUID identifiers."""

    def test_legacy_id(self):
        assert has_legacy_identifiers([{"id": "int-1700000000"}])

    def test_legacy_company_reference(self):
        assert has_legacy_identifiers([{"id": "9f1c2e7a", "companyId": "company-1"}])

    def test_uuid_records(self):
        assert not has_legacy_identifiers([{"id": "11111111-1111-1111-1111-111111111111", "companyId": None}])

    def test_empty_or_missing(self):
        assert not has_legacy_identifiers(None)
        assert not has_legacy_identifiers([])


class TestRekey:
    """Technician identifier drift repair."""

    def _auth(self, user_id="new-alex-id", company_id=GBD_ID, role="tecnico"):
        return AuthUser(id=user_id, username="alex", role=role, company_id=company_id, company_name=GBD_NAME)

    def test_detects_drift(self, baseline):
        users = index_by_id(baseline.users)
        assert find_drifted_technician(users, self._auth()) == ALEX_ID

    def test_same_id_is_not_drift(self, baseline):
        users = index_by_id(baseline.users)
        assert find_drifted_technician(users, self._auth(user_id=ALEX_ID)) is None

    def test_other_company_is_not_drift(self, baseline):
        users = index_by_id(baseline.users)
        assert find_drifted_technician(users, self._auth(company_id=SOLARPRO_ID)) is None

    def test_only_technicians_drift(self, baseline):
        users = index_by_id(baseline.users)
        assert find_drifted_technician(users, self._auth(role="ditta")) is None

    def test_rekey_rewrites_every_reference(self, baseline):
        users = index_by_id(baseline.users)
        interventions = index_by_id(baseline.interventions)
        before = {i.id for i in baseline.interventions if i.technician_id == ALEX_ID}

        new_users, new_interventions = rekey_technician(users, interventions, ALEX_ID, "new-alex-id", NOW)

        assert ALEX_ID not in new_users
        assert new_users["new-alex-id"].username == "alex"
        assert not any(i.technician_id == ALEX_ID for i in new_interventions.values())
        assert {i.id for i in new_interventions.values() if i.technician_id == "new-alex-id"} == before
        assert all(new_interventions[i].updated_at == NOW for i in before)

    def test_rekey_keeps_position_and_inputs(self, baseline):
        users = index_by_id(baseline.users)
        interventions = index_by_id(baseline.interventions)
        position = list(users).index(ALEX_ID)

        new_users, _ = rekey_technician(users, interventions, ALEX_ID, "new-alex-id", NOW)

        assert list(new_users).index("new-alex-id") == position
        assert ALEX_ID in users
        assert interventions["00000001-0001-0001-0001-000000000001"].technician_id == ALEX_ID

    def test_rekey_leaves_other_technicians(self, baseline):
        _, new_interventions = rekey_technician(
            index_by_id(baseline.users), index_by_id(baseline.interventions), ALEX_ID, "new-alex-id", NOW,
        )
        assert new_interventions["00000006-0006-0006-0006-000000000006"].technician_id == BILLO_ID


class TestNumbering:
    """In-memory intervention numbering."""

    def test_seeded_above_fixtures(self, baseline):
        numberer = InterventionNumberer("INT-2025-", (i.number for i in baseline.interventions))
        assert numberer.current == 11
        assert numberer.next() == "INT-2025-012"
        assert numberer.next() == "INT-2025-013"

    def test_empty_seed(self):
        assert InterventionNumberer("INT-2025-").next() == "INT-2025-001"

    def test_restart_repeats_numbers(self, baseline):
        seeds = [i.number for i in baseline.interventions]
        first = InterventionNumberer("INT-2025-", seeds).next()
        assert InterventionNumberer("INT-2025-", seeds).next() == first

    def test_parse_sequence(self):
        assert parse_sequence("INT-2025-042") == 42
        assert parse_sequence("bozza") is None


class TestGlobalStats:
    """Administrator overview counts."""

    def test_counts(self, baseline):
        stats = global_stats(baseline.interventions, baseline.companies, baseline.users)
        assert stats.total_interventions == 11
        assert stats.total_companies == 2
        assert stats.total_technicians == 3
        assert stats.unassigned_count == 3
        assert stats.by_status == {"assegnato": 6, "appuntamento_fissato": 3, "completato": 2}
        by_company = {c.company_id: c.count for c in stats.by_company}
        assert by_company == {GBD_ID: 6, SOLARPRO_ID: 2}
