"""Tests for appointment reminders and the plain-text email reports."""

from datetime import timedelta

from schemas.records import Appointment
from services.device import HeadlessDevice
from services.notifications import ReminderScheduler, lead_time_label
from services.reports import build_closing_report, build_intervention_report, mailto_url

from conftest import NOW, run


def _appointment(**overrides):
    data = {"id": "apt-x", "client_name": "Anna", "address": "Via Roma 1", "date": NOW + timedelta(days=1),
            "notify_before": 30, "type": "sopralluogo"}
    data.update(overrides)
    return Appointment(**data)


class TestReminderScheduler:
    """Reminder scheduling against the local reminders table."""

    def test_schedule_and_pending(self, session_factory):
        scheduler = ReminderScheduler(HeadlessDevice(), session_factory)
        reminder_id = run(scheduler.schedule(_appointment(), now=NOW))

        pending = scheduler.pending(now=NOW)
        assert reminder_id is not None
        assert pending[0]["title"] == "Sopralluogo tra 30 minuti"
        assert pending[0]["body"] == "Anna - Via Roma 1"
        assert pending[0]["fire_at"] == NOW + timedelta(days=1, minutes=-30)

    def test_past_fire_time_skipped(self, session_factory):
        scheduler = ReminderScheduler(HeadlessDevice(), session_factory)
        assert run(scheduler.schedule(_appointment(date=NOW + timedelta(minutes=10)), now=NOW)) is None

    def test_no_lead_time(self, session_factory):
        scheduler = ReminderScheduler(HeadlessDevice(), session_factory)
        assert run(scheduler.schedule(_appointment(notify_before=0), now=NOW)) is None

    def test_permission_denied(self, session_factory):
        scheduler = ReminderScheduler(HeadlessDevice(allow_notifications=False), session_factory)
        assert run(scheduler.schedule(_appointment(), now=NOW)) is None
        assert scheduler.pending(now=NOW) == []

    def test_cancel(self, session_factory):
        scheduler = ReminderScheduler(HeadlessDevice(), session_factory)
        run(scheduler.schedule(_appointment(), now=NOW))
        run(scheduler.schedule(_appointment(id="apt-y"), now=NOW))

        assert scheduler.cancel_by_appointment_id("apt-x") == 1
        assert [r["appointment_id"] for r in scheduler.pending(now=NOW)] == ["apt-y"]
        scheduler.cancel_all()
        assert scheduler.pending(now=NOW) == []

    def test_lead_time_label(self):
        assert lead_time_label(15) == "15 minuti"
        assert lead_time_label(60) == "1 ora"
        assert lead_time_label(180) == "3 ore"


class TestReports:
    """Email report text."""

    def test_closing_report(self, baseline):
        subject, body = build_closing_report(baseline.interventions[:2], "Ditta GBD", None, now=NOW)
        assert subject == "Report Interventi Chiusi - 02/06/2025 - SolarTech"
        assert "TOTALE INTERVENTI: 2" in body
        assert "INTERVENTO 2: INT-2025-002" in body
        assert "Data: 2 giugno 2025 alle 09:00" in body

    def test_intervention_report(self, baseline):
        intervention = baseline.interventions[4]
        subject, body = build_intervention_report(intervention, "GBD B&A", " Cliente soddisfatto ", now=NOW)
        assert subject == "[SolarTech] Report Intervento INT-2025-005 - Franco Colombo"
        assert "Nome: GBD B&A" in body
        assert "NOTE AGGIUNTIVE DITTA\n  Cliente soddisfatto" in body
        assert "Google Maps: https://www.google.com/maps?q=44.4949,11.3426" in body

    def test_mailto(self):
        url = mailto_url("ops@example.com", "Report 1", "riga 1\nriga 2")
        assert url == "mailto:ops@example.com?subject=Report%201&body=riga%201%0Ariga%202"
