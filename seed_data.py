"""Seeded baseline: the last known server state shipped with the client.

The baseline is rebuilt at every process start with timestamps relative to
"now"; locally cached edits are layered over it (see engine.merge).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from schemas.records import (
    Appointment, AuthUser, Company, Intervention, User, utcnow,
)

GBD_ID = "11111111-1111-1111-1111-111111111111"
GBD_NAME = "GBD B&A S.r.l."
SOLARPRO_ID = "22222222-2222-2222-2222-222222222222"
SOLARPRO_NAME = "Solar Pro S.r.l."

ADMIN_ID = "17ac45dc-2e12-4226-90f5-49db2d8ac92b"
ALEX_ID = "cccccccc-cccc-cccc-cccc-cccccccccccc"
BILLO_ID = "dddddddd-dddd-dddd-dddd-dddddddddddd"
LUCA_ID = "eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee"


@dataclass
class Baseline:
    companies: list[Company] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    interventions: list[Intervention] = field(default_factory=list)
    appointments: list[Appointment] = field(default_factory=list)


def _intervention(now: datetime, seq: int, client: dict, company: tuple | None, technician: tuple | None,
                  category: str, description: str, priority: str, age: timedelta,
                  status: str = "assegnato", updated: timedelta | None = None, **extra) -> Intervention:
    ident = f"{seq:08d}-{seq:04d}-{seq:04d}-{seq:04d}-{seq:012d}"
    company_id, company_name = company or (None, None)
    technician_id, technician_name = technician or (None, None)
    return Intervention.model_validate({
        "id": ident,
        "number": f"INT-2025-{seq:03d}",
        "client": client,
        "companyId": company_id,
        "companyName": company_name,
        "technicianId": technician_id,
        "technicianName": technician_name,
        "category": category,
        "description": description,
        "priority": priority,
        "assignedAt": now - age,
        "assignedBy": "Admin",
        "status": status,
        "documentation": extra.pop("documentation", {"photos": [], "notes": ""}),
        "createdAt": now - age,
        "updatedAt": now - (updated if updated is not None else age),
        **extra,
    })


def _client(name, address, civic, cap, city, phone, email) -> dict:
    return {"name": name, "address": address, "civicNumber": civic, "cap": cap,
            "city": city, "phone": phone, "email": email}


def build_baseline(now: datetime | None = None) -> Baseline:
    """Build the seeded companies, users, interventions and appointments."""
    now = now or utcnow()
    day = timedelta(days=1)
    hour = timedelta(hours=1)
    gbd = (GBD_ID, GBD_NAME)
    solarpro = (SOLARPRO_ID, SOLARPRO_NAME)
    alex = (ALEX_ID, "Alessandro Rossi")
    billo = (BILLO_ID, "Marco Bianchi")
    luca = (LUCA_ID, "Luca Verdi")

    companies = [
        Company(id=GBD_ID, name=GBD_NAME, address="Via Milano 123, Milano", phone="+39 02 12345678",
                email="info@gbd-ba.it", username="ditta", password="ditta123", created_at=now - 30 * day),
        Company(id=SOLARPRO_ID, name=SOLARPRO_NAME, address="Via Roma 45, Roma", phone="+39 06 87654321",
                email="info@solarpro.it", username="solarpro", password="solar123", created_at=now - 20 * day),
    ]

    users = [
        User(id=ADMIN_ID, username="gbd", role="master", name="GBD Amministratore", email="admin@gbd.it",
             phone="+39 02 00000000", created_at=now - 60 * day),
        User(id="aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa", username="ditta", role="ditta", name="GBD B&A",
             email="info@gbd-ba.it", phone="+39 02 12345678", company_id=GBD_ID, company_name=GBD_NAME,
             created_at=now - 30 * day),
        User(id="bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb", username="solarpro", role="ditta", name="Solar Pro",
             email="info@solarpro.it", phone="+39 06 87654321", company_id=SOLARPRO_ID,
             company_name=SOLARPRO_NAME, created_at=now - 20 * day),
        User(id=ALEX_ID, username="alex", role="tecnico", name="Alessandro Rossi", email="alex@gbd-ba.it",
             phone="+39 333 1234567", company_id=GBD_ID, company_name=GBD_NAME,
             last_location={"latitude": 45.4642, "longitude": 9.19, "address": "Via Roma 45, Milano",
                            "timestamp": now - timedelta(minutes=5), "isOnline": True},
             created_at=now - 25 * day),
        User(id=BILLO_ID, username="billo", role="tecnico", name="Marco Bianchi", email="billo@gbd-ba.it",
             phone="+39 333 7654321", company_id=GBD_ID, company_name=GBD_NAME,
             last_location={"latitude": 45.0703, "longitude": 7.6869,
                            "address": "Corso Vittorio Emanuele 120, Torino",
                            "timestamp": now - timedelta(minutes=10), "isOnline": True},
             created_at=now - 20 * day),
        User(id=LUCA_ID, username="luca", role="tecnico", name="Luca Verdi", email="luca@solarpro.it",
             phone="+39 333 9988776", company_id=SOLARPRO_ID, company_name=SOLARPRO_NAME,
             last_location={"latitude": 41.9028, "longitude": 12.4964, "address": "Via del Corso 15, Roma",
                            "timestamp": now - timedelta(minutes=30), "isOnline": False},
             created_at=now - 15 * day),
    ]

    interventions = [
        _intervention(now, 1, _client("Giuseppe Verdi", "Via Roma", "45", "20121", "Milano",
                                      "+39 02 1234567", "g.verdi@email.it"),
                      gbd, alex, "installazione",
                      "Installazione impianto fotovoltaico 6kW con sistema di accumulo.", "alta", 2 * day),
        _intervention(now, 2, _client("Anna Bianchi", "Corso Vittorio Emanuele", "120", "10121", "Torino",
                                      "+39 011 9876543", "a.bianchi@email.it"),
                      gbd, alex, "sopralluogo", "Sopralluogo per verifica stato impianto esistente.",
                      "normale", day, status="appuntamento_fissato", updated=5 * hour,
                      appointment={"date": now + 2 * day + 10 * hour, "confirmedAt": now - 5 * hour,
                                   "notes": "Cliente disponibile solo al mattino"}),
        _intervention(now, 3, _client("Maria Russo", "Via Garibaldi", "33", "50123", "Firenze",
                                      "+39 055 1122334", "m.russo@email.it"),
                      gbd, billo, "installazione", "Installazione sistema di accumulo aggiuntivo 5kWh.",
                      "urgente", 4 * hour, status="appuntamento_fissato", updated=2 * hour,
                      appointment={"date": now + 2 * hour, "confirmedAt": now - 2 * hour,
                                   "notes": "Urgente - cliente senza produzione"}),
        _intervention(now, 4, _client("Luigi Esposito", "Via Napoli", "78", "80121", "Napoli",
                                      "+39 081 5554433", "l.esposito@email.it"),
                      gbd, None, "sopralluogo",
                      "Sopralluogo per preventivo nuovo impianto 10kW - DA ASSEGNARE", "bassa", 3 * day),
        _intervention(now, 5, _client("Franco Colombo", "Via Dante", "15", "40121", "Bologna",
                                      "+39 051 9988776", "f.colombo@email.it"),
                      gbd, alex, "installazione", "Installazione impianto fotovoltaico 4kW residenziale.",
                      "normale", 5 * day, status="completato", updated=day,
                      appointment={"date": now - day, "confirmedAt": now - 3 * day, "notes": ""},
                      location={"latitude": 44.4949, "longitude": 11.3426, "address": "Via Dante 15, Bologna",
                                "timestamp": now - day},
                      documentation={"photos": [], "notes": "Installazione completata. Cliente soddisfatto.",
                                     "startedAt": now - day - hour, "completedAt": now - day}),
        _intervention(now, 6, _client("Roberto Mancini", "Via Venezia", "22", "35121", "Padova",
                                      "+39 049 7766554", "r.mancini@email.it"),
                      gbd, billo, "manutenzione", "Manutenzione ordinaria impianto 8kW.", "normale", 2 * day),
        _intervention(now, 7, _client("Giulia Ferrari", "Via Milano", "88", "24121", "Bergamo",
                                      "+39 035 4455667", "g.ferrari@email.it"),
                      solarpro, luca, "manutenzione", "Sostituzione inverter guasto.", "alta", day,
                      status="appuntamento_fissato", updated=2 * hour,
                      appointment={"date": now + 3 * day, "confirmedAt": now - 2 * hour,
                                   "notes": "Portare inverter sostitutivo"}),
        _intervention(now, 8, _client("Stefano Conti", "Via Verona", "56", "37121", "Verona",
                                      "+39 045 8899001", "s.conti@email.it"),
                      solarpro, luca, "manutenzione", "Controllo annuale sistema di accumulo.", "bassa",
                      4 * day, status="completato", updated=2 * day,
                      location={"latitude": 45.4384, "longitude": 10.9916, "address": "Via Verona 56, Verona",
                                "timestamp": now - 2 * day},
                      documentation={"photos": [], "notes": "Batteria efficienza al 92%.",
                                     "startedAt": now - 2 * day - hour, "completedAt": now - 2 * day}),
        _intervention(now, 9, _client("Roberto Neri", "Via Trieste", "22", "34121", "Trieste",
                                      "+39 040 1122334", "r.neri@email.it"),
                      None, None, "installazione", "Nuovo impianto fotovoltaico 8kW - NON ASSEGNATO", "alta", day),
        _intervention(now, 10, _client("Paola Galli", "Via Padova", "88", "35121", "Padova",
                                       "+39 049 5566778", "p.galli@email.it"),
                      None, None, "sopralluogo",
                      "Sopralluogo per ampliamento impianto esistente - NON ASSEGNATO", "normale", 2 * day),
        _intervention(now, 11, _client("Fabio Moretti", "Via Venezia", "45", "30121", "Venezia",
                                       "+39 041 9988001", "f.moretti@email.it"),
                      None, None, "manutenzione", "Manutenzione straordinaria inverter - NON ASSEGNATO",
                      "urgente", 6 * hour),
    ]

    appointments = [
        Appointment(id="apt-001", type="intervento", intervention_id="00000002-0002-0002-0002-000000000002",
                    client_name="Anna Bianchi", address="Corso Vittorio Emanuele 120, Torino",
                    date=now + 2 * day + 10 * hour, notes="Cliente disponibile solo al mattino", notify_before=60),
        Appointment(id="apt-002", type="intervento", intervention_id="00000003-0003-0003-0003-000000000003",
                    client_name="Maria Russo", address="Via Garibaldi 33, Firenze",
                    date=now + 2 * hour, notes="Urgente", notify_before=30),
    ]

    return Baseline(companies=companies, users=users, interventions=interventions, appointments=appointments)


# Offline login accounts, honoured only when DEV_MODE is on
DEMO_PASSWORD = "password"
DEMO_ACCOUNTS: dict[str, AuthUser] = {
    "gbd": AuthUser(id=ADMIN_ID, username="gbd", role="master", name="Amministratore Master",
                    email="admin@gbd.it"),
    "ditta": AuthUser(id="aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa", username="ditta", role="ditta",
                      name="Ditta GBD", email="info@gbd-ba.it", company_id=GBD_ID, company_name=GBD_NAME),
    "alex": AuthUser(id=ALEX_ID, username="alex", role="tecnico", name="Alessandro Tecnico",
                     email="alex@gbd-ba.it", company_id=GBD_ID, company_name=GBD_NAME),
    "billo": AuthUser(id=BILLO_ID, username="billo", role="tecnico", name="Billo Tecnico",
                      email="billo@gbd-ba.it", company_id=GBD_ID, company_name=GBD_NAME),
    "solarpro": AuthUser(id="bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb", username="solarpro", role="ditta",
                         name="Solar Pro", email="info@solarpro.it", company_id=SOLARPRO_ID,
                         company_name=SOLARPRO_NAME),
    "luca": AuthUser(id=LUCA_ID, username="luca", role="tecnico", name="Luca Tecnico",
                     email="luca@solarpro.it", company_id=SOLARPRO_ID, company_name=SOLARPRO_NAME),
}
