"""Plain-text email reports for closed and completed interventions."""

from datetime import datetime
from urllib.parse import quote

from schemas.records import CATEGORY_LABELS, Intervention, utcnow

_MONTHS = [
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
]

APP_NAME = "SolarTech App"


def _long_date(value: datetime) -> str:
    return f"{value.day} {_MONTHS[value.month - 1]} {value.year}"


def _short_datetime(value: datetime | None) -> str:
    if value is None:
        return "N/D"
    return value.strftime("%d/%m/%Y %H:%M")


def build_closing_report(interventions: list[Intervention], operator: str | None,
                         company: str | None, now: datetime | None = None) -> tuple[str, str]:
    """Subject and body of the report sent when interventions are closed in bulk."""
    now = now or utcnow()
    subject = f"Report Interventi Chiusi - {now.strftime('%d/%m/%Y')} - {company or 'SolarTech'}"

    lines = [
        "REPORT INTERVENTI CHIUSI",
        f"Data: {_long_date(now)} alle {now.strftime('%H:%M')}",
        f"Operatore: {operator or 'N/D'}",
        f"Ditta: {company or 'N/D'}",
        "",
        "=" * 50,
        "",
        f"TOTALE INTERVENTI: {len(interventions)}",
        "",
    ]

    for index, intervention in enumerate(interventions, start=1):
        client = intervention.client
        lines += [
            "-" * 40,
            f"INTERVENTO {index}: {intervention.number}",
            "-" * 40,
            f"Categoria: {CATEGORY_LABELS.get(intervention.category, intervention.category.value)}",
            f"Cliente: {client.name}",
            f"Indirizzo: {client.address} {client.civic_number}, {client.cap} {client.city}",
            f"Telefono: {client.phone}",
            f"Email: {client.email or 'N/D'}",
            f"Tecnico: {intervention.technician_name or 'N/D'}",
            f"Descrizione: {intervention.description}",
        ]
        if intervention.documentation.notes:
            lines.append(f"Note lavoro: {intervention.documentation.notes}")
        if intervention.documentation.photos:
            lines.append(f"Foto allegate: {len(intervention.documentation.photos)}")
        if intervention.location:
            lines.append(f"Posizione GPS: {intervention.location.latitude}, {intervention.location.longitude}")
            if intervention.location.address:
                lines.append(f"Indirizzo GPS: {intervention.location.address}")
        lines.append("")

    lines += ["=" * 50, "Fine Report", f"Generato automaticamente da {APP_NAME}", ""]
    return subject, "\n".join(lines)


def build_intervention_report(intervention: Intervention, company_name: str, extra_notes: str = "",
                              now: datetime | None = None) -> tuple[str, str]:
    """Subject and body of the report for a single completed intervention."""
    now = now or utcnow()
    client = intervention.client
    documentation = intervention.documentation
    rule = "═" * 39

    subject = f"[SolarTech] Report Intervento {intervention.number} - {client.name}"
    lines = [
        rule, "REPORT INTERVENTO COMPLETATO", rule, "",
        "▸ DATI INTERVENTO",
        f"  Numero: {intervention.number}",
        f"  Categoria: {CATEGORY_LABELS.get(intervention.category, intervention.category.value)}",
        f"  Priorità: {intervention.priority.value.upper()}",
        f"  Descrizione: {intervention.description}",
        "",
        "▸ CLIENTE",
        f"  Nome: {client.name}",
        f"  Indirizzo: {client.address} {client.civic_number}",
        f"  CAP/Città: {client.cap} {client.city}",
        f"  Telefono: {client.phone}",
        f"  Email: {client.email}",
        "",
        "▸ DITTA INSTALLATRICE",
        f"  Nome: {company_name}",
        f"  Tecnico: {intervention.technician_name or 'Non assegnato'}",
        "",
        "▸ DATE",
        f"  Assegnato il: {_short_datetime(intervention.assigned_at)}",
    ]
    if documentation.started_at:
        lines.append(f"  Iniziato il: {_short_datetime(documentation.started_at)}")
    if documentation.completed_at:
        lines.append(f"  Completato il: {_short_datetime(documentation.completed_at)}")
    lines.append("")

    location = intervention.location
    if location:
        lines += [
            "▸ POSIZIONE GPS LAVORO",
            f"  Indirizzo: {location.address or 'N/D'}",
            f"  Coordinate: {location.latitude:.6f}, {location.longitude:.6f}",
            f"  Registrata il: {_short_datetime(location.timestamp)}",
            f"  Google Maps: https://www.google.com/maps?q={location.latitude},{location.longitude}",
            "",
        ]
    if documentation.notes:
        lines += ["▸ NOTE TECNICO", f"  {documentation.notes}", ""]
    if extra_notes.strip():
        lines += ["▸ NOTE AGGIUNTIVE DITTA", f"  {extra_notes.strip()}", ""]

    lines += ["▸ DOCUMENTAZIONE FOTOGRAFICA", f"  Numero foto allegate: {len(documentation.photos)}"]
    if documentation.photos:
        lines.append("  (Le foto sono allegate a questa email)")
    lines += [
        "",
        rule,
        f"Report generato automaticamente da {APP_NAME}",
        f"Data invio: {_short_datetime(now)}",
        rule,
    ]
    return subject, "\n".join(lines)


def mailto_url(recipient: str, subject: str, body: str) -> str:
    return f"mailto:{quote(recipient, safe='@')}?subject={quote(subject)}&body={quote(body)}"
