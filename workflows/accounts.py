"""Account workflows: companies with their login, and technician/company users."""

import logging

from schemas.records import Administrator, CompanyActor, Role
from schemas.results import ActionResult
from store.client import FieldClient

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _fail(action: str, message: str, code: str = "invalid") -> ActionResult:
    return ActionResult(action=action, success=False, message=message, code=code)


def _check_credentials(action: str, username: str, password: str) -> ActionResult | None:
    if not username.strip():
        return _fail(action, "Inserisci username e nome")
    if len(password) < MIN_PASSWORD_LENGTH:
        return _fail(action, f"La password deve essere di almeno {MIN_PASSWORD_LENGTH} caratteri")
    return None


def create_company_account(client: FieldClient, data: dict) -> ActionResult:
    """
    Create a company together with its `ditta` login.

    The company is created first; if the login cannot be registered the
    company is deleted again so no company is left without an account.
    """
    action = "create_company_account"
    actor = client.auth.actor
    if actor is None:
        return _fail(action, "Utente non autenticato", code="unauthenticated")
    if not isinstance(actor, Administrator):
        return _fail(action, "Solo l'amministratore può creare ditte", code="forbidden")

    username = data.get("username", "").strip().lower()
    password = data.get("password", "")
    invalid = _check_credentials(action, username, password)
    if invalid:
        return invalid

    company_fields = {key: data.get(key, "") for key in ("name", "address", "phone", "email")}
    created = client.state.add_company({**company_fields, "username": username, "password": password})
    if not created.success:
        return created.model_copy(update={"action": action})
    company_id = created.data["id"]
    company_name = company_fields["name"]

    account = {
        "username": username,
        "password": password,
        "role": Role.COMPANY,
        "name": company_name,
        "email": company_fields["email"],
        "phone": company_fields["phone"] or None,
        "company_id": company_id,
        "company_name": company_name,
    }
    registered = client.auth.register_user(account)
    if not registered.success:
        logger.warning(f"Login for {company_name} not registered, rolling back company {company_id}")
        client.state.delete_company(company_id)
        return registered.model_copy(update={"action": action})

    client.state.add_user(account, existing_id=registered.data["id"])
    logger.info(f"Company account created: {company_name} ({username})")
    return ActionResult(
        action=action,
        success=True,
        message=f"Ditta \"{company_name}\" creata con successo",
        data={"company_id": company_id, "user_id": registered.data["id"]},
    )


def create_user_account(client: FieldClient, data: dict) -> ActionResult:
    """
    Create a user account.

    Rules:
    1. Administrator → any role; company roles need an existing company
    2. Company → technicians only, always in its own company
    3. Technician → never
    """
    action = "create_user_account"
    actor = client.auth.actor
    if actor is None:
        return _fail(action, "Utente non autenticato", code="unauthenticated")

    username = data.get("username", "").strip().lower()
    password = data.get("password", "")
    name = data.get("name", "").strip()
    invalid = _check_credentials(action, username, password)
    if invalid:
        return invalid
    if not name:
        return _fail(action, "Inserisci username e nome")

    if isinstance(actor, Administrator):
        try:
            role = Role((data.get("role") or Role.TECHNICIAN).lower())
        except ValueError:
            return _fail(action, f"Ruolo non valido: {data.get('role')}")
        company_id = data.get("company_id") or None
        company_name = None
        if role != Role.ADMINISTRATOR:
            company = client.state.get_company_by_id(company_id) if company_id else None
            if company is None:
                return _fail(action, "Seleziona una ditta")
            company_name = company.name
        else:
            company_id = None
    elif isinstance(actor, CompanyActor):
        if actor.company_id is None:
            return _fail(action, "Errore: ditta non configurata")
        role = Role.TECHNICIAN
        company_id = actor.company_id
        company_name = client.auth.user.company_name
    else:
        return _fail(action, "Operazione non consentita per il tuo ruolo", code="forbidden")

    account = {
        "username": username,
        "password": password,
        "role": role,
        "name": name,
        "email": data.get("email", "").strip(),
        "phone": (data.get("phone") or "").strip() or None,
        "company_id": company_id,
        "company_name": company_name,
    }
    registered = client.auth.register_user(account)
    if not registered.success:
        return registered.model_copy(update={"action": action})

    client.state.add_user(account, existing_id=registered.data["id"])
    logger.info(f"User account created: {username} ({role.value})")
    return ActionResult(
        action=action,
        success=True,
        message=f"Utente \"{name}\" creato con successo",
        data={"id": registered.data["id"], "username": username, "role": role.value},
    )
