"""SolarTech Field Client — Offline Session Demo Script.

Walks through the tricky paths of the client state with the server
unreachable: offline login, role-scoped views, the photo rule on
completion, bulk assignment and a restart over the local cache.
Runs directly against the internal Python functions (no server needed).

Usage:
    source venv/bin/activate
    python demo_field_session.py
"""

import asyncio
import logging

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import workflows
from database import init_db
from schemas.records import InterventionStatus
from seed_data import SOLARPRO_ID
from store.client import FieldClient, build_client

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s | %(levelname)-7s | %(name)-25s | %(message)s",
    datefmt="%H:%M:%S",
)

FIRST = "00000001-0001-0001-0001-000000000001"
BACKLOG = "00000009-0009-0009-0009-000000000009"


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Server non raggiungibile", request=request)


async def _login(client: FieldClient, username: str) -> str:
    if client.auth.is_authenticated:
        await client.auth.sign_out()
    result = await client.auth.login(username, "password")
    return f"login {username}: {'ok' if result.success else result.error}"


async def technician_view(client: FieldClient, session_factory: sessionmaker) -> str:
    await _login(client, "alex")
    numbers = sorted(i.number for i in client.state.interventions)
    return f"alex sees {', '.join(numbers)}"


async def complete_without_photo(client: FieldClient, session_factory: sessionmaker) -> str:
    await _login(client, "alex")
    result = await workflows.change_status(client, FIRST, InterventionStatus.COMPLETED)
    return f"completed={result.success} ({result.message})"


async def start_work(client: FieldClient, session_factory: sessionmaker) -> str:
    await _login(client, "alex")
    result = await workflows.change_status(client, FIRST, InterventionStatus.IN_PROGRESS)
    return result.message


async def bulk_assign(client: FieldClient, session_factory: sessionmaker) -> str:
    await _login(client, "gbd")
    result = workflows.bulk_assign(client, [BACKLOG], SOLARPRO_ID)
    return f"{result.message}; backlog left: {len(client.state.unassigned_interventions)}"


async def restart(client: FieldClient, session_factory: sessionmaker) -> str:
    restarted = build_client(session_factory=session_factory,
                             transport=httpx.MockTransport(_unreachable), dev_mode=True)
    restarted.start()
    status = restarted.state.get_intervention_by_id(FIRST).status.value
    return f"after restart INT-2025-001 is {status}, session kept: {restarted.auth.is_authenticated}"


CASES = [
    {"name": "Technician scope", "run": technician_view,
     "expect": "Own interventions plus unclaimed ones of the same company."},
    {"name": "Completion without photos", "run": complete_without_photo,
     "expect": "Refused: at least one photo is required."},
    {"name": "Start work", "run": start_work,
     "expect": "Status in_corso, start time stamped."},
    {"name": "Backlog to Solar Pro", "run": bulk_assign,
     "expect": "One intervention assigned, two left in the backlog."},
    {"name": "Restart over the local cache", "run": restart,
     "expect": "The in_corso edit survives; the offline session does not."},
]


def print_separator():
    print("\n" + "=" * 70)


async def run_demo():
    print("=" * 70)
    print("SOLARTECH FIELD CLIENT — OFFLINE SESSION DEMO")
    print("=" * 70)

    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    client = build_client(session_factory=session_factory,
                          transport=httpx.MockTransport(_unreachable), dev_mode=True)
    client.start()

    for i, case in enumerate(CASES, 1):
        print_separator()
        print(f"  STEP {i}/{len(CASES)}: {case['name']}")
        print(f"  Expected: {case['expect']}")
        try:
            print(f"  Result:   {await case['run'](client, session_factory)}")
        except Exception as e:
            print(f"  ERROR: {e}")

    print_separator()


if __name__ == "__main__":
    asyncio.run(run_demo())
