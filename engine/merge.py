"""Reconciliation of the seeded baseline with locally cached records."""

from typing import Iterable, Mapping, TypeVar

from schemas.records import Record

R = TypeVar("R", bound=Record)

# Identifier prefixes written by client versions that predate server UUIDs
LEGACY_ID_PREFIXES = ("company-", "int-", "tech-", "ditta-", "master-")


def index_by_id(records: Iterable[R]) -> dict[str, R]:
    """Key records by id, keeping their order. A repeated id keeps the last record."""
    return {record.id: record for record in records}


def merge(baseline: Mapping[str, R], cached: Mapping[str, R]) -> dict[str, R]:
    """
    Layer cached records over the baseline.

    A cached record replaces the baseline record with the same id entirely
    (no field-level merge, no timestamp comparison). Cached records unknown
    to the baseline are appended in cache order. Baseline records without a
    cached counterpart are kept as they are.
    """
    merged = {record_id: cached.get(record_id, record) for record_id, record in baseline.items()}
    for record_id, record in cached.items():
        if record_id not in merged:
            merged[record_id] = record
    return merged


def diff_from_baseline(collection: Mapping[str, R], baseline: Mapping[str, R]) -> list[R]:
    """Records that are new or no longer identical to their baseline version."""
    return [
        record for record_id, record in collection.items()
        if baseline.get(record_id) != record
    ]


def has_legacy_identifiers(raw_records: list | None) -> bool:
    """Detect cached JSON written with the old, locally generated identifiers."""
    if not raw_records:
        return False
    for item in raw_records:
        if not isinstance(item, dict):
            continue
        for key in ("id", "companyId"):
            value = item.get(key)
            if isinstance(value, str) and value.startswith(LEGACY_ID_PREFIXES):
                return True
    return False
