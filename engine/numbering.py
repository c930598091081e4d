"""Human-readable intervention numbers (INT-2025-NNN)."""

import re
from typing import Iterable

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def parse_sequence(number: str) -> int | None:
    match = _TRAILING_DIGITS.search(number or "")
    return int(match.group(1)) if match else None


class InterventionNumberer:
    """
    In-memory sequence seeded above the highest number in the fixtures.

    Known gap: the counter is not durable. It restarts from the fixtures at
    every process start, so numbers handed out in a previous run can repeat.
    """

    def __init__(self, prefix: str, seed_numbers: Iterable[str] = ()):
        self.prefix = prefix
        self._counter = max(
            (n for n in (parse_sequence(s) for s in seed_numbers) if n is not None),
            default=0,
        )

    @property
    def current(self) -> int:
        return self._counter

    def next(self) -> str:
        self._counter += 1
        return f"{self.prefix}{self._counter:03d}"
