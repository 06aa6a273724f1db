"""Aggregate an owner's test history into a per-condition status list.

This is the "current state" a status link discloses. For every condition
name the most recent result wins. Entries matching a declared known
(chronic) condition are flagged and carry its management methods. Declared
conditions with no matching result still appear, as "Not recently tested",
dated by the declaration date.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .collaborators import KnownCondition, TestResult
from .model import DisclosedEntry, TestStatus

NOT_RECENTLY_TESTED = 'Not recently tested'

# (declared condition, test name) pattern pairs. Long-form names are only
# recognised on the test side; a declared long form needs an exact match.
_CONDITION_FAMILIES: tuple[tuple[re.Pattern[str], re.Pattern[str]], ...] = (
    (re.compile(r'hsv-?1'), re.compile(r'hsv-?1|herpes simplex virus 1|simplex 1')),
    (re.compile(r'hsv-?2'), re.compile(r'hsv-?2|herpes simplex virus 2|simplex 2')),
    (re.compile(r'hiv'), re.compile(r'hiv')),
    (re.compile(r'hepatitis b|hep b|hbv'), re.compile(r'hepatitis b|hep b|hbv')),
    (re.compile(r'hepatitis c|hep c|hcv'), re.compile(r'hepatitis c|hep c|hcv')),
    (re.compile(r'hpv|papilloma'), re.compile(r'hpv|papilloma')),
)


def condition_matches(test_name: str, condition: str) -> bool:
    """True if ``test_name`` refers to the declared ``condition``."""
    name = test_name.lower()
    cond = condition.lower()
    if name == cond:
        return True
    return any(
        c.search(cond) and n.search(name) for c, n in _CONDITION_FAMILIES
    )


def find_known_condition(
    test_name: str, known_conditions: Iterable[KnownCondition],
) -> KnownCondition | None:
    for kc in known_conditions:
        if condition_matches(test_name, kc.condition):
            return kc
    return None


def default_result_text(status: TestStatus) -> str:
    return status.value.capitalize()


def aggregate_conditions(
    results: Iterable[TestResult],
    known_conditions: Iterable[KnownCondition] = (),
) -> list[DisclosedEntry]:
    """Compute the owner's aggregated status, sorted by condition name."""
    results = list(results)
    known_conditions = list(known_conditions)
    latest: dict[str, DisclosedEntry] = {}

    for test in results:
        for line in test.results:
            if not line.name:
                continue
            existing = latest.get(line.name)
            if existing is not None and test.test_date <= existing.test_date:
                continue
            kc = find_known_condition(line.name, known_conditions)
            latest[line.name] = DisclosedEntry(
                name=line.name,
                status=line.status,
                result=line.result or default_result_text(line.status),
                test_date=test.test_date,
                is_verified=test.is_verified,
                is_known_condition=kc is not None,
                has_test_data=True,
                management_methods=kc.management_methods if kc else (),
            )

    for kc in known_conditions:
        if any(condition_matches(name, kc.condition) for name in latest):
            continue
        latest[kc.condition] = DisclosedEntry(
            name=kc.condition,
            status=TestStatus.PENDING,
            result=NOT_RECENTLY_TESTED,
            test_date=kc.added_at.date(),
            is_verified=False,
            is_known_condition=True,
            has_test_data=False,
            management_methods=kc.management_methods,
        )

    return sorted(latest.values(), key=lambda e: e.name.lower())
