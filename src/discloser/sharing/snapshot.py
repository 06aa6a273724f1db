"""Build the disclosure snapshot embedded into a new link.

Runs exactly once per link, at creation. The output is stored on the link
and never recomputed, so later changes to the owner's records do not leak
into links that already exist.
"""

from __future__ import annotations

from collections.abc import Iterable

from .collaborators import KnownCondition, TestResult
from .conditions import default_result_text, find_known_condition
from .model import DisclosedEntry, ResultSnapshot, StatusSnapshot


def build_status_snapshot(
    conditions: Iterable[DisclosedEntry],
    *,
    exclude_known_conditions: bool = False,
) -> StatusSnapshot:
    """Freeze the aggregated status, optionally without chronic conditions."""
    entries = tuple(
        entry for entry in conditions
        if not (exclude_known_conditions and entry.is_known_condition)
    )
    return StatusSnapshot(
        entries=entries,
        excluded_known_conditions=exclude_known_conditions,
    )


def build_result_snapshot(
    test_result: TestResult,
    known_conditions: Iterable[KnownCondition] = (),
) -> ResultSnapshot:
    """Freeze one test result's full breakdown.

    Lines matching a declared known condition are flagged and carry the
    owner's management-method identifiers.
    """
    known_conditions = list(known_conditions)
    entries = []
    for line in test_result.results:
        kc = find_known_condition(line.name, known_conditions)
        entries.append(DisclosedEntry(
            name=line.name,
            status=line.status,
            result=line.result or default_result_text(line.status),
            test_date=test_result.test_date,
            is_verified=test_result.is_verified,
            is_known_condition=kc is not None,
            management_methods=kc.management_methods if kc else (),
        ))
    return ResultSnapshot(
        test_result_id=test_result.id,
        test_date=test_result.test_date,
        test_type=test_result.test_type,
        status=test_result.status,
        is_verified=test_result.is_verified,
        verification_level=test_result.verification_level,
        entries=tuple(entries),
    )
