"""Interfaces to the owner's live data, consumed at link-creation time.

The share-link core never owns profiles or health records. It reads them
through two small protocols:

  - ``ProfileLookup`` for display-name resolution (alias / first name).
  - ``HealthRecordSource`` for the test results and declared known
    conditions that snapshots are built from.

In-memory implementations back tests and local development.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol, runtime_checkable

from .model import TestStatus


@dataclass(frozen=True, slots=True)
class OwnerProfile:
    owner_id: str
    first_name: str | None = None
    alias: str | None = None


@dataclass(frozen=True, slots=True)
class ConditionResult:
    """One line inside a test result (e.g. ``Chlamydia: Negative``)."""

    name: str
    status: TestStatus
    result: str = ''


@dataclass(frozen=True, slots=True)
class TestResult:
    """A recorded test with its per-condition breakdown."""

    __test__ = False  # Not a pytest test class.

    id: str
    owner_id: str
    test_date: date
    status: TestStatus
    test_type: str = ''
    results: tuple[ConditionResult, ...] = ()
    is_verified: bool = False
    verification_level: str | None = None


@dataclass(frozen=True, slots=True)
class KnownCondition:
    """A long-term condition the owner has declared on their profile."""

    condition: str
    added_at: datetime
    management_methods: tuple[str, ...] = ()
    notes: str | None = None


@runtime_checkable
class ProfileLookup(Protocol):
    async def get_profile(self, owner_id: str) -> OwnerProfile | None: ...


@runtime_checkable
class HealthRecordSource(Protocol):
    async def get_test_result(
        self, owner_id: str, test_result_id: str,
    ) -> TestResult | None: ...

    async def list_test_results(self, owner_id: str) -> list[TestResult]: ...

    async def list_known_conditions(self, owner_id: str) -> list[KnownCondition]: ...


class InMemoryProfileLookup:
    def __init__(self, profiles: list[OwnerProfile] | None = None) -> None:
        self._profiles = {p.owner_id: p for p in profiles or ()}

    def put(self, profile: OwnerProfile) -> None:
        self._profiles[profile.owner_id] = profile

    async def get_profile(self, owner_id: str) -> OwnerProfile | None:
        return self._profiles.get(owner_id)


@dataclass
class InMemoryHealthRecordSource:
    """Mutable record store. Tests change it to prove snapshots stay frozen."""

    results: dict[str, TestResult] = field(default_factory=dict)
    known_conditions: dict[str, list[KnownCondition]] = field(default_factory=dict)

    def add_result(self, result: TestResult) -> None:
        self.results[result.id] = result

    def declare_condition(self, owner_id: str, condition: KnownCondition) -> None:
        self.known_conditions.setdefault(owner_id, []).append(condition)

    async def get_test_result(
        self, owner_id: str, test_result_id: str,
    ) -> TestResult | None:
        result = self.results.get(test_result_id)
        if result is None or result.owner_id != owner_id:
            return None
        return result

    async def list_test_results(self, owner_id: str) -> list[TestResult]:
        return [r for r in self.results.values() if r.owner_id == owner_id]

    async def list_known_conditions(self, owner_id: str) -> list[KnownCondition]:
        return list(self.known_conditions.get(owner_id, ()))
