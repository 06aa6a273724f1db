"""Tests for condition aggregation and snapshot building."""

from __future__ import annotations

from datetime import date, datetime, timezone

from discloser.sharing.collaborators import ConditionResult, KnownCondition, TestResult
from discloser.sharing.conditions import (
    NOT_RECENTLY_TESTED,
    aggregate_conditions,
    condition_matches,
)
from discloser.sharing.model import (
    DisclosedEntry,
    ResultSnapshot,
    StatusSnapshot,
    TestStatus,
)
from discloser.sharing.snapshot import build_result_snapshot, build_status_snapshot


def _result(
    result_id: str,
    day: date,
    *lines: tuple[str, TestStatus],
    verified: bool = False,
) -> TestResult:
    return TestResult(
        id=result_id,
        owner_id='user_1',
        test_date=day,
        status=TestStatus.NEGATIVE,
        test_type='Full panel',
        results=tuple(ConditionResult(name=n, status=s) for n, s in lines),
        is_verified=verified,
    )


HSV2 = KnownCondition(
    condition='HSV-2',
    added_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
    management_methods=('daily_suppressive',),
)


class TestConditionMatches:

    def test_exact_match_case_insensitive(self):
        assert condition_matches('chlamydia', 'Chlamydia')

    def test_family_variants(self):
        assert condition_matches('Herpes Simplex Virus 2', 'HSV-2')
        assert condition_matches('HSV2 IgG', 'HSV-2')
        assert condition_matches('Hep B surface antigen', 'Hepatitis B')

    def test_different_families(self):
        assert not condition_matches('HSV-1', 'HSV-2')
        assert not condition_matches('Hepatitis C', 'Hepatitis B')
        assert not condition_matches('Syphilis', 'HIV')

    def test_long_forms_recognised_on_test_name(self):
        assert condition_matches('Herpes Simplex Virus 1', 'Herpes (HSV-1)')
        assert condition_matches('Simplex 1 IgG', 'HSV-1')
        assert condition_matches('Human Papilloma Virus', 'HPV')

    def test_declared_long_form_needs_exact_name(self):
        assert not condition_matches('HSV-1', 'Herpes Simplex Virus 1')
        assert condition_matches('herpes simplex virus 1', 'Herpes Simplex Virus 1')


class TestAggregateConditions:

    def test_latest_result_wins(self):
        old = _result('r1', date(2025, 1, 1), ('Chlamydia', TestStatus.POSITIVE))
        new = _result('r2', date(2025, 3, 1), ('Chlamydia', TestStatus.NEGATIVE))

        entries = aggregate_conditions([new, old])

        assert len(entries) == 1
        assert entries[0].status is TestStatus.NEGATIVE
        assert entries[0].test_date == date(2025, 3, 1)
        assert entries[0].result == 'Negative'

    def test_sorted_by_name(self):
        r = _result(
            'r1', date(2025, 1, 1),
            ('syphilis', TestStatus.NEGATIVE),
            ('Chlamydia', TestStatus.NEGATIVE),
            ('HIV', TestStatus.NEGATIVE),
        )
        names = [e.name for e in aggregate_conditions([r])]
        assert names == ['Chlamydia', 'HIV', 'syphilis']

    def test_known_condition_flagged_with_methods(self):
        r = _result('r1', date(2025, 2, 1), ('Herpes Simplex Virus 2', TestStatus.POSITIVE))

        [entry] = aggregate_conditions([r], [HSV2])

        assert entry.is_known_condition
        assert entry.has_test_data
        assert entry.management_methods == ('daily_suppressive',)

    def test_untested_known_condition_included(self):
        r = _result('r1', date(2025, 2, 1), ('HIV', TestStatus.NEGATIVE))

        entries = aggregate_conditions([r], [HSV2])
        hsv = next(e for e in entries if e.name == 'HSV-2')

        assert hsv.is_known_condition
        assert not hsv.has_test_data
        assert hsv.status is TestStatus.PENDING
        assert hsv.result == NOT_RECENTLY_TESTED
        assert hsv.test_date == date(2024, 1, 10)

    def test_verification_carried(self):
        r = _result('r1', date(2025, 2, 1), ('HIV', TestStatus.NEGATIVE), verified=True)
        [entry] = aggregate_conditions([r])
        assert entry.is_verified

    def test_empty_history(self):
        assert aggregate_conditions([]) == []


class TestBuildStatusSnapshot:

    def _entries(self) -> list[DisclosedEntry]:
        return [
            DisclosedEntry(
                name='HIV', status=TestStatus.NEGATIVE, result='Negative',
                test_date=date(2025, 1, 1),
            ),
            DisclosedEntry(
                name='HSV-2', status=TestStatus.POSITIVE, result='Positive',
                test_date=date(2025, 1, 1), is_known_condition=True,
                management_methods=('daily_suppressive',),
            ),
        ]

    def test_includes_everything_by_default(self):
        snap = build_status_snapshot(self._entries())
        assert isinstance(snap, StatusSnapshot)
        assert [e.name for e in snap.entries] == ['HIV', 'HSV-2']
        assert snap.excluded_known_conditions is False

    def test_excludes_known_conditions(self):
        snap = build_status_snapshot(self._entries(), exclude_known_conditions=True)
        assert [e.name for e in snap.entries] == ['HIV']
        assert snap.excluded_known_conditions is True

    def test_to_dict_from_dict(self):
        snap = build_status_snapshot(self._entries())
        assert StatusSnapshot.from_dict(snap.to_dict()) == snap


class TestBuildResultSnapshot:

    def test_full_breakdown(self):
        r = _result(
            'tr_1', date(2025, 4, 2),
            ('Chlamydia', TestStatus.NEGATIVE),
            ('HSV-2', TestStatus.POSITIVE),
            verified=True,
        )

        snap = build_result_snapshot(r, [HSV2])

        assert isinstance(snap, ResultSnapshot)
        assert snap.test_result_id == 'tr_1'
        assert snap.test_type == 'Full panel'
        assert snap.is_verified
        assert [e.name for e in snap.entries] == ['Chlamydia', 'HSV-2']
        hsv = snap.entries[1]
        assert hsv.is_known_condition
        assert hsv.management_methods == ('daily_suppressive',)
        assert not snap.entries[0].is_known_condition

    def test_dict_is_json_friendly(self):
        r = _result('tr_1', date(2025, 4, 2), ('HIV', TestStatus.NEGATIVE))
        data = build_result_snapshot(r).to_dict()
        assert data['test_date'] == '2025-04-02'
        assert data['status'] == 'negative'
        assert data['entries'][0]['management_methods'] == []
