"""
Tests for next-occurrence resolution and countdown arithmetic.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from eventlist.services.occurrence_resolver import (
    DEFAULT_RECURRING_DATES,
    countdown_parts,
    days_between,
    recurring_month_day,
    resolve_next_occurrence,
)

NOW = datetime(2024, 1, 10)
PARIS = ZoneInfo('Europe/Paris')


class TestResolveNextOccurrence:

    def test_future_date_is_returned_unchanged(self):
        occurrence = resolve_next_occurrence('anniversaire', datetime(2024, 9, 28), NOW)

        assert occurrence.next_date == datetime(2024, 9, 28)
        assert occurrence.days_until == 262

    def test_future_date_keeps_its_time_of_day(self):
        target = datetime(2024, 1, 12, 15, 30)
        occurrence = resolve_next_occurrence('autre', target, NOW)

        assert occurrence.next_date == target
        assert occurrence.days_until == 3

    def test_past_fixed_type_moves_to_this_year(self):
        occurrence = resolve_next_occurrence('saint-valentin', datetime(2023, 2, 14), NOW)

        assert occurrence.next_date == datetime(2024, 2, 14)
        assert occurrence.days_until == 35

    def test_past_fixed_type_moves_to_next_year_once_gone(self):
        occurrence = resolve_next_occurrence('noel', datetime(2023, 12, 25), datetime(2024, 12, 26))

        assert occurrence.next_date == datetime(2025, 12, 25)
        assert occurrence.days_until == 364

    def test_fixed_type_ignores_stored_month_and_day(self):
        # stored on a different day; the type's date wins once it is past
        occurrence = resolve_next_occurrence('noel', datetime(2022, 3, 1), NOW)

        assert occurrence.next_date == datetime(2024, 12, 25)

    def test_other_type_recurs_on_its_own_date(self):
        occurrence = resolve_next_occurrence('autre', datetime(2023, 6, 1), NOW)

        assert occurrence.next_date == datetime(2024, 6, 1)

    def test_other_type_rolls_to_next_year(self):
        occurrence = resolve_next_occurrence('autre', datetime(2023, 1, 5), NOW)

        assert occurrence.next_date == datetime(2025, 1, 5)

    def test_rolled_date_is_midnight(self):
        occurrence = resolve_next_occurrence('autre', datetime(2023, 6, 1, 18, 45), NOW)

        assert occurrence.next_date == datetime(2024, 6, 1, 0, 0)

    def test_occurrence_today_at_midnight_is_zero_days(self):
        now = datetime(2024, 12, 25)
        occurrence = resolve_next_occurrence('noel', datetime(2023, 12, 25), now)

        assert occurrence.next_date == now
        assert occurrence.days_until == 0

    def test_later_today_rolls_to_next_year(self):
        # midnight has passed, so today's occurrence is already behind us
        occurrence = resolve_next_occurrence('noel', datetime(2023, 12, 25), datetime(2024, 12, 25, 9, 0))

        assert occurrence.next_date == datetime(2025, 12, 25)

    def test_february_29_in_a_common_year(self):
        occurrence = resolve_next_occurrence('autre', datetime(2024, 2, 29), datetime(2025, 1, 1))

        assert occurrence.next_date == datetime(2025, 2, 28)

    def test_custom_fixed_dates(self):
        occurrence = resolve_next_occurrence(
            'fete-des-meres', datetime(2023, 5, 1), NOW, fixed_dates={'fete-des-meres': (5, 26)}
        )

        assert occurrence.next_date == datetime(2024, 5, 26)

    def test_empty_table_uses_stored_date_for_every_type(self):
        occurrence = resolve_next_occurrence('noel', datetime(2023, 12, 24), NOW, fixed_dates={})

        assert occurrence.next_date == datetime(2024, 12, 24)

    def test_date_values_are_accepted(self):
        occurrence = resolve_next_occurrence('saint-valentin', date(2023, 2, 14), date(2024, 1, 10))

        assert occurrence.next_date == datetime(2024, 2, 14)
        assert occurrence.days_until == 35

    def test_aware_now_with_naive_target(self):
        now = datetime(2024, 1, 10, tzinfo=timezone.utc)
        occurrence = resolve_next_occurrence('saint-valentin', datetime(2023, 2, 14), now)

        assert occurrence.next_date == datetime(2024, 2, 14, tzinfo=timezone.utc)
        assert occurrence.days_until == 35

    def test_days_count_real_time_across_dst_start(self):
        # clocks go forward in Paris on 2024-03-31, so midnight on 04-01 is 23.5h away
        now = datetime(2024, 3, 30, 23, 30, tzinfo=PARIS)
        occurrence = resolve_next_occurrence('autre', datetime(2023, 4, 1), now)

        assert occurrence.next_date == datetime(2024, 4, 1, tzinfo=PARIS)
        assert occurrence.next_date.utcoffset() == timedelta(hours=2)
        assert occurrence.days_until == 1

    def test_days_count_real_time_across_dst_end(self):
        # 2024-10-27 has 25 hours in Paris
        now = datetime(2024, 10, 26, 0, 30, tzinfo=PARIS)
        occurrence = resolve_next_occurrence('autre', datetime(2024, 10, 28), now)

        assert occurrence.days_until == 3

    def test_missing_target_date(self):
        with pytest.raises(ValueError):
            resolve_next_occurrence('noel', None, NOW)

    def test_wrong_target_type(self):
        with pytest.raises(TypeError):
            resolve_next_occurrence('noel', '2024-12-25', NOW)

    def test_to_dict(self):
        data = resolve_next_occurrence('saint-valentin', datetime(2023, 2, 14), NOW).to_dict()

        assert data == {'nextDate': '2024-02-14T00:00:00', 'daysUntil': 35}


class TestProperties:
    """Checks over a spread of instants and stored dates."""

    INSTANTS = [
        datetime(2024, 1, 1),
        datetime(2024, 2, 29, 12, 0),
        datetime(2024, 6, 15, 23, 59),
        datetime(2024, 12, 25),
        datetime(2024, 12, 26, 8, 30),
        datetime(2025, 3, 1, 0, 1),
    ]
    STORED = [
        datetime(2020, 2, 29),
        datetime(2023, 9, 28),
        datetime(2023, 12, 31, 22, 0),
        datetime(2024, 7, 4),
        datetime(2026, 11, 4),
    ]

    @pytest.mark.parametrize('event_type', list(DEFAULT_RECURRING_DATES) + ['autre'])
    def test_never_in_the_past(self, event_type):
        for now in self.INSTANTS:
            for stored in self.STORED:
                occurrence = resolve_next_occurrence(event_type, stored, now)
                assert occurrence.next_date >= now
                assert occurrence.days_until >= 0

    @pytest.mark.parametrize('event_type', list(DEFAULT_RECURRING_DATES))
    def test_past_dates_land_on_the_type_date(self, event_type):
        month, day = DEFAULT_RECURRING_DATES[event_type]
        for now in self.INSTANTS:
            occurrence = resolve_next_occurrence(event_type, datetime(2019, 1, 1), now)
            assert (occurrence.next_date.month, occurrence.next_date.day) == (month, day)
            assert occurrence.next_date.year in (now.year, now.year + 1)

    def test_future_dates_pass_through(self):
        for now in self.INSTANTS:
            stored = now + timedelta(days=3, hours=5)
            occurrence = resolve_next_occurrence('noel', stored, now)
            assert occurrence.next_date == stored
            assert occurrence.days_until == 4

    def test_same_inputs_same_result(self):
        first = resolve_next_occurrence('anniversaire', datetime(2022, 9, 28), NOW)
        second = resolve_next_occurrence('anniversaire', datetime(2022, 9, 28), NOW)

        assert first == second


class TestHelpers:

    def test_recurring_month_day(self):
        assert recurring_month_day('noel', datetime(2020, 1, 1)) == (12, 25)
        assert recurring_month_day('autre', datetime(2020, 7, 14)) == (7, 14)

    @pytest.mark.parametrize('delta, expected', [
        (timedelta(0), 0),
        (timedelta(seconds=1), 1),
        (timedelta(hours=23, minutes=59), 1),
        (timedelta(days=1), 1),
        (timedelta(days=1, microseconds=1), 2),
    ])
    def test_days_between_rounds_up(self, delta, expected):
        assert days_between(NOW, NOW + delta) == expected


class TestCountdownParts:

    def test_split(self):
        parts = countdown_parts(NOW + timedelta(hours=36, minutes=30, seconds=59), NOW)

        assert (parts.days, parts.hours, parts.minutes) == (1, 12, 30)
        assert not parts.is_complete

    def test_reached(self):
        parts = countdown_parts(NOW, NOW)

        assert parts.to_dict() == {'days': 0, 'hours': 0, 'minutes': 0}
        assert parts.is_complete

    def test_past_target(self):
        assert countdown_parts(NOW - timedelta(minutes=5), NOW).is_complete
