"""
Season resolution and recurring windows.
"""

import logging
from datetime import date, datetime, timezone as dt_timezone

import pytest
from django.core.exceptions import ValidationError

from reservations.checks import check_default_seasons
from reservations.exceptions import NoSeasonConfigured
from reservations.models import Property, Season
from reservations.services import RecurringWindow, SeasonResolver, property_date
from reservations.services.seasons import nights_between, properties_missing_default_season


class TestRecurringWindow:

    def test_plain_window(self):
        window = RecurringWindow((5, 1), (10, 31))
        assert not window.wraps_year
        assert window.contains(date(2025, 5, 1))
        assert window.contains(date(2031, 7, 4))
        assert window.contains(date(2025, 10, 31))
        assert not window.contains(date(2025, 11, 1))
        assert not window.contains(date(2025, 4, 30))

    def test_window_wrapping_new_year(self):
        window = RecurringWindow((11, 1), (4, 30))
        assert window.wraps_year
        assert window.contains(date(2025, 12, 15))
        assert window.contains(date(2026, 2, 2))
        assert window.contains(date(2026, 4, 30))
        assert not window.contains(date(2026, 5, 1))
        assert not window.contains(date(2025, 10, 31))

    def test_from_dates_ignores_year(self):
        window = RecurringWindow.from_dates(date(2019, 11, 1), date(2020, 4, 30))
        assert window == RecurringWindow((11, 1), (4, 30))

    def test_occurrence_of_wrapping_window(self):
        window = RecurringWindow((11, 1), (4, 30))
        assert window.occurrence(date(2025, 12, 15)) == (date(2025, 11, 1), date(2026, 4, 30))
        assert window.occurrence(date(2026, 2, 2)) == (date(2025, 11, 1), date(2026, 4, 30))
        # Outside the window: next occurrence
        assert window.occurrence(date(2025, 7, 1)) == (date(2025, 11, 1), date(2026, 4, 30))

    def test_leap_day_anchor_clamps_in_common_years(self):
        window = RecurringWindow((2, 29), (3, 31))
        assert window.occurrence(date(2025, 3, 1)) == (date(2025, 2, 28), date(2025, 3, 31))
        assert window.occurrence(date(2024, 3, 1)) == (date(2024, 2, 29), date(2024, 3, 31))

    def test_str(self):
        assert str(RecurringWindow((11, 1), (4, 30))) == "Nov 01 - Apr 30"


def test_nights_between():
    assert nights_between(date(2025, 1, 30), date(2025, 2, 2)) == [
        date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1),
    ]


@pytest.mark.django_db
class TestSeasonResolver:

    def test_resolves_wrapping_and_default_seasons(self, winter, summer):
        resolver = SeasonResolver()
        assert resolver.for_date(Property.TAHOE, date(2025, 12, 24)) == winter
        assert resolver.for_date(Property.TAHOE, date(2026, 1, 15)) == winter
        assert resolver.for_date(Property.TAHOE, date(2025, 7, 4)) == summer

    def test_first_non_default_match_wins(self, winter, summer):
        Season.objects.create(
            cabin=Property.TAHOE,
            name='Holidays',
            start_date=date(2024, 12, 20),
            end_date=date(2025, 1, 2),
        )
        resolver = SeasonResolver()
        # Winter starts earlier in the year
        assert resolver.for_date(Property.TAHOE, date(2024, 12, 25)) == winter

    def test_unmatched_date_uses_default(self, winter):
        base = Season.objects.create(
            cabin=Property.TAHOE,
            name='Base',
            start_date=date(2025, 6, 1),
            end_date=date(2025, 6, 30),
            is_default=True,
        )
        assert SeasonResolver().for_date(Property.TAHOE, date(2025, 8, 10)) == base

    def test_room_default_season_before_property_default(self, winter, summer, room):
        june = Season.objects.create(
            cabin=Property.TAHOE,
            name='June',
            start_date=date(2025, 6, 1),
            end_date=date(2025, 6, 30),
        )
        # Shrink summer to May so no window contains September
        Season.objects.filter(pk=summer.pk).update(start_date=date(2025, 5, 1), end_date=date(2025, 5, 31))
        room.default_season = june
        room.save()

        resolver = SeasonResolver()
        assert resolver.for_date(Property.TAHOE, date(2025, 9, 10), room=room) == june
        assert resolver.for_date(Property.TAHOE, date(2025, 9, 10)).name == 'Summer'

    def test_missing_default_raises(self, winter, caplog):
        with caplog.at_level(logging.ERROR, logger='reservations'):
            with pytest.raises(NoSeasonConfigured) as exc_info:
                SeasonResolver().for_date(Property.TAHOE, date(2025, 7, 4))
        assert exc_info.value.property == 'tahoe'
        assert "No default season" in caplog.text

    def test_for_stay_resolves_each_night(self, winter, summer):
        nights = SeasonResolver().for_stay(Property.TAHOE, date(2025, 4, 29), date(2025, 5, 2))
        assert [season.name for _, season in nights] == ['Winter', 'Winter', 'Summer']

    def test_seasons_are_scoped_to_property(self, summer, clear_lake_season):
        assert SeasonResolver().for_date(Property.CLEAR_LAKE, date(2025, 7, 4)) == clear_lake_season


@pytest.mark.django_db
class TestSeasonModel:

    def test_window_property(self, winter):
        assert winter.window == RecurringWindow((11, 1), (4, 30))

    def test_second_default_rejected(self, summer):
        other = Season(
            cabin=Property.TAHOE,
            name='Other',
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
            is_default=True,
        )
        with pytest.raises(ValidationError):
            other.full_clean()

    def test_reversed_same_month_window_rejected(self):
        season = Season(cabin=Property.TAHOE, name='Bad', start_date=date(2025, 3, 20), end_date=date(2025, 3, 10))
        with pytest.raises(ValidationError):
            season.full_clean()


def test_property_date_uses_property_time_zone():
    # 06:00 UTC on Jun 2 is still Jun 1 in California
    moment = datetime(2025, 6, 2, 6, 0, tzinfo=dt_timezone.utc)
    assert property_date(Property.TAHOE, moment) == date(2025, 6, 1)


@pytest.mark.django_db
class TestDefaultSeasonCheck:

    def test_reports_properties_without_default(self, summer):
        assert properties_missing_default_season() == ['clear_lake']

        errors = check_default_seasons(None, databases=['default'])
        assert [error.id for error in errors] == ['reservations.E001']
        assert errors[0].obj == 'clear_lake'

    def test_passes_when_configured(self, summer, clear_lake_season):
        assert check_default_seasons(None, databases=['default']) == []

    def test_skipped_without_database(self):
        assert check_default_seasons(None) == []
