"""
Season Resolution
=================

Seasons recur every year. A Season row stores a start/end date pair in some
base year; only the (month, day) of each end matters. A window whose start
falls later in the year than its end wraps the new year:

    Winter  Nov 01 - Apr 30   contains Dec 15 and Feb 02
    Summer  May 01 - Oct 31   contains Jul 04

Resolution for (property, date):
1. Every non-default season whose window contains the date, first by start_date
2. Otherwise a default season whose window contains the date
3. Otherwise the room's default_season (when a room is given)
4. Otherwise the property's default season
5. Otherwise NoSeasonConfigured
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta
from django.utils import timezone

from reservations.conf import get_property_setting
from reservations.exceptions import NoSeasonConfigured
from .cache import ConfigCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecurringWindow:
    """
    Annual (month, day) window, inclusive at both ends.

    Usage:
        window = RecurringWindow((11, 1), (4, 30))
        window.contains(date(2025, 12, 15))     # True
        window.wraps_year                       # True
        window.occurrence(date(2025, 12, 15))   # (2025-11-01, 2026-04-30)
    """
    start_month_day: tuple
    end_month_day: tuple

    @classmethod
    def from_dates(cls, start_date, end_date):
        return cls(
            (start_date.month, start_date.day),
            (end_date.month, end_date.day),
        )

    @property
    def wraps_year(self):
        return self.start_month_day > self.end_month_day

    def contains(self, on_date):
        month_day = (on_date.month, on_date.day)
        if self.wraps_year:
            return month_day >= self.start_month_day or month_day <= self.end_month_day
        return self.start_month_day <= month_day <= self.end_month_day

    @staticmethod
    def _anchor(year, month_day):
        # relativedelta clamps day 29 to 28 in February of non-leap years
        month, day = month_day
        return date(year, 1, 1) + relativedelta(month=month, day=day)

    def occurrence(self, reference_date):
        """
        Concrete (start, end) dates of the occurrence containing reference_date,
        or of the next one when reference_date falls outside the window.
        """
        end_offset = 1 if self.wraps_year else 0
        for year in (reference_date.year - 1, reference_date.year, reference_date.year + 1):
            start = self._anchor(year, self.start_month_day)
            end = self._anchor(year + end_offset, self.end_month_day)
            if end >= reference_date:
                return start, end
        raise ValueError(f"No occurrence of {self} near {reference_date}")

    def __str__(self):
        start = date(2000, *self.start_month_day).strftime('%b %d')
        end = date(2000, *self.end_month_day).strftime('%b %d')
        return f"{start} - {end}"


def property_date(cabin, moment=None):
    """
    Calendar date of a moment in the property's local time zone.

    PROPERTY_TIMEZONES maps property codes to IANA names; unmapped
    properties use the project TIME_ZONE.
    """
    moment = moment or timezone.now()
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    tz_name = get_property_setting('PROPERTY_TIMEZONES', cabin)
    tz = ZoneInfo(tz_name) if tz_name else None
    return timezone.localtime(moment, tz).date()


def nights_between(checkin_date, checkout_date):
    """Each night of a stay, identified by the date it starts on."""
    return [checkin_date + timedelta(days=i) for i in range((checkout_date - checkin_date).days)]


class SeasonResolver:
    """
    Resolves the season in effect for a property on a date.

    Season rows are loaded once per property through the config cache and
    matched in memory.

    Usage:
        resolver = SeasonResolver()
        season = resolver.for_date(Property.TAHOE, date(2025, 12, 15))
    """

    def __init__(self, cache=None):
        self.cache = cache or ConfigCache()

    def seasons_for(self, cabin):
        """All seasons of a property, ordered by start_date."""
        from reservations.models import Season

        cabin = str(cabin)
        return self.cache.get_or_set(
            f"seasons:{cabin}",
            lambda: list(Season.objects.filter(cabin=cabin).order_by('start_date', 'id')),
        )

    def default_for(self, cabin):
        for season in self.seasons_for(cabin):
            if season.is_default:
                return season
        return None

    def for_date(self, cabin, on_date, room=None):
        """
        Return the Season in effect for a property on a date.

        Args:
            cabin: Property code
            on_date: date to resolve
            room: optional Room whose default_season is tried before the
                  property default

        Returns:
            Season

        Raises:
            NoSeasonConfigured: no season matches and the property has no default
        """
        seasons = self.seasons_for(cabin)
        matches = [season for season in seasons if season.window.contains(on_date)]

        for season in matches:
            if not season.is_default:
                return season
        if matches:
            return matches[0]

        if room is not None and room.default_season_id:
            for season in seasons:
                if season.id == room.default_season_id:
                    return season

        default = self.default_for(cabin)
        if default is None:
            logger.error("No default season configured for %s (date %s)", cabin, on_date)
            raise NoSeasonConfigured(str(cabin))

        logger.debug("No season window matches %s on %s, using default %s", cabin, on_date, default)
        return default

    def for_stay(self, cabin, checkin_date, checkout_date, room=None):
        """
        Season of every night of a stay.

        Returns:
            list of (night_date, Season) tuples
        """
        return [
            (night, self.for_date(cabin, night, room=room))
            for night in nights_between(checkin_date, checkout_date)
        ]


def properties_missing_default_season():
    """Property codes with no default season (checked at startup)."""
    from reservations.models import Property, Season

    configured = set(
        Season.objects.filter(is_default=True).values_list('cabin', flat=True)
    )
    return [code for code in Property.values if code not in configured]
