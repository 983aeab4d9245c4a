"""
Capacity & Window Validation
============================

Individual booking rules. Each check returns a BookingRuleViolation, or None
when the request passes. BookingValidator decides order and short-circuiting.
"""

import logging
from datetime import timedelta

from reservations.conf import get_property_setting, guest_limits
from reservations.exceptions import (
    AdvanceBookingWindowExceeded,
    BookingModeNotAllowed,
    CapacityExceeded,
    GuestCountOutOfRange,
    MaxNightsExceeded,
    MinNightsViolated,
    PropertyBlackedOut,
    RoomUnavailable,
    UserBookingLimitExceeded,
    WeekendRequirementViolated,
)
from reservations.models import Booking, BookingMode

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6


# =============================================================================
# ROOM / GUESTS
# =============================================================================

def check_room(room, cabin):
    """Room must exist, be active, and belong to the requested property."""
    if room is None:
        return RoomUnavailable("Room does not exist")
    if room.cabin != str(cabin):
        return RoomUnavailable(f"{room.name} is not at this property", room_id=room.id)
    if not room.is_active:
        return RoomUnavailable(f"{room.name} is not available for booking", room_id=room.id)
    return None


def check_room_capacity(room, guests_count):
    """
    Guests must fit the room; children are not counted against capacity_max.

    A count under min_billable_occupancy is accepted; pricing bills the
    minimum instead.
    """
    if guests_count > room.capacity_max:
        return CapacityExceeded(
            f"{room.name} sleeps at most {room.capacity_max} guests, {guests_count} requested",
            capacity_max=room.capacity_max,
            requested=guests_count,
        )
    return None


def check_mode_guests(cabin, booking_mode, headcount):
    """Per-property, per-mode guest floor and ceiling from MODE_GUEST_LIMITS."""
    minimum, maximum = guest_limits(cabin, booking_mode)
    if minimum is not None and headcount < minimum:
        return GuestCountOutOfRange(
            f"At least {minimum} guests required for {booking_mode} bookings",
            minimum=minimum,
            requested=headcount,
        )
    if maximum is not None and headcount > maximum:
        return GuestCountOutOfRange(
            f"At most {maximum} guests allowed for {booking_mode} bookings",
            maximum=maximum,
            requested=headcount,
        )
    return None


# =============================================================================
# MODE / SEASON
# =============================================================================

def check_mode_allowed(cabin, booking_mode, season):
    allowed = get_property_setting('ALLOWED_BOOKING_MODES', cabin)
    if allowed is not None and str(booking_mode) not in [str(mode) for mode in allowed]:
        return BookingModeNotAllowed(
            f"{booking_mode} bookings are not offered at this property",
            booking_mode=booking_mode,
        )
    if booking_mode == BookingMode.BUYOUT and not season.buyout_allowed:
        return BookingModeNotAllowed(
            f"Full buyouts are not available during {season.name}",
            booking_mode=booking_mode,
            season=season.name,
        )
    return None


def max_nights_for(season, cabin):
    """Season cap, else the property's DEFAULT_MAX_NIGHTS, else unlimited (None)."""
    if season.max_nights:
        return season.max_nights
    return get_property_setting('DEFAULT_MAX_NIGHTS', cabin)


def check_stay_length(season, cabin, checkin_date, checkout_date):
    nights = (checkout_date - checkin_date).days
    if nights < 1:
        return MinNightsViolated(nights=nights)

    max_nights = max_nights_for(season, cabin)
    if max_nights is not None and nights > max_nights:
        return MaxNightsExceeded(
            f"Maximum {max_nights} nights allowed per booking",
            max_nights=max_nights,
            nights=nights,
        )
    return None


def check_advance_window(checkin_date, today, checkin_season, checkout_season=None):
    """
    Check-in may be at most advance_booking_days after today.

    A stay reaching into a different season is held to that season's limit
    as well. Zero or blank means unlimited.
    """
    seasons = [checkin_season]
    if checkout_season is not None and checkout_season.id != checkin_season.id:
        seasons.append(checkout_season)

    days_ahead = (checkin_date - today).days
    for season in seasons:
        if season.has_advance_limit and days_ahead > season.advance_booking_days:
            return AdvanceBookingWindowExceeded(
                f"{season.name} bookings can only be made up to "
                f"{season.advance_booking_days} days in advance",
                advance_booking_days=season.advance_booking_days,
                max_checkin_date=today + timedelta(days=season.advance_booking_days),
                days_ahead=days_ahead,
            )
    return None


# =============================================================================
# CALENDAR
# =============================================================================

def check_full_weekend(cabin, checkin_date, checkout_date):
    """A stay touching a Saturday (check-out day included) must also reach Sunday."""
    if not get_property_setting('REQUIRE_FULL_WEEKEND', cabin, False):
        return None

    days = [checkin_date + timedelta(days=i) for i in range((checkout_date - checkin_date).days + 1)]
    weekdays = {day.weekday() for day in days}
    if SATURDAY in weekdays and SUNDAY not in weekdays:
        return WeekendRequirementViolated()
    return None


def check_blackouts(blackouts):
    if blackouts:
        first = blackouts[0]
        return PropertyBlackedOut(
            f"Property is closed {first.start_date} - {first.end_date}"
            + (f" ({first.reason})" if first.reason else ""),
            blackout_ids=[b.id for b in blackouts],
        )
    return None


def check_user_limit(cabin, user_id, checkin_date, checkout_date, exclude_booking_id=None):
    """With ONE_ACTIVE_BOOKING_PER_USER, a member may not hold two overlapping stays."""
    if not user_id or not get_property_setting('ONE_ACTIVE_BOOKING_PER_USER', cabin, False):
        return None

    existing = Booking.objects.active().filter(cabin=cabin, user_id=user_id).overlapping(
        checkin_date, checkout_date
    )
    if exclude_booking_id is not None:
        existing = existing.exclude(pk=exclude_booking_id)

    if existing.exists():
        return UserBookingLimitExceeded(
            existing_ids=sorted(existing.values_list('id', flat=True)),
        )
    return None
