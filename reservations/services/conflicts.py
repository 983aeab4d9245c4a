"""
Conflict Checking
=================

Stays are half-open intervals [checkin, checkout). Two stays overlap when

    a_in < b_out and b_in < a_out

so a checkout on the same day as another stay's checkin is not a conflict.

Which existing bookings a request competes with depends on its mode:

    room    same room, plus any buyout at the property
    buyout  every active booking at the property
    day     buyouts, plus day bookings when the property's daily day-use
            capacity would be exceeded (any overlap when no capacity is set)

Room stays and day-use never compete with each other.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta

from django.db.models import Q

from reservations.conf import get_property_setting
from reservations.models import Blackout, Booking, BookingMode

logger = logging.getLogger(__name__)


def intervals_overlap(a_in, a_out, b_in, b_out):
    """True when [a_in, a_out) and [b_in, b_out) share at least one day."""
    return a_in < b_out and b_in < a_out


@dataclass(frozen=True)
class ConflictResult:
    booking_ids: tuple = ()

    @property
    def has_conflict(self):
        return bool(self.booking_ids)


NO_CONFLICT = ConflictResult()


@dataclass(frozen=True)
class Conflict:
    """Existing booking occupying part of a queried window."""
    booking_id: int
    reference_id: str
    booking_mode: str
    room_id: int
    checkin_date: object
    checkout_date: object
    status: str

    @classmethod
    def from_booking(cls, booking):
        return cls(
            booking_id=booking.id,
            reference_id=booking.reference_id,
            booking_mode=booking.booking_mode,
            room_id=booking.room_id,
            checkin_date=booking.checkin_date,
            checkout_date=booking.checkout_date,
            status=booking.status,
        )

    def as_dict(self):
        return {
            'booking_id': self.booking_id,
            'reference_id': self.reference_id,
            'booking_mode': self.booking_mode,
            'room_id': self.room_id,
            'checkin_date': self.checkin_date.isoformat(),
            'checkout_date': self.checkout_date.isoformat(),
            'status': self.status,
        }


class ConflictChecker:
    """
    Finds active bookings that a requested stay collides with.

    Must run inside the same transaction and lock scope as the insert it
    guards (see BookingLocker).
    """

    def find_conflicts(self, cabin, booking_mode, checkin_date, checkout_date,
                       room_id=None, headcount=1, exclude_booking_id=None):
        """
        Args:
            cabin: Property code
            booking_mode: BookingMode of the request
            checkin_date / checkout_date: requested stay
            room_id: required for room mode
            headcount: guests + children (used for day-use capacity)
            exclude_booking_id: booking to ignore (the one being edited)

        Returns:
            ConflictResult with the sorted ids of colliding bookings
        """
        candidates = Booking.objects.active().filter(cabin=cabin).overlapping(checkin_date, checkout_date)
        if exclude_booking_id is not None:
            candidates = candidates.exclude(pk=exclude_booking_id)

        if booking_mode == BookingMode.ROOM:
            ids = candidates.filter(
                Q(room_id=room_id) | Q(booking_mode=BookingMode.BUYOUT)
            ).values_list('id', flat=True)
        elif booking_mode == BookingMode.BUYOUT:
            ids = candidates.values_list('id', flat=True)
        elif booking_mode == BookingMode.DAY:
            ids = self._day_use_conflicts(cabin, candidates, checkin_date, checkout_date, headcount)
        else:
            raise ValueError(f"Unknown booking mode: {booking_mode}")

        ids = tuple(sorted(set(ids)))
        if ids:
            logger.debug("%s %s %s-%s conflicts with %s", cabin, booking_mode, checkin_date, checkout_date, ids)
            return ConflictResult(ids)
        return NO_CONFLICT

    def _day_use_conflicts(self, cabin, candidates, checkin_date, checkout_date, headcount):
        buyouts = list(candidates.filter(booking_mode=BookingMode.BUYOUT).values_list('id', flat=True))
        day_bookings = list(candidates.filter(booking_mode=BookingMode.DAY))

        capacity = get_property_setting('DAY_USE_CAPACITY', cabin)
        if capacity is None:
            return buyouts + [booking.id for booking in day_bookings]

        # Guests already booked for each requested day
        load = defaultdict(int)
        occupants = defaultdict(list)
        for booking in day_bookings:
            day = max(booking.checkin_date, checkin_date)
            while day < min(booking.checkout_date, checkout_date):
                load[day] += booking.headcount
                occupants[day].append(booking.id)
                day += timedelta(days=1)

        over = []
        for day, guests in load.items():
            if guests + headcount > capacity:
                over.extend(occupants[day])
        return buyouts + over


def find_blackouts(cabin, checkin_date, checkout_date):
    """Blackouts (inclusive at both ends) touching any night of [checkin, checkout)."""
    return list(
        Blackout.objects.filter(
            cabin=cabin,
            start_date__lt=checkout_date,
            end_date__gte=checkin_date,
        ).order_by('start_date')
    )


def get_availability(cabin, room_id, start_date, end_date):
    """
    Active bookings that occupy part of [start_date, end_date).

    Args:
        cabin: Property code
        room_id: limit to one room (plus property buyouts); None for the
                 whole property
        start_date / end_date: window to inspect

    Returns:
        list of Conflict ordered by checkin date
    """
    if end_date <= start_date:
        raise ValueError("end_date must be after start_date")

    bookings = Booking.objects.active().filter(cabin=cabin).overlapping(start_date, end_date)
    if room_id is not None:
        bookings = bookings.filter(Q(room_id=room_id) | Q(booking_mode=BookingMode.BUYOUT))

    return [Conflict.from_booking(b) for b in bookings.order_by('checkin_date', 'id')]
