"""
Shared fixtures.

Calendar used throughout (2025):
    today                Mon Jan 06
    Tahoe winter         Nov 01 - Apr 30, 45-day advance window, 4 nights max, no buyouts
    Tahoe summer         May 01 - Oct 31, default season
    Clear Lake all-year  Jan 01 - Dec 31, default season
"""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from django.core.cache import caches

from reservations.models import (
    Booking, BookingMode, BookingStatus, Payment, PriceUnit, PricingRule, Property,
    RefundPolicy, RefundPolicyRule, Room, RoomCategory, Season,
)
from reservations.services import BookingRequest

TODAY = date(2025, 1, 6)
PACIFIC = ZoneInfo('America/Los_Angeles')


def pacific(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=PACIFIC)


@pytest.fixture(autouse=True)
def clear_config_cache():
    caches['reservations-config'].clear()
    yield
    caches['reservations-config'].clear()


# =============================================================================
# SEASONS
# =============================================================================

@pytest.fixture
def winter(db):
    return Season.objects.create(
        cabin=Property.TAHOE,
        name='Winter',
        start_date=date(2024, 11, 1),
        end_date=date(2025, 4, 30),
        advance_booking_days=45,
        max_nights=4,
        buyout_allowed=False,
    )


@pytest.fixture
def summer(db):
    return Season.objects.create(
        cabin=Property.TAHOE,
        name='Summer',
        start_date=date(2025, 5, 1),
        end_date=date(2025, 10, 31),
        is_default=True,
    )


@pytest.fixture
def tahoe_seasons(winter, summer):
    return winter, summer


@pytest.fixture
def clear_lake_season(db):
    return Season.objects.create(
        cabin=Property.CLEAR_LAKE,
        name='All Year',
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        is_default=True,
    )


# =============================================================================
# ROOMS & PRICING
# =============================================================================

@pytest.fixture
def category(db):
    return RoomCategory.objects.create(name='Standard')


@pytest.fixture
def room(category):
    return Room.objects.create(
        cabin=Property.TAHOE,
        name='Room 1',
        room_category=category,
        capacity_max=2,
        min_billable_occupancy=1,
        queen_beds=1,
    )


@pytest.fixture
def family_room(category):
    return Room.objects.create(
        cabin=Property.TAHOE,
        name='Family Room',
        room_category=category,
        capacity_max=4,
        min_billable_occupancy=2,
        queen_beds=1,
        single_beds=2,
    )


@pytest.fixture
def room_rule(db):
    return PricingRule.objects.create(
        booking_mode=BookingMode.ROOM,
        price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
        cabin=Property.TAHOE,
        amount=Decimal('45.00'),
        children_amount=Decimal('25.00'),
    )


@pytest.fixture
def buyout_rule(db):
    return PricingRule.objects.create(
        booking_mode=BookingMode.BUYOUT,
        price_unit=PriceUnit.BUYOUT_FIXED,
        cabin=Property.TAHOE,
        amount=Decimal('500.00'),
    )


@pytest.fixture
def day_rule(db):
    return PricingRule.objects.create(
        booking_mode=BookingMode.DAY,
        price_unit=PriceUnit.PER_GUEST_PER_DAY,
        cabin=Property.CLEAR_LAKE,
        amount=Decimal('50.00'),
    )


@pytest.fixture
def tahoe(tahoe_seasons, room, room_rule, buyout_rule):
    """Tahoe with both seasons, one room and property-level pricing."""
    return room


# =============================================================================
# REQUESTS / BOOKINGS
# =============================================================================

@pytest.fixture
def make_request():
    def _make(**overrides):
        values = {
            'cabin': Property.TAHOE,
            'booking_mode': BookingMode.ROOM,
            'checkin_date': date(2025, 1, 13),
            'checkout_date': date(2025, 1, 16),
            'guests_count': 2,
            'children_count': 0,
            'user_id': 'member-1',
        }
        values.update(overrides)
        return BookingRequest(**values)
    return _make


@pytest.fixture
def make_booking(db):
    """Insert a booking directly, bypassing validation."""
    def _make(**overrides):
        values = {
            'cabin': Property.TAHOE,
            'booking_mode': BookingMode.BUYOUT,
            'checkin_date': date(2025, 6, 20),
            'checkout_date': date(2025, 6, 22),
            'guests_count': 10,
            'user_id': 'member-9',
            'total_price': Decimal('1000.00'),
            'status': BookingStatus.CONFIRMED,
        }
        values.update(overrides)
        return Booking.objects.create(**values)
    return _make


@pytest.fixture
def make_payment(db):
    def _make(booking, amount='1000.00', reference_id=None):
        return Payment.objects.create(
            booking=booking,
            reference_id=reference_id or f"pi_{booking.reference_id}",
            amount=Decimal(amount),
            captured_at=pacific(2025, 1, 6),
        )
    return _make


@pytest.fixture
def buyout_policy(db):
    """14 days -> 0%, 21 days -> 50%."""
    policy = RefundPolicy.objects.create(
        name='Tahoe buyout',
        cabin=Property.TAHOE,
        booking_mode=BookingMode.BUYOUT,
    )
    RefundPolicyRule.objects.create(refund_policy=policy, days_before_checkin=14, refund_percentage=Decimal('0'))
    RefundPolicyRule.objects.create(refund_policy=policy, days_before_checkin=21, refund_percentage=Decimal('50'))
    return policy


@pytest.fixture
def capture_signal():
    """Record every send of a signal; returns the list of kwargs dicts."""
    connected = []

    def _capture(signal):
        calls = []

        def receiver(sender, **kwargs):
            calls.append(kwargs)

        signal.connect(receiver, weak=False)
        connected.append((signal, receiver))
        return calls

    yield _capture

    for signal, receiver in connected:
        signal.disconnect(receiver)
