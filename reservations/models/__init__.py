"""
Reservation models package.

Re-exports all models so Django migrations and imports see one namespace:
    from reservations.models import Season, Room, Booking, etc.
"""

# Core: enumerations, seasons, rooms, blackouts
from .core import (
    Property,
    BookingMode,
    PriceUnit,
    PRICE_UNIT_FOR_MODE,
    Season,
    RoomCategory,
    Room,
    Blackout,
)

# Pricing
from .pricing import PricingRule

# Bookings: reservations, lock rows, captured payments
from .bookings import (
    BookingStatus,
    ACTIVE_STATUSES,
    Booking,
    BookingLock,
    Payment,
    generate_reference_id,
)

# Refunds: policies, review queue, idempotency ledger
from .refunds import (
    RefundPolicy,
    RefundPolicyRule,
    PendingRefund,
    CancellationRecord,
)

__all__ = [
    # Core
    'Property', 'BookingMode', 'PriceUnit', 'PRICE_UNIT_FOR_MODE',
    'Season', 'RoomCategory', 'Room', 'Blackout',
    # Pricing
    'PricingRule',
    # Bookings
    'BookingStatus', 'ACTIVE_STATUSES', 'Booking', 'BookingLock', 'Payment',
    'generate_reference_id',
    # Refunds
    'RefundPolicy', 'RefundPolicyRule', 'PendingRefund', 'CancellationRecord',
]
