"""
Services package.

Re-exports the engine's query surface and service classes:
    from reservations.services import validate_and_price, cancel_and_refund, get_availability
"""

from .cache import ConfigCache
from .seasons import RecurringWindow, SeasonResolver, property_date
from .conflicts import Conflict, ConflictChecker, ConflictResult, get_availability, intervals_overlap
from .pricing_service import PriceQuote, PricingService, rank_pricing_rule, select_pricing_rule
from .booking_service import (
    BookingLocker,
    BookingOutcome,
    BookingRequest,
    BookingValidator,
    confirm_booking,
    validate_and_price,
)
from .refund_service import (
    RefundPolicyService,
    RefundResult,
    approve_pending_refund,
    cancel_and_refund,
    reject_pending_refund,
    select_refund_rule,
)

__all__ = [
    'ConfigCache',
    'RecurringWindow', 'SeasonResolver', 'property_date',
    'Conflict', 'ConflictChecker', 'ConflictResult', 'get_availability', 'intervals_overlap',
    'PriceQuote', 'PricingService', 'rank_pricing_rule', 'select_pricing_rule',
    'BookingLocker', 'BookingOutcome', 'BookingRequest', 'BookingValidator',
    'confirm_booking', 'validate_and_price',
    'RefundPolicyService', 'RefundResult', 'approve_pending_refund', 'cancel_and_refund',
    'reject_pending_refund', 'select_refund_rule',
]
