"""
Reservation engine errors.

Three families:
    BookingRuleViolation  - bad user input; collected and returned as a list
    ConfigurationError    - missing setup; raised and logged for operators
    CancellationError     - a cancellation that cannot proceed

InvalidCurrencyOperation is a programming error and is never shown to users.
"""


class ReservationError(Exception):
    """Base class for every error raised by the reservation engine."""


# =============================================================================
# VALIDATION (user-facing, returned not raised)
# =============================================================================

class BookingRuleViolation(ReservationError):
    """
    A request broke a booking rule.

    Attributes:
        code: stable machine-readable identifier
        field: request field the error is attached to (or None)
        message: human-readable explanation
        params: extra values used to build the message
    """
    code = 'invalid'
    field = None
    default_message = "Booking request is invalid"

    def __init__(self, message=None, field=None, **params):
        self.message = message or self.default_message
        if field is not None:
            self.field = field
        self.params = params
        super().__init__(self.message)

    def as_dict(self):
        return {
            'code': self.code,
            'field': self.field,
            'message': self.message,
            'params': {k: _jsonable(v) for k, v in self.params.items()},
        }

    def __eq__(self, other):
        return (
            type(self) is type(other)
            and self.message == other.message
            and self.field == other.field
            and self.params == other.params
        )

    def __hash__(self):
        return hash((type(self), self.message, self.field))

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r})"


class InvalidBookingRequest(BookingRuleViolation):
    code = 'invalid_request'


class DateOrderInvalid(BookingRuleViolation):
    code = 'date_order_invalid'
    field = 'checkout_date'
    default_message = "Check-out date must be after check-in date"


class CapacityExceeded(BookingRuleViolation):
    code = 'capacity_exceeded'
    field = 'guests_count'
    default_message = "Too many guests for this room"


class GuestCountOutOfRange(BookingRuleViolation):
    code = 'guest_count_out_of_range'
    field = 'guests_count'
    default_message = "Guest count is outside the allowed range"


class MinNightsViolated(BookingRuleViolation):
    code = 'min_nights_violated'
    field = 'checkout_date'
    default_message = "Stay must be at least one night"


class MaxNightsExceeded(BookingRuleViolation):
    code = 'max_nights_exceeded'
    field = 'checkout_date'
    default_message = "Stay is longer than the season allows"


class AdvanceBookingWindowExceeded(BookingRuleViolation):
    code = 'advance_booking_window_exceeded'
    field = 'checkin_date'
    default_message = "Booking is too far in advance for this season"


class BookingModeNotAllowed(BookingRuleViolation):
    code = 'booking_mode_not_allowed'
    field = 'booking_mode'
    default_message = "Booking mode is not available for these dates"


class RoomUnavailable(BookingRuleViolation):
    code = 'room_unavailable'
    field = 'room_id'
    default_message = "Room cannot be booked"


class PropertyBlackedOut(BookingRuleViolation):
    code = 'property_blacked_out'
    field = 'checkin_date'
    default_message = "Property is closed for part of the requested stay"


class WeekendRequirementViolated(BookingRuleViolation):
    code = 'weekend_requirement_violated'
    field = 'checkout_date'
    default_message = "Bookings containing Saturday must also include Sunday"


class UserBookingLimitExceeded(BookingRuleViolation):
    code = 'user_booking_limit_exceeded'
    field = 'user_id'
    default_message = "Only one active booking per member is allowed"


class BookingConflict(BookingRuleViolation):
    code = 'booking_conflict'
    field = 'checkin_date'
    default_message = "Requested dates overlap an existing booking"

    def __init__(self, existing_ids=(), message=None, **params):
        self.existing_ids = sorted(existing_ids)
        super().__init__(message, existing_ids=self.existing_ids, **params)


# =============================================================================
# CONFIGURATION (fatal / alerting)
# =============================================================================

class ConfigurationError(ReservationError):
    """Engine configuration is incomplete; operators must fix the setup."""


class NoSeasonConfigured(ConfigurationError):
    def __init__(self, property_code):
        self.property = property_code
        super().__init__(f"No default season configured for property '{property_code}'")


class NoPricingRuleFound(ConfigurationError):
    def __init__(self, property_code, booking_mode, price_unit, room_id=None,
                 room_category_id=None, season_id=None):
        self.property = property_code
        self.booking_mode = booking_mode
        self.price_unit = price_unit
        self.room_id = room_id
        self.room_category_id = room_category_id
        self.season_id = season_id
        super().__init__(
            f"No pricing rule for property={property_code} mode={booking_mode} "
            f"unit={price_unit} room={room_id} category={room_category_id} season={season_id}"
        )


class NoPolicyConfigured(ConfigurationError):
    def __init__(self, property_code, booking_mode):
        self.property = property_code
        self.booking_mode = booking_mode
        super().__init__(
            f"No active refund policy for property={property_code} mode={booking_mode}"
        )


# =============================================================================
# MONEY
# =============================================================================

class InvalidCurrencyOperation(ReservationError):
    """Arithmetic across currencies, or with a non-money operand."""


# =============================================================================
# CANCELLATION
# =============================================================================

class CancellationError(ReservationError):
    code = 'cancellation_error'


class BookingNotCancellable(CancellationError):
    code = 'booking_not_cancellable'


class PaymentNotFound(CancellationError):
    code = 'payment_not_found'


class RefundReviewError(CancellationError):
    code = 'refund_review_error'


class BookingNotConfirmable(ReservationError):
    """Only pending bookings can be confirmed."""
    code = 'booking_not_confirmable'


def _jsonable(value):
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
