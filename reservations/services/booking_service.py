"""
Booking Services
================

Validation, locking and persistence of new bookings.

Validation Order (first failure wins unless eager=True):
1. Date order                       DateOrderInvalid
2. Request shape / room / reference InvalidBookingRequest, RoomUnavailable
3. Season resolution                NoSeasonConfigured (raised)
4. Mode availability                BookingModeNotAllowed
5. Stay length                      MinNightsViolated, MaxNightsExceeded
6. Full weekend                     WeekendRequirementViolated
7. Advance booking window           AdvanceBookingWindowExceeded
8. Guest counts                     CapacityExceeded, GuestCountOutOfRange
9. Blackouts                        PropertyBlackedOut
10. One stay per member             UserBookingLimitExceeded
11. Conflicts                       BookingConflict

Creation Flow (BookingLocker):
    precheck (date order, shape, room, reference), before any lock row exists
    transaction.atomic()
      lock BookingLock rows for the request scope (SELECT ... FOR UPDATE)
      validate (conflicts included)
      price
      insert Booking
    retry on OperationalError / IntegrityError, then BookingConflict
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from django.db import IntegrityError, OperationalError, transaction

from reservations import signals
from reservations.conf import get_setting
from reservations.exceptions import (
    BookingConflict,
    BookingNotConfirmable,
    DateOrderInvalid,
    InvalidBookingRequest,
)
from reservations.models import Booking, BookingLock, BookingMode, BookingStatus, Property, Room
from . import capacity
from .cache import ConfigCache
from .conflicts import ConflictChecker, find_blackouts
from .pricing_service import PricingService
from .seasons import SeasonResolver, property_date

logger = logging.getLogger(__name__)


# =============================================================================
# REQUEST / OUTCOME
# =============================================================================

@dataclass
class BookingRequest:
    """
    A candidate booking.

    guests_count counts adults. children_count is billed only in room mode
    and is not held against room capacity_max; mode guest limits and day-use
    capacity count everyone.
    """
    cabin: str
    booking_mode: str
    checkin_date: date
    checkout_date: date
    guests_count: int = 1
    children_count: int = 0
    room_id: int = None
    user_id: str = None
    reference_id: str = None
    skip_validation: bool = False
    exclude_booking_id: int = None

    @property
    def headcount(self):
        return self.guests_count + (self.children_count or 0)

    @property
    def nights(self):
        return (self.checkout_date - self.checkin_date).days

    @classmethod
    def from_dict(cls, data):
        """
        Build a request from decoded JSON.

        Raises:
            InvalidBookingRequest: missing or malformed field
        """
        try:
            return cls(
                cabin=data['property'],
                booking_mode=data['booking_mode'],
                checkin_date=date.fromisoformat(data['checkin_date']),
                checkout_date=date.fromisoformat(data['checkout_date']),
                guests_count=int(data.get('guests_count', 1)),
                children_count=int(data.get('children_count', 0)),
                room_id=int(data['room_id']) if data.get('room_id') is not None else None,
                user_id=str(data['user_id']) if data.get('user_id') is not None else None,
                reference_id=data.get('reference_id'),
            )
        except KeyError as exc:
            raise InvalidBookingRequest(f"Missing field: {exc.args[0]}", field=exc.args[0])
        except (TypeError, ValueError) as exc:
            raise InvalidBookingRequest(f"Malformed booking request: {exc}")


@dataclass
class BookingOutcome:
    ok: bool
    booking: Booking = None
    quote: object = None
    errors: list = field(default_factory=list)

    def as_dict(self):
        if not self.ok:
            return {'ok': False, 'errors': [error.as_dict() for error in self.errors]}
        return {
            'ok': True,
            'booking': {
                'id': self.booking.id,
                'reference_id': self.booking.reference_id,
                'property': self.booking.cabin,
                'booking_mode': self.booking.booking_mode,
                'room_id': self.booking.room_id,
                'checkin_date': self.booking.checkin_date.isoformat(),
                'checkout_date': self.booking.checkout_date.isoformat(),
                'guests_count': self.booking.guests_count,
                'children_count': self.booking.children_count,
                'status': self.booking.status,
                'total_price': {'amount': str(self.booking.total_price), 'currency': self.booking.currency},
            },
            'quote': self.quote.as_dict() if self.quote is not None else None,
        }


# =============================================================================
# VALIDATOR
# =============================================================================

class BookingValidator:
    """
    Runs every booking rule against a request.

    Usage:
        validator = BookingValidator()
        errors = validator.validate(request)              # first failure only
        errors = validator.validate(request, eager=True)  # every failure
    """

    def __init__(self, cache=None, resolver=None, conflicts=None):
        self.cache = cache or ConfigCache()
        self.resolver = resolver or SeasonResolver(self.cache)
        self.conflicts = conflicts or ConflictChecker()

    def get_room(self, room_id):
        return self.cache.get_or_set(
            f"room:{room_id}",
            lambda: Room.objects.filter(pk=room_id).first(),
        )

    def check_shape(self, request):
        """Mode, property and room fields must fit together."""
        if request.cabin not in Property.values:
            return InvalidBookingRequest(f"Unknown property: {request.cabin}", field='property')
        if request.booking_mode not in BookingMode.values:
            return InvalidBookingRequest(f"Unknown booking mode: {request.booking_mode}", field='booking_mode')
        if request.guests_count < 0 or (request.children_count or 0) < 0:
            return InvalidBookingRequest("Guest counts cannot be negative", field='guests_count')
        if request.booking_mode == BookingMode.ROOM:
            if request.room_id is None:
                return InvalidBookingRequest("Room bookings require a room", field='room_id')
            if request.guests_count < 1:
                return InvalidBookingRequest("Room bookings require at least one adult", field='guests_count')
        elif request.room_id is not None:
            return InvalidBookingRequest(
                f"{request.booking_mode} bookings cannot name a room",
                field='room_id',
            )
        return None

    def check_conflicts(self, request):
        result = self.conflicts.find_conflicts(
            request.cabin,
            request.booking_mode,
            request.checkin_date,
            request.checkout_date,
            room_id=request.room_id,
            headcount=request.headcount,
            exclude_booking_id=request.exclude_booking_id,
        )
        if result.has_conflict:
            return BookingConflict(result.booking_ids)
        return None

    def check_reference(self, request):
        """Caller-supplied reference_id must not belong to another booking."""
        if request.reference_id and Booking.objects.filter(reference_id=request.reference_id).exists():
            return InvalidBookingRequest(
                f"Reference {request.reference_id} is already in use",
                field='reference_id',
            )
        return None

    def precheck(self, request):
        """
        Checks that need no season or lock: date order, shape, room, reference.

        Returns:
            (errors, room)
        """
        if request.checkout_date <= request.checkin_date:
            return [DateOrderInvalid(
                checkin_date=request.checkin_date,
                checkout_date=request.checkout_date,
            )], None

        shape_error = self.check_shape(request)
        if shape_error:
            return [shape_error], None

        room = None
        if request.booking_mode == BookingMode.ROOM:
            room = self.get_room(request.room_id)
            room_error = capacity.check_room(room, request.cabin)
            if room_error:
                return [room_error], None

        reference_error = self.check_reference(request)
        if reference_error:
            return [reference_error], None
        return [], room

    def validate(self, request, eager=False, today=None):
        """
        Validate a booking request.

        Args:
            request: BookingRequest
            eager: collect every failure instead of stopping at the first
            today: property-local date to measure the advance window from

        Returns:
            list of BookingRuleViolation (empty when the request is valid)

        Raises:
            NoSeasonConfigured: property has no default season
        """
        errors, room = self.precheck(request)
        if errors:
            return errors

        if request.skip_validation:
            logger.warning(
                "Booking rules skipped for %s %s %s-%s (user %s)",
                request.cabin, request.booking_mode,
                request.checkin_date, request.checkout_date, request.user_id,
            )
            conflict = self.check_conflicts(request)
            return [conflict] if conflict else []

        today = today or property_date(request.cabin)
        cabin = request.cabin
        season = self.resolver.for_date(cabin, request.checkin_date, room=room)
        checkout_season = self.resolver.for_date(cabin, request.checkout_date, room=room)

        checks = [
            lambda: capacity.check_mode_allowed(cabin, request.booking_mode, season),
            lambda: capacity.check_stay_length(season, cabin, request.checkin_date, request.checkout_date),
            lambda: capacity.check_full_weekend(cabin, request.checkin_date, request.checkout_date),
            lambda: capacity.check_advance_window(request.checkin_date, today, season, checkout_season),
            lambda: capacity.check_room_capacity(room, request.guests_count) if room else None,
            lambda: capacity.check_mode_guests(cabin, request.booking_mode, request.headcount),
            lambda: capacity.check_blackouts(find_blackouts(cabin, request.checkin_date, request.checkout_date)),
            lambda: capacity.check_user_limit(
                cabin, request.user_id, request.checkin_date, request.checkout_date,
                exclude_booking_id=request.exclude_booking_id,
            ),
            lambda: self.check_conflicts(request),
        ]

        errors = []
        for check in checks:
            error = check()
            if error:
                errors.append(error)
                if not eager:
                    break

        if errors:
            logger.info("Booking request rejected for %s %s: %s",
                        cabin, request.booking_mode, [error.code for error in errors])
        return errors


# =============================================================================
# LOCKER
# =============================================================================

def lock_scopes(request, room_ids=()):
    """
    BookingLock scopes a request must hold, in acquisition order.

        room    room:<id>
        day     property
        buyout  property + every room of the property
    """
    if request.booking_mode == BookingMode.ROOM:
        scopes = [f"room:{request.room_id}"]
    elif request.booking_mode == BookingMode.DAY:
        scopes = ['property']
    else:
        scopes = ['property'] + [f"room:{room_id}" for room_id in room_ids]
    return sorted(set(scopes))


class BookingLocker:
    """
    Atomic "check conflicts, then insert".

    Retry policy: the whole transaction is retried up to
    RESERVATIONS['LOCK_RETRIES'] times when the database reports a lock or
    serialization failure (OperationalError) or a lock-row / reference race
    (IntegrityError). When every attempt fails the request is rejected with
    BookingConflict.

    Usage:
        locker = BookingLocker()
        outcome = locker.create_booking(request)
        if outcome.ok:
            print(outcome.booking.reference_id, outcome.booking.total_price)
        else:
            print([error.as_dict() for error in outcome.errors])
    """

    def __init__(self, validator=None, pricing=None, retries=None):
        cache = ConfigCache()
        self.validator = validator or BookingValidator(cache)
        self.pricing = pricing or PricingService(cache, self.validator.resolver)
        self.retries = retries if retries is not None else get_setting('LOCK_RETRIES')

    def acquire(self, request):
        """Create missing lock rows, then lock them all in scope order."""
        room_ids = ()
        if request.booking_mode == BookingMode.BUYOUT:
            room_ids = Room.objects.filter(cabin=request.cabin).values_list('id', flat=True)
        scopes = lock_scopes(request, room_ids)

        for scope in scopes:
            BookingLock.objects.get_or_create(cabin=request.cabin, scope=scope)
        return list(
            BookingLock.objects.select_for_update()
            .filter(cabin=request.cabin, scope__in=scopes)
            .order_by('scope')
        )

    def _attempt(self, request, today):
        with transaction.atomic():
            self.acquire(request)

            errors = self.validator.validate(request, today=today)
            if errors:
                return BookingOutcome(ok=False, errors=errors)

            room = self.validator.get_room(request.room_id) if request.room_id else None
            quote = self.pricing.calculate(request, room=room)

            booking = Booking(
                cabin=request.cabin,
                booking_mode=request.booking_mode,
                room=room,
                checkin_date=request.checkin_date,
                checkout_date=request.checkout_date,
                guests_count=request.guests_count,
                children_count=request.children_count or 0,
                user_id=request.user_id or '',
                total_price=quote.total.amount,
                currency=quote.total.currency,
                status=BookingStatus.PENDING,
                validation_skipped=request.skip_validation,
            )
            if request.reference_id:
                booking.reference_id = request.reference_id
            booking.save()

        logger.info("Created booking %s (%s %s %s-%s) total %s",
                    booking.reference_id, booking.cabin, booking.booking_mode,
                    booking.checkin_date, booking.checkout_date, quote.total)
        return BookingOutcome(ok=True, booking=booking, quote=quote)

    def create_booking(self, request, today=None):
        """
        Validate, price and persist a booking.

        Returns:
            BookingOutcome

        Raises:
            NoSeasonConfigured / NoPricingRuleFound: configuration gaps
        """
        # Rejected requests never create lock rows
        errors, _room = self.validator.precheck(request)
        if errors:
            return BookingOutcome(ok=False, errors=errors)

        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._attempt(request, today)
            except (OperationalError, IntegrityError) as exc:
                reference_error = isinstance(exc, IntegrityError) and self.validator.check_reference(request)
                if reference_error:
                    return BookingOutcome(ok=False, errors=[reference_error])
                logger.warning("Booking attempt %s/%s for %s %s %s-%s failed: %s",
                               attempt, attempts, request.cabin, request.booking_mode,
                               request.checkin_date, request.checkout_date, exc)

        logger.warning("Giving up on %s %s %s-%s after %s attempts",
                       request.cabin, request.booking_mode,
                       request.checkin_date, request.checkout_date, attempts)
        return BookingOutcome(ok=False, errors=[
            BookingConflict(message="The requested dates could not be reserved, please try again")
        ])


# =============================================================================
# LIFECYCLE
# =============================================================================

def validate_and_price(request, today=None):
    """Validate, price and persist a booking request (returns BookingOutcome)."""
    return BookingLocker().create_booking(request, today=today)


def confirm_booking(booking_id):
    """
    Move a pending booking to confirmed and emit booking_confirmed.

    Confirming an already-confirmed booking returns it unchanged.

    Raises:
        Booking.DoesNotExist
        BookingNotConfirmable: booking was cancelled
    """
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        if booking.status == BookingStatus.CONFIRMED:
            return booking
        if booking.status != BookingStatus.PENDING:
            raise BookingNotConfirmable(f"Booking {booking.reference_id} is {booking.status}")

        booking.status = BookingStatus.CONFIRMED
        booking.save(update_fields=['status', 'updated_at'])
        transaction.on_commit(
            lambda: signals.booking_confirmed.send(sender=Booking, booking=booking)
        )

    logger.info("Confirmed booking %s", booking.reference_id)
    return booking
