"""
Lock scopes, retries and booking confirmation.
"""

from datetime import date
from unittest import mock

import pytest
from django.db import IntegrityError, OperationalError

from reservations import signals
from reservations.exceptions import (
    BookingConflict, BookingNotConfirmable, DateOrderInvalid, InvalidBookingRequest, RoomUnavailable,
)
from reservations.models import Booking, BookingLock, BookingMode, BookingStatus, Property
from reservations.services import BookingLocker, BookingOutcome, confirm_booking, validate_and_price
from reservations.services.booking_service import lock_scopes

from .conftest import TODAY


class TestLockScopes:

    def test_room_locks_its_room(self, make_request):
        assert lock_scopes(make_request(room_id=7)) == ['room:7']

    def test_day_use_locks_the_property(self, make_request):
        assert lock_scopes(make_request(booking_mode=BookingMode.DAY)) == ['property']

    def test_buyout_locks_property_and_every_room(self, make_request):
        request = make_request(booking_mode=BookingMode.BUYOUT)
        assert lock_scopes(request, room_ids=[12, 3]) == ['property', 'room:12', 'room:3']


@pytest.mark.django_db
class TestBookingLocker:

    def test_acquire_creates_lock_rows_once(self, tahoe, family_room, make_request):
        locker = BookingLocker()
        request = make_request(booking_mode=BookingMode.BUYOUT)

        locks = locker.acquire(request)
        locker.acquire(request)

        assert [lock.scope for lock in locks] == sorted(['property', f'room:{tahoe.id}', f'room:{family_room.id}'])
        assert BookingLock.objects.filter(cabin=Property.TAHOE).count() == 3

    def test_retries_after_lock_failure(self, tahoe, make_request):
        locker = BookingLocker(retries=2)
        real_attempt = locker._attempt
        failures = [OperationalError('database is locked'), IntegrityError('duplicate lock row')]

        def flaky(request, today):
            if failures:
                raise failures.pop(0)
            return real_attempt(request, today)

        with mock.patch.object(locker, '_attempt', side_effect=flaky) as attempt:
            outcome = locker.create_booking(make_request(room_id=tahoe.id), today=TODAY)

        assert outcome.ok
        assert attempt.call_count == 3

    def test_gives_up_with_conflict(self, tahoe, make_request, caplog):
        locker = BookingLocker(retries=3)

        with mock.patch.object(locker, '_attempt', side_effect=OperationalError('database is locked')) as attempt:
            outcome = locker.create_booking(make_request(room_id=tahoe.id), today=TODAY)

        assert attempt.call_count == 4
        assert not outcome.ok
        [error] = outcome.errors
        assert isinstance(error, BookingConflict)
        assert "Giving up" in caplog.text

    def test_retries_default_from_settings(self, settings):
        settings.RESERVATIONS = {**settings.RESERVATIONS, 'LOCK_RETRIES': 5}
        assert BookingLocker().retries == 5

    def test_rule_errors_are_not_retried(self, tahoe, make_request):
        locker = BookingLocker()

        with mock.patch.object(locker, '_attempt', return_value=BookingOutcome(ok=False, errors=[])) as attempt:
            locker.create_booking(make_request(room_id=tahoe.id), today=TODAY)

        assert attempt.call_count == 1

    @pytest.mark.parametrize('overrides, error_type', [
        ({'room_id': 100000}, RoomUnavailable),
        ({'cabin': 'not-a-property', 'room_id': 1}, InvalidBookingRequest),
        ({'checkin_date': date(2025, 1, 16), 'checkout_date': date(2025, 1, 13)}, DateOrderInvalid),
    ])
    def test_rejected_requests_leave_no_lock_rows(self, tahoe, make_request, overrides, error_type):
        outcome = BookingLocker().create_booking(make_request(**{'room_id': tahoe.id, **overrides}), today=TODAY)

        assert [type(error) for error in outcome.errors] == [error_type]
        assert not BookingLock.objects.exists()

    def test_duplicate_reference_is_rejected_up_front(self, tahoe, make_booking, make_request):
        make_booking(reference_id='BKG-TAKEN')
        locker = BookingLocker()

        with mock.patch.object(locker, '_attempt') as attempt:
            outcome = locker.create_booking(make_request(room_id=tahoe.id, reference_id='BKG-TAKEN'), today=TODAY)

        assert attempt.call_count == 0
        [error] = outcome.errors
        assert isinstance(error, InvalidBookingRequest)
        assert error.field == 'reference_id'

    def test_reference_taken_mid_flight_is_not_retried(self, tahoe, make_booking, make_request):
        locker = BookingLocker(retries=3)

        def taken_meanwhile(request, today):
            make_booking(reference_id='BKG-RACE')
            raise IntegrityError('UNIQUE constraint failed: reservations_booking.reference_id')

        with mock.patch.object(locker, '_attempt', side_effect=taken_meanwhile) as attempt:
            outcome = locker.create_booking(make_request(room_id=tahoe.id, reference_id='BKG-RACE'), today=TODAY)

        assert attempt.call_count == 1
        [error] = outcome.errors
        assert isinstance(error, InvalidBookingRequest)
        assert error.field == 'reference_id'

    def test_competing_insert_inside_lock_window_conflicts(self, tahoe, make_request):
        locker = BookingLocker()
        rival = BookingLocker()
        real_acquire = locker.acquire
        rival_outcomes = []

        def acquire_then_lose_race(request):
            locks = real_acquire(request)
            rival_outcomes.append(rival.create_booking(
                make_request(room_id=tahoe.id, user_id='member-2'), today=TODAY,
            ))
            return locks

        with mock.patch.object(locker, 'acquire', side_effect=acquire_then_lose_race):
            outcome = locker.create_booking(make_request(room_id=tahoe.id), today=TODAY)

        [rival_outcome] = rival_outcomes
        assert rival_outcome.ok
        assert [type(error) for error in outcome.errors] == [BookingConflict]
        assert outcome.errors[0].existing_ids == [rival_outcome.booking.id]
        assert Booking.objects.filter(room=tahoe).count() == 1


@pytest.mark.django_db
class TestConfirmBooking:

    def test_confirm_pending_booking(self, make_booking, capture_signal, django_capture_on_commit_callbacks):
        confirmed = capture_signal(signals.booking_confirmed)
        booking = make_booking(status=BookingStatus.PENDING)

        with django_capture_on_commit_callbacks(execute=True):
            result = confirm_booking(booking.id)

        assert result.status == BookingStatus.CONFIRMED
        booking.refresh_from_db()
        assert booking.status == BookingStatus.CONFIRMED
        assert [call['booking'].id for call in confirmed] == [booking.id]

    def test_confirm_is_idempotent(self, make_booking, capture_signal, django_capture_on_commit_callbacks):
        confirmed = capture_signal(signals.booking_confirmed)
        booking = make_booking(status=BookingStatus.CONFIRMED)

        with django_capture_on_commit_callbacks(execute=True):
            confirm_booking(booking.id)

        assert confirmed == []

    def test_cancelled_booking_cannot_be_confirmed(self, make_booking):
        booking = make_booking(status=BookingStatus.CANCELLED)

        with pytest.raises(BookingNotConfirmable):
            confirm_booking(booking.id)

    def test_signal_waits_for_commit(self, make_booking, capture_signal, django_capture_on_commit_callbacks):
        confirmed = capture_signal(signals.booking_confirmed)
        booking = make_booking(status=BookingStatus.PENDING)

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            confirm_booking(booking.id)

        assert confirmed == []
        assert len(callbacks) == 1


@pytest.mark.django_db
def test_new_booking_starts_pending_then_confirms(tahoe, make_request):
    outcome = validate_and_price(
        make_request(room_id=tahoe.id, checkin_date=date(2025, 1, 20), checkout_date=date(2025, 1, 22)),
        today=TODAY,
    )
    assert outcome.booking.status == BookingStatus.PENDING
    assert confirm_booking(outcome.booking.id).status == BookingStatus.CONFIRMED
