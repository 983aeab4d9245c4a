"""
JSON endpoints for the reservation engine.

    POST bookings/                  validate, price and create a booking
    POST bookings/<id>/cancel/      cancel and refund (idempotent)
    GET  availability/              existing bookings in a window

Rule violations return 422 with a list of {code, field, message, params}.
Configuration gaps return 503 with a generic message; details go to the log.
"""

import json
import logging
from datetime import date

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from reservations.exceptions import (
    BookingNotCancellable,
    CancellationError,
    ConfigurationError,
    InvalidBookingRequest,
    PaymentNotFound,
)
from reservations.models import Booking, Property
from reservations.services import BookingRequest, cancel_and_refund, get_availability, validate_and_price

logger = logging.getLogger(__name__)

CONFIGURATION_MESSAGE = "Bookings are temporarily unavailable. Please contact the club."


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidBookingRequest("Request body must be JSON")
    if not isinstance(data, dict):
        raise InvalidBookingRequest("Request body must be a JSON object")
    return data


def _errors(*errors, status=422):
    return JsonResponse({'success': False, 'errors': [error.as_dict() for error in errors]}, status=status)


@csrf_exempt
@require_POST
def create_booking(request):
    """
    Create a booking.

    Body:
        property, booking_mode, checkin_date, checkout_date,
        guests_count, children_count, room_id, user_id
    """
    try:
        booking_request = BookingRequest.from_dict(_json_body(request))
        outcome = validate_and_price(booking_request)
    except InvalidBookingRequest as e:
        return _errors(e, status=400)
    except ConfigurationError:
        logger.exception("Booking configuration error")
        return JsonResponse({'success': False, 'message': CONFIGURATION_MESSAGE}, status=503)

    if not outcome.ok:
        return _errors(*outcome.errors)

    data = outcome.as_dict()
    data['success'] = True
    return JsonResponse(data, status=201)


@csrf_exempt
@require_POST
def cancel_booking(request, booking_id):
    """
    Cancel a booking and compute its refund.

    Body:
        idempotency_key (required), reason
    """
    try:
        data = _json_body(request)
    except InvalidBookingRequest as e:
        return _errors(e, status=400)

    idempotency_key = data.get('idempotency_key') or request.headers.get('Idempotency-Key')
    if not idempotency_key:
        return JsonResponse({'success': False, 'message': 'idempotency_key required'}, status=400)

    try:
        result = cancel_and_refund(booking_id, data.get('reason', ''), idempotency_key)
    except Booking.DoesNotExist:
        return JsonResponse({'success': False, 'message': 'Booking not found'}, status=404)
    except PaymentNotFound as e:
        return JsonResponse({'success': False, 'code': e.code, 'message': str(e)}, status=404)
    except BookingNotCancellable as e:
        return JsonResponse({'success': False, 'code': e.code, 'message': str(e)}, status=409)
    except CancellationError as e:
        return JsonResponse({'success': False, 'code': e.code, 'message': str(e)}, status=409)
    except ConfigurationError:
        logger.exception("Refund configuration error for booking %s", booking_id)
        return JsonResponse({'success': False, 'message': CONFIGURATION_MESSAGE}, status=503)

    return JsonResponse({'success': True, 'refund': result.as_dict(), 'replayed': result.replayed})


@require_GET
def availability(request):
    """
    Bookings occupying part of a window.

    Query:
        property, start_date, end_date, room_id (optional)
    """
    cabin = request.GET.get('property')
    if cabin not in Property.values:
        return JsonResponse({'error': 'Unknown property'}, status=400)

    try:
        start_date = date.fromisoformat(request.GET.get('start_date', ''))
        end_date = date.fromisoformat(request.GET.get('end_date', ''))
        room_id = int(request.GET['room_id']) if request.GET.get('room_id') else None
    except ValueError:
        return JsonResponse({'error': 'Invalid parameters'}, status=400)

    if end_date <= start_date:
        return JsonResponse({'error': 'end_date must be after start_date'}, status=400)

    conflicts = get_availability(cabin, room_id, start_date, end_date)
    return JsonResponse({
        'property': cabin,
        'room_id': room_id,
        'start_date': start_date.isoformat(),
        'end_date': end_date.isoformat(),
        'conflicts': [conflict.as_dict() for conflict in conflicts],
    })
