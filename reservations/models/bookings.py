"""
Booking models: Booking, BookingLock, Payment.
"""

import base64
import secrets
from decimal import Decimal

from django.db import models
from django.db.models import F, Q

from .core import Property, BookingMode, Room

REFERENCE_PREFIX = "BKG"


def generate_reference_id(prefix=REFERENCE_PREFIX):
    """External-facing booking reference, e.g. BKG-K3J9QZ2MXA."""
    token = base64.b32encode(secrets.token_bytes(10)).decode('ascii')[:10]
    return f"{prefix}-{token}"


class BookingStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    CANCELLED = 'cancelled', 'Cancelled'


# Statuses that hold inventory
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class BookingQuerySet(models.QuerySet):

    def active(self):
        return self.filter(status__in=ACTIVE_STATUSES)

    def overlapping(self, checkin_date, checkout_date):
        """Half-open [checkin, checkout) overlap; same-day turnover does not overlap."""
        return self.filter(checkin_date__lt=checkout_date, checkout_date__gt=checkin_date)


class Booking(models.Model):
    """
    A reservation of a room, a day-use slot, or a whole property.

    total_price is computed once at creation and never recalculated.
    Bookings are cancelled, never deleted.
    """
    reference_id = models.CharField(max_length=32, unique=True, default=generate_reference_id)

    cabin = models.CharField(max_length=20, choices=Property.choices, db_index=True, verbose_name="property")
    booking_mode = models.CharField(max_length=10, choices=BookingMode.choices)
    room = models.ForeignKey(
        Room,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='bookings',
        help_text="Required for room bookings, blank otherwise"
    )

    checkin_date = models.DateField(db_index=True)
    checkout_date = models.DateField(db_index=True)

    guests_count = models.PositiveIntegerField(default=1)
    children_count = models.PositiveIntegerField(default=0)

    user_id = models.CharField(max_length=64, db_index=True, help_text="Member identifier")

    total_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='USD')

    status = models.CharField(
        max_length=10,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING,
        db_index=True
    )
    validation_skipped = models.BooleanField(
        default=False,
        help_text="Created through the admin override without rule checks"
    )

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        constraints = [
            models.CheckConstraint(
                condition=Q(checkin_date__lt=F('checkout_date')),
                name='booking_checkin_before_checkout',
            ),
        ]
        indexes = [
            models.Index(fields=['cabin', 'status', 'checkin_date'], name='booking_cabin_status_ci_idx'),
        ]

    def __str__(self):
        return f"{self.reference_id} {self.get_cabin_display()} {self.checkin_date} - {self.checkout_date}"

    @property
    def nights(self):
        return (self.checkout_date - self.checkin_date).days

    @property
    def headcount(self):
        return self.guests_count + self.children_count

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES


class BookingLock(models.Model):
    """
    Row locked with SELECT ... FOR UPDATE around "check conflicts, then insert".

    scope is 'property' for whole-property locks or 'room:<id>' for one room.
    """
    cabin = models.CharField(max_length=20, choices=Property.choices, verbose_name="property")
    scope = models.CharField(max_length=40)

    class Meta:
        verbose_name = "Booking Lock"
        verbose_name_plural = "Booking Locks"
        constraints = [
            models.UniqueConstraint(fields=['cabin', 'scope'], name='uq_booking_lock_scope'),
        ]

    def __str__(self):
        return f"{self.cabin}:{self.scope}"


class Payment(models.Model):
    """
    Captured payment for a booking.

    Written by the payment collaborator; the engine only reads the amount
    for refund math.
    """
    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name='payments')
    reference_id = models.CharField(max_length=64, unique=True, help_text="Gateway payment reference")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    captured_at = models.DateTimeField()

    class Meta:
        ordering = ['-captured_at', '-id']
        verbose_name = "Payment"
        verbose_name_plural = "Payments"

    def __str__(self):
        return f"{self.reference_id} ${self.amount}"

    @property
    def money(self):
        from reservations.money import Money
        return Money(self.amount, self.currency)
