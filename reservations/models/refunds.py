"""
Refund models: RefundPolicy, RefundPolicyRule, PendingRefund, CancellationRecord.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from .core import Property, BookingMode
from .bookings import Booking, Payment


# =============================================================================
# POLICIES
# =============================================================================

class RefundPolicy(models.Model):
    """
    Cancellation refund policy for one (property, booking mode) scope.

    Policies are retired with is_active=False, never deleted. When more than
    one active policy exists for a scope the newest one applies.
    """
    name = models.CharField(max_length=255)
    cabin = models.CharField(max_length=20, choices=Property.choices, verbose_name="property")
    booking_mode = models.CharField(max_length=10, choices=BookingMode.choices)
    is_active = models.BooleanField(default=True, db_index=True)
    requires_manual_review = models.BooleanField(
        default=False,
        help_text="Send every non-zero refund to human review"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['cabin', 'booking_mode', '-created_at']
        verbose_name = "Refund Policy"
        verbose_name_plural = "Refund Policies"

    def __str__(self):
        status = "active" if self.is_active else "retired"
        return f"{self.name} ({self.get_cabin_display()} {self.get_booking_mode_display()}, {status})"


class RefundPolicyRule(models.Model):
    """
    One band of a refund policy.

    A threshold of T days means "cancelled with at most T days notice".

    Example (buyout):
        14 days -> 0%
        21 days -> 50%
        cancelling 18 days out refunds 50%, 30 days out refunds 100%
    """
    refund_policy = models.ForeignKey(RefundPolicy, on_delete=models.CASCADE, related_name='rules')
    days_before_checkin = models.PositiveIntegerField()
    refund_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    priority = models.IntegerField(default=0, help_text="Higher wins when thresholds tie")
    description = models.CharField(max_length=500, blank=True, default='')

    class Meta:
        ordering = ['refund_policy', 'days_before_checkin', '-priority', 'id']
        verbose_name = "Refund Policy Rule"
        verbose_name_plural = "Refund Policy Rules"

    def __str__(self):
        return f"<= {self.days_before_checkin} days: {self.refund_percentage}%"


# =============================================================================
# REFUND REVIEW
# =============================================================================

class PendingRefund(models.Model):
    """Policy-computed refund withheld for human review."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name='pending_refunds')
    payment = models.ForeignKey(Payment, on_delete=models.PROTECT, related_name='pending_refunds')

    policy_refund_amount = models.DecimalField(max_digits=10, decimal_places=2)
    applied_rule_days_before_checkin = models.IntegerField(null=True, blank=True)
    applied_rule_refund_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True
    )
    cancellation_reason = models.TextField(blank=True, default='')

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)
    admin_refund_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Amount actually approved (blank = policy amount)"
    )
    admin_notes = models.TextField(blank=True, default='')
    reviewed_by = models.CharField(max_length=255, blank=True, default='')
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = "Pending Refund"
        verbose_name_plural = "Pending Refunds"

    def __str__(self):
        return f"{self.booking.reference_id}: ${self.policy_refund_amount} ({self.get_status_display()})"

    @property
    def final_amount(self):
        if self.admin_refund_amount is not None:
            return self.admin_refund_amount
        return self.policy_refund_amount


# =============================================================================
# CANCELLATION LEDGER
# =============================================================================

class CancellationRecord(models.Model):
    """
    Result of one cancel-and-refund call, keyed by the caller's idempotency key.

    A repeated call with the same key returns this record instead of
    recomputing the refund.
    """

    class Disposition(models.TextChoices):
        AUTO = 'auto', 'Auto-processed'
        PENDING_REVIEW = 'pending_review', 'Pending review'
        NONE = 'none', 'No refund'

    idempotency_key = models.CharField(max_length=255, unique=True)
    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name='cancellations')

    refund_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    refund_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    days_before_checkin = models.IntegerField()
    disposition = models.CharField(max_length=20, choices=Disposition.choices)

    applied_rule = models.ForeignKey(
        RefundPolicyRule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    pending_refund = models.ForeignKey(
        PendingRefund,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = "Cancellation Record"
        verbose_name_plural = "Cancellation Records"

    def __str__(self):
        return f"{self.idempotency_key}: {self.refund_amount} ({self.disposition})"
