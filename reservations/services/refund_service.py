"""
Refund Services
===============

Cancellation refunds from tiered, time-sensitive policies.

Rule Selection:
    A rule with threshold T means "cancelled with at most T days notice".
    Among rules with days_before_checkin <= T the smallest T wins (the
    tightest band). Equal thresholds: higher priority, then lowest id.

    Example (buyout policy: 14 days -> 0%, 21 days -> 50%):
        30 days out   no rule matches      100%
        18 days out   21-day rule          50%
        10 days out   14-day rule          0%
        after checkin                      0%

Disposition:
    none            nothing to refund
    auto            full payment back and the policy allows automatic refunds
    pending_review  anything else: a PendingRefund waits for a reviewer

Days before check-in are counted in the property's local calendar.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from reservations import signals
from reservations.exceptions import (
    BookingNotCancellable,
    NoPolicyConfigured,
    PaymentNotFound,
    RefundReviewError,
)
from reservations.models import (
    Booking,
    BookingStatus,
    CancellationRecord,
    PendingRefund,
    RefundPolicy,
)
from reservations.money import Money
from .cache import ConfigCache
from .seasons import property_date

logger = logging.getLogger(__name__)

FULL_REFUND = Decimal('100')
NO_REFUND = Decimal('0')
PERCENT = Decimal('0.01')

Disposition = CancellationRecord.Disposition


def select_refund_rule(rules, days_before_checkin):
    """
    Tightest rule whose threshold still covers days_before_checkin, or None.

    Args:
        rules: RefundPolicyRule iterable
        days_before_checkin: whole days of notice (>= 0)
    """
    matching = [rule for rule in rules if days_before_checkin <= rule.days_before_checkin]
    if not matching:
        return None
    return min(matching, key=lambda rule: (rule.days_before_checkin, -rule.priority, rule.id))


def determine_disposition(refund_amount, payment_amount, requires_manual_review=False):
    if refund_amount.is_zero():
        return Disposition.NONE
    if refund_amount == payment_amount and not requires_manual_review:
        return Disposition.AUTO
    return Disposition.PENDING_REVIEW


@dataclass
class RefundCalculation:
    """Policy outcome for one booking, before anything is written."""
    policy: RefundPolicy
    rule: object
    days_before_checkin: int
    refund_percentage: Decimal
    refund_amount: Money
    payment_amount: Money
    disposition: str


@dataclass
class RefundResult:
    """Stored result of cancel_and_refund, identical on every replay."""
    booking_id: int
    idempotency_key: str
    refund_amount: Money
    refund_percentage: Decimal
    days_before_checkin: int
    disposition: str
    applied_rule_id: int = None
    pending_refund_id: int = None
    replayed: bool = field(default=False, compare=False)

    @classmethod
    def from_record(cls, record, replayed=False):
        return cls(
            booking_id=record.booking_id,
            idempotency_key=record.idempotency_key,
            refund_amount=Money(record.refund_amount, record.currency),
            refund_percentage=Decimal(record.refund_percentage).quantize(PERCENT),
            days_before_checkin=record.days_before_checkin,
            disposition=record.disposition,
            applied_rule_id=record.applied_rule_id,
            pending_refund_id=record.pending_refund_id,
            replayed=replayed,
        )

    @property
    def requires_review(self):
        return self.disposition == Disposition.PENDING_REVIEW

    def as_dict(self):
        return {
            'booking_id': self.booking_id,
            'idempotency_key': self.idempotency_key,
            'refund_amount': self.refund_amount.as_dict(),
            'refund_percentage': str(self.refund_percentage),
            'days_before_checkin': self.days_before_checkin,
            'disposition': self.disposition,
            'applied_rule_id': self.applied_rule_id,
            'pending_refund_id': self.pending_refund_id,
        }


class RefundPolicyService:
    """
    Computes refunds from the active policy of a booking's scope.

    Usage:
        service = RefundPolicyService()
        calculation = service.calculate(booking, payment, timezone.now())
        print(calculation.refund_percentage, calculation.refund_amount)
    """

    def __init__(self, cache=None):
        self.cache = cache or ConfigCache()

    def active_policy(self, cabin, booking_mode):
        """
        (policy, rules) for a scope, newest active policy first.

        Returns:
            tuple (RefundPolicy or None, list of RefundPolicyRule)
        """
        def load():
            policy = (
                RefundPolicy.objects.filter(cabin=cabin, booking_mode=booking_mode, is_active=True)
                .order_by('-created_at', '-id')
                .first()
            )
            if policy is None:
                return None, []
            return policy, list(policy.rules.all())

        return self.cache.get_or_set(f"refund_policy:{cabin}:{booking_mode}", load)

    def calculate(self, booking, payment, cancellation_time=None):
        """
        Refund owed for cancelling a booking at cancellation_time.

        Args:
            booking: Booking
            payment: captured Payment for the booking
            cancellation_time: aware datetime (default: now)

        Returns:
            RefundCalculation

        Raises:
            NoPolicyConfigured: no active policy for the booking's scope
        """
        policy, rules = self.active_policy(booking.cabin, booking.booking_mode)
        if policy is None:
            error = NoPolicyConfigured(booking.cabin, booking.booking_mode)
            logger.error("%s (booking %s)", error, booking.reference_id)
            raise error

        cancellation_date = property_date(booking.cabin, cancellation_time)
        days_before_checkin = (booking.checkin_date - cancellation_date).days

        rule = None
        if days_before_checkin < 0:
            percentage = NO_REFUND
        else:
            rule = select_refund_rule(rules, days_before_checkin)
            percentage = rule.refund_percentage if rule else FULL_REFUND

        payment_amount = payment.money
        refund_amount = payment_amount.percentage(percentage)
        disposition = determine_disposition(refund_amount, payment_amount, policy.requires_manual_review)

        logger.debug("Refund for %s: %s days out, rule %s, %s%% = %s (%s)",
                     booking.reference_id, days_before_checkin, rule.id if rule else None,
                     percentage, refund_amount, disposition)

        return RefundCalculation(
            policy=policy,
            rule=rule,
            days_before_checkin=days_before_checkin,
            refund_percentage=percentage,
            refund_amount=refund_amount,
            payment_amount=payment_amount,
            disposition=disposition,
        )


# =============================================================================
# CANCELLATION
# =============================================================================

def cancel_and_refund(booking_id, reason, idempotency_key, now=None, service=None):
    """
    Cancel a booking and settle its refund.

    Repeating a call with the same idempotency_key returns the stored
    RefundResult without recomputing anything.

    Args:
        booking_id: Booking primary key
        reason: free-text cancellation reason
        idempotency_key: caller-supplied token identifying this cancellation
        now: cancellation time (default: timezone.now())

    Returns:
        RefundResult

    Raises:
        Booking.DoesNotExist
        BookingNotCancellable: already cancelled under another key, or the
            key belongs to another booking
        PaymentNotFound: confirmed booking with no captured payment
        NoPolicyConfigured: nothing is written
    """
    if not idempotency_key:
        raise ValueError("idempotency_key is required")

    now = now or timezone.now()
    service = service or RefundPolicyService()

    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking_id)

        existing = CancellationRecord.objects.filter(idempotency_key=idempotency_key).first()
        if existing is not None:
            if existing.booking_id != booking.id:
                raise BookingNotCancellable(
                    f"Idempotency key {idempotency_key} was used for another booking"
                )
            logger.info("Replaying cancellation %s for booking %s", idempotency_key, booking.reference_id)
            return RefundResult.from_record(existing, replayed=True)

        if booking.status == BookingStatus.CANCELLED:
            raise BookingNotCancellable(f"Booking {booking.reference_id} is already cancelled")

        payment = booking.payments.order_by('-captured_at', '-id').first()
        if payment is None and booking.status == BookingStatus.CONFIRMED:
            raise PaymentNotFound(f"No captured payment for booking {booking.reference_id}")

        pending_refund = None
        if payment is None:
            # Unpaid hold: nothing to refund
            days_before_checkin = (booking.checkin_date - property_date(booking.cabin, now)).days
            refund_amount = Money.zero(booking.currency)
            percentage = NO_REFUND
            disposition = Disposition.NONE
            rule = None
        else:
            calculation = service.calculate(booking, payment, now)
            days_before_checkin = calculation.days_before_checkin
            refund_amount = calculation.refund_amount
            percentage = calculation.refund_percentage
            disposition = calculation.disposition
            rule = calculation.rule

            if disposition == Disposition.PENDING_REVIEW:
                pending_refund = PendingRefund.objects.create(
                    booking=booking,
                    payment=payment,
                    policy_refund_amount=refund_amount.amount,
                    applied_rule_days_before_checkin=rule.days_before_checkin if rule else None,
                    applied_rule_refund_percentage=rule.refund_percentage if rule else None,
                    cancellation_reason=reason or '',
                )

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = now
        booking.cancellation_reason = reason or ''
        booking.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

        record = CancellationRecord.objects.create(
            idempotency_key=idempotency_key,
            booking=booking,
            refund_amount=refund_amount.amount,
            currency=refund_amount.currency,
            refund_percentage=percentage,
            days_before_checkin=days_before_checkin,
            disposition=disposition,
            applied_rule=rule,
            pending_refund=pending_refund,
        )
        result = RefundResult.from_record(record)

        transaction.on_commit(
            lambda: signals.booking_cancelled.send(sender=Booking, booking=booking, refund=result)
        )
        if pending_refund is not None:
            transaction.on_commit(
                lambda: signals.refund_pending.send(sender=PendingRefund, pending_refund=pending_refund)
            )

    logger.info("Cancelled booking %s: refund %s (%s)", booking.reference_id, refund_amount, disposition)
    return result


# =============================================================================
# REVIEW
# =============================================================================

def _pending_for_review(pending_refund_id):
    pending_refund = (
        PendingRefund.objects.select_for_update()
        .select_related('booking', 'payment')
        .get(pk=pending_refund_id)
    )
    if pending_refund.status != PendingRefund.Status.PENDING:
        raise RefundReviewError(
            f"Pending refund {pending_refund.id} was already {pending_refund.status}"
        )
    return pending_refund


def approve_pending_refund(pending_refund_id, reviewed_by, amount=None, notes=None):
    """
    Approve a pending refund and emit refund_approved for the payment layer.

    Args:
        pending_refund_id: PendingRefund primary key
        reviewed_by: reviewer identifier
        amount: amount to refund instead of the policy amount (Money or Decimal)
        notes: reviewer notes

    Returns:
        PendingRefund

    Raises:
        RefundReviewError: not pending, or amount outside 0..payment
    """
    with transaction.atomic():
        pending_refund = _pending_for_review(pending_refund_id)
        payment_amount = pending_refund.payment.money

        if amount is None:
            approved = Money(pending_refund.policy_refund_amount, payment_amount.currency)
        elif isinstance(amount, Money):
            approved = amount
        else:
            approved = Money(amount, payment_amount.currency)

        if approved.currency != payment_amount.currency:
            raise RefundReviewError(f"Refund must be in {payment_amount.currency}")
        if approved.amount < 0 or approved > payment_amount:
            raise RefundReviewError(f"Refund must be between 0 and {payment_amount}")

        pending_refund.status = PendingRefund.Status.APPROVED
        pending_refund.admin_refund_amount = approved.amount
        pending_refund.admin_notes = notes or ''
        pending_refund.reviewed_by = str(reviewed_by)
        pending_refund.reviewed_at = timezone.now()
        pending_refund.save()

        payment_reference_id = pending_refund.payment.reference_id
        transaction.on_commit(
            lambda: signals.refund_approved.send(
                sender=PendingRefund,
                pending_refund=pending_refund,
                payment_reference_id=payment_reference_id,
                amount=approved,
            )
        )

    logger.info("Pending refund %s approved by %s: %s", pending_refund.id, reviewed_by, approved)
    return pending_refund


def reject_pending_refund(pending_refund_id, reviewed_by, notes=None):
    """
    Reject a pending refund; no money moves.

    Raises:
        RefundReviewError: not pending
    """
    with transaction.atomic():
        pending_refund = _pending_for_review(pending_refund_id)
        pending_refund.status = PendingRefund.Status.REJECTED
        pending_refund.admin_notes = notes or ''
        pending_refund.reviewed_by = str(reviewed_by)
        pending_refund.reviewed_at = timezone.now()
        pending_refund.save()

    logger.info("Pending refund %s rejected by %s", pending_refund.id, reviewed_by)
    return pending_refund
