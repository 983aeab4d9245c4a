"""
Domain events and configuration cache invalidation.

Domain events are sent after the surrounding transaction commits, so a
subscriber (the notification layer) never sees a booking that was rolled
back:

    booking_confirmed   booking
    booking_cancelled   booking, refund (RefundResult)
    refund_pending      pending_refund
    refund_approved     pending_refund, payment_reference_id, amount (Money)

Saving or deleting any configuration model drops the whole config cache.
"""

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from .models import Season, Room, RoomCategory, PricingRule, RefundPolicy, RefundPolicyRule, Blackout
from .services.cache import ConfigCache

logger = logging.getLogger(__name__)

booking_confirmed = Signal()
booking_cancelled = Signal()
refund_pending = Signal()
refund_approved = Signal()

CONFIG_MODELS = (Season, Room, RoomCategory, PricingRule, RefundPolicy, RefundPolicyRule, Blackout)


@receiver(post_save)
@receiver(post_delete)
def invalidate_config_cache(sender, instance, **kwargs):
    """
    When any season, room, pricing rule, refund policy or blackout changes,
    drop every cached configuration entry.
    """
    if sender in CONFIG_MODELS:
        ConfigCache().invalidate_all()
        logger.debug("Config cache cleared after %s %s change", sender.__name__, instance.pk)
