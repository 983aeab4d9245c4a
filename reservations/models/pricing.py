"""
Pricing models: PricingRule.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from .core import Property, BookingMode, PriceUnit, PRICE_UNIT_FOR_MODE, Season, RoomCategory, Room


class PricingRule(models.Model):
    """
    Price for a booking mode within a scope.

    Scope fields left blank act as wildcards. The most specific rule wins:
        1. room               (one room)
        2. room_category      (every room in the category)
        3. property           (fallback)
    and at each level a season-scoped rule beats a season-agnostic one.

    Example:
        Winter, Family category, room mode: $45.00 per person per night,
        children $25.00
    """
    booking_mode = models.CharField(max_length=10, choices=BookingMode.choices)
    price_unit = models.CharField(max_length=30, choices=PriceUnit.choices)

    cabin = models.CharField(
        max_length=20,
        choices=Property.choices,
        null=True,
        blank=True,
        verbose_name="property",
        help_text="Blank applies to every property"
    )
    room = models.ForeignKey(
        Room,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='pricing_rules'
    )
    room_category = models.ForeignKey(
        RoomCategory,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='pricing_rules'
    )
    season = models.ForeignKey(
        Season,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='pricing_rules',
        help_text="Blank applies in every season"
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Price per unit"
    )
    children_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Discounted price per child (blank = adult price)"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['cabin', 'booking_mode', 'id']
        verbose_name = "Pricing Rule"
        verbose_name_plural = "Pricing Rules"
        constraints = [
            models.UniqueConstraint(
                fields=['booking_mode', 'price_unit', 'cabin', 'room', 'room_category', 'season'],
                name='uq_pricing_rule_scope',
                nulls_distinct=False,
            ),
        ]

    def __str__(self):
        return f"{self.get_booking_mode_display()} {self.scope_display()}: ${self.amount}"

    def scope_display(self):
        if self.room_id:
            scope = f"room {self.room}"
        elif self.room_category_id:
            scope = f"category {self.room_category}"
        else:
            scope = self.get_cabin_display() if self.cabin else "all properties"
        if self.season_id:
            scope += f" / {self.season.name}"
        return scope

    def clean(self):
        super().clean()
        if not (self.room_id or self.room_category_id or self.cabin):
            raise ValidationError("must specify at least one of: room, room category, or property")
        if self.booking_mode and self.price_unit:
            expected = PRICE_UNIT_FOR_MODE.get(self.booking_mode)
            if expected and self.price_unit != expected:
                raise ValidationError({'price_unit': f"{self.booking_mode} bookings are priced {expected}"})
