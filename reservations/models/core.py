"""
Core models: enumerations, Season, RoomCategory, Room, Blackout.

Note: the property field on every model is named 'cabin' to avoid
conflict with Python's built-in @property decorator.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Property(models.TextChoices):
    """Physical cabins. Configuration-level, never created at runtime."""
    TAHOE = 'tahoe', 'Tahoe'
    CLEAR_LAKE = 'clear_lake', 'Clear Lake'


class BookingMode(models.TextChoices):
    ROOM = 'room', 'Room'
    DAY = 'day', 'Day use'
    BUYOUT = 'buyout', 'Full buyout'


class PriceUnit(models.TextChoices):
    PER_PERSON_PER_NIGHT = 'per_person_per_night', 'Per person per night'
    PER_GUEST_PER_DAY = 'per_guest_per_day', 'Per guest per day'
    BUYOUT_FIXED = 'buyout_fixed', 'Buyout (fixed per night)'


# Each booking mode is priced with exactly one unit.
PRICE_UNIT_FOR_MODE = {
    BookingMode.ROOM: PriceUnit.PER_PERSON_PER_NIGHT,
    BookingMode.DAY: PriceUnit.PER_GUEST_PER_DAY,
    BookingMode.BUYOUT: PriceUnit.BUYOUT_FIXED,
}


# =============================================================================
# SEASONS
# =============================================================================

class Season(models.Model):
    """
    Recurring annual season for one property.

    The stored dates carry a base year only; the month/day pair recurs every
    year. A window whose start month is after its end month wraps the new year.

    Example:
        Winter: Nov 01 - Apr 30, advance booking 45 days, max 4 nights
        Summer: May 01 - Oct 31, default season
    """
    cabin = models.CharField(
        max_length=20,
        choices=Property.choices,
        db_index=True,
        verbose_name="property",
        help_text="Property this season belongs to"
    )
    name = models.CharField(max_length=100, help_text="e.g., Winter, Summer")
    description = models.TextField(blank=True, default='', max_length=1000)

    start_date = models.DateField(help_text="First day (year is ignored)")
    end_date = models.DateField(help_text="Last day, inclusive (year is ignored)")

    is_default = models.BooleanField(
        default=False,
        help_text="Used when no other season matches a date"
    )
    advance_booking_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="How many days ahead check-in may be booked (blank or 0 = unlimited)"
    )
    max_nights = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Longest stay allowed (blank = property default)"
    )
    buyout_allowed = models.BooleanField(
        default=True,
        help_text="Whether full-property buyouts may start in this season"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['cabin', 'start_date', 'id']
        verbose_name = "Season"
        verbose_name_plural = "Seasons"

    def __str__(self):
        return f"{self.name} ({self.start_date.strftime('%b %d')} - {self.end_date.strftime('%b %d')})"

    @property
    def window(self):
        """RecurringWindow for this season's month/day range."""
        from reservations.services.seasons import RecurringWindow
        return RecurringWindow.from_dates(self.start_date, self.end_date)

    @property
    def has_advance_limit(self):
        return bool(self.advance_booking_days)

    def clean(self):
        super().clean()
        if self.start_date and self.end_date:
            start = (self.start_date.month, self.start_date.day)
            end = (self.end_date.month, self.end_date.day)
            # Same-month windows cannot wrap; other windows wrap when start > end
            if start[0] == end[0] and end < start:
                raise ValidationError({'end_date': "must be after start date"})
        if self.is_default and self.cabin:
            others = Season.objects.filter(cabin=self.cabin, is_default=True)
            if self.pk:
                others = others.exclude(pk=self.pk)
            if others.exists():
                raise ValidationError({'is_default': "only one default season allowed per property"})


# =============================================================================
# ROOMS
# =============================================================================

class RoomCategory(models.Model):
    """
    Named bucket of rooms used to scope pricing rules.

    Example: single, standard, family
    """
    name = models.CharField(max_length=100, unique=True)
    notes = models.TextField(blank=True, default='')

    class Meta:
        ordering = ['name']
        verbose_name = "Room Category"
        verbose_name_plural = "Room Categories"

    def __str__(self):
        return self.name


class Room(models.Model):
    """
    Bookable room at a property.

    Rooms referenced by bookings are disabled with is_active rather than
    deleted.
    """
    cabin = models.CharField(max_length=20, choices=Property.choices, db_index=True, verbose_name="property")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='', max_length=1000)

    room_category = models.ForeignKey(
        RoomCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rooms',
        help_text="Category used for category-level pricing"
    )
    default_season = models.ForeignKey(
        Season,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='default_rooms',
        help_text="Fallback season for this room"
    )

    # Capacity
    capacity_max = models.PositiveIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        help_text="Hard cap on guests"
    )
    min_billable_occupancy = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        help_text="Minimum guests charged for, regardless of headcount"
    )

    # Beds
    single_beds = models.PositiveIntegerField(default=0)
    queen_beds = models.PositiveIntegerField(default=0)
    king_beds = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['cabin', 'name']
        verbose_name = "Room"
        verbose_name_plural = "Rooms"

    def __str__(self):
        return f"{self.name} ({self.get_cabin_display()}, max {self.capacity_max})"

    def billable_people(self, guests_count):
        """
        Guests charged for this room.

        Example (min_billable_occupancy=2):
            billable_people(1) -> 2
            billable_people(3) -> 3
        """
        return max(guests_count, self.min_billable_occupancy or 1)

    @property
    def bed_count(self):
        return self.single_beds + self.queen_beds + self.king_beds


# =============================================================================
# BLACKOUTS
# =============================================================================

class Blackout(models.Model):
    """Dates a property is closed. Both ends are inclusive."""
    cabin = models.CharField(max_length=20, choices=Property.choices, db_index=True, verbose_name="property")
    reason = models.CharField(max_length=255, blank=True, default='')
    start_date = models.DateField()
    end_date = models.DateField()

    class Meta:
        ordering = ['cabin', 'start_date']
        verbose_name = "Blackout"
        verbose_name_plural = "Blackouts"

    def __str__(self):
        return f"{self.get_cabin_display()} closed {self.start_date} - {self.end_date}"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': "must be on or after start date"})
