"""
Pricing Calculation Services
============================

Prices a candidate booking from layered PricingRules.

Rule Resolution (per night):
1. Rules for the booking mode and its price unit whose scope matches
   (blank scope fields match anything)
2. Most specific level wins: room > room category > property
3. At the same level, a season-scoped rule beats a season-agnostic one
4. Then a property-scoped rule beats a property wildcard
5. Then the lowest id (oldest rule)

No matching rule is a configuration gap: NoPricingRuleFound is raised and
logged, never priced at zero.

Calculation Flow (season resolved night by night):
    per_person_per_night  amount x max(guests, min_billable) + child rate x children
    per_guest_per_day     amount x (guests + children)
    buyout_fixed          amount
summed over every night (or day) of the stay.
"""

import logging
from dataclasses import dataclass, field

from django.db.models import Q

from reservations.exceptions import NoPricingRuleFound
from reservations.models import BookingMode, PriceUnit, PRICE_UNIT_FOR_MODE, PricingRule, Room
from reservations.money import Money
from .cache import ConfigCache
from .seasons import SeasonResolver, nights_between

logger = logging.getLogger(__name__)

LEVEL_ROOM = 2
LEVEL_CATEGORY = 1
LEVEL_PROPERTY = 0


# =============================================================================
# RULE RANKING
# =============================================================================

def rank_pricing_rule(rule, booking_mode, cabin, room_id=None, room_category_id=None, season_id=None):
    """
    Specificity key of a rule for a request, or None if the rule does not apply.

    Keys compare as tuples; larger is more specific:
        (level, season_scoped, property_scoped)

    Example:
        room rule, no season      -> (2, 0, 1)
        category rule, winter     -> (1, 1, 1)
        property rule, winter     -> (0, 1, 1)
    """
    booking_mode = BookingMode(booking_mode)
    if rule.booking_mode != booking_mode:
        return None
    if rule.price_unit != PRICE_UNIT_FOR_MODE[booking_mode]:
        return None
    if rule.cabin is not None and rule.cabin != str(cabin):
        return None
    if rule.room_id is not None and rule.room_id != room_id:
        return None
    if rule.room_category_id is not None and rule.room_category_id != room_category_id:
        return None
    if rule.season_id is not None and rule.season_id != season_id:
        return None

    if rule.room_id is not None:
        level = LEVEL_ROOM
    elif rule.room_category_id is not None:
        level = LEVEL_CATEGORY
    else:
        level = LEVEL_PROPERTY

    return (level, int(rule.season_id is not None), int(rule.cabin is not None))


def select_pricing_rule(rules, booking_mode, cabin, room_id=None, room_category_id=None, season_id=None):
    """Most specific applicable rule from rules, or None."""
    best = None
    best_key = None
    for rule in rules:
        key = rank_pricing_rule(rule, booking_mode, cabin, room_id, room_category_id, season_id)
        if key is None:
            continue
        # Lowest id wins ties
        if best is None or key > best_key or (key == best_key and rule.id < best.id):
            best, best_key = rule, key
    return best


# =============================================================================
# QUOTE
# =============================================================================

@dataclass
class NightlyPrice:
    night: object
    season_id: int
    rule_id: int
    adult_amount: Money
    children_amount: Money

    @property
    def total(self):
        return self.adult_amount + self.children_amount


@dataclass
class PriceQuote:
    total: Money
    nights: int
    price_unit: str
    billable_people: int
    adult_total: Money
    children_total: Money
    lines: list = field(default_factory=list)

    def as_dict(self):
        return {
            'total': self.total.as_dict(),
            'nights': self.nights,
            'price_unit': self.price_unit,
            'billable_people': self.billable_people,
            'adult_total': self.adult_total.as_dict(),
            'children_total': self.children_total.as_dict(),
            'lines': [
                {
                    'night': line.night.isoformat(),
                    'season_id': line.season_id,
                    'rule_id': line.rule_id,
                    'amount': line.total.as_dict(),
                }
                for line in self.lines
            ],
        }


# =============================================================================
# SERVICE
# =============================================================================

class PricingService:
    """
    Prices candidate bookings.

    Usage:
        from reservations.services import PricingService

        service = PricingService()
        quote = service.calculate(request)

        print(f"Total: {quote.total}")
        for line in quote.lines:
            print(line.night, line.total)
    """

    def __init__(self, cache=None, resolver=None):
        """
        Args:
            cache: ConfigCache for rules and rooms
            resolver: SeasonResolver (shares the cache by default)
        """
        self.cache = cache or ConfigCache()
        self.resolver = resolver or SeasonResolver(self.cache)

    def rules_for(self, cabin, booking_mode):
        """Candidate rules for a property/mode, including property wildcards."""
        cabin = str(cabin)
        booking_mode = str(booking_mode)
        return self.cache.get_or_set(
            f"pricing_rules:{cabin}:{booking_mode}",
            lambda: list(
                PricingRule.objects.filter(booking_mode=booking_mode)
                .filter(Q(cabin=cabin) | Q(cabin__isnull=True))
                .order_by('id')
            ),
        )

    def get_room(self, room_id):
        if room_id is None:
            return None
        return self.cache.get_or_set(
            f"room:{room_id}",
            lambda: Room.objects.filter(pk=room_id).first(),
        )

    def resolve_rule(self, cabin, booking_mode, season, room=None):
        """
        Find the rule that prices one night.

        Raises:
            NoPricingRuleFound: configuration gap
        """
        room_id = room.id if room is not None else None
        room_category_id = room.room_category_id if room is not None else None

        rule = select_pricing_rule(
            self.rules_for(cabin, booking_mode),
            booking_mode,
            cabin,
            room_id=room_id,
            room_category_id=room_category_id,
            season_id=season.id,
        )
        if rule is None:
            error = NoPricingRuleFound(
                str(cabin),
                str(booking_mode),
                str(PRICE_UNIT_FOR_MODE[booking_mode]),
                room_id=room_id,
                room_category_id=room_category_id,
                season_id=season.id,
            )
            logger.error("%s", error)
            raise error

        logger.debug("Pricing rule %s applies to %s %s season %s", rule.id, cabin, booking_mode, season.id)
        return rule

    def calculate(self, request, room=None):
        """
        Price a candidate booking.

        Args:
            request: BookingRequest (cabin, booking_mode, room_id, checkin_date,
                     checkout_date, guests_count, children_count)
            room: preloaded Room for room mode (looked up when omitted)

        Returns:
            PriceQuote

        Raises:
            NoPricingRuleFound: no rule covers some night of the stay
            NoSeasonConfigured: some night has no season
        """
        booking_mode = BookingMode(request.booking_mode)
        price_unit = PRICE_UNIT_FOR_MODE[booking_mode]
        if booking_mode == BookingMode.ROOM and room is None:
            room = self.get_room(request.room_id)
        if booking_mode != BookingMode.ROOM:
            room = None

        guests = request.guests_count
        children = request.children_count or 0

        if price_unit == PriceUnit.PER_PERSON_PER_NIGHT:
            billable_people = room.billable_people(guests)
        elif price_unit == PriceUnit.PER_GUEST_PER_DAY:
            billable_people = guests
        else:
            billable_people = 0

        zero = Money.zero()
        adult_total = zero
        children_total = zero
        lines = []

        for night in nights_between(request.checkin_date, request.checkout_date):
            season = self.resolver.for_date(request.cabin, night, room=room)
            rule = self.resolve_rule(request.cabin, booking_mode, season, room=room)

            if price_unit == PriceUnit.PER_PERSON_PER_NIGHT:
                adult = Money(rule.amount) * billable_people
                child_rate = rule.children_amount if rule.children_amount is not None else rule.amount
                child = Money(child_rate) * children
            elif price_unit == PriceUnit.PER_GUEST_PER_DAY:
                adult = Money(rule.amount) * billable_people
                child = zero
            else:
                adult = Money(rule.amount)
                child = zero

            adult_total = adult_total + adult
            children_total = children_total + child
            lines.append(NightlyPrice(night, season.id, rule.id, adult, child))

        quote = PriceQuote(
            total=adult_total + children_total,
            nights=len(lines),
            price_unit=str(price_unit),
            billable_people=billable_people,
            adult_total=adult_total,
            children_total=children_total,
            lines=lines,
        )
        logger.debug("Priced %s %s %s-%s at %s", request.cabin, booking_mode,
                     request.checkin_date, request.checkout_date, quote.total)
        return quote
