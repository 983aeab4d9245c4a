"""
Pricing rule precedence and quote calculation.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import caches
from django.core.exceptions import ValidationError

from reservations.exceptions import NoPricingRuleFound
from reservations.models import BookingMode, PriceUnit, PricingRule, Property
from reservations.money import Money
from reservations.services import PricingService, rank_pricing_rule, select_pricing_rule


def rule(id, booking_mode=BookingMode.ROOM, price_unit=PriceUnit.PER_PERSON_PER_NIGHT, cabin='tahoe',
         room_id=None, room_category_id=None, season_id=None, amount='45.00'):
    return PricingRule(
        id=id,
        booking_mode=booking_mode,
        price_unit=price_unit,
        cabin=cabin,
        room_id=room_id,
        room_category_id=room_category_id,
        season_id=season_id,
        amount=Decimal(amount),
    )


class TestRuleRanking:

    def test_specificity_keys(self):
        assert rank_pricing_rule(rule(1, room_id=7), 'room', 'tahoe', room_id=7) == (2, 0, 1)
        assert rank_pricing_rule(rule(2, room_category_id=3, season_id=5), 'room', 'tahoe',
                                 room_id=7, room_category_id=3, season_id=5) == (1, 1, 1)
        assert rank_pricing_rule(rule(3, season_id=5), 'room', 'tahoe', season_id=5) == (0, 1, 1)
        assert rank_pricing_rule(rule(4, cabin=None, room_category_id=3), 'room', 'tahoe',
                                 room_category_id=3) == (1, 0, 0)

    def test_non_matching_rules_are_skipped(self):
        assert rank_pricing_rule(rule(1), 'buyout', 'tahoe') is None
        assert rank_pricing_rule(rule(1, cabin='clear_lake'), 'room', 'tahoe') is None
        assert rank_pricing_rule(rule(1, room_id=8), 'room', 'tahoe', room_id=7) is None
        assert rank_pricing_rule(rule(1, room_category_id=4), 'room', 'tahoe', room_category_id=3) is None
        assert rank_pricing_rule(rule(1, season_id=6), 'room', 'tahoe', season_id=5) is None

    def test_price_unit_must_match_mode(self):
        mismatched = rule(1, price_unit=PriceUnit.BUYOUT_FIXED)
        assert rank_pricing_rule(mismatched, 'room', 'tahoe') is None

    def test_room_beats_category_beats_property(self):
        rules = [
            rule(1, season_id=5),
            rule(2, room_category_id=3),
            rule(3, room_id=7),
        ]
        chosen = select_pricing_rule(rules, 'room', 'tahoe', room_id=7, room_category_id=3, season_id=5)
        assert chosen.id == 3

        chosen = select_pricing_rule(rules, 'room', 'tahoe', room_id=8, room_category_id=3, season_id=5)
        assert chosen.id == 2

    def test_season_rule_beats_all_season_rule(self):
        rules = [rule(1), rule(2, season_id=5)]
        assert select_pricing_rule(rules, 'room', 'tahoe', season_id=5).id == 2
        assert select_pricing_rule(rules, 'room', 'tahoe', season_id=6).id == 1

    def test_property_rule_beats_wildcard(self):
        rules = [rule(1, cabin=None, room_category_id=3), rule(2, room_category_id=3)]
        assert select_pricing_rule(rules, 'room', 'tahoe', room_category_id=3).id == 2

    def test_lowest_id_wins_ties(self):
        rules = [rule(9, amount='50.00'), rule(4, amount='40.00')]
        assert select_pricing_rule(rules, 'room', 'tahoe').id == 4

    def test_no_applicable_rule(self):
        assert select_pricing_rule([rule(1, cabin='clear_lake')], 'room', 'tahoe') is None


@pytest.mark.django_db
class TestPricingService:

    def test_room_stay(self, tahoe, make_request):
        quote = PricingService().calculate(make_request(room_id=tahoe.id))

        assert quote.total == Money('270.00')
        assert quote.nights == 3
        assert quote.billable_people == 2
        assert quote.price_unit == 'per_person_per_night'
        assert [line.total for line in quote.lines] == [Money('90.00')] * 3

    def test_min_billable_occupancy(self, tahoe_seasons, family_room, room_rule, make_request):
        quote = PricingService().calculate(make_request(room_id=family_room.id, guests_count=1))

        assert quote.billable_people == 2
        assert quote.total == Money('270.00')

    def test_children_use_child_rate(self, tahoe_seasons, family_room, room_rule, make_request):
        quote = PricingService().calculate(
            make_request(room_id=family_room.id, guests_count=2, children_count=1)
        )

        assert quote.adult_total == Money('270.00')
        assert quote.children_total == Money('75.00')
        assert quote.total == Money('345.00')

    def test_children_without_child_rate_pay_adult_rate(self, tahoe_seasons, family_room, room_rule, make_request):
        room_rule.children_amount = None
        room_rule.save()

        quote = PricingService().calculate(
            make_request(room_id=family_room.id, guests_count=2, children_count=2)
        )
        assert quote.total == Money('540.00')

    def test_each_night_priced_in_its_own_season(self, tahoe, winter, make_request):
        PricingRule.objects.create(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            cabin=Property.TAHOE,
            season=winter,
            amount=Decimal('60.00'),
        )

        quote = PricingService().calculate(
            make_request(room_id=tahoe.id, checkin_date=date(2025, 4, 29), checkout_date=date(2025, 5, 2))
        )

        assert [line.total for line in quote.lines] == [Money('120.00'), Money('120.00'), Money('90.00')]
        assert quote.total == Money('330.00')

    def test_category_rule_overrides_property_rule(self, tahoe, category, make_request):
        PricingRule.objects.create(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            room_category=category,
            amount=Decimal('40.00'),
        )

        quote = PricingService().calculate(make_request(room_id=tahoe.id))
        assert quote.total == Money('240.00')

    def test_room_rule_overrides_category_rule(self, tahoe, category, make_request):
        PricingRule.objects.create(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            room_category=category,
            amount=Decimal('40.00'),
        )
        PricingRule.objects.create(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            room=tahoe,
            amount=Decimal('35.50'),
        )

        quote = PricingService().calculate(make_request(room_id=tahoe.id))
        assert quote.total == Money('213.00')

    def test_buyout_is_fixed_per_night(self, tahoe, make_request):
        quote = PricingService().calculate(make_request(
            booking_mode=BookingMode.BUYOUT,
            checkin_date=date(2025, 6, 20),
            checkout_date=date(2025, 6, 22),
            guests_count=14,
        ))

        assert quote.total == Money('1000.00')
        assert quote.billable_people == 0

    def test_day_use_bills_adults_only(self, clear_lake_season, day_rule, make_request):
        quote = PricingService().calculate(make_request(
            cabin=Property.CLEAR_LAKE,
            booking_mode=BookingMode.DAY,
            checkin_date=date(2025, 7, 4),
            checkout_date=date(2025, 7, 6),
            guests_count=3,
            children_count=1,
        ))

        assert quote.billable_people == 3
        assert quote.children_total == Money.zero()
        assert quote.total == Money('300.00')

    def test_missing_rule_is_a_configuration_error(self, clear_lake_season, day_rule, make_request, caplog):
        request = make_request(
            cabin=Property.CLEAR_LAKE,
            booking_mode=BookingMode.BUYOUT,
            checkin_date=date(2025, 7, 4),
            checkout_date=date(2025, 7, 6),
        )

        with pytest.raises(NoPricingRuleFound) as exc_info:
            PricingService().calculate(request)

        assert exc_info.value.property == 'clear_lake'
        assert exc_info.value.booking_mode == 'buyout'
        assert exc_info.value.season_id == clear_lake_season.id
        assert "No pricing rule" in caplog.text

    def test_quote_serialization(self, tahoe, make_request):
        quote = PricingService().calculate(
            make_request(room_id=tahoe.id, checkout_date=date(2025, 1, 14))
        )

        assert quote.as_dict() == {
            'total': {'amount': '90.00', 'currency': 'USD'},
            'nights': 1,
            'price_unit': 'per_person_per_night',
            'billable_people': 2,
            'adult_total': {'amount': '90.00', 'currency': 'USD'},
            'children_total': {'amount': '0.00', 'currency': 'USD'},
            'lines': [{
                'night': '2025-01-13',
                'season_id': quote.lines[0].season_id,
                'rule_id': quote.lines[0].rule_id,
                'amount': {'amount': '90.00', 'currency': 'USD'},
            }],
        }

    def test_same_request_prices_the_same(self, tahoe_seasons, family_room, room_rule, make_request):
        request = make_request(room_id=family_room.id, checkin_date=date(2025, 4, 29),
                               checkout_date=date(2025, 5, 2), guests_count=3, children_count=1)

        first = PricingService().calculate(request)
        caches['reservations-config'].clear()
        second = PricingService().calculate(request)

        assert first.as_dict() == second.as_dict()


@pytest.mark.django_db
class TestRuleScopeUniqueness:

    def test_duplicate_property_rule_is_rejected(self, room_rule):
        duplicate = PricingRule(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            cabin=Property.TAHOE,
            amount=Decimal('50.00'),
        )

        with pytest.raises(ValidationError):
            duplicate.full_clean()

    def test_season_scoped_rule_is_a_different_scope(self, room_rule, winter):
        PricingRule(
            booking_mode=BookingMode.ROOM,
            price_unit=PriceUnit.PER_PERSON_PER_NIGHT,
            cabin=Property.TAHOE,
            season=winter,
            amount=Decimal('60.00'),
        ).full_clean()
