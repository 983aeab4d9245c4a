"""
Config cache expiry and invalidation.
"""

from datetime import date

import pytest

from reservations.models import Property, Season
from reservations.services import ConfigCache, SeasonResolver


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ConfigCache(max_age=60, clock=clock)


def test_get_or_set_calls_loader_once(cache):
    calls = []

    def loader():
        calls.append(1)
        return ['rule']

    assert cache.get_or_set('rules', loader) == ['rule']
    assert cache.get_or_set('rules', loader) == ['rule']
    assert len(calls) == 1


def test_entries_expire_after_max_age(cache, clock):
    cache.set('rules', 'v1')
    clock.now += 60
    assert cache.get('rules') == 'v1'
    clock.now += 1
    assert cache.get('rules') is None


def test_no_max_age_never_expires(clock):
    cache = ConfigCache(max_age=None, clock=clock)
    cache.set('rules', 'v1')
    clock.now += 10 ** 6
    assert cache.get('rules') == 'v1'


def test_invalidate_single_key(cache):
    cache.set('a', 1)
    cache.set('b', 2)
    cache.invalidate('a')
    assert cache.get('a') is None
    assert cache.get('b') == 2


def test_invalidate_all_bumps_generation(cache):
    cache.set('a', 1)
    generation = cache.generation()
    assert cache.invalidate_all() == generation + 1
    assert cache.get('a') is None


def test_generation_is_shared_between_instances(clock):
    first = ConfigCache(clock=clock)
    second = ConfigCache(clock=clock)
    first.set('a', 1)
    second.invalidate_all()
    assert first.get('a') is None


def test_namespaces_are_separate(clock):
    ConfigCache(clock=clock, namespace='one').set('a', 1)
    assert ConfigCache(clock=clock, namespace='two').get('a') is None


@pytest.mark.django_db
def test_saving_configuration_drops_cached_seasons(summer):
    resolver = SeasonResolver()
    assert resolver.for_date(Property.TAHOE, date(2025, 7, 4)) == summer

    july = Season.objects.create(
        cabin=Property.TAHOE,
        name='July',
        start_date=date(2025, 7, 1),
        end_date=date(2025, 7, 31),
    )
    assert resolver.for_date(Property.TAHOE, date(2025, 7, 4)) == july

    july.delete()
    assert resolver.for_date(Property.TAHOE, date(2025, 7, 4)) == summer
