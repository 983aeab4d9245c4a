"""
Engine settings.

Reads the project's RESERVATIONS dict on every access so settings overrides
(tests, per-process reconfiguration) take effect without a restart.
"""

from django.conf import settings

DEFAULTS = {
    'CURRENCY': 'USD',
    'PROPERTY_TIMEZONES': {},
    'DEFAULT_MAX_NIGHTS': {},
    'MODE_GUEST_LIMITS': {},
    'ALLOWED_BOOKING_MODES': {},
    'DAY_USE_CAPACITY': {},
    'REQUIRE_FULL_WEEKEND': {},
    'ONE_ACTIVE_BOOKING_PER_USER': {},
    'LOCK_RETRIES': 3,
    'CACHE_ALIAS': 'default',
    'CACHE_MAX_AGE': 300,
}


def get_setting(name):
    """Return RESERVATIONS[name], falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown reservations setting: {name}")
    overrides = getattr(settings, 'RESERVATIONS', {}) or {}
    return overrides.get(name, DEFAULTS[name])


def get_property_setting(name, property_code, default=None):
    """Return the per-property entry of a dict-valued setting."""
    return get_setting(name).get(str(property_code), default)


def guest_limits(property_code, booking_mode):
    """
    Return (min, max) guest limits for a property/mode pair.

    Missing configuration means a floor of 1 and no ceiling.
    """
    limits = get_property_setting('MODE_GUEST_LIMITS', property_code, {}) or {}
    mode_limits = limits.get(str(booking_mode)) or {}
    return mode_limits.get('min', 1), mode_limits.get('max')
