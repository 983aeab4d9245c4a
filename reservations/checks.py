"""
System checks run by `manage.py check` and at server startup.
"""

from django.core.checks import Error, Tags, register
from django.db import DatabaseError


@register(Tags.database)
def check_default_seasons(app_configs, databases=None, **kwargs):
    """Every property needs a default season (reservations.E001)."""
    from reservations.services.seasons import properties_missing_default_season

    if not databases:
        return []

    try:
        missing = properties_missing_default_season()
    except DatabaseError:
        # Tables not migrated yet
        return []

    return [
        Error(
            f"No default season configured for property '{code}'.",
            hint="Mark exactly one Season of this property as the default.",
            obj=code,
            id='reservations.E001',
        )
        for code in missing
    ]
