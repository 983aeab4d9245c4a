from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'reservations'
    verbose_name = 'Cabin Reservations'

    def ready(self):
        """Import signals and system checks when app is ready."""
        import reservations.signals  # noqa
        import reservations.checks  # noqa
