"""
Management command to verify reservation configuration.

Usage:
    python manage.py check_booking_config
    python manage.py check_booking_config --property tahoe
"""

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Check that every property has a default season, pricing rules and refund policies'

    def add_arguments(self, parser):
        parser.add_argument(
            '--property',
            type=str,
            help='Only check this property code'
        )

    def handle(self, *args, **options):
        from django.db.models import Q

        from reservations.conf import get_property_setting
        from reservations.models import Property, PricingRule, RefundPolicy, Season

        codes = [options['property']] if options['property'] else Property.values
        problems = 0

        for code in codes:
            if code not in Property.values:
                raise CommandError(f"Unknown property: {code}")

            self.stdout.write(f"\n{Property(code).label}")

            if Season.objects.filter(cabin=code, is_default=True).exists():
                self.stdout.write(self.style.SUCCESS("  - default season"))
            else:
                problems += 1
                self.stdout.write(self.style.ERROR("  - MISSING: default season"))

            modes = get_property_setting('ALLOWED_BOOKING_MODES', code) or []
            for mode in modes:
                has_rule = PricingRule.objects.filter(booking_mode=mode).filter(
                    Q(cabin=code) | Q(room__cabin=code) | Q(cabin__isnull=True)
                ).exists()
                if has_rule:
                    self.stdout.write(self.style.SUCCESS(f"  - {mode} pricing rules"))
                else:
                    problems += 1
                    self.stdout.write(self.style.ERROR(f"  - MISSING: {mode} pricing rules"))

                if RefundPolicy.objects.filter(cabin=code, booking_mode=mode, is_active=True).exists():
                    self.stdout.write(self.style.SUCCESS(f"  - {mode} refund policy"))
                else:
                    problems += 1
                    self.stdout.write(self.style.ERROR(f"  - MISSING: active {mode} refund policy"))

        if problems:
            raise CommandError(f"{problems} configuration problem(s) found")

        self.stdout.write(self.style.SUCCESS("\nConfiguration complete"))
