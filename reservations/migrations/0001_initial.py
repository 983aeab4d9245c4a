from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import reservations.models.bookings


PROPERTY_CHOICES = [('tahoe', 'Tahoe'), ('clear_lake', 'Clear Lake')]
BOOKING_MODE_CHOICES = [('room', 'Room'), ('day', 'Day use'), ('buyout', 'Full buyout')]
PRICE_UNIT_CHOICES = [
    ('per_person_per_night', 'Per person per night'),
    ('per_guest_per_day', 'Per guest per day'),
    ('buyout_fixed', 'Buyout (fixed per night)'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RoomCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('notes', models.TextField(blank=True, default='')),
            ],
            options={
                'verbose_name': 'Room Category',
                'verbose_name_plural': 'Room Categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Season',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, db_index=True, help_text='Property this season belongs to', max_length=20, verbose_name='property')),
                ('name', models.CharField(help_text='e.g., Winter, Summer', max_length=100)),
                ('description', models.TextField(blank=True, default='', max_length=1000)),
                ('start_date', models.DateField(help_text='First day (year is ignored)')),
                ('end_date', models.DateField(help_text='Last day, inclusive (year is ignored)')),
                ('is_default', models.BooleanField(default=False, help_text='Used when no other season matches a date')),
                ('advance_booking_days', models.PositiveIntegerField(blank=True, help_text='How many days ahead check-in may be booked (blank or 0 = unlimited)', null=True)),
                ('max_nights', models.PositiveIntegerField(blank=True, help_text='Longest stay allowed (blank = property default)', null=True)),
                ('buyout_allowed', models.BooleanField(default=True, help_text='Whether full-property buyouts may start in this season')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Season',
                'verbose_name_plural': 'Seasons',
                'ordering': ['cabin', 'start_date', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, db_index=True, max_length=20, verbose_name='property')),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='', max_length=1000)),
                ('capacity_max', models.PositiveIntegerField(help_text='Hard cap on guests', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('min_billable_occupancy', models.PositiveIntegerField(default=1, help_text='Minimum guests charged for, regardless of headcount', validators=[django.core.validators.MinValueValidator(1)])),
                ('single_beds', models.PositiveIntegerField(default=0)),
                ('queen_beds', models.PositiveIntegerField(default=0)),
                ('king_beds', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('default_season', models.ForeignKey(blank=True, help_text='Fallback season for this room', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='default_rooms', to='reservations.season')),
                ('room_category', models.ForeignKey(blank=True, help_text='Category used for category-level pricing', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='rooms', to='reservations.roomcategory')),
            ],
            options={
                'verbose_name': 'Room',
                'verbose_name_plural': 'Rooms',
                'ordering': ['cabin', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Blackout',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, db_index=True, max_length=20, verbose_name='property')),
                ('reason', models.CharField(blank=True, default='', max_length=255)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
            ],
            options={
                'verbose_name': 'Blackout',
                'verbose_name_plural': 'Blackouts',
                'ordering': ['cabin', 'start_date'],
            },
        ),
        migrations.CreateModel(
            name='PricingRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_mode', models.CharField(choices=BOOKING_MODE_CHOICES, max_length=10)),
                ('price_unit', models.CharField(choices=PRICE_UNIT_CHOICES, max_length=30)),
                ('cabin', models.CharField(blank=True, choices=PROPERTY_CHOICES, help_text='Blank applies to every property', max_length=20, null=True, verbose_name='property')),
                ('amount', models.DecimalField(decimal_places=2, help_text='Price per unit', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('children_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Discounted price per child (blank = adult price)', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('room', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='pricing_rules', to='reservations.room')),
                ('room_category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='pricing_rules', to='reservations.roomcategory')),
                ('season', models.ForeignKey(blank=True, help_text='Blank applies in every season', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='pricing_rules', to='reservations.season')),
            ],
            options={
                'verbose_name': 'Pricing Rule',
                'verbose_name_plural': 'Pricing Rules',
                'ordering': ['cabin', 'booking_mode', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('booking_mode', 'price_unit', 'cabin', 'room', 'room_category', 'season'), name='uq_pricing_rule_scope', nulls_distinct=False),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_id', models.CharField(default=reservations.models.bookings.generate_reference_id, max_length=32, unique=True)),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, db_index=True, max_length=20, verbose_name='property')),
                ('booking_mode', models.CharField(choices=BOOKING_MODE_CHOICES, max_length=10)),
                ('checkin_date', models.DateField(db_index=True)),
                ('checkout_date', models.DateField(db_index=True)),
                ('guests_count', models.PositiveIntegerField(default=1)),
                ('children_count', models.PositiveIntegerField(default=0)),
                ('user_id', models.CharField(db_index=True, help_text='Member identifier', max_length=64)),
                ('total_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=10)),
                ('validation_skipped', models.BooleanField(default=False, help_text='Created through the admin override without rule checks')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('room', models.ForeignKey(blank=True, help_text='Required for room bookings, blank otherwise', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='reservations.room')),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['cabin', 'status', 'checkin_date'], name='booking_cabin_status_ci_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('checkin_date__lt', models.F('checkout_date'))), name='booking_checkin_before_checkout'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookingLock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, max_length=20, verbose_name='property')),
                ('scope', models.CharField(max_length=40)),
            ],
            options={
                'verbose_name': 'Booking Lock',
                'verbose_name_plural': 'Booking Locks',
                'constraints': [
                    models.UniqueConstraint(fields=('cabin', 'scope'), name='uq_booking_lock_scope'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_id', models.CharField(help_text='Gateway payment reference', max_length=64, unique=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('captured_at', models.DateTimeField()),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='reservations.booking')),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'ordering': ['-captured_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='RefundPolicy',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('cabin', models.CharField(choices=PROPERTY_CHOICES, max_length=20, verbose_name='property')),
                ('booking_mode', models.CharField(choices=BOOKING_MODE_CHOICES, max_length=10)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('requires_manual_review', models.BooleanField(default=False, help_text='Send every non-zero refund to human review')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Refund Policy',
                'verbose_name_plural': 'Refund Policies',
                'ordering': ['cabin', 'booking_mode', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='RefundPolicyRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('days_before_checkin', models.PositiveIntegerField()),
                ('refund_percentage', models.DecimalField(decimal_places=2, max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('priority', models.IntegerField(default=0, help_text='Higher wins when thresholds tie')),
                ('description', models.CharField(blank=True, default='', max_length=500)),
                ('refund_policy', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rules', to='reservations.refundpolicy')),
            ],
            options={
                'verbose_name': 'Refund Policy Rule',
                'verbose_name_plural': 'Refund Policy Rules',
                'ordering': ['refund_policy', 'days_before_checkin', '-priority', 'id'],
            },
        ),
        migrations.CreateModel(
            name='PendingRefund',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('policy_refund_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('applied_rule_days_before_checkin', models.IntegerField(blank=True, null=True)),
                ('applied_rule_refund_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=10)),
                ('admin_refund_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Amount actually approved (blank = policy amount)', max_digits=10, null=True)),
                ('admin_notes', models.TextField(blank=True, default='')),
                ('reviewed_by', models.CharField(blank=True, default='', max_length=255)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pending_refunds', to='reservations.booking')),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pending_refunds', to='reservations.payment')),
            ],
            options={
                'verbose_name': 'Pending Refund',
                'verbose_name_plural': 'Pending Refunds',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='CancellationRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('idempotency_key', models.CharField(max_length=255, unique=True)),
                ('refund_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('refund_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('days_before_checkin', models.IntegerField()),
                ('disposition', models.CharField(choices=[('auto', 'Auto-processed'), ('pending_review', 'Pending review'), ('none', 'No refund')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('applied_rule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='reservations.refundpolicyrule')),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='cancellations', to='reservations.booking')),
                ('pending_refund', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='reservations.pendingrefund')),
            ],
            options={
                'verbose_name': 'Cancellation Record',
                'verbose_name_plural': 'Cancellation Records',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
