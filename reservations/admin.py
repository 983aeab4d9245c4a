"""
Reservations admin configuration.

Configuration (seasons, rooms, pricing rules, refund policies, blackouts)
is edited here. Bookings are read-mostly: they are never deleted, and
pending refunds are approved or rejected through admin actions.
"""

from django.contrib import admin, messages

from .exceptions import RefundReviewError
from .models import (
    Season, RoomCategory, Room, Blackout, PricingRule,
    Booking, Payment, RefundPolicy, RefundPolicyRule, PendingRefund, CancellationRecord,
)
from .services import approve_pending_refund, reject_pending_refund


# =============================================================================
# SEASONS & BLACKOUTS
# =============================================================================

@admin.register(Season)
class SeasonAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'cabin', 'start_date', 'end_date', 'is_default',
        'advance_booking_days', 'max_nights', 'buyout_allowed'
    ]
    list_editable = ['advance_booking_days', 'max_nights', 'buyout_allowed']
    list_filter = ['cabin', 'is_default']
    search_fields = ['name']
    ordering = ['cabin', 'start_date']

    fieldsets = (
        (None, {
            'fields': ('cabin', 'name', 'description', 'is_default')
        }),
        ('Date Range', {
            'fields': ('start_date', 'end_date'),
            'description': 'Only month and day are used; the window repeats every year.'
        }),
        ('Booking Limits', {
            'fields': ('advance_booking_days', 'max_nights', 'buyout_allowed'),
        }),
    )


@admin.register(Blackout)
class BlackoutAdmin(admin.ModelAdmin):
    list_display = ['cabin', 'start_date', 'end_date', 'reason']
    list_filter = ['cabin']
    ordering = ['cabin', 'start_date']


# =============================================================================
# ROOMS
# =============================================================================

class RoomInline(admin.TabularInline):
    """Inline for rooms within a category."""
    model = Room
    extra = 0
    fields = ['name', 'cabin', 'capacity_max', 'min_billable_occupancy', 'is_active']
    show_change_link = True


@admin.register(RoomCategory)
class RoomCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'room_count']
    search_fields = ['name']
    inlines = [RoomInline]

    def room_count(self, obj):
        return obj.rooms.count()
    room_count.short_description = 'Rooms'


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'cabin', 'room_category', 'capacity_max',
        'min_billable_occupancy', 'beds_display', 'is_active'
    ]
    list_editable = ['is_active']
    list_filter = ['cabin', 'room_category', 'is_active']
    search_fields = ['name']
    ordering = ['cabin', 'name']

    fieldsets = (
        (None, {
            'fields': ('cabin', 'name', 'description', 'room_category', 'default_season', 'is_active')
        }),
        ('Occupancy', {
            'fields': ('capacity_max', 'min_billable_occupancy'),
            'description': 'Guests below the minimum billable occupancy are still charged at the minimum.'
        }),
        ('Beds', {
            'fields': ('single_beds', 'queen_beds', 'king_beds'),
        }),
    )

    def beds_display(self, obj):
        return f"{obj.single_beds}S / {obj.queen_beds}Q / {obj.king_beds}K"
    beds_display.short_description = 'Beds'

    def has_delete_permission(self, request, obj=None):
        # Rooms referenced by bookings are deactivated instead
        if obj is not None and obj.bookings.exists():
            return False
        return super().has_delete_permission(request, obj)


# =============================================================================
# PRICING
# =============================================================================

@admin.register(PricingRule)
class PricingRuleAdmin(admin.ModelAdmin):
    list_display = [
        'booking_mode', 'price_unit', 'scope_display', 'season',
        'amount', 'children_amount'
    ]
    list_editable = ['amount', 'children_amount']
    list_filter = ['booking_mode', 'cabin', 'season', 'room_category']

    fieldsets = (
        (None, {
            'fields': ('booking_mode', 'price_unit', 'amount', 'children_amount')
        }),
        ('Scope', {
            'fields': ('cabin', 'room', 'room_category', 'season'),
            'description': '''
                Blank fields match anything. The most specific rule wins:<br>
                • <strong>Room</strong> beats <strong>Room Category</strong> beats <strong>Property</strong><br>
                • at the same level, a season rule beats an all-season rule
            '''
        }),
    )

    def scope_display(self, obj):
        return obj.scope_display()
    scope_display.short_description = 'Scope'


# =============================================================================
# REFUND POLICIES
# =============================================================================

class RefundPolicyRuleInline(admin.TabularInline):
    model = RefundPolicyRule
    extra = 1
    fields = ['days_before_checkin', 'refund_percentage', 'priority', 'description']


@admin.register(RefundPolicy)
class RefundPolicyAdmin(admin.ModelAdmin):
    list_display = ['name', 'cabin', 'booking_mode', 'is_active', 'requires_manual_review', 'rule_count']
    list_filter = ['cabin', 'booking_mode', 'is_active']
    inlines = [RefundPolicyRuleInline]

    def rule_count(self, obj):
        return obj.rules.count()
    rule_count.short_description = 'Rules'


# =============================================================================
# BOOKINGS
# =============================================================================

class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['reference_id', 'amount', 'currency', 'captured_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        'reference_id', 'cabin', 'booking_mode', 'room', 'checkin_date', 'checkout_date',
        'guests_count', 'children_count', 'total_price', 'status', 'validation_skipped'
    ]
    list_filter = ['cabin', 'booking_mode', 'status', 'validation_skipped']
    search_fields = ['reference_id', 'user_id']
    date_hierarchy = 'checkin_date'
    readonly_fields = ['reference_id', 'total_price', 'currency', 'validation_skipped',
                       'cancelled_at', 'created_at', 'updated_at']
    inlines = [PaymentInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CancellationRecord)
class CancellationRecordAdmin(admin.ModelAdmin):
    list_display = ['idempotency_key', 'booking', 'refund_amount', 'refund_percentage',
                    'days_before_checkin', 'disposition', 'created_at']
    list_filter = ['disposition']
    search_fields = ['idempotency_key', 'booking__reference_id']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PendingRefund)
class PendingRefundAdmin(admin.ModelAdmin):
    list_display = [
        'booking', 'policy_refund_amount', 'applied_rule_refund_percentage',
        'status', 'admin_refund_amount', 'reviewed_by', 'reviewed_at'
    ]
    list_filter = ['status']
    search_fields = ['booking__reference_id']
    readonly_fields = [
        'booking', 'payment', 'policy_refund_amount', 'applied_rule_days_before_checkin',
        'applied_rule_refund_percentage', 'cancellation_reason', 'status', 'reviewed_by', 'reviewed_at'
    ]
    actions = ['approve_selected', 'reject_selected']

    def approve_selected(self, request, queryset):
        """Approve at the policy amount (or the entered admin amount)."""
        approved = 0
        for pending_refund in queryset:
            try:
                approve_pending_refund(
                    pending_refund.id,
                    reviewed_by=request.user.get_username(),
                    amount=pending_refund.admin_refund_amount,
                    notes=pending_refund.admin_notes,
                )
                approved += 1
            except RefundReviewError as e:
                self.message_user(request, str(e), messages.WARNING)
        self.message_user(request, f"Approved {approved} refund(s)", messages.SUCCESS)
    approve_selected.short_description = "Approve selected refunds"

    def reject_selected(self, request, queryset):
        rejected = 0
        for pending_refund in queryset:
            try:
                reject_pending_refund(
                    pending_refund.id,
                    reviewed_by=request.user.get_username(),
                    notes=pending_refund.admin_notes,
                )
                rejected += 1
            except RefundReviewError as e:
                self.message_user(request, str(e), messages.WARNING)
        self.message_user(request, f"Rejected {rejected} refund(s)", messages.SUCCESS)
    reject_selected.short_description = "Reject selected refunds"
