"""
Django admin configuration for booking models.

Booking status is FSM-protected and history is append-only, so both are
read-only here; changes go through the payment reconciliation services.
"""

from django.contrib import admin

from bookings.models import Booking, BookingStatusHistory


class BookingStatusHistoryInline(admin.TabularInline):
    """Status history shown on the booking page."""

    model = BookingStatusHistory
    extra = 0
    can_delete = False
    fields = ["created_at", "previous_status", "new_status", "reason", "actor"]
    readonly_fields = fields
    ordering = ["created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin view of bookings with their status trail."""

    list_display = [
        "confirmation_number",
        "guest_email",
        "hotel_id",
        "check_in",
        "check_out",
        "total_amount",
        "currency",
        "status",
        "payment_status",
    ]
    list_filter = ["status", "payment_status", "currency"]
    search_fields = ["confirmation_number", "guest_email", "hotel_id"]
    readonly_fields = ["status", "payment_status", "cancelled_at", "created_at", "updated_at"]
    inlines = [BookingStatusHistoryInline]


@admin.register(BookingStatusHistory)
class BookingStatusHistoryAdmin(admin.ModelAdmin):
    """Read-only audit trail."""

    list_display = ["booking", "previous_status", "new_status", "actor", "created_at"]
    list_filter = ["new_status", "actor"]
    search_fields = ["booking__confirmation_number", "reason"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
