"""Django admin configuration for notification deliveries."""

from django.contrib import admin

from notifications.models import NotificationDelivery


@admin.register(NotificationDelivery)
class NotificationDeliveryAdmin(admin.ModelAdmin):
    """Read-only list of sent, skipped and failed notifications."""

    list_display = ["kind", "booking", "recipient", "channel", "status", "created_at"]
    list_filter = ["kind", "channel", "status"]
    search_fields = ["recipient", "booking__confirmation_number"]
    readonly_fields = [
        "kind",
        "booking",
        "recipient",
        "subject",
        "channel",
        "status",
        "failure_reason",
        "created_at",
    ]

    def has_add_permission(self, request):
        return False
