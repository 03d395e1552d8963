"""
Payment admin configuration.

Registers payment domain models with the Django admin. State fields are
FSM-protected and the webhook ledger is written only by the webhook
pipeline, so these views are read-mostly.
"""

from django.contrib import admin

from payments.models import (
    Commission,
    Payment,
    ProviderCustomer,
    Refund,
    WebhookDelivery,
    WebhookEvent,
)

__all__ = [
    "CommissionAdmin",
    "PaymentAdmin",
    "ProviderCustomerAdmin",
    "RefundAdmin",
    "WebhookEventAdmin",
]


class ReadOnlyAdminMixin:
    """Admin views that never add, change or delete rows."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Payment.

    State changes come from webhooks through the transition engine.
    """

    list_display = [
        "provider_transaction_id",
        "booking",
        "amount",
        "currency",
        "status",
        "error_code",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "provider", "currency", "created_at"]
    search_fields = [
        "id",
        "provider_transaction_id",
        "provider_order_id",
        "booking__confirmation_number",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "booking", "status")}),
        ("Amount", {"fields": ("amount", "currency")}),
        (
            "Provider",
            {
                "fields": (
                    "provider",
                    "provider_transaction_id",
                    "provider_order_id",
                    "error_code",
                    "error_message",
                    "processed_at",
                ),
            },
        ),
        ("Metadata", {"fields": ("metadata",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(Refund)
class RefundAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "provider_transaction_id",
        "payment",
        "amount",
        "currency",
        "status",
        "processed_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "provider_transaction_id", "payment__provider_transaction_id"]
    ordering = ["-created_at"]


@admin.register(Commission)
class CommissionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Commission amounts with the hotel's share."""

    list_display = [
        "payment",
        "booking",
        "base_amount",
        "rate",
        "commission_amount",
        "reversed_amount",
        "hotel_earnings",
        "currency",
        "status",
        "payout_reference",
    ]
    list_filter = ["status", "currency"]
    search_fields = ["id", "payout_reference", "payment__provider_transaction_id"]
    ordering = ["-created_at"]


class WebhookDeliveryInline(admin.TabularInline):
    model = WebhookDelivery
    extra = 0
    can_delete = False
    fields = ["created_at", "outcome", "latency_ms"]
    readonly_fields = fields
    ordering = ["created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for the webhook ledger.

    Shows every provider event id once, with its deliveries inline.
    """

    list_display = [
        "event_id",
        "provider",
        "event_type",
        "routed_as",
        "outcome",
        "outcome_detail",
        "created_at",
    ]
    list_filter = ["provider", "outcome", "event_type", "created_at"]
    search_fields = ["event_id", "event_type"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [WebhookDeliveryInline]


@admin.register(ProviderCustomer)
class ProviderCustomerAdmin(admin.ModelAdmin):
    list_display = ["provider_customer_id", "provider", "email", "given_name", "family_name"]
    list_filter = ["provider"]
    search_fields = ["provider_customer_id", "email"]
