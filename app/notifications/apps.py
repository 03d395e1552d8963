"""Django app configuration for booking notifications."""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """Email notifications sent after payment events."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Booking Notifications"
