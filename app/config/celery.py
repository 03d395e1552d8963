"""
Celery configuration for the Django application.

Celery carries the fallback path for post-commit side effects: when an
immediate notification send fails, the dispatcher enqueues the same
notification for a worker to retry with backoff.

Tasks are auto-discovered from all installed Django apps.

Usage:
    from notifications.tasks import send_notification

    send_notification.delay("booking_confirmed", str(booking.id), context)

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
