"""
Notifications app for booking emails.

This app provides:
- NotificationService for rendering and emailing booking notifications
- send_notification Celery task used as the deferred delivery path
- NotificationDelivery records of every final send result

Usage:
    from notifications.services import NotificationService

    NotificationService.send("booking_confirmed", str(booking.id), {"amount": "450.00"})
"""
