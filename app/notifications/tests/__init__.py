"""
Tests for the notifications app.

This package contains test modules for:
- test_models.py: NotificationDelivery model tests
- test_message_templates.py: Subject/body rendering
- test_services.py: NotificationService tests
- test_tasks.py: Deferred delivery task tests

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_services.py
"""
