"""
Project-wide pytest configuration.

Sets test-only Django settings, tags tests by module name and keeps
circuit breaker state from leaking between tests. App fixtures live in
each app's tests/conftest.py.
"""

import os
from pathlib import Path

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Module name -> marker; unlisted modules are integration tests.
MARKERS_BY_MODULE = {
    "test_integration.py": "e2e",
    "test_models.py": "unit",
    "test_signature.py": "unit",
    "test_envelope.py": "unit",
    "test_router.py": "unit",
    "test_state_transitions.py": "unit",
    "test_message_templates.py": "unit",
}
SUITE_MARKERS = {"unit", "integration", "e2e"}


def pytest_configure():
    django.setup()

    from django.conf import settings

    settings.RESILIENCE_BASE_DELAY_SECONDS = 0
    settings.RESILIENCE_RETRY_JITTER = False
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


def pytest_collection_modifyitems(items):
    """Add unit/integration/e2e unless the test already carries one."""
    for item in items:
        if SUITE_MARKERS & {m.name for m in item.iter_markers()}:
            continue
        marker = MARKERS_BY_MODULE.get(Path(str(item.fspath)).name, "integration")
        item.add_marker(getattr(pytest.mark, marker))


@pytest.fixture(autouse=True)
def clear_circuit_state():
    """Breaker records live in the cache; every test starts with closed circuits."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()
