"""Root conftest for pytest configuration."""

import os

import pytest


def pytest_configure(config):
    """Point Django at the test settings unless the caller chose others."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gamesync_platform.test_settings")


@pytest.fixture(autouse=True)
def clear_cache():
    """Task locks live in the cache; start every test without any."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def push_disabled_by_default():
    """Firebase stays uninitialized unless a test opts in with ``push_enabled``."""
    from scheduling.services.fcm_service import FCMService

    original = FCMService._initialized
    FCMService._initialized = False
    yield
    FCMService._initialized = original
