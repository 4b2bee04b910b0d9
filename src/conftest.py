"""Shared pytest fixtures for the property inventory tests."""

import pytest

from django.conf import settings

# Run Celery tasks synchronously in tests
settings.CELERY_TASK_ALWAYS_EAGER = True
settings.CELERY_TASK_EAGER_PROPAGATES = True

# Use in-memory cache for tests (avoids Redis connection errors)
settings.CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Use in-memory channel layer for tests (avoids Redis for WS tests)
settings.CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
settings.PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]
settings.PROPERTY_CODE_PREFIX = "PROP"


@pytest.fixture(autouse=True)
def _clear_cache():
    """Clear the in-memory cache before each test."""
    from django.core.cache import cache

    cache.clear()


@pytest.fixture
def password():
    return "testpass123!"


@pytest.fixture
def admin_user(db, password):
    from inventory.factories import UserFactory

    return UserFactory(
        username="admin",
        email="admin@example.com",
        display_name="Admin User",
        user_type="admin",
        password=password,
    )


@pytest.fixture
def mobile_user(db, password):
    from inventory.factories import UserFactory

    return UserFactory(
        username="fielduser",
        email="field@example.com",
        display_name="Field User",
        user_type="mobile",
        password=password,
    )


@pytest.fixture
def unit(db):
    from inventory.factories import InventoryUnitFactory

    return InventoryUnitFactory(
        property_code="PROP-001",
        tag_number="SN-001",
        name="Projector",
    )


@pytest.fixture
def borrowed_unit(db):
    from inventory.factories import BorrowedUnitFactory

    return BorrowedUnitFactory(
        property_code="PROP-002",
        name="Laptop",
        borrower_name="Alice",
    )


@pytest.fixture
def family(db):
    """Three units sharing one image URL, one of them borrowed."""
    from inventory.factories import InventoryUnitFactory

    shared = {
        "name": "Office Chair",
        "category": "Furniture",
        "location": "Room 101",
        "image_url": "https://img.example.com/chair.png",
    }
    return [
        InventoryUnitFactory(
            property_code="PROP-010-001", tag_number="CH-001", **shared
        ),
        InventoryUnitFactory(
            property_code="PROP-010-002",
            tag_number="CH-002",
            status="InUse",
            borrower_name="Bob",
            **shared,
        ),
        InventoryUnitFactory(
            property_code="PROP-010-003",
            tag_number="CH-003",
            status="Damaged",
            **shared,
        ),
    ]
