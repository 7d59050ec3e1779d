"""
Pytest fixtures for Stockwatch tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from stockwatch import context
from stockwatch.adapters import reset_detection_backend
from stockwatch.adapters.noop import NoopDetectionBackend
from stockwatch.exceptions import DetectionUnavailableError
from stockwatch.services.catalog import ProductCatalog
from stockwatch.services.detection import DetectionTrigger


User = get_user_model()


@pytest.fixture(autouse=True)
def _isolated_state():
    """Fresh backend cache and empty context for every test."""
    reset_detection_backend()
    context.teardown()
    yield
    reset_detection_backend()
    context.teardown()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='clerk',
        password='testpass123'
    )


@pytest.fixture
def product(db):
    """Product with plenty of stock."""
    return ProductCatalog.create_product(
        'Espresso Beans',
        quantity=100,
        price=Decimal('12.50'),
        minimum_stock=10,
        category='Coffee',
    )


@pytest.fixture
def scarce_product(db):
    """Product with 5 units left."""
    return ProductCatalog.create_product(
        'Oat Milk',
        quantity=5,
        price=Decimal('3.20'),
        minimum_stock=10,
        category='Dairy',
    )


class RecordingSink:
    """Notification sink that remembers what it was told."""

    def __init__(self):
        self.calls = []

    def __call__(self, level, message, **context):
        self.calls.append((level, message, context))

    @property
    def levels(self):
        return [level for level, _, _ in self.calls]


@pytest.fixture
def sink():
    return RecordingSink()


class FailingBackend(NoopDetectionBackend):
    """Backend whose chosen passes are unreachable."""

    def __init__(self, failing=('theft',)):
        self.failing = failing

    def run_general(self):
        if 'general' in self.failing:
            raise DetectionUnavailableError('DETECTION_TIMEOUT', detection_pass='general')
        return super().run_general()

    def run_theft(self):
        if 'theft' in self.failing:
            raise DetectionUnavailableError(detection_pass='theft', status=503)
        return super().run_theft()


@pytest.fixture
def quiet_detection():
    """Detection that always succeeds and finds nothing."""
    return DetectionTrigger(NoopDetectionBackend())


@pytest.fixture
def flaky_detection():
    """Detection whose theft pass is down."""
    return DetectionTrigger(FailingBackend())
