"""Pytest configuration and shared fixtures."""

import itertools
from typing import Callable
from unittest.mock import Mock

import pytest

from sigmon_app.config.defaults import NotificationParams
from sigmon_app.delivery.base import BaseNotifier, DeliveryResult, DeliveryStatus
from sigmon_app.notifications.manager import NotificationManager
from sigmon_app.notifications.models import Preferences

from helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> Mock:
    """Notifier mock that accepts every delivery."""
    mock = Mock(spec=BaseNotifier)
    mock.name = "mock"
    mock.deliver_with_retry.return_value = DeliveryResult(status=DeliveryStatus.SUCCESS)
    mock.health_check.return_value = True
    mock.send_test_message.return_value = True
    return mock


@pytest.fixture
def failing_notifier() -> Mock:
    """Notifier mock whose deliveries exhaust their retries."""
    mock = Mock(spec=BaseNotifier)
    mock.name = "broken"
    mock.deliver_with_retry.return_value = DeliveryResult(
        status=DeliveryStatus.DEAD_LETTER,
        message="Max retries exceeded: connection refused",
        attempt_count=4,
    )
    return mock


@pytest.fixture
def id_factory() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"n-{next(counter)}"


@pytest.fixture
def manager_factory(clock, notifier, id_factory):
    """Build a NotificationManager with a fake clock and mock notifier."""

    def factory(symbols=("XAU/USD", "EUR/USD"), notifier_override=None, store=None, **params):
        return NotificationManager(
            preferences=Preferences(active_symbols=frozenset(symbols)),
            params=NotificationParams(retry_delay_seconds=0.0, **params),
            notifier=notifier_override or notifier,
            store=store,
            clock=clock,
            id_factory=id_factory,
        )

    return factory


@pytest.fixture
def manager(manager_factory) -> NotificationManager:
    return manager_factory()
