"""Pytest fixtures for orderflow tests."""

from collections.abc import Iterator

import pytest

from orderflow.config import Settings, get_settings
from orderflow.commit import OrderCommitter
from orderflow.notify import BackgroundNotifier, DeliveryPolicy, MemoryDispatcher
from orderflow.stores import MemoryCouponStore, MemoryProfileStore, Stores

from factories import NOW, USER, FlakyCartStore, FlakyOrderStore, line


@pytest.fixture
def settings() -> Settings:
    return Settings(
        store_timeout_seconds=1.0,
        notification_retry_times=2,
        notification_retry_delay_seconds=0.0,
        notification_timeout_seconds=1.0,
    )


@pytest.fixture
def env_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """Set ORDERFLOW_* variables through the returned monkeypatch; get_settings() rereads them."""
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


@pytest.fixture
def stores() -> Stores:
    return Stores(
        carts=FlakyCartStore(),
        profiles=MemoryProfileStore(),
        coupons=MemoryCouponStore(),
        orders=FlakyOrderStore(),
    )


@pytest.fixture
def dispatcher() -> MemoryDispatcher:
    return MemoryDispatcher()


@pytest.fixture
def notifier(dispatcher: MemoryDispatcher, settings: Settings) -> BackgroundNotifier:
    return BackgroundNotifier(dispatcher, DeliveryPolicy.from_settings(settings))


@pytest.fixture
def committer(stores: Stores, notifier: BackgroundNotifier, settings: Settings) -> OrderCommitter:
    return OrderCommitter(stores, notifier, settings=settings, clock=lambda: NOW)


@pytest.fixture
def cart(stores: Stores) -> FlakyCartStore:
    """2 × 10.000 + 1 × 5.500 = 25.500"""
    stores.carts.put(USER, line(quantity=2), line("musk", 1, "5.500", "White Musk", None))
    return stores.carts
