"""
Test Suite Configuration
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient

from src.auth.principal import Principal, StaticPrincipalProvider
from src.config import Settings
from src.config.settings import SecuritySettings, StoreSettings
from src.domain.errors import OrderNotFound, TransportError
from src.domain.models import Order, OrderStatus
from src.serving.api.main import create_api_app
from src.store.interfaces import OrderStore
from src.store.memory import InMemoryOrderStore
from src.streaming.subscriptions import OrderSubscriptionManager

API_KEY = "test-operator-key"


# =============================================================================
# FAKE STORE
# =============================================================================

@dataclass
class ListenerHandle:
    """A live query registered with ManualOrderStore"""
    status: Optional[OrderStatus]
    on_snapshot: Callable
    on_error: Callable
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def emit(self, orders: List[Order]) -> None:
        # Delivers even after cancel, like a snapshot already in flight
        self.on_snapshot(list(orders))

    def fail(self, message: str = "stream reset") -> None:
        self.on_error(TransportError(message))


class ManualOrderStore(OrderStore):
    """Order store whose live queries are driven by the test"""

    def __init__(self, orders: Optional[List[Order]] = None):
        self.orders = {o.id: o for o in orders or []}
        self.listeners: List[ListenerHandle] = []

    def listen(self, status, on_snapshot, on_error):
        handle = ListenerHandle(status, on_snapshot, on_error)
        self.listeners.append(handle)
        return handle.cancel

    def fetch(self, status=None):
        return [o for o in self.orders.values() if status is None or o.status == status.value]

    def get(self, order_id):
        if order_id not in self.orders:
            raise OrderNotFound(order_id)
        return self.orders[order_id]

    def update_status(self, order_id, status):
        self.orders[order_id] = self.get(order_id).model_copy(update={"status": status.value})

    def ping(self):
        return True


# =============================================================================
# FIXTURES
# =============================================================================

def make_order(order_id: str, amount: float, created_at: Optional[datetime], status: str = "completed") -> Order:
    return Order(id=order_id, total_amount=amount, created_at=created_at, status=status)


@pytest.fixture
def sample_orders() -> List[Order]:
    """Three completed orders across January and February 2024"""
    return [
        make_order("ord-1", 1000, datetime(2024, 1, 5, 10, 0)),
        make_order("ord-2", 500, datetime(2024, 1, 20, 14, 30)),
        make_order("ord-3", 300, datetime(2024, 2, 1, 9, 15)),
    ]


@pytest.fixture
def mixed_status_orders() -> List[Order]:
    """Orders across every status, one without a creation timestamp"""
    return [
        Order.from_document("p-1", {
            "orderId": "LD-000101",
            "totalAmount": 4200,
            "createdAt": datetime(2024, 3, 2, 8, 0),
            "status": "processing",
            "baskets": [
                {"name": "Shirt", "price": 1500, "quantity": 2, "fold": True, "ironing": False},
            ],
            "foldFees": 400,
            "ironingFees": 0,
            "transportationFees": 800,
            "shippingAddress": {"addressString": "KG 11 Ave", "latitude": -1.95, "longitude": 30.06},
            "userEmail": "client@example.com",
            "userId": "user-1",
        }),
        make_order("p-2", 1000, None, status="processing"),
        make_order("c-1", 2500, datetime(2024, 3, 9, 12, 0), status="completed"),
        make_order("c-2", 3500, datetime(2024, 4, 1, 12, 0), status="completed"),
        make_order("x-1", 900, datetime(2024, 3, 15, 12, 0), status="cancelled"),
    ]


@pytest.fixture
def principals() -> StaticPrincipalProvider:
    return StaticPrincipalProvider(Principal(uid="operator-1", email="ops@example.com"))


@pytest.fixture
def manual_store() -> ManualOrderStore:
    return ManualOrderStore()


@pytest.fixture
def manager(manual_store, principals) -> OrderSubscriptionManager:
    return OrderSubscriptionManager(manual_store, principals)


@pytest.fixture
def memory_store(mixed_status_orders) -> InMemoryOrderStore:
    return InMemoryOrderStore(mixed_status_orders)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        store=StoreSettings(backend="memory"),
        security=SecuritySettings(operator_api_keys={API_KEY: "operator-1"}),
    )


@pytest.fixture
def client(test_settings, memory_store):
    """API client serving from the in-memory store"""
    app = create_api_app(test_settings, store=memory_store, configure_logs=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict:
    return {"X-API-Key": API_KEY}
