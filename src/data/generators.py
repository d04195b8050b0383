"""
Synthetic Order Generator

Generates realistic laundry orders for the in-memory development backend.
Includes:
- Baskets of garments with fold/ironing options
- Fees consistent with the basket contents
- A realistic status mix
- The occasional order still waiting for its server timestamp
"""

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from faker import Faker

from src.domain.models import BasketItem, Order, OrderStatus, ShippingAddress


# =============================================================================
# CONFIGURATION
# =============================================================================

GARMENTS = [
    ("Shirt", 1500),
    ("Trousers", 2000),
    ("Dress", 3000),
    ("Suit", 6000),
    ("Bedsheet", 2500),
    ("Duvet", 8000),
    ("Towel", 1000),
    ("Jacket", 4000),
]

ORDER_STATUSES = [
    (OrderStatus.PROCESSING, 0.25),
    (OrderStatus.COMPLETED, 0.65),
    (OrderStatus.CANCELLED, 0.10),
]

FOLD_FEE_PER_ITEM = 200
IRONING_FEE_PER_ITEM = 500
TRANSPORTATION_FEES = [0, 1000, 1500, 2000]

# Share of orders generated without createdAt
UNSTAMPED_RATE = 0.02

# Kigali area
LATITUDE_RANGE = (-2.02, -1.90)
LONGITUDE_RANGE = (30.00, 30.15)


# =============================================================================
# GENERATORS
# =============================================================================

class OrderGenerator:
    """Generate realistic laundry orders"""

    def __init__(self, seed: int = 42, reference_date: Optional[datetime] = None, days: int = 365):
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.reference_date = reference_date or datetime.now(timezone.utc)
        self.days = days

    def _basket(self) -> List[BasketItem]:
        items = []
        for name, price in self.random.sample(GARMENTS, k=self.random.randint(1, 4)):
            items.append(BasketItem(
                name=name,
                price=price,
                quantity=self.random.randint(1, 6),
                fold=self.random.random() < 0.6,
                ironing=self.random.random() < 0.4,
            ))
        return items

    def generate_one(self) -> Order:
        """Generate a single order"""
        baskets = self._basket()
        fold_fees = sum(FOLD_FEE_PER_ITEM * item.quantity for item in baskets if item.fold)
        ironing_fees = sum(IRONING_FEE_PER_ITEM * item.quantity for item in baskets if item.ironing)
        transportation_fees = self.random.choice(TRANSPORTATION_FEES)
        subtotal = sum(item.line_total for item in baskets)

        status = self.random.choices(
            [s for s, _ in ORDER_STATUSES],
            weights=[w for _, w in ORDER_STATUSES],
        )[0]

        created_at = self.reference_date - timedelta(
            days=self.random.randint(0, self.days),
            minutes=self.random.randint(0, 24 * 60),
        )
        pickup_date = created_at + timedelta(hours=self.random.randint(2, 48))
        delivery_date = pickup_date + timedelta(days=self.random.randint(1, 4))

        return Order(
            id=uuid.UUID(int=self.random.getrandbits(128)).hex,
            order_id=f"LD-{self.fake.unique.random_number(digits=6, fix_len=True)}",
            total_amount=subtotal + fold_fees + ironing_fees + transportation_fees,
            created_at=None if self.random.random() < UNSTAMPED_RATE else created_at,
            status=status.value,
            baskets=baskets,
            fold_fees=fold_fees,
            ironing_fees=ironing_fees,
            transportation_fees=transportation_fees,
            pickup_date=pickup_date,
            delivery_date=delivery_date,
            shipping_address=ShippingAddress(
                address_string=self.fake.street_address(),
                latitude=round(self.random.uniform(*LATITUDE_RANGE), 6),
                longitude=round(self.random.uniform(*LONGITUDE_RANGE), 6),
            ),
            user_email=self.fake.email(),
            user_id=uuid.UUID(int=self.random.getrandbits(128)).hex,
        )

    def generate(self, n: int = 100) -> List[Order]:
        """Generate n orders"""
        return [self.generate_one() for _ in range(n)]


def generate_orders(n: int, seed: int = 42, reference_date: Optional[datetime] = None) -> List[Order]:
    """Convenience wrapper around OrderGenerator"""
    if n <= 0:
        return []
    return OrderGenerator(seed=seed, reference_date=reference_date).generate(n)
