"""
Firestore Demo Order Seeder

Writes generated laundry orders into the configured Firestore collection,
using the camelCase document layout the dashboard reads.

Usage:
    python scripts/seed_orders.py --count 500
"""

import argparse

import structlog
from google.cloud import firestore

from src.config import get_settings
from src.config.logging import configure_logging
from src.data.generators import generate_orders

logger = structlog.get_logger(__name__)

# Firestore batches accept at most 500 writes
BATCH_SIZE = 500


def seed(count: int, seed_value: int) -> int:
    settings = get_settings()
    client = firestore.Client(project=settings.firestore.project_id, database=settings.firestore.database)
    collection = client.collection(settings.firestore.orders_collection)

    orders = generate_orders(count, seed=seed_value)
    for start in range(0, len(orders), BATCH_SIZE):
        batch = client.batch()
        for order in orders[start:start + BATCH_SIZE]:
            data = order.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)
            batch.set(collection.document(order.id), data)
        batch.commit()
        logger.info("Seeded batch", written=min(start + BATCH_SIZE, len(orders)), total=len(orders))

    client.close()
    return len(orders)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed Firestore with demo laundry orders")
    parser.add_argument("--count", type=int, default=200, help="Number of orders to write")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    configure_logging()
    written = seed(args.count, args.seed)
    logger.info("Seeding finished", orders=written, collection=get_settings().firestore.orders_collection)
