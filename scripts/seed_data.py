#!/usr/bin/env python3
"""
Seed script: creates users with wallets, addresses and product likes through the store.
Ensures: every relation kind has data to load, join and aggregate over.
Run (database from RECORDSTORE_DATABASE_URL):
  python scripts/seed_data.py
  python scripts/seed_data.py --users 100 --addresses-per-user 3 --migrate
"""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from recordstore.config import get_settings
from recordstore.core.errors import StoreError
from recordstore.core.logging import configure_logging
from recordstore.db.models import Address, Name, Product, User, UserLog, Wallet
from recordstore.db.repositories import ProductRepository, UserLogRepository
from recordstore.db.session import store_lifespan

logger = logging.getLogger("seed_data")

FIRST_NAMES = ["Lingga", "Budi", "Joko", "Rully", "Eko", "Sari", "Dewi", "Agus", "Putri", "Rina"]
LAST_NAMES = ["Pratama", "Santoso", "Wijaya", "Kurniawan", "Saputra", "Hidayat", "", ""]
STREETS = ["Jalan Belum Ada", "Jalan Sudirman", "Jalan Thamrin", "Jalan Merdeka", "Jalan Gatot Subroto"]
PRODUCTS = [
    ("p1", "Contoh Product 1", 100_000),
    ("p2", "Contoh Product 2", 200_000),
    ("p3", "Mie Ayam", 15_000),
    ("p4", "Kopi Susu", 20_000),
    ("p5", "Nasi Goreng", 25_000),
]


def random_balance() -> int:
    return random.choice([0, 0, 10_000, 50_000, 100_000, 1_000_000, 5_000_000])


def build_user(index: int, addresses_per_user: int) -> User:
    user_id = f"seed-{index + 1}"
    user = User(
        id=user_id,
        password="rahasia",
        name=Name(first_name=random.choice(FIRST_NAMES), last_name=random.choice(LAST_NAMES)),
    )
    user.wallet = Wallet(id=f"wallet-{user_id}", balance=random_balance())
    user.addresses = [
        Address(address=f"{random.choice(STREETS)} {random.randint(1, 200)}") for _ in range(addresses_per_user)
    ]
    return user


async def seed(args) -> int:
    settings = get_settings()
    errors = 0
    async with store_lifespan(settings) as store:
        if args.migrate:
            for change in await store.migrate():
                logger.info("migrate: %s", change)

        products = [Product(id=pid, name=name, price=price) for pid, name, price in PRODUCTS]
        await store.upsert(products)

        product_repo = ProductRepository(store)
        log_repo = UserLogRepository(store)

        logger.info("Creating %d users...", args.users)
        for i in range(args.users):
            user = build_user(i, args.addresses_per_user)
            try:
                # User, wallet and addresses are written in one transaction
                await store.insert(user)
                await product_repo.like(user, *random.sample(products, k=random.randint(0, len(products))))
                await log_repo.record(user.id, "seeded")
            except StoreError as exc:
                errors += 1
                logger.warning("user %s: %s", user.id, exc)
            if (i + 1) % 10 == 0:
                logger.info("  ... %d users", i + 1)

        users = await store.count(User)
        wallets = await store.count(Wallet)
        logs = await store.count(UserLog)
        logger.info("Done. Users: %d, wallets: %d, log entries: %d, errors: %d", users, wallets, logs, errors)
    return errors


def main():
    ap = argparse.ArgumentParser(description="Seed users, wallets, addresses and likes")
    ap.add_argument("--users", type=int, default=30, help="Number of users to create")
    ap.add_argument("--addresses-per-user", type=int, default=2, help="Addresses per user")
    ap.add_argument("--migrate", action="store_true", help="Create missing tables and columns first")
    args = ap.parse_args()

    configure_logging(get_settings())
    errors = asyncio.run(seed(args))
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()
