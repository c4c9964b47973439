import asyncio
import logging
from decimal import Decimal

import sqlalchemy as sa

from .common.config import settings
from .common.database import init_db, AsyncSessionLocal
from .identity.model import User
from .identity.service import find_user_by_email, hash_password, normalize_email
from .products.model import Product

_logger = logging.getLogger(__name__)


SAMPLE_PRODUCTS = [
    {"name": "Laptop Pro 14", "stock": 20, "price": "1499.00", "category": "Computers"},
    {"name": "Wireless Mouse", "stock": 150, "price": "24.99", "category": "Accessories"},
    {"name": "Mechanical Keyboard", "stock": 80, "price": "89.99", "category": "Accessories"},
    {"name": "USB-C Hub", "stock": 120, "price": "39.99", "category": "Accessories"},
    {"name": "Noise-cancelling Headphones", "stock": 35, "price": "199.99", "category": "Audio"},
    {"name": "4K Monitor 27\"", "stock": 25, "price": "329.99", "category": "Displays"},
    {"name": "Portable SSD 1TB", "stock": 60, "price": "99.99", "category": "Storage"},
    {"name": "Smartphone Charger 65W", "stock": 200, "price": "19.99", "category": "Accessories"},
    {"name": "Webcam 1080p", "stock": 75, "price": "49.99", "category": "Accessories"},
    {"name": "Bluetooth Speaker", "stock": 40, "price": "59.99", "category": "Audio"},
]


async def seed_admin() -> User:
    async with AsyncSessionLocal() as session:
        admin = await find_user_by_email(session, settings.SEED_ADMIN_EMAIL)
        if admin is not None:
            return admin
        admin = User(
            username=settings.SEED_ADMIN_USERNAME,
            email=normalize_email(settings.SEED_ADMIN_EMAIL),
            password_hash=hash_password(settings.SEED_ADMIN_PASSWORD),
            role="admin",
        )
        session.add(admin)
        await session.commit()
        _logger.info("Created admin user | email=%s", admin.email)
        return admin


async def seed_products(created_by: int) -> int:
    async with AsyncSessionLocal() as session:
        added = 0
        for p in SAMPLE_PRODUCTS:
            # avoid duplicates by name
            res = await session.execute(sa.select(Product.id).where(Product.name == p["name"]))
            if res.first():
                continue
            session.add(Product(
                name=p["name"],
                description=f"{p['name']} ({p['category']})",
                stock=p["stock"],
                price=Decimal(p["price"]),
                category=p["category"],
                image_url=f"https://picsum.photos/seed/{p['name'].split()[0].lower()}/400/300",
                created_by=created_by,
            ))
            added += 1
        if added:
            await session.commit()
        return added


async def amain():
    logging.basicConfig(level=logging.INFO)
    await init_db()
    admin = await seed_admin()
    added = await seed_products(admin.id)
    _logger.info("Seed complete. Added %s products.", added)


if __name__ == "__main__":
    asyncio.run(amain())
