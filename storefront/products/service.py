import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import sqlalchemy as sa

from ..common.database import AsyncSessionLocal
from ..common.db import utcnow
from ..common.errors import BadRequest, NotFound
from ..common.events import ProductCreated, StockUpdated, publish
from ..common.http import page_offset
from .model import Product

_logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "price", "stock", "category", "image_url", "is_active")


def parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BadRequest("price must be a number")
    if not price.is_finite() or price < 0:
        raise BadRequest("price must be a non-negative number")
    return price


def parse_stock(value: Any) -> int:
    if isinstance(value, bool):
        raise BadRequest("stock must be an integer")
    try:
        stock = int(value)
    except (TypeError, ValueError):
        raise BadRequest("stock must be an integer")
    if stock < 0:
        raise BadRequest("stock must be >= 0")
    return stock


def adjusted_stock(current: int, delta: int) -> int:
    return max(0, current + delta)


async def list_products(category: Optional[str], search: Optional[str], page: int, limit: int) -> Dict:
    conditions = [Product.is_active.is_(True)]
    if category:
        conditions.append(Product.category == category)
    if search:
        conditions.append(sa.or_(Product.name.contains(search, autoescape=True), Product.description.contains(search, autoescape=True)))

    async with AsyncSessionLocal() as session:
        total = await session.scalar(sa.select(sa.func.count(Product.id)).where(*conditions))
        stmt = (
            sa.select(Product)
            .where(*conditions)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .offset(page_offset(page, limit))
            .limit(limit)
        )
        res = await session.execute(stmt)
        items = [p.to_dict() for p in res.scalars().all()]
    return {"total": int(total or 0), "page": page, "limit": limit, "items": items}


async def get_product(product_id: int) -> Dict:
    async with AsyncSessionLocal() as session:
        prod = await session.get(Product, product_id)
        if prod is None:
            raise NotFound("Product not found")
        return prod.to_dict()


async def create_product(data: Dict[str, Any], created_by: int) -> Dict:
    product = Product(
        name=str(data["name"]),
        description=str(data.get("description") or ""),
        price=parse_price(data["price"]),
        stock=parse_stock(data.get("stock", 0)),
        category=str(data.get("category") or ""),
        image_url=str(data.get("image_url") or ""),
        is_active=True,
        created_by=created_by,
    )
    async with AsyncSessionLocal() as session:
        session.add(product)
        await session.commit()
    _logger.info("Product created | product_id=%s created_by=%s", product.id, created_by)

    await publish(ProductCreated(product_id=product.id, name=product.name, price=product.price, stock=product.stock))
    return product.to_dict()


async def update_product(product_id: int, data: Dict[str, Any]) -> Dict:
    async with AsyncSessionLocal() as session:
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")

        # Only fields present in the body are applied
        for name in UPDATABLE_FIELDS:
            if name not in data or data[name] is None:
                continue
            value = data[name]
            if name == "price":
                value = parse_price(value)
            elif name == "stock":
                value = parse_stock(value)
            elif name == "is_active":
                if not isinstance(value, bool):
                    raise BadRequest("is_active must be a boolean")
            else:
                value = str(value)
                if name == "name" and not value.strip():
                    raise BadRequest("name must not be empty")
            setattr(product, name, value)
        product.updated_at = utcnow()
        await session.commit()
        _logger.info("Product updated | product_id=%s fields=%s", product_id, sorted(k for k in data if k in UPDATABLE_FIELDS))
        return product.to_dict()


async def adjust_stock(product_id: int, delta: int, reason: str) -> Dict:
    async with AsyncSessionLocal() as session:
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        old_stock = product.stock
        product.stock = adjusted_stock(product.stock, delta)
        product.updated_at = utcnow()
        await session.commit()
        new_stock = product.stock
    _logger.info(
        "Stock adjusted | product_id=%s old=%s delta=%s new=%s reason=%s",
        product_id, old_stock, delta, new_stock, reason,
    )

    await publish(StockUpdated(product_id=product_id, new_stock=new_stock))
    return {"id": product_id, "stock": new_stock, "reason": reason}


async def delete_product(product_id: int) -> None:
    async with AsyncSessionLocal() as session:
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        product.is_active = False
        product.updated_at = utcnow()
        await session.commit()
    _logger.info("Product deactivated | product_id=%s", product_id)


async def list_categories() -> List[str]:
    async with AsyncSessionLocal() as session:
        stmt = (
            sa.select(Product.category)
            .where(Product.is_active.is_(True))
            .distinct()
            .order_by(Product.category)
        )
        res = await session.execute(stmt)
        return [row[0] for row in res.all()]
