import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import sqlalchemy as sa

from ..common.auth import Principal
from ..common.database import AsyncSessionLocal
from ..common.db import utcnow
from ..common.errors import BadRequest, Forbidden, NotFound
from ..common.events import OrderPlaced, OrderStatusChanged, publish
from ..common.http import page_offset
from .model import Order, OrderItem, OrderStatus

_logger = logging.getLogger(__name__)


def parse_status(value: Any) -> OrderStatus:
    """Accept a status by name (any case), by ordinal, or wrapped as {"status": ...}."""
    if isinstance(value, dict) and "status" in value:
        value = value["status"]
    if isinstance(value, bool):
        raise BadRequest("Invalid order status")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int):
        try:
            return OrderStatus(value)
        except ValueError:
            raise BadRequest(f"Invalid order status: {value}")
    if isinstance(value, str):
        by_name = {s.name.lower(): s for s in OrderStatus}
        status = by_name.get(value.strip().lower())
        if status is not None:
            return status
    raise BadRequest(f"Invalid order status: {value!r}")


def can_cancel(status: OrderStatus) -> bool:
    return status < OrderStatus.Shipped


def _parse_int(value: Any, field: str) -> int:
    # int() would accept True and truncate 2.9 to 2
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise BadRequest(f"Item field {field!r} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Item field {field!r} must be an integer")


def _parse_item(raw: Any) -> OrderItem:
    if not isinstance(raw, dict):
        raise BadRequest("Each item must be an object")
    try:
        product_id = _parse_int(raw["product_id"], "product_id")
        quantity = _parse_int(raw["quantity"], "quantity")
        unit_price = Decimal(str(raw["unit_price"]))
    except KeyError as e:
        raise BadRequest(f"Item is missing field {e.args[0]!r}")
    except (TypeError, ValueError, InvalidOperation):
        raise BadRequest("Item fields product_id, quantity and unit_price must be numeric")
    if quantity < 1:
        raise BadRequest("Item quantity must be >= 1")
    if not unit_price.is_finite() or unit_price < 0:
        raise BadRequest("Item unit_price must be >= 0")
    return OrderItem(
        product_id=product_id,
        product_name=str(raw.get("product_name") or ""),
        unit_price=unit_price,
        quantity=quantity,
    )


def order_total(items: List[OrderItem]) -> Decimal:
    return sum((item.unit_price * item.quantity for item in items), Decimal("0"))


async def _paginated(conditions, page: int, limit: int) -> Dict:
    async with AsyncSessionLocal() as session:
        total = await session.scalar(sa.select(sa.func.count(Order.id)).where(*conditions))
        stmt = (
            sa.select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(page_offset(page, limit))
            .limit(limit)
        )
        res = await session.execute(stmt)
        items = [o.to_dict() for o in res.scalars().all()]
    return {"total": int(total or 0), "page": page, "limit": limit, "items": items}


async def place_order(user_id: int, shipping_address: str, raw_items: List[Any]) -> Dict:
    if not isinstance(raw_items, list) or not raw_items:
        raise BadRequest("An order needs at least one item")
    # Prices are the client's snapshot at order time; they are not checked against the catalog
    items = [_parse_item(raw) for raw in raw_items]
    order = Order(
        user_id=user_id,
        status=OrderStatus.Pending,
        shipping_address=shipping_address,
        total_amount=order_total(items),
        items=items,
    )
    async with AsyncSessionLocal() as session:
        session.add(order)
        await session.commit()
        result = order.to_dict()
    _logger.info("Order placed | order_id=%s user_id=%s total=%s items=%s", order.id, user_id, order.total_amount, len(items))

    await publish(OrderPlaced(
        order_id=order.id,
        user_id=user_id,
        total=order.total_amount,
        product_ids=[item.product_id for item in items],
    ))
    return result


async def get_order(order_id: int, caller: Principal) -> Dict:
    async with AsyncSessionLocal() as session:
        order = await session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.user_id != caller.subject_id and not caller.is_admin:
            raise Forbidden("Order belongs to another user")
        return order.to_dict()


async def list_user_orders(user_id: int, page: int, limit: int) -> Dict:
    return await _paginated([Order.user_id == user_id], page, limit)


async def list_all_orders(status: Optional[OrderStatus], page: int, limit: int) -> Dict:
    conditions = [] if status is None else [Order.status == status]
    return await _paginated(conditions, page, limit)


async def update_status(order_id: int, new_status: OrderStatus) -> Dict:
    # Administrative override: no lifecycle guard here, unlike cancel_order
    async with AsyncSessionLocal() as session:
        order = await session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        old_status = order.status
        order.status = new_status
        order.updated_at = utcnow()
        await session.commit()
    _logger.info("Order status changed | order_id=%s old=%s new=%s", order_id, old_status.name, new_status.name)

    await publish(OrderStatusChanged(order_id=order_id, old_status=old_status.name, new_status=new_status.name))
    return {"id": order_id, "old_status": old_status.name, "new_status": new_status.name}


async def cancel_order(order_id: int, caller: Principal) -> Dict:
    async with AsyncSessionLocal() as session:
        order = await session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.user_id != caller.subject_id:
            raise Forbidden("Only the owner can cancel an order")
        if not can_cancel(order.status):
            raise BadRequest(f"Cannot cancel an order that is {order.status.name}")
        old_status = order.status
        order.status = OrderStatus.Cancelled
        order.updated_at = utcnow()
        await session.commit()
    _logger.info("Order cancelled | order_id=%s old=%s", order_id, old_status.name)

    await publish(OrderStatusChanged(order_id=order_id, old_status=old_status.name, new_status=OrderStatus.Cancelled.name))
    return {"id": order_id, "status": OrderStatus.Cancelled.name}
