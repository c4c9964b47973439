from quart import Blueprint, jsonify, request

from . import service
from ..common.auth import ADMIN_ROLE, requires_auth
from ..common.http import get_pagination, read_json, read_object, require

bp = Blueprint("orders", __name__, url_prefix="/orders")


@bp.get("")
@requires_auth()
async def orders_mine(principal):
    page, limit = get_pagination(default_limit=10)
    return jsonify(await service.list_user_orders(principal.subject_id, page, limit))


@bp.get("/<int:order_id>")
@requires_auth()
async def order_detail(order_id: int, principal):
    return jsonify(await service.get_order(order_id, principal))


@bp.post("")
@requires_auth()
async def order_place(principal):
    data = await read_object()
    require(data, "shipping_address", "items")
    order = await service.place_order(principal.subject_id, str(data["shipping_address"]), data["items"])
    return jsonify(order), 201


@bp.patch("/<int:order_id>/status")
@requires_auth(role=ADMIN_ROLE)
async def order_status_update(order_id: int, principal):
    new_status = service.parse_status(await read_json())
    return jsonify(await service.update_status(order_id, new_status))


@bp.post("/<int:order_id>/cancel")
@requires_auth()
async def order_cancel(order_id: int, principal):
    return jsonify(await service.cancel_order(order_id, principal))


@bp.get("/admin/all")
@requires_auth(role=ADMIN_ROLE)
async def orders_all(principal):
    raw_status = request.args.get("status")
    status = service.parse_status(raw_status) if raw_status else None
    page, limit = get_pagination()
    return jsonify(await service.list_all_orders(status, page, limit))
