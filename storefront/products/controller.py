from quart import Blueprint, jsonify, request

from . import service
from ..common.auth import ADMIN_ROLE, requires_auth
from ..common.errors import BadRequest
from ..common.http import get_pagination, read_object, require

bp = Blueprint("products", __name__, url_prefix="/products")


@bp.get("")
async def products_list():
    page, limit = get_pagination()
    result = await service.list_products(
        category=request.args.get("category") or None,
        search=request.args.get("search") or None,
        page=page,
        limit=limit,
    )
    return jsonify(result)


@bp.get("/categories")
async def categories_list():
    return jsonify(await service.list_categories())


@bp.get("/<int:product_id>")
async def product_detail(product_id: int):
    return jsonify(await service.get_product(product_id))


@bp.post("")
@requires_auth(role=ADMIN_ROLE)
async def product_create(principal):
    data = await read_object()
    require(data, "name", "price")
    product = await service.create_product(data, created_by=principal.subject_id)
    return jsonify(product), 201


@bp.put("/<int:product_id>")
@requires_auth(role=ADMIN_ROLE)
async def product_update(product_id: int, principal):
    data = await read_object()
    return jsonify(await service.update_product(product_id, data))


@bp.patch("/<int:product_id>/stock")
@requires_auth(role=ADMIN_ROLE)
async def product_stock_adjust(product_id: int, principal):
    data = await read_object()
    require(data, "delta")
    delta = data["delta"]
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise BadRequest("delta must be an integer")
    reason = str(data.get("reason") or "")
    return jsonify(await service.adjust_stock(product_id, delta, reason))


@bp.delete("/<int:product_id>")
@requires_auth(role=ADMIN_ROLE)
async def product_delete(product_id: int, principal):
    await service.delete_product(product_id)
    return "", 204
