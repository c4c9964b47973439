from quart import Blueprint, jsonify, request

from . import service
from ..common.errors import Unauthorized
from ..common.http import read_object, require

bp = Blueprint("identity", __name__, url_prefix="/auth")


@bp.post("/register")
async def register_post():
    data = await read_object()
    require(data, "username", "email", "password")
    result = await service.register(str(data["username"]), str(data["email"]), str(data["password"]))
    return jsonify(result), 200


@bp.post("/login")
async def login_post():
    data = await read_object()
    require(data, "email", "password")
    result = await service.login(str(data["email"]), str(data["password"]))
    return jsonify(result)


@bp.get("/validate")
async def validate_get():
    try:
        result = service.validate(request.headers.get("Authorization"))
    except Unauthorized as e:
        return jsonify({"valid": False, "error": e.code, "message": e.message}), 401
    return jsonify(result)
