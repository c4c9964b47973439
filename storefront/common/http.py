from typing import Any, Dict, Optional, Tuple

from quart import request

from .config import settings
from .errors import BadRequest


async def read_json() -> Any:
    data = await request.get_json(force=True, silent=True)
    if data is None:
        raise BadRequest("Request body must be valid JSON")
    return data


async def read_object() -> Dict[str, Any]:
    data = await read_json()
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def require(data: Dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise BadRequest(f"Missing required field(s): {', '.join(missing)}")


def get_int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"Query parameter '{name}' must be an integer")


def get_pagination(default_limit: Optional[int] = None) -> Tuple[int, int]:
    page = get_int_arg("page", 1)
    limit = get_int_arg("limit", default_limit or settings.DEFAULT_PAGE_LIMIT)
    if page < 1:
        raise BadRequest("page must be >= 1")
    if limit < 1 or limit > settings.MAX_PAGE_LIMIT:
        raise BadRequest(f"limit must be between 1 and {settings.MAX_PAGE_LIMIT}")
    return page, limit


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit
