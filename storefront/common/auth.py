"""
Bearer token handling shared by all services.

Tokens are HS256 JWTs signed with the shared secret from settings. The
``before_request`` hook installed by ``init_auth`` turns the Authorization
header into a ``Principal`` on ``g``; views opt in with ``requires_auth``.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import wraps
from typing import Optional

import jwt
from quart import g, request

from .config import settings
from .db import utcnow
from .errors import Forbidden, Unauthorized

_logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Principal:
    subject_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def issue_token(subject_id: int, email: str, role: str) -> str:
    now = utcnow()
    claims = {
        "sub": str(subject_id),
        "email": email,
        "role": role,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(days=settings.JWT_EXPIRY_DAYS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> Principal:
    """Verify signature, expiry, issuer and audience with zero leeway."""
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            leeway=0,
            options={"require": ["exp", "iss", "aud", "sub", "role"]},
        )
        return Principal(subject_id=int(claims["sub"]), role=str(claims["role"]))
    except (jwt.PyJWTError, ValueError) as e:
        raise Unauthorized("Invalid token") from e


def parse_bearer(header: Optional[str]) -> str:
    if not header or not header.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing bearer token")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Missing bearer token")
    return token


def principal_from_header(header: Optional[str]) -> Principal:
    return decode_token(parse_bearer(header))


def init_auth(app) -> None:
    @app.before_request
    async def load_principal():
        g.principal = None
        header = request.headers.get("Authorization")
        if not header:
            return
        try:
            g.principal = principal_from_header(header)
        except Unauthorized as e:
            # Public routes ignore bad tokens; protected ones reject on g.principal is None
            _logger.debug("Ignoring invalid bearer token | path=%s err=%s", request.path, e)


def requires_auth(role: Optional[str] = None):
    """Reject anonymous callers (401) and callers lacking ``role`` (403).

    The verified principal is passed to the view as the ``principal`` kwarg.
    """

    def decorator(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            principal = getattr(g, "principal", None)
            if principal is None:
                raise Unauthorized("Authentication required")
            if role is not None and principal.role != role:
                raise Forbidden(f"Requires role '{role}'")
            return await view(*args, principal=principal, **kwargs)

        return wrapper

    return decorator
