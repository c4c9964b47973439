import logging
from typing import Dict, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.auth import issue_token, principal_from_header
from ..common.database import AsyncSessionLocal
from ..common.db import utcnow
from ..common.errors import Conflict, Unauthorized
from .model import User

_logger = logging.getLogger(__name__)

DEFAULT_ROLE = "customer"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def generate_token(user: User) -> str:
    return issue_token(user.id, user.email, user.role)


async def find_user_by_email(session, email: str) -> Optional[User]:
    res = await session.execute(sa.select(User).where(User.email == normalize_email(email)))
    return res.scalar_one_or_none()


async def register(username: str, email: str, password: str, role: str = DEFAULT_ROLE) -> Dict:
    async with AsyncSessionLocal() as session:
        if await find_user_by_email(session, email) is not None:
            raise Conflict("Email already registered")
        user = User(
            username=username,
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=role,
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            await session.rollback()
            raise Conflict("Email already registered")
    _logger.info("Registered user | user_id=%s role=%s", user.id, user.role)
    return {"id": user.id, "username": user.username, "email": user.email, "token": generate_token(user)}


async def login(email: str, password: str) -> Dict:
    async with AsyncSessionLocal() as session:
        user = await find_user_by_email(session, email)
        if user is None or not verify_password(password, user.password_hash):
            _logger.info("Login rejected | email=%s", normalize_email(email))
            raise Unauthorized("Invalid credentials")
        user.last_login_at = utcnow()
        await session.commit()
    _logger.info("Login | user_id=%s", user.id)
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "token": generate_token(user),
    }


def validate(auth_header: Optional[str]) -> Dict:
    principal = principal_from_header(auth_header)
    return {"user_id": principal.subject_id, "role": principal.role, "valid": True}

