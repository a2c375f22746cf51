"""Resolved caller identity.

Token validation happens in the gateway in front of this service; requests
reach us with the authenticated user id in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Header

from core.errors import ForbiddenException, UnauthorizedException


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedException()
    return x_user_id.strip()


def ensure_owner(owner_id: Optional[str], user_id: str, message: str = "Pedido não pertence ao usuário atual") -> None:
    if owner_id != user_id:
        raise ForbiddenException(message)
