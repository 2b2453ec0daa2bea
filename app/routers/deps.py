import asyncio
from functools import partial
from typing import Optional

from fastapi import Depends, Header

from app.models.engine import CallerContext
from app.services.catalog import get_catalog
from app.utils.exceptions import AuthenticationError, AuthorizationError


def get_caller(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    x_user_department: Optional[str] = Header(default=None),
    x_user_position: Optional[str] = Header(default=None),
) -> CallerContext:
    """Caller identity forwarded by the gateway in X-User-* headers"""
    if not x_user_id:
        raise AuthenticationError("Missing X-User-Id header")
    return CallerContext(
        user_id=x_user_id,
        name=x_user_name,
        role=(x_user_role or "employee").lower(),
        department=x_user_department,
        position=x_user_position,
    )


def has_permission(caller: CallerContext, permission: str) -> bool:
    return permission in get_catalog().role_permissions.get(caller.role, [])


def require_permission(permission: str):
    def dependency(caller: CallerContext = Depends(get_caller)) -> CallerContext:
        if not has_permission(caller, permission):
            raise AuthorizationError(
                f"Role '{caller.role}' lacks permission '{permission}'",
                resource=permission,
            )
        return caller
    return dependency


async def run_blocking(func, *args, **kwargs):
    """Run parsing, scoring or LLM calls in the default executor so the event loop keeps serving"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))
