from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from todu.api.container import Container
from todu.domain.common.errors import AuthenticationError
from todu.models import User

bearer = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def require_user(
    container: Container = Depends(get_container),
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> User:
    if not creds or not creds.credentials:
        raise AuthenticationError("Not authorized, no token provided")
    return await container.accounts.authenticate(creds.credentials)


def ok(data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> Dict[str, Any]:
    """Standard success envelope."""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    return body
