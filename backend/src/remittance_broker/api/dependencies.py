"""
FastAPI dependencies resolving the service container and caller identity.
"""
from typing import Optional

from fastapi import Header, Request

from ..services.container import BrokerContainer


def get_container(request: Request) -> BrokerContainer:
    return request.app.state.container


def get_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """Caller identity forwarded by the upstream gateway, or the configured default."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return request.app.state.container.settings.default_user_id
