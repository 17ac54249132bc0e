"""Login and logout of restaurants on this device."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .utils.responses import ok

router = APIRouter(prefix="/api/session")


class LoginPayload(BaseModel):
    restaurant_id: str


class LogoutPayload(BaseModel):
    restaurant_id: str
    clear_data: bool = False


@router.post("/login")
async def login(payload: LoginPayload, request: Request) -> dict:
    """Start a session; the first notification sync runs right away."""

    state = request.app.state
    tenant_id = payload.restaurant_id.strip()
    epoch = state.sessions.login(tenant_id)
    result = await state.notifications.sync(tenant_id)
    return ok({"restaurantId": tenant_id, "epoch": epoch, "unreadCount": result.unread_count})


@router.post("/logout")
async def logout(payload: LogoutPayload, request: Request) -> dict:
    state = request.app.state
    await state.sessions.logout(
        payload.restaurant_id, store=state.store, clear_data=payload.clear_data
    )
    return ok({"restaurantId": payload.restaurant_id, "cleared": payload.clear_data})
