from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from expense_tracker.auth import TokenStore
from webapp.dependencies import current_user, get_token_store

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
def login(
    payload: Optional[dict] = Body(None),
    tokens: TokenStore = Depends(get_token_store),
):
    payload = payload or {}
    data = tokens.login(payload.get("email"), payload.get("password"))
    return {"success": True, "data": data}


@router.post("/refresh")
def refresh(
    payload: Optional[dict] = Body(None),
    tokens: TokenStore = Depends(get_token_store),
):
    payload = payload or {}
    data = tokens.rotate(payload.get("refreshToken"))
    return {"success": True, "data": data}


@router.post("/logout")
def logout(
    payload: Optional[dict] = Body(None),
    tokens: TokenStore = Depends(get_token_store),
):
    payload = payload or {}
    tokens.revoke(payload.get("refreshToken"))
    return {"success": True, "data": {"loggedOut": True}}


@router.get("/me")
def me(user: dict = Depends(current_user)):
    return {"success": True, "data": user}
