from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, UploadFile, status

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import user_out
from todu.api.schemas import (
    ChangePasswordInput,
    DeleteAccountInput,
    ForgotPasswordInput,
    GoogleVerifyInput,
    LoginInput,
    ProfileUpdateInput,
    ResetPasswordInput,
    SignupInput,
)
from todu.models import AuthResult, User

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_body(result: AuthResult) -> Dict[str, Any]:
    return {"success": True, "message": result.message, "token": result.token, "user": user_out(result.user)}


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupInput, c: Container = Depends(get_container)):
    return _auth_body(await c.accounts.signup(body.name, body.email, body.password))


@router.post("/login")
async def login(body: LoginInput, c: Container = Depends(get_container)):
    return _auth_body(await c.accounts.login(body.email, body.password))


@router.post("/google/verify")
async def google_verify(body: GoogleVerifyInput, c: Container = Depends(get_container)):
    return _auth_body(await c.accounts.google_verify(body.credential or ""))


@router.get("/me")
async def me(user: User = Depends(require_user)):
    return {"success": True, "user": user_out(user)}


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    updated = await c.accounts.update_profile(user.id, body.changes())
    return {"success": True, "message": "Profile updated successfully", "user": user_out(updated)}


@router.put("/change-password")
async def change_password(
    body: ChangePasswordInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    await c.accounts.change_password(user.id, body.current_password, body.new_password)
    return ok(message="Password changed successfully")


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordInput, c: Container = Depends(get_container)):
    return ok(message=await c.accounts.forgot_password(body.email))


async def _reset(token: str, body: ResetPasswordInput, c: Container) -> Dict[str, Any]:
    return _auth_body(await c.accounts.reset_password(token, body.password))


@router.put("/reset-password/{token}")
async def reset_password_put(token: str, body: ResetPasswordInput, c: Container = Depends(get_container)):
    return await _reset(token, body, c)


@router.post("/reset-password/{token}")
async def reset_password_post(token: str, body: ResetPasswordInput, c: Container = Depends(get_container)):
    return await _reset(token, body, c)


@router.post("/avatar")
async def upload_avatar(
    avatar: UploadFile = File(...),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    data = await avatar.read()
    updated = await c.accounts.upload_avatar(user.id, avatar.filename, avatar.content_type, data)
    return {
        "success": True,
        "message": "Avatar uploaded successfully",
        "avatarUrl": updated.avatar_url,
        "user": user_out(updated),
    }


@router.delete("/account")
async def delete_account(
    body: DeleteAccountInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    await c.accounts.delete_account(user.id, body.password, body.confirm_delete)
    return ok(message="Account deleted successfully")
