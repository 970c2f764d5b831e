"""
Route definitions for local accounts.

Endpoints under /api/auth:
- POST /register : create an account and log it in
- POST /login    : log in
- POST /logout   : clear the session
- GET  /me       : the logged-in user, or null
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ..deps import get_accounts
from ..models import LoginRequest, RegisterRequest, UserOut
from .service import AccountService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _out(user) -> UserOut:
    return UserOut(id=user.id, username=user.username, display_name=user.display_name)


@router.post("/register", response_model=UserOut)
def register(req: RegisterRequest, accounts: AccountService = Depends(get_accounts)) -> UserOut:
    return _out(accounts.register(req.username, req.password, req.display_name))


@router.post("/login", response_model=UserOut)
def login(req: LoginRequest, accounts: AccountService = Depends(get_accounts)) -> UserOut:
    return _out(accounts.login(req.username, req.password))


@router.post("/logout")
def logout(accounts: AccountService = Depends(get_accounts)):
    accounts.logout()
    return {"status": "ok"}


@router.get("/me", response_model=Optional[UserOut])
def me(accounts: AccountService = Depends(get_accounts)) -> Optional[UserOut]:
    user = accounts.current_user()
    return _out(user) if user else None
