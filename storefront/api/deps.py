# storefront/api/deps.py
import uuid

from fastapi import Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.repos.user_repo import UserRepo
from storefront.utils.settings import (
    COOKIE_SECURE,
    GUEST_CART_COOKIE,
    GUEST_COOKIE_MAX_AGE,
    GUEST_SESSION_COOKIE,
)


def _load_user(user_id: int, db: Session) -> UserModel:
    user = UserRepo(db).get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Not authorized, user not found")
    return user


def get_current_user(
    x_user_id: int | None = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> UserModel:
    """The auth gateway in front of us puts the authenticated user's id in X-User-Id."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authorized, no user")
    return _load_user(x_user_id, db)


def get_optional_user(
    x_user_id: int | None = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> UserModel | None:
    if x_user_id is None:
        return None
    return _load_user(x_user_id, db)


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized as an admin")
    return user


def _set_cookie(response: Response, name: str, value: str) -> None:
    response.set_cookie(
        name,
        value,
        max_age=GUEST_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
    )


def ensure_guest_session(request: Request, response: Response) -> str:
    session_id = request.cookies.get(GUEST_SESSION_COOKIE)
    if not session_id:
        session_id = uuid.uuid4().hex
        _set_cookie(response, GUEST_SESSION_COOKIE, session_id)
    return session_id


def read_guest_cart_id(request: Request) -> int | None:
    raw = request.cookies.get(GUEST_CART_COOKIE)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def remember_guest_cart(response: Response, cart_id: int) -> None:
    _set_cookie(response, GUEST_CART_COOKIE, str(cart_id))


def forget_guest_cart(response: Response) -> None:
    response.delete_cookie(GUEST_CART_COOKIE)
