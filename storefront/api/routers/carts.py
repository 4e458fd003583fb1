# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from storefront.api.deps import (
    ensure_guest_session,
    forget_guest_cart,
    get_current_user,
    get_optional_user,
    read_guest_cart_id,
    remember_guest_cart,
)
from storefront.data.database import get_db
from storefront.data.models.cart import CartModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import ConsistencyError, NotFoundError
from storefront.domain.schemas import CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService
from storefront.utils.settings import GUEST_SESSION_COOKIE

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


def _current_cart(
    svc: CartService,
    user: UserModel | None,
    request: Request,
    response: Response,
    create: bool = True,
) -> CartModel | None:
    if user is not None:
        return svc.resolve(user.id, create=create)

    session_id = ensure_guest_session(request, response)
    cart_id = read_guest_cart_id(request)
    cart = svc.resolve(None, guest_session_id=session_id, guest_cart_id=cart_id, create=create)
    if cart is not None and cart.id != cart_id:
        remember_guest_cart(response, cart.id)
    return cart


@router.get("", response_model=CartOut)
def get_cart(
    request: Request,
    response: Response,
    user: UserModel | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = _current_cart(svc, user, request, response, create=False)
    return svc.get_cart(cart)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    request: Request,
    response: Response,
    user: UserModel | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = _current_cart(svc, user, request, response)
    try:
        return svc.add_item(cart, payload.product_id, payload.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/items/{product_id}", response_model=CartOut)
def set_quantity(
    product_id: int,
    payload: QuantityIn,
    request: Request,
    response: Response,
    user: UserModel | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = _current_cart(svc, user, request, response, create=False)
    if cart is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    try:
        return svc.set_quantity(cart, product_id, payload.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    request: Request,
    response: Response,
    user: UserModel | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = _current_cart(svc, user, request, response, create=False)
    if cart is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    try:
        return svc.remove_item(cart, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("", response_model=CartOut)
def clear_cart(
    request: Request,
    response: Response,
    user: UserModel | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = _current_cart(svc, user, request, response, create=False)
    if cart is None:
        return svc.get_cart(None)
    try:
        return svc.clear_cart(cart)
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/merge", response_model=CartOut)
def merge_cart(
    request: Request,
    response: Response,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Called right after login with the guest cookies still attached."""
    svc = get_service(db)
    guest_cart_id = read_guest_cart_id(request)
    if guest_cart_id is None:
        return svc.get_cart(svc.resolve(user.id))

    try:
        cart = svc.merge_guest_into_user(
            guest_cart_id,
            user.id,
            guest_session_id=request.cookies.get(GUEST_SESSION_COOKIE),
        )
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    forget_guest_cart(response)
    return cart
