# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import ConsistencyError, NotFoundError
from storefront.domain.schemas import (
    InvoiceOut,
    MessageOut,
    OrderCreate,
    OrderOut,
    OrderPlacedOut,
    PaymentIn,
    PaymentOut,
)
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=OrderPlacedOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Places the order in one transaction: stock, voucher and the order
    itself commit together or not at all. The cart is cleared afterwards.
    """
    svc = get_service(db)
    try:
        placed = svc.place_order(
            user_id=user.id,
            items=[item.model_dump() for item in payload.order_items],
            shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
            payment_method=payload.payment_method,
            voucher_code=payload.voucher_code,
        )
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "message": "Order created successfully",
        "order_id": placed["order_id"],
        "order_number": placed["order_number"],
    }


@router.get("", response_model=List[OrderOut])
def list_orders(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return [OrderOut.model_validate(order) for order in svc.list_orders(user.id)]


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return OrderOut.model_validate(svc.get_order(order_id, user.id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{order_id}/pay", response_model=PaymentOut)
def pay_order(
    order_id: int,
    payload: PaymentIn | None = None,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = PaymentService(db)
    try:
        invoice = svc.mark_paid(order_id, user.id, payload.model_dump() if payload else None)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "message": "Payment successful. Invoice has been generated.",
        "invoice": InvoiceOut.model_validate(invoice),
    }


@router.put("/{order_id}/deliver", response_model=OrderOut)
def deliver_order(
    order_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = PaymentService(db)
    try:
        return OrderOut.model_validate(svc.mark_delivered(order_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{order_id}", response_model=MessageOut)
def delete_order(
    order_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.cancel_order(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Order removed and stock restored"}
