# storefront/api/routers/vouchers.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import (
    MessageOut,
    VoucherCreate,
    VoucherOut,
    VoucherUpdate,
    VoucherValidateIn,
    VoucherValidationOut,
)
from storefront.services.voucher_service import VoucherService

router = APIRouter(prefix="/vouchers", tags=["vouchers"])


def get_service(db: Session):
    return VoucherService(db)


@router.post("", response_model=VoucherOut, status_code=201)
def create_voucher(
    payload: VoucherCreate,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return VoucherOut.model_validate(svc.create_voucher(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[VoucherOut])
def list_vouchers(db: Session = Depends(get_db)):
    svc = get_service(db)
    return [VoucherOut.model_validate(v) for v in svc.list_active()]


@router.post("/validate", response_model=VoucherValidationOut)
def validate_voucher(
    payload: VoucherValidateIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Checkout preview; nothing is redeemed here."""
    svc = get_service(db)
    try:
        result = svc.check(payload.code, user.id, payload.order_total)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "valid": True,
        "voucher": VoucherOut.model_validate(result["voucher"]),
        "discount_amount": result["discount_amount"],
    }


@router.get("/{voucher_id}", response_model=VoucherOut)
def get_voucher(voucher_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return VoucherOut.model_validate(svc.get_voucher(voucher_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{voucher_id}", response_model=VoucherOut)
def update_voucher(
    voucher_id: int,
    payload: VoucherUpdate,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return VoucherOut.model_validate(svc.update_voucher(voucher_id, payload))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{voucher_id}", response_model=MessageOut)
def delete_voucher(
    voucher_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.delete_voucher(voucher_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Voucher removed"}
