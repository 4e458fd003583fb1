from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import InvoiceOut, MessageOut
from storefront.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=List[InvoiceOut])
def list_invoices(
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = InvoiceService(db)
    return [InvoiceOut.model_validate(i) for i in svc.list_invoices(user.id)]


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(
    invoice_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = InvoiceService(db)
    try:
        return InvoiceOut.model_validate(svc.get_invoice(invoice_id, user.id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{invoice_id}/email", response_model=MessageOut, status_code=202)
def resend_invoice_email(
    invoice_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = InvoiceService(db)
    try:
        invoice = svc.resend_email(invoice_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": f"Invoice {invoice.invoice_number} queued for e-mail"}
