# storefront/services/voucher_service.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.voucher import VoucherModel
from storefront.data.models.voucher_usage import VoucherUsageModel
from storefront.domain.errors import (
    NotFoundError,
    ReferentialIntegrityError,
    VoucherExhaustedError,
    VoucherRejected,
)
from storefront.domain.pricing import PERCENTAGE, to_money
from storefront.domain.schemas import VoucherCreate, VoucherUpdate
from storefront.repos.voucher_repo import VoucherRepo
from storefront.utils.clock import as_utc, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class VoucherService:
    """
    Voucher ledger.

    validate() and compute_discount() only read. redeem() writes and must be
    called inside the order's transaction; it never commits. The admin
    commands below it commit on their own.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = VoucherRepo(db)

    # =====================================================
    # LEDGER
    # =====================================================
    def validate(
        self,
        code: str,
        user_id: int,
        order_subtotal: Decimal,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        """Checks run in a fixed order and the first failing one is reported."""
        now = now or utcnow()
        voucher = self.repo.get_by_code(code.strip())

        if not voucher:
            return {"valid": False, "reason": "Voucher code not found"}

        if not voucher.is_active:
            return {"valid": False, "reason": "Voucher is not active"}

        if now < as_utc(voucher.start_date):
            return {"valid": False, "reason": "Voucher has not started yet"}

        if now > as_utc(voucher.end_date):
            return {"valid": False, "reason": "Voucher has expired"}

        min_purchase = to_money(voucher.min_purchase_amount)
        if to_money(order_subtotal) < min_purchase:
            return {"valid": False, "reason": f"Minimum purchase amount of ${min_purchase} required"}

        if voucher.total_usage_limit is not None and voucher.current_usage_count >= voucher.total_usage_limit:
            return {"valid": False, "reason": "Voucher usage limit reached"}

        if self.repo.count_user_usages(voucher.id, user_id) >= voucher.usage_limit_per_user:
            return {"valid": False, "reason": "You have reached the usage limit for this voucher"}

        return {"valid": True, "voucher": voucher}

    @staticmethod
    def compute_discount(voucher: VoucherModel, subtotal: Decimal) -> Decimal:
        if voucher.discount_type == PERCENTAGE:
            discount = to_money(to_money(subtotal) * to_money(voucher.discount_value) / 100)
            if voucher.max_discount_amount is not None:
                discount = min(discount, to_money(voucher.max_discount_amount))
            return discount
        # fixed; flooring the order at zero happens in order_totals()
        return to_money(voucher.discount_value)

    def redeem(self, voucher_id: int, user_id: int, order_id: int) -> VoucherUsageModel:
        # the conditional UPDATE locks the voucher row, so the per-user count
        # below already sees any redemption committed by a competing checkout
        if self.repo.increment_usage(voucher_id) == 0:
            raise VoucherExhaustedError("Voucher usage limit reached, please try again")

        voucher = self.repo.get_voucher(voucher_id)
        if self.repo.count_user_usages(voucher_id, user_id) >= voucher.usage_limit_per_user:
            raise VoucherExhaustedError("You have reached the usage limit for this voucher")

        usage = self.repo.add_usage(
            VoucherUsageModel(voucher_id=voucher_id, user_id=user_id, order_id=order_id)
        )
        logger.info(f"Voucher {voucher_id} redeemed by user {user_id} for order {order_id}")
        return usage

    def check(self, code: str, user_id: int, order_total: Decimal) -> Dict[str, Any]:
        """Checkout preview: validation plus the discount it would give."""
        result = self.validate(code, user_id, order_total)
        if not result["valid"]:
            raise VoucherRejected(result["reason"])

        voucher = result["voucher"]
        return {
            "valid": True,
            "voucher": voucher,
            "discount_amount": self.compute_discount(voucher, order_total),
        }

    # =====================================================
    # QUERIES
    # =====================================================
    def get_voucher(self, voucher_id: int) -> VoucherModel:
        voucher = self.repo.get_voucher(voucher_id)
        if not voucher:
            raise NotFoundError("Voucher not found")
        return voucher

    def list_active(self) -> List[VoucherModel]:
        return self.repo.list_active(utcnow())

    # =====================================================
    # ADMIN COMMANDS
    # =====================================================
    def create_voucher(self, payload: VoucherCreate) -> VoucherModel:
        data = payload.model_dump()
        data["code"] = data["code"].strip()
        try:
            voucher = self.repo.add_voucher(VoucherModel(**data))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValueError("Voucher code already exists")

        logger.info(f"Voucher {voucher.code} created (id {voucher.id})")
        return voucher

    def update_voucher(self, voucher_id: int, payload: VoucherUpdate) -> VoucherModel:
        voucher = self.get_voucher(voucher_id)
        changes = payload.model_dump(exclude_unset=True)
        if "code" in changes and changes["code"]:
            changes["code"] = changes["code"].strip()

        for field, value in changes.items():
            setattr(voucher, field, value)

        if as_utc(voucher.end_date) < as_utc(voucher.start_date):
            self.db.rollback()
            raise ValueError("end_date must not be before start_date")
        if voucher.discount_type == PERCENTAGE and to_money(voucher.discount_value) > 100:
            self.db.rollback()
            raise ValueError("percentage discount cannot exceed 100")
        if voucher.total_usage_limit is not None and voucher.total_usage_limit < voucher.current_usage_count:
            self.db.rollback()
            raise ValueError("total_usage_limit cannot be lower than the current usage count")

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValueError("Voucher code already exists")

        logger.info(f"Voucher {voucher_id} updated: {sorted(changes)}")
        return voucher

    def delete_voucher(self, voucher_id: int) -> None:
        voucher = self.get_voucher(voucher_id)
        if self.repo.count_usages(voucher_id) > 0:
            raise ReferentialIntegrityError(
                "Cannot delete a voucher that has been redeemed. Deactivate it instead."
            )
        try:
            self.repo.delete_voucher(voucher)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Voucher {voucher_id} deleted")
