# storefront/repos/voucher_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session

from storefront.data.models.voucher import VoucherModel
from storefront.data.models.voucher_usage import VoucherUsageModel


class VoucherRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_voucher(self, voucher_id: int) -> VoucherModel | None:
        return self.db.get(VoucherModel, voucher_id)

    def get_by_code(self, code: str) -> VoucherModel | None:
        return self.db.execute(
            select(VoucherModel).where(VoucherModel.code == code)
        ).scalar_one_or_none()

    def list_active(self, now: datetime) -> List[VoucherModel]:
        return list(
            self.db.execute(
                select(VoucherModel)
                .where(
                    VoucherModel.is_active.is_(True),
                    VoucherModel.start_date <= now,
                    VoucherModel.end_date >= now,
                )
                .order_by(VoucherModel.created_at.desc(), VoucherModel.id.desc())
            ).scalars()
        )

    def add_voucher(self, voucher: VoucherModel) -> VoucherModel:
        self.db.add(voucher)
        self.db.flush()
        return voucher

    def delete_voucher(self, voucher: VoucherModel) -> None:
        self.db.delete(voucher)
        self.db.flush()

    def count_user_usages(self, voucher_id: int, user_id: int) -> int:
        return self.db.execute(
            select(func.count(VoucherUsageModel.id)).where(
                VoucherUsageModel.voucher_id == voucher_id,
                VoucherUsageModel.user_id == user_id,
            )
        ).scalar_one()

    def count_usages(self, voucher_id: int) -> int:
        return self.db.execute(
            select(func.count(VoucherUsageModel.id)).where(VoucherUsageModel.voucher_id == voucher_id)
        ).scalar_one()

    def increment_usage(self, voucher_id: int) -> int:
        """Bump current_usage_count unless the global cap is already reached."""
        result = self.db.execute(
            update(VoucherModel)
            .where(
                VoucherModel.id == voucher_id,
                or_(
                    VoucherModel.total_usage_limit.is_(None),
                    VoucherModel.current_usage_count < VoucherModel.total_usage_limit,
                ),
            )
            .values(current_usage_count=VoucherModel.current_usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_usage(self, usage: VoucherUsageModel) -> VoucherUsageModel:
        self.db.add(usage)
        self.db.flush()
        return usage
