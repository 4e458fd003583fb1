from datetime import timedelta
from decimal import Decimal

import pytest

from storefront.data.models import VoucherUsageModel
from storefront.domain.errors import ReferentialIntegrityError, VoucherExhaustedError, VoucherRejected
from storefront.domain.schemas import VoucherCreate, VoucherUpdate
from storefront.services.voucher_service import VoucherService
from storefront.utils.clock import utcnow


def _redeemed(db, voucher, user, times=1):
    for _ in range(times):
        db.add(VoucherUsageModel(voucher_id=voucher.id, user_id=user.id))
    voucher.current_usage_count += times
    db.commit()


class TestValidate:
    def test_valid_voucher(self, db, user, voucher):
        result = VoucherService(db).validate("PCT10", user.id, Decimal("100"))

        assert result["valid"] is True
        assert result["voucher"].id == voucher.id

    def test_code_is_trimmed(self, db, user, voucher):
        assert VoucherService(db).validate("  PCT10 ", user.id, Decimal("100"))["valid"] is True

    def test_unknown_code(self, db, user):
        result = VoucherService(db).validate("NOPE", user.id, Decimal("100"))
        assert result == {"valid": False, "reason": "Voucher code not found"}

    def test_inactive(self, db, user, make_voucher):
        make_voucher(is_active=False)
        assert VoucherService(db).validate("PCT10", user.id, Decimal("100"))["reason"] == "Voucher is not active"

    def test_not_started(self, db, user, make_voucher):
        now = utcnow()
        make_voucher(start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))
        result = VoucherService(db).validate("PCT10", user.id, Decimal("100"))
        assert result["reason"] == "Voucher has not started yet"

    def test_expired(self, db, user, make_voucher):
        now = utcnow()
        make_voucher(start_date=now - timedelta(days=2), end_date=now - timedelta(days=1))
        assert VoucherService(db).validate("PCT10", user.id, Decimal("100"))["reason"] == "Voucher has expired"

    def test_minimum_purchase(self, db, user, make_voucher):
        make_voucher(min_purchase_amount=Decimal("50"))
        result = VoucherService(db).validate("PCT10", user.id, Decimal("49.99"))
        assert result["reason"] == "Minimum purchase amount of $50.00 required"

    def test_global_cap(self, db, user, other_user, make_voucher):
        voucher = make_voucher(total_usage_limit=1)
        _redeemed(db, voucher, other_user)
        result = VoucherService(db).validate("PCT10", user.id, Decimal("100"))
        assert result["reason"] == "Voucher usage limit reached"

    def test_per_user_cap(self, db, user, voucher):
        _redeemed(db, voucher, user)
        result = VoucherService(db).validate("PCT10", user.id, Decimal("100"))
        assert result["reason"] == "You have reached the usage limit for this voucher"

    def test_first_failing_check_wins(self, db, user, make_voucher):
        now = utcnow()
        make_voucher(
            is_active=False,
            start_date=now - timedelta(days=2),
            end_date=now - timedelta(days=1),
        )
        assert VoucherService(db).validate("PCT10", user.id, Decimal("1"))["reason"] == "Voucher is not active"


class TestComputeDiscount:
    def test_percentage_capped(self, make_voucher):
        voucher = make_voucher(discount_value="20", max_discount_amount=Decimal("15"))
        assert VoucherService.compute_discount(voucher, Decimal("100")) == Decimal("15.00")

    def test_percentage_under_cap(self, make_voucher):
        voucher = make_voucher(discount_value="20", max_discount_amount=Decimal("50"))
        assert VoucherService.compute_discount(voucher, Decimal("100")) == Decimal("20.00")

    def test_fixed(self, make_voucher):
        voucher = make_voucher(code="FIVE", discount_type="fixed", discount_value="5")
        assert VoucherService.compute_discount(voucher, Decimal("100")) == Decimal("5.00")


class TestRedeem:
    def test_redeem_counts_and_records(self, db, user, voucher):
        svc = VoucherService(db)
        svc.redeem(voucher.id, user.id, order_id=None)
        db.commit()

        db.refresh(voucher)
        assert voucher.current_usage_count == 1
        assert svc.repo.count_user_usages(voucher.id, user.id) == 1

    def test_redeem_past_global_cap(self, db, user, other_user, make_voucher):
        voucher = make_voucher(total_usage_limit=1)
        _redeemed(db, voucher, other_user)

        with pytest.raises(VoucherExhaustedError):
            VoucherService(db).redeem(voucher.id, user.id, order_id=None)

    def test_redeem_past_per_user_cap(self, db, user, voucher):
        _redeemed(db, voucher, user)

        with pytest.raises(VoucherExhaustedError):
            VoucherService(db).redeem(voucher.id, user.id, order_id=None)


class TestAdmin:
    def _payload(self, **kwargs):
        now = utcnow()
        data = dict(
            code="NEW5",
            discount_type="fixed",
            discount_value=Decimal("5"),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
        )
        data.update(kwargs)
        return VoucherCreate(**data)

    def test_duplicate_code(self, db):
        svc = VoucherService(db)
        svc.create_voucher(self._payload())
        with pytest.raises(ValueError, match="already exists"):
            svc.create_voucher(self._payload())

    def test_window_must_not_be_inverted(self):
        now = utcnow()
        with pytest.raises(ValueError):
            self._payload(start_date=now, end_date=now - timedelta(days=1))

    def test_total_limit_below_current_count(self, db, user, other_user, make_voucher):
        voucher = make_voucher(total_usage_limit=5)
        _redeemed(db, voucher, user)
        _redeemed(db, voucher, other_user)

        with pytest.raises(ValueError, match="total_usage_limit"):
            VoucherService(db).update_voucher(voucher.id, VoucherUpdate(total_usage_limit=1))

    def test_redeemed_voucher_cannot_be_deleted(self, db, user, voucher):
        _redeemed(db, voucher, user)
        with pytest.raises(ReferentialIntegrityError):
            VoucherService(db).delete_voucher(voucher.id)

    def test_check_raises_with_reason(self, db, user):
        with pytest.raises(VoucherRejected) as exc:
            VoucherService(db).check("NOPE", user.id, Decimal("10"))
        assert exc.value.reason == "Voucher code not found"
