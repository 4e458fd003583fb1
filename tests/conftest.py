import os

os.environ["DATABASE_URL"] = "sqlite://"

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api import create_app
from storefront.data import models  # noqa: F401
from storefront.data.database import Base, build_engine, get_db
from storefront.data.models import ProductModel, UserModel, VoucherModel
from storefront.services.notification_service import NotificationService
from storefront.utils.clock import utcnow


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def sent_invoice_emails(monkeypatch):
    """Invoice ids that would have been handed to Celery."""
    sent = []
    monkeypatch.setattr(NotificationService, "send_invoice_email", staticmethod(sent.append))
    return sent


@pytest.fixture()
def user(db):
    user = UserModel(id=1, name="Alice", email="alice@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def other_user(db):
    user = UserModel(id=2, name="Bob", email="bob@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def admin(db):
    user = UserModel(id=99, name="Admin", email="admin@example.com", is_admin=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def make_product(db):
    def _make(name="Widget", price="50.00", stock=10, **kwargs):
        product = ProductModel(name=name, price=Decimal(price), stock=stock, **kwargs)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def make_voucher(db):
    def _make(code="PCT10", discount_type="percentage", discount_value="10", **kwargs):
        now = utcnow()
        kwargs.setdefault("start_date", now - timedelta(days=1))
        kwargs.setdefault("end_date", now + timedelta(days=30))
        voucher = VoucherModel(
            code=code,
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            **kwargs,
        )
        db.add(voucher)
        db.commit()
        return voucher

    return _make


@pytest.fixture()
def voucher(make_voucher):
    return make_voucher()
