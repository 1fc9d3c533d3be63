import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.database import create_db_engine, init_db, get_db
from ..core.helpers import slugify
from ..e_commerce.models import Category, Product
from ..inventory.schemas import parse_adjustment
from ..inventory.stock import calculate_stock_status
from ..main import app

SESSION_HEADERS = {"X-Session-ID": "sess_test_123"}


@pytest.fixture
def engine():
    # One shared in-memory connection per test
    test_engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the startup hook would touch the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_category(db):
    def _make(name, parent=None, is_active=True, display_order=0):
        category = Category(
            name=name,
            slug=slugify(name),
            parent_id=parent.id if parent is not None else None,
            is_active=is_active,
            display_order=display_order,
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        return category
    return _make


@pytest.fixture
def category(make_category):
    return make_category("General")


@pytest.fixture
def make_product(db, category):
    counter = itertools.count(1)

    def _make(
        name=None,
        quantity=25,
        low_stock_threshold=20,
        reorder_level=10,
        price="10.00",
        category_id=None,
        status="active",
        is_active=True,
        is_featured=False,
        sku=None,
        description="",
    ):
        n = next(counter)
        name = name or f"Product {n}"
        product = Product(
            sku=sku or f"SKU-{n:04d}",
            name=name,
            slug=slugify(name),
            description=description,
            category_id=category_id or category.id,
            price=Decimal(price),
            stock_quantity=quantity,
            stock_status=calculate_stock_status(quantity, low_stock_threshold),
            low_stock_threshold=low_stock_threshold,
            reorder_level=reorder_level,
            status=status,
            is_active=is_active,
            is_featured=is_featured,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture
def adjustment():
    """Build a typed adjustment request from keyword arguments."""
    def _build(product_id, adjustment_type, quantity, reason="test", **extra):
        payload = {"productId": product_id, "type": adjustment_type, "quantity": quantity, "reason": reason}
        payload.update(extra)
        return parse_adjustment(payload)
    return _build


def reload(db, model, pk):
    """Fresh copy of a row, bypassing the session's identity map."""
    db.expire_all()
    return db.get(model, pk)
