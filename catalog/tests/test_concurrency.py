import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from ..core.database import create_db_engine, init_db
from ..e_commerce.models import Category, Product
from ..inventory import crud
from ..inventory.models import InventoryAdjustment
from ..inventory.schemas import parse_adjustment

THREADS = 8
SALES_PER_THREAD = 20
STARTING_STOCK = 1000


@pytest.fixture
def file_sessions(tmp_path):
    # WAL file database so each thread gets its own connection
    file_engine = create_db_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(file_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    file_engine.dispose()


def test_concurrent_sales_do_not_lose_updates(file_sessions):
    setup = file_sessions()
    category = Category(name="Warehouse", slug="warehouse")
    setup.add(category)
    setup.flush()
    product = Product(
        sku="CONC-001",
        name="Contended Widget",
        slug="contended-widget",
        category_id=category.id,
        price=Decimal("1.00"),
        stock_quantity=STARTING_STOCK,
        low_stock_threshold=20,
        reorder_level=10,
    )
    setup.add(product)
    setup.commit()
    product_id = product.id
    setup.close()

    errors = []
    start = threading.Barrier(THREADS)

    def worker():
        session = file_sessions()
        try:
            start.wait()
            for _ in range(SALES_PER_THREAD):
                crud.create_adjustment(session, parse_adjustment({
                    "productId": product_id, "type": "sale", "quantity": 1, "reason": "concurrent order",
                }))
        except Exception as e:  # collected and asserted on below
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    check = file_sessions()
    try:
        final = check.get(Product, product_id)
        assert final.stock_quantity == STARTING_STOCK - THREADS * SALES_PER_THREAD
        assert final.stock_status == "in_stock"
        ledger_rows = check.query(InventoryAdjustment).filter(InventoryAdjustment.product_id == product_id).count()
        assert ledger_rows == THREADS * SALES_PER_THREAD
    finally:
        check.close()
