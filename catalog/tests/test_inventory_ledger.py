import pytest
from sqlalchemy.exc import IntegrityError

from ..core.config import MAX_STOCK_QUANTITY
from ..core.exceptions import InsufficientStock, LedgerImmutable, NotFound, ValidationFailure
from ..e_commerce.models import Product
from ..inventory import crud
from ..inventory.models import InventoryAdjustment, LowStockAlert
from .conftest import reload


def open_alerts(db, product_id, alert_type=None):
    query = db.query(LowStockAlert).filter(
        LowStockAlert.product_id == product_id,
        LowStockAlert.is_resolved == False
    )
    if alert_type:
        query = query.filter(LowStockAlert.alert_type == alert_type)
    return query.all()


def ledger_count(db, product_id=None):
    query = db.query(InventoryAdjustment)
    if product_id:
        query = query.filter(InventoryAdjustment.product_id == product_id)
    return query.count()


@pytest.fixture
def product(make_product):
    return make_product(quantity=25, low_stock_threshold=20, reorder_level=10)


def test_sale_into_low_stock_raises_one_alert(db, product, adjustment):
    crud.create_adjustment(db, adjustment(product.id, "sale", 10))

    current = reload(db, Product, product.id)
    assert current.stock_quantity == 15
    assert current.stock_status == "low_stock"
    assert len(open_alerts(db, product.id, "low_stock")) == 1
    assert open_alerts(db, product.id, "reorder") == []


def test_second_sale_adds_reorder_alert_only(db, product, adjustment):
    crud.create_adjustment(db, adjustment(product.id, "sale", 10))
    crud.create_adjustment(db, adjustment(product.id, "sale", 10))

    current = reload(db, Product, product.id)
    assert current.stock_quantity == 5
    assert current.stock_status == "low_stock"
    assert len(open_alerts(db, product.id, "low_stock")) == 1
    reorder = open_alerts(db, product.id, "reorder")
    assert len(reorder) == 1
    assert reorder[0].current_quantity == 5
    assert reorder[0].threshold == 10


def test_insufficient_stock_leaves_everything_unchanged(db, make_product, adjustment):
    product = make_product(quantity=5)
    crud.check_low_stock_alert(db, product.id, 5)
    db.commit()
    alerts_before = db.query(LowStockAlert).count()
    ledger_before = ledger_count(db)

    with pytest.raises(InsufficientStock) as exc_info:
        crud.create_adjustment(db, adjustment(product.id, "sale", 999))

    assert exc_info.value.available == 5
    current = reload(db, Product, product.id)
    assert current.stock_quantity == 5
    assert current.stock_status == "low_stock"
    assert ledger_count(db) == ledger_before
    assert db.query(LowStockAlert).count() == alerts_before


def test_absolute_adjustment_to_zero_is_out_of_stock(db, make_product, adjustment):
    product = make_product(quantity=80)
    crud.create_adjustment(db, adjustment(product.id, "adjustment", 0))

    current = reload(db, Product, product.id)
    assert current.stock_quantity == 0
    assert current.stock_status == "out_of_stock"


def test_bulk_isolates_failing_entries(db, make_product):
    first = make_product(quantity=30)
    second = make_product(quantity=30)

    results = crud.bulk_adjustments(db, [
        {"productId": first.id, "type": "sale", "quantity": 5, "reason": "order 1"},
        {"productId": first.id, "type": "gift", "quantity": 1, "reason": "bad"},
        {"productId": second.id, "type": "purchase", "quantity": 10, "reason": "restock"},
    ])

    assert [result.success for result in results] == [True, False, True]
    assert results[1].error_code == "INVALID_ADJUSTMENT_TYPE"
    assert "gift" in results[1].error
    assert results[0].adjustment_id and results[2].adjustment_id
    assert reload(db, Product, first.id).stock_quantity == 25
    assert reload(db, Product, second.id).stock_quantity == 40
    assert ledger_count(db) == 2


def test_bulk_reports_insufficient_stock_per_entry(db, make_product):
    product = make_product(quantity=3)
    results = crud.bulk_adjustments(db, [
        {"productId": product.id, "type": "sale", "quantity": 5, "reason": "too many"},
        {"productId": product.id, "type": "sale", "quantity": 2, "reason": "fits"},
    ])
    assert results[0].error_code == "INSUFFICIENT_STOCK"
    assert results[1].success is True
    assert reload(db, Product, product.id).stock_quantity == 1


def test_bulk_oversized_quantity_fails_alone(db, make_product):
    first = make_product(quantity=30)
    second = make_product(quantity=30)

    results = crud.bulk_adjustments(db, [
        {"productId": first.id, "type": "sale", "quantity": 5, "reason": "order 1"},
        {"productId": first.id, "type": "purchase", "quantity": 10**20, "reason": "typo"},
        {"productId": second.id, "type": "purchase", "quantity": 10, "reason": "restock"},
    ])

    assert [result.success for result in results] == [True, False, True]
    assert results[1].error_code == "VALIDATION_ERROR"
    assert reload(db, Product, first.id).stock_quantity == 25
    assert reload(db, Product, second.id).stock_quantity == 40
    assert ledger_count(db) == 2


def test_adjustment_past_maximum_leaves_product_unchanged(db, make_product, adjustment):
    product = make_product(quantity=MAX_STOCK_QUANTITY)

    with pytest.raises(ValidationFailure):
        crud.create_adjustment(db, adjustment(product.id, "purchase", 1))

    assert reload(db, Product, product.id).stock_quantity == MAX_STOCK_QUANTITY
    assert ledger_count(db, product.id) == 0


def test_unknown_product_is_not_found(db, adjustment):
    with pytest.raises(NotFound):
        crud.create_adjustment(db, adjustment("prod_missing", "purchase", 5))
    assert ledger_count(db) == 0


def test_ledger_entry_records_request(db, product, adjustment):
    adjustment_id = crud.create_adjustment(
        db, adjustment(product.id, "damage", 2, reason="dropped", notes="pallet 4")
    )
    entry = db.get(InventoryAdjustment, adjustment_id)
    assert adjustment_id.startswith("adj_")
    assert entry.adjustment_type == "damage"
    assert entry.quantity == 2
    assert entry.reason == "dropped"
    assert entry.notes == "pallet 4"
    assert entry.created_by == "admin"


def test_created_by_is_kept_when_given(db, product, adjustment):
    adjustment_id = crud.create_adjustment(db, adjustment(product.id, "purchase", 1, createdBy="warehouse"))
    assert db.get(InventoryAdjustment, adjustment_id).created_by == "warehouse"


def test_stock_status_tracks_quantity_after_each_adjustment(db, product, adjustment):
    steps = [("sale", 5), ("purchase", 40), ("theft", 60), ("return", 1), ("transfer", 19), ("adjustment", 21)]
    for adjustment_type, quantity in steps:
        crud.create_adjustment(db, adjustment(product.id, adjustment_type, quantity))
        current = reload(db, Product, product.id)
        assert current.stock_quantity >= 0
        if current.stock_quantity == 0:
            assert current.stock_status == "out_of_stock"
        elif current.stock_quantity <= current.low_stock_threshold:
            assert current.stock_status == "low_stock"
        else:
            assert current.stock_status == "in_stock"
    assert ledger_count(db, product.id) == len(steps)


def test_alerts_stay_open_after_restock(db, product, adjustment):
    crud.create_adjustment(db, adjustment(product.id, "sale", 20))
    crud.create_adjustment(db, adjustment(product.id, "purchase", 100))

    assert reload(db, Product, product.id).stock_status == "in_stock"
    assert len(open_alerts(db, product.id, "low_stock")) == 1
    assert len(open_alerts(db, product.id, "reorder")) == 1


def test_resolve_alert_is_idempotent(db, product, adjustment):
    crud.create_adjustment(db, adjustment(product.id, "sale", 10))
    alert = open_alerts(db, product.id, "low_stock")[0]

    assert crud.resolve_alert(db, alert.id) is True
    resolved = reload(db, LowStockAlert, alert.id)
    assert resolved.is_resolved is True
    first_resolved_at = resolved.resolved_at
    assert first_resolved_at is not None

    assert crud.resolve_alert(db, alert.id) is False
    assert reload(db, LowStockAlert, alert.id).resolved_at == first_resolved_at
    assert crud.get_alert(db, alert.id)["resolved_at"] == first_resolved_at
    assert crud.get_alert(db, "alert_missing") is None


def test_resolve_unknown_alert_is_noop(db):
    assert crud.resolve_alert(db, "alert_missing") is False


def test_new_alert_after_resolution(db, product, adjustment):
    crud.create_adjustment(db, adjustment(product.id, "sale", 10))
    alert = open_alerts(db, product.id, "low_stock")[0]
    crud.resolve_alert(db, alert.id)

    crud.create_adjustment(db, adjustment(product.id, "sale", 1))
    alerts = db.query(LowStockAlert).filter(
        LowStockAlert.product_id == product.id,
        LowStockAlert.alert_type == "low_stock"
    ).all()
    assert len(alerts) == 2
    assert len(open_alerts(db, product.id, "low_stock")) == 1


def test_database_refuses_second_open_alert(db, product):
    db.add(LowStockAlert(product_id=product.id, alert_type="low_stock", current_quantity=5, threshold=20))
    db.commit()
    db.add(LowStockAlert(product_id=product.id, alert_type="low_stock", current_quantity=4, threshold=20))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_ledger_rows_cannot_be_updated(db, product, adjustment):
    adjustment_id = crud.create_adjustment(db, adjustment(product.id, "sale", 1))
    entry = db.get(InventoryAdjustment, adjustment_id)
    entry.quantity = 500
    with pytest.raises(LedgerImmutable):
        db.flush()
    db.rollback()
    assert reload(db, InventoryAdjustment, adjustment_id).quantity == 1


def test_ledger_rows_cannot_be_deleted(db, product, adjustment):
    adjustment_id = crud.create_adjustment(db, adjustment(product.id, "sale", 1))
    db.delete(db.get(InventoryAdjustment, adjustment_id))
    with pytest.raises(LedgerImmutable):
        db.flush()
    db.rollback()
    assert ledger_count(db, product.id) == 1


def test_sync_stock_status_corrects_drift(db, make_product):
    drifted = make_product(quantity=0)
    healthy = make_product(quantity=50)
    db.query(Product).filter(Product.id == drifted.id).update({Product.stock_status: "in_stock"})
    db.commit()

    assert crud.sync_stock_status(db) == 1
    assert reload(db, Product, drifted.id).stock_status == "out_of_stock"
    assert reload(db, Product, healthy.id).stock_status == "in_stock"
    assert crud.sync_stock_status(db, healthy.id) == 0


def test_sync_unknown_product(db):
    with pytest.raises(NotFound):
        crud.sync_stock_status(db, "prod_missing")


@pytest.mark.parametrize("fields, expected", [
    ({}, "out_of_stock"),
    ({"stock_quantity": 5}, "low_stock"),
    ({"stock_quantity": 50}, "in_stock"),
    ({"stock_quantity": 50, "low_stock_threshold": 60}, "low_stock"),
])
def test_new_product_without_status_gets_derived_status(db, category, fields, expected):
    product = Product(sku=f"NEW-{expected}-{len(fields)}", name="New arrival", slug=f"new-arrival-{len(fields)}",
                      category_id=category.id, price=1, **fields)
    db.add(product)
    db.commit()
    assert reload(db, Product, product.id).stock_status == expected
