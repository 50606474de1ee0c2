import pytest

from spareparts.core.errors import (
    ConflictError, InsufficientStockError, NotFoundError, PermissionDeniedError, ValidationError,
)
from spareparts.core.security import Actor
from spareparts.models import PartsActivityLog, PartsAllocation, SparePartOrder, StockItem
from spareparts.services import order_service, warehouse_service


@pytest.fixture
def received(db, make_order, admin, workshop, directory):
    """Two relays for the Candy job, received into the warehouse."""
    order = make_order(service_id=workshop["service"].ServiceID, estimated_cost="7.20", directory=directory)
    order_service.approve_order(db, order_id=order.OrderID, actor=admin)
    return order_service.receive_order(db, order_id=order.OrderID, actor=admin, directory=directory)


def _allocate(db, received, workshop, admin, quantity, **kw):
    return warehouse_service.allocate_stock(
        db,
        stock_item_id=received.stock_item.StockItemID,
        service_id=workshop["service"].ServiceID,
        technician_id=workshop["technician"].TechnicianID,
        quantity=quantity,
        actor=admin,
        **kw,
    )


def _actions(db, stock_item_id):
    rows = (
        db.query(PartsActivityLog)
        .filter_by(StockItemID=stock_item_id)
        .order_by(PartsActivityLog.LogID)
        .all()
    )
    return [(r.Action, r.PreviousQuantity, r.NewQuantity) for r in rows]


def test_insufficient_stock_changes_nothing(db, received, workshop, admin):
    with pytest.raises(InsufficientStockError) as exc:
        _allocate(db, received, workshop, admin, 3)
    assert exc.value.on_hand == 2
    assert exc.value.requested == 3
    assert exc.value.status_code == 409

    stock = db.get(StockItem, received.stock_item.StockItemID)
    assert stock.Quantity == 2
    assert db.query(PartsAllocation).count() == 0
    assert _actions(db, stock.StockItemID) == [("received", 0, 2)]


def test_partial_allocation_keeps_order_available(db, received, workshop, admin, notifier):
    allocation = _allocate(db, received, workshop, admin, 1, notes="left side", notifier=notifier)
    assert allocation.Status_s == "allocated"
    assert allocation.AllocatedBy == admin.user_id
    assert db.get(StockItem, received.stock_item.StockItemID).Quantity == 1
    assert db.get(SparePartOrder, received.order.OrderID).Status_s == "available"
    assert notifier.events[-1].payload["allocation_id"] == allocation.AllocationID


def test_full_allocation_consumes_order(db, received, workshop, admin):
    allocation = _allocate(db, received, workshop, admin, 2)
    stock_id = received.stock_item.StockItemID

    assert db.get(StockItem, stock_id).Quantity == 0
    assert db.get(SparePartOrder, received.order.OrderID).Status_s == "consumed"
    assert _actions(db, stock_id) == [("received", 0, 2), ("allocated", 2, 0)]

    log = db.query(PartsActivityLog).filter_by(AllocationID=allocation.AllocationID).one()
    assert log.TechnicianID == workshop["technician"].TechnicianID
    assert log.ServiceID == workshop["service"].ServiceID


def test_return_puts_stock_back(db, received, workshop, admin):
    allocation = _allocate(db, received, workshop, admin, 2)
    returned = warehouse_service.return_allocation(
        db, allocation_id=allocation.AllocationID, actor=admin, notes="wrong model",
    )
    stock_id = received.stock_item.StockItemID
    assert returned.Status_s == "returned"
    assert returned.ReturnedAt is not None
    assert db.get(StockItem, stock_id).Quantity == 2
    assert db.get(SparePartOrder, received.order.OrderID).Status_s == "available"
    assert _actions(db, stock_id)[-1] == ("returned", 0, 2)

    with pytest.raises(ConflictError):
        warehouse_service.return_allocation(db, allocation_id=allocation.AllocationID, actor=admin)


def test_technician_consumes_own_allocation(db, received, workshop, admin):
    allocation = _allocate(db, received, workshop, admin, 1)
    owner = Actor(user_id=9, role="technician", technician_id=workshop["technician"].TechnicianID)
    stranger = Actor(user_id=10, role="technician", technician_id=999)

    with pytest.raises(PermissionDeniedError):
        warehouse_service.consume_allocation(db, allocation_id=allocation.AllocationID, actor=stranger)

    consumed = warehouse_service.consume_allocation(db, allocation_id=allocation.AllocationID, actor=owner)
    assert consumed.Status_s == "consumed"
    assert consumed.ConsumedAt is not None
    # consuming never touches stock again
    assert db.get(StockItem, received.stock_item.StockItemID).Quantity == 1

    with pytest.raises(ConflictError):
        warehouse_service.consume_allocation(db, allocation_id=allocation.AllocationID, actor=admin)


def test_only_admin_allocates(db, received, workshop):
    tech = Actor(user_id=9, role="technician", technician_id=workshop["technician"].TechnicianID)
    with pytest.raises(PermissionDeniedError):
        _allocate(db, received, workshop, tech, 1)


def test_allocation_validation(db, received, workshop, admin, directory):
    with pytest.raises(ValidationError):
        _allocate(db, received, workshop, admin, 0)
    with pytest.raises(NotFoundError):
        warehouse_service.allocate_stock(
            db, stock_item_id=received.stock_item.StockItemID, service_id=404,
            technician_id=workshop["technician"].TechnicianID, quantity=1, actor=admin, directory=directory,
        )
    with pytest.raises(NotFoundError):
        warehouse_service.allocate_stock(
            db, stock_item_id=9999, service_id=workshop["service"].ServiceID,
            technician_id=workshop["technician"].TechnicianID, quantity=1, actor=admin,
        )


def test_allocation_rows_are_immutable(db, received, workshop, admin):
    allocation = _allocate(db, received, workshop, admin, 1)
    row = db.get(PartsAllocation, allocation.AllocationID)
    row.Quantity = 5
    with pytest.raises(ConflictError):
        db.commit()
    db.rollback()

    row = db.get(PartsAllocation, allocation.AllocationID)
    db.delete(row)
    with pytest.raises(ConflictError):
        db.commit()
    db.rollback()
    assert db.get(PartsAllocation, allocation.AllocationID).Quantity == 1


def test_activity_log_is_append_only(db, received):
    log = db.query(PartsActivityLog).first()
    log.Description = "edited"
    with pytest.raises(ConflictError):
        db.commit()
    db.rollback()

    log = db.query(PartsActivityLog).first()
    db.delete(log)
    with pytest.raises(ConflictError):
        db.commit()
    db.rollback()
    assert db.query(PartsActivityLog).count() == 1


def test_stock_listing(db, received, workshop, admin):
    assert [s.PartName for s in warehouse_service.list_stock(db, q="relay")] == ["Compressor Relay"]
    assert warehouse_service.list_stock(db, q="pump") == []

    _allocate(db, received, workshop, admin, 2)
    assert warehouse_service.list_stock(db, in_stock_only=True) == []
    assert len(warehouse_service.list_allocations(db, technician_id=workshop["technician"].TechnicianID)) == 1
    assert [a.Action for a in warehouse_service.list_activity(db)] == ["allocated", "received"]
