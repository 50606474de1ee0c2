"""End-to-end procurement flows driven through the service layer."""
from decimal import Decimal

import pytest

from spareparts.core.errors import ConflictError, InsufficientStockError
from spareparts.core.security import Actor
from spareparts.models import PartsActivityLog, StockItem
from spareparts.services import order_service, registry, task_service, warehouse_service


def test_candy_part_through_complus_to_the_technician(
    db, admin, workshop, parties, routing_engine, synchronizer, directory, notifier
):
    tech = workshop["technician"]
    service = workshop["service"]
    technician = Actor(user_id=2, role="technician", technician_id=tech.TechnicianID)
    complus = Actor(user_id=3, role="business_partner", party_id=parties["ComPlus"].PartyID)

    order = order_service.request_part(
        db, actor=technician, part_name="Compressor Relay", quantity=2,
        service_id=service.ServiceID, urgency="high", estimated_cost="18.00",
        directory=directory, notifier=notifier,
    )
    assert order.Status_s == "requested"

    order_service.approve_order(db, order_id=order.OrderID, actor=admin, notifier=notifier)

    assigned = order_service.assign_to_party(
        db, order_id=order.OrderID, brand="Candy", actor=admin, engine=routing_engine, notifier=notifier,
    )
    assert assigned.match.rule == "priority_group"
    assert assigned.match.party.name == "ComPlus"
    assert assigned.order.Status_s == "assigned_to_partner"
    task_id = assigned.task.TaskID

    steps = [("sent", "partner_processing"), ("delivered", "waiting_delivery")]
    for task_status, order_status in steps:
        result = task_service.advance_task_status(
            db, task_id=task_id, new_status=task_status, actor=complus,
            supplier_price="16.50" if task_status == "sent" else None,
            synchronizer=synchronizer, notifier=notifier,
        )
        assert result.warnings == []
        assert order_service.get_order(db, order.OrderID).Status_s == order_status

    received = order_service.receive_order(
        db, order_id=order.OrderID, actor=admin, location="Shelf C1", directory=directory, notifier=notifier,
    )
    stock = received.stock_item
    assert received.order.Status_s == "available"
    assert stock.Quantity == 2
    # supplier price beat the estimate
    assert stock.UnitCost == Decimal("16.50")
    assert stock.SupplierName == "ComPlus"

    warehouse_service.allocate_stock(
        db, stock_item_id=stock.StockItemID, service_id=service.ServiceID,
        technician_id=tech.TechnicianID, quantity=2, actor=admin, directory=directory, notifier=notifier,
    )
    assert db.get(StockItem, stock.StockItemID).Quantity == 0
    assert order_service.get_order(db, order.OrderID).Status_s == "consumed"

    with pytest.raises(InsufficientStockError):
        warehouse_service.allocate_stock(
            db, stock_item_id=stock.StockItemID, service_id=service.ServiceID,
            technician_id=tech.TechnicianID, quantity=1, actor=admin,
        )

    delivered = order_service.confirm_delivery(db, order_id=order.OrderID, actor=admin)
    assert delivered.Status_s == "delivered"
    assert delivered.DeliveredDate is not None

    actions = [
        r.Action for r in db.query(PartsActivityLog).order_by(PartsActivityLog.LogID).all()
    ]
    assert actions == ["received", "allocated"]
    assert [e.event_type for e in notifier.events] == [
        "spare_part_requested",
        "spare_part_approved",
        "spare_part_assigned",
        "fulfillment_task_status",
        "fulfillment_task_status",
        "spare_part_received",
        "spare_part_allocated",
    ]


def test_inactive_preferred_partner_falls_back_to_brand_supplier(db, make_order, admin, parties, routing_engine):
    registry.set_party_active(db, party_id=parties["ComPlus"].PartyID, is_active=False)
    order = make_order()
    result = order_service.assign_to_party(
        db, order_id=order.OrderID, brand="Candy", actor=admin, engine=routing_engine,
    )
    assert result.match.rule == "token"
    assert result.order.AssignedSupplierID == parties["Candy Service"].PartyID


def test_two_admins_assigning_the_same_order(db, make_order, admin, parties, routing_engine):
    order = make_order()
    first = order_service.assign_to_party(
        db, order_id=order.OrderID, brand="Elica", actor=admin, engine=routing_engine,
    )
    other_admin = Actor(user_id=99, role="admin")
    with pytest.raises(ConflictError):
        order_service.assign_to_party(
            db, order_id=order.OrderID, brand="Candy", actor=other_admin, engine=routing_engine,
        )
    fresh = order_service.get_order(db, order.OrderID)
    assert fresh.AssignedSupplierID == first.order.AssignedSupplierID == parties["Elica Service"].PartyID
    assert fresh.AssignedPartnerID is None
    assert len(fresh.tasks) == 1
