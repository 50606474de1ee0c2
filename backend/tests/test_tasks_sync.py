from decimal import Decimal

import pytest

from spareparts.core.errors import ConflictError, PermissionDeniedError, ValidationError
from spareparts.core.security import Actor
from spareparts.models import FulfillmentTask, SparePartOrder
from spareparts.services import order_service, status_sync, task_service
from spareparts.services import notifications as ev


@pytest.fixture
def assigned(db, make_order, admin, parties):
    """Order for 2 relays assigned straight to the Electrolux supplier."""
    def _assign(party="Electrolux"):
        order = make_order()
        result = order_service.assign_to_party(
            db, order_id=order.OrderID, party_id=parties[party].PartyID, actor=admin,
        )
        return result.order, result.task
    return _assign


def _portal(parties, name, role="supplier"):
    return Actor(user_id=50, role=role, party_id=parties[name].PartyID)


@pytest.fixture
def supplier(parties):
    """Portal user of the Electrolux supplier, the default assignee above."""
    return _portal(parties, "Electrolux")


def _order(db, order_id):
    return db.get(SparePartOrder, order_id)


def test_supplier_sent_means_waiting_delivery(db, assigned, parties, synchronizer, notifier):
    order, task = assigned()
    result = task_service.advance_task_status(
        db, task_id=task.TaskID, new_status="sent", actor=_portal(parties, "Electrolux"),
        tracking_number=" RS123456 ", synchronizer=synchronizer, notifier=notifier,
    )
    assert result.warnings == []
    assert result.task.Status_s == "sent"
    assert result.task.SentAt is not None
    assert result.task.TrackingNumber == "RS123456"
    assert result.order_status == "waiting_delivery"
    assert _order(db, order.OrderID).Status_s == "waiting_delivery"
    assert notifier.events[-1].event_type == ev.TASK_STATUS_CHANGED


def test_supplier_separated_means_processing(db, assigned, supplier, synchronizer):
    order, task = assigned()
    task_service.advance_task_status(db, task_id=task.TaskID, new_status="separated", actor=supplier,
                                     synchronizer=synchronizer)
    assert _order(db, order.OrderID).Status_s == "supplier_processing"


def test_partner_sent_stays_in_partner_processing(db, assigned, parties, synchronizer):
    order, task = assigned("ComPlus")
    actor = _portal(parties, "ComPlus", role="business_partner")
    task_service.advance_task_status(db, task_id=task.TaskID, new_status="sent", actor=actor,
                                     synchronizer=synchronizer)
    assert _order(db, order.OrderID).Status_s == "partner_processing"

    task_service.advance_task_status(db, task_id=task.TaskID, new_status="delivered", actor=actor,
                                     synchronizer=synchronizer)
    assert _order(db, order.OrderID).Status_s == "waiting_delivery"


def test_invalid_task_move_is_conflict(db, assigned, supplier, synchronizer):
    order, task = assigned()
    with pytest.raises(ConflictError):
        task_service.advance_task_status(db, task_id=task.TaskID, new_status="delivered", actor=supplier,
                                         synchronizer=synchronizer)
    assert db.get(FulfillmentTask, task.TaskID).Status_s == "pending"
    assert _order(db, order.OrderID).Status_s == "assigned_to_supplier"


def test_unknown_task_status_is_validation_error(db, assigned, supplier):
    _, task = assigned()
    with pytest.raises(ValidationError):
        task_service.advance_task_status(db, task_id=task.TaskID, new_status="shipped", actor=supplier)


def test_other_party_cannot_touch_task(db, assigned, parties):
    _, task = assigned()
    with pytest.raises(PermissionDeniedError):
        task_service.advance_task_status(db, task_id=task.TaskID, new_status="separated",
                                         actor=_portal(parties, "Elica Service"))
    with pytest.raises(PermissionDeniedError):
        task_service.get_task(db, task.TaskID, _portal(parties, "Elica Service"))


def test_failed_sync_keeps_task_and_warns(db, assigned, supplier, synchronizer, monkeypatch):
    order, task = assigned()

    def boom(*args, **kwargs):
        raise RuntimeError("lock timeout")

    monkeypatch.setattr(status_sync, "apply_task_to_order", boom)
    result = task_service.advance_task_status(db, task_id=task.TaskID, new_status="sent", actor=supplier,
                                              synchronizer=synchronizer)
    assert [w.code for w in result.warnings] == ["SYNC_FAILURE"]
    assert result.warnings[0].context["order_id"] == order.OrderID
    assert result.order_status is None
    assert db.get(FulfillmentTask, task.TaskID).Status_s == "sent"
    assert _order(db, order.OrderID).Status_s == "assigned_to_supplier"

    monkeypatch.undo()
    summary = synchronizer.reconcile(db)
    assert summary["updated"] == [order.OrderID]
    db.expire_all()
    assert _order(db, order.OrderID).Status_s == "waiting_delivery"

    # nothing left to repair
    assert synchronizer.reconcile(db)["updated"] == []


def test_no_synchronizer_leaves_order_for_reconcile(db, assigned, supplier, synchronizer):
    order, task = assigned()
    task_service.advance_task_status(db, task_id=task.TaskID, new_status="separated", actor=supplier)
    assert _order(db, order.OrderID).Status_s == "assigned_to_supplier"
    assert synchronizer.reconcile_once()["updated"] == [order.OrderID]
    db.expire_all()
    assert _order(db, order.OrderID).Status_s == "supplier_processing"


def test_cancelled_task_releases_assignment(db, assigned, admin, parties, synchronizer):
    order, task = assigned()
    task_service.advance_task_status(db, task_id=task.TaskID, new_status="cancelled", actor=admin,
                                     synchronizer=synchronizer)
    fresh = _order(db, order.OrderID)
    assert fresh.Status_s == "admin_ordered"
    assert fresh.AssignedSupplierID is None
    assert fresh.assigned_party_id is None

    # free to go to another party now
    again = order_service.assign_to_party(
        db, order_id=order.OrderID, party_id=parties["Elica Service"].PartyID, actor=admin,
    )
    assert again.order.AssignedSupplierID == parties["Elica Service"].PartyID


def test_supplier_price_and_notes_reach_the_order(db, assigned, parties, synchronizer):
    order, task = assigned()
    task_service.advance_task_status(
        db, task_id=task.TaskID, new_status="sent", actor=_portal(parties, "Electrolux"),
        supplier_price="45", notes="original part, 2 pcs", synchronizer=synchronizer,
    )
    fresh = _order(db, order.OrderID)
    assert fresh.ActualCost == Decimal("45.00")
    assert fresh.SupplierNotes == "original part, 2 pcs"


def test_late_task_update_does_not_regress_received_order(db, assigned, admin, supplier, synchronizer):
    order, task = assigned()
    task_service.advance_task_status(db, task_id=task.TaskID, new_status="sent", actor=supplier,
                                     synchronizer=synchronizer)
    order_service.receive_order(db, order_id=order.OrderID, actor=admin)

    result = task_service.advance_task_status(db, task_id=task.TaskID, new_status="delivered", actor=supplier,
                                              synchronizer=synchronizer)
    assert result.warnings == []
    assert result.order_status is None
    assert _order(db, order.OrderID).Status_s == "available"


def test_stale_task_of_previous_party_is_ignored(db, assigned, parties):
    order, task = assigned()
    fresh = _order(db, order.OrderID)
    status_sync.release_assignment(fresh)
    fresh.AssignedSupplierID = parties["Elica Service"].PartyID
    db.commit()

    assert status_sync.apply_task_to_order(db, task, fresh) is None


def test_party_task_listing_and_stats(db, assigned, supplier, parties):
    _, first = assigned()
    _, second = assigned()
    task_service.advance_task_status(db, task_id=second.TaskID, new_status="separated", actor=supplier)

    electrolux = parties["Electrolux"].PartyID
    assert [t.TaskID for t in task_service.get_tasks_for_party(db, electrolux, status="pending")] == [first.TaskID]
    assert len(task_service.get_tasks_for_party(db, electrolux)) == 2

    stats = task_service.party_stats(db, electrolux)
    assert stats["pending"] == 1
    assert stats["separated"] == 1
    assert stats["delivered"] == 0
    assert stats["total"] == 2


def test_admin_can_only_cancel_an_active_task(db, assigned, admin, synchronizer):
    order, task = assigned()
    with pytest.raises(PermissionDeniedError):
        task_service.advance_task_status(db, task_id=task.TaskID, new_status="sent", actor=admin,
                                         synchronizer=synchronizer)
    assert db.get(FulfillmentTask, task.TaskID).Status_s == "pending"
    assert _order(db, order.OrderID).Status_s == "assigned_to_supplier"

    # admins still read every task
    assert task_service.get_task(db, task.TaskID, admin).TaskID == task.TaskID
