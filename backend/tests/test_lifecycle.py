import pytest

from spareparts.core.errors import ConflictError
from spareparts.domain.lifecycle import (
    ORDER_TRANSITIONS, TERMINAL_ORDER_STATES, ensure_order_transition, ensure_task_transition,
)
from spareparts.domain.statuses import OrderStatus as O, TaskStatus as T, PartyType
from spareparts.services.status_sync import mirrored_order_status


def test_every_status_has_a_transition_row():
    assert set(ORDER_TRANSITIONS) == set(O)


@pytest.mark.parametrize("state", sorted(TERMINAL_ORDER_STATES))
def test_terminal_states_have_no_exit(state):
    assert ORDER_TRANSITIONS[state] == frozenset()
    with pytest.raises(ConflictError):
        ensure_order_transition(state, O.ADMIN_ORDERED)


def test_repeating_a_transition_is_rejected():
    with pytest.raises(ConflictError):
        ensure_order_transition(O.ADMIN_ORDERED, O.ADMIN_ORDERED)
    with pytest.raises(ConflictError):
        ensure_task_transition(T.SENT, T.SENT)


def test_order_transition_rules():
    assert ensure_order_transition("requested", "admin_ordered") == O.ADMIN_ORDERED
    assert ensure_order_transition(O.WAITING_DELIVERY, O.AVAILABLE) == O.AVAILABLE
    with pytest.raises(ConflictError):
        ensure_order_transition(O.AVAILABLE, O.WAITING_DELIVERY)
    with pytest.raises(ConflictError):
        ensure_order_transition(O.REQUESTED, O.AVAILABLE)
    with pytest.raises(ConflictError):
        ensure_order_transition(O.AVAILABLE, O.CANCELLED)


def test_unknown_status_is_conflict():
    with pytest.raises(ConflictError):
        ensure_order_transition("approved", O.ADMIN_ORDERED)


def test_task_transition_rules():
    assert ensure_task_transition(T.PENDING, T.SENT) == T.SENT
    with pytest.raises(ConflictError):
        ensure_task_transition(T.DELIVERED, T.CANCELLED)
    with pytest.raises(ConflictError):
        ensure_task_transition(T.SENT, T.SEPARATED)


@pytest.mark.parametrize("task_status, partner, supplier", [
    (T.PENDING, O.ASSIGNED_TO_PARTNER, O.ASSIGNED_TO_SUPPLIER),
    (T.SEPARATED, O.PARTNER_PROCESSING, O.SUPPLIER_PROCESSING),
    (T.SENT, O.PARTNER_PROCESSING, O.WAITING_DELIVERY),
    (T.DELIVERED, O.WAITING_DELIVERY, O.WAITING_DELIVERY),
    (T.CANCELLED, O.ADMIN_ORDERED, O.ADMIN_ORDERED),
])
def test_mirror_table(task_status, partner, supplier):
    assert mirrored_order_status(task_status, PartyType.PARTNER) == partner
    assert mirrored_order_status(task_status, "supplier") == supplier
