# backend/spareparts/domain/lifecycle.py
"""
Transition tables for the two stateful entities.

Every status write in the services goes through ``ensure_order_transition``
or ``ensure_task_transition``; nothing else compares status strings to decide
whether a move is legal.
"""
from __future__ import annotations
from typing import Dict, FrozenSet, Union

from ..core.errors import ConflictError
from .statuses import OrderStatus, TaskStatus

O = OrderStatus
T = TaskStatus

# technician requests start as 'requested', admin direct orders as 'pending'
ENTRY_STATES: FrozenSet[OrderStatus] = frozenset({O.REQUESTED, O.PENDING})

ASSIGNED_STATES: FrozenSet[OrderStatus] = frozenset({
    O.ASSIGNED_TO_PARTNER, O.PARTNER_PROCESSING,
    O.ASSIGNED_TO_SUPPLIER, O.SUPPLIER_PROCESSING,
})

# before the part reaches the warehouse
PRE_RECEIPT_STATES: FrozenSet[OrderStatus] = ENTRY_STATES | ASSIGNED_STATES | {O.ADMIN_ORDERED, O.WAITING_DELIVERY}

TERMINAL_ORDER_STATES: FrozenSet[OrderStatus] = frozenset({O.DELIVERED, O.CANCELLED, O.REMOVED_FROM_ORDERING})

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    O.REQUESTED: frozenset({O.ADMIN_ORDERED, O.ASSIGNED_TO_PARTNER, O.ASSIGNED_TO_SUPPLIER,
                            O.CANCELLED, O.REMOVED_FROM_ORDERING}),
    O.PENDING: frozenset({O.ADMIN_ORDERED, O.ASSIGNED_TO_PARTNER, O.ASSIGNED_TO_SUPPLIER,
                          O.CANCELLED, O.REMOVED_FROM_ORDERING}),
    O.ADMIN_ORDERED: frozenset({O.ASSIGNED_TO_PARTNER, O.ASSIGNED_TO_SUPPLIER, O.WAITING_DELIVERY,
                                O.AVAILABLE, O.CANCELLED, O.REMOVED_FROM_ORDERING}),
    O.ASSIGNED_TO_PARTNER: frozenset({O.PARTNER_PROCESSING, O.WAITING_DELIVERY, O.ADMIN_ORDERED, O.CANCELLED}),
    O.PARTNER_PROCESSING: frozenset({O.WAITING_DELIVERY, O.ADMIN_ORDERED, O.CANCELLED}),
    O.ASSIGNED_TO_SUPPLIER: frozenset({O.SUPPLIER_PROCESSING, O.WAITING_DELIVERY, O.ADMIN_ORDERED, O.CANCELLED}),
    O.SUPPLIER_PROCESSING: frozenset({O.WAITING_DELIVERY, O.ADMIN_ORDERED, O.CANCELLED}),
    O.WAITING_DELIVERY: frozenset({O.AVAILABLE, O.ADMIN_ORDERED, O.CANCELLED}),
    O.AVAILABLE: frozenset({O.CONSUMED}),
    O.CONSUMED: frozenset({O.AVAILABLE, O.DELIVERED}),
    O.DELIVERED: frozenset(),
    O.CANCELLED: frozenset(),
    O.REMOVED_FROM_ORDERING: frozenset(),
}

ACTIVE_TASK_STATES: FrozenSet[TaskStatus] = frozenset({T.PENDING, T.SEPARATED, T.SENT})
TERMINAL_TASK_STATES: FrozenSet[TaskStatus] = frozenset({T.DELIVERED, T.CANCELLED})

TASK_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    T.PENDING: frozenset({T.SEPARATED, T.SENT, T.CANCELLED}),
    T.SEPARATED: frozenset({T.SENT, T.CANCELLED}),
    T.SENT: frozenset({T.DELIVERED, T.CANCELLED}),
    T.DELIVERED: frozenset(),
    T.CANCELLED: frozenset(),
}


def as_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ConflictError(f"Unknown order status '{value}'")


def as_task_status(value: Union[str, TaskStatus]) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ConflictError(f"Unknown task status '{value}'")


def can_order_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> bool:
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


def ensure_order_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> OrderStatus:
    cur = as_order_status(current)
    tgt = as_order_status(target)
    if cur == tgt:
        raise ConflictError(f"Order is already '{cur}'.")
    if tgt not in ORDER_TRANSITIONS[cur]:
        raise ConflictError(f"Order cannot move from '{cur}' to '{tgt}'.")
    return tgt


def ensure_task_transition(current: Union[str, TaskStatus], target: Union[str, TaskStatus]) -> TaskStatus:
    cur = as_task_status(current)
    tgt = as_task_status(target)
    if cur == tgt:
        raise ConflictError(f"Task is already '{cur}'.")
    if tgt not in TASK_TRANSITIONS[cur]:
        raise ConflictError(f"Task cannot move from '{cur}' to '{tgt}'.")
    return tgt
