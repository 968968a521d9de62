"""Order lifecycle transition table.

Every role-specific action on an order resolves its next status here, so the
primary ``status`` and the independent ``shipment_status`` stay mutually
consistent regardless of which surface issued the update.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from fruitflow.models.order import OrderStatus, ShipmentStatus


class TransitionError(ValueError):
    """Raised when an action is not allowed from the order's current state."""


class OrderAction(str, enum.Enum):
    SUPPLIER_CONFIRM = "supplier_confirm"
    CANCEL = "cancel"
    PAY = "pay"
    ASSIGN_TRANSPORTER = "assign_transporter"
    CONFIRM_RECEIPT = "confirm_receipt"
    DENY_RECEIPT = "deny_receipt"


_TRANSITIONS: dict[OrderAction, tuple[frozenset[OrderStatus], OrderStatus]] = {
    OrderAction.SUPPLIER_CONFIRM: (
        frozenset({OrderStatus.PENDING, OrderStatus.AWAITING_SUPPLIER_CONFIRMATION}),
        OrderStatus.AWAITING_PAYMENT,
    ),
    OrderAction.CANCEL: (
        frozenset(
            {
                OrderStatus.PENDING,
                OrderStatus.AWAITING_SUPPLIER_CONFIRMATION,
                OrderStatus.AWAITING_PAYMENT,
            }
        ),
        OrderStatus.CANCELLED,
    ),
    OrderAction.PAY: (
        frozenset({OrderStatus.AWAITING_PAYMENT}),
        OrderStatus.PAID,
    ),
    OrderAction.ASSIGN_TRANSPORTER: (
        frozenset({OrderStatus.PAID, OrderStatus.AWAITING_TRANSPORTER_ASSIGNMENT}),
        OrderStatus.READY_FOR_PICKUP,
    ),
    OrderAction.CONFIRM_RECEIPT: (
        frozenset({OrderStatus.DELIVERED}),
        OrderStatus.COMPLETED,
    ),
    OrderAction.DENY_RECEIPT: (
        frozenset({OrderStatus.DELIVERED}),
        OrderStatus.DISPUTED,
    ),
}

# Statuses during which the assigned transporter may move the shipment.
IN_TRANSPORT = frozenset({OrderStatus.READY_FOR_PICKUP, OrderStatus.SHIPPED})

TERMINAL_SHIPMENT = frozenset(
    {ShipmentStatus.DELIVERED, ShipmentStatus.SHIPMENT_CANCELLED}
)

ASSESSABLE = frozenset({OrderStatus.COMPLETED, OrderStatus.DISPUTED})

_MOVING = frozenset(
    {
        ShipmentStatus.READY_FOR_PICKUP,
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.OUT_FOR_DELIVERY,
    }
)

# Allowed shipment statuses per primary status.
_CONSISTENT: dict[OrderStatus, frozenset[ShipmentStatus | None]] = {
    OrderStatus.PENDING: frozenset({None}),
    OrderStatus.AWAITING_SUPPLIER_CONFIRMATION: frozenset({None}),
    OrderStatus.AWAITING_PAYMENT: frozenset({None}),
    OrderStatus.PAID: frozenset({None}),
    OrderStatus.CANCELLED: frozenset({None}),
    OrderStatus.AWAITING_TRANSPORTER_ASSIGNMENT: frozenset(
        {None, ShipmentStatus.SHIPMENT_CANCELLED}
    ),
    OrderStatus.READY_FOR_PICKUP: frozenset(
        {ShipmentStatus.READY_FOR_PICKUP, ShipmentStatus.DELIVERY_FAILED}
    ),
    OrderStatus.SHIPPED: frozenset(_MOVING | {ShipmentStatus.DELIVERY_FAILED}),
    OrderStatus.DELIVERED: frozenset({ShipmentStatus.DELIVERED}),
    OrderStatus.RECEIPT_CONFIRMED: frozenset({ShipmentStatus.DELIVERED}),
    OrderStatus.COMPLETED: frozenset({ShipmentStatus.DELIVERED}),
    OrderStatus.DISPUTED: frozenset({ShipmentStatus.DELIVERED}),
}


@dataclass(frozen=True)
class ShipmentChange:
    status: OrderStatus
    shipment_status: ShipmentStatus
    release_transporter: bool = False


def next_status(action: OrderAction, current: OrderStatus) -> OrderStatus:
    allowed, target = _TRANSITIONS[action]
    if current not in allowed:
        raise TransitionError(
            f"Cannot {action.value.replace('_', ' ')} an order in status '{current.value}'."
        )
    return target


def shipment_change(
    status: OrderStatus,
    shipment_status: ShipmentStatus | None,
    new_shipment_status: ShipmentStatus,
) -> ShipmentChange:
    """Resolve a transporter's shipment update into the order's next state."""
    if status not in IN_TRANSPORT:
        raise TransitionError(
            f"Shipment cannot be updated while the order is '{status.value}'."
        )
    if shipment_status in TERMINAL_SHIPMENT:
        raise TransitionError(
            f"Shipment is already '{shipment_status.value}' and cannot change."
        )

    if new_shipment_status == ShipmentStatus.SHIPMENT_CANCELLED:
        return ShipmentChange(
            OrderStatus.AWAITING_TRANSPORTER_ASSIGNMENT,
            new_shipment_status,
            release_transporter=True,
        )
    if new_shipment_status == ShipmentStatus.DELIVERED:
        return ShipmentChange(OrderStatus.DELIVERED, new_shipment_status)
    if new_shipment_status in _MOVING:
        return ShipmentChange(OrderStatus.SHIPPED, new_shipment_status)
    # Delivery failed: primary status is left alone.
    return ShipmentChange(status, new_shipment_status)


def is_consistent(status: OrderStatus, shipment_status: ShipmentStatus | None) -> bool:
    return shipment_status in _CONSISTENT[status]


def can_submit_pod(shipment_status: ShipmentStatus | None, pod_submitted: bool) -> bool:
    return shipment_status == ShipmentStatus.DELIVERED and not pod_submitted


def can_assess(status: OrderStatus, assessment_submitted: bool) -> bool:
    return status in ASSESSABLE and not assessment_submitted
