import pytest

from fruitflow.core import lifecycle
from fruitflow.core.lifecycle import OrderAction, TransitionError
from fruitflow.models.order import OrderStatus, ShipmentStatus


class TestNextStatus:
    @pytest.mark.parametrize(
        "current",
        [OrderStatus.PENDING, OrderStatus.AWAITING_SUPPLIER_CONFIRMATION],
    )
    def test_supplier_confirm_moves_to_awaiting_payment(self, current):
        assert (
            lifecycle.next_status(OrderAction.SUPPLIER_CONFIRM, current)
            == OrderStatus.AWAITING_PAYMENT
        )

    def test_pay_only_from_awaiting_payment(self):
        assert lifecycle.next_status(OrderAction.PAY, OrderStatus.AWAITING_PAYMENT) == OrderStatus.PAID
        with pytest.raises(TransitionError):
            lifecycle.next_status(OrderAction.PAY, OrderStatus.AWAITING_SUPPLIER_CONFIRMATION)
        with pytest.raises(TransitionError):
            lifecycle.next_status(OrderAction.PAY, OrderStatus.PAID)

    def test_assign_transporter_after_payment_or_cancelled_shipment(self):
        for current in (OrderStatus.PAID, OrderStatus.AWAITING_TRANSPORTER_ASSIGNMENT):
            assert (
                lifecycle.next_status(OrderAction.ASSIGN_TRANSPORTER, current)
                == OrderStatus.READY_FOR_PICKUP
            )
        with pytest.raises(TransitionError):
            lifecycle.next_status(OrderAction.ASSIGN_TRANSPORTER, OrderStatus.AWAITING_PAYMENT)

    def test_receipt_requires_delivery(self):
        assert (
            lifecycle.next_status(OrderAction.CONFIRM_RECEIPT, OrderStatus.DELIVERED)
            == OrderStatus.COMPLETED
        )
        assert (
            lifecycle.next_status(OrderAction.DENY_RECEIPT, OrderStatus.DELIVERED)
            == OrderStatus.DISPUTED
        )
        with pytest.raises(TransitionError):
            lifecycle.next_status(OrderAction.CONFIRM_RECEIPT, OrderStatus.PAID)

    def test_cancel_not_allowed_after_payment(self):
        assert (
            lifecycle.next_status(OrderAction.CANCEL, OrderStatus.AWAITING_PAYMENT)
            == OrderStatus.CANCELLED
        )
        with pytest.raises(TransitionError):
            lifecycle.next_status(OrderAction.CANCEL, OrderStatus.PAID)

    def test_error_message_names_current_status(self):
        with pytest.raises(TransitionError, match="Completed"):
            lifecycle.next_status(OrderAction.PAY, OrderStatus.COMPLETED)


class TestShipmentChange:
    @pytest.mark.parametrize(
        "new",
        [
            ShipmentStatus.IN_TRANSIT,
            ShipmentStatus.OUT_FOR_DELIVERY,
            ShipmentStatus.READY_FOR_PICKUP,
        ],
    )
    def test_moving_shipment_marks_order_shipped(self, new):
        change = lifecycle.shipment_change(
            OrderStatus.READY_FOR_PICKUP, ShipmentStatus.READY_FOR_PICKUP, new
        )
        assert change.status == OrderStatus.SHIPPED
        assert change.shipment_status == new
        assert not change.release_transporter

    def test_delivered(self):
        change = lifecycle.shipment_change(
            OrderStatus.SHIPPED, ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELIVERED
        )
        assert change.status == OrderStatus.DELIVERED
        assert lifecycle.is_consistent(change.status, change.shipment_status)

    def test_delivered_directly_from_pickup(self):
        change = lifecycle.shipment_change(
            OrderStatus.READY_FOR_PICKUP,
            ShipmentStatus.READY_FOR_PICKUP,
            ShipmentStatus.DELIVERED,
        )
        assert change.status == OrderStatus.DELIVERED

    def test_failed_delivery_keeps_status(self):
        change = lifecycle.shipment_change(
            OrderStatus.SHIPPED, ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELIVERY_FAILED
        )
        assert change.status == OrderStatus.SHIPPED
        assert change.shipment_status == ShipmentStatus.DELIVERY_FAILED

    def test_cancelled_shipment_releases_transporter(self):
        change = lifecycle.shipment_change(
            OrderStatus.SHIPPED, ShipmentStatus.IN_TRANSIT, ShipmentStatus.SHIPMENT_CANCELLED
        )
        assert change.status == OrderStatus.AWAITING_TRANSPORTER_ASSIGNMENT
        assert change.release_transporter
        assert lifecycle.is_consistent(change.status, change.shipment_status)

    @pytest.mark.parametrize(
        "terminal", [ShipmentStatus.DELIVERED, ShipmentStatus.SHIPMENT_CANCELLED]
    )
    def test_terminal_shipment_is_frozen(self, terminal):
        with pytest.raises(TransitionError):
            lifecycle.shipment_change(OrderStatus.SHIPPED, terminal, ShipmentStatus.IN_TRANSIT)

    def test_no_shipment_updates_before_assignment(self):
        with pytest.raises(TransitionError):
            lifecycle.shipment_change(OrderStatus.PAID, None, ShipmentStatus.IN_TRANSIT)


def test_pod_and_assessment_guards():
    assert lifecycle.can_submit_pod(ShipmentStatus.DELIVERED, False)
    assert not lifecycle.can_submit_pod(ShipmentStatus.DELIVERED, True)
    assert not lifecycle.can_submit_pod(ShipmentStatus.IN_TRANSIT, False)

    assert lifecycle.can_assess(OrderStatus.COMPLETED, False)
    assert lifecycle.can_assess(OrderStatus.DISPUTED, False)
    assert not lifecycle.can_assess(OrderStatus.COMPLETED, True)
    assert not lifecycle.can_assess(OrderStatus.DELIVERED, False)


def test_paid_order_has_no_shipment():
    assert lifecycle.is_consistent(OrderStatus.PAID, None)
    assert not lifecycle.is_consistent(OrderStatus.PAID, ShipmentStatus.DELIVERED)
