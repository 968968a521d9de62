"""Order placement and every role's action on an order.

Status changes are resolved through ``fruitflow.core.lifecycle``; an action
that is illegal from the order's current state surfaces as 409 Conflict.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fruitflow.api.deps import ensure_not_suspended
from fruitflow.config import settings
from fruitflow.core import lifecycle
from fruitflow.core.fares import payout_split
from fruitflow.core.lifecycle import OrderAction, TransitionError
from fruitflow.models.order import Order, OrderStatus, ShipmentStatus
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.order import (
    AssessmentRequest,
    OrderCreate,
    OrderOut,
    PaymentQuote,
    PaymentRequest,
)
from fruitflow.services import payments
from fruitflow.services.distance import estimate_distance, fee_for
from fruitflow.services.products import decrement_stock, get_product
from fruitflow.services.users import get_user_by_id, refresh_ratings

logger = logging.getLogger(__name__)

ADDRESS_MISSING_NOTE = (
    "Supplier or customer address missing; delivery date and fee were not estimated."
)

# Placeholder hash held while a payment is being sent and confirmed.
PAYMENT_IN_FLIGHT = "pending"


def order_payload(order: Order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def _conflict(exc: TransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def _advance(order: Order, action: OrderAction) -> None:
    try:
        order.status = lifecycle.next_status(action, order.status)
    except TransitionError as exc:
        raise _conflict(exc)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def get_order(db: Session, order_id: UUID) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def get_visible_order(db: Session, user: User, order_id: UUID) -> Order:
    order = get_order(db, order_id)
    if user.role == UserRole.MANAGER or user.id in (
        order.customer_id,
        order.supplier_id,
        order.transporter_id,
    ):
        return order
    raise _forbidden("You are not a party to this order.")


def _customer_order(db: Session, customer: User, order_id: UUID) -> Order:
    order = get_order(db, order_id)
    if order.customer_id != customer.id:
        raise _forbidden("You can only act on your own orders.")
    return order


def _supplier_order(db: Session, supplier: User, order_id: UUID) -> Order:
    order = get_order(db, order_id)
    if order.supplier_id != supplier.id:
        raise _forbidden("You can only act on orders for your own products.")
    ensure_not_suspended(supplier)
    return order


def _transporter_order(db: Session, transporter: User, order_id: UUID) -> Order:
    order = get_order(db, order_id)
    if order.transporter_id != transporter.id:
        raise _forbidden("You are not the transporter assigned to this order.")
    ensure_not_suspended(transporter)
    return order


def _ensure_consistent(db: Session, order: Order) -> None:
    if lifecycle.is_consistent(order.status, order.shipment_status):
        return
    detail = (
        f"Order status '{order.status.value}' does not match shipment "
        f"'{order.shipment_status.value if order.shipment_status else 'none'}'."
    )
    logger.error("Refusing to save order %s: %s", order.id, detail)
    db.rollback()
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _save(db: Session, order: Order) -> Order:
    _ensure_consistent(db, order)
    db.commit()
    db.refresh(order)
    return order


# ── Placement and queries ─────────────────────────────────────────────


def place_order(db: Session, customer: User, dto: OrderCreate) -> Order:
    if not (customer.address or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please add a delivery address to your profile before ordering.",
        )
    product = get_product(db, dto.product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    supplier = get_user_by_id(db, product.supplier_id)
    if not supplier or not supplier.is_approved or supplier.is_suspended:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This supplier is not currently accepting orders.",
        )
    if dto.quantity > product.stock_quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_quantity} {product.unit.value} in stock.",
        )

    order = Order(
        product_id=product.id,
        product_name=product.name,
        supplier_id=supplier.id,
        supplier_name=supplier.name,
        customer_id=customer.id,
        customer_name=customer.name,
        quantity=dto.quantity,
        unit=product.unit.value,
        price_per_unit=product.price,
        total_amount=round(product.price * dto.quantity, 2),
        currency="USD",
        notes=dto.notes,
        status=OrderStatus.AWAITING_SUPPLIER_CONFIRMATION,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "Order placed id=%s customer=%s product=%s qty=%d total=%.2f",
        order.id,
        customer.name,
        product.name,
        order.quantity,
        order.total_amount,
    )
    return order


def list_orders(db: Session, user: User) -> list[Order]:
    query = db.query(Order)
    if user.role == UserRole.CUSTOMER:
        query = query.filter(Order.customer_id == user.id)
    elif user.role == UserRole.SUPPLIER:
        query = query.filter(Order.supplier_id == user.id)
    elif user.role == UserRole.TRANSPORTER:
        query = query.filter(Order.transporter_id == user.id)
    return query.order_by(Order.order_date.desc()).all()


def payment_summary(db: Session) -> tuple[dict[str, int], list[Order]]:
    orders = db.query(Order).order_by(Order.order_date.desc()).all()
    counts = Counter(o.status.value for o in orders)
    awaiting = [o for o in orders if o.status == OrderStatus.AWAITING_PAYMENT]
    return dict(counts), awaiting


# ── Supplier actions ─────────────────────────────────────────────────


def confirm_order(db: Session, supplier: User, order_id: UUID) -> Order:
    order = _supplier_order(db, supplier, order_id)
    _advance(order, OrderAction.SUPPLIER_CONFIRM)
    logger.info("Order %s confirmed by supplier %s", order.id, supplier.name)
    return _save(db, order)


def cancel_order(db: Session, user: User, order_id: UUID) -> Order:
    if user.role == UserRole.CUSTOMER:
        order = _customer_order(db, user, order_id)
    elif user.role == UserRole.SUPPLIER:
        order = _supplier_order(db, user, order_id)
    else:
        raise _forbidden("Only the customer or the supplier can cancel an order.")
    if order.payment_transaction_hash == PAYMENT_IN_FLIGHT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A payment for this order is in progress and it can no longer be cancelled.",
        )
    _advance(order, OrderAction.CANCEL)
    logger.info("Order %s cancelled by %s", order.id, user.name)
    return _save(db, order)


async def assign_transporter(
    db: Session, supplier: User, order_id: UUID, transporter_id: UUID
) -> tuple[Order, str | None]:
    order = _supplier_order(db, supplier, order_id)
    try:
        lifecycle.next_status(OrderAction.ASSIGN_TRANSPORTER, order.status)
    except TransitionError as exc:
        raise _conflict(exc)

    transporter = get_user_by_id(db, transporter_id)
    if (
        not transporter
        or transporter.role != UserRole.TRANSPORTER
        or not transporter.is_approved
        or transporter.is_suspended
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Selected transporter is not available.",
        )

    customer = get_user_by_id(db, order.customer_id)
    pickup = (supplier.address or "").strip() or None
    delivery = ((customer.address if customer else "") or "").strip() or None

    note = ADDRESS_MISSING_NOTE
    fee = None
    predicted = None
    if pickup and delivery:
        estimate = await estimate_distance(pickup, delivery)
        note = estimate.note
        fee = fee_for(estimate)
        predicted = estimate.predicted_delivery

    _advance(order, OrderAction.ASSIGN_TRANSPORTER)
    order.transporter_id = transporter.id
    order.transporter_name = transporter.name
    order.shipment_status = ShipmentStatus.READY_FOR_PICKUP
    order.pickup_address = pickup
    order.delivery_address = delivery
    order.estimated_transporter_fee = fee
    order.predicted_delivery_date = predicted
    logger.info(
        "Transporter %s assigned to order %s fee=%s",
        transporter.name,
        order.id,
        fee,
    )
    return _save(db, order), note


# ── Transporter actions ──────────────────────────────────────────────


def update_shipment(
    db: Session, transporter: User, order_id: UUID, new_status: ShipmentStatus
) -> Order:
    order = _transporter_order(db, transporter, order_id)
    try:
        change = lifecycle.shipment_change(order.status, order.shipment_status, new_status)
    except TransitionError as exc:
        raise _conflict(exc)

    order.status = change.status
    order.shipment_status = change.shipment_status
    if change.release_transporter:
        order.transporter_id = None
        order.transporter_name = None
        order.estimated_transporter_fee = None
        order.predicted_delivery_date = None
    logger.info(
        "Shipment for order %s set to '%s' by %s",
        order.id,
        new_status.value,
        transporter.name,
    )
    return _save(db, order)


def submit_proof_of_delivery(
    db: Session, transporter: User, order_id: UUID, pod_notes: str
) -> Order:
    order = _transporter_order(db, transporter, order_id)
    if not lifecycle.can_submit_pod(order.shipment_status, order.pod_submitted):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Proof of delivery can only be submitted once, after delivery.",
        )
    order.pod_submitted = True
    order.pod_notes = pod_notes.strip() or None
    return _save(db, order)


# ── Customer actions ─────────────────────────────────────────────────


async def quote_payment(db: Session, customer: User, order_id: UUID) -> PaymentQuote:
    order = _customer_order(db, customer, order_id)
    try:
        lifecycle.next_status(OrderAction.PAY, order.status)
    except TransitionError as exc:
        raise _conflict(exc)
    return await payments.quote_order(order)


def _claim_payment(db: Session, order_id: UUID) -> None:
    """Mark the order as being paid, atomically, so only one payment is ever sent."""
    claimed = (
        db.query(Order)
        .filter(
            Order.id == order_id,
            Order.status == OrderStatus.AWAITING_PAYMENT,
            Order.payment_transaction_hash.is_(None),
        )
        .update({Order.payment_transaction_hash: PAYMENT_IN_FLIGHT}, synchronize_session=False)
    )
    db.commit()
    if not claimed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A payment for this order is already in progress.",
        )


def _release_payment_claim(db: Session, order_id: UUID) -> None:
    db.query(Order).filter(
        Order.id == order_id, Order.payment_transaction_hash == PAYMENT_IN_FLIGHT
    ).update({Order.payment_transaction_hash: None}, synchronize_session=False)
    db.commit()


async def pay_order(
    db: Session, customer: User, order_id: UUID, req: PaymentRequest
) -> tuple[Order, PaymentQuote, int | None]:
    quote = await quote_payment(db, customer, order_id)
    _claim_payment(db, order_id)

    tx_hash = req.transaction_hash
    if not tx_hash:
        try:
            tx_hash = await payments.send_wallet_transaction(quote, req.from_address)
        except payments.WalletError as exc:
            logger.warning("Wallet payment failed for order %s: %s", order_id, exc)
            _release_payment_claim(db, order_id)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if settings.payment_confirmation_delay_seconds > 0:
        await asyncio.sleep(settings.payment_confirmation_delay_seconds)

    order = get_order(db, order_id)
    db.refresh(order)
    _advance(order, OrderAction.PAY)
    _ensure_consistent(db, order)
    order.payment_transaction_hash = tx_hash
    new_stock = None
    if order.product_id:
        new_stock = decrement_stock(db, order.product_id, order.quantity)
    db.commit()
    db.refresh(order)
    logger.info(
        "Order %s paid tx=%s eth=%.8f stock_left=%s",
        order.id,
        tx_hash,
        quote.amount_eth,
        new_stock,
    )
    return order, quote, new_stock


def confirm_receipt(db: Session, customer: User, order_id: UUID) -> Order:
    order = _customer_order(db, customer, order_id)
    _advance(order, OrderAction.CONFIRM_RECEIPT)
    supplier_share, transporter_share = payout_split(
        order.total_amount, order.estimated_transporter_fee
    )
    order.supplier_payout_amount = supplier_share
    order.transporter_payout_amount = transporter_share
    order.payout_timestamp = datetime.utcnow()
    logger.info(
        "Escrow released for order %s supplier=%.2f transporter=%.2f",
        order.id,
        supplier_share,
        transporter_share,
    )
    return _save(db, order)


def deny_receipt(db: Session, customer: User, order_id: UUID) -> Order:
    order = _customer_order(db, customer, order_id)
    _advance(order, OrderAction.DENY_RECEIPT)
    order.refund_timestamp = datetime.utcnow()
    logger.warning("Receipt denied for order %s; simulated refund issued", order.id)
    return _save(db, order)


def assess_order(
    db: Session, customer: User, order_id: UUID, dto: AssessmentRequest
) -> tuple[Order, list[User]]:
    """Record the customer's ratings; returns the order and any newly suspended users."""
    order = _customer_order(db, customer, order_id)
    if not lifecycle.can_assess(order.status, order.assessment_submitted):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This order cannot be assessed.",
        )
    if dto.supplier_rating is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A supplier rating is required.",
        )
    if order.transporter_id and dto.transporter_rating is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A transporter rating is required for shipped orders.",
        )

    order.supplier_rating = dto.supplier_rating
    order.supplier_feedback = dto.supplier_feedback
    if order.transporter_id:
        order.transporter_rating = dto.transporter_rating
        order.transporter_feedback = dto.transporter_feedback
    order.assessment_submitted = True
    _save(db, order)

    suspended: list[User] = []
    for user_id in (order.supplier_id, order.transporter_id):
        if not user_id:
            continue
        rated = get_user_by_id(db, user_id)
        if rated and refresh_ratings(db, rated):
            suspended.append(rated)
    db.refresh(order)
    return order, suspended


# ── Deletion ─────────────────────────────────────────────────────────


def delete_order(db: Session, user: User, order_id: UUID) -> tuple[UUID | None, ...]:
    """Delete the order; returns the ids of its customer, supplier and transporter."""
    order = get_order(db, order_id)
    if user.role == UserRole.CUSTOMER:
        raise _forbidden("Customers cannot delete orders.")
    if user.role == UserRole.SUPPLIER:
        ensure_not_suspended(user)
        if order.supplier_id != user.id:
            raise _forbidden("You can only delete orders for your own products.")
    elif user.role != UserRole.MANAGER:
        raise _forbidden("Only the supplier or a manager can delete an order.")
    parties = (order.customer_id, order.supplier_id, order.transporter_id)
    db.delete(order)
    db.commit()
    logger.info("Order %s deleted by %s", order_id, user.name)
    return parties
