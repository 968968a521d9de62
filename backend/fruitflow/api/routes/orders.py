from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fruitflow.api.deps import get_current_user, require_roles
from fruitflow.database import get_db
from fruitflow.models.order import Order
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.order import (
    AssessmentRequest,
    AssignmentResult,
    AssignTransporterRequest,
    OrderCreate,
    OrderOut,
    PaymentQuote,
    PaymentRequest,
    PaymentResult,
    PaymentSummary,
    ProofOfDeliveryRequest,
    ShipmentStatusUpdate,
)
from fruitflow.schemas.user import UserResponse
from fruitflow.services import orders as order_service
from fruitflow.services.websocket_manager import (
    broadcast_order_deleted,
    broadcast_order_update,
    broadcast_user_suspended,
)

router = APIRouter(prefix="/orders", tags=["orders"])

customer_only = require_roles(UserRole.CUSTOMER)
supplier_only = require_roles(UserRole.SUPPLIER)
transporter_only = require_roles(UserRole.TRANSPORTER)
manager_only = require_roles(UserRole.MANAGER)


async def _published(order: Order) -> OrderOut:
    out = OrderOut.model_validate(order)
    await broadcast_order_update(out.model_dump(mode="json"))
    return out


@router.post("", response_model=OrderOut, status_code=201)
async def place(
    dto: OrderCreate,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    return await _published(order_service.place_order(db, customer, dto))


@router.get("", response_model=list[OrderOut])
def list_mine(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [OrderOut.model_validate(o) for o in order_service.list_orders(db, user)]


@router.get("/summary", response_model=PaymentSummary)
def summary(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    counts, awaiting = order_service.payment_summary(db)
    return PaymentSummary(
        status_counts=counts,
        awaiting_payment=[OrderOut.model_validate(o) for o in awaiting],
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_one(
    order_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return OrderOut.model_validate(order_service.get_visible_order(db, user, order_id))


@router.post("/{order_id}/confirm", response_model=OrderOut)
async def confirm(
    order_id: UUID,
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    return await _published(order_service.confirm_order(db, supplier, order_id))


@router.post("/{order_id}/cancel", response_model=OrderOut)
async def cancel(
    order_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.CUSTOMER, UserRole.SUPPLIER)),
):
    return await _published(order_service.cancel_order(db, user, order_id))


@router.get("/{order_id}/payment-quote", response_model=PaymentQuote)
async def payment_quote(
    order_id: UUID,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    return await order_service.quote_payment(db, customer, order_id)


@router.post("/{order_id}/pay", response_model=PaymentResult)
async def pay(
    order_id: UUID,
    body: PaymentRequest,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    order, quote, new_stock = await order_service.pay_order(db, customer, order_id, body)
    return PaymentResult(order=await _published(order), quote=quote, new_stock_quantity=new_stock)


@router.post("/{order_id}/assign-transporter", response_model=AssignmentResult)
async def assign(
    order_id: UUID,
    body: AssignTransporterRequest,
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    order, note = await order_service.assign_transporter(
        db, supplier, order_id, body.transporter_id
    )
    return AssignmentResult(order=await _published(order), distance_note=note)


@router.put("/{order_id}/shipment", response_model=OrderOut)
async def update_shipment(
    order_id: UUID,
    body: ShipmentStatusUpdate,
    db: Session = Depends(get_db),
    transporter: User = Depends(transporter_only),
):
    order = order_service.update_shipment(db, transporter, order_id, body.shipment_status)
    return await _published(order)


@router.post("/{order_id}/proof-of-delivery", response_model=OrderOut)
async def proof_of_delivery(
    order_id: UUID,
    body: ProofOfDeliveryRequest,
    db: Session = Depends(get_db),
    transporter: User = Depends(transporter_only),
):
    order = order_service.submit_proof_of_delivery(db, transporter, order_id, body.pod_notes)
    return await _published(order)


@router.post("/{order_id}/confirm-receipt", response_model=OrderOut)
async def confirm_receipt(
    order_id: UUID,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    return await _published(order_service.confirm_receipt(db, customer, order_id))


@router.post("/{order_id}/deny-receipt", response_model=OrderOut)
async def deny_receipt(
    order_id: UUID,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    return await _published(order_service.deny_receipt(db, customer, order_id))


@router.post("/{order_id}/assessment", response_model=OrderOut)
async def assess(
    order_id: UUID,
    body: AssessmentRequest,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    order, suspended = order_service.assess_order(db, customer, order_id, body)
    for user in suspended:
        await broadcast_user_suspended(UserResponse.model_validate(user).model_dump(mode="json"))
    return await _published(order)


@router.delete("/{order_id}", status_code=204)
async def delete(
    order_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    parties = order_service.delete_order(db, user, order_id)
    await broadcast_order_deleted(str(order_id), parties)
