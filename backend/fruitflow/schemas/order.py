from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from fruitflow.core.ratings import MAX_RATING, MIN_RATING
from fruitflow.models.order import OrderStatus, ShipmentStatus


class OrderCreate(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    notes: str | None = None


class AssignTransporterRequest(BaseModel):
    transporter_id: UUID


class ShipmentStatusUpdate(BaseModel):
    shipment_status: ShipmentStatus


class ProofOfDeliveryRequest(BaseModel):
    pod_notes: str = ""


class PaymentRequest(BaseModel):
    # Hash of a transaction already sent from the customer's wallet. When
    # omitted the configured wallet RPC endpoint sends the transaction.
    transaction_hash: str | None = Field(None, min_length=4)
    from_address: str | None = None


class PaymentQuote(BaseModel):
    order_id: UUID
    amount_usd: float
    eth_usd_price: float
    price_is_fallback: bool
    amount_eth: float
    value_wei_hex: str
    recipient_address: str


class AssessmentRequest(BaseModel):
    supplier_rating: int | None = Field(None, ge=MIN_RATING, le=MAX_RATING)
    supplier_feedback: str | None = None
    transporter_rating: int | None = Field(None, ge=MIN_RATING, le=MAX_RATING)
    transporter_feedback: str | None = None


class OrderOut(BaseModel):
    id: UUID
    order_date: datetime
    product_id: UUID | None = None
    product_name: str
    supplier_id: UUID
    supplier_name: str
    customer_id: UUID
    customer_name: str
    transporter_id: UUID | None = None
    transporter_name: str | None = None
    quantity: int
    unit: str
    price_per_unit: float
    total_amount: float
    currency: str
    notes: str | None = None
    status: OrderStatus
    shipment_status: ShipmentStatus | None = None
    pod_submitted: bool
    pod_notes: str | None = None
    payment_transaction_hash: str | None = None
    pickup_address: str | None = None
    delivery_address: str | None = None
    predicted_delivery_date: datetime | None = None
    supplier_rating: int | None = None
    supplier_feedback: str | None = None
    transporter_rating: int | None = None
    transporter_feedback: str | None = None
    assessment_submitted: bool
    estimated_transporter_fee: float | None = None
    supplier_payout_amount: float | None = None
    transporter_payout_amount: float | None = None
    payout_timestamp: datetime | None = None
    refund_timestamp: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class AssignmentResult(BaseModel):
    order: OrderOut
    distance_note: str | None = None


class PaymentResult(BaseModel):
    order: OrderOut
    quote: PaymentQuote
    new_stock_quantity: int | None = None


class PaymentSummary(BaseModel):
    status_counts: dict[str, int]
    awaiting_payment: list[OrderOut]
