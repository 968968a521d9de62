"""Order record: pricing, lifecycle status, shipment, PoD, assessment and payouts."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)

from fruitflow.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    AWAITING_SUPPLIER_CONFIRMATION = "Awaiting Supplier Confirmation"
    AWAITING_TRANSPORTER_ASSIGNMENT = "Awaiting Transporter Assignment"
    AWAITING_PAYMENT = "Awaiting Payment"
    PAID = "Paid"  # funds held in simulated escrow
    READY_FOR_PICKUP = "Ready for Pickup"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    RECEIPT_CONFIRMED = "Receipt Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    DISPUTED = "Disputed"


class ShipmentStatus(str, enum.Enum):
    READY_FOR_PICKUP = "Ready for Pickup"
    IN_TRANSIT = "In Transit"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    DELIVERY_FAILED = "Delivery Failed"
    SHIPMENT_CANCELLED = "Shipment Cancelled"


def _values(enum_cls):
    return [e.value for e in enum_cls]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    product_id = Column(
        Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    product_name = Column(String(255), nullable=False)
    supplier_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_name = Column(String(255), nullable=False)
    customer_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_name = Column(String(255), nullable=False)
    transporter_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    transporter_name = Column(String(255), nullable=True)

    quantity = Column(Integer, nullable=False)
    unit = Column(String(20), nullable=False)
    price_per_unit = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False, default="USD")
    notes = Column(Text, nullable=True)

    status = Column(
        Enum(OrderStatus, values_callable=_values, name="orders_status_enum"),
        nullable=False,
        default=OrderStatus.AWAITING_SUPPLIER_CONFIRMATION,
    )
    shipment_status = Column(
        Enum(ShipmentStatus, values_callable=_values, name="orders_shipment_status_enum"),
        nullable=True,
    )

    # Proof of delivery
    pod_submitted = Column(Boolean, nullable=False, default=False)
    pod_notes = Column(Text, nullable=True)

    payment_transaction_hash = Column(String(128), nullable=True)
    pickup_address = Column(String(512), nullable=True)
    delivery_address = Column(String(512), nullable=True)
    predicted_delivery_date = Column(DateTime, nullable=True)

    # Customer assessment
    supplier_rating = Column(Integer, nullable=True)
    supplier_feedback = Column(Text, nullable=True)
    transporter_rating = Column(Integer, nullable=True)
    transporter_feedback = Column(Text, nullable=True)
    assessment_submitted = Column(Boolean, nullable=False, default=False)

    # Escrow and payout simulation
    estimated_transporter_fee = Column(Float, nullable=True)
    supplier_payout_amount = Column(Float, nullable=True)
    transporter_payout_amount = Column(Float, nullable=True)
    payout_timestamp = Column(DateTime, nullable=True)
    refund_timestamp = Column(DateTime, nullable=True)

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
