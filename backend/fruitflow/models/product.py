"""Supplier-owned product listing with provenance metadata."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from fruitflow.database import Base


class ProductUnit(str, enum.Enum):
    KG = "kg"
    BOX = "box"
    PALLET = "pallet"
    ITEM = "item"


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    unit = Column(
        Enum(
            ProductUnit,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            name="products_unit_enum",
        ),
        nullable=False,
        default=ProductUnit.ITEM,
    )
    stock_quantity = Column(Integer, nullable=False, default=0)
    category = Column(String(255), nullable=False, default="")
    image_url = Column(String(1024), nullable=True)

    # Provenance is fixed at creation time.
    produced_date = Column(DateTime, nullable=False)
    produced_area = Column(String(255), nullable=False)
    produced_by_organization = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    supplier = relationship("User")
