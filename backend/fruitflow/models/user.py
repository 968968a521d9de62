import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, Integer, String, Uuid

from fruitflow.database import Base


class UserRole(str, enum.Enum):
    SUPPLIER = "supplier"
    TRANSPORTER = "transporter"
    CUSTOMER = "customer"
    MANAGER = "manager"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(
            UserRole,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            name="users_role_enum",
        ),
        nullable=False,
    )
    is_approved = Column(Boolean, nullable=False, default=False)
    is_suspended = Column(Boolean, nullable=False, default=False)
    address = Column(String(512), nullable=False, default="")

    # Aggregated from assessed orders; refreshed after each assessment.
    average_supplier_rating = Column(Float, nullable=True)
    supplier_rating_count = Column(Integer, nullable=False, default=0)
    average_transporter_rating = Column(Float, nullable=True)
    transporter_rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    @property
    def is_partner(self) -> bool:
        """Suppliers and transporters need manager approval before login."""
        return self.role in (UserRole.SUPPLIER, UserRole.TRANSPORTER)
