"""Seed the default manager account and, optionally, a demo catalogue.

Call from startup or manually; every step is idempotent.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from fruitflow.api.deps import hash_password, verify_password
from fruitflow.config import settings
from fruitflow.database import Base, SessionLocal, engine
from fruitflow.models.product import Product, ProductUnit
from fruitflow.models.user import User, UserRole
from fruitflow.services.products import placeholder_image_url

logger = logging.getLogger(__name__)

DEFAULT_MANAGER_ADDRESS = "1 Management Plaza, Admin City, AC 10001"
DEMO_PASSWORD = "demo123"

SEED_USERS = [
    {
        "id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a01"),
        "name": "SunnyOrchards",
        "role": UserRole.SUPPLIER,
        "address": "12 Orchard Lane, Yakima, WA 98901, USA",
    },
    {
        "id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a02"),
        "name": "TropicalHarvest",
        "role": UserRole.SUPPLIER,
        "address": "88 Coastal Road, Nha Trang, Khanh Hoa, Vietnam",
    },
    {
        "id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a03"),
        "name": "SwiftFreight",
        "role": UserRole.TRANSPORTER,
        "address": "5 Depot Street, Portland, OR 97201, USA",
    },
    {
        "id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a04"),
        "name": "FreshMart",
        "role": UserRole.CUSTOMER,
        "address": "200 Market Street, San Francisco, CA 94105, USA",
    },
]

SEED_PRODUCTS = [
    {
        "id": UUID("7c1e2b9a-6d1f-4e0b-8a2e-1b3c4d5e6f01"),
        "supplier_id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a01"),
        "name": "Honeycrisp Apples",
        "description": "Crisp, sweet apples picked at peak ripeness.",
        "price": 2.5,
        "unit": ProductUnit.KG,
        "stock_quantity": 500,
        "category": "Apples",
        "produced_area": "Yakima Valley, WA, USA",
        "produced_by_organization": "Sunny Orchards Co-op",
    },
    {
        "id": UUID("7c1e2b9a-6d1f-4e0b-8a2e-1b3c4d5e6f02"),
        "supplier_id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a01"),
        "name": "Bartlett Pears",
        "description": "Juicy pears with a buttery texture, boxed for retail.",
        "price": 14.0,
        "unit": ProductUnit.BOX,
        "stock_quantity": 120,
        "category": "Pears",
        "produced_area": "Hood River, OR, USA",
        "produced_by_organization": "Sunny Orchards Co-op",
    },
    {
        "id": UUID("7c1e2b9a-6d1f-4e0b-8a2e-1b3c4d5e6f03"),
        "supplier_id": UUID("0b8f6d0e-3f6a-4a35-9a51-5f3c2c1d7a02"),
        "name": "Cat Chu Mangoes",
        "description": "Fragrant southern mangoes, hand-sorted and air-shipped.",
        "price": 5.2,
        "unit": ProductUnit.KG,
        "stock_quantity": 300,
        "category": "Mangoes",
        "produced_area": "Dong Thap, Vietnam",
        "produced_by_organization": "Tropical Harvest Ltd.",
    },
]


def seed_default_manager(db: Session) -> User:
    """Create the default manager, or repair its password and address."""
    name = settings.default_manager_username
    password = settings.default_manager_password
    manager = db.query(User).filter(User.name == name).first()
    if manager is None:
        manager = User(
            name=name,
            password_hash=hash_password(password),
            role=UserRole.MANAGER,
            is_approved=True,
            is_suspended=False,
            address=DEFAULT_MANAGER_ADDRESS,
        )
        db.add(manager)
        logger.info("Default manager '%s' created.", name)
    else:
        if not verify_password(password, manager.password_hash):
            manager.password_hash = hash_password(password)
            logger.info("Default manager '%s' password reset.", name)
        if manager.address != DEFAULT_MANAGER_ADDRESS:
            manager.address = DEFAULT_MANAGER_ADDRESS
        manager.role = UserRole.MANAGER
        manager.is_approved = True
    db.commit()
    db.refresh(manager)
    return manager


def _seed_users(db: Session) -> None:
    """Insert demo users if they do not already exist (by id)."""
    for data in SEED_USERS:
        if db.query(User).filter(User.id == data["id"]).first() is not None:
            continue
        db.add(
            User(
                **data,
                password_hash=hash_password(DEMO_PASSWORD),
                is_approved=True,
                is_suspended=False,
            )
        )
    db.commit()


def _seed_products(db: Session) -> None:
    for data in SEED_PRODUCTS:
        if db.query(Product).filter(Product.id == data["id"]).first() is not None:
            continue
        db.add(
            Product(
                **data,
                image_url=placeholder_image_url(data["name"]),
                produced_date=datetime(2024, 9, 1),
            )
        )
    db.commit()


def seed_all_if_empty() -> None:
    """Create all tables, ensure the default manager and the optional demo catalogue."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_manager(db)
        if settings.seed_demo_data and not db.query(Product).first():
            _seed_users(db)
            _seed_products(db)
            logger.info("Demo catalogue seeded.")
    finally:
        db.close()
