"""Supplier product CRUD and customer catalogue search."""

from __future__ import annotations

import logging
from collections import Counter
from urllib.parse import quote
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fruitflow.api.deps import ensure_not_suspended
from fruitflow.models.order import Order
from fruitflow.models.product import Product
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def placeholder_image_url(name: str) -> str:
    return f"https://placehold.co/300x200.png?text={quote(name)}"


def get_product(db: Session, product_id: UUID) -> Product | None:
    return db.query(Product).filter(Product.id == product_id).first()


def get_supplier_products(db: Session, supplier_id: UUID) -> list[Product]:
    return (
        db.query(Product)
        .filter(Product.supplier_id == supplier_id)
        .order_by(Product.created_at.desc())
        .all()
    )


def get_owned_product(db: Session, product_id: UUID, supplier: User) -> Product:
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )
    if product.supplier_id != supplier.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own products.",
        )
    return product


def create_product(db: Session, supplier: User, data: ProductCreate) -> Product:
    ensure_not_suspended(supplier)
    product = Product(
        supplier_id=supplier.id,
        name=data.name.strip(),
        description=data.description,
        price=data.price,
        unit=data.unit,
        stock_quantity=data.stock_quantity,
        category=data.category or "",
        image_url=str(data.image_url) if data.image_url else placeholder_image_url(data.name),
        produced_date=data.produced_date,
        produced_area=data.produced_area,
        produced_by_organization=data.produced_by_organization,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Product listed id=%s supplier=%s name=%s", product.id, supplier.name, product.name)
    return product


def update_product(
    db: Session, supplier: User, product: Product, data: ProductUpdate
) -> Product:
    ensure_not_suspended(supplier)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in ("category", "image_url"):
            continue
        if field == "image_url":
            value = str(value) if value else placeholder_image_url(data.name or product.name)
        if field == "category":
            value = value or ""
        setattr(product, field, value)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, supplier: User, product: Product) -> None:
    ensure_not_suspended(supplier)
    db.delete(product)
    db.commit()
    logger.info("Product deleted id=%s supplier=%s", product.id, supplier.name)


def search_catalog(db: Session, customer: User, term: str = "") -> list[dict]:
    """Products of approved, active suppliers grouped by supplier.

    Suppliers the customer already bought from most come first, then by name.
    """
    needle = term.strip().lower()
    products = db.query(Product).all()
    if needle:
        products = [
            p
            for p in products
            if needle in p.name.lower() or (p.category and needle in p.category.lower())
        ]

    purchase_counts = Counter(
        row[0]
        for row in db.query(Order.supplier_id)
        .filter(Order.customer_id == customer.id)
        .all()
    )

    suppliers = {
        u.id: u
        for u in db.query(User)
        .filter(
            User.role == UserRole.SUPPLIER,
            User.is_approved.is_(True),
            User.is_suspended.is_(False),
        )
        .all()
    }

    groups: dict[UUID, dict] = {}
    for product in products:
        supplier = suppliers.get(product.supplier_id)
        if not supplier:
            continue
        group = groups.setdefault(
            supplier.id,
            {
                "supplier": supplier,
                "products": [],
                "purchase_count": purchase_counts.get(supplier.id, 0),
            },
        )
        group["products"].append(product)

    for group in groups.values():
        group["products"].sort(key=lambda p: p.name.lower())

    return sorted(
        groups.values(),
        key=lambda g: (-g["purchase_count"], g["supplier"].name.lower()),
    )


def decrement_stock(db: Session, product_id: UUID, quantity: int) -> int | None:
    """Decrease stock inside the caller's transaction, clamped at zero.

    The row is locked (``SELECT ... FOR UPDATE``) so concurrent payments for
    the same product serialize. Returns the new stock, or None when the
    product no longer exists. The caller commits.
    """
    product = (
        db.query(Product).filter(Product.id == product_id).with_for_update().first()
    )
    if not product:
        return None
    product.stock_quantity = max(0, (product.stock_quantity or 0) - quantity)
    return product.stock_quantity
