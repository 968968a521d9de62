from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fruitflow.api.deps import get_current_user, require_roles
from fruitflow.database import get_db
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.product import (
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ShippingEstimate,
    SupplierCatalog,
)
from fruitflow.schemas.user import UserResponse
from fruitflow.services.distance import estimate_distance, fee_for
from fruitflow.services.products import (
    create_product,
    delete_product,
    get_owned_product,
    get_product,
    get_supplier_products,
    search_catalog,
    update_product,
)

router = APIRouter(prefix="/products", tags=["products"])

supplier_only = require_roles(UserRole.SUPPLIER)
customer_only = require_roles(UserRole.CUSTOMER)


@router.get("/mine", response_model=list[ProductOut])
def my_products(
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    return [ProductOut.model_validate(p) for p in get_supplier_products(db, supplier.id)]


@router.post("", response_model=ProductOut, status_code=201)
def add_product(
    dto: ProductCreate,
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    return ProductOut.model_validate(create_product(db, supplier, dto))


@router.get("/catalog", response_model=list[SupplierCatalog])
def catalog(
    q: str = Query("", description="Case-insensitive match on product name or category"),
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    return [
        SupplierCatalog(
            supplier=UserResponse.model_validate(group["supplier"]),
            products=[ProductOut.model_validate(p) for p in group["products"]],
            purchase_count=group["purchase_count"],
        )
        for group in search_catalog(db, customer, q)
    ]


@router.get("/{product_id}", response_model=ProductOut)
def get_one(
    product_id: UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductOut.model_validate(product)


@router.put("/{product_id}", response_model=ProductOut)
def edit_product(
    product_id: UUID,
    dto: ProductUpdate,
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    product = get_owned_product(db, product_id, supplier)
    return ProductOut.model_validate(update_product(db, supplier, product, dto))


@router.delete("/{product_id}", status_code=204)
def remove_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    supplier: User = Depends(supplier_only),
):
    product = get_owned_product(db, product_id, supplier)
    delete_product(db, supplier, product)


@router.get("/{product_id}/shipping-estimate", response_model=ShippingEstimate)
async def shipping_estimate(
    product_id: UUID,
    db: Session = Depends(get_db),
    customer: User = Depends(customer_only),
):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    destination = (customer.address or "").strip()
    if not destination:
        raise HTTPException(
            status_code=400,
            detail="Please add your address to your profile to estimate shipping.",
        )
    estimate = await estimate_distance(product.produced_area, destination)
    return ShippingEstimate(
        product_id=product.id,
        origin=product.produced_area,
        destination=destination,
        estimate=estimate,
        estimated_fee=fee_for(estimate),
    )
