from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from fruitflow.api.deps import get_current_user, require_roles
from fruitflow.database import get_db
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.ai import (
    DistanceEstimate,
    DistanceRequest,
    HealthCheckResult,
    PaymentRiskRequest,
    PaymentRiskResult,
)
from fruitflow.services.distance import estimate_distance
from fruitflow.services.health_check import get_latest_report, run_health_check
from fruitflow.services.payment_risk import assess_payment_risk

router = APIRouter(prefix="/ai", tags=["ai"])

manager_only = require_roles(UserRole.MANAGER)


@router.post("/payment-risk", response_model=PaymentRiskResult)
async def payment_risk(
    body: PaymentRiskRequest,
    _: User = Depends(require_roles(UserRole.SUPPLIER, UserRole.MANAGER)),
):
    return await assess_payment_risk(body)


@router.post("/distance", response_model=DistanceEstimate)
async def distance(
    body: DistanceRequest,
    _: User = Depends(get_current_user),
):
    return await estimate_distance(body.origin_address, body.destination_address)


@router.post("/health-check", response_model=HealthCheckResult)
async def health_check(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    return await run_health_check(db)


@router.get("/health-check/latest", response_model=HealthCheckResult)
def latest_health_check(
    db: Session = Depends(get_db),
    _: User = Depends(manager_only),
):
    report = get_latest_report(db)
    if not report:
        raise HTTPException(status_code=404, detail="No health check has been run yet")
    return report
