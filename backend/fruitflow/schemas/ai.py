from datetime import datetime, timezone

from pydantic import BaseModel, Field


class DistanceRequest(BaseModel):
    origin_address: str = Field(..., min_length=1)
    destination_address: str = Field(..., min_length=1)


class DistanceEstimate(BaseModel):
    distance_text: str
    distance_km: float | None = None
    duration_text: str
    predicted_delivery_iso_date: str | None = None
    note: str | None = None
    simulated: bool = False

    @property
    def predicted_delivery(self) -> datetime | None:
        if not self.predicted_delivery_iso_date:
            return None
        try:
            parsed = datetime.fromisoformat(
                self.predicted_delivery_iso_date.replace("Z", "+00:00")
            )
        except ValueError:
            return None
        # Stored as naive UTC like every other timestamp.
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed


class PaymentRiskRequest(BaseModel):
    customer_name: str = Field(..., min_length=1)
    supplier_name: str = Field(..., min_length=1)
    customer_country: str = Field(..., min_length=1)
    supplier_country: str = Field(..., min_length=1)
    transaction_amount: float = Field(0, ge=0)


class PaymentRiskResult(BaseModel):
    risk_score: float = Field(..., ge=0, le=100)
    justification: str
    simulated: bool = False


class HealthCheckResult(BaseModel):
    overall_status: str
    warnings: list[str]
    stats: dict | None = None
    simulated: bool = False
    created_at: datetime | None = None


class MarketQuote(BaseModel):
    fruit_name: str
    price: str
    change: str
    trend: str
