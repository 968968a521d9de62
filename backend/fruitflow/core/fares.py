from __future__ import annotations

BASE_FARE = 2.00
RATE_PER_KM = 0.50


def transporter_fee(
    distance_km: float | None,
    base_fare: float = BASE_FARE,
    rate_per_km: float = RATE_PER_KM,
) -> float | None:
    if distance_km is None:
        return None
    return round(base_fare + float(distance_km) * rate_per_km, 2)


def payout_split(total_amount: float, transporter_fee: float | None) -> tuple[float, float]:
    """Return (supplier payout, transporter payout) released from escrow.

    The transporter payout is capped at the order total so the supplier
    share never goes negative.
    """
    fee = min(max(transporter_fee or 0.0, 0.0), total_amount)
    return round(total_amount - fee, 2), round(fee, 2)
