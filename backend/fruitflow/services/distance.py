"""Distance, duration and delivery-date estimation between two addresses.

The LLM is asked for a general-knowledge driving estimate. If the call fails
or returns incomplete output a randomized simulation is returned instead, so
order assignment and shipping quotes never fail because of the AI provider.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

from fruitflow.config import settings
from fruitflow.core.fares import transporter_fee
from fruitflow.schemas.ai import DistanceEstimate
from fruitflow.services.llm_client import BaseLLMAdapter, extract_json_object, get_llm_client

logger = logging.getLogger(__name__)

AI_NOTE = (
    "Distance, duration, and predicted delivery date estimated by AI. "
    "Actual travel may vary."
)
FALLBACK_NOTE = (
    "AI estimation for distance and duration failed. Displaying simulated "
    "fallback values. Please try again or check addresses."
)


def build_distance_prompt(origin: str, destination: str, now: datetime) -> str:
    return f"""Based on general knowledge, provide an estimated driving distance and travel time between the following origin and destination.
Present the distance in kilometers (km) and the duration in hours and minutes.
Also, provide a predicted delivery date and time in ISO 8601 format (e.g. 'YYYY-MM-DDTHH:mm:ss.sssZ'), assuming travel starts now ({now.isoformat()}).
Be concise.

Origin: {origin}
Destination: {destination}

Return ONLY a JSON object with exactly these keys:
  distanceText             - e.g. "Approx. 500 km"
  distanceKm               - number only, e.g. 500
  durationText             - e.g. "Approx. 5 hours 30 minutes"
  predictedDeliveryIsoDate - ISO 8601 date-time

No prose, no markdown fences. JSON object only."""


def _to_km(value) -> float | None:
    if value is None:
        return None
    try:
        km = float(str(value).replace(",", "").replace("km", "").strip())
    except ValueError:
        return None
    return km if km >= 0 else None


def parse_distance_response(raw: str) -> DistanceEstimate | None:
    data = extract_json_object(raw)
    if not data:
        return None
    distance_text = data.get("distanceText")
    duration_text = data.get("durationText")
    if not distance_text or not duration_text:
        logger.error("AI distance estimation returned incomplete output: %s", data)
        return None
    predicted = data.get("predictedDeliveryIsoDate")
    if not isinstance(predicted, str):
        predicted = None
    return DistanceEstimate(
        distance_text=str(distance_text),
        distance_km=_to_km(data.get("distanceKm")),
        duration_text=str(duration_text),
        predicted_delivery_iso_date=predicted or None,
        note=AI_NOTE,
    )


def simulated_estimate(rng: random.Random | None = None) -> DistanceEstimate:
    rng = rng or random.Random()
    hours = rng.randint(8, 79)
    km = rng.randint(100, 599)
    delivery = datetime.now(timezone.utc) + timedelta(hours=hours)
    return DistanceEstimate(
        distance_text=f"Approx. {km} km (Simulated Fallback)",
        distance_km=float(km),
        duration_text=f"Approx. {hours // 24} days {hours % 24} hours (Simulated Fallback)",
        predicted_delivery_iso_date=delivery.isoformat().replace("+00:00", "Z"),
        note=FALLBACK_NOTE,
        simulated=True,
    )


async def estimate_distance(
    origin: str,
    destination: str,
    client: BaseLLMAdapter | None = None,
) -> DistanceEstimate:
    client = client or get_llm_client()
    if not client.available:
        logger.info("Distance estimation using simulated fallback (no LLM configured).")
        return simulated_estimate()

    prompt = build_distance_prompt(origin, destination, datetime.now(timezone.utc))
    try:
        raw = await client.invoke(prompt, flow="distance")
    except Exception as exc:
        logger.warning("AI distance estimation failed: %s - using simulated fallback", exc)
        return simulated_estimate()

    estimate = parse_distance_response(raw)
    if estimate is None:
        return simulated_estimate()
    return estimate


def fee_for(estimate: DistanceEstimate) -> float | None:
    return transporter_fee(estimate.distance_km, settings.base_fare, settings.rate_per_km)
