"""Customer payment-risk scoring for suppliers."""

from __future__ import annotations

import logging
import random

from fruitflow.schemas.ai import PaymentRiskRequest, PaymentRiskResult
from fruitflow.services.llm_client import BaseLLMAdapter, extract_json_object, get_llm_client

logger = logging.getLogger(__name__)


def build_risk_prompt(req: PaymentRiskRequest) -> str:
    return f"""You are an AI assistant that assesses the risk of a supplier not receiving payment from a customer for an international transaction.

Customer name: {req.customer_name}
Supplier name: {req.supplier_name}
Customer country: {req.customer_country}
Supplier country: {req.supplier_country}
Transaction amount: {req.transaction_amount:.2f} USD

Provide a risk assessment score from 0 to 100 (0 = lowest risk for the supplier, 100 = highest risk for the supplier) and a justification.
The justification should consider geopolitical stability, the customer's country economic situation, typical payment behaviors for such transactions, and general reputation.
The justification should be at least 3 sentences long.

Return ONLY a JSON object with exactly these keys:
  riskScore     - number 0-100
  justification - string

No prose, no markdown fences. JSON object only."""


def parse_risk_response(raw: str) -> PaymentRiskResult | None:
    data = extract_json_object(raw)
    if not data:
        return None
    try:
        score = float(data.get("riskScore"))
    except (TypeError, ValueError):
        return None
    justification = str(data.get("justification") or "").strip()
    if not justification:
        return None
    return PaymentRiskResult(
        risk_score=min(100.0, max(0.0, score)),
        justification=justification,
    )


def simulated_risk(req: PaymentRiskRequest, rng: random.Random | None = None) -> PaymentRiskResult:
    rng = rng or random.Random()
    score = 30.0
    reasons = []
    if req.transaction_amount > 50_000:
        score += 30
        reasons.append("The transaction value is very large, which raises exposure if payment is delayed.")
    elif req.transaction_amount > 10_000:
        score += 15
        reasons.append("The transaction value is significant for a single shipment.")
    else:
        reasons.append("The transaction value is moderate, limiting the supplier's exposure.")
    if req.customer_country.strip().lower() == req.supplier_country.strip().lower():
        score -= 10
        reasons.append("Both parties operate in the same country, so payment rails and legal recourse are simpler.")
    else:
        score += 5
        reasons.append("This is a cross-border transaction, which adds currency and collection risk.")
    score = min(100.0, max(0.0, score + rng.uniform(-5, 5)))
    reasons.append(
        "This score is a simulated estimate because the AI assessment was unavailable; "
        "verify the customer's payment history before shipping."
    )
    return PaymentRiskResult(
        risk_score=round(score, 1),
        justification=" ".join(reasons),
        simulated=True,
    )


async def assess_payment_risk(
    req: PaymentRiskRequest,
    client: BaseLLMAdapter | None = None,
) -> PaymentRiskResult:
    client = client or get_llm_client()
    if not client.available:
        return simulated_risk(req)
    try:
        raw = await client.invoke(build_risk_prompt(req), flow="payment_risk")
    except Exception as exc:
        logger.warning("AI payment risk assessment failed: %s - using simulated score", exc)
        return simulated_risk(req)
    result = parse_risk_response(raw)
    if result is None:
        logger.warning("Could not parse payment risk response; using simulated score.")
        return simulated_risk(req)
    return result
