"""Platform health check for managers.

Live order and account statistics ground the LLM prompt; when no model is
available (or its output is unusable) the same statistics drive a rule-based
report. Every report is persisted so the dashboard can show the latest one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from fruitflow.models.health_check_report import HealthCheckReport
from fruitflow.models.order import Order, OrderStatus, ShipmentStatus
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.ai import HealthCheckResult
from fruitflow.services.llm_client import BaseLLMAdapter, extract_json_object, get_llm_client

logger = logging.getLogger(__name__)

NOMINAL = "Nominal"
MINOR_CONCERNS = "Minor Concerns"
ACTION_REQUIRED = "Action Required"
STATUSES = (NOMINAL, MINOR_CONCERNS, ACTION_REQUIRED)

MAX_WARNINGS = 3
STALE_PAYMENT_HOURS = 48


def collect_platform_stats(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    stale_before = now - timedelta(hours=STALE_PAYMENT_HOURS)
    orders = db.query(Order).all()
    users = db.query(User).all()

    awaiting = [o for o in orders if o.status == OrderStatus.AWAITING_PAYMENT]
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    return {
        "total_orders": len(orders),
        "awaiting_payment": len(awaiting),
        "stale_awaiting_payment": sum(1 for o in awaiting if o.order_date < stale_before),
        "disputed_orders": sum(1 for o in orders if o.status == OrderStatus.DISPUTED),
        "failed_deliveries": sum(
            1 for o in orders if o.shipment_status == ShipmentStatus.DELIVERY_FAILED
        ),
        "completed_orders": len(completed),
        "completed_volume_usd": round(sum(o.total_amount for o in completed), 2),
        "total_users": len(users),
        "pending_approvals": sum(
            1
            for u in users
            if u.role in (UserRole.SUPPLIER, UserRole.TRANSPORTER) and not u.is_approved
        ),
        "suspended_users": sum(1 for u in users if u.is_suspended),
    }


def build_health_prompt(stats: dict) -> str:
    lines = "\n".join(f"  - {key.replace('_', ' ')}: {value}" for key, value in stats.items())
    return f"""You are an AI assistant responsible for monitoring the FruitFlow trading platform.
Your task is to provide a project health check summary for the platform manager.

Current platform statistics:
{lines}

Consider issues such as orders remaining in 'Awaiting Payment' longer than typical (more than {STALE_PAYMENT_HOURS} hours),
disputed orders, failed deliveries, partners waiting for approval, and accounts suspended for low ratings.

Generate a list of 1 to 3 concise, actionable warnings if issues are apparent.
If no significant issues are apparent, return an empty array for warnings.

Return ONLY a JSON object with exactly these keys:
  overallStatus - one of "Nominal", "Minor Concerns", "Action Required"
  warnings      - array of 0 to 3 strings

No prose, no markdown fences. JSON object only."""


def parse_health_response(raw: str) -> tuple[str, list[str]] | None:
    data = extract_json_object(raw)
    if not data:
        return None
    overall = str(data.get("overallStatus") or "").strip()
    if overall not in STATUSES:
        return None
    warnings = data.get("warnings") or []
    if not isinstance(warnings, list):
        return None
    return overall, [str(w) for w in warnings if str(w).strip()][:MAX_WARNINGS]


def rule_based_health(stats: dict) -> tuple[str, list[str]]:
    warnings: list[str] = []
    if stats["stale_awaiting_payment"]:
        warnings.append(
            f"{stats['stale_awaiting_payment']} order(s) have been awaiting payment for more "
            f"than {STALE_PAYMENT_HOURS} hours. Follow up with the customers involved."
        )
    if stats["disputed_orders"]:
        warnings.append(
            f"{stats['disputed_orders']} order(s) are disputed. Review the refunds and the "
            "parties involved."
        )
    if stats["failed_deliveries"]:
        warnings.append(
            f"{stats['failed_deliveries']} shipment(s) report a failed delivery. Check with "
            "the assigned transporters."
        )
    if stats["suspended_users"]:
        warnings.append(
            f"{stats['suspended_users']} account(s) are suspended for low ratings."
        )
    if stats["pending_approvals"]:
        warnings.append(
            f"{stats['pending_approvals']} supplier/transporter account(s) are awaiting approval."
        )

    if not warnings:
        return NOMINAL, []
    severe = (
        stats["disputed_orders"]
        or stats["failed_deliveries"]
        or stats["stale_awaiting_payment"] >= 3
    )
    return (ACTION_REQUIRED if severe else MINOR_CONCERNS), warnings[:MAX_WARNINGS]


def _to_result(report: HealthCheckReport) -> HealthCheckResult:
    return HealthCheckResult(
        overall_status=report.overall_status,
        warnings=list(report.warnings or []),
        stats=report.stats,
        simulated=report.source == "simulated",
        created_at=report.created_at,
    )


async def run_health_check(
    db: Session,
    client: BaseLLMAdapter | None = None,
) -> HealthCheckResult:
    stats = collect_platform_stats(db)
    client = client or get_llm_client()

    parsed = None
    if client.available:
        try:
            raw = await client.invoke(build_health_prompt(stats), flow="health_check")
        except Exception as exc:
            logger.warning("AI health check failed: %s - using rule-based report", exc)
        else:
            parsed = parse_health_response(raw)
            if parsed is None:
                logger.warning("AI health check unusable; using rule-based report.")

    source = "ai"
    if parsed is None:
        parsed = rule_based_health(stats)
        source = "simulated"

    overall, warnings = parsed
    report = HealthCheckReport(
        overall_status=overall,
        warnings=warnings,
        stats=stats,
        source=source,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(
        "Health check stored id=%s status=%s warnings=%d source=%s",
        report.id,
        overall,
        len(warnings),
        source,
    )
    return _to_result(report)


def get_latest_report(db: Session) -> HealthCheckResult | None:
    report = (
        db.query(HealthCheckReport)
        .order_by(HealthCheckReport.created_at.desc())
        .first()
    )
    return _to_result(report) if report else None


def run_health_check_cycle(db: Session) -> HealthCheckResult | None:
    """Synchronous entry point safe to call from APScheduler background threads."""
    try:
        return asyncio.run(run_health_check(db))
    except Exception as exc:
        logger.exception("Health check cycle failed: %s", exc)
        db.rollback()
        return None
