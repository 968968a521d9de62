"""Persisted result of a platform health check (AI or rule-based)."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from fruitflow.database import Base


class HealthCheckReport(Base):
    __tablename__ = "health_check_reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    overall_status = Column(String(64), nullable=False)
    warnings = Column(JSON, nullable=False, default=list)
    stats = Column(JSON, nullable=True)
    source = Column(String(16), nullable=False, default="ai")  # "ai" | "simulated"
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
