import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, Uuid

from fruitflow.database import Base


class ExternalApiLog(Base):
    __tablename__ = "external_api_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    service = Column(String(64), nullable=True)
    method = Column(String(16), nullable=False, default="GET")
    url = Column(Text, nullable=False)
    params = Column(JSON, nullable=True)
    status_code = Column(Integer, nullable=True)
    from_cache = Column(Boolean, nullable=False, default=False)
    elapsed_ms = Column(Integer, nullable=True)
    response_body = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
