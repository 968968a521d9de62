import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid

from fruitflow.database import Base


class LlmLog(Base):
    __tablename__ = "llm_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    call_id = Column(String(32), nullable=False, index=True)
    flow = Column(String(64), nullable=True)
    provider = Column(String(32), nullable=False)
    model = Column(String(128), nullable=False)
    prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="success")
    error_message = Column(Text, nullable=True)
    elapsed_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
