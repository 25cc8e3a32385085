# psyscore/models.py
from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum as SAEnum, Integer, String, Text

from .db import Base


class ActionEnum(str, enum.Enum):
    SCORE_TEST = "SCORE_TEST"
    PARSE_FORMULA = "PARSE_FORMULA"
    FAILURE_LOG = "FAILURE_LOG"


class Event(Base):
    """
    Audit trail of scoring requests. Parsed formulas are not stored; the
    payload keeps the formula source and the outcome.
    """
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    test_id = Column(Integer, nullable=True, index=True)
    metric_id = Column(Integer, nullable=True, index=True)
    action = Column(SAEnum(ActionEnum), nullable=False)
    actor_type = Column(String, default="SYSTEM")
    payload = Column(Text, default="{}")

    app_version = Column(String, default="dev")
    engine_version = Column(String, default="dev")
    schema_version = Column(String, default="dev")

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
