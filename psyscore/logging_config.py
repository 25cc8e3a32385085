# psyscore/logging_config.py
import logging
import json
from datetime import datetime, timezone

from .settings import get_settings

# "psyscore.engine" and other children propagate here
logger = logging.getLogger("psyscore")
logger.setLevel(getattr(logging, get_settings().LOG_LEVEL, logging.INFO))

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    logger.addHandler(handler)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_event(action: str, message: str, extra: dict | None = None) -> None:
    payload = {"action": action, "message": message}
    if extra:
        payload.update(extra)
    logger.info(json.dumps(payload, default=str))


def log_failure(error_code: str, context: dict | None = None) -> dict:
    """
    Single entry point for failure logging.
    Returns the payload so the caller can persist it into Event.payload.
    """
    payload = {"error_code": error_code, "timestamp": _now()}
    if context:
        payload["context"] = context

    logger.error(json.dumps(payload, default=str))
    return payload


def log_score(metric_id: int, value: int, term_count: int, unresolved: list[int]) -> dict:
    payload = {
        "metric_id": metric_id,
        "value": value,
        "term_count": term_count,
        "unresolved_references": unresolved,
        "timestamp": _now(),
    }
    logger.info(json.dumps({"action": "SCORE_TEST", **payload}, default=str))
    return payload
