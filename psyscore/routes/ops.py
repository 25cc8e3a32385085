# psyscore/routes/ops.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from ..db import get_db
from ..settings import get_settings

router = APIRouter(prefix="/ops", tags=["operations"])
settings = get_settings()

@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Deep health check: verifies the DB connection used for the score audit trail.
    """
    status = {
        "api": "online",
        "version": settings.APP_VERSION,
        "engine_version": settings.ENGINE_VERSION,
        "checks": {},
    }

    try:
        db.execute(text("SELECT 1"))
        status["checks"]["database"] = "ok"
    except Exception as e:
        status["checks"]["database"] = f"failed: {str(e)}"
        raise HTTPException(503, detail=status)

    return status
