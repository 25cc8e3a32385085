from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import Event
from ..schemas import EventOut
from ..settings import get_settings

router = APIRouter(prefix="/events", tags=["events"])
settings = get_settings()

@router.get("/recent", response_model=list[EventOut])
def recent_events(limit: int = 50, db: Session = Depends(get_db)):
    limit = max(1, min(limit, settings.RECENT_EVENTS_LIMIT))
    rows = (
        db.query(Event)
          .order_by(Event.id.desc())
          .limit(limit)
          .all()
    )
    return [EventOut.model_validate(r) for r in rows]
