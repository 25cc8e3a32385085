# psyscore/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
from .db import Base, engine
from . import models  # noqa: F401  registers tables on Base.metadata
from .errors import install_error_handlers
from .logging_config import log_event
from .settings import get_settings
from .routes import scoring, events, ops

settings = get_settings()


def _ensure_db_ready() -> None:
    # guaranteed schema init for pytest + local runs
    Base.metadata.create_all(bind=engine)


# Run schema init at import time so pytest cannot bypass it
_ensure_db_ready()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _ensure_db_ready()
    log_event("STARTUP", "psyscore ready", {"env": settings.ENV, "engine_version": settings.ENGINE_VERSION})
    yield


app = FastAPI(title="psyscore API", version=settings.APP_VERSION, lifespan=lifespan)
install_error_handlers(app)

app.include_router(scoring.router)
app.include_router(ops.router)
app.include_router(events.router)


@app.get("/")
def health():
    return {"status": "ok", "service": "psyscore"}
