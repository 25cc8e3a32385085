# psyscore/settings.py
import os
from functools import lru_cache

from dotenv import load_dotenv

# .env must be loaded before the class body below reads the environment
load_dotenv()

class Settings:
    APP_VERSION: str = "0.4.0"
    ENGINE_VERSION: str = "formula-v2"
    SCHEMA_VERSION: str = "v1-score-events"

    # --- CONFIG ---
    ENV = os.getenv("PSYSCORE_ENV", "production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./psyscore.db")
    LOG_LEVEL = os.getenv("PSYSCORE_LOG_LEVEL", "INFO").upper()

    # --- ENGINE LIMITS ---
    FORMULA_CACHE_SIZE = int(os.getenv("FORMULA_CACHE_SIZE", "256"))
    MAX_FORMULA_LENGTH = int(os.getenv("MAX_FORMULA_LENGTH", "10000"))
    RECENT_EVENTS_LIMIT = 200

@lru_cache
def get_settings():
    return Settings()
