import os
from pathlib import Path
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

# Look for .env at the project root
env_path = Path(__file__).parent.parent.parent / '.env'
if env_path.exists():
    logger.info(f"Loading environment variables from: {env_path}")
    load_dotenv(dotenv_path=env_path, override=True)
else:
    logger.info(f"No .env file found at: {env_path}, using process environment")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Basic settings
API_PREFIX = os.getenv("API_PREFIX", "/api")
DEBUG = _as_bool(os.getenv("DEBUG", "False"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catalog.db")
SEED_DEFAULT_CATEGORIES = _as_bool(os.getenv("SEED_DEFAULT_CATEGORIES", "True"))

# Inventory defaults
DEFAULT_LOW_STOCK_THRESHOLD = int(os.getenv("DEFAULT_LOW_STOCK_THRESHOLD", "20"))
DEFAULT_REORDER_LEVEL = int(os.getenv("DEFAULT_REORDER_LEVEL", "10"))
ADMIN_ACTOR = os.getenv("ADMIN_ACTOR", "admin")
RECENT_ADJUSTMENTS_LIMIT = int(os.getenv("RECENT_ADJUSTMENTS_LIMIT", "10"))
RECENT_ACTIVITY_DAYS = int(os.getenv("RECENT_ACTIVITY_DAYS", "7"))
# Largest stock level a product may hold (fits a signed 32-bit column)
MAX_STOCK_QUANTITY = int(os.getenv("MAX_STOCK_QUANTITY", str(2**31 - 1)))

# Pagination
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "25"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))
