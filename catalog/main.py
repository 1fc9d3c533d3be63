from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.config import CORS_ORIGINS, LOG_LEVEL, SEED_DEFAULT_CATEGORIES, DEBUG
from .core.database import SessionLocal, init_db
from .core.exceptions import setup_exception_handlers
from .core.helpers import utcnow
from .e_commerce import router as e_commerce_router
from .inventory import router as inventory_router
from .seed import seed_default_categories
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and default categories when starting up
    try:
        init_db()
        if SEED_DEFAULT_CATEGORIES:
            db = SessionLocal()
            try:
                seed_default_categories(db)
            finally:
                db.close()
    except Exception as e:
        logger.error(f"Error preparing database: {str(e)}")
        raise
    yield


app = FastAPI(title="Product Catalog & Inventory API", debug=DEBUG, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "timestamp": utcnow().isoformat()}


# Include routers
app.include_router(e_commerce_router)
app.include_router(inventory_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("catalog.main:app", host="0.0.0.0", port=8000, reload=DEBUG, log_level=LOG_LEVEL.lower())
