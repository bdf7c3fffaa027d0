import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from f1companion.config import configure_logging
from f1companion.database import create_db_and_tables
from f1companion.error_handling import register_exception_handlers
from f1companion.routers import auth, leagues, teams

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    create_db_and_tables()
    logger.info("Database ready")
    yield
    # Shutdown: cleanup if needed


# Initialize FastAPI app
app = FastAPI(
    title="F1 Companion API",
    description="Create fantasy F1 leagues and invite friends to compete",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(teams.router)
app.include_router(leagues.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
