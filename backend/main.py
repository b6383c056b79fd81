import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import get_settings
from api.routes import protect, stats

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=settings.log_file_path or None,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Sentinel API (%s)", settings.environment)

    if settings.environment == "production" and settings.debug:
        logger.warning("Debug mode is enabled in a production environment")
    if not settings.redact_pii and not settings.redact_secrets:
        logger.warning("Output redaction is fully disabled")

    yield
    logger.info("Shutting down Sentinel API")


app = FastAPI(
    title="Sentinel",
    description="Input sanitisation and output redaction for LLM applications",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(protect.router, prefix="/api", tags=["protect"])
app.include_router(stats.router, prefix="/api", tags=["stats"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}
