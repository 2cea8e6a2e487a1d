import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealdesk.config import settings
from dealdesk.api.routes import health, calculations, tax, deals

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configure logging
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Deal desk starting; deal API at %s", settings.DEAL_API_BASE_URL)
    yield
    logger.info("Deal desk stopped")


app = FastAPI(title="Deal Desk", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(calculations.router, prefix="/api")
app.include_router(tax.router, prefix="/api")
app.include_router(deals.router, prefix="/api")
