"""
Transfer Market API

Team rosters, a shared transfer list and atomic player purchases.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import get_settings, setup_logging, validate_env
from ..services.dependencies import init_dependencies, reset_dependencies
from .routes import health_router, teams_router, transfers_router

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_env()
    init_dependencies()
    logger.info("Transfer Market API started")
    yield
    reset_dependencies()
    logger.info("Transfer Market API stopped")


# Create FastAPI app
app = FastAPI(
    title="Transfer Market",
    description="Football team management with a transfer list and atomic purchases",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "POST", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])
app.include_router(teams_router, prefix="/api/teams", tags=["teams"])
app.include_router(transfers_router, prefix="/api/transfers", tags=["transfers"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
