"""
CareMatch API Server Entry Point

Professional recommendation service for client intake requests.

  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carematch import __version__
from carematch.collector.store import close_pool
from carematch.recommendations.admin import router as recommendations_router

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger("carematch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_pool()
    logger.info("Database pool closed")


# ============================================
# App Configuration
# ============================================
app = FastAPI(
    lifespan=lifespan,
    title="CareMatch API",
    description="Professional recommendations for intake requests",
    version=__version__,
)

# ============================================
# CORS Configuration
# ============================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(recommendations_router)


@app.get("/")
def root():
    return {"service": "carematch", "version": __version__, "status": "ok"}


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
