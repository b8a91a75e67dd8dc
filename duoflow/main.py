"""
FastAPI application exposing the Duo Universal second-factor step.
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import redis.asyncio as aioredis

from .auth import router as auth_router
from .mfa.providers.duo import shutdown_executor
from .mfa.service import FlowController
from .observability.logging import StructuredLogger, setup_logging
from .observability.metrics import metrics_router

logger = StructuredLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Starting up duoflow...")

    app.state.flow_controller = FlowController()

    # Redis backs RedisSessionNotes for hosts that keep auth notes there
    redis_url = os.getenv("REDIS_URL")
    app.state.redis = aioredis.from_url(redis_url, decode_responses=True) if redis_url else None

    yield

    logger.info("Shutting down duoflow...")
    if app.state.redis is not None:
        await app.state.redis.aclose()
    shutdown_executor()


app = FastAPI(
    title="duoflow",
    description="Duo Universal Prompt second-factor login step",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if os.getenv("ENABLE_DOCS", "true").lower() == "true" else None,
    redoc_url=None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])


@app.get("/")
async def root():
    return {
        "service": "duoflow",
        "version": "1.0.0",
        "status": "operational",
    }


# For local development: run with uvicorn directly
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "duoflow.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENVIRONMENT") == "development"
    )
