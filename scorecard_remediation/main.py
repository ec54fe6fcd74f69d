# scorecard_remediation/main.py
from contextlib import asynccontextmanager
import time

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scorecard_remediation.api.dependencies import Runtime
from scorecard_remediation.api.v1.router import api_router
from scorecard_remediation.clients.github_client import GitHubClient
from scorecard_remediation.core.config import settings
from scorecard_remediation.core.logging import logger
from scorecard_remediation.remediation.registry import build_default_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Scorecard Remediation API")
    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    github = GitHubClient(http_client=http_client)
    app.state.runtime = Runtime(
        http_client=http_client,
        github=github,
        registry=build_default_registry(github),
    )

    yield

    # Shutdown
    logger.info("Shutting down Scorecard Remediation API")
    await github.close()
    await http_client.aclose()


app = FastAPI(
    title="Scorecard Remediation API",
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=("/api/docs" if settings.ENVIRONMENT == "development" else None),
    lifespan=lifespan
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Include routers
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.exception("Unhandled exception while handling request", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
