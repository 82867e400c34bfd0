"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from clientpulse.api import companies, dashboard
from clientpulse.config import DEFAULT_CORS_ORIGINS, get_settings
from clientpulse.services.company_store import CompanyStoreError

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="Client Pulse API",
    description="Customer relationship intelligence extracted from meeting logs",
    version="1.0.0",
    debug=settings.debug,
)

allowed_origins = settings.cors_origins or DEFAULT_CORS_ORIGINS.copy()
cors_allow_all = settings.cors_allow_all or "*" in allowed_origins

if cors_allow_all:
    cors_kwargs = {
        "allow_origins": ["*"],
        "allow_origin_regex": None,
        "allow_credentials": False,
    }
else:
    cors_kwargs = {
        "allow_origins": allowed_origins,
        "allow_origin_regex": settings.cors_origin_regex,
        "allow_credentials": True,
    }

app.add_middleware(
    CORSMiddleware,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    **cors_kwargs,
)


@app.exception_handler(CompanyStoreError)
async def company_store_error_handler(request: Request, exc: CompanyStoreError):
    """Storage failures surface as a 500 with the store message, on every route."""
    logger.error("Company store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": f"Company store error: {exc}"})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Client Pulse API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Report which backends this process was configured with."""
    return {
        "status": "healthy",
        "generation_provider": settings.generation_provider,
        "task_mode": settings.task_mode,
        "storage": "supabase" if settings.supabase_url else "local",
    }


@app.get("/favicon.ico")
async def favicon():
    return Response(status_code=204)


# Include routers
app.include_router(
    companies.router,
    prefix=f"/api/{settings.api_version}/companies",
    tags=["companies"]
)

app.include_router(
    dashboard.router,
    prefix=f"/api/{settings.api_version}/dashboard",
    tags=["dashboard"]
)
