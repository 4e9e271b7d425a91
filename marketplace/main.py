# marketplace/main.py
import logging
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from marketplace.core.config import settings
from marketplace.core.errors import register_exception_handlers
from marketplace.core.logging import setup_logging
from marketplace.db.base import Base, engine
from marketplace.db.models import registry  # noqa: F401
from marketplace.api.routes import auth
from marketplace.api.routes import admin as admin_router
from marketplace.api.routes import profiles as profiles_router
from marketplace.api.routes import categories as categories_router
from marketplace.api.routes import services as services_router
from marketplace.api.routes import bookings as bookings_router
from marketplace.api.routes import recruiters as recruiters_router
from marketplace.api.routes import offline_providers as offline_providers_router
from marketplace.api.routes import offline_dashboard as offline_dashboard_router

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

app = FastAPI(title="Service Marketplace API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


@app.on_event("startup")
def startup():
    setup_logging(settings.LOG_LEVEL)
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")
    Base.metadata.create_all(bind=engine)
    logger.info(f"API started ({settings.ENVIRONMENT}, storage={settings.STORAGE_DRIVER})")


@app.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": settings.ENVIRONMENT,
    }


@app.get("/")
def root():
    return {
        "message": "Welcome to the Service Marketplace API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "auth": "/api/auth",
            "profiles": "/api/profiles",
            "categories": "/api/categories",
            "services": "/api/services",
            "bookings": "/api/bookings",
            "admin": "/api/admin",
            "recruiters": "/api/recruiters",
            "offlineProviders": "/api/offline/providers",
            "offlineDashboard": "/api/offline/dashboard",
        },
    }


app.include_router(auth.router)
app.include_router(admin_router.router)
app.include_router(profiles_router.router)
app.include_router(categories_router.router)
app.include_router(services_router.router)
app.include_router(bookings_router.router)
app.include_router(recruiters_router.router)
app.include_router(offline_providers_router.router)
app.include_router(offline_dashboard_router.router)

if settings.STORAGE_DRIVER == "local":
    app.mount("/uploads", StaticFiles(directory=settings.LOCAL_UPLOADS_DIR, check_dir=False), name="uploads")
