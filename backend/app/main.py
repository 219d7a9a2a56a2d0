# app/main.py
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.db import init_db, close_db
from app.core.errors import register_exception_handlers
from app.core.rate_limit import RateLimitMiddleware

from app.api.v1.routers import auth, issues, comments, dashboard
from app.api.v1.routers.ws_events import router as ws_events_router

from app.core.bootstrap import check_required_settings, ensure_default_admin
logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# Per-IP request limit on the REST API
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_max,
    window_sec=settings.rate_limit_window_sec,
    path_prefix="/api/",
    trust_forwarded_for=settings.rate_limit_trust_proxy,
)

# CORS for the configured client origin (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["*"],
)

register_exception_handlers(app)

@app.on_event("startup")
async def on_startup():
    # Missing JWT_SECRET is fatal: refuse to start rather than fail per request
    check_required_settings()
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(issues.router, prefix="/api/v1")
app.include_router(comments.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")

# WebSocket
app.include_router(ws_events_router)

@app.get("/health")
def health():
    return {"success": True, "message": "Server is running"}


if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
