# larder/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from larder.config import settings
from larder.db import Base, SessionLocal, engine
from larder.deps import build_identity_provider
from larder.errors import LarderError
from larder.middleware import RequestIdMiddleware
import larder.models  # noqa: F401  (registers tables for create_all)
from larder.routers import (
    auth, dashboard, dishes, ingredients, notes, reports, sales, shopping_list, suppliers,
)
from larder.services.dashboard import DashboardService
from larder.services.memo import MemoizedFetch

log = logging.getLogger(__name__)

app = FastAPI(title="Larder API", version="0.1.0")

# Shared services live on app.state; routes reach them through deps.
memo = MemoizedFetch(
    ttl=settings.CACHE_TTL_SEC,
    min_interval=settings.CACHE_MIN_INTERVAL_SEC,
    timeout=settings.FETCH_TIMEOUT_SEC,
)
app.state.memo = memo
app.state.dashboard = DashboardService(memo, SessionLocal)
app.state.identity_provider = build_identity_provider(settings.AUTH_MODE)


@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)
    log.info("larder started (env=%s, auth=%s)", settings.APP_ENV, settings.AUTH_MODE)


@app.exception_handler(LarderError)
async def larder_error_handler(request: Request, exc: LarderError):
    if exc.status_code >= 500:
        log.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(ingredients.router)
app.include_router(dishes.router)
app.include_router(dishes.recipes_router)
app.include_router(sales.router)
app.include_router(suppliers.router)
app.include_router(shopping_list.router)
app.include_router(dashboard.router)
app.include_router(reports.router)
app.include_router(notes.router)


@app.get("/healthz")
def healthz():
    return {"ok": True}
