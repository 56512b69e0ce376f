# src/services/api/app.py
"""
FastAPI приложение: REST API подборов, чатов, поездок и жалоб,
WebSocket /ws и фоновые воркеры очистки.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.common.logger import log_info
from src.common.constants import TypeMsg
from src.config import settings
from src.services.api.errors import register_error_handlers
from src.services.api.routes import (
    charters_router,
    conversations_router,
    matches_router,
    reports_router,
    trips_router,
)
from src.services.realtime_ws.routes import router as realtime_router
from src.shared.models.common import HealthStatus


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    await log_info("API запускается...", type_msg=TypeMsg.INFO)

    from src.services.api.dependencies import (
        close_dependencies,
        get_conversation_service,
        get_matching_service,
        init_dependencies,
    )
    from src.worker.runner import build_workers, start_workers, stop_workers

    await init_dependencies()
    workers = build_workers(await get_matching_service(), await get_conversation_service())
    await start_workers(workers)

    yield

    await stop_workers(workers)
    await close_dependencies()
    await log_info("API остановлен", type_msg=TypeMsg.INFO)


# =============================================================================
# ПРИЛОЖЕНИЕ
# =============================================================================

app = FastAPI(
    title="Flexpress Core",
    description="Подбор чартеров для переездов, чаты, поездки и расчёты кредитами",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(matches_router)
app.include_router(charters_router)
app.include_router(conversations_router)
app.include_router(trips_router)
app.include_router(reports_router)
app.include_router(realtime_router)


# =============================================================================
# HEALTH CHECK
# =============================================================================

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    from src.services.api.dependencies import get_db, get_event_bus, get_redis, get_registry

    deps = {}

    try:
        db = await get_db()
        deps["postgres"] = "healthy" if await db.health_check() else "unhealthy"
    except Exception:
        deps["postgres"] = "unhealthy"

    redis = await get_redis()
    if redis is not None:
        deps["redis"] = "healthy" if await redis.health_check() else "unhealthy"

    event_bus = await get_event_bus()
    if event_bus is not None:
        deps["rabbitmq"] = "healthy" if await event_bus.health_check() else "unhealthy"

    realtime = {}
    try:
        registry = await get_registry()
        realtime = registry.stats()
    except RuntimeError:
        pass

    overall = "healthy" if all(v == "healthy" for v in deps.values()) else "degraded"

    return HealthStatus(
        service="flexpress_core",
        status=overall,
        version=settings.system.VERSION,
        dependencies=deps,
        realtime=realtime,
    )
