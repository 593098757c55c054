from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from roomguard.api.routes import (
    class_groups,
    health,
    lifecycle,
    notifications,
    reservations,
    rooms,
    timetables,
)
from roomguard.core.config import get_settings
from roomguard.core.exceptions import AppError
from roomguard.core.logging import configure_logging
from roomguard.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from roomguard.db.bootstrap import ensure_runtime_schema
from roomguard.db.session import SessionLocal
from roomguard.services.sweep_scheduler import SweepScheduler

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    ensure_runtime_schema()
    scheduler: SweepScheduler | None = None
    if settings.sweeps_enabled:
        scheduler = SweepScheduler(SessionLocal, settings)
        scheduler.start()
    app.state.sweep_scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(rooms.router, prefix=f"{settings.api_prefix}/rooms", tags=["rooms"])
app.include_router(reservations.router, prefix=f"{settings.api_prefix}/reservations", tags=["reservations"])
app.include_router(class_groups.router, prefix=f"{settings.api_prefix}/class-groups", tags=["class-groups"])
app.include_router(timetables.router, prefix=f"{settings.api_prefix}/timetables", tags=["timetables"])
app.include_router(lifecycle.router, prefix=f"{settings.api_prefix}/lifecycle", tags=["lifecycle"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
