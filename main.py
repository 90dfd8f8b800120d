"""
Visitor Pass - Backend API
FastAPI + SQLModel
"""
from dotenv import load_dotenv
load_dotenv()  # Load .env before any other imports

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from api.v1 import (
    appointments,
    checklogs,
    me,
    passes,
    reports,
    users,
    visitors,
)
from domain.errors import PassManagementError
from infrastructure.database import dispose_engine, init_db

# Setup structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.auto_create_tables:
        await init_db()
    logger.info("backend_started", service=settings.service_name)

    yield

    # Shutdown
    await dispose_engine()
    logger.info("backend_stopped", service=settings.service_name)


app = FastAPI(
    title="Visitor Pass API",
    description="Visitors, appointments, access passes and live building occupancy",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PassManagementError)
async def handle_domain_error(request: Request, exc: PassManagementError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_failed", path=request.url.path, status=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    logger.warning("request_invalid", path=request.url.path, fields=fields)
    return JSONResponse(status_code=400, content={"error": "Invalid request", "fields": fields})


@app.exception_handler(SQLAlchemyError)
async def handle_store_error(request: Request, exc: SQLAlchemyError):
    logger.error("store_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Routers
app.include_router(passes.router, prefix="/api/passes", tags=["passes"])
app.include_router(checklogs.router, prefix="/api/checklogs", tags=["checklogs"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(visitors.router, prefix="/api/visitors", tags=["visitors"])
app.include_router(appointments.router, prefix="/api/appointments", tags=["appointments"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(me.router, prefix="/api/me", tags=["me"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.service_name}


@app.get("/")
async def root():
    return {"message": "Visitor Pass API", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
