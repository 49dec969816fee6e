"""FastAPI application entry point for the scheduling service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from garageflow import __version__
from garageflow.api.router import api_router
from garageflow.core.errors import (
    ConflictError, FieldError, GarageflowError, IncompleteChecklistError, InvalidTransitionError,
    NotFoundError, ValidationError,
)
from garageflow.db.engine import create_all, engine

logger = logging.getLogger(__name__)

_STATUS_FOR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidTransitionError, 422),
    (IncompleteChecklistError, 422),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_all()
    yield
    await engine.dispose()


app = FastAPI(
    title="Garageflow",
    description="Scheduling and workflow orchestration for multi-center vehicle service.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)


def _loc_to_path(loc) -> str:
    path = ""
    for part in loc:
        if part in ("body", "query", "path"):
            continue
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [FieldError(_loc_to_path(e.get("loc", ())), e.get("msg", "invalid")) for e in exc.errors()]
    return JSONResponse(status_code=400, content=ValidationError(errors).to_dict())


@app.exception_handler(GarageflowError)
async def domain_error_handler(request: Request, exc: GarageflowError):
    status = next((code for cls, code in _STATUS_FOR if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("Unmapped domain error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=exc.to_dict())


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
