"""
errors.py
=========
Exception handlers that give every failure the same JSON shape:

    {"detail": ...}

 - validation errors  -> 400 with the list of field errors
 - HTTPException      -> its own status (404 for unknown ids)
 - export errors      -> 400 (empty dataset) / 501 (format not available)
 - anything else      -> 500 with a generic message
"""

import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .export import ExportError, ExportUnavailable
from .reports import UnknownReportType

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def export_exception_handler(request: Request, exc: ExportError):
    status_code = 501 if isinstance(exc, ExportUnavailable) else 400
    logger.warning("Export rejected on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def report_type_exception_handler(request: Request, exc: UnknownReportType):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ExportError, export_exception_handler)
    app.add_exception_handler(UnknownReportType, report_type_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
