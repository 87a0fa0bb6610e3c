"""
middleware.py
-------------

HTTP middleware applied to every request before dispatch:
    - request_logger: one log line per request with status and latency
    - recovery: turns any unhandled exception into a 500 JSON response
"""

import time

from fastapi import Request
from fastapi.responses import JSONResponse

from talkify.utils.logger_config import app_logger, format_fields, request_logger


async def request_logger_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000

    line = "Request handled" + format_fields({
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "latency_ms": f"{latency_ms:.2f}",
        "client": request.client.host if request.client else "-",
    })
    if response.status_code >= 500:
        request_logger.error(line)
    elif response.status_code >= 400:
        request_logger.warning(line)
    else:
        request_logger.info(line)
    return response


async def recovery_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        app_logger.exception(f"[PANIC_RECOVERED] {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
