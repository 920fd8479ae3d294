"""FastAPI app entry."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cursorgate.adapters.openai_compat.router import router as openai_router
from cursorgate.adapters.openai_compat.upstream import close_upstream_async_client
from cursorgate.config.settings import settings
from cursorgate.util.logger import logger

app = FastAPI(title=settings.app_name)
app.include_router(openai_router, prefix="/v1")


def _blocked_response(status_code: int, reason: str, detail: str | None = None) -> JSONResponse:
    detail_text = (detail or reason).strip() or reason
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": detail_text,
                "type": "cursorgate_error",
                "code": reason,
            },
        },
    )


@app.middleware("http")
async def request_boundary_middleware(request: Request, call_next):
    logger.debug("boundary enter method=%s path=%s", request.method, request.url.path)

    if request.url.path == "/health":
        return await call_next(request)

    if settings.max_request_body_bytes > 0 and request.method.upper() in {"POST", "PUT", "PATCH"}:
        content_length_header = request.headers.get("content-length", "").strip()
        if content_length_header:
            try:
                content_length = int(content_length_header)
            except ValueError:
                logger.warning("boundary reject invalid content-length path=%s", request.url.path)
                return _blocked_response(status_code=400, reason="invalid_content_length")
        else:
            content_length = len(await request.body())
        if content_length > settings.max_request_body_bytes:
            logger.warning(
                "boundary reject oversize request size=%s max=%s path=%s",
                content_length,
                settings.max_request_body_bytes,
                request.url.path,
            )
            return _blocked_response(status_code=413, reason="request_body_too_large")

    try:
        response = await call_next(request)
    except Exception as exc:  # pragma: no cover - fail-safe
        logger.exception("gateway unhandled exception path=%s", request.url.path)
        return _blocked_response(
            status_code=500,
            reason="gateway_internal_error",
            detail=f"gateway internal error: {exc}",
        )
    logger.debug("boundary pass method=%s path=%s status=%s", request.method, request.url.path, response.status_code)
    return response


@app.get("/health")
def health() -> dict:
    logger.info("health check")
    return {"status": "ok"}


@app.on_event("shutdown")
async def shutdown_cleanup() -> None:
    await close_upstream_async_client()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
