"""FastAPI application entry point."""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prd_engine.api import router as api_router
from prd_engine.core.logging import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"

app = FastAPI(
    title="PRD Engine",
    description="LLM-assisted drafting of Project Requirement Documents",
    version="0.1.0",
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Bind a correlation id to everything logged while handling the request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
