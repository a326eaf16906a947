import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ewaiter.api.deps import error_status
from ewaiter.api.routes import admin_router, auth_router, tenants_router
from ewaiter.config import get_settings
from ewaiter.context import AppContext
from ewaiter.services.errors import TransportError

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "context", None) is None:
        app.state.context = AppContext.build(settings)
    logger.info("Authorization flow: %s", app.state.context.settings.auth_flow)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.middleware("http")
async def enforce_https(request: Request, call_next):
    if not settings.allow_insecure_http:
        proto = request.headers.get("x-forwarded-proto") or request.url.scheme
        if proto != "https":
            return JSONResponse(status_code=400, content={"detail": "HTTPS required"})
    return await call_next(request)


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
    return JSONResponse(
        status_code=error_status(exc.kind),
        content={"detail": exc.message},
        headers={"X-Error-Kind": exc.kind},
    )


app.include_router(auth_router)
app.include_router(tenants_router)
app.include_router(admin_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
