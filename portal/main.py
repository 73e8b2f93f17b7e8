import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import compile_path

from portal.api.api import ENDPOINT_ROUTERS, api_router
from portal.core.config import settings
from portal.core.errors import PortalError
from portal.core.logging_config import configure_logging
from portal.db import session as db_session
from portal.db.seed import seed_fixtures
from portal.schemas.common import error_envelope

configure_logging()
logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


def route_methods_table(api_prefix: str):
    """(path regex, methods) of every endpoint registered under ``api_prefix``."""
    table = []
    for prefix, router, _ in ENDPOINT_ROUTERS:
        for route in router.routes:
            methods = getattr(route, "methods", None)
            if methods:
                path_regex = compile_path(f"{api_prefix}{prefix}{route.path}")[0]
                table.append((path_regex, frozenset(methods)))
    return table


PREFLIGHT_ROUTES = route_methods_table(settings.API_PREFIX)


def allowed_methods(path: str) -> set:
    methods = set()
    for path_regex, route_methods in PREFLIGHT_ROUTES:
        if path_regex.match(path):
            methods.update(route_methods)
    return methods


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_session.init_db()
    if settings.seeding_enabled:
        with Session(db_session.engine) as session:
            seed_fixtures(session)
    logger.info("%s %s started (%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Declared after CORSMiddleware so it wraps it and sees OPTIONS first
@app.middleware("http")
async def answer_preflight(request: Request, call_next):
    if request.method != "OPTIONS":
        return await call_next(request)

    methods = allowed_methods(request.url.path)
    if not methods:
        return await call_next(request)

    allowed = ", ".join(sorted(methods | {"OPTIONS"}))
    headers = {"Allow": allowed, "Access-Control-Allow-Methods": allowed, **PREFLIGHT_HEADERS}
    origin = request.headers.get("origin")
    if origin and ("*" in settings.CORS_ORIGINS or origin in settings.CORS_ORIGINS):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return Response(status_code=204, headers=headers)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    message = "; ".join(problems) or "Invalid request"
    return JSONResponse(status_code=400, content=error_envelope(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_envelope("Internal server error"))


app.include_router(api_router, prefix=settings.API_PREFIX)
