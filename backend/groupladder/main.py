import logging
import os
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import players, matches, leaderboards, matchmaking
from .exceptions import DomainException, ProblemDetail
from .config import API_PREFIX
from .utils.sentry import init_sentry

logger = logging.getLogger(__name__)

init_sentry()


def _cors_settings() -> tuple[list[str], bool]:
    """Parse ``ALLOWED_ORIGINS``/``ALLOW_CREDENTIALS`` and refuse unsafe values."""

    raw = os.getenv("ALLOWED_ORIGINS", "").strip()
    if not raw:
        raise ValueError(
            "ALLOWED_ORIGINS environment variable must be set to a comma-separated "
            "list of trusted origins."
        )
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if not origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one non-empty origin.")
    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot include '*' (wildcard). Specify explicit, trusted origins."
        )
    credentials = os.getenv("ALLOW_CREDENTIALS", "true").lower() == "true"
    return origins, credentials


ALLOWED_ORIGINS, ALLOW_CREDENTIALS = _cors_settings()

app = FastAPI(
    title="Group Ladder API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

logger.info("Serving API under %r", API_PREFIX)


def _problem(
    request: Request,
    status: int,
    title: str,
    code: str,
    *,
    detail: Optional[str] = None,
    type_: str = "about:blank",
) -> JSONResponse:
    problem = ProblemDetail(
        type=type_,
        title=title,
        detail=detail,
        status=status,
        instance=request.url.path,
        code=code,
    )
    return JSONResponse(
        status_code=status,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.code)
    return _problem(
        request, exc.status_code, exc.title, exc.code, detail=exc.detail, type_=exc.type
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = getattr(exc, "code", f"http_{exc.status_code}")
    return _problem(request, exc.status_code, detail, code, detail=detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for error in exc.errors():
        where = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{where}: {error.get('msg')}")
    return _problem(
        request,
        422,
        "Invalid request",
        "request_validation_error",
        detail="; ".join(messages) or None,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    return _problem(
        request, 500, "Internal Server Error", "internal_server_error", detail=str(exc)
    )


@app.get("/healthz", tags=["health"])  # unprefixed for uptime checks
def root_healthz():
    return {"status": "ok"}


api_router = APIRouter(prefix=API_PREFIX, tags=["meta"])


@api_router.get("/healthz", tags=["health"])
def api_healthz():
    return {"status": "ok"}


v0_router = APIRouter(prefix="/v0")
v0_router.include_router(players.router)
v0_router.include_router(matches.router)
v0_router.include_router(leaderboards.router)
v0_router.include_router(matchmaking.router)

api_router.include_router(v0_router)
app.include_router(api_router)
