import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.marketplace.router import router as marketplace_router
from .domain.slots.router import router as slots_router
from .domain.swaps.router import router as swaps_router
from .routes.auth import router as auth_router
from .shared.errors import InconsistentState, SlotSwapError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)
logging.getLogger("passlib").setLevel(logging.ERROR)

INCONSISTENT_STATE_DETAIL = "Something went wrong processing this swap. Our team has been notified."


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("🚀 SlotSwap API started, tables ready")
    yield
    logger.info("SlotSwap API shutting down")


app = FastAPI(title="SlotSwap API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SlotSwapError)
async def slot_swap_error_handler(request: Request, exc: SlotSwapError):
    """Domain errors become {"detail", "code"} responses"""
    if isinstance(exc, InconsistentState):
        # Logged at CRITICAL where it was detected; the message names internal ids
        logger.error(f"{request.method} {request.url.path} - inconsistent swap state")
        detail = INCONSISTENT_STATE_DETAIL
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """A missing or malformed Authorization header is a 401, anything else a 422"""
    errors = exc.errors()
    if any("authorization" in str(error.get("loc", "")).lower() for error in errors):
        logger.warning(f"⚠️ Missing or invalid Authorization header for {request.url.path}")
        return JSONResponse(
            status_code=401,
            content={"detail": "Not authenticated. Please provide a valid Bearer token."},
        )

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(errors)})


def jsonable_errors(errors: list[dict]) -> list[dict]:
    """Validation errors with the raw exception objects (from ``ctx``) stringified"""
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        cleaned.append(error)
    return cleaned


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} - unhandled error: {e}")
        raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(slots_router)
app.include_router(marketplace_router)
app.include_router(swaps_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
