import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import create_tables
from app.core.exceptions import AppError
from app.storage.factory import build_storage, set_storage

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Pick the storage backend once and prepare it before serving."""
    storage = build_storage()
    set_storage(storage)
    logger.info(f"🚀 {settings.PROJECT_NAME} starting with {type(storage).__name__}")

    if settings.STORAGE_BACKEND.lower() == "database" and settings.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("✅ Database tables ready")

    if settings.SEED_DEMO_DATA:
        from app.storage.demo import seed_demo_data
        await seed_demo_data(storage)
        logger.info("🌱 Demo data seeded")

    yield
    logger.info("🛑 Shutting down")


app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message} ({exc.detail})")
    elif exc.detail:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    # Drop the leading "body"/"query" from the location
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"message": f"{field}: {message}" if field else message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(api_router, prefix=settings.API_STR)


@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} is running", "version": "1.0.0"}
