from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.database import dispose_engine, get_db, ping_database
from app.core.exceptions import AppError
from app.core.init_db import init_db
from app.core.logger import logger
from app.core.redis_lifecyle import init_redis_client, close_redis
from app.routes import api_router
from app.services.notifications.email_service import EmailService
from app.utils.dates import utcnow

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.PROJECT_DESCRIPTION,
    openapi_url=f"/openapi.json"
)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": "Please check your input",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        content = {"error": "Not found", "message": "The requested resource was not found"}
    else:
        content = {"error": exc.detail, "message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Duplicate entry", "message": "A record with this information already exists"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.is_development else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": message},
    )


# Include all API routes
app.include_router(api_router)

@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}

@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    try:
        await ping_database(db)
    except SQLAlchemyError as e:
        logger.error(f"Health check failed, database unreachable: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": utcnow().isoformat(),
                "environment": settings.ENVIRONMENT,
                "version": settings.PROJECT_VERSION,
            },
        )
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "version": settings.PROJECT_VERSION,
    }

@app.on_event("startup")
async def startup_event():
    if settings.AUTO_CREATE_TABLES:
        await init_db()
    if settings.RATE_LIMIT_ENABLED:
        try:
            await init_redis_client()
        except Exception as e:
            logger.warning(f"Redis unavailable at startup, rate limiting disabled until it returns: {e}")
    if settings.SMTP_USER:
        if await run_in_threadpool(EmailService().verify_connection):
            logger.info("Email service is ready to send messages")
    else:
        logger.warning("SMTP_USER not set, tracker emails will fail to send")

@app.on_event("shutdown")
async def shutdown_event():
    await close_redis()
    await dispose_engine()
