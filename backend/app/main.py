from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.config import settings
from app.db.base import SessionLocal
from app.db.session import create_tables
from app.routes import auth, trainer, protocol_templates, ailments
from app.services.protocols.template_engine import ProtocolTemplateEngine


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROTOCOL_WRITE_PREFIX = "/api/trainer/health-protocols"


def seed_templates():
    db = SessionLocal()
    try:
        return ProtocolTemplateEngine(db).seed_builtin_templates()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} API")
    logger.info(f"CORS allow_origins: {settings.cors_origins}")
    logger.info(f"Cookie config -> domain: {settings.cookie_domain}, secure: {settings.cookie_secure}, samesite: {settings.cookie_samesite}")
    await create_tables()
    if settings.seed_templates_on_startup:
        seed_templates()
    yield
    # Shutdown
    logger.info("Shutting down API")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Trainer health protocol creation, templates and customer assignments",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - specific origins for credentials support
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def limit_protocol_body_size(request: Request, call_next):
    """Reject oversized protocol bodies with 413 before they are parsed"""
    if request.method in ("POST", "PUT") and request.url.path.startswith(PROTOCOL_WRITE_PREFIX):
        limit = settings.max_protocol_body_bytes
        length = request.headers.get("content-length")
        if length is not None and length.isdigit():
            received = int(length)
        else:
            received = len(await request.body())
        if received > limit:
            logger.warning(f"Rejected {received} byte body on {request.url.path} (limit {limit})")
            return JSONResponse(
                status_code=413,
                content={"detail": "Protocol payload too large", "limit": limit, "received": received},
            )
    return await call_next(request)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(trainer.router, prefix="/api/trainer", tags=["trainer"])
app.include_router(protocol_templates.router, prefix="/api/protocol-templates", tags=["protocol-templates"])
app.include_router(ailments.router, prefix="/api/ailments", tags=["ailments"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "service": settings.app_name}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
