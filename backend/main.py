from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import items, study
from core.config import get_settings
from core.errors import register_error_handlers
from core.logging import SERVICE_VERSION, configure_logging, get_logger
from core.middleware import RequestLoggingMiddleware, SlowRequestMiddleware
from engines.service import SchedulerService

settings = get_settings()

# Initialize logging before anything else
configure_logging(
    level=settings.LOG_LEVEL,
    json_logs=settings.LOG_JSON,
    log_sql=settings.LOG_SQL,
)

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("startup", message="Recall API starting up", database=settings.DATABASE_URL.split("://")[0])
    app.state.scheduler = await SchedulerService.from_settings(settings)
    log.info("scheduler_ready")

    yield

    log.info("shutdown", message="Recall API shutting down")
    await app.state.scheduler.close()
    app.state.scheduler = None


app = FastAPI(
    title="Recall API",
    description="Spaced-repetition vocabulary scheduler: SM-2 intervals, daily study queues and recoverable study sessions",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

register_error_handlers(app)

# Middleware (order matters: last added = first executed)
app.add_middleware(SlowRequestMiddleware, slow_threshold_ms=1000)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(study.router, prefix="/api/study", tags=["study"])
app.include_router(items.router, prefix="/api/items", tags=["items"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": SERVICE_VERSION}


if __name__ == "__main__":
    import uvicorn

    log.info("server_config", host=settings.BACKEND_HOST, port=settings.BACKEND_PORT, debug=settings.APP_DEBUG)
    uvicorn.run(
        "main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.APP_DEBUG,
        log_config=None,
    )
