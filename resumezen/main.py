import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load env from resumezen/.env before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from resumezen.api import health, metrics, plans, resume  # noqa: E402
from resumezen.core.config import settings, validate_config  # noqa: E402
from resumezen.core.database import create_all_tables  # noqa: E402
from resumezen.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from resumezen.core.logging import configure_logging  # noqa: E402
from resumezen.core.middleware.metrics import MetricsMiddleware  # noqa: E402
from resumezen.core.middleware.ratelimit import RateLimitMiddleware  # noqa: E402
from resumezen.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from resumezen.core.middleware.tracing import TracingMiddleware  # noqa: E402
from resumezen.core.tracing import setup_tracing  # noqa: E402
from resumezen.core.validation import validate_env  # noqa: E402
from resumezen.features.plans.service import seed_plans  # noqa: E402

configure_logging(settings.ENV)
validate_env()
validate_config(strict=settings.CONFIG_STRICT)
setup_tracing(enabled=settings.OTEL_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("resumezen")
    logger.info("Starting ResumeZen backend...")
    app.state.startup_time = time.time()
    create_all_tables()
    inserted = seed_plans()
    if inserted:
        logger.info(f"Seeded {inserted} catalog plans")
    try:
        yield
    finally:
        logger.info("Stopping ResumeZen backend...")


app = FastAPI(title="ResumeZen API", lifespan=lifespan)

# Middlewares (last added runs first)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(TracingMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)

app.include_router(plans.router)
app.include_router(resume.router)
app.include_router(health.router)
app.include_router(metrics.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("resumezen.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
