import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from trendly/.env before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from trendly.api import admin, billing, cron, generate, health, user  # noqa: E402
from trendly.api.deps import Services, build_services  # noqa: E402
from trendly.core.config import Settings, settings as default_settings, validate_config  # noqa: E402
from trendly.core.database import check_connection, create_all_tables  # noqa: E402
from trendly.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from trendly.core.logging import configure_logging  # noqa: E402
from trendly.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from trendly.core.tracing import setup_tracing  # noqa: E402
from trendly.core.validation import validate_env  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("trendly")
    logger.info("Starting Trendly backend...")
    app.state.startup_time = time.time()
    engine = app.state.services.engine
    if check_connection(engine):
        create_all_tables(engine)
    else:
        logger.warning("Database unreachable at startup; /readyz will report not ready")
    try:
        yield
    finally:
        logging.getLogger("trendly").info("Stopping Trendly backend...")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    cfg = settings or default_settings

    configure_logging(cfg.ENV)
    validate_env(settings_obj=cfg)
    validate_config(strict=cfg.CONFIG_STRICT, settings_obj=cfg)
    setup_tracing(enabled=cfg.OTEL_ENABLED, exporter_name=cfg.OTEL_EXPORTER)

    app = FastAPI(title="Trendly - Backend", lifespan=lifespan)
    app.state.settings = cfg
    app.state.services = services or build_services(cfg)

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(user.router)
    app.include_router(generate.router)
    app.include_router(billing.router)
    app.include_router(cron.router)
    app.include_router(admin.router)
    return app


app = create_app()
