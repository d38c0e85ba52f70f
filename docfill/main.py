"""FastAPI application entry point.

Main application setup with middleware, routing, and lifecycle management.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docfill import __version__
from docfill.api import documents_router, templates_router
from docfill.api.schemas import ErrorResponse, HealthResponse
from docfill.core.config import Settings, get_settings
from docfill.core.factory import ComponentFactory
from docfill.core.logging_config import setup_logging
from docfill.pipeline import INTERNAL_ERROR

# Initialize logging before importing other modules
setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "docfill-api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Builds the component graph up front so configuration errors surface
    at startup rather than on the first request.
    """
    factory: ComponentFactory = app.state.factory

    logger.info("Starting document generation API...")
    try:
        pipeline = factory.get_pipeline()
        logger.info(f"Conversion chain: {' -> '.join(pipeline.orchestrator.chain)}")
        logger.info(f"Templates available: {pipeline.store.list_templates()}")
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down document generation API...")


def create_app(
    settings: Settings | None = None,
    factory: ComponentFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.
        factory: Optional component factory, e.g. one wired with test doubles.

    Returns:
        Configured FastAPI application instance.
    """
    try:
        if factory is not None:
            settings = settings or factory.settings
        settings = settings or get_settings()
        factory = factory or ComponentFactory(settings)

        app = FastAPI(
            title="docfill",
            description="Word template filling with tiered PDF conversion",
            version=__version__,
            lifespan=lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        app.state.settings = settings
        app.state.factory = factory

        # CORS middleware
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Disposition", "X-Correlation-ID", "X-Conversion-Mode", "X-Missing-Tags"],
        )

        app.include_router(documents_router)
        app.include_router(templates_router)
        logger.info("Registered documents and templates routers")

        @app.get("/health", tags=["health"], response_model=HealthResponse)
        async def health_check() -> HealthResponse:
            """Health check with a render self-test and process counters."""
            pipeline = factory.get_pipeline()
            metrics = factory.get_metrics_store()
            metrics.touch_health()

            report = await pipeline.self_test()
            healthy = report["render"] == "ok"
            return HealthResponse(
                status="healthy" if healthy else "degraded",
                service=SERVICE_NAME,
                version=__version__,
                checks={**report, "metrics": metrics.snapshot()},
            )

        # Exception handlers
        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request, exc):
            """Handle Pydantic validation errors."""
            logger.warning(f"Validation error: {exc.errors()}")
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content={
                    "ok": False,
                    "error": "invalid_request",
                    "detail": "Validation error",
                    "errors": jsonable_errors(exc.errors()),
                },
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(request, exc):
            """Handle uncaught exceptions."""
            logger.error(f"Unhandled exception: {exc}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ErrorResponse(
                    error=INTERNAL_ERROR,
                    detail="Internal server error",
                ).model_dump(by_alias=True),
            )

        logger.info("FastAPI application created successfully")
        return app

    except Exception as e:
        logger.error(f"Failed to create FastAPI app: {e}", exc_info=True)
        raise


def jsonable_errors(errors: list[dict]) -> list[dict]:
    """Drop non-serializable context (e.g. exception objects) from validation errors."""
    return [{k: v for k, v in err.items() if k != "ctx"} for err in errors]


# Create the app instance
try:
    app = create_app()
except Exception as e:
    logger.error(f"Fatal error creating app: {e}", exc_info=True)
    raise


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info("Starting uvicorn server on port 8000...")
    uvicorn.run(
        "docfill.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
