"""FastAPI application entry point.

Main application setup with middleware, routing, and lifecycle management.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docassembly import __version__
from docassembly.api.assemble import router as assemble_router
from docassembly.api.schemas import ErrorResponse
from docassembly.core.config import Settings, get_settings
from docassembly.core.exceptions import AssemblyError
from docassembly.core.factory import ComponentFactory
from docassembly.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    logger.info("Starting document assembly API...")
    logger.info(
        f"Data directory: {settings.data_dir}, temporary directory: {settings.temp_dir}, "
        f"converter: {settings.converter_binary_path}"
    )

    yield

    logger.info("Shutting down document assembly API...")
    app.state.factory.clear_cache()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings. If None, loads from environment.

    Returns:
        Configured FastAPI application instance.
    """
    try:
        settings = settings or get_settings()
        setup_logging(settings)
        settings.configure_logging()

        app = FastAPI(
            title="Document Assembly Service",
            description="Assembles guide templates and answers into one PDF",
            version=__version__,
            lifespan=lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        app.state.settings = settings
        app.state.factory = ComponentFactory(settings)

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Disposition"],
        )

        app.include_router(assemble_router)
        logger.info("Registered assemble router")

        @app.get("/health", tags=["health"])
        async def health_check():
            """Health check endpoint for load balancers and monitoring."""
            return {
                "status": "healthy",
                "service": "document-assembly-api",
                "version": __version__,
            }

        @app.exception_handler(AssemblyError)
        async def assembly_exception_handler(request: Request, exc: AssemblyError):
            """Report pipeline failures as ``{ok: false, error}``."""
            if exc.status_code >= 500:
                logger.error(f"Assembly failed: {exc}", exc_info=exc)
            else:
                logger.warning(f"Assembly rejected: {exc}")
            return JSONResponse(
                status_code=exc.status_code,
                content=ErrorResponse(error=exc.message).model_dump(),
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Handle Pydantic validation errors."""
            logger.warning(f"Validation error: {exc.errors()}")
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=ErrorResponse(error="Invalid request").model_dump(),
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle uncaught exceptions."""
            logger.error(f"Unhandled exception: {exc}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=ErrorResponse(error=str(exc) or "Internal server error").model_dump(),
            )

        logger.info("FastAPI application created successfully")
        return app

    except Exception as e:
        logger.error(f"Failed to create FastAPI app: {e}", exc_info=True)
        raise


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info("Starting uvicorn server on port 8000...")
    uvicorn.run(
        "docassembly.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
