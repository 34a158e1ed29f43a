"""Entry point for the file share server."""

import argparse
import time
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from fileshare.config import ServerSettings
from fileshare.context import ShareContext
from fileshare.exceptions import (
    FileShareException,
    IOFailureError,
    NotFoundError,
    PayloadTooLargeError,
    TooManyFilesError,
    UnsupportedTypeError
)
from fileshare.routes.event_routes import router as event_router
from fileshare.routes.file_routes import router as file_router
from fileshare.routes.info_routes import router as info_router
from fileshare.utils import generate_request_id

logger = setup_logging('fileshare')


def _error(status_code: int, exc: Exception, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    """
    Build the FastAPI application for one shared directory.

    Args:
        settings: Server settings, read from the environment when omitted

    Returns:
        Configured FastAPI app; its ShareContext starts with the app
    """
    settings = settings or ServerSettings.from_env()

    app = FastAPI(
        title="LAN File Share",
        description="Share files between devices on the same local network",
        version="1.0.0"
    )
    app.state.settings = settings
    app.state.context = ShareContext(settings)

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        """
        Refuse bodies larger than the whole-request ceiling before reading them.
        """
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_request_bytes:
            logger.warning(
                f"Request body too large: {length} bytes path={request.url.path}"
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={
                    "detail": f"Request too large. Maximum allowed size is {settings.max_request_bytes} bytes",
                    "code": "PAYLOAD_TOO_LARGE"
                }
            )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = generate_request_id()
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
        )

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    @app.on_event("startup")
    async def startup_event():
        """
        Prepare storage and start network discovery.
        """
        logger.info("File share server starting up...")
        await app.state.context.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        """
        Stop discovery and disconnect viewers.
        """
        logger.info("File share server shutting down...")
        await app.state.context.stop()

    @app.exception_handler(UnsupportedTypeError)
    async def unsupported_type_handler(request: Request, exc: UnsupportedTypeError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(
            f"Unsupported type error: {exc} [request_id={request_id}] path={request.url.path}"
        )
        return _error(status.HTTP_400_BAD_REQUEST, exc, "UNSUPPORTED_TYPE")

    @app.exception_handler(TooManyFilesError)
    async def too_many_files_handler(request: Request, exc: TooManyFilesError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(
            f"Too many files error: {exc} [request_id={request_id}] path={request.url.path}"
        )
        return _error(status.HTTP_400_BAD_REQUEST, exc, "TOO_MANY_FILES")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(
            f"File not found error: {exc} [request_id={request_id}] path={request.url.path}"
        )
        return _error(status.HTTP_404_NOT_FOUND, exc, "FILE_NOT_FOUND")

    @app.exception_handler(PayloadTooLargeError)
    async def payload_too_large_handler(request: Request, exc: PayloadTooLargeError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.warning(
            f"Payload too large error: {exc} [request_id={request_id}] path={request.url.path}"
        )
        return _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, exc, "PAYLOAD_TOO_LARGE")

    @app.exception_handler(IOFailureError)
    async def io_failure_handler(request: Request, exc: IOFailureError):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.error(
            f"Storage I/O error: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "IO_FAILURE")

    @app.exception_handler(FileShareException)
    async def file_share_exception_handler(request: Request, exc: FileShareException):
        request_id = getattr(request.state, 'request_id', 'unknown')
        logger.error(
            f"File share exception: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "INTERNAL_ERROR")

    app.include_router(file_router)
    app.include_router(info_router)
    app.include_router(event_router)

    @app.get("/")
    async def root():
        """
        Root endpoint with the service banner.
        """
        return {"message": f"{settings.service_name} API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Liveness check. Returns 200 if the service is alive.
        """
        return {"status": "healthy", "service": "fileshare"}

    return app


app = create_app()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Share a directory with devices on the local network")
    parser.add_argument('--host', help='Bind address (default: SHARE_HOST or 0.0.0.0)')
    parser.add_argument('--port', type=int, help='HTTP port (default: SHARE_PORT or 3000)')
    parser.add_argument('--directory', help='Directory to share (default: SHARE_UPLOAD_DIR or ./uploads)')
    parser.add_argument('--no-discovery', action='store_true', help='Do not answer UDP discovery queries')
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> ServerSettings:
    """Overlay command-line options on the environment settings."""
    settings = ServerSettings.from_env()
    overrides = {}
    if args.host:
        overrides['host'] = args.host
    if args.port:
        overrides['port'] = args.port
    if args.directory:
        overrides['upload_dir'] = Path(args.directory).resolve()
    if args.no_discovery:
        overrides['discovery_enabled'] = False
    if not overrides:
        return settings
    return ServerSettings(**{**settings.__dict__, **overrides})


def main(argv=None) -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = settings_from_args(parse_args(argv))
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
