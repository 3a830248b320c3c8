"""Application entry point and bootstrap.

This module builds every component once per process (rate limiter, HTTP
client, resolver, relay, scheduler), wires them into the FastAPI app and
provides the main entry point for running the service under uvicorn.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import RelayConfig
from app.logging_filters import configure_logging, install_uvicorn_access_log_filters
from app.errors import InternalError
from app.observability.error_log_file import setup_error_log_file
from app.observability.trace_context import TraceIdMiddleware
from app.routers import create_download_router, create_health_router, error_response, mount_web_ui
from app.scheduler.system_scheduler import SystemScheduler
from app.services.extractor import MediaResolver, build_resolver
from app.services.rate_limiter import RateLimiter
from app.services.relay import StreamingRelay

logger = logging.getLogger(__name__)


class Application:
    """Main application container.

    Owns the process-wide components and their lifecycle. The rate limiter
    created here is the only state shared between requests.
    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        resolver: MediaResolver | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the application with configuration.

        Args:
            config: Application configuration.
            resolver: Optional resolver overriding the configured backend.
            http_client: Optional upstream client; when given, the caller
                keeps ownership and the application does not close it.
        """
        self.config = config
        self.fastapi_app: FastAPI | None = None

        self.resolver: MediaResolver | None = resolver
        self.http_client: httpx.AsyncClient | None = http_client
        self._owns_http_client = http_client is None

        self.rate_limiter: RateLimiter | None = None
        self.relay: StreamingRelay | None = None
        self.system_scheduler: SystemScheduler | None = None

    def _create_http_client(self) -> httpx.AsyncClient:
        """Create the shared upstream client.

        The read timeout bounds how long a stalled transfer may sit idle;
        there is no deadline on the transfer as a whole.
        """
        timeout = httpx.Timeout(
            connect=self.config.upstream_connect_timeout_seconds,
            read=self.config.upstream_read_timeout_seconds,
            write=self.config.upstream_connect_timeout_seconds,
            pool=self.config.upstream_connect_timeout_seconds,
        )
        return httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def setup(self) -> None:
        """Initialize all application components."""
        logger.info("Setting up application components...")

        setup_error_log_file(self.config)

        self.rate_limiter = RateLimiter(
            window_seconds=self.config.rate_limit_window_seconds,
            max_requests=self.config.rate_limit_max_requests,
        )

        if self.http_client is None:
            self.http_client = self._create_http_client()

        if self.resolver is None:
            self.resolver = build_resolver(self.config)

        self.relay = StreamingRelay(
            self.http_client,
            referer=self.config.platform_referer,
        )
        self.system_scheduler = SystemScheduler(self.rate_limiter)

        logger.info("Application setup complete")

    def create_fastapi_app(self) -> FastAPI:
        """Create and configure the FastAPI application.

        Returns:
            Configured FastAPI application.
        """
        if self.rate_limiter is None or self.resolver is None or self.relay is None:
            raise RuntimeError("Application.setup() must run before create_fastapi_app()")

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            """Manage application lifespan."""
            logger.info("FastAPI application starting...")
            install_uvicorn_access_log_filters()
            await self.start_background_services()
            yield
            logger.info("FastAPI application shutting down...")
            await self.shutdown()

        self.fastapi_app = FastAPI(
            title="TikTok Relay",
            description="Resolve TikTok video pages and relay the media with range support",
            version="1.0.0",
            lifespan=lifespan,
        )
        self.fastapi_app.add_middleware(TraceIdMiddleware)

        @self.fastapi_app.exception_handler(Exception)
        async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
            return error_response(InternalError())

        self.fastapi_app.include_router(create_health_router())
        self.fastapi_app.include_router(
            create_download_router(
                self.rate_limiter,
                self.resolver,
                self.relay,
                trust_forwarded_for=self.config.trust_forwarded_for,
            )
        )
        if self.config.web_ui_enabled:
            mount_web_ui(self.fastapi_app)

        logger.info("Routers registered")
        return self.fastapi_app

    async def start_background_services(self) -> None:
        """Start the rate-limit sweeper."""
        if self.system_scheduler and not self.system_scheduler.is_running:
            await self.system_scheduler.start()

    async def shutdown(self) -> None:
        """Stop background services and release the upstream client."""
        logger.info("Initiating graceful shutdown...")

        if self.system_scheduler and self.system_scheduler.is_running:
            await self.system_scheduler.stop()

        if self.http_client is not None and self._owns_http_client:
            await self.http_client.aclose()
            logger.info("Upstream HTTP client closed")

        logger.info("Graceful shutdown complete")


def create_app(
    config: RelayConfig | None = None,
    *,
    resolver: MediaResolver | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Application:
    """Create and setup the application.

    Args:
        config: Optional configuration. If not provided, loads from
                config.json with environment variable overrides.
        resolver: Optional resolver overriding the configured backend.
        http_client: Optional upstream HTTP client.

    Returns:
        Initialized Application instance with its FastAPI app created.
    """
    if config is None:
        config = RelayConfig.from_json_file()

    application = Application(config, resolver=resolver, http_client=http_client)
    application.setup()
    application.create_fastapi_app()
    return application


async def main(reload: bool = False) -> None:
    """Main entry point for running the application.

    Args:
        reload: Enable hot reload during development.
    """
    import uvicorn

    config = RelayConfig.from_json_file()
    configure_logging(config.log_level)
    logger.info("Starting TikTok relay...")

    application = create_app(config)

    logger.info(
        "Download endpoint: http://%s:%d/download?url=<tiktok_url>",
        config.api_host,
        config.port,
    )

    uvicorn_config = uvicorn.Config(
        application.fastapi_app,
        host=config.api_host,
        port=config.port,
        log_level=config.log_level.lower(),
        reload=reload,
    )
    server = uvicorn.Server(uvicorn_config)
    await server.serve()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Run the TikTok relay service")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload")
    args = parser.parse_args()

    asyncio.run(main(reload=args.reload))
