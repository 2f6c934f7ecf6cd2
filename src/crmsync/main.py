"""Main application entry point."""

import asyncio
import signal
import sys
from typing import Optional

from aiohttp import web

from .api_clients import GoogleDriveClient
from .config.settings import AppSettings, get_settings
from .database import DatabaseService, SupabaseService, OwnerResolver, RecordGateway, init_database
from .utils.logging import setup_logging, get_logger
from .web import WebServer
from .webhooks import CallEventHandler


class LocalOwnerResolver:
    """Development resolver for the SQL backend: the bearer token is the user id."""

    async def resolve(self, access_token: str) -> Optional[str]:
        return access_token or None


class CrmSyncApp:
    """Wires settings, gateways, handlers and the HTTP server together."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger("CrmSync")
        self.running = False
        self.db_manager = None
        self.web_runner: Optional[web.AppRunner] = None

    def build_server(self) -> WebServer:
        """Build the web server for the configured persistence backend."""
        settings = self.settings

        if settings.sync.backend == "sql":
            self.db_manager = init_database(settings.database.url)
            gateway: RecordGateway = DatabaseService(self.db_manager)
            webhook_gateway = gateway
            owner_resolver = LocalOwnerResolver()
            gateway_for_token = lambda token: gateway
        else:
            anon = SupabaseService(settings.supabase).initialize()
            webhook_gateway = SupabaseService(settings.supabase, use_service_role=True).initialize()
            owner_resolver = OwnerResolver(anon)
            gateway_for_token = anon.for_user

        def tree_source_factory(google_token: Optional[str]) -> GoogleDriveClient:
            return GoogleDriveClient(
                credentials_path=settings.google_drive.credentials_path,
                access_token=google_token,
                page_size=settings.google_drive.page_size
            )

        return WebServer(
            webhook_handler=CallEventHandler(webhook_gateway),
            owner_resolver=owner_resolver,
            gateway_for_token=gateway_for_token,
            tree_source_factory=tree_source_factory,
            chunk_size=settings.sync.chunk_size,
            cors_allow_origin=settings.web.cors_allow_origin,
            version=settings.version
        )

    async def startup(self):
        """Application startup."""
        self.logger.info(
            "Starting CRM sync service",
            version=self.settings.version,
            environment=self.settings.environment,
            backend=self.settings.sync.backend
        )

        server = self.build_server()
        self.web_runner = web.AppRunner(server.build_app())
        await self.web_runner.setup()

        site = web.TCPSite(self.web_runner, self.settings.web.host, self.settings.web.port)
        await site.start()

        self.running = True
        self.logger.info("Web server started", host=self.settings.web.host, port=self.settings.web.port)

    async def shutdown(self):
        """Application shutdown."""
        self.logger.info("Shutting down CRM sync service")
        self.running = False

        if self.web_runner:
            await self.web_runner.cleanup()
            self.web_runner = None

        if self.db_manager:
            self.db_manager.close()
            self.db_manager = None

        self.logger.info("CRM sync service stopped")

    async def run(self):
        """Run until a shutdown signal arrives."""
        await self.startup()
        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            await self.shutdown()


def setup_signal_handlers(app: CrmSyncApp):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info("Received signal", signal=signum)
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def main():
    """Main entry point."""
    settings = get_settings()
    setup_logging(settings=settings.logging)

    app = CrmSyncApp(settings)
    setup_signal_handlers(app)
    await app.run()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)
    except Exception as e:
        print(f"Application failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
