"""Hub service: owns the record store and the HTTP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiohttp import web

from productivity_hub.server.api import HubAPI
from productivity_hub.server.config import HubConfig
from productivity_hub.server.rate_limit import RateLimiter
from productivity_hub.store import RecordStore

if TYPE_CHECKING:
    from aiohttp.web import AppRunner, TCPSite

logger = logging.getLogger(__name__)


@dataclass
class HubService:
    """Main service wiring the store, API and HTTP listener.

    Components are created from ``config`` unless injected.
    """

    config: HubConfig = field(default_factory=HubConfig)

    # Injected components (for testability)
    store: RecordStore | None = None
    api: HubAPI | None = None

    # Internal state
    _runner: AppRunner | None = field(default=None, repr=False)
    _site: TCPSite | None = field(default=None, repr=False)
    _running: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize components if not injected."""
        if self.store is None:
            self.store = RecordStore(self.config.database.path)

        if self.api is None:
            self.api = HubAPI(
                store=self.store,
                config=self.config,
                search_limiter=RateLimiter(
                    rate=self.config.search.rate_limit,
                    window_seconds=self.config.search.rate_window_seconds,
                ),
                metrics_limiter=RateLimiter(
                    rate=self.config.metrics.rate_limit,
                    window_seconds=self.config.metrics.rate_window_seconds,
                ),
            )

    @property
    def host(self) -> str:
        return self.config.server.host

    @property
    def port(self) -> int:
        return self.config.server.port

    @property
    def is_running(self) -> bool:
        """Return whether the service is currently running."""
        return self._running

    async def start(self) -> None:
        """Start the hub service.

        Startup sequence:
        1. Open the record store (recovering a corrupt database)
        2. Start HTTP server
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting hub service...")

        await self.store.safe_initialize()

        app = self.api.create_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        logger.info(f"HTTP server listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop accepting connections, then close the store."""
        if not self._running:
            return

        logger.info("Stopping hub service...")

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        logger.info("HTTP server stopped")

        await self.store.close()

        self._running = False
        logger.info("Hub service stopped")
