# -*- coding: utf-8 -*-
"""
Container Factory Module

Responsible for creating and assembling all application dependencies.

This is the **only** instance creation point (Composition Root) for the application.
All service instance creation should be done here, not within individual services.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from app.container import AppContainer
    from core.ports import ILibraryQuery, ITransport
    from core.scheduler import IScheduler

logger = logging.getLogger(__name__)


class AppContainerFactory:
    """Application Container Factory

    Creates and assembles all application dependencies. The transport and the
    library query are collaborators supplied by the caller.

    Usage Example:
        # In the application entry point
        container = AppContainerFactory.create(transport, library_query)

        # In tests (no Qt, virtual clock)
        container = AppContainerFactory.create_for_testing(
            transport, library_query, scheduler=ManualScheduler()
        )
    """

    @staticmethod
    def create(
        transport: "ITransport",
        library_query: "ILibraryQuery",
        config_path: Optional[str] = None,
        use_qt_dispatcher: bool = True,
    ) -> "AppContainer":
        """Create Application Container

        Creates all service instances in dependency order and assembles them into the container.

        Args:
            transport: Server transport
            library_query: Library page source
            config_path: Configuration file path (user config directory when None)
            use_qt_dispatcher: Whether to create the Qt view bridge
                              - True: during UI runtime (requires a QApplication)
                              - False: for non-UI use

        Returns:
            A configured AppContainer instance
        """
        from app.logging_config import configure_logging
        from core.scheduler import ThreadingScheduler
        from services.config_service import ConfigService

        config = ConfigService(config_path)
        configure_logging(config)
        logger.info("Creating application container...")

        container = AppContainerFactory._assemble(
            config, transport, library_query, ThreadingScheduler("Client"), None
        )

        if use_qt_dispatcher:
            from ui.qt_bridge import QtViewBridge
            container.qt_bridge = QtViewBridge(container.event_bus)
            logger.debug("Using QtViewBridge")

        logger.info("Application container creation complete")
        return container

    @staticmethod
    def create_for_testing(
        transport: "ITransport",
        library_query: "ILibraryQuery",
        config_path: Optional[str] = None,
        scheduler: Optional["IScheduler"] = None,
        artwork_fetcher: Optional[Callable[[str], bytes]] = None,
    ) -> "AppContainer":
        """Create a container for testing

        Independent of Qt and of the logging setup.

        Args:
            transport: Fake transport
            library_query: Fake library query
            config_path: Configuration file path (use a temporary file)
            scheduler: Scheduler, typically a virtual clock
            artwork_fetcher: Replaces the HTTP download

        Returns:
            A configured test AppContainer instance
        """
        from core.scheduler import ThreadingScheduler
        from services.config_service import ConfigService

        logger.info("Creating test application container...")
        config = ConfigService(config_path)
        return AppContainerFactory._assemble(
            config,
            transport,
            library_query,
            scheduler or ThreadingScheduler("Test"),
            artwork_fetcher,
        )

    @staticmethod
    def _assemble(
        config,
        transport: "ITransport",
        library_query: "ILibraryQuery",
        scheduler: "IScheduler",
        artwork_fetcher: Optional[Callable[[str], bytes]],
    ) -> "AppContainer":
        from app.container import AppContainer
        from core.event_bus import EventBus
        from services.artwork_cache import ArtworkCache
        from services.artwork_loader import ArtworkLoader
        from services.connection_lifecycle import ConnectionLifecycle
        from services.library_browser import LibraryBrowser
        from services.player_client_facade import PlayerClientFacade
        from services.queue_service import QueueService

        # === 1. Event Bus ===
        event_bus = EventBus()

        # === 2. Connection ===
        lifecycle = ConnectionLifecycle(
            transport=transport,
            event_bus=event_bus,
            scheduler=scheduler,
            max_reconnect_attempts=int(config.get("connection.max_reconnect_attempts", 5)),
            reconnect_delay=float(config.get("connection.reconnect_delay_seconds", 2.0)),
        )

        # === 3. Service Layer ===
        library = LibraryBrowser(
            library_query,
            lifecycle,
            event_bus=event_bus,
            page_size=int(config.get("library.page_size", 50)),
        )
        queue = QueueService(transport, lifecycle, event_bus=event_bus)
        artwork_cache = ArtworkCache.from_config(config, event_bus=event_bus)
        if artwork_fetcher is None:
            artwork_loader = ArtworkLoader.from_config(artwork_cache, config)
        else:
            artwork_loader = ArtworkLoader(
                artwork_cache,
                max_workers=int(config.get("artwork.loader_workers", 2)),
                fetcher=artwork_fetcher,
            )

        # === 4. Create Facade ===
        facade = PlayerClientFacade(
            transport=transport,
            lifecycle=lifecycle,
            library=library,
            artwork_cache=artwork_cache,
            artwork_loader=artwork_loader,
            config=config,
            event_bus=event_bus,
            queue=queue,
            scheduler=scheduler,
        )

        # === 5. Assemble Container ===
        return AppContainer(
            config=config,
            event_bus=event_bus,
            facade=facade,
            _lifecycle=lifecycle,
            _library=library,
            _queue=queue,
            _artwork_cache=artwork_cache,
            _artwork_loader=artwork_loader,
            _scheduler=scheduler,
        )
