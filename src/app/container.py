# -*- coding: utf-8 -*-
"""
Application Container Module

Defines the dependency container for the application, holding all service instances centrally.

Design Principles:
- Only the main window holds the complete AppContainer
- Sub-components access services via facade, not directly accessing the container
- Prohibited to pass AppContainer to sub-components
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.protocols import IConfigService, IEventBus
    from services.player_client_facade import PlayerClientFacade

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Application Dependency Container

    Holds all service instances centrally, serving as the composition root for dependency injection.

    Usage Rules:
    - Only the main window holds this container
    - Sub-components access services via the facade property
    - Do not pass this container to sub-components

    Usage Example:
        container = AppContainerFactory.create(transport, library_query)
        container.facade.start()
        container.facade.connect()
    """

    # === Public Attributes ===
    config: "IConfigService"
    event_bus: "IEventBus"
    facade: "PlayerClientFacade"
    qt_bridge: Any = None

    # === Internal Service References (Not exposed to sub-components) ===
    _lifecycle: Any = field(default=None, repr=False)
    _library: Any = field(default=None, repr=False)
    _queue: Any = field(default=None, repr=False)
    _artwork_cache: Any = field(default=None, repr=False)
    _artwork_loader: Any = field(default=None, repr=False)
    _scheduler: Any = field(default=None, repr=False)

    def cleanup(self) -> None:
        """Clean up all resources

        Should be called when the application exits.
        """
        if self.facade is not None:
            self.facade.stop()

        if self._lifecycle is not None:
            self._lifecycle.disconnect()

        if self.qt_bridge is not None:
            self.qt_bridge.detach()

        if self._artwork_loader is not None:
            self._artwork_loader.shutdown()

        if self._scheduler is not None and hasattr(self._scheduler, 'shutdown'):
            self._scheduler.shutdown()

        if self.event_bus is not None and hasattr(self.event_bus, 'shutdown'):
            self.event_bus.shutdown()

        logger.info("Application container cleaned up")
