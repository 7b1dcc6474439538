# -*- coding: utf-8 -*-
"""
Ports Interfaces Package

Defines the interfaces between the client services and their external
collaborators (server transport, library query).

Design Principles:
- Use Protocol to define interfaces, supporting structural subtyping.
- Service layer depends on these interfaces rather than concrete implementations.
- Facilitates replacing with fake/mock during testing.
"""

from core.ports.transport import ITransport, TransportEvent
from core.ports.library import ILibraryQuery

__all__ = [
    "ITransport",
    "TransportEvent",
    "ILibraryQuery",
]
