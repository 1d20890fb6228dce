"""Core module - Shared configuration and types."""

from plannersync.core.config import ServerConfig, SyncConfig
from plannersync.core.types import SyncState

__all__ = [
    # Config
    "ServerConfig",
    "SyncConfig",
    # Types
    "SyncState",
]
