"""Configuration module for File Mover."""

from .settings import (
    Config,
    WatchConfig,
    MoverConfig,
    DispatchConfig,
    ConflictStrategy,
    OverflowPolicy,
)

__all__ = [
    "Config",
    "WatchConfig",
    "MoverConfig",
    "DispatchConfig",
    "ConflictStrategy",
    "OverflowPolicy",
]
