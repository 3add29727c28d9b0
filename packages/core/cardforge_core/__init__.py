"""Core services for engine settings and logging."""

from .config import (
    CacheConfig,
    EngineConfig,
    OutputConfig,
    RendererConfig,
    UiConfig,
    config_path,
    load_config,
    save_config,
)
from .logging_setup import JsonFormatter, configure_logging, get_logger

__all__ = [
    "CacheConfig",
    "EngineConfig",
    "JsonFormatter",
    "OutputConfig",
    "RendererConfig",
    "UiConfig",
    "config_path",
    "configure_logging",
    "get_logger",
    "load_config",
    "save_config",
]
