"""Persistent engine settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2
SUPPORTED_FORMATS = ("png", "jpeg", "jpg", "webp")
CONFIG_ENV = "CARDFORGE_CONFIG"


@dataclass
class RendererConfig:
    dpi: float = 2.0
    max_pool_size: int = 10


@dataclass
class CacheConfig:
    max_size: int = 100
    ttl_seconds: float | None = None


@dataclass
class OutputConfig:
    format: str = "png"
    quality: float = 0.92
    width: int = 800
    height: int = 400


@dataclass
class UiConfig:
    theme: str = "Neon Slate"


@dataclass
class EngineConfig:
    config_version: int = CONFIG_VERSION
    renderer: RendererConfig = field(default_factory=RendererConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    ui: UiConfig = field(default_factory=UiConfig)


def config_path() -> Path:
    """Settings file location; ``CARDFORGE_CONFIG`` points it elsewhere."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "CardForge" / "config.json"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "CardForge" / "config.json"
    return Path.home() / ".config" / "cardforge" / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_renderer(cfg: EngineConfig) -> None:
    cfg.renderer.dpi = float(max(0.25, min(8.0, float(cfg.renderer.dpi))))
    cfg.renderer.max_pool_size = max(0, int(cfg.renderer.max_pool_size))


def _normalize_cache(cfg: EngineConfig) -> None:
    cfg.cache.max_size = max(1, int(cfg.cache.max_size))
    if cfg.cache.ttl_seconds is not None:
        ttl = float(cfg.cache.ttl_seconds)
        cfg.cache.ttl_seconds = ttl if ttl > 0 else None


def _normalize_output(cfg: EngineConfig) -> None:
    fmt = str(cfg.output.format).lower()
    cfg.output.format = fmt if fmt in SUPPORTED_FORMATS else "png"
    cfg.output.quality = float(max(0.0, min(1.0, float(cfg.output.quality))))
    cfg.output.width = max(1, int(cfg.output.width))
    cfg.output.height = max(1, int(cfg.output.height))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept dpi, pool size and cache size flat at the top level.
        renderer = dict(data.get("renderer", {}) or {})
        if "dpi" in data:
            renderer.setdefault("dpi", data.pop("dpi"))
        if "max_pool_size" in data:
            renderer.setdefault("max_pool_size", data.pop("max_pool_size"))
        data["renderer"] = renderer
        cache = dict(data.get("cache", {}) or {})
        if "cache_size" in data:
            cache.setdefault("max_size", data.pop("cache_size"))
        data["cache"] = cache
        data.setdefault("output", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> EngineConfig:
    path = path or config_path()
    if not path.exists():
        return EngineConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return EngineConfig()
    if not isinstance(raw, dict):
        return EngineConfig()

    data = _migrate(raw)
    cfg = EngineConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        renderer=_merge(RendererConfig, data.get("renderer", {})),
        cache=_merge(CacheConfig, data.get("cache", {})),
        output=_merge(OutputConfig, data.get("output", {})),
        ui=_merge(UiConfig, data.get("ui", {})),
    )

    _normalize_renderer(cfg)
    _normalize_cache(cfg)
    _normalize_output(cfg)
    return cfg


def save_config(cfg: EngineConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
