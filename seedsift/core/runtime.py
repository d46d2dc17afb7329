"""Runtime bootstrap: settings, event bus and a source manager with the built-in sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..sources import default_sources
from .event_bus import EventBus
from .settings_manager import SettingsManager
from .source_manager import SourceManager


@dataclass
class SeedSiftRuntime:
    """Shared service graph used by the API and the module-level helpers."""

    settings: SettingsManager
    event_bus: EventBus
    source_manager: SourceManager


def search_options(settings: SettingsManager) -> Dict:
    return {
        "search_timeout_seconds": float(settings.get("search_timeout_seconds", 8.0) or 8.0),
        "preferred_source": str(settings.get("preferred_source", "YTS") or ""),
        "max_workers": int(settings.get("max_workers", 8) or 8),
    }


def build_runtime(settings: Optional[SettingsManager] = None) -> SeedSiftRuntime:
    """Create and wire core services."""

    settings = settings or SettingsManager()
    event_bus = EventBus()
    source_manager = SourceManager(event_bus, options=search_options(settings))

    for source in default_sources(settings):
        source_manager.register(source)

    enabled_sources = settings.get("enabled_sources", {}) or {}
    for source_name, enabled in enabled_sources.items():
        source_manager.enable_source(source_name, enabled)

    return SeedSiftRuntime(
        settings=settings,
        event_bus=event_bus,
        source_manager=source_manager,
    )


def apply_settings(runtime: SeedSiftRuntime) -> None:
    """Push the current settings into the manager and every registered source."""
    runtime.source_manager.configure(search_options(runtime.settings))
    runtime.source_manager.reload_sources(runtime.settings.get("enabled_sources", {}) or {})
