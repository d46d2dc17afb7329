"""
Settings Manager
Defaults merged with an optional JSON file and SEEDSIFT_* environment overrides.
Settings live in memory only; nothing is written back.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
import threading

logger = logging.getLogger(__name__)

ENV_PREFIX = "SEEDSIFT_"
SETTINGS_FILE_ENV = "SEEDSIFT_SETTINGS_FILE"


class SettingsManager:
    """Manages application settings"""

    DEFAULT_SETTINGS = {
        # Aggregator
        "search_timeout_seconds": 8.0,
        "max_workers": 8,
        "preferred_source": "YTS",
        "enabled_sources": {
            "YTS": True,
            "The Pirate Bay": True,
            "1337x": True,
            "RARBG": True,
        },

        # HTTP
        "request_timeout_seconds": 6.0,
        # e.g. "https://api.allorigins.win/raw?url="; "" means a direct request.
        "proxy_prefixes": [],

        # Sources
        "yts_api_url": "https://yts.mx/api/v2",
        "piratebay_api_endpoints": [
            "https://apibay.org",
        ],
        "piratebay_category": 207,
        "x1337_mirror_order": [
            "https://1337x.to",
            "https://1337x.st",
            "https://x1337x.ws",
            "https://x1337x.eu",
            "https://1377x.to",
        ],
        "rarbg_mirror_order": [
            "https://rarbg.to",
            "https://rarbgproxy.org",
            "https://rarbgunblocked.org",
        ],

        # Logging
        "log_level": "INFO",
    }

    def __init__(self, settings_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        environ = os.environ if environ is None else environ
        path = settings_file or str(environ.get(SETTINGS_FILE_ENV, "") or "").strip()
        self.settings_file = Path(path).expanduser() if path else None

        self._lock = threading.RLock()
        self._settings: Dict[str, Any] = {}
        self._load(environ)

    def _load(self, environ):
        """Load defaults, then the settings file, then environment overrides"""
        with self._lock:
            self._settings = json.loads(json.dumps(self.DEFAULT_SETTINGS))
            if self.settings_file is not None:
                self._settings.update(self._read_file(self.settings_file))
                # Deep-merge source flags so sources missing from the file keep their defaults.
                default_sources = self.DEFAULT_SETTINGS.get("enabled_sources", {})
                loaded_sources = self._settings.get("enabled_sources") or {}
                if isinstance(loaded_sources, dict):
                    self._settings["enabled_sources"] = {**default_sources, **loaded_sources}
                else:
                    self._settings["enabled_sources"] = dict(default_sources)
            self._apply_env(environ)

    def _read_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning("Settings file %s not found; using defaults.", path)
            return {}
        try:
            with open(path, 'r', encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Error loading settings from %s: %s", path, e)
            return {}
        if not isinstance(loaded, dict):
            logger.error("Settings file %s must contain a JSON object.", path)
            return {}
        return loaded

    def _apply_env(self, environ):
        for key, default in self.DEFAULT_SETTINGS.items():
            raw = environ.get(f"{ENV_PREFIX}{key.upper()}")
            if raw is None:
                continue
            try:
                self._settings[key] = self._coerce(raw, default)
            except ValueError as e:
                logger.error("Ignoring %s%s=%r: %s", ENV_PREFIX, key.upper(), raw, e)

    @staticmethod
    def _coerce(raw: str, default: Any) -> Any:
        if isinstance(default, bool):
            return raw.strip().lower() in {"1", "true", "yes", "on"}
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, (list, dict)):
            value = json.loads(raw)
            if not isinstance(value, type(default)):
                raise ValueError(f"expected JSON {type(default).__name__}")
            return value
        return raw

    def get(self, key: str, default=None) -> Any:
        """Get a setting value"""
        with self._lock:
            return self._settings.get(key, default)

    def update(self, settings_dict: Dict[str, Any]):
        """Update multiple settings at once (in memory)"""
        with self._lock:
            self._settings.update(dict(settings_dict or {}))

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        with self._lock:
            return self._settings.copy()
