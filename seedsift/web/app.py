"""FastAPI app exposing SeedSift search for web clients."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from pydantic import BaseModel

from .. import __version__
from ..core.runtime import SeedSiftRuntime, apply_settings, build_runtime
from ..core.source_manager import source_id
from ..models.search_result import SearchQuery


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _csv_tokens(value: str) -> List[str]:
    return [piece.strip() for piece in (value or "").split(",") if piece.strip()]


def _provider_name_from_id(runtime: SeedSiftRuntime, provider_id: str) -> Optional[str]:
    for name in runtime.source_manager.get_source_names():
        if source_id(name) == provider_id:
            return name
    return None


class ProviderToggleRequest(BaseModel):
    enabled: bool


def create_app(runtime: Optional[SeedSiftRuntime] = None) -> FastAPI:
    runtime = runtime or build_runtime()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        runtime.source_manager.shutdown()

    app = FastAPI(title="SeedSift API", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime

    @app.get("/health")
    def health() -> Dict:
        return {"ok": True, "time": _utc_now_iso()}

    @app.get("/api/search")
    def search(
        query: str = Query(""),
        year: Optional[int] = Query(None, ge=1870, le=2100),
        imdb_id: str = Query("", alias="imdbId"),
        providers: str = Query(""),
    ) -> Dict:
        search_query = SearchQuery(query=query.strip(), year=year, imdb_id=imdb_id.strip() or None)
        if search_query.is_empty:
            raise HTTPException(status_code=400, detail="Query parameter is required")

        selected = _csv_tokens(providers) or None
        if selected:
            known = {source_id(name) for name in runtime.source_manager.get_source_names()}
            unknown = [token for token in selected if source_id(token) not in known]
            if unknown:
                raise HTTPException(status_code=400, detail=f"Unknown providers: {', '.join(unknown)}")
        results = runtime.source_manager.search_torrents(search_query, sources=selected)
        return {
            "query": search_query.text,
            "year": year,
            "imdbId": search_query.imdb_id,
            "count": len(results),
            "results": [r.to_dict() for r in results],
        }

    @app.get("/api/providers")
    def providers() -> Dict:
        health = runtime.source_manager.get_source_health_snapshot()
        payload = []
        for name in runtime.source_manager.get_source_names():
            payload.append(
                {
                    "id": source_id(name),
                    "name": name,
                    "enabled": runtime.source_manager.is_source_enabled(name),
                    "preferred": name == runtime.source_manager.preferred_source,
                    "sourceHealth": health.get(name, {}),
                }
            )
        return {"providers": payload}

    @app.post("/api/providers/{provider_id}/toggle")
    def toggle_provider(provider_id: str, body: ProviderToggleRequest) -> Dict:
        source_name = _provider_name_from_id(runtime, provider_id)
        if not source_name:
            raise HTTPException(status_code=404, detail="Provider not found.")
        runtime.source_manager.enable_source(source_name, body.enabled)
        flags = dict(runtime.settings.get("enabled_sources", {}) or {})
        flags[source_name] = body.enabled
        runtime.settings.update({"enabled_sources": flags})
        return {"ok": True, "providerId": provider_id, "enabled": body.enabled}

    @app.get("/api/settings")
    def get_settings() -> Dict:
        return {"settings": runtime.settings.get_all()}

    @app.patch("/api/settings")
    def patch_settings(body: Dict[str, Any] = Body(default={})) -> Dict:  # noqa: B008
        updates = {k: v for k, v in body.items() if v is not None}
        unknown = sorted(k for k in updates if k not in runtime.settings.DEFAULT_SETTINGS)
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown settings: {', '.join(unknown)}")
        if not updates:
            return {"ok": True, "settings": runtime.settings.get_all()}

        if isinstance(updates.get("enabled_sources"), dict):
            merged = dict(runtime.settings.get("enabled_sources", {}) or {})
            merged.update(updates["enabled_sources"])
            updates["enabled_sources"] = merged
        runtime.settings.update(updates)
        apply_settings(runtime)
        return {"ok": True, "settings": runtime.settings.get_all()}

    return app
