"""
FastAPI server for the prayer clock API. Run with run_api_server(app) in a background
thread, or serve_forever(app) in the foreground.
Prayer routes come from prayer_clock.prayer.api (get_router(prayer_app)) under /api/prayer/.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from typing import Any, Dict

from fastapi import FastAPI

from prayer_clock.prayer.api import get_router

logger = logging.getLogger(__name__)


def create_app(prayer_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given PrayerClockApp instance."""
    app = FastAPI(title="Prayer Clock API", description="Prayer periods and daily prayer times")

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        """Liveness check with the configured backend name."""
        return {
            "status": "ok",
            "backend": prayer_app.provider.backend.__class__.__name__,
        }

    app.include_router(get_router(prayer_app), prefix="/api/prayer")
    return app


def _api_settings(prayer_app: Any) -> Dict[str, Any]:
    api_config = prayer_app.config.get_section("api")
    return {
        "host": api_config.get("host", "127.0.0.1"),
        "port": int(api_config.get("port", 8765)),
    }


def serve_forever(prayer_app: Any) -> None:
    """Run uvicorn in the current thread until interrupted."""
    import uvicorn

    settings = _api_settings(prayer_app)
    logger.info(f"API server listening at http://{settings['host']}:{settings['port']} (docs at /docs)")
    uvicorn.run(create_app(prayer_app), host=settings["host"], port=settings["port"])


def run_api_server(prayer_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    enabled = prayer_app.config.get_section("api").get("enabled", False)
    if not enabled:
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return

    def run_uvicorn():
        try:
            serve_forever(prayer_app)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
