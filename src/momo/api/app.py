"""FastAPI application factory."""

from typing import Optional

from fastapi import FastAPI

from momo import __version__
from momo.config import get_settings
from momo.monitor.transfers import TransferMonitor


def create_app(monitor: Optional[TransferMonitor] = None) -> FastAPI:
    """Create the status API.

    Args:
        monitor: Running transfer monitor whose status is reported, if any
    """
    settings = get_settings()

    app = FastAPI(
        title="Momo API",
        description="Health and transfer monitor status",
        version=__version__,
        debug=settings.debug,
    )
    app.state.monitor = monitor

    from momo.api.routes import health

    app.include_router(health.router, tags=["Health"])

    return app
