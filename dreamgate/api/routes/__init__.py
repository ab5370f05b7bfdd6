from __future__ import annotations

from dreamgate.api.routes.dreams import router as dreams_router
from dreamgate.api.routes.health import router as health_router

__all__ = ["dreams_router", "health_router"]
