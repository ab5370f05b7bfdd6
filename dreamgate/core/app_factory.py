"""Application factory for the FastAPI app.

Builds the throttle, result cache and interpretation service once per app
and attaches them to ``app.state``; routes reach them through dependency
functions. The lifespan owns the throttle's background sweeper.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from dreamgate.adapters.llm.base import AbstractLLMClient
from dreamgate.adapters.llm.factory import create_llm_client
from dreamgate.adapters.rate_limit.base import AbstractThrottle
from dreamgate.adapters.rate_limit.sliding_window import SlidingWindowThrottle
from dreamgate.api.routes import dreams_router, health_router
from dreamgate.core.config import Settings, settings
from dreamgate.core.exception_handlers import setup_exception_handlers
from dreamgate.core.logging import configure_logging
from dreamgate.core.middleware import request_id_middleware
from dreamgate.core.openapi import TAGS_METADATA, apply_openapi_customizations
from dreamgate.services.interpretation_service import InterpretationService
from dreamgate.utils.result_cache import ResultCache

logger = logging.getLogger(__name__)


def build_throttle(cfg: Settings) -> SlidingWindowThrottle:
    """Create the sliding-window throttle from settings."""
    return SlidingWindowThrottle(
        window_ms=cfg.throttle.window_ms,
        max_requests=cfg.throttle.max_requests,
        sweep_interval_ms=cfg.throttle.sweep_interval_ms,
    )


def build_result_cache(cfg: Settings) -> ResultCache:
    """Create the interpretation result cache from settings."""
    return ResultCache(
        max_entries=cfg.cache.max_entries,
        default_ttl_ms=cfg.cache.default_ttl_ms,
        evict_fraction=cfg.cache.evict_fraction,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the throttle sweeper for as long as the app serves requests."""
    throttle: AbstractThrottle = app.state.throttle
    throttle.start()
    try:
        yield
    finally:
        throttle.stop()


def create_app(
    *,
    llm_client: AbstractLLMClient | None = None,
    throttle: AbstractThrottle | None = None,
    cache: ResultCache | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        llm_client: Optional LLM client; built from settings when omitted.
        throttle: Optional throttle; built from settings when omitted.
        cache: Optional result cache; built from settings when omitted.

    Returns:
        Configured FastAPI app.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Dreamgate API",
        description=(
            "Dream interpretation API. Requests are throttled per client with a "
            "sliding window, and interpretations are cached by a fingerprint of "
            "the normalized dream text."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    app.state.throttle = throttle if throttle is not None else build_throttle(settings)
    app.state.result_cache = cache if cache is not None else build_result_cache(settings)
    app.state.interpretation_service = InterpretationService(
        llm=llm_client if llm_client is not None else create_llm_client(),
        cache=app.state.result_cache,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(dreams_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "env": settings.app_env,
            "throttle_enabled": settings.throttle.enabled,
            "window_ms": settings.throttle.window_ms,
            "max_requests": settings.throttle.max_requests,
            "cache_max_entries": settings.cache.max_entries,
        },
    )
    return app
