from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and monitoring.

    Not throttled.

    Returns:
        dict: ``{"status": "ok"}``.
    """

    return {"status": "ok"}
