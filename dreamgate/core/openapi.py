"""OpenAPI customization.

Enriches the generated schema with:
- tags metadata
- a shared ``RateLimited`` (429) response, referenced from every throttled
  operation so clients know to honour ``Retry-After``
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Dreams",
        "description": "Dream interpretation, throttled per client and cached by content.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (not throttled).",
    },
]

RATE_LIMITED_RESPONSE: Dict[str, Any] = {
    "description": "Too many requests from this client. Retry after the given number of seconds.",
    "headers": {
        "Retry-After": {
            "description": "Whole seconds until a request slot frees up.",
            "schema": {"type": "integer", "minimum": 1},
        },
    },
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "rate_limited",
                    "message": "Too many requests. Please try again later.",
                    "request_id": "3f1c2d9e-0000-4000-8000-000000000000",
                    "details": {"retry_after_seconds": 42},
                }
            }
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the 429 response."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        responses = schema.setdefault("components", {}).setdefault("responses", {})
        responses.setdefault("RateLimited", RATE_LIMITED_RESPONSE)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {})["429"] = {
                        "$ref": "#/components/responses/RateLimited"
                    }

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
