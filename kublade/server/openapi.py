"""
OpenAPI document.

Extends the generated document with the API's metadata, the bearer token
security scheme, the shared error responses every endpoint may answer with,
the ``cursor`` pagination parameter and the schemas published for API
consumers. The document describes the API; nothing in it is enforced at
runtime.
"""

from __future__ import annotations

from typing import Any, Dict, Type

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel

from kublade.core.models.io.ai_chats import AiChatMessageRead
from kublade.core.models.io.auth import LoginRequest, RegisterRead, RegisterRequest, TokenRead
from kublade.server.core import constant

TITLE = "Kublade API Documentation"
DESCRIPTION = "Kublade API documentation"
CONTACT = {"email": "hi@kublade.org"}
LICENSE = {"name": "Apache-2.0", "url": "https://kublade.org/docs/license/"}

BEARER_AUTH = {
    "type": "http",
    "scheme": "bearer",
    "bearerFormat": "Opaque",
    "description": "Token Authorization header using the Bearer scheme. Example: 'Bearer {token}'",
}

CURSOR_PARAMETER = {
    "name": "cursor",
    "in": "query",
    "required": False,
    "description": "Cursor for pagination",
    "schema": {"type": "string"},
}

HTTP_METHODS = {"get", "put", "post", "delete", "options", "head", "patch", "trace"}


def _envelope(description: str, message: str, with_data: bool = False) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "status": {"type": "string", "example": "error"},
        "message": {"type": "string", "example": message},
    }
    if with_data:
        properties["data"] = {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string"}},
            "example": {"email": ["The email has already been taken."]},
        }
    return {
        "description": description,
        "content": {"application/json": {"schema": {"type": "object", "properties": properties}}},
    }


SHARED_RESPONSES = {
    "UnauthorizedResponse": _envelope("Unauthorized", "Unauthorized"),
    "ForbiddenResponse": _envelope("Forbidden", "Forbidden"),
    "NotFoundResponse": _envelope("Not found", "Not found"),
    "ValidationErrorResponse": _envelope("Validation error", "Validation failed", with_data=True),
    "ServerErrorResponse": _envelope("Server error", "Server Error"),
}

PUBLISHED_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "AiChatMessage": AiChatMessageRead,
    "LoginRequest": LoginRequest,
    "RegisterRequest": RegisterRequest,
    "RegisterResponse": RegisterRead,
    "Token": TokenRead,
}


def _response_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/responses/{name}"}


def _publish_schemas(schemas: Dict[str, Any]) -> None:
    for name, model in PUBLISHED_SCHEMAS.items():
        schema = model.model_json_schema(ref_template="#/components/schemas/{model}")
        for nested_name, nested in schema.pop("$defs", {}).items():
            schemas.setdefault(nested_name, nested)
        schemas[name] = schema


def _document_operation(operation: Dict[str, Any]) -> None:
    responses = operation.setdefault("responses", {})
    # Validation failures are answered with 400, never 422
    if responses.pop("422", None) is not None:
        responses["400"] = _response_ref("ValidationErrorResponse")
    if operation.get("security"):
        responses.setdefault("401", _response_ref("UnauthorizedResponse"))
    responses.setdefault("500", _response_ref("ServerErrorResponse"))

    for parameter in operation.get("parameters", []):
        if parameter.get("in") == "query" and parameter.get("name") == "cursor":
            parameter["description"] = CURSOR_PARAMETER["description"]


def build_openapi(app: FastAPI) -> Dict[str, Any]:
    """Generate (once) and return the application's OpenAPI document."""
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=TITLE,
        version=constant.API_VERSION,
        description=DESCRIPTION,
        routes=app.routes,
        contact=CONTACT,
        license_info=LICENSE,
    )

    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["bearerAuth"] = BEARER_AUTH
    components.setdefault("responses", {}).update(SHARED_RESPONSES)
    components.setdefault("parameters", {})["cursor"] = CURSOR_PARAMETER
    _publish_schemas(components.setdefault("schemas", {}))

    for path_item in schema.get("paths", {}).values():
        for method, operation in path_item.items():
            if method in HTTP_METHODS:
                _document_operation(operation)

    app.openapi_schema = schema
    return schema


def install_openapi(app: FastAPI) -> None:
    """Replace the application's OpenAPI generator with ``build_openapi``."""

    def openapi() -> Dict[str, Any]:
        return build_openapi(app)

    app.openapi = openapi
