"""Minimal deterministic OpenAPI document.

Scope (purposefully narrow):
- Auth endpoints under /api/auth
- For each tracked entity: list + single GET & HEAD with caching headers
- State-changing actions with their required permission codes
"""
from typing import Any, Dict, List, Tuple
from sigpe.models.permit import Permit
from sigpe.models.permit_request import PermitRequest

__all__ = ["build_openapi_spec"]

# (SchemaName, collection path, id param, read permission, sortable fields)
ENTITIES: List[Tuple[str, str, str, str, str]] = [
    ("Hunter", "hunters", "hunter_id", "HUNTER.VIEW", "last_name,first_name,category,region,created_at,updated_at,id"),
    ("Guardian", "guardians", "guardian_id", "HUNTER.VIEW", "last_name,first_name,updated_at,id"),
    ("Permit", "permits", "permit_id", "PERMIT.VIEW", "permit_number,issue_date,expiry_date,price,updated_at,id"),
    ("Tax", "taxes", "tax_id", "PERMIT.VIEW", "tax_number,issue_date,amount,animal_type,id"),
    ("PermitRequest", "permit-requests", "request_id", "PERMIT.VIEW", "created_at,updated_at,statut,permit_type,id"),
    ("HuntingGuide", "guides", "guide_id", "HUNTER.VIEW", "last_name,region,zone,updated_at,id"),
    ("User", "users", "user_id", "USER.VIEW", "username,role,region,created_at,updated_at,id"),
]

# (SchemaName, action, summary, permission)
ACTIONS: List[Tuple[str, str, str, str]] = [
    ("Hunter", "suspend", "Suspend hunter and its active permits", "HUNTER.SUSPEND"),
    ("Hunter", "reactivate", "Reactivate hunter", "HUNTER.REACTIVATE"),
    ("Hunter", "deletion-request", "Ask an administrator to delete a hunter", "HUNTER.REQUEST_DELETION"),
    ("Permit", "suspend", "Suspend permit", "PERMIT.SUSPEND"),
    ("Permit", "reactivate", "Reactivate permit", "PERMIT.REACTIVATE"),
    ("Permit", "renew", "Renew permit with a new expiry date", "PERMIT.EDIT"),
    ("PermitRequest", "transition", "Move a permit request to another statut", "PERMIT.EDIT"),
    ("User", "suspend", "Suspend account", "USER.SUSPEND"),
    ("User", "reactivate", "Reactivate account", "USER.REACTIVATE"),
]

CACHING_HEADERS = {
    "ETag": {"schema": {"type": "string"}},
    "Last-Modified": {"schema": {"type": "string"}},
    "X-Last-Modified-ISO": {"schema": {"type": "string"}},
}


def _sort_param_name(schema_name: str) -> str:
    return f"Sort{schema_name}Param"


def _entity_paths(schema_name: str, coll: str, id_param: str, perm: str) -> Dict[str, Any]:
    ref = {"$ref": f"#/components/schemas/{schema_name}"}
    list_params = [
        {"$ref": "#/components/parameters/LimitParam"},
        {"$ref": "#/components/parameters/OffsetParam"},
        {"$ref": f"#/components/parameters/{_sort_param_name(schema_name)}"},
    ]
    list_ok = {
        "description": "OK",
        "headers": CACHING_HEADERS,
        "content": {"application/json": {"schema": {
            "type": "object",
            "properties": {"data": {"type": "array", "items": ref}, "pagination": {"$ref": "#/components/schemas/Pagination"}},
        }}},
    }
    single_ok = {"description": "OK", "headers": CACHING_HEADERS, "content": {"application/json": {"schema": ref}}}
    id_spec = [{"name": id_param, "in": "path", "required": True, "schema": {"type": "integer"}}]
    not_modified = {"description": "Not Modified"}
    return {
        f"/api/{coll}": {
            "get": {"summary": f"List {schema_name}", "parameters": list_params,
                    "responses": {"200": list_ok, "304": not_modified}, "x-required-permissions": [perm]},
            "head": {"summary": f"Head {schema_name} list", "parameters": list_params,
                     "responses": {"200": {"description": "OK", "headers": CACHING_HEADERS}, "304": not_modified},
                     "x-required-permissions": [perm]},
        },
        f"/api/{coll}/{{{id_param}}}": {
            "get": {"summary": f"Get {schema_name}", "parameters": id_spec,
                    "responses": {"200": single_ok, "304": not_modified, "404": {"$ref": "#/components/responses/NotFound"}},
                    "x-required-permissions": [perm]},
            "head": {"summary": f"Head {schema_name}", "parameters": id_spec,
                     "responses": {"200": {"description": "OK", "headers": CACHING_HEADERS}, "304": not_modified},
                     "x-required-permissions": [perm]},
        },
    }


def build_openapi_spec() -> Dict[str, Any]:
    schemas: Dict[str, Any] = {
        e[0]: {"type": "object", "properties": {"id": {"type": "integer"}}, "required": ["id"]} for e in ENTITIES
    }
    schemas["PermitRequest"]["x-transitions"] = list(PermitRequest.ALL_STATUSES)
    schemas["Permit"]["x-statuses"] = list(Permit.ALL_STATUSES)
    schemas["Pagination"] = {
        "type": "object",
        "properties": {
            "total": {"type": "integer"},
            "limit": {"type": "integer"},
            "offset": {"type": "integer"},
            "returned": {"type": "integer"},
        },
        "required": ["total", "limit", "offset", "returned"],
    }
    schemas["Error"] = {
        "type": "object",
        "properties": {
            "error": {"type": "object", "properties": {
                "status": {"type": "integer"}, "title": {"type": "string"}, "detail": {"type": "string"},
            }},
            "message": {"type": "string"},
            "fields": {"type": "object", "additionalProperties": {"type": "string"}},
        },
        "required": ["error", "message"],
    }

    params: Dict[str, Any] = {
        "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
        "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
    }
    for schema_name, _coll, _id, _perm, sortable in ENTITIES:
        params[_sort_param_name(schema_name)] = {
            "name": "sort", "in": "query", "schema": {"type": "string"},
            "description": f"Comma separated, '-' prefix for descending. Fields: {sortable}",
        }

    paths: Dict[str, Any] = {
        "/api/auth/login": {"post": {"summary": "Login", "security": [], "responses": {"200": {"description": "JWT issued"}}}},
        "/api/auth/logout": {"post": {"summary": "Revoke current token", "responses": {"200": {"description": "OK"}}}},
        "/api/auth/me": {"get": {"summary": "Current user", "responses": {"200": {"description": "OK"}}}},
        "/api/auth/register": {"post": {"summary": "Hunter self-registration", "security": [],
                                        "responses": {"201": {"description": "Created"}}}},
        "/api/stats": {"get": {"summary": "Scoped statistics", "responses": {"200": {"description": "OK"}}}},
        "/api/dashboard": {"get": {"summary": "Per-role dashboard", "responses": {"200": {"description": "OK"}}}},
        "/api/history": {"get": {"summary": "Operation history (admin)", "responses": {"200": {"description": "OK"}}}},
    }
    coll_of = {}
    for schema_name, coll, id_param, perm, _sortable in ENTITIES:
        paths.update(_entity_paths(schema_name, coll, id_param, perm))
        coll_of[schema_name] = (coll, id_param)
    for schema_name, action, summary, perm in ACTIONS:
        coll, id_param = coll_of[schema_name]
        paths[f"/api/{coll}/{{{id_param}}}/{action}"] = {
            "post": {
                "summary": summary,
                "parameters": [{"name": id_param, "in": "path", "required": True, "schema": {"type": "integer"}}],
                "responses": {"200": {"description": "OK"}, "400": {"$ref": "#/components/responses/BadRequest"}},
                "x-required-permissions": [perm],
            }
        }

    tags = set()
    for path, ops in paths.items():
        tag = path.split("/")[2].capitalize()
        tags.add(tag)
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
            od["operationId"] = f"auto_{method}_{rid}"
            od["tags"] = [tag]

    return {
        "openapi": "3.0.3",
        "info": {"title": "SIGPE API", "version": "0.1.0"},
        "paths": paths,
        "components": {
            "schemas": schemas,
            "responses": {"NotFound": {"description": "Not Found"}, "BadRequest": {"description": "Bad Request"}},
            "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
            "parameters": params,
        },
        "security": [{"BearerAuth": []}],
        "tags": [{"name": t, "description": f"{t} endpoints"} for t in sorted(tags)],
    }
