"""
Policy documents

A policy document declares models, users, roles and grants in one JSON file.
This module validates such documents, seeds them into a store and explains
the criteria each grant composes to.

Example document:
    {
        "models": [{"name": "article", "ownership_policy": true}],
        "users": [{"username": "alice", "email": "alice@example.com"}],
        "roles": [
            {"name": "editor", "users": ["alice"],
             "permissions": [{"model": "article", "action": "update",
                              "criteria": [{"where": {"status": "draft"},
                                            "blacklist": ["author"]}]}]}
        ],
        "grants": [
            {"user": "alice", "model": "article", "action": "delete",
             "objectFilters": [{"objectId": 42}]}
        ]
    }

This module is part of MDB_PERMISSIONS.
"""

import logging
from typing import Any

from jsonschema import SchemaError, ValidationError, validate

from ..constants import ACTIONS, DEFAULT_ID_FIELD, RELATIONS
from ..exceptions import PolicyValidationError
from .admin import PermissionAdmin, parse_request
from .criteria import compose_criteria
from .schemas import GrantRequest
from .types import ModelRecord, Permission, User

logger = logging.getLogger(__name__)

_CRITERIA_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "where": {"type": "object"},
        "blacklist": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

_OBJECT_FILTER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"objectId": {}, "object_id": {}},
    "minProperties": 1,
    "maxProperties": 1,
    "additionalProperties": False,
}

_PERMISSION_PROPERTIES: dict[str, Any] = {
    "model": {"type": "string", "minLength": 1},
    "action": {"type": "string", "enum": list(ACTIONS)},
    "relation": {"type": "string", "enum": list(RELATIONS)},
    "criteria": {"type": "array", "items": _CRITERIA_SCHEMA},
    "objectFilters": {"type": "array", "items": _OBJECT_FILTER_SCHEMA},
    "object_filters": {"type": "array", "items": _OBJECT_FILTER_SCHEMA},
}

POLICY_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Permission policy document",
    "type": "object",
    "properties": {
        "models": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "ownership_policy": {"type": "boolean"},
                },
                "required": ["name"],
                "additionalProperties": False,
            },
        },
        "users": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "username": {"type": "string", "minLength": 1},
                    "email": {"type": "string"},
                },
                "required": ["username"],
                "additionalProperties": False,
            },
        },
        "roles": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "users": {"type": "array", "items": {"type": "string"}},
                    "permissions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                **_PERMISSION_PROPERTIES,
                                "relation": {"type": "string", "enum": ["role", "owner"]},
                            },
                            "required": ["model", "action"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["name"],
                "additionalProperties": False,
            },
        },
        "grants": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    **_PERMISSION_PROPERTIES,
                    "role": {"type": "string", "minLength": 1},
                    "user": {"type": "string", "minLength": 1},
                },
                "required": ["model", "action"],
                "oneOf": [{"required": ["role"]}, {"required": ["user"]}],
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


def _error_path(error: ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "<root>"


def validate_policy(document: Any) -> None:
    """
    Validate a policy document against POLICY_SCHEMA.

    Raises:
        PolicyValidationError: If the document is invalid
    """
    try:
        validate(instance=document, schema=POLICY_SCHEMA)
    except ValidationError as e:
        path = _error_path(e)
        raise PolicyValidationError(
            f"Invalid policy document at '{path}': {e.message}", error_paths=[path]
        ) from e
    except SchemaError as e:
        raise PolicyValidationError(f"Invalid policy schema: {e.message}") from e


def _normalize_object_filters(entry: dict[str, Any]) -> dict[str, Any]:
    """Rewrite object filters to the ``objectFilters``/``objectId`` spelling."""
    entry = dict(entry)
    filters = entry.pop("object_filters", None) or entry.pop("objectFilters", None) or []
    if filters:
        entry["objectFilters"] = [
            {"objectId": f.get("objectId", f.get("object_id"))} for f in filters
        ]
    return entry


def iter_policy_permissions(document: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Flatten the permissions declared by a document (role permissions and
    grants) into grant-shaped mappings naming their role or user.
    """
    entries = []
    for role in document.get("roles", []):
        for permission in role.get("permissions", []):
            entries.append({**_normalize_object_filters(permission), "role": role["name"]})
    for grant in document.get("grants", []):
        entries.append(_normalize_object_filters(grant))
    return entries


def explain_policy(document: dict[str, Any], id_field: str = DEFAULT_ID_FIELD) -> list[dict[str, Any]]:
    """
    Compose the criteria of every permission in a document.

    Role and user names stand in for ids, so no store is needed.

    Returns:
        One entry per permission with its grantee, model, action, relation
        and composed criteria
    """
    validate_policy(document)
    explained = []
    for entry in iter_policy_permissions(document):
        request = parse_request(GrantRequest, entry)
        permission = Permission.from_dict(
            {
                "model": request.model,
                "action": request.action,
                "relation": request.relation,
                "role": request.role,
                "user": request.user,
                "criteria": [c.model_dump() for c in request.criteria],
                "object_filters": [{"object_id": f.object_id} for f in request.object_filters],
            }
        )
        explained.append(
            {
                "grantee": {"role": request.role} if request.role else {"user": request.user},
                "model": request.model,
                "action": request.action,
                "relation": request.relation,
                "criteria": [
                    {"where": item.where, "blacklist": sorted(item.blacklist), "owner": item.owner}
                    for item in compose_criteria(permission, id_field=id_field)
                ],
            }
        )
    return explained


def _restrictions(permission: Permission) -> tuple[list, list]:
    return (
        [(c.where, c.blacklist) for c in permission.criteria],
        [f.object_id for f in permission.object_filters],
    )


def _requested_restrictions(request: GrantRequest) -> tuple[list, list]:
    return (
        [(dict(c.where), frozenset(c.blacklist)) for c in request.criteria],
        [f.object_id for f in request.object_filters],
    )


async def seed_policies(admin: PermissionAdmin, document: dict[str, Any]) -> dict[str, int]:
    """
    Seed a policy document into the admin's store.

    Idempotent: models, users and roles that already exist by name are left
    alone. A grant is skipped only when the grantee already holds a permission
    for the same model, action and relation with the same criteria and object
    filters; grants differing in either are written as separate permissions.

    Args:
        admin: Administration layer bound to the target store
        document: Policy document

    Returns:
        Number of records created per section

    Raises:
        PolicyValidationError: If the document is invalid
        NotFoundError: If a grant references a name that does not resolve
    """
    validate_policy(document)
    store = admin.store
    results = {"models": 0, "users": 0, "roles": 0, "grants": 0}

    for model in document.get("models", []):
        if await store.models.find_one({"name": model["name"]}) is None:
            await store.models.add(
                ModelRecord(name=model["name"], ownership_policy=model.get("ownership_policy", False))
            )
            results["models"] += 1

    for user in document.get("users", []):
        if await store.users.find_one({"username": user["username"]}) is None:
            await store.users.add(User(username=user["username"], email=user.get("email")))
            results["users"] += 1

    for role in document.get("roles", []):
        if await store.roles.find_one({"name": role["name"]}) is not None:
            logger.debug(f"Role '{role['name']}' already exists, skipping")
            continue
        await admin.create_role(
            {
                "name": role["name"],
                "users": role.get("users", []),
                "permissions": [_normalize_object_filters(p) for p in role.get("permissions", [])],
            }
        )
        results["roles"] += 1

    for grant in document.get("grants", []):
        entry = _normalize_object_filters(grant)
        request = parse_request(GrantRequest, entry)

        record = await admin.resolve_grant(request)
        query = {"model": record.model, "action": record.action, "relation": record.relation}
        if record.role:
            query["role"] = record.role
        else:
            query["user"] = record.user
        existing = await store.find_permissions(query)
        if any(_restrictions(p) == _requested_restrictions(request) for p in existing):
            logger.debug(f"Grant {request.action} on '{request.model}' already exists, skipping")
            continue
        await admin.grant(request)
        results["grants"] += 1

    logger.info(
        "Seeded policy document: "
        + ", ".join(f"{count} {section}" for section, count in results.items())
    )
    return results
