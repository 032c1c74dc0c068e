"""Workspace roles, membership and ordered resources."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    # Models
    "Base",
    "Workspace",
    "WorkspaceMember",
    "Section",
    "WorkspaceRole",
    # Core
    "AccessControlFacade",
    "MembershipMutator",
    "OrderedResourceStore",
    "PermissionMatrix",
    "RoleResolver",
    "transaction",
    # API
    "create_app",
    "WorkspaceSettings",
    "WorkspaceDatabase",
    "init_engine",
]

_MODULE_BY_NAME = {
    "Base": ".models",
    "Workspace": ".models",
    "WorkspaceMember": ".models",
    "Section": ".models",
    "WorkspaceRole": ".models",
    "AccessControlFacade": ".facade",
    "MembershipMutator": ".membership",
    "OrderedResourceStore": ".ordering",
    "PermissionMatrix": ".permissions",
    "RoleResolver": ".roles",
    "transaction": ".transactions",
    "create_app": ".api",
    "WorkspaceSettings": ".service",
    "WorkspaceDatabase": ".service",
    "init_engine": ".service",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - thin import shim
    try:
        module_name = _MODULE_BY_NAME[name]
    except KeyError:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from None
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - introspection helper
    return sorted(__all__ + ["errors", "schema", "schemas"])
