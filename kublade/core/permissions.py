"""
Permission sets.

Permissions are dot separated capability names such as ``projects.update``.
Guards declare a permission *template*; at request time the template is bound
to the route parameters of the request (``projects.update`` on
``/projects/5`` becomes ``projects.5.update``) and expanded into every
wildcard that would also grant it::

    projects.*
    projects.5.*
    projects.5.update

A principal passes a guard when it holds at least one permission of the set.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

WILDCARD = "*"

# Resource segment -> route parameter that identifies an instance of it.
# Order matters: segments are bound in this order.
RESOURCE_PARAMETERS: tuple[tuple[str, str], ...] = (
    ("projects", "project_id"),
    ("templates", "template_id"),
    ("folders", "folder_id"),
    ("files", "file_id"),
    ("fields", "field_id"),
    ("options", "option_id"),
    ("ports", "port_id"),
    ("clusters", "cluster_id"),
    ("deployments", "deployment_id"),
    ("commits", "commit_id"),
    ("network-policies", "network_policy_id"),
)

_IDENTIFIER = re.compile(r"^(\d+|[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})$")


class PermissionSet:
    """Expansion and enumeration of permission names."""

    @staticmethod
    def bind(permission: str, parameters: Mapping[str, Any]) -> str:
        """Insert route identifiers after the resource segments they belong to."""
        for segment, parameter in RESOURCE_PARAMETERS:
            value = parameters.get(parameter)
            if value in (None, ""):
                continue
            needle = f"{segment}."
            if needle in permission:
                permission = permission.replace(needle, f"{segment}.{value}.", 1)
        return permission

    @staticmethod
    def expand(permission: str) -> list[str]:
        """Expand a concrete permission into itself plus every parent wildcard."""
        segments = permission.split(".")
        expanded = []
        for index in range(len(segments)):
            prefix = ".".join(segments[: index + 1])
            expanded.append(prefix if index == len(segments) - 1 else f"{prefix}.{WILDCARD}")
        return expanded

    @classmethod
    def from_request(cls, permission: str, parameters: Optional[Mapping[str, Any]] = None) -> list[str]:
        """
        Build the permission set a request must satisfy.

        Args:
            permission: Permission template declared by the guard
            parameters: Route parameters of the current request

        Returns:
            Ordered list of permissions, any one of which grants access
        """
        return cls.expand(cls.bind(permission, parameters or {}))

    @classmethod
    def all(
        cls,
        declared: Iterable[tuple[str, Iterable[str]]],
        identifiers: Optional[Mapping[str, Iterable[Any]]] = None,
    ) -> list[str]:
        """
        Enumerate every grantable permission.

        Args:
            declared: ``(permission, route_parameter_names)`` pairs collected from guarded routes
            identifiers: Known identifiers per route parameter, e.g. ``{"project_id": [...]}``

        Returns:
            Sorted unique permission names including ``*``
        """
        identifiers = identifiers or {}
        concrete: list[tuple[str, frozenset[str]]] = [(p, frozenset(params)) for p, params in declared]

        for segment, parameter in RESOURCE_PARAMETERS:
            bound: list[tuple[str, frozenset[str]]] = []
            for permission, params in concrete:
                if f"{segment}." in permission and parameter in params:
                    for value in identifiers.get(parameter, ()):
                        bound.append((permission.replace(f"{segment}.", f"{segment}.{value}.", 1), params))
                else:
                    bound.append((permission, params))
            concrete = bound

        permissions = {WILDCARD}
        for permission, _ in concrete:
            permissions.update(cls.expand(permission))
        return sorted(permissions)

    @staticmethod
    def is_identifier(segment: str) -> bool:
        return bool(_IDENTIFIER.match(segment))

    @classmethod
    def tree(cls, permissions: Iterable[str]) -> dict[str, Any]:
        """
        Arrange permissions as a nested tree for display.

        Identifier segments collapse into a ``<parent>.*`` node so that all
        instances of a resource share one branch. Leaves are ``None``.
        """
        tree: dict[str, Any] = {WILDCARD: None}

        for permission in permissions:
            parts = permission.split(".")
            current = tree
            for index, part in enumerate(parts):
                last = index == len(parts) - 1
                if cls.is_identifier(part):
                    parent = ".".join(parts[:index])
                    key = f"{parent}.{WILDCARD}" if parent else WILDCARD
                else:
                    key = part
                current.setdefault(key, None)
                if last:
                    break
                if current[key] is None:
                    current[key] = {}
                current = current[key]

        return _sort_tree(tree)


def _sort_tree(node: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not node:
        return node
    return {key: _sort_tree(node[key]) for key in sorted(node)}
