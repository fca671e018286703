"""The three hierarchies: site map, permission map and action map.

All three share NodeRegistry. Only site-map nodes carry a payload
(``SiteMapPayload``) with a URL and the permission required to reach the
page; permission and action-map nodes are plain metadata plus hierarchy.

Example::

    site_map = SiteMapRegistry()
    site_map.add_root_page("admin", "Administration", url="/admin")
    site_map.add_page(
        "admin",
        "admin.users",
        "Users",
        url="/admin/users",
        required_permission="users.manage",
    )
    required_permission_of(site_map.find_node("admin.users"))  # "users.manage"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .node import Node
from .registry import NodeRegistry


@dataclass
class SiteMapPayload:
    """Site-map specific node data."""

    url: Optional[str] = None
    required_permission: Optional[str] = None


SiteMapNode = Node[SiteMapPayload]
PermissionNode = Node[None]
ActionMapNode = Node[None]


def required_permission_of(node: Optional[Node[Any]]) -> Optional[str]:
    """Permission a node requires, or None when the node requires nothing."""
    if node is None or node.payload is None:
        return None
    return getattr(node.payload, "required_permission", None) or None


class SiteMapRegistry(NodeRegistry[SiteMapPayload]):
    """Navigation hierarchy with per-page required permissions."""

    def __init__(self, name: str = "site map") -> None:
        super().__init__(name)

    def add_page(
        self,
        parent_key: str,
        key: str,
        title: Optional[str] = None,
        *,
        url: Optional[str] = None,
        description: Optional[str] = None,
        required_permission: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> SiteMapNode:
        return self.add_node(
            parent_key,
            key,
            title,
            description,
            attributes,
            payload=SiteMapPayload(url=url, required_permission=required_permission),
        )

    def add_root_page(
        self,
        key: str,
        title: Optional[str] = None,
        *,
        url: Optional[str] = None,
        description: Optional[str] = None,
        required_permission: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> SiteMapNode:
        return self.add_root_node(
            key,
            title,
            description,
            attributes,
            payload=SiteMapPayload(url=url, required_permission=required_permission),
        )

    def add_page_before(
        self,
        sibling_key: str,
        key: str,
        title: Optional[str] = None,
        *,
        url: Optional[str] = None,
        description: Optional[str] = None,
        required_permission: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> SiteMapNode:
        return self.add_node_before(
            sibling_key,
            key,
            title,
            description,
            attributes,
            payload=SiteMapPayload(url=url, required_permission=required_permission),
        )

    def add_page_after(
        self,
        sibling_key: str,
        key: str,
        title: Optional[str] = None,
        *,
        url: Optional[str] = None,
        description: Optional[str] = None,
        required_permission: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> SiteMapNode:
        return self.add_node_after(
            sibling_key,
            key,
            title,
            description,
            attributes,
            payload=SiteMapPayload(url=url, required_permission=required_permission),
        )

    def required_permission(self, key: str) -> Optional[str]:
        return required_permission_of(self.find_node(key))


class PermissionRegistry(NodeRegistry[None]):
    """Hierarchy of the permissions an application defines."""

    def __init__(self, name: str = "permission") -> None:
        super().__init__(name)


class ActionMapRegistry(NodeRegistry[None]):
    """Hierarchy of controller actions."""

    def __init__(self, name: str = "action map") -> None:
        super().__init__(name)


__all__ = [
    "ActionMapNode",
    "ActionMapRegistry",
    "PermissionNode",
    "PermissionRegistry",
    "SiteMapNode",
    "SiteMapPayload",
    "SiteMapRegistry",
    "required_permission_of",
]
