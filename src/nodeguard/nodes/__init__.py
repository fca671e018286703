"""Keyed hierarchies for site maps, permission maps and action maps.

Defines:
- Node / NodeCollection: key-identified, parent-linked tree entries
- NodeRegistry: the aggregate root of one hierarchy
- find_node / add_node / add_root_node / add_node_before / add_node_after /
  remove_node / iter_nodes: algorithms shared by every hierarchy
- SiteMapRegistry / PermissionRegistry / ActionMapRegistry: the three flavours
"""

from .algorithms import (
    add_node,
    add_node_after,
    add_node_before,
    add_root_node,
    find_node,
    iter_nodes,
    remove_node,
)
from .collection import NodeCollection
from .kinds import (
    ActionMapNode,
    ActionMapRegistry,
    PermissionNode,
    PermissionRegistry,
    SiteMapNode,
    SiteMapPayload,
    SiteMapRegistry,
    required_permission_of,
)
from .node import Node
from .registry import NodeRegistry

__all__ = [
    "ActionMapNode",
    "ActionMapRegistry",
    "Node",
    "NodeCollection",
    "NodeRegistry",
    "PermissionNode",
    "PermissionRegistry",
    "SiteMapNode",
    "SiteMapPayload",
    "SiteMapRegistry",
    "add_node",
    "add_node_after",
    "add_node_before",
    "add_root_node",
    "find_node",
    "iter_nodes",
    "remove_node",
    "required_permission_of",
]
