"""Registry algorithms shared by every hierarchy.

Free functions over a NodeRegistry:

- ``find_node``       pre-order lookup with a duplicate-key check.
- ``add_node``        create-or-get a child of a parent key.
- ``add_root_node``   create-or-get a root.
- ``add_node_before`` / ``add_node_after``  create-or-get next to a sibling.
- ``remove_node``     detach a node (and its subtree) from the hierarchy.
- ``iter_nodes``      pre-order snapshot of the whole hierarchy.

Every function holds ``registry.lock`` for its whole duration.

The ``add_*`` functions are create-or-get: when the key already exists the
existing node is returned untouched, even if the title, description,
attributes or payload passed in differ.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Optional

from ..exceptions import DuplicateKeyError, InvalidArgumentError, NotFoundError
from .collection import NodeCollection
from .node import Node, P

if TYPE_CHECKING:
    from .registry import NodeRegistry

logger = logging.getLogger(__name__)


def _require_registry(registry: Optional[NodeRegistry[P]]) -> NodeRegistry[P]:
    if registry is None:
        raise InvalidArgumentError("Registry must not be None", argument="registry")
    return registry


def _require_key(key: Optional[str], argument: str = "key") -> str:
    if key is None:
        raise InvalidArgumentError(f"{argument} must not be None", argument=argument)
    stripped = key.strip()
    if not stripped:
        raise InvalidArgumentError(f"{argument} must not be blank", argument=argument)
    return stripped


def _walk(nodes: Iterable[Node[P]]) -> Iterator[Node[P]]:
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        yield node
        if node.has_children:
            stack.extend(reversed(list(node.children)))


def _create_node(
    key: str,
    title: Optional[str],
    description: Optional[str],
    attributes: Optional[Mapping[str, str]],
    payload: Optional[P],
) -> Node[P]:
    node: Node[P] = Node(key, title=title, description=description, payload=payload)
    if attributes:
        node.update_attributes(attributes)
    return node


def _containing_collection(registry: NodeRegistry[P], node: Node[P]) -> NodeCollection[P]:
    parent = node.parent
    return parent.children if parent is not None else registry.roots


def iter_nodes(registry: NodeRegistry[P]) -> Iterator[Node[P]]:
    """Pre-order traversal of every node reachable from the roots.

    The traversal is materialized under the registry lock, so the iterator
    is safe to consume while other threads mutate the registry.
    """
    registry = _require_registry(registry)
    with registry.lock:
        snapshot = list(_walk(registry.roots))
    return iter(snapshot)


def find_node(registry: NodeRegistry[P], key: str) -> Optional[Node[P]]:
    """Find the node with ``key`` anywhere in the hierarchy.

    Args:
        registry: Registry to search.
        key: Lookup key; surrounding whitespace is ignored.

    Returns:
        The matching node, or None when no node (or a blank key) matches.

    Raises:
        InvalidArgumentError: ``registry`` or ``key`` is None.
        DuplicateKeyError: more than one node carries ``key``.
    """
    registry = _require_registry(registry)
    if key is None:
        raise InvalidArgumentError("key must not be None", argument="key")
    key = key.strip()
    if not key:
        return None

    found: Optional[Node[P]] = None
    with registry.lock:
        for node in _walk(registry.roots):
            if node.key == key:
                if found is not None:
                    raise DuplicateKeyError(
                        f"Duplicate {registry.name} node with the same key: {key}.",
                        key=key,
                        registry=registry.name,
                    )
                found = node
    return found


def add_node(
    registry: NodeRegistry[P],
    parent_key: str,
    key: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    attributes: Optional[Mapping[str, str]] = None,
    *,
    payload: Optional[P] = None,
) -> Node[P]:
    """Create ``key`` as the last child of ``parent_key``, or return it if it exists.

    Raises:
        NotFoundError: ``parent_key`` does not resolve.
    """
    registry = _require_registry(registry)
    key = _require_key(key)
    parent_key = _require_key(parent_key, "parent_key")
    with registry.lock:
        node = find_node(registry, key)
        if node is not None:
            logger.debug("%s node '%s' already exists, reusing it", registry.name, key)
            return node
        parent = find_node(registry, parent_key)
        if parent is None:
            raise NotFoundError(
                f"The {registry.name} node '{parent_key}' cannot be found.",
                key=parent_key,
                registry=registry.name,
            )
        node = _create_node(key, title, description, attributes, payload)
        parent.children.append(node)
    logger.debug("Added %s node '%s' under '%s'", registry.name, key, parent_key)
    return node


def add_root_node(
    registry: NodeRegistry[P],
    key: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    attributes: Optional[Mapping[str, str]] = None,
    *,
    payload: Optional[P] = None,
) -> Node[P]:
    """Create ``key`` as the last root node, or return it if it exists."""
    registry = _require_registry(registry)
    key = _require_key(key)
    with registry.lock:
        node = find_node(registry, key)
        if node is not None:
            logger.debug("%s node '%s' already exists, reusing it", registry.name, key)
            return node
        node = _create_node(key, title, description, attributes, payload)
        registry.roots.append(node)
    logger.debug("Added %s root node '%s'", registry.name, key)
    return node


def _add_beside(
    registry: NodeRegistry[P],
    sibling_key: str,
    key: str,
    title: Optional[str],
    description: Optional[str],
    attributes: Optional[Mapping[str, str]],
    payload: Optional[P],
    offset: int,
) -> Node[P]:
    registry = _require_registry(registry)
    key = _require_key(key)
    sibling_key = _require_key(sibling_key, "sibling_key")
    with registry.lock:
        node = find_node(registry, key)
        if node is not None:
            logger.debug("%s node '%s' already exists, reusing it", registry.name, key)
            return node
        sibling = find_node(registry, sibling_key)
        if sibling is None:
            raise NotFoundError(
                f"The {registry.name} node '{sibling_key}' cannot be found.",
                key=sibling_key,
                registry=registry.name,
            )
        collection = _containing_collection(registry, sibling)
        node = _create_node(key, title, description, attributes, payload)
        collection.insert(collection.index_of(sibling) + offset, node)
    logger.debug(
        "Added %s node '%s' %s '%s'",
        registry.name,
        key,
        "after" if offset else "before",
        sibling_key,
    )
    return node


def add_node_before(
    registry: NodeRegistry[P],
    sibling_key: str,
    key: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    attributes: Optional[Mapping[str, str]] = None,
    *,
    payload: Optional[P] = None,
) -> Node[P]:
    """Create ``key`` immediately before ``sibling_key``, or return it if it exists.

    Raises:
        NotFoundError: ``sibling_key`` does not resolve.
    """
    return _add_beside(registry, sibling_key, key, title, description, attributes, payload, 0)


def add_node_after(
    registry: NodeRegistry[P],
    sibling_key: str,
    key: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    attributes: Optional[Mapping[str, str]] = None,
    *,
    payload: Optional[P] = None,
) -> Node[P]:
    """Create ``key`` immediately after ``sibling_key``, or return it if it exists.

    Raises:
        NotFoundError: ``sibling_key`` does not resolve.
    """
    return _add_beside(registry, sibling_key, key, title, description, attributes, payload, 1)


def remove_node(registry: NodeRegistry[P], key: str) -> bool:
    """Detach the node with ``key``; return False when it does not exist.

    The removed node keeps its own children, so the detached subtree stays
    internally consistent.
    """
    registry = _require_registry(registry)
    with registry.lock:
        node = find_node(registry, key)
        if node is None:
            return False
        removed = _containing_collection(registry, node).remove(node)
    logger.debug("Removed %s node '%s'", registry.name, node.key)
    return removed


__all__ = [
    "add_node",
    "add_node_after",
    "add_node_before",
    "add_root_node",
    "find_node",
    "iter_nodes",
    "remove_node",
]
