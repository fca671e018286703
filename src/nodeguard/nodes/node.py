"""Keyed hierarchy node.

A Node is one entry in a site map, permission map or action map. Identity
is the key: two nodes with the same key compare equal and hash alike,
whatever their metadata. Collections rely on this for ``in``, ``index`` and
``remove``, and registries rely on it to detect duplicate keys.

Parent links are weak; a node is kept alive by the collection that holds
it, never by its children.
"""

from __future__ import annotations

import weakref
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Generic, Iterator, Mapping, Optional, TypeVar

from ..exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from .collection import NodeCollection

P = TypeVar("P")

_EMPTY_ATTRIBUTES: Mapping[str, str] = MappingProxyType({})


class Node(Generic[P]):
    """A node in a keyed hierarchy.

    Args:
        key: Immutable, non-null key, unique within one registry.
        title: Display title.
        description: Display description.
        payload: Hierarchy-specific data (``SiteMapPayload`` for site maps,
            ``None`` for permission and action-map nodes).

    The attribute bag and the child collection are allocated on first
    write, so reading ``attributes`` or ``has_children`` on a leaf costs
    nothing.
    """

    def __init__(
        self,
        key: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        payload: Optional[P] = None,
    ) -> None:
        if key is None:
            raise InvalidArgumentError("Node key must not be None", argument="key")
        if not isinstance(key, str):
            raise InvalidArgumentError(f"Node key must be a string, got {type(key).__name__}", argument="key")
        self._key = key
        self.title = title
        self.description = description
        self.payload = payload
        self._attributes: Optional[dict[str, str]] = None
        self._children: Optional[NodeCollection[P]] = None
        self._container: Optional[weakref.ReferenceType[NodeCollection[P]]] = None
        self._root: Optional[weakref.ReferenceType[Node[P]]] = None

    # ── Identity ─────────────────────────────────────────

    @property
    def key(self) -> str:
        return self._key

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Node):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self._key!r}, title={self.title!r})"

    # ── Hierarchy ────────────────────────────────────────

    @property
    def parent(self) -> Optional[Node[P]]:
        """Owning node, or None for roots and detached nodes."""
        container = self.container
        return container.owner if container is not None else None

    @property
    def container(self) -> Optional[NodeCollection[P]]:
        """The collection currently holding this node."""
        return self._container() if self._container is not None else None

    @property
    def children(self) -> NodeCollection[P]:
        if self._children is None:
            from .collection import NodeCollection

            self._children = NodeCollection(owner=self)
        return self._children

    @property
    def has_children(self) -> bool:
        return self._children is not None and len(self._children) > 0

    @property
    def root(self) -> Node[P]:
        """Topmost ancestor (the node itself when it has no parent)."""
        cached = self._root() if self._root is not None else None
        if cached is None:
            parent = self.parent
            cached = parent.root if parent is not None else self
            self._root = weakref.ref(cached)
        return cached

    @property
    def depth(self) -> int:
        depth = 0
        parent = self.parent
        while parent is not None:
            depth += 1
            parent = parent.parent
        return depth

    def walk(self) -> Iterator[Node[P]]:
        """Pre-order traversal of this node and its descendants."""
        stack: list[Node[P]] = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.has_children:
                stack.extend(reversed(list(node.children)))

    def _attach(self, container: Optional[NodeCollection[P]]) -> None:
        # Only NodeCollection calls this.
        self._container = weakref.ref(container) if container is not None else None
        for node in self.walk():
            node._root = None

    # ── Attributes ───────────────────────────────────────

    @property
    def attributes(self) -> Mapping[str, str]:
        """Read-only view of the attribute bag."""
        if self._attributes is None:
            return _EMPTY_ATTRIBUTES
        return MappingProxyType(self._attributes)

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if self._attributes is None:
            return default
        return self._attributes.get(name, default)

    def set_attribute(self, name: str, value: str) -> None:
        if name is None:
            raise InvalidArgumentError("Attribute name must not be None", argument="name")
        if self._attributes is None:
            self._attributes = {}
        self._attributes[name] = value

    def update_attributes(self, attributes: Mapping[str, Any]) -> None:
        for name, value in attributes.items():
            self.set_attribute(name, value)

    def remove_attribute(self, name: str) -> bool:
        if self._attributes is None or name not in self._attributes:
            return False
        del self._attributes[name]
        return True


__all__ = ["Node", "P"]
