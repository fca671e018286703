"""Node registry: the aggregate root of one hierarchy.

A registry is built once at startup, injected wherever lookups happen and
read on every request. Registry algorithms lock ``registry.lock`` for
their whole duration; code that mutates ``registry.roots`` or a node's
``children`` directly after startup must hold the same lock.
"""

from __future__ import annotations

import threading
from typing import Generic, Iterator, Mapping, Optional

from . import algorithms
from .collection import NodeCollection
from .node import Node, P


class NodeRegistry(Generic[P]):
    """Holds the root collection of one hierarchy.

    Methods mirror the free functions in :mod:`nodeguard.nodes.algorithms`.

    Args:
        name: Hierarchy name used in error and log messages.
    """

    def __init__(self, name: str = "registry") -> None:
        self.name = name
        self._roots: NodeCollection[P] = NodeCollection()
        self._lock = threading.RLock()

    @property
    def roots(self) -> NodeCollection[P]:
        return self._roots

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def __iter__(self) -> Iterator[Node[P]]:
        return algorithms.iter_nodes(self)

    def __len__(self) -> int:
        return sum(1 for _ in algorithms.iter_nodes(self))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return algorithms.find_node(self, key) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, roots={self._roots.keys!r})"

    def find_node(self, key: str) -> Optional[Node[P]]:
        return algorithms.find_node(self, key)

    def add_node(
        self,
        parent_key: str,
        key: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
        *,
        payload: Optional[P] = None,
    ) -> Node[P]:
        return algorithms.add_node(self, parent_key, key, title, description, attributes, payload=payload)

    def add_root_node(
        self,
        key: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
        *,
        payload: Optional[P] = None,
    ) -> Node[P]:
        return algorithms.add_root_node(self, key, title, description, attributes, payload=payload)

    def add_node_before(
        self,
        sibling_key: str,
        key: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
        *,
        payload: Optional[P] = None,
    ) -> Node[P]:
        return algorithms.add_node_before(self, sibling_key, key, title, description, attributes, payload=payload)

    def add_node_after(
        self,
        sibling_key: str,
        key: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[Mapping[str, str]] = None,
        *,
        payload: Optional[P] = None,
    ) -> Node[P]:
        return algorithms.add_node_after(self, sibling_key, key, title, description, attributes, payload=payload)

    def remove_node(self, key: str) -> bool:
        return algorithms.remove_node(self, key)


__all__ = ["NodeRegistry"]
