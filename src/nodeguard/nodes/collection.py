"""Ordered, parent-linked node collection.

Every member of a NodeCollection has ``member.parent is collection.owner``.
Adding or inserting a node links it; removing it (by value, by index or
via ``clear``) unlinks it before it leaves the list. A node can sit in at
most one collection at a time.

Membership tests and ``index`` compare nodes by key, so a different
instance carrying the same key counts as contained.
"""

from __future__ import annotations

import weakref
from typing import Generic, Iterable, Iterator, MutableSequence, Optional, Union, overload

from ..exceptions import IndexOutOfRangeError, InvalidArgumentError
from .node import Node, P


class NodeCollection(MutableSequence[Node[P]], Generic[P]):
    """Lazily backed list of nodes owned by ``owner``.

    No backing list exists until the first mutation. The registry root
    collection has ``owner=None``.
    """

    def __init__(self, owner: Optional[Node[P]] = None) -> None:
        self._items: Optional[list[Node[P]]] = None
        self._owner = weakref.ref(owner) if owner is not None else None

    @property
    def owner(self) -> Optional[Node[P]]:
        return self._owner() if self._owner is not None else None

    @property
    def _list(self) -> list[Node[P]]:
        if self._items is None:
            self._items = []
        return self._items

    # ── Validation ───────────────────────────────────────

    def _check_addable(self, node: Optional[Node[P]]) -> Node[P]:
        if node is None:
            raise InvalidArgumentError("Node must not be None", argument="node")
        if not isinstance(node, Node):
            raise InvalidArgumentError(f"Expected a Node, got {type(node).__name__}", argument="node")
        if node.container is not None:
            raise InvalidArgumentError(
                f"Node '{node.key}' already belongs to a collection; remove it first",
                argument="node",
                key=node.key,
            )
        ancestor = self.owner
        while ancestor is not None:
            if ancestor is node:
                raise InvalidArgumentError(
                    f"Node '{node.key}' cannot be added beneath itself",
                    argument="node",
                    key=node.key,
                )
            ancestor = ancestor.parent
        return node

    def _normalize_index(self, index: int) -> int:
        size = len(self)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexOutOfRangeError(f"Index {index} is out of range for {size} node(s)", index=index)
        return index

    # ── Sequence protocol ────────────────────────────────

    def __len__(self) -> int:
        return len(self._items) if self._items is not None else 0

    def __iter__(self) -> Iterator[Node[P]]:
        if self._items is None:
            return iter(())
        return iter(self._items)

    def __contains__(self, node: object) -> bool:
        return self._items is not None and node in self._items

    @overload
    def __getitem__(self, index: int) -> Node[P]: ...

    @overload
    def __getitem__(self, index: slice) -> list[Node[P]]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Node[P], list[Node[P]]]:
        if isinstance(index, slice):
            return list(self._items[index]) if self._items is not None else []
        return self._list[self._normalize_index(index)]

    def __setitem__(self, index, node) -> None:  # type: ignore[override]
        if isinstance(index, slice):
            raise TypeError("NodeCollection does not support slice assignment")
        index = self._normalize_index(index)
        current = self._list[index]
        if node is current:
            return
        self._check_addable(node)
        current._attach(None)
        node._attach(self)
        self._list[index] = node

    def __delitem__(self, index) -> None:  # type: ignore[override]
        if isinstance(index, slice):
            raise TypeError("NodeCollection does not support slice deletion")
        self.remove_at(index)

    def __repr__(self) -> str:
        owner = self.owner
        owner_key = owner.key if owner is not None else None
        return f"NodeCollection(owner={owner_key!r}, keys={[n.key for n in self]!r})"

    # ── Mutation ─────────────────────────────────────────

    def append(self, node: Node[P]) -> None:
        self._check_addable(node)
        node._attach(self)
        self._list.append(node)

    def insert(self, index: int, node: Node[P]) -> None:
        """Insert ``node`` at ``index``; ``index`` must lie in ``[0, len]``."""
        self._check_addable(node)
        if not 0 <= index <= len(self):
            raise IndexOutOfRangeError(f"Insert index {index} is out of range for {len(self)} node(s)", index=index)
        node._attach(self)
        self._list.insert(index, node)

    def insert_range(self, index: int, nodes: Iterable[Node[P]]) -> None:
        if nodes is None:
            raise InvalidArgumentError("Nodes must not be None", argument="nodes")
        batch = list(nodes)
        if not 0 <= index <= len(self):
            raise IndexOutOfRangeError(f"Insert index {index} is out of range for {len(self)} node(s)", index=index)
        seen: set[int] = set()
        for node in batch:
            self._check_addable(node)
            if id(node) in seen:
                raise InvalidArgumentError(f"Node '{node.key}' appears twice in the batch", argument="nodes")
            seen.add(id(node))
        for node in batch:
            node._attach(self)
        self._list[index:index] = batch

    def extend(self, nodes: Iterable[Node[P]]) -> None:
        self.insert_range(len(self), nodes)

    def remove(self, node: Node[P]) -> bool:  # type: ignore[override]
        """Remove the member equal to ``node``; return whether one was removed."""
        if node is None:
            raise InvalidArgumentError("Node must not be None", argument="node")
        index = self.index_of(node)
        if index < 0:
            return False
        self.remove_at(index)
        return True

    def remove_at(self, index: int) -> Node[P]:
        index = self._normalize_index(index)
        node = self._list[index]
        node._attach(None)
        del self._list[index]
        return node

    def pop(self, index: int = -1) -> Node[P]:
        return self.remove_at(index)

    def reverse(self) -> None:
        if self._items is not None:
            self._items.reverse()

    def clear(self) -> None:
        if self._items is None:
            return
        for node in self._items:
            node._attach(None)
        self._items.clear()

    # ── Lookup ───────────────────────────────────────────

    def index_of(self, node: Node[P]) -> int:
        """Position of the member equal to ``node``, or -1."""
        if self._items is None:
            return -1
        for position, member in enumerate(self._items):
            if member == node:
                return position
        return -1

    def index(self, node: Node[P], start: int = 0, stop: Optional[int] = None) -> int:  # type: ignore[override]
        position = self.index_of(node)
        if position < start or (stop is not None and position >= stop):
            raise ValueError(f"{node!r} is not in collection")
        return position

    @property
    def keys(self) -> list[str]:
        return [node.key for node in self]


__all__ = ["NodeCollection"]
