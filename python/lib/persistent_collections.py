#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
persistent_collections.py
-------------------------

Immutable ordered collections on top of :mod:`persistent_rbtree`.

``PersistentMap`` behaves like a read-only ``dict`` whose keys are kept in
sorted order; ``PersistentSet`` is the same for a set.  Every "modifying"
method returns a *new* collection and leaves the original untouched.  Old and
new versions share all the tree nodes the change did not touch.

Features
~~~~~~~~
* ``m.set(key, value)`` / ``m.delete(key)`` / ``m.remove(key)`` / ``m.update(items)``
* ``m[key]``, ``m.get(key, default)``, ``key in m``, ``len(m)``
* iteration (``for key in m:``) – keys in ascending order
* ``m.items()``, ``m.keys()``, ``m.values()``
* ``m.min_key()``, ``m.max_key()``, ``m.successor(key)``, ``m.predecessor(key)``
* ``m.validate()`` – sanity-check the red-black invariants
* ``s.add(value)`` / ``s.discard(value)`` / ``s.remove(value)`` for sets

Typical usage
~~~~~~~~~~~~~
>>> from persistent_collections import PersistentMap
>>> m1 = PersistentMap([(5, "five"), (2, "two")])
>>> m2 = m1.set(8, "eight").delete(5)
>>> list(m1), list(m2)
([2, 5], [2, 8])
>>> m2[8]
'eight'
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Generator,
    Generic,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

import persistent_rbtree as rbt
from persistent_rbtree import Compare, Tree

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

_MISSING = object()


class PersistentMap(Generic[K, V]):
    """
    An immutable mapping kept in key order by a persistent red-black tree.

    Parameters
    ----------
    items : iterable of (key, value)   optional
        Initial contents.  Later pairs win over earlier ones with an equal key.
    compare : callable   optional
        ``compare(a, b) -> int`` ordering for the keys.  Every collection
        derived from this one keeps using it.
    """

    __slots__ = ("_root", "_size", "_compare")

    def __init__(
        self,
        items: Optional[Iterable[Tuple[K, V]]] = None,
        *,
        compare: Optional[Compare] = None,
    ) -> None:
        self._root: Tree = rbt.empty()
        self._size: int = 0
        self._compare = compare

        if items is not None:
            count = 0
            for key, value in items:
                if not rbt.member(self._root, key, compare):
                    self._size += 1
                self._root = rbt.insert(self._root, key, value, compare)
                count += 1
            logger.debug("Built PersistentMap from %d items (%d keys)", count, self._size)

    def _derive(self, root: Tree, size: int) -> "PersistentMap[K, V]":
        if root is self._root:
            return self
        new = object.__new__(type(self))
        new._root = root
        new._size = size
        new._compare = self._compare
        return new

    @property
    def root(self) -> Tree:
        """The underlying tree (read-only)."""
        return self._root

    # ------------------------------------------------------------------
    #   Versioning operations
    # ------------------------------------------------------------------
    def set(self, key: K, value: V) -> "PersistentMap[K, V]":
        """Return a map with *key* bound to *value*."""
        present = rbt.member(self._root, key, self._compare)
        root = rbt.insert(self._root, key, value, self._compare)
        return self._derive(root, self._size if present else self._size + 1)

    def delete(self, key: K) -> "PersistentMap[K, V]":
        """Return a map without *key*; ``self`` if *key* is absent."""
        root = rbt.delete(self._root, key, self._compare)
        return self._derive(root, self._size - 1)

    def remove(self, key: K) -> "PersistentMap[K, V]":
        """Like :meth:`delete` but raise ``KeyError`` if *key* is absent."""
        if key not in self:
            raise KeyError(key)
        return self.delete(key)

    def update(self, items: Iterable[Tuple[K, V]]) -> "PersistentMap[K, V]":
        result = self
        for key, value in items:
            result = result.set(key, value)
        return result

    # ------------------------------------------------------------------
    #   Mapping protocol
    # ------------------------------------------------------------------
    def __contains__(self, key: object) -> bool:
        return rbt.member(self._root, key, self._compare)

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, key: K) -> V:
        return rbt.lookup(self._root, key, compare=self._compare)

    def get(self, key: K, default: Any = None) -> Any:
        return rbt.lookup(self._root, key, default, self._compare)

    def __iter__(self) -> Generator[K, None, None]:
        """Yield keys in ascending order."""
        for key, _ in rbt.iter_items(self._root):
            yield key

    def keys(self) -> List[K]:
        return list(self)

    def values(self) -> List[V]:
        return [value for _, value in rbt.iter_items(self._root)]

    def items(self) -> List[Tuple[K, V]]:
        return list(rbt.iter_items(self._root))

    # ------------------------------------------------------------------
    #   Ordered queries
    # ------------------------------------------------------------------
    def min_key(self) -> K:
        return rbt.min_item(self._root)[0]

    def max_key(self) -> K:
        return rbt.max_item(self._root)[0]

    def successor(self, key: K) -> K:
        return rbt.successor(self._root, key, self._compare)

    def predecessor(self, key: K) -> K:
        return rbt.predecessor(self._root, key, self._compare)

    def validate(self) -> None:
        """Raise ``InvariantError`` if the underlying tree is broken."""
        rbt.validate(self._root, self._compare)
        if rbt.size(self._root) != self._size:
            message = f"size {self._size} does not match tree contents"
            logger.error(message)
            raise rbt.InvariantError(message)

    # ------------------------------------------------------------------
    #   Comparison / representation
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PersistentMap):
            return NotImplemented
        if self._root is other._root:
            return True
        if len(self) != len(other):
            return False
        return all(
            other.get(key, _MISSING) == value
            for key, value in rbt.iter_items(self._root)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return f"PersistentMap({{{items}}})"


class PersistentSet(Generic[K]):
    """An immutable sorted set; the tree stores ``None`` as every payload."""

    __slots__ = ("_root", "_size", "_compare")

    def __init__(
        self,
        values: Optional[Iterable[K]] = None,
        *,
        compare: Optional[Compare] = None,
    ) -> None:
        self._root: Tree = rbt.empty()
        self._size: int = 0
        self._compare = compare

        if values is not None:
            count = 0
            for value in values:
                if not rbt.member(self._root, value, compare):
                    self._root = rbt.insert(self._root, value, None, compare)
                    self._size += 1
                count += 1
            logger.debug("Built PersistentSet from %d values (%d distinct)", count, self._size)

    def _derive(self, root: Tree, size: int) -> "PersistentSet[K]":
        if root is self._root:
            return self
        new = object.__new__(type(self))
        new._root = root
        new._size = size
        new._compare = self._compare
        return new

    @property
    def root(self) -> Tree:
        return self._root

    def add(self, value: K) -> "PersistentSet[K]":
        """Return a set that also contains *value*; ``self`` if already there."""
        root = rbt.insert(self._root, value, None, self._compare)
        return self._derive(root, self._size + 1)

    def discard(self, value: K) -> "PersistentSet[K]":
        """Return a set without *value*; ``self`` if it was absent."""
        root = rbt.delete(self._root, value, self._compare)
        return self._derive(root, self._size - 1)

    def remove(self, value: K) -> "PersistentSet[K]":
        if value not in self:
            raise KeyError(value)
        return self.discard(value)

    def __contains__(self, value: object) -> bool:
        return rbt.member(self._root, value, self._compare)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Generator[K, None, None]:
        for key, _ in rbt.iter_items(self._root):
            yield key

    def min(self) -> K:
        return rbt.min_item(self._root)[0]

    def max(self) -> K:
        return rbt.max_item(self._root)[0]

    def successor(self, value: K) -> K:
        return rbt.successor(self._root, value, self._compare)

    def predecessor(self, value: K) -> K:
        return rbt.predecessor(self._root, value, self._compare)

    def validate(self) -> None:
        rbt.validate(self._root, self._compare)
        if rbt.size(self._root) != self._size:
            message = f"size {self._size} does not match tree contents"
            logger.error(message)
            raise rbt.InvariantError(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PersistentSet):
            return NotImplemented
        if self._root is other._root:
            return True
        return len(self) == len(other) and all(value in other for value in self)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if not self._size:
            return "PersistentSet()"
        values = ", ".join(repr(v) for v in self)
        return f"PersistentSet({{{values}}})"
