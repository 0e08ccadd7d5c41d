#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
persistent_rbtree.py
--------------------

A **persistent** (immutable) red-black tree.  Every operation returns a new
tree and leaves its argument untouched; the new tree shares every subtree the
operation did not have to rebuild, so only the O(log n) spine from the root to
the point of change is ever re-allocated.

Insertion uses the classic four-case ``balance`` rewrite.  Deletion uses the
doubly-black / negative-black technique of Germane & Might ("Deletion: The
curse of the red-black tree"): removing a black node leaves a *double-black*
marker which is bubbled upwards and discharged by an extended ``balance``.

Features
~~~~~~~~
* ``empty()``                        – the empty tree
* ``member(tree, key)``              – membership test
* ``lookup(tree, key[, default])``   – payload stored with *key*
* ``insert(tree, key[, value])``     – new tree containing *key*
* ``delete(tree, key)``              – new tree without *key*
* ``min_item``, ``max_item``, ``successor``, ``predecessor``
* ``iter_items``, ``size``, ``height``, ``black_height``
* ``validate(tree)`` – check every red-black invariant, raise on failure

All functions take an optional ``compare(a, b) -> int`` callable (negative,
zero or positive, like a classic ``cmp``).  Without one the keys' natural
``<`` ordering is used.

Typical usage
~~~~~~~~~~~~~
>>> from persistent_rbtree import empty, insert, delete, member, iter_items
>>> t1 = insert(insert(insert(empty(), 10), 20), 30)
>>> t2 = delete(t1, 20)
>>> member(t1, 20), member(t2, 20)
(True, False)
>>> [key for key, _ in iter_items(t2)]
[10, 30]
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Generator,
    Generic,
    List,
    NoReturn,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

Compare = Callable[[Any, Any], int]

# ----------------------------------------------------------------------
#  Colours.  Integers so that "one step blacker" is +1 and "one step
#  redder" is -1.  NEGATIVE_BLACK and DOUBLE_BLACK only exist while a
#  deletion is being repaired.
# ----------------------------------------------------------------------
NEGATIVE_BLACK = -1
RED = 0
BLACK = 1
DOUBLE_BLACK = 2

_COLOR_NAMES = {NEGATIVE_BLACK: "NB", RED: "R", BLACK: "B", DOUBLE_BLACK: "BB"}

_MISSING = object()


class InvariantError(AssertionError):
    """A red-black invariant does not hold, or an impossible shape was met."""


def _fail(message: str) -> NoReturn:
    logger.error("red-black invariant violated: %s", message)
    raise InvariantError(message)


# ----------------------------------------------------------------------
#  Node model
# ----------------------------------------------------------------------
class _Leaf:
    """Empty tree.  ``EMPTY`` is black; the double-black leaf is transient."""

    __slots__ = ("color",)

    def __init__(self, color: int) -> None:
        self.color = color

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY" if self.color == BLACK else "<BB leaf>"


EMPTY = _Leaf(BLACK)
_DOUBLE_EMPTY = _Leaf(DOUBLE_BLACK)


class Node(Generic[K, V]):
    """One tree node.  Never modified once constructed."""

    __slots__ = ("color", "key", "value", "left", "right")

    def __init__(
        self,
        color: int,
        key: K,
        value: Optional[V],
        left: "Tree",
        right: "Tree",
    ) -> None:
        self.color = color
        self.key = key
        self.value = value
        self.left = left
        self.right = right

    def __repr__(self) -> str:
        col = _COLOR_NAMES.get(self.color, "?")
        return f"<{col} {self.key!r}:{self.value!r}>"


Tree = Union[Node, _Leaf]


def empty() -> Tree:
    """Return the empty tree."""
    return EMPTY


def _natural_compare(a: Any, b: Any) -> int:
    if a < b:
        return -1
    if b < a:
        return 1
    return 0


def _is_red(tree: Tree) -> bool:
    return isinstance(tree, Node) and tree.color == RED


def _is_black_node(tree: Tree) -> bool:
    return isinstance(tree, Node) and tree.color == BLACK


def _is_negative_black(tree: Tree) -> bool:
    return isinstance(tree, Node) and tree.color == NEGATIVE_BLACK


def _with_color(node: Node, color: int) -> Node:
    if node.color == color:
        return node
    return Node(color, node.key, node.value, node.left, node.right)


# ----------------------------------------------------------------------
#  Lookup
# ----------------------------------------------------------------------
def _search(tree: Tree, key: Any, compare: Compare) -> Tree:
    node = tree
    while isinstance(node, Node):
        c = compare(key, node.key)
        if c < 0:
            node = node.left
        elif c > 0:
            node = node.right
        else:
            return node
    return EMPTY


def member(tree: Tree, key: Any, compare: Optional[Compare] = None) -> bool:
    """Return ``True`` if *key* is stored in *tree*."""
    return _search(tree, key, compare or _natural_compare) is not EMPTY


def lookup(
    tree: Tree,
    key: Any,
    default: Any = _MISSING,
    compare: Optional[Compare] = None,
) -> Any:
    """
    Return the payload stored with *key*.

    If *key* is absent, *default* is returned when given, otherwise
    ``KeyError`` is raised.
    """
    node = _search(tree, key, compare or _natural_compare)
    if isinstance(node, Node):
        return node.value
    if default is _MISSING:
        raise KeyError(key)
    return default


# ----------------------------------------------------------------------
#  Balance
# ----------------------------------------------------------------------
def balance(color: int, key: Any, value: Any, left: Tree, right: Tree) -> Node:
    """
    Rebuild the node ``(color, key, value, left, right)`` removing a local
    violation, if there is one.

    Under a black (or double-black) node, the four red-red shapes

    * left-left   ``B (R (R a x b) y c) z d``
    * left-right  ``B (R a x (R b y c)) z d``
    * right-left  ``B a x (R (R b y c) z d)``
    * right-right ``B a x (R b y (R c z d))``

    are all rewritten to ``R (B a x b) y (B c z d)``.  Under a double-black
    node the result is the same shape with a black top, which absorbs the
    extra black.

    Deletion additionally produces a negative-black child under a
    double-black node:

    * ``BB a x (NB (B b y c) z d)`` becomes
      ``B (B a x b) y (balance B c z (redden d))``
    * ``BB (NB a x (B b y c)) z d`` becomes
      ``B (balance B (redden a) x b) y (B c z d)``

    Anything else is returned as a plain node.
    """
    if color == BLACK or color == DOUBLE_BLACK:
        top = color - 1
        if _is_red(left):
            if _is_red(left.left):
                inner = left.left
                return Node(
                    top,
                    left.key,
                    left.value,
                    Node(BLACK, inner.key, inner.value, inner.left, inner.right),
                    Node(BLACK, key, value, left.right, right),
                )
            if _is_red(left.right):
                inner = left.right
                return Node(
                    top,
                    inner.key,
                    inner.value,
                    Node(BLACK, left.key, left.value, left.left, inner.left),
                    Node(BLACK, key, value, inner.right, right),
                )
        if _is_red(right):
            if _is_red(right.left):
                inner = right.left
                return Node(
                    top,
                    inner.key,
                    inner.value,
                    Node(BLACK, key, value, left, inner.left),
                    Node(BLACK, right.key, right.value, inner.right, right.right),
                )
            if _is_red(right.right):
                inner = right.right
                return Node(
                    top,
                    right.key,
                    right.value,
                    Node(BLACK, key, value, left, right.left),
                    Node(BLACK, inner.key, inner.value, inner.left, inner.right),
                )

    if color == DOUBLE_BLACK:
        if (
            _is_negative_black(right)
            and _is_black_node(right.left)
            and _is_black_node(right.right)
        ):
            inner = right.left
            return Node(
                BLACK,
                inner.key,
                inner.value,
                Node(BLACK, key, value, left, inner.left),
                balance(BLACK, right.key, right.value, inner.right, _redden(right.right)),
            )
        if (
            _is_negative_black(left)
            and _is_black_node(left.left)
            and _is_black_node(left.right)
        ):
            inner = left.right
            return Node(
                BLACK,
                inner.key,
                inner.value,
                balance(BLACK, left.key, left.value, _redden(left.left), inner.left),
                Node(BLACK, key, value, inner.right, right),
            )

    return Node(color, key, value, left, right)


# ----------------------------------------------------------------------
#  Insert
# ----------------------------------------------------------------------
def _ins(node: Tree, key: Any, value: Any, compare: Compare) -> Tree:
    if not isinstance(node, Node):
        return Node(RED, key, value, EMPTY, EMPTY)

    c = compare(key, node.key)
    if c < 0:
        left = _ins(node.left, key, value, compare)
        if left is node.left:
            return node
        return balance(node.color, node.key, node.value, left, node.right)
    if c > 0:
        right = _ins(node.right, key, value, compare)
        if right is node.right:
            return node
        return balance(node.color, node.key, node.value, node.left, right)

    # Key already present: keep the stored key, replace the payload.
    if value is node.value:
        return node
    return Node(node.color, node.key, value, node.left, node.right)


def insert(
    tree: Tree,
    key: Any,
    value: Any = None,
    compare: Optional[Compare] = None,
) -> Tree:
    """
    Return a tree that also holds *key* (with payload *value*).

    If *key* is already present its payload is replaced; if the stored
    payload is the very same object, *tree* itself is returned.
    """
    result = _ins(tree, key, value, compare or _natural_compare)
    if not isinstance(result, Node):
        _fail("insert produced an empty tree")
    if result is tree:
        return tree
    return _with_color(result, BLACK)


# ----------------------------------------------------------------------
#  Delete
# ----------------------------------------------------------------------
def _redden(tree: Tree) -> Node:
    if not isinstance(tree, Node):
        _fail("cannot redden a leaf")
    return _with_color(tree, RED)


def _redder(tree: Tree) -> Tree:
    if tree is _DOUBLE_EMPTY:
        return EMPTY
    if not isinstance(tree, Node):
        _fail("cannot make a black leaf redder")
    return Node(tree.color - 1, tree.key, tree.value, tree.left, tree.right)


def _bubble(color: int, key: Any, value: Any, left: Tree, right: Tree) -> Tree:
    """Push a double black from either child up into this node."""
    if left.color == DOUBLE_BLACK or right.color == DOUBLE_BLACK:
        return balance(color + 1, key, value, _redder(left), _redder(right))
    return Node(color, key, value, left, right)


def _remove(node: Node) -> Tree:
    """Remove *node* itself, returning what takes its place."""
    left, right = node.left, node.right
    if left is EMPTY and right is EMPTY:
        return EMPTY if node.color == RED else _DOUBLE_EMPTY
    if left is EMPTY or right is EMPTY:
        # A single child is always a red node hanging off a black one.
        child = right if left is EMPTY else left
        if node.color != BLACK or not _is_red(child):
            _fail(f"unexpected single-child shape at {node!r}")
        return _with_color(child, BLACK)

    min_key, min_value, rest = _pop_min(right)
    return _bubble(node.color, min_key, min_value, left, rest)


def _pop_min(node: Tree) -> Tuple[Any, Any, Tree]:
    """Return ``(key, value, tree_without_min)`` for a non-empty subtree."""
    if not isinstance(node, Node):
        _fail("cannot remove the minimum of an empty subtree")
    if node.left is EMPTY:
        return node.key, node.value, _remove(node)
    key, value, left = _pop_min(node.left)
    return key, value, _bubble(node.color, node.key, node.value, left, node.right)


def _del(node: Tree, key: Any, compare: Compare) -> Tree:
    if not isinstance(node, Node):
        return node

    c = compare(key, node.key)
    if c < 0:
        left = _del(node.left, key, compare)
        if left is node.left:
            return node
        return _bubble(node.color, node.key, node.value, left, node.right)
    if c > 0:
        right = _del(node.right, key, compare)
        if right is node.right:
            return node
        return _bubble(node.color, node.key, node.value, node.left, right)
    return _remove(node)


def delete(tree: Tree, key: Any, compare: Optional[Compare] = None) -> Tree:
    """
    Return a tree without *key*.

    Deleting an absent key is not an error: *tree* itself is returned.
    """
    result = _del(tree, key, compare or _natural_compare)
    if result is tree:
        return tree
    if not isinstance(result, Node):
        # A double black that reached the root is simply dropped.
        return EMPTY
    return _with_color(result, BLACK)


# ----------------------------------------------------------------------
#  Ordered helpers
# ----------------------------------------------------------------------
def min_item(tree: Tree) -> Tuple[Any, Any]:
    """Return ``(key, value)`` for the smallest key."""
    if not isinstance(tree, Node):
        raise ValueError("Tree is empty")
    node = tree
    while isinstance(node.left, Node):
        node = node.left
    return node.key, node.value


def max_item(tree: Tree) -> Tuple[Any, Any]:
    """Return ``(key, value)`` for the largest key."""
    if not isinstance(tree, Node):
        raise ValueError("Tree is empty")
    node = tree
    while isinstance(node.right, Node):
        node = node.right
    return node.key, node.value


def successor(tree: Tree, key: Any, compare: Optional[Compare] = None) -> Any:
    """Return the smallest key greater than *key*; raise KeyError if none."""
    compare = compare or _natural_compare
    candidate: Tree = EMPTY
    node = tree
    while isinstance(node, Node):
        c = compare(key, node.key)
        if c < 0:
            candidate = node
            node = node.left
        elif c > 0:
            node = node.right
        else:
            if isinstance(node.right, Node):
                return min_item(node.right)[0]
            if isinstance(candidate, Node):
                return candidate.key
            raise KeyError(f"No successor for {key}")
    raise KeyError(key)


def predecessor(tree: Tree, key: Any, compare: Optional[Compare] = None) -> Any:
    """Return the greatest key smaller than *key*; raise KeyError if none."""
    compare = compare or _natural_compare
    candidate: Tree = EMPTY
    node = tree
    while isinstance(node, Node):
        c = compare(key, node.key)
        if c > 0:
            candidate = node
            node = node.right
        elif c < 0:
            node = node.left
        else:
            if isinstance(node.left, Node):
                return max_item(node.left)[0]
            if isinstance(candidate, Node):
                return candidate.key
            raise KeyError(f"No predecessor for {key}")
    raise KeyError(key)


def iter_items(tree: Tree) -> Generator[Tuple[Any, Any], None, None]:
    """Yield ``(key, value)`` pairs in ascending key order."""
    stack: List[Node] = []
    cur = tree
    while stack or isinstance(cur, Node):
        while isinstance(cur, Node):
            stack.append(cur)
            cur = cur.left
        node = stack.pop()
        yield node.key, node.value
        cur = node.right


def size(tree: Tree) -> int:
    """Number of keys in *tree* (O(n))."""
    if not isinstance(tree, Node):
        return 0
    return 1 + size(tree.left) + size(tree.right)


def height(tree: Tree) -> int:
    """Number of nodes on the longest root-to-leaf path."""
    if not isinstance(tree, Node):
        return 0
    return 1 + max(height(tree.left), height(tree.right))


def black_height(tree: Tree) -> int:
    """Black nodes on the leftmost path, counting the leaf as one."""
    count = 1
    node = tree
    while isinstance(node, Node):
        if node.color == BLACK:
            count += 1
        node = node.left
    return count


# ----------------------------------------------------------------------
#  Validation
# ----------------------------------------------------------------------
def validate(tree: Tree, compare: Optional[Compare] = None) -> int:
    """
    Verify that *tree* is a settled red-black tree and return its
    black-height.

    Raises ``InvariantError`` (an ``AssertionError``) on the first
    violation found.
    """
    compare = compare or _natural_compare

    def dfs(node: Tree, low: Tree, high: Tree) -> int:
        if not isinstance(node, Node):
            if node is not EMPTY:
                _fail(f"transient leaf {node!r} in a settled tree")
            return 1

        if node.color not in (RED, BLACK):
            _fail(f"transient colour on {node!r}")

        if node.color == RED and (_is_red(node.left) or _is_red(node.right)):
            _fail(f"red node {node!r} has a red child")

        if isinstance(low, Node) and compare(low.key, node.key) >= 0:
            _fail(f"{node!r} is not greater than ancestor {low!r}")
        if isinstance(high, Node) and compare(node.key, high.key) >= 0:
            _fail(f"{node!r} is not less than ancestor {high!r}")

        left_black = dfs(node.left, low, node)
        right_black = dfs(node.right, node, high)
        if left_black != right_black:
            _fail(
                f"black-height mismatch under {node!r}: "
                f"{left_black} != {right_black}"
            )
        return left_black + (1 if node.color == BLACK else 0)

    if isinstance(tree, Node) and tree.color != BLACK:
        _fail("root is not black")
    return dfs(tree, EMPTY, EMPTY)
