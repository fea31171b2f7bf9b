"""An ordered container backed by a red-black tree."""

from __future__ import annotations

from typing import Any, Callable, Iterator

__all__ = ["RBTree"]

_BLACK = 0
_RED = 1


class _Node:
    __slots__ = ("item", "key", "left", "right", "parent", "color")

    def __init__(self, item: Any, key: Any, parent: "_Node | None") -> None:
        self.item = item
        self.key = key
        self.left: _Node | None = None
        self.right: _Node | None = None
        self.parent = parent
        self.color = _RED


def _identity(item: Any) -> Any:
    return item


class RBTree:
    """A balanced search tree holding at most one item per key.

    Items are ordered by ``key(item)``; without a key function the items
    themselves are compared.
    """

    def __init__(self, key: Callable[[Any], Any] | None = None) -> None:
        self._key = key or _identity
        self._root: _Node | None = None
        self._len = 0

    @staticmethod
    def _cmp(a: Any, b: Any) -> int:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0

    def _rotate_left(self, elm: _Node) -> None:
        tmp = elm.right
        elm.right = tmp.left
        if tmp.left is not None:
            tmp.left.parent = elm
        tmp.parent = elm.parent
        if elm.parent is not None:
            if elm is elm.parent.left:
                elm.parent.left = tmp
            else:
                elm.parent.right = tmp
        else:
            self._root = tmp
        tmp.left = elm
        elm.parent = tmp

    def _rotate_right(self, elm: _Node) -> None:
        tmp = elm.left
        elm.left = tmp.right
        if tmp.right is not None:
            tmp.right.parent = elm
        tmp.parent = elm.parent
        if elm.parent is not None:
            if elm is elm.parent.left:
                elm.parent.left = tmp
            else:
                elm.parent.right = tmp
        else:
            self._root = tmp
        tmp.right = elm
        elm.parent = tmp

    def _insert_color(self, elm: _Node) -> None:
        while (parent := elm.parent) is not None and parent.color == _RED:
            gparent = parent.parent
            if parent is gparent.left:
                uncle = gparent.right
                if uncle is not None and uncle.color == _RED:
                    uncle.color = _BLACK
                    parent.color = _BLACK
                    gparent.color = _RED
                    elm = gparent
                    continue
                if parent.right is elm:
                    self._rotate_left(parent)
                    parent, elm = elm, parent
                parent.color = _BLACK
                gparent.color = _RED
                self._rotate_right(gparent)
            else:
                uncle = gparent.left
                if uncle is not None and uncle.color == _RED:
                    uncle.color = _BLACK
                    parent.color = _BLACK
                    gparent.color = _RED
                    elm = gparent
                    continue
                if parent.left is elm:
                    self._rotate_right(parent)
                    parent, elm = elm, parent
                parent.color = _BLACK
                gparent.color = _RED
                self._rotate_left(gparent)
        self._root.color = _BLACK

    @staticmethod
    def _is_black(node: _Node | None) -> bool:
        return node is None or node.color == _BLACK

    def _remove_color(self, parent: _Node | None, elm: _Node | None) -> None:
        while self._is_black(elm) and elm is not self._root:
            if parent.left is elm:
                tmp = parent.right
                if tmp.color == _RED:
                    tmp.color = _BLACK
                    parent.color = _RED
                    self._rotate_left(parent)
                    tmp = parent.right
                if self._is_black(tmp.left) and self._is_black(tmp.right):
                    tmp.color = _RED
                    elm = parent
                    parent = elm.parent
                else:
                    if self._is_black(tmp.right):
                        if tmp.left is not None:
                            tmp.left.color = _BLACK
                        tmp.color = _RED
                        self._rotate_right(tmp)
                        tmp = parent.right
                    tmp.color = parent.color
                    parent.color = _BLACK
                    if tmp.right is not None:
                        tmp.right.color = _BLACK
                    self._rotate_left(parent)
                    elm = self._root
                    break
            else:
                tmp = parent.left
                if tmp.color == _RED:
                    tmp.color = _BLACK
                    parent.color = _RED
                    self._rotate_right(parent)
                    tmp = parent.left
                if self._is_black(tmp.left) and self._is_black(tmp.right):
                    tmp.color = _RED
                    elm = parent
                    parent = elm.parent
                else:
                    if self._is_black(tmp.left):
                        if tmp.right is not None:
                            tmp.right.color = _BLACK
                        tmp.color = _RED
                        self._rotate_left(tmp)
                        tmp = parent.left
                    tmp.color = parent.color
                    parent.color = _BLACK
                    if tmp.left is not None:
                        tmp.left.color = _BLACK
                    self._rotate_right(parent)
                    elm = self._root
                    break
        if elm is not None:
            elm.color = _BLACK

    def _replace_child(self, parent: _Node | None, old: _Node, new: _Node | None) -> None:
        if parent is None:
            self._root = new
        elif parent.left is old:
            parent.left = new
        else:
            parent.right = new

    def _remove_node(self, old: _Node) -> None:
        elm = old
        if elm.left is None:
            child = elm.right
        elif elm.right is None:
            child = elm.left
        else:
            elm = elm.right
            while elm.left is not None:
                elm = elm.left
            child = elm.right
            parent = elm.parent
            color = elm.color
            if child is not None:
                child.parent = parent
            self._replace_child(parent, elm, child)
            if elm.parent is old:
                parent = elm
            elm.left = old.left
            elm.right = old.right
            elm.parent = old.parent
            elm.color = old.color
            self._replace_child(old.parent, old, elm)
            old.left.parent = elm
            if old.right is not None:
                old.right.parent = elm
            if color == _BLACK:
                self._remove_color(parent, child)
            return
        parent = elm.parent
        color = elm.color
        if child is not None:
            child.parent = parent
        self._replace_child(parent, elm, child)
        if color == _BLACK:
            self._remove_color(parent, child)

    def _find_node(self, key: Any) -> _Node | None:
        tmp = self._root
        while tmp is not None:
            comp = self._cmp(key, tmp.key)
            if comp < 0:
                tmp = tmp.left
            elif comp > 0:
                tmp = tmp.right
            else:
                return tmp
        return None

    def _require_node(self, item: Any) -> _Node:
        node = self._find_node(self._key(item))
        if node is None:
            raise KeyError(item)
        return node

    @staticmethod
    def _next_node(elm: _Node) -> _Node | None:
        if elm.right is not None:
            elm = elm.right
            while elm.left is not None:
                elm = elm.left
            return elm
        while elm.parent is not None and elm is elm.parent.right:
            elm = elm.parent
        return elm.parent

    @staticmethod
    def _prev_node(elm: _Node) -> _Node | None:
        if elm.left is not None:
            elm = elm.left
            while elm.right is not None:
                elm = elm.right
            return elm
        while elm.parent is not None and elm is elm.parent.left:
            elm = elm.parent
        return elm.parent

    def _minmax(self, val: int) -> _Node | None:
        tmp = self._root
        parent = None
        while tmp is not None:
            parent = tmp
            tmp = tmp.left if val < 0 else tmp.right
        return parent

    def insert(self, item: Any) -> Any:
        """Add ``item``; return None, or the item already stored under its key."""
        key = self._key(item)
        tmp = self._root
        parent = None
        comp = 0
        while tmp is not None:
            parent = tmp
            comp = self._cmp(key, parent.key)
            if comp < 0:
                tmp = tmp.left
            elif comp > 0:
                tmp = tmp.right
            else:
                return tmp.item
        node = _Node(item, key, parent)
        if parent is None:
            self._root = node
        elif comp < 0:
            parent.left = node
        else:
            parent.right = node
        self._insert_color(node)
        self._len += 1
        return None

    def remove(self, item: Any) -> Any:
        """Remove the item stored under ``item``'s key and return it, or None if absent."""
        node = self._find_node(self._key(item))
        if node is None:
            return None
        self._remove_node(node)
        self._len -= 1
        return node.item

    def find(self, item: Any) -> Any:
        """Return the stored item with the same key as ``item``, or None."""
        node = self._find_node(self._key(item))
        return None if node is None else node.item

    def nfind(self, item: Any) -> Any:
        """Return the first stored item whose key is not below ``item``'s, or None."""
        key = self._key(item)
        tmp = self._root
        res = None
        while tmp is not None:
            comp = self._cmp(key, tmp.key)
            if comp < 0:
                res = tmp
                tmp = tmp.left
            elif comp > 0:
                tmp = tmp.right
            else:
                return tmp.item
        return None if res is None else res.item

    def min(self) -> Any:
        """Return the smallest item, or None when empty."""
        node = self._minmax(-1)
        return None if node is None else node.item

    def max(self) -> Any:
        """Return the largest item, or None when empty."""
        node = self._minmax(1)
        return None if node is None else node.item

    def next(self, item: Any) -> Any:
        """Return the item after the stored ``item``, or None at the end.

        Raises KeyError if ``item`` is not stored.
        """
        node = self._next_node(self._require_node(item))
        return None if node is None else node.item

    def prev(self, item: Any) -> Any:
        """Return the item before the stored ``item``, or None at the start.

        Raises KeyError if ``item`` is not stored.
        """
        node = self._prev_node(self._require_node(item))
        return None if node is None else node.item

    def __iter__(self) -> Iterator[Any]:
        node = self._minmax(-1)
        while node is not None:
            following = self._next_node(node)
            yield node.item
            node = following

    def __reversed__(self) -> Iterator[Any]:
        node = self._minmax(1)
        while node is not None:
            preceding = self._prev_node(node)
            yield node.item
            node = preceding

    def __len__(self) -> int:
        return self._len