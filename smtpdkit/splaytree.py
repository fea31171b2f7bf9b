"""An ordered container backed by a self-adjusting splay tree."""

from __future__ import annotations

from typing import Any, Callable, Iterator

__all__ = ["SplayTree"]


class _Node:
    __slots__ = ("item", "key", "left", "right")

    def __init__(self, item: Any, key: Any) -> None:
        self.item = item
        self.key = key
        self.left: _Node | None = None
        self.right: _Node | None = None


def _identity(item: Any) -> Any:
    return item


def _cmp(a: Any, b: Any) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


class SplayTree:
    """A splay tree holding at most one item per key.

    Items are ordered by ``key(item)``; without a key function the items
    themselves are compared. Every lookup moves the node nearest to the
    requested key to the root, so recently used keys are cheap to reach.
    """

    def __init__(self, key: Callable[[Any], Any] | None = None) -> None:
        self._key = key or _identity
        self._root: _Node | None = None
        self._len = 0

    def _splay(self, key: Any) -> None:
        """Bring the node closest to ``key`` to the root (tree must be non-empty)."""
        header = _Node(None, None)
        left = right = header
        root = self._root
        while True:
            comp = _cmp(key, root.key)
            if comp == 0:
                break
            if comp < 0:
                tmp = root.left
                if tmp is None:
                    break
                if _cmp(key, tmp.key) < 0:
                    root.left = tmp.right
                    tmp.right = root
                    root = tmp
                    if root.left is None:
                        break
                right.left = root
                right = root
                root = root.left
            else:
                tmp = root.right
                if tmp is None:
                    break
                if _cmp(key, tmp.key) > 0:
                    root.right = tmp.left
                    tmp.left = root
                    root = tmp
                    if root.right is None:
                        break
                left.right = root
                left = root
                root = root.right
        left.right = root.left
        right.left = root.right
        root.left = header.right
        root.right = header.left
        self._root = root

    def _splay_minmax(self, direction: int) -> None:
        """Bring the smallest (direction < 0) or largest node to the root."""
        header = _Node(None, None)
        left = right = header
        root = self._root
        while True:
            if direction < 0:
                tmp = root.left
                if tmp is None:
                    break
                root.left = tmp.right
                tmp.right = root
                root = tmp
                if root.left is None:
                    break
                right.left = root
                right = root
                root = root.left
            else:
                tmp = root.right
                if tmp is None:
                    break
                root.right = tmp.left
                tmp.left = root
                root = tmp
                if root.right is None:
                    break
                left.right = root
                left = root
                root = root.right
        left.right = root.left
        right.left = root.right
        root.left = header.right
        root.right = header.left
        self._root = root

    def insert(self, item: Any) -> Any:
        """Add ``item``; return None, or the item already stored under its key."""
        key = self._key(item)
        node = _Node(item, key)
        if self._root is not None:
            self._splay(key)
            root = self._root
            comp = _cmp(key, root.key)
            if comp < 0:
                node.left = root.left
                node.right = root
                root.left = None
            elif comp > 0:
                node.right = root.right
                node.left = root
                root.right = None
            else:
                return root.item
        self._root = node
        self._len += 1
        return None

    def remove(self, item: Any) -> Any:
        """Remove the item stored under ``item``'s key and return it, or None if absent."""
        if self._root is None:
            return None
        key = self._key(item)
        self._splay(key)
        root = self._root
        if _cmp(key, root.key) != 0:
            return None
        if root.left is None:
            self._root = root.right
        else:
            tmp = root.right
            self._root = root.left
            self._splay(key)
            self._root.right = tmp
        self._len -= 1
        return root.item

    def find(self, item: Any) -> Any:
        """Return the stored item with the same key as ``item``, or None."""
        if self._root is None:
            return None
        key = self._key(item)
        self._splay(key)
        if _cmp(key, self._root.key) == 0:
            return self._root.item
        return None

    def next(self, item: Any) -> Any:
        """Return the item after the stored ``item``, or None at the end.

        Raises KeyError if ``item`` is not stored.
        """
        if self._root is None:
            raise KeyError(item)
        key = self._key(item)
        self._splay(key)
        node = self._root
        if _cmp(key, node.key) != 0:
            raise KeyError(item)
        node = node.right
        if node is None:
            return None
        while node.left is not None:
            node = node.left
        return node.item

    def min(self) -> Any:
        """Return the smallest item, or None when empty."""
        if self._root is None:
            return None
        self._splay_minmax(-1)
        return self._root.item

    def max(self) -> Any:
        """Return the largest item, or None when empty."""
        if self._root is None:
            return None
        self._splay_minmax(1)
        return self._root.item

    def __iter__(self) -> Iterator[Any]:
        if self._root is None:
            return
        current = self.min()
        while True:
            following = self.next(current)
            yield current
            if following is None:
                return
            current = following

    def __len__(self) -> int:
        return self._len