import random

import pytest

from smtpdkit.rbtree import RBTree


def _black_height(node):
    """Validate red-black properties below ``node``; return its black height."""
    if node is None:
        return 1
    if node.left is not None:
        assert node.left.parent is node
        assert node.left.key < node.key
    if node.right is not None:
        assert node.right.parent is node
        assert node.right.key > node.key
    if node.color == 1:
        for child in (node.left, node.right):
            assert child is None or child.color == 0
    left = _black_height(node.left)
    right = _black_height(node.right)
    assert left == right
    return left + (1 if node.color == 0 else 0)


def _check(tree):
    root = tree._root
    if root is not None:
        assert root.parent is None
        assert root.color == 0
    _black_height(root)


def test_empty_tree():
    tree = RBTree()
    assert len(tree) == 0
    assert tree.min() is None
    assert tree.max() is None
    assert list(tree) == []
    assert tree.find(5) is None
    assert tree.nfind(5) is None
    assert tree.remove(5) is None


def test_insert_returns_existing_on_duplicate():
    tree = RBTree()
    assert tree.insert(7) is None
    assert tree.insert(7) == 7
    assert len(tree) == 1


def test_iteration_sorted_and_reversed():
    values = list(range(200))
    random.Random(1).shuffle(values)
    tree = RBTree()
    for v in values:
        tree.insert(v)
        _check(tree)
    assert list(tree) == sorted(values)
    assert list(reversed(tree)) == sorted(values, reverse=True)
    assert len(tree) == len(values)
    assert tree.min() == min(values)
    assert tree.max() == max(values)


def test_find_and_nfind():
    tree = RBTree()
    for v in (10, 20, 30):
        tree.insert(v)
    assert tree.find(20) == 20
    assert tree.find(25) is None
    assert tree.nfind(15) == 20
    assert tree.nfind(20) == 20
    assert tree.nfind(5) == 10
    assert tree.nfind(31) is None


def test_next_and_prev():
    tree = RBTree()
    for v in (10, 20, 30):
        tree.insert(v)
    assert tree.next(10) == 20
    assert tree.next(30) is None
    assert tree.prev(30) == 20
    assert tree.prev(10) is None
    with pytest.raises(KeyError):
        tree.next(15)
    with pytest.raises(KeyError):
        tree.prev(15)


def test_key_function_stores_items():
    tree = RBTree(key=lambda pair: pair[0])
    tree.insert((2, "b"))
    tree.insert((1, "a"))
    assert tree.insert((2, "other")) == (2, "b")
    assert list(tree) == [(1, "a"), (2, "b")]
    assert tree.find((1, None)) == (1, "a")
    assert tree.remove((2, None)) == (2, "b")
    assert list(tree) == [(1, "a")]


def test_random_insert_and_remove_keeps_invariants():
    rng = random.Random(42)
    tree = RBTree()
    reference = set()
    for _ in range(2000):
        v = rng.randrange(300)
        if rng.random() < 0.55:
            existing = tree.insert(v)
            assert (existing is not None) == (v in reference)
            reference.add(v)
        else:
            removed = tree.remove(v)
            assert removed == (v if v in reference else None)
            reference.discard(v)
        assert len(tree) == len(reference)
    _check(tree)
    assert list(tree) == sorted(reference)


def test_remove_everything():
    values = list(range(100))
    tree = RBTree()
    for v in values:
        tree.insert(v)
    random.Random(7).shuffle(values)
    for v in values:
        assert tree.remove(v) == v
        _check(tree)
    assert len(tree) == 0
    assert tree.min() is None