"""A disk-backed B+ tree mapping keys to multiple ordered values."""

from __future__ import annotations

import os
from bisect import bisect_left, bisect_right, insort_right
from dataclasses import dataclass, field
from typing import Any

from .storage import RecordFile

M = 50  # maximum number of keys in an index node before it splits
L = 50  # maximum number of entries in a data block before it splits

_MASK = (1 << 64) - 1
_SIGN = 1 << 63


def string_hash(text: str) -> int:
    """Polynomial hash (base 31) over the UTF-8 bytes, as a signed 64-bit value."""
    res = 0
    for byte in text.encode("utf-8"):
        char = byte - 256 if byte > 127 else byte
        res = (res * 31 + char) & _MASK
    return res - (1 << 64) if res & _SIGN else res


@dataclass
class _IndexNode:
    ptr: int
    leaf: bool = True
    keys: list[tuple[Any, Any]] = field(default_factory=list)
    children: list[int] = field(default_factory=list)


@dataclass
class _DataBlock:
    ptr: int
    items: list[tuple[Any, Any]] = field(default_factory=list)
    nxt: int = -1


def _first(item: tuple[Any, Any]) -> Any:
    return item[0]


class BPlusTree:
    """Ordered multimap of (key, value) pairs stored in two record files."""

    def __init__(self, index_path: str | os.PathLike[str], data_path: str | os.PathLike[str]) -> None:
        self._index = RecordFile(index_path, 2)
        self._data = RecordFile(data_path, 1)
        self._root = self._index.get_info(2)
        self._index_count = self._index.get_info(1)
        self._data_count = self._data.get_info(1)

    # -- allocation -------------------------------------------------------

    def _new_index(self, leaf: bool) -> _IndexNode:
        node = _IndexNode(ptr=self._index_count, leaf=leaf)
        self._index_count += 1
        return node

    def _new_data(self) -> _DataBlock:
        block = _DataBlock(ptr=self._data_count)
        self._data_count += 1
        return block

    def _split(self, node: _IndexNode) -> tuple[_IndexNode, tuple[Any, Any]]:
        half = M // 2
        sibling = self._new_index(node.leaf)
        separator = node.keys[half]
        sibling.keys = node.keys[half + 1:]
        sibling.children = node.children[half + 1:]
        node.keys = node.keys[:half]
        node.children = node.children[:half + 1]
        return sibling, separator

    # -- insertion --------------------------------------------------------

    def _insert(self, node: _IndexNode, item: tuple[Any, Any]) -> bool:
        """Insert below `node`; return True if `node` now overflows (unwritten)."""
        i = bisect_right(node.keys, item)
        if node.leaf:
            block: _DataBlock = self._data.read(node.children[i])
            insort_right(block.items, item)
            if len(block.items) <= L:
                self._data.write(block.ptr, block)
                return False
            new_block = self._new_data()
            new_block.items = block.items[L // 2 + 1:]
            new_block.nxt = block.nxt
            block.items = block.items[:L // 2 + 1]
            block.nxt = new_block.ptr
            self._data.write(block.ptr, block)
            self._data.write(new_block.ptr, new_block)
            node.keys.insert(i, new_block.items[0])
            node.children.insert(i + 1, new_block.ptr)
        else:
            child: _IndexNode = self._index.read(node.children[i])
            if not self._insert(child, item):
                return False
            sibling, separator = self._split(child)
            i = bisect_right(node.keys, separator)
            node.keys.insert(i, separator)
            node.children.insert(i + 1, sibling.ptr)
            self._index.write(child.ptr, child)
            self._index.write(sibling.ptr, sibling)
        if len(node.keys) == M:
            return True
        self._index.write(node.ptr, node)
        return False

    def insert(self, key: Any, value: Any) -> None:
        """Add the pair (key, value); equal pairs may be stored more than once."""
        item = (key, value)
        if not self._index_count:
            root = self._new_index(leaf=True)
            block = self._new_data()
            block.items = [item]
            root.children = [block.ptr]
            self._root = root.ptr
            self._index.write(root.ptr, root)
            self._data.write(block.ptr, block)
            return
        root: _IndexNode = self._index.read(self._root)
        if self._insert(root, item):
            sibling, separator = self._split(root)
            new_root = self._new_index(leaf=False)
            new_root.keys = [separator]
            new_root.children = [root.ptr, sibling.ptr]
            self._root = new_root.ptr
            self._index.write(root.ptr, root)
            self._index.write(sibling.ptr, sibling)
            self._index.write(new_root.ptr, new_root)

    # -- deletion ---------------------------------------------------------

    def _delete_in_leaf(self, node: _IndexNode, i: int, item: tuple[Any, Any]) -> bool:
        block: _DataBlock = self._data.read(node.children[i])
        k = bisect_right(block.items, item)
        if k == 0 or block.items[k - 1] != item:
            return False
        del block.items[k - 1]
        if len(block.items) >= L // 2:
            self._data.write(block.ptr, block)
            return False
        if not node.keys:
            self._data.write(block.ptr, block)
            return True
        right = left = None
        if i < len(node.keys):
            right = self._data.read(node.children[i + 1])
            if len(right.items) > L // 2:
                block.items.append(right.items.pop(0))
                node.keys[i] = right.items[0]
                self._index.write(node.ptr, node)
                self._data.write(block.ptr, block)
                self._data.write(right.ptr, right)
                return False
        if i > 0:
            left = self._data.read(node.children[i - 1])
            if len(left.items) > L // 2:
                block.items.insert(0, left.items.pop())
                node.keys[i - 1] = block.items[0]
                self._index.write(node.ptr, node)
                self._data.write(block.ptr, block)
                self._data.write(left.ptr, left)
                return False
        if right is not None:
            block.items.extend(right.items)
            block.nxt = right.nxt
            self._data.write(block.ptr, block)
            del node.keys[i]
            del node.children[i + 1]
        else:
            left.items.extend(block.items)
            left.nxt = block.nxt
            self._data.write(left.ptr, left)
            del node.keys[i - 1]
            del node.children[i]
        if len(node.keys) < (M - 1) // 2:
            return True
        self._index.write(node.ptr, node)
        return False

    def _delete(self, node: _IndexNode, item: tuple[Any, Any]) -> bool:
        """Remove one copy of `item`; return True if `node` underflows (unwritten)."""
        i = bisect_right(node.keys, item)
        if node.leaf:
            return self._delete_in_leaf(node, i, item)
        child: _IndexNode = self._index.read(node.children[i])
        if not self._delete(child, item):
            return False
        if not node.keys:
            self._index.write(child.ptr, child)
            return True
        minimum = (M - 1) // 2
        right = left = None
        if i < len(node.keys):
            right = self._index.read(node.children[i + 1])
            if len(right.keys) > minimum:
                child.keys.append(node.keys[i])
                child.children.append(right.children.pop(0))
                node.keys[i] = right.keys.pop(0)
                self._index.write(node.ptr, node)
                self._index.write(child.ptr, child)
                self._index.write(right.ptr, right)
                return False
        if i > 0:
            left = self._index.read(node.children[i - 1])
            if len(left.keys) > minimum:
                child.keys.insert(0, node.keys[i - 1])
                child.children.insert(0, left.children.pop())
                node.keys[i - 1] = left.keys.pop()
                self._index.write(left.ptr, left)
                self._index.write(child.ptr, child)
                self._index.write(node.ptr, node)
                return False
        if right is not None:
            child.keys.extend([node.keys[i], *right.keys])
            child.children.extend(right.children)
            del node.keys[i]
            del node.children[i + 1]
            self._index.write(child.ptr, child)
        else:
            left.keys.extend([node.keys[i - 1], *child.keys])
            left.children.extend(child.children)
            del node.keys[i - 1]
            del node.children[i]
            self._index.write(left.ptr, left)
        if len(node.keys) < minimum:
            return True
        self._index.write(node.ptr, node)
        return False

    def delete(self, key: Any, value: Any) -> None:
        """Remove one copy of (key, value); absent pairs are ignored."""
        if not self._index_count:
            return
        root: _IndexNode = self._index.read(self._root)
        if self._delete(root, (key, value)):
            if not root.keys and not root.leaf:
                self._root = root.children[0]
            self._index.write(root.ptr, root)

    # -- lookup -----------------------------------------------------------

    def find(self, key: Any) -> list[Any]:
        """Return the values stored under `key`, in ascending order."""
        if not self._index_count:
            return []
        node: _IndexNode = self._index.read(self._root)
        while not node.leaf:
            node = self._index.read(node.children[bisect_left(node.keys, key, key=_first)])
        block: _DataBlock = self._data.read(
            node.children[bisect_left(node.keys, key, key=_first)]
        )
        i = bisect_left(block.items, key, key=_first)
        result: list[Any] = []
        while True:
            for stored_key, value in block.items[i:]:
                if stored_key != key:
                    return result
                result.append(value)
            if block.nxt < 0:
                return result
            block = self._data.read(block.nxt)
            i = 0

    # -- persistence and inspection ---------------------------------------

    def flush(self) -> None:
        """Save the tree's metadata and both files to disk."""
        self._index.set_info(2, self._root)
        self._index.set_info(1, self._index_count)
        self._data.set_info(1, self._data_count)
        self._index.close()
        self._data.close()

    def dump(self) -> str:
        """Return a textual listing of every node and data block."""
        if not self._index_count:
            return ""
        lines: list[str] = []
        self._dump_node(self._root, lines)
        return "\n".join(lines)

    def _dump_node(self, ptr: int, lines: list[str]) -> None:
        node: _IndexNode = self._index.read(ptr)
        keys = " ".join(str(value) for _, value in node.keys)
        children = " ".join(str(c) for c in node.children)
        lines.append(f"ptr:{node.ptr} flag:{int(node.leaf)} keys:{keys} child:{children}")
        for child in node.children:
            if node.leaf:
                block: _DataBlock = self._data.read(child)
                data = " ".join(str(value) for _, value in block.items)
                lines.append(f"ptr:{block.ptr} data:{data} nxt:{block.nxt}")
            else:
                self._dump_node(child, lines)