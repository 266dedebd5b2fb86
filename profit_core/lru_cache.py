"""Обмежений LRU-кеш з O(1) get/put.

Контракт евікшену:
    • `get` існуючого ключа робить його найсвіжішим;
    • `put` існуючого ключа замінює значення і робить його найсвіжішим;
    • `put` нового ключа при заповненій ємності викидає найдавніше
      використаний запис (за доступом, не за вставкою).

Структура: двозв'язний список (sentinel head/tail) + dict вузлів.
Внутрішні посилання захищені `threading.Lock`; гонка двох writer-ів на
той самий ключ може залишити будь-яке зі значень (значення завжди
перераховуються з джерела).
"""

from __future__ import annotations

import threading
from collections.abc import Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Node(Generic[K, V]):
    __slots__ = ("key", "value", "prev", "next")

    def __init__(self, key: K | None, value: V | None) -> None:
        self.key = key
        self.value = value
        self.prev: _Node[K, V] | None = None
        self.next: _Node[K, V] | None = None


class BoundedLruCache(Generic[K, V]):
    """Кеш фіксованої ємності зі строгим LRU."""

    def __init__(self, capacity: int, *, name: str = "lru") -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self.name = name
        self._lock = threading.Lock()
        self._nodes: dict[K, _Node[K, V]] = {}
        # head.next: найдавніший, tail.prev: найсвіжіший
        self._head: _Node[K, V] = _Node(None, None)
        self._tail: _Node[K, V] = _Node(None, None)
        self._head.next = self._tail
        self._tail.prev = self._head
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def get(self, key: K) -> V | None:
        with self._lock:
            node = self._nodes.get(key)
            if node is None:
                self.misses += 1
                return None
            self._unlink(node)
            self._append(node)
            self.hits += 1
            return node.value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            node = self._nodes.get(key)
            if node is not None:
                node.value = value
                self._unlink(node)
                self._append(node)
                return
            if len(self._nodes) >= self.capacity:
                oldest = self._head.next
                assert oldest is not None and oldest is not self._tail
                self._unlink(oldest)
                del self._nodes[oldest.key]  # type: ignore[arg-type]
                self.evictions += 1
            node = _Node(key, value)
            self._nodes[key] = node
            self._append(node)

    def keys(self) -> list[K]:
        """Ключі від найдавніше до найсвіжіше використаного."""

        with self._lock:
            out: list[K] = []
            node = self._head.next
            while node is not None and node is not self._tail:
                out.append(node.key)  # type: ignore[arg-type]
                node = node.next
            return out

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()
            self._head.next = self._tail
            self._tail.prev = self._head

    def stats(self) -> dict[str, int | str]:
        return {
            "name": self.name,
            "entries": len(self._nodes),
            "capacity": self.capacity,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    # ── Внутрішнє (викликати під self._lock) ────────────────────────────────

    def _unlink(self, node: _Node[K, V]) -> None:
        prev, nxt = node.prev, node.next
        assert prev is not None and nxt is not None
        prev.next = nxt
        nxt.prev = prev
        node.prev = node.next = None

    def _append(self, node: _Node[K, V]) -> None:
        last = self._tail.prev
        assert last is not None
        last.next = node
        node.prev = last
        node.next = self._tail
        self._tail.prev = node


__all__ = ["BoundedLruCache"]
