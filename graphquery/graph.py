"""Weighted directed graph with shortest-path and prime-weight path queries."""

from __future__ import annotations

import math
import os
import re
import sys
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from itertools import pairwise
from typing import IO, Iterator

_WHITESPACE = " \t\r\n"
_LEADING_NUMBER = re.compile(r"\+?(\d+)")
_UINT64_MAX = 2**64 - 1

Path = tuple[str, ...]


def is_prime(num: int) -> bool:
    """Return True if ``num`` is a prime number."""
    if num <= 1 or (num % 2 == 0 and num > 2):
        return False
    return all(num % divisor for divisor in range(3, math.isqrt(num) + 1, 2))


def trim(text: str) -> str:
    """Strip spaces, tabs, carriage returns and newlines from both ends."""
    return text.strip(_WHITESPACE)


def _parse_weight(token: str) -> int:
    """Read a leading unsigned integer; anything unreadable counts as 0."""
    match = _LEADING_NUMBER.match(token)
    if match is None:
        return 0
    return min(int(match.group(1)), _UINT64_MAX)


class Graph:
    """A directed graph with string node labels and non-negative edge weights."""

    def __init__(self, max_workers: int | None = None) -> None:
        self._max_workers = max_workers or os.cpu_count() or 1
        self._nodes: list[str] = []
        self._node_set: set[str] = set()
        self._edges: list[tuple[str, str]] = []
        self._adjacency: dict[str, dict[str, int]] = {}
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------ parsing

    def _add_node(self, label: str) -> None:
        if label not in self._node_set:
            self._nodes.append(label)
            self._node_set.add(label)

    def parse(self, text: str) -> None:
        """Replace the graph with the one described by ``text``.

        Lines starting with ``*`` declare a node; lines starting with ``-``
        declare an edge as ``source target weight``.
        """
        self._nodes.clear()
        self._node_set.clear()
        self._edges.clear()
        self._adjacency.clear()

        for raw_line in text.split("\n"):
            line = trim(raw_line)
            if not line:
                continue
            if line[0] == "*":
                label = trim(line[1:])
                if label:
                    self._add_node(label)
            elif line[0] == "-":
                tokens = trim(line[1:]).split()
                if len(tokens) < 2:
                    continue
                source, target = tokens[0], tokens[1]
                weight = _parse_weight(tokens[2]) if len(tokens) > 2 else 0
                self._add_node(source)
                self._add_node(target)
                self._edges.append((source, target))
                self._adjacency.setdefault(source, {})[target] = weight

    # -------------------------------------------------------------- inspection

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return len(self._edges)

    def describe(self) -> str:
        """Return the node, edge and weight listing as text."""
        nodes = "".join(f"{node} " for node in self._nodes)
        edges = "".join(f"({src}--> {dst}) " for src, dst in self._edges)
        weights = "".join(
            f"({src} --> {dst}: {self._adjacency[src][dst]}) " for src, dst in self._edges
        )
        return f"Nodes: {nodes}\nEdges: {edges}\nEdge Weights: {weights}\n"

    def print_info(self, file: IO[str] | None = None) -> None:
        """Write the graph listing to ``file`` (standard output by default)."""
        (file or sys.stdout).write(self.describe())

    # ----------------------------------------------------------------- helpers

    def _has_nodes(self, *labels: str) -> bool:
        return all(label in self._node_set for label in labels)

    def _weight(self, source: str, target: str) -> int:
        return self._adjacency.get(source, {}).get(target, 1)

    def _format(self, path: Path, total: int) -> str:
        steps = "".join(f"{src} -{{{self._weight(src, dst)}}}-> " for src, dst in pairwise(path))
        return f"{steps}{path[-1]} = {total}"

    def _simple_paths(self, start: str, end: str) -> Iterator[tuple[Path, int]]:
        """Yield every simple path from ``start`` to ``end`` in depth-first order."""
        stack: list[tuple[str, Path, int]] = [(start, (start,), 0)]
        while stack:
            current, path, weight = stack.pop()
            if current == end:
                yield path, weight
                continue
            children = [
                (neighbor, path + (neighbor,), weight + w)
                for neighbor, w in self._adjacency.get(current, {}).items()
                if neighbor not in path
            ]
            stack.extend(reversed(children))

    # ------------------------------------------------------------------ queries

    def shortest_path(self, start_node: str, end_node: str) -> str:
        """Return the lowest-weight simple path, formatted, or a no-path message."""
        missing = f"No path from {start_node} to {end_node}"
        if not self._has_nodes(start_node, end_node):
            return missing
        best: tuple[Path, int] | None = None
        for path, weight in self._simple_paths(start_node, end_node):
            if best is None or weight < best[1]:
                best = (path, weight)
        if best is None:
            return missing
        return self._format(*best)

    def prime_path(self, start_node: str, end_node: str) -> str:
        """Return the first path found breadth-first whose total weight is prime."""
        missing = f"No prime path from {start_node} to {end_node}"
        if not self._has_nodes(start_node, end_node):
            return missing
        queue: deque[tuple[str, Path, int]] = deque([(start_node, (start_node,), 0)])
        while queue:
            current, path, total = queue.popleft()
            if current == end_node and is_prime(total):
                return self._format(path, total) + " is prime!"
            for neighbor in self._adjacency.get(current, {}):
                if neighbor not in path:
                    queue.append(
                        (neighbor, path + (neighbor,), total + self._weight(current, neighbor))
                    )
        return missing

    # ---------------------------------------------------------- parallel search

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._closed:
                raise RuntimeError("enqueue on stopped ThreadPool")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self._max_workers)
            return self._executor

    def _expand(
        self, current: str, path: Path, weight: int, end: str, prime_only: bool
    ) -> tuple[tuple[Path, int] | None, list[tuple[str, Path, int]]]:
        if current == end:
            if prime_only and not is_prime(weight):
                return None, []
            return (path, weight), []
        children = [
            (neighbor, path + (neighbor,), weight + w)
            for neighbor, w in self._adjacency.get(current, {}).items()
            if neighbor not in path
        ]
        return None, children

    def _search_parallel(self, start: str, end: str, prime_only: bool) -> tuple[Path, int] | None:
        executor = self._get_executor()
        found: list[tuple[Path, int]] = []
        pending: set[Future] = {
            executor.submit(self._expand, start, (start,), 0, end, prime_only)
        }
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                hit, children = future.result()
                if hit is not None:
                    found.append(hit)
                for child in children:
                    pending.add(executor.submit(self._expand, *child, end, prime_only))
        if not found:
            return None
        return min(found, key=lambda item: item[1])

    def shortest_path_parallel(self, start_node: str, end_node: str) -> str:
        """Like :meth:`shortest_path`, exploring branches on a thread pool."""
        missing = f"No path from {start_node} to {end_node}"
        if not self._has_nodes(start_node, end_node):
            return missing
        best = self._search_parallel(start_node, end_node, prime_only=False)
        return missing if best is None else self._format(*best)

    def prime_path_parallel(self, start_node: str, end_node: str) -> str:
        """Return the lowest prime-weight path, exploring branches on a thread pool."""
        missing = f"No prime path from {start_node} to {end_node}"
        if not self._has_nodes(start_node, end_node):
            return missing
        best = self._search_parallel(start_node, end_node, prime_only=True)
        return missing if best is None else self._format(*best) + " is prime!"

    # ---------------------------------------------------------------- lifecycle

    def close(self) -> None:
        """Stop the worker pool; parallel queries fail afterwards."""
        with self._executor_lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> Graph:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()