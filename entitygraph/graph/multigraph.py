"""Directed multigraph with cycle-tolerant topological sorting.

This module provides the Multigraph class, which stores vertices and labelled
edges (several edges may connect the same ordered pair of vertices) and
produces a deterministic topological order. When the graph contains cycles,
a caller-supplied predicate may break whole edge groups so that a total order
can still be produced.
"""

from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import Generic, TypeVar

import structlog

from entitygraph.graph.base import Graph

logger = structlog.get_logger(__name__)

V = TypeVar("V", bound=Hashable)
E = TypeVar("E", bound=Hashable)

CycleBreaker = Callable[[V, V, Sequence[E]], bool]


class GraphError(Exception):
    """Base class for errors raised by graph operations."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the graph error
        """
        super().__init__(message)
        self.message = message


class VertexNotFoundError(GraphError):
    """Exception raised when an edge references a vertex not in the graph."""

    def __init__(self, vertex: object):
        super().__init__(f"The graph does not contain vertex {vertex!r}")
        self.vertex = vertex


class CycleDetectedError(GraphError):
    """Exception raised when a cycle prevents a topological order.

    Attributes:
        remaining: Vertices that could not be placed, in insertion order
    """

    def __init__(self, message: str, remaining: Sequence[object] = ()):
        super().__init__(message)
        self.remaining = list(remaining)


class CycleBreakFailedError(CycleDetectedError):
    """Exception raised when the cycle breaker accepts no remaining edge group."""


class Multigraph(Graph[V], Generic[V, E]):
    """Directed multigraph keyed by ordered vertex pairs.

    Vertices, edges and adjacency entries are all kept in insertion order so
    that neighbor queries and sorting are deterministic.

    Thread-safety:
        This class is NOT thread-safe. Build the graph and sort it from a
        single thread, or serialize all calls externally.

    Example:
        >>> graph = Multigraph()
        >>> graph.add_vertices(["customer", "order"])
        >>> graph.add_edge("customer", "order", "FK_order_customer")
        >>> graph.topological_sort()
        ['customer', 'order']
    """

    def __init__(self) -> None:
        """Initialize an empty multigraph."""
        self._vertices: dict[V, None] = {}
        self._edges: dict[E, None] = {}
        self._successor_map: dict[V, dict[V, list[E]]] = {}

    def __repr__(self) -> str:
        return f"Multigraph(vertices={len(self._vertices)}, edges={self.edge_count})"

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._vertices

    @property
    def vertices(self) -> list[V]:
        return list(self._vertices)

    @property
    def edges(self) -> list[E]:
        """Distinct edge labels across all vertex pairs, in insertion order."""
        return list(self._edges)

    @property
    def edge_count(self) -> int:
        """Total number of edge entries, counting parallel edges separately."""
        return sum(
            len(edge_list)
            for successors in self._successor_map.values()
            for edge_list in successors.values()
        )

    def all_vertices(self) -> list[V]:
        return self.vertices

    def all_edges(self) -> list[E]:
        return self.edges

    def add_vertex(self, vertex: V) -> None:
        """Add a vertex; adding an existing vertex is a no-op."""
        if vertex not in self._vertices:
            self._vertices[vertex] = None
            logger.debug("vertex_added", vertex=repr(vertex))

    def add_vertices(self, vertices: Iterable[V]) -> None:
        """Add several vertices; existing vertices are ignored."""
        vertices = list(vertices)
        for vertex in vertices:
            self._vertices.setdefault(vertex, None)

        logger.debug("vertices_added", count=len(vertices), vertex_count=len(self._vertices))

    def add_edge(self, from_vertex: V, to_vertex: V, edge: E) -> None:
        """Add a single labelled edge between two existing vertices.

        Raises:
            VertexNotFoundError: If either endpoint is not in the graph
        """
        self.add_edges(from_vertex, to_vertex, [edge])

    def add_edges(self, from_vertex: V, to_vertex: V, edges: Iterable[E]) -> None:
        """Append labelled edges to the ordered pair ``(from_vertex, to_vertex)``.

        Args:
            from_vertex: Source vertex, must already be in the graph
            to_vertex: Target vertex, must already be in the graph
            edges: Edge labels to append, in order

        Raises:
            VertexNotFoundError: If either endpoint is not in the graph. Nothing
                is recorded in that case.
        """
        if from_vertex not in self._vertices:
            logger.error("edge_source_not_in_graph", vertex=repr(from_vertex))
            raise VertexNotFoundError(from_vertex)

        if to_vertex not in self._vertices:
            logger.error("edge_target_not_in_graph", vertex=repr(to_vertex))
            raise VertexNotFoundError(to_vertex)

        edges = list(edges)
        if not edges:
            return

        successors = self._successor_map.setdefault(from_vertex, {})
        successors.setdefault(to_vertex, []).extend(edges)
        for edge in edges:
            self._edges.setdefault(edge, None)

        logger.debug(
            "edges_added",
            from_vertex=repr(from_vertex),
            to_vertex=repr(to_vertex),
            count=len(edges),
        )

    def has_edge(self, from_vertex: V, to_vertex: V) -> bool:
        """Check whether at least one edge connects the ordered pair."""
        return bool(self._successor_map.get(from_vertex, {}).get(to_vertex))

    def edges_between(self, from_vertex: V, to_vertex: V) -> list[E]:
        """Return the edge labels for the ordered pair, empty if unconnected."""
        return list(self._successor_map.get(from_vertex, {}).get(to_vertex, []))

    def outgoing_neighbors(self, vertex: V) -> list[V]:
        return list(self._successor_map.get(vertex, {}))

    def incoming_neighbors(self, vertex: V) -> list[V]:
        # No reverse index is kept; scan every source's successor map.
        return [
            source
            for source, successors in self._successor_map.items()
            if vertex in successors
        ]

    def topological_sort(self, cycle_breaker: CycleBreaker | None = None) -> list[V]:
        """Order the vertices so that every edge points forward.

        In-degree is the number of distinct predecessors, so parallel edges
        from one vertex count as a single dependency. When the remaining
        vertices form a cycle, ``cycle_breaker(from, to, edges)`` is asked
        about each pending edge group; accepting a group removes it from the
        ordering constraints.

        Args:
            cycle_breaker: Optional predicate deciding whether the whole edge
                group between two vertices may be ignored

        Returns:
            All vertices in topological order

        Raises:
            CycleDetectedError: If the graph has a cycle and no breaker was given
            CycleBreakFailedError: If the breaker accepted no edge group that
                would unblock a vertex
        """
        sorted_queue: list[V] = []
        predecessor_counts: dict[V, int] = dict.fromkeys(self._vertices, 0)
        for successors in self._successor_map.values():
            for successor in successors:
                predecessor_counts[successor] += 1

        for vertex, count in list(predecessor_counts.items()):
            if count == 0:
                sorted_queue.append(vertex)
                del predecessor_counts[vertex]

        broken_pairs: set[tuple[V, V]] = set()
        index = 0
        while len(sorted_queue) < len(self._vertices):
            while index < len(sorted_queue):
                current = sorted_queue[index]
                for successor in self._successor_map.get(current, {}):
                    if successor not in predecessor_counts or (current, successor) in broken_pairs:
                        continue
                    predecessor_counts[successor] -= 1
                    if predecessor_counts[successor] == 0:
                        sorted_queue.append(successor)
                        del predecessor_counts[successor]
                index += 1

            if len(sorted_queue) == len(self._vertices):
                break

            remaining = list(predecessor_counts)
            if cycle_breaker is None:
                logger.error("cycle_detected", remaining=[repr(v) for v in remaining])
                msg = f"Cycle detected among vertices: {', '.join(map(repr, remaining))}"
                raise CycleDetectedError(msg, remaining)

            unblocked = self._break_cycle(cycle_breaker, predecessor_counts, broken_pairs)
            if unblocked is None:
                logger.error("cycle_break_failed", remaining=[repr(v) for v in remaining])
                msg = (
                    "Unable to break cycle among vertices: "
                    f"{', '.join(map(repr, remaining))}"
                )
                raise CycleBreakFailedError(msg, remaining)

            sorted_queue.append(unblocked)

        logger.debug(
            "topological_sort_completed",
            vertex_count=len(sorted_queue),
            broken_edge_groups=len(broken_pairs),
        )

        return sorted_queue

    def _break_cycle(
        self,
        cycle_breaker: CycleBreaker,
        predecessor_counts: dict[V, int],
        broken_pairs: set[tuple[V, V]],
    ) -> V | None:
        """Break pending edge groups until one candidate has no predecessors.

        Returns the unblocked vertex (already removed from
        ``predecessor_counts``) or None if the breaker accepted nothing useful.
        """
        for candidate in list(predecessor_counts):
            for predecessor in self.incoming_neighbors(candidate):
                if predecessor not in predecessor_counts or (predecessor, candidate) in broken_pairs:
                    continue

                edges = self.edges_between(predecessor, candidate)
                if not cycle_breaker(predecessor, candidate, edges):
                    continue

                broken_pairs.add((predecessor, candidate))
                predecessor_counts[candidate] -= 1
                logger.debug(
                    "cycle_edge_broken",
                    from_vertex=repr(predecessor),
                    to_vertex=repr(candidate),
                    edge_count=len(edges),
                )

                if predecessor_counts[candidate] == 0:
                    del predecessor_counts[candidate]
                    return candidate

        return None
