#!/usr/bin/env python3
"""Demonstrate cycle-tolerant ordering with the generic Multigraph.

Usage:
    python examples/multigraph_demo.py
"""

from entitygraph.graph import CycleBreakFailedError, CycleDetectedError, GraphValidator, Multigraph
from entitygraph.log_config import configure_logging, get_logger

logger = get_logger(__name__)


def build_graph() -> Multigraph[str, str]:
    """Build a graph with a chain, parallel edges and a two-vertex cycle."""
    graph: Multigraph[str, str] = Multigraph()
    graph.add_vertices(["parse", "typecheck", "optimize", "emit", "link"])
    graph.add_edges("parse", "typecheck", ["ast", "symbols"])
    graph.add_edge("typecheck", "optimize", "typed-ast")
    graph.add_edge("optimize", "emit", "ir")
    graph.add_edge("emit", "link", "objects")
    # Feedback from the linker into the optimizer (profile data) closes a cycle
    graph.add_edge("link", "optimize", "profile")
    return graph


def main() -> None:
    """Run the demonstration."""
    configure_logging(level="INFO", json_logs=False)
    graph = build_graph()

    print(GraphValidator().validate(graph).summary())
    print()
    print(GraphValidator().generate_visualization(graph, "mermaid"))
    print()

    try:
        graph.topological_sort()
    except CycleDetectedError as e:
        logger.warning("sort_without_breaker_failed", remaining=e.remaining)

    def defer_profile(from_vertex: str, to_vertex: str, edges: list[str]) -> bool:
        return edges == ["profile"]

    print(" -> ".join(graph.topological_sort(defer_profile)))

    try:
        graph.topological_sort(lambda from_vertex, to_vertex, edges: False)
    except CycleBreakFailedError as e:
        logger.warning("strict_breaker_failed", remaining=e.remaining)


if __name__ == "__main__":
    main()
