"""Graph module for multigraph storage and cycle-tolerant topological sorting.

This module provides a generic directed multigraph that orders hashable
vertices by their labelled edges, optionally breaking cycles with a
caller-supplied predicate, plus a validator for diagnosing graphs.
"""

from entitygraph.graph.base import Graph
from entitygraph.graph.multigraph import (
    CycleBreakFailedError,
    CycleDetectedError,
    GraphError,
    Multigraph,
    VertexNotFoundError,
)
from entitygraph.graph.validator import GraphValidator, ValidationReport

__all__ = [
    "CycleBreakFailedError",
    "CycleDetectedError",
    "Graph",
    "GraphError",
    "GraphValidator",
    "Multigraph",
    "ValidationReport",
    "VertexNotFoundError",
]
