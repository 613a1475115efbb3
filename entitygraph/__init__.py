"""Dependency ordering for entity types over a directed multigraph.

The graph package provides the generic multigraph and its cycle-tolerant
topological sort; the ordering module applies it to entity types linked by
foreign keys.
"""

from entitygraph.graph import (
    CycleBreakFailedError,
    CycleDetectedError,
    GraphError,
    Multigraph,
    VertexNotFoundError,
)
from entitygraph.ordering import EntityType, ForeignKey, ForeignKeyCycleBreaker, order_entity_types

__version__ = "0.1.0"

__all__ = [
    "CycleBreakFailedError",
    "CycleDetectedError",
    "EntityType",
    "ForeignKey",
    "ForeignKeyCycleBreaker",
    "GraphError",
    "Multigraph",
    "VertexNotFoundError",
    "order_entity_types",
]
