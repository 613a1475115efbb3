"""Abstract graph interface shared by the graph implementations."""

from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterator
from typing import Generic, TypeVar

V = TypeVar("V", bound=Hashable)


class Graph(ABC, Generic[V]):
    """Read-only view of a directed graph over hashable vertices.

    Subclasses own the storage; this base only fixes the adjacency queries
    and derives container behaviour from them.
    """

    @property
    @abstractmethod
    def vertices(self) -> list[V]:
        """All vertices in insertion order."""

    @abstractmethod
    def outgoing_neighbors(self, vertex: V) -> list[V]:
        """Distinct vertices reachable from ``vertex`` over one edge."""

    @abstractmethod
    def incoming_neighbors(self, vertex: V) -> list[V]:
        """Distinct vertices with at least one edge into ``vertex``."""

    def __len__(self) -> int:
        return len(self.vertices)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self.vertices

    def __iter__(self) -> Iterator[V]:
        return iter(self.vertices)
