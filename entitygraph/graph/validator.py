"""Graph validation with cycle path reporting and visualization.

This module provides diagnostics for multigraphs before they are sorted:
cycle detection with path reporting, self-loop and parallel edge detection,
isolated vertex detection, and Mermaid/Graphviz rendering.
"""

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from entitygraph.graph.multigraph import Multigraph

logger = structlog.get_logger(__name__)


@dataclass
class ValidationReport:
    """Report containing validation results for a multigraph.

    Attributes:
        is_valid: Whether the graph is free of multi-vertex cycles
        errors: List of error messages (critical issues)
        warnings: List of warning messages (potential issues)
        cycles: Detected cycles, each a closed vertex path (first == last)
        self_loops: Vertices with an edge to themselves
        isolated_vertices: Vertices with no incoming or outgoing edges
        parallel_edges: Ordered vertex pairs connected by more than one edge
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[Hashable]] = field(default_factory=list)
    self_loops: list[Hashable] = field(default_factory=list)
    isolated_vertices: list[Hashable] = field(default_factory=list)
    parallel_edges: list[tuple[Hashable, Hashable]] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = []
        lines.append(f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append(f"Cycles: {len(self.cycles)}")
        lines.append(f"Self Loops: {len(self.self_loops)}")
        lines.append(f"Isolated Vertices: {len(self.isolated_vertices)}")
        lines.append(f"Parallel Edge Groups: {len(self.parallel_edges)}")

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {_format_path(cycle)}")

        return "\n".join(lines)


def _format_path(path: list[Hashable]) -> str:
    return " -> ".join(str(vertex) for vertex in path)


class GraphValidator:
    """Validator for multigraphs with detailed error reporting.

    Cycles through two or more vertices are errors: they can only be sorted
    with a cycle breaker. Self loops, isolated vertices and parallel edges
    are reported as warnings.
    """

    def __init__(self):
        """Initialize the graph validator."""
        self._visited: set[Hashable] = set()
        self._rec_stack: set[Hashable] = set()
        self._path: list[Hashable] = []

    def validate(self, graph: "Multigraph") -> ValidationReport:
        """Validate a multigraph and generate a detailed report.

        Args:
            graph: The Multigraph to validate

        Returns:
            ValidationReport containing all validation results
        """
        logger.info(
            "starting_graph_validation",
            vertex_count=len(graph.vertices),
            edge_count=graph.edge_count,
        )

        report = ValidationReport()

        cycles = self._detect_cycles(graph)
        if cycles:
            report.cycles = cycles
            for cycle in cycles:
                report.add_error(f"Cycle detected: {_format_path(cycle)}")

        self_loops = [vertex for vertex in graph.vertices if graph.has_edge(vertex, vertex)]
        if self_loops:
            report.self_loops = self_loops
            loops_str = ", ".join(str(vertex) for vertex in self_loops)
            report.add_warning(f"Vertices referencing themselves: {loops_str}")

        isolated = self._find_isolated_vertices(graph)
        if isolated:
            report.isolated_vertices = isolated
            isolated_str = ", ".join(str(vertex) for vertex in isolated)
            report.add_warning(f"Vertices without any edges: {isolated_str}")

        parallel = [
            (source, target)
            for source in graph.vertices
            for target in graph.outgoing_neighbors(source)
            if len(graph.edges_between(source, target)) > 1
        ]
        if parallel:
            report.parallel_edges = parallel
            pairs_str = ", ".join(f"{source} -> {target}" for source, target in parallel)
            report.add_warning(f"Vertex pairs with parallel edges: {pairs_str}")

        logger.info(
            "graph_validation_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
            warning_count=len(report.warnings),
        )

        return report

    def _detect_cycles(self, graph: "Multigraph") -> list[list[Hashable]]:
        """Detect cycles through two or more vertices using DFS.

        Args:
            graph: The graph to search

        Returns:
            List of cycles, where each cycle is a closed path of vertices
        """
        self._visited = set()
        self._rec_stack = set()
        self._path = []
        cycles = []

        for vertex in graph.vertices:
            if vertex not in self._visited:
                cycle = self._dfs_cycle_detect(vertex, graph)
                if cycle:
                    cycles.append(cycle)

        return cycles

    def _dfs_cycle_detect(self, root: Hashable, graph: "Multigraph") -> list[Hashable] | None:
        """DFS-based cycle detection that returns the cycle path.

        Uses an explicit stack of successor iterators so long dependency
        chains do not hit the interpreter recursion limit.

        Args:
            root: Vertex to start the search from
            graph: The graph being searched

        Returns:
            List representing the cycle path if found, None otherwise
        """
        self._visited.add(root)
        self._rec_stack.add(root)
        self._path.append(root)
        successor_stack = [iter(graph.outgoing_neighbors(root))]

        while successor_stack:
            vertex = self._path[-1]
            for successor in successor_stack[-1]:
                if successor == vertex:
                    continue
                if successor not in self._visited:
                    self._visited.add(successor)
                    self._rec_stack.add(successor)
                    self._path.append(successor)
                    successor_stack.append(iter(graph.outgoing_neighbors(successor)))
                    break
                if successor in self._rec_stack:
                    cycle_start_idx = self._path.index(successor)
                    cycle = [*self._path[cycle_start_idx:], successor]
                    # Unwind so the next DFS root starts from a clean stack
                    self._rec_stack.clear()
                    self._path.clear()
                    return cycle
            else:
                successor_stack.pop()
                self._rec_stack.discard(self._path.pop())

        return None

    def _find_isolated_vertices(self, graph: "Multigraph") -> list[Hashable]:
        """Find vertices that are neither the source nor the target of an edge."""
        connected: set[Hashable] = set()
        for source in graph.vertices:
            targets = graph.outgoing_neighbors(source)
            if targets:
                connected.add(source)
                connected.update(targets)

        isolated = [vertex for vertex in graph.vertices if vertex not in connected]

        if isolated:
            logger.debug("isolated_vertices_found", count=len(isolated))

        return isolated

    def generate_visualization(
        self,
        graph: "Multigraph",
        output_format: str = "mermaid",
    ) -> str:
        """Generate a visual representation of the multigraph.

        Args:
            graph: The Multigraph to visualize
            output_format: Output format ('mermaid' or 'dot')

        Returns:
            String representation of the graph in the requested format

        Raises:
            ValueError: If an unsupported format is requested
        """
        output_format = output_format.lower().strip()

        if output_format == "mermaid":
            return self._generate_mermaid(graph)
        if output_format == "dot":
            return self._generate_graphviz(graph)
        error_msg = f"Unsupported format: {output_format}. Use 'mermaid' or 'dot'."
        raise ValueError(error_msg)

    def _generate_mermaid(self, graph: "Multigraph") -> str:
        """Generate a Mermaid flowchart representation.

        Args:
            graph: The graph to render

        Returns:
            Mermaid flowchart syntax
        """
        lines = ["graph TD"]

        if not graph.vertices:
            lines.append("    Empty[Empty Graph]")
            return "\n".join(lines)

        node_ids = {vertex: f"n{index}" for index, vertex in enumerate(graph.vertices)}

        def label(vertex: Hashable) -> str:
            return str(vertex).replace('"', "#quot;")

        for vertex, node_id in node_ids.items():
            lines.append(f'    {node_id}["{label(vertex)}"]')

        for source in graph.vertices:
            for target in graph.outgoing_neighbors(source):
                count = len(graph.edges_between(source, target))
                arrow = f"-->|{count}|" if count > 1 else "-->"
                lines.append(f"    {node_ids[source]} {arrow} {node_ids[target]}")

        return "\n".join(lines)

    def _generate_graphviz(self, graph: "Multigraph") -> str:
        """Generate a Graphviz DOT representation.

        Args:
            graph: The graph to render

        Returns:
            Graphviz DOT syntax
        """
        def escape_dot_string(vertex: Hashable) -> str:
            """Escape double quotes for DOT format."""
            return str(vertex).replace('"', '\\"')

        lines = ["digraph Multigraph {"]
        lines.append("    rankdir=LR;")
        lines.append("    node [shape=box, style=rounded];")

        if not graph.vertices:
            lines.append('    Empty [label="Empty Graph"];')
        else:
            lines.extend(f'    "{escape_dot_string(vertex)}";' for vertex in graph.vertices)

            for source in graph.vertices:
                for target in graph.outgoing_neighbors(source):
                    count = len(graph.edges_between(source, target))
                    label = f' [label="{count}"]' if count > 1 else ""
                    lines.append(
                        f'    "{escape_dot_string(source)}" -> "{escape_dot_string(target)}"{label};',
                    )

        lines.append("}")
        return "\n".join(lines)
