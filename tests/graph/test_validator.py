"""Unit tests for GraphValidator class.

Tests cover:
- Cycle detection with path reporting
- Self loop, isolated vertex and parallel edge detection
- Validation report generation
- Graph visualization
"""

import pytest

from entitygraph.graph.multigraph import Multigraph
from entitygraph.graph.validator import GraphValidator, ValidationReport


def make_graph(vertices: list[str], edges: list[tuple[str, str, str]]) -> Multigraph:
    graph = Multigraph()
    graph.add_vertices(vertices)
    for source, target, label in edges:
        graph.add_edge(source, target, label)
    return graph


class TestValidationReport:
    """Test ValidationReport functionality."""

    def test_initialization(self):
        """Test that ValidationReport initializes correctly."""
        report = ValidationReport()

        assert report.is_valid is True
        assert report.errors == []
        assert report.warnings == []
        assert report.cycles == []
        assert report.self_loops == []
        assert report.isolated_vertices == []
        assert report.parallel_edges == []

    def test_add_error(self):
        """Test adding errors marks validation as failed."""
        report = ValidationReport()
        report.add_error("Test error")

        assert not report.is_valid
        assert report.errors == ["Test error"]

    def test_add_warning(self):
        """Test adding warnings doesn't fail validation."""
        report = ValidationReport()
        report.add_warning("Test warning")

        assert report.is_valid
        assert report.warnings == ["Test warning"]

    def test_summary_empty_report(self):
        """Test summary generation for empty report."""
        summary = ValidationReport().summary()

        assert "Validation Status: PASS" in summary
        assert "Errors: 0" in summary
        assert "Warnings: 0" in summary

    def test_summary_with_cycles(self):
        """Test summary lists cycle paths."""
        report = ValidationReport()
        report.cycles = [["A", "B", "A"]]
        report.add_error("Cycle detected: A -> B -> A")

        summary = report.summary()

        assert "Validation Status: FAIL" in summary
        assert "Cycles Detected:" in summary
        assert "1. A -> B -> A" in summary


class TestGraphValidation:
    """Test validation of multigraphs."""

    def test_valid_dag(self):
        """Test that an acyclic connected graph passes without warnings."""
        graph = make_graph(["A", "B", "C"], [("A", "B", "ab"), ("B", "C", "bc")])

        report = GraphValidator().validate(graph)

        assert report.is_valid
        assert report.errors == []
        assert report.warnings == []

    def test_empty_graph(self):
        """Test that an empty graph is valid."""
        report = GraphValidator().validate(Multigraph())

        assert report.is_valid
        assert report.cycles == []

    def test_two_vertex_cycle(self):
        """Test that a cycle is reported with its closed path."""
        graph = make_graph(["A", "B"], [("A", "B", "ab"), ("B", "A", "ba")])

        report = GraphValidator().validate(graph)

        assert not report.is_valid
        assert report.cycles == [["A", "B", "A"]]
        assert "Cycle detected: A -> B -> A" in report.errors

    def test_cycle_path_excludes_lead_in(self):
        """Test that vertices leading into a cycle are not part of the path."""
        graph = make_graph(
            ["root", "A", "B", "C"],
            [("root", "A", "ra"), ("A", "B", "ab"), ("B", "C", "bc"), ("C", "A", "ca")],
        )

        report = GraphValidator().validate(graph)

        assert report.cycles == [["A", "B", "C", "A"]]

    def test_self_loop_is_a_warning(self):
        """Test that self references are warnings, not cycle errors."""
        graph = make_graph(["A", "B"], [("A", "A", "aa"), ("A", "B", "ab")])

        report = GraphValidator().validate(graph)

        assert report.is_valid
        assert report.self_loops == ["A"]
        assert report.cycles == []
        assert any("referencing themselves" in warning for warning in report.warnings)

    def test_isolated_vertices(self):
        """Test detection of vertices without edges."""
        graph = make_graph(["A", "B", "lonely"], [("A", "B", "ab")])

        report = GraphValidator().validate(graph)

        assert report.isolated_vertices == ["lonely"]
        assert report.is_valid

    def test_parallel_edges(self):
        """Test detection of vertex pairs with several edges."""
        graph = make_graph(["A", "B"], [("A", "B", "fk1"), ("A", "B", "fk2")])

        report = GraphValidator().validate(graph)

        assert report.parallel_edges == [("A", "B")]
        assert report.is_valid

    def test_validator_reusable(self):
        """Test that one validator instance can validate several graphs."""
        validator = GraphValidator()
        cyclic = make_graph(["A", "B"], [("A", "B", "ab"), ("B", "A", "ba")])
        acyclic = make_graph(["A", "B"], [("A", "B", "ab")])

        assert not validator.validate(cyclic).is_valid
        assert validator.validate(acyclic).is_valid

    def test_long_chain_has_no_cycle(self):
        """Test that a deep acyclic chain is walked without recursion."""
        vertices = [f"v{i}" for i in range(5000)]
        edges = [(vertices[i], vertices[i + 1], f"e{i}") for i in range(len(vertices) - 1)]
        graph = make_graph(vertices, edges)

        report = GraphValidator().validate(graph)

        assert report.is_valid
        assert report.cycles == []

    def test_long_cycle_detected(self):
        """Test that a cycle closing a deep chain is reported in full."""
        vertices = [f"v{i}" for i in range(5000)]
        edges = [(vertices[i], vertices[i + 1], f"e{i}") for i in range(len(vertices) - 1)]
        edges.append((vertices[-1], vertices[0], "back"))
        graph = make_graph(vertices, edges)

        report = GraphValidator().validate(graph)

        assert not report.is_valid
        assert report.cycles == [[*vertices, "v0"]]

    def test_branch_explored_after_dead_end(self):
        """Test that a cycle on a later branch is found after backtracking."""
        graph = make_graph(
            ["A", "B", "C", "D"],
            [("A", "B", "ab"), ("A", "C", "ac"), ("C", "D", "cd"), ("D", "C", "dc")],
        )

        report = GraphValidator().validate(graph)

        assert report.cycles == [["C", "D", "C"]]


class TestVisualization:
    """Test graph rendering."""

    def test_mermaid(self):
        """Test Mermaid output with a parallel edge count label."""
        graph = make_graph(
            ["order-line", "order"],
            [("order", "order-line", "fk1"), ("order", "order-line", "fk2")],
        )

        output = GraphValidator().generate_visualization(graph, "mermaid")

        assert output.startswith("graph TD")
        assert '    n0["order-line"]' in output
        assert '    n1["order"]' in output
        assert "    n1 -->|2| n0" in output

    def test_mermaid_ids_are_unique(self):
        """Test that vertices whose names differ only in punctuation stay distinct."""
        graph = make_graph(["a-b", "a_b", "a b"], [("a-b", "a_b", "e1")])

        output = GraphValidator().generate_visualization(graph, "mermaid")

        assert '    n0["a-b"]' in output
        assert '    n1["a_b"]' in output
        assert '    n2["a b"]' in output
        assert "    n0 --> n1" in output

    def test_mermaid_label_escapes_quotes(self):
        """Test that labels with brackets and quotes render as quoted text."""
        graph = make_graph(['say "hi" [x]', "B"], [('say "hi" [x]', "B", "e")])

        output = GraphValidator().generate_visualization(graph, "mermaid")

        assert '    n0["say #quot;hi#quot; [x]"]' in output
        assert "    n0 --> n1" in output

    def test_mermaid_empty_graph(self):
        """Test Mermaid output for an empty graph."""
        output = GraphValidator().generate_visualization(Multigraph(), "mermaid")

        assert "Empty[Empty Graph]" in output

    def test_dot(self):
        """Test Graphviz output with escaped quotes."""
        graph = make_graph(['say "hi"', "B"], [('say "hi"', "B", "e")])

        output = GraphValidator().generate_visualization(graph, "DOT ")

        assert output.startswith("digraph Multigraph {")
        assert '"say \\"hi\\"" -> "B";' in output
        assert output.endswith("}")

    def test_unsupported_format(self):
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError, match="Unsupported format"):
            GraphValidator().generate_visualization(Multigraph(), "svg")
