"""Command line interface.

Loads a YAML schema of entity types and foreign keys, orders the entity
types so that principals come before dependents, and prints the result.
"""

import argparse
import json
import sys

import structlog

from entitygraph.config import EntityGraphConfig, load_config
from entitygraph.graph.multigraph import CycleDetectedError, GraphError
from entitygraph.graph.validator import GraphValidator
from entitygraph.log_config import bind_context, clear_context, configure_logging
from entitygraph.ordering import build_entity_graph, load_schema, order_entity_types

logger = structlog.get_logger(__name__)


def run(args: argparse.Namespace) -> int:
    """Execute the ordering command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    # Configure early so config loading is logged to stderr, not stdout.
    # Loggers must not cache this setup, it is replaced once config is read.
    configure_logging(level=args.log_level or "INFO", cache_loggers=False)

    try:
        config: EntityGraphConfig = load_config(args.config)
        if args.no_break_cycles:
            config.ordering.allow_cycle_breaking = False

        level = args.log_level or config.logging.level
        configure_logging(level=level, json_logs=config.logging.json_logs)
        bind_context(schema=args.schema)

        entity_types, foreign_keys = load_schema(args.schema)
        graph = build_entity_graph(entity_types, foreign_keys)

        if args.validate:
            report = GraphValidator().validate(graph)
            print(report.summary())
            print()

        if args.visualize:
            print(GraphValidator().generate_visualization(graph, args.visualize))
            print()

        ordered = order_entity_types(entity_types, foreign_keys, config.ordering)

        if args.format == "json":
            print(json.dumps([entity_type.qualified_name for entity_type in ordered], indent=2))
        else:
            for position, entity_type in enumerate(ordered, 1):
                print(f"{position}. {entity_type.qualified_name}")

    except FileNotFoundError as e:
        logger.exception("file_not_found", error=str(e))
        return 1

    except CycleDetectedError as e:
        logger.exception(
            "entity_ordering_failed",
            error=str(e),
            remaining=[str(vertex) for vertex in e.remaining],
        )
        return 1

    except (GraphError, ValueError) as e:
        logger.exception("invalid_schema", error=str(e))
        return 1

    finally:
        clear_context()

    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="entitygraph",
        description="Order entity types by their foreign key dependencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the insert order for a schema
  entitygraph schema.yaml

  # Fail on foreign key cycles instead of deferring optional keys
  entitygraph schema.yaml --no-break-cycles

  # Show diagnostics and a Mermaid diagram before the ordering
  entitygraph schema.yaml --validate --visualize mermaid
        """,
    )

    parser.add_argument(
        "schema",
        type=str,
        help="Path to the YAML schema describing entity types and foreign keys",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to configuration YAML file (default: entitygraph.yaml if present)",
    )

    parser.add_argument(
        "--no-break-cycles",
        action="store_true",
        help="Fail when foreign keys form a cycle",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Print a validation report for the dependency graph",
    )

    parser.add_argument(
        "--visualize",
        choices=["mermaid", "dot"],
        default=None,
        help="Print the dependency graph in the given format",
    )

    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format for the ordering (default: text)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured logging level",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level)",
    )

    args = parser.parse_args(argv)

    if args.debug:
        args.log_level = "DEBUG"

    return args


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ``entitygraph`` command."""
    args = parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
