"""Order entity types so that referenced tables come before referencing ones.

Each entity type becomes a vertex and each foreign key an edge from the
principal (referenced) entity type to the dependent (referencing) one. The
multigraph keeps several foreign keys between the same pair of tables as
parallel edges, and the cycle breaker decides per table pair whether the
whole group of foreign keys may be deferred.

Example:
    >>> customer = EntityType("Customer")
    >>> order = EntityType("Order")
    >>> fk = ForeignKey("FK_Order_Customer", order, customer, ("CustomerId",))
    >>> [e.name for e in order_entity_types([order, customer], [fk])]
    ['Customer', 'Order']
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

from entitygraph.config import OrderingConfig
from entitygraph.graph.multigraph import Multigraph

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EntityType:
    """A table-backed entity type.

    Attributes:
        name: Entity type (table) name
        schema: Optional database schema the table lives in
    """

    name: str
    schema: str | None = None

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class ForeignKey:
    """A foreign key from a dependent entity type to its principal.

    Attributes:
        name: Constraint name
        dependent: Entity type holding the foreign key columns
        principal: Entity type the foreign key references
        columns: Foreign key column names, in constraint order
        is_required: Whether the columns are non-nullable
    """

    name: str
    dependent: EntityType
    principal: EntityType
    columns: tuple[str, ...] = ()
    is_required: bool = True

    @property
    def is_self_referencing(self) -> bool:
        return self.dependent == self.principal

    def __str__(self) -> str:
        return self.name


class ForeignKeyCycleBreaker:
    """Cycle breaking policy for foreign key edge groups.

    A group of foreign keys between two entity types may be ignored for
    ordering when it is a self reference (and self references may be broken),
    or when every foreign key in the group is optional: the rows can be
    inserted with NULLs and fixed up afterwards.
    """

    def __init__(self, break_optional: bool = True, break_self_references: bool = True):
        self.break_optional = break_optional
        self.break_self_references = break_self_references

    @classmethod
    def from_config(cls, config: OrderingConfig) -> "ForeignKeyCycleBreaker":
        return cls(
            break_optional=config.break_optional_foreign_keys,
            break_self_references=config.break_self_references,
        )

    def __call__(
        self,
        principal: EntityType,
        dependent: EntityType,
        foreign_keys: Sequence[ForeignKey],
    ) -> bool:
        if principal == dependent and self.break_self_references:
            return True

        if self.break_optional and foreign_keys and not any(fk.is_required for fk in foreign_keys):
            logger.info(
                "optional_foreign_keys_deferred",
                principal=principal.qualified_name,
                dependent=dependent.qualified_name,
                foreign_keys=[fk.name for fk in foreign_keys],
            )
            return True

        return False


def build_entity_graph(
    entity_types: Iterable[EntityType],
    foreign_keys: Iterable[ForeignKey],
) -> Multigraph[EntityType, ForeignKey]:
    """Build the dependency multigraph for a set of entity types.

    Raises:
        VertexNotFoundError: If a foreign key references an entity type that
            is not part of ``entity_types``
    """
    graph: Multigraph[EntityType, ForeignKey] = Multigraph()
    graph.add_vertices(entity_types)

    for fk in foreign_keys:
        graph.add_edge(fk.principal, fk.dependent, fk)

    logger.debug(
        "entity_graph_built",
        entity_type_count=len(graph.vertices),
        foreign_key_count=graph.edge_count,
    )

    return graph


def order_entity_types(
    entity_types: Iterable[EntityType],
    foreign_keys: Iterable[ForeignKey],
    config: OrderingConfig | None = None,
) -> list[EntityType]:
    """Return entity types with every principal before its dependents.

    Args:
        entity_types: Entity types to order
        foreign_keys: Foreign keys between those entity types
        config: Ordering policy; defaults to OrderingConfig()

    Returns:
        The entity types in dependency order

    Raises:
        VertexNotFoundError: If a foreign key references an unknown entity type
        CycleDetectedError: If the foreign keys form a cycle and cycle
            breaking is disabled
        CycleBreakFailedError: If the cycle cannot be broken under the policy
    """
    config = config or OrderingConfig()
    graph = build_entity_graph(entity_types, foreign_keys)

    cycle_breaker = ForeignKeyCycleBreaker.from_config(config) if config.allow_cycle_breaking else None
    ordered = graph.topological_sort(cycle_breaker)

    logger.info(
        "entity_types_ordered",
        count=len(ordered),
        order=[entity_type.qualified_name for entity_type in ordered],
    )

    return ordered


class _EntityTypeSpec(BaseModel):
    name: str = Field(min_length=1)
    schema_name: str | None = Field(default=None, alias="schema")

    model_config = {"str_strip_whitespace": True, "populate_by_name": True}


class _ForeignKeySpec(BaseModel):
    name: str = Field(min_length=1)
    dependent: str = Field(min_length=1)
    principal: str = Field(min_length=1)
    columns: list[str] = Field(default_factory=list)
    required: bool = True

    model_config = {"str_strip_whitespace": True}


class _SchemaDocument(BaseModel):
    entity_types: list[_EntityTypeSpec] = Field(default_factory=list)
    foreign_keys: list[_ForeignKeySpec] = Field(default_factory=list)

    @field_validator("entity_types", mode="before")
    @classmethod
    def expand_bare_names(cls, v: object) -> object:
        """Allow entity types to be listed as plain names."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v


def load_schema(path: str | Path) -> tuple[list[EntityType], list[ForeignKey]]:
    """Load entity types and foreign keys from a YAML schema document.

    The document has two lists::

        entity_types:
          - Customer
          - {name: Order, schema: sales}
        foreign_keys:
          - {name: FK_Order_Customer, dependent: sales.Order,
             principal: Customer, columns: [CustomerId], required: true}

    Foreign keys refer to entity types by qualified name or plain name. A
    plain name must match exactly one entity type.

    Raises:
        FileNotFoundError: If the schema file doesn't exist
        ValueError: If the document is malformed or references unknown
            entity types
    """
    schema_path = Path(path)
    if not schema_path.exists():
        msg = f"Schema file not found: {schema_path}"
        raise FileNotFoundError(msg)

    try:
        with schema_path.open() as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.exception("yaml_parse_error", error=str(e), path=str(schema_path))
        msg = f"Invalid YAML in schema file: {e}"
        raise ValueError(msg) from e

    if not isinstance(raw, dict):
        msg = "Schema file must contain a mapping"
        raise ValueError(msg)

    document = _SchemaDocument.model_validate(raw)

    entity_types = [EntityType(spec.name, spec.schema_name) for spec in document.entity_types]
    by_qualified_name = {entity_type.qualified_name: entity_type for entity_type in entity_types}
    by_plain_name: dict[str, list[EntityType]] = {}
    for entity_type in entity_types:
        by_plain_name.setdefault(entity_type.name, []).append(entity_type)

    def resolve(reference: str, fk_name: str) -> EntityType:
        if reference in by_qualified_name:
            return by_qualified_name[reference]

        matches = by_plain_name.get(reference, [])
        if len(matches) > 1:
            candidates = ", ".join(repr(match.qualified_name) for match in matches)
            msg = (
                f"Foreign key {fk_name!r} references ambiguous entity type {reference!r}; "
                f"qualify it as one of {candidates}"
            )
            raise ValueError(msg)
        if not matches:
            msg = f"Foreign key {fk_name!r} references unknown entity type {reference!r}"
            raise ValueError(msg)
        return matches[0]

    foreign_keys = [
        ForeignKey(
            name=spec.name,
            dependent=resolve(spec.dependent, spec.name),
            principal=resolve(spec.principal, spec.name),
            columns=tuple(spec.columns),
            is_required=spec.required,
        )
        for spec in document.foreign_keys
    ]

    logger.info(
        "schema_loaded",
        path=str(schema_path),
        entity_type_count=len(entity_types),
        foreign_key_count=len(foreign_keys),
    )

    return entity_types, foreign_keys
