"""
Core domain models for the domain artifact generator.

These records are produced once by the schema normalizer and treated as
immutable by the relationship resolver and every synthesizer. Default-value
sentinels from the raw schema are carried as tagged enums rather than strings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from .naming import clean_field_name

if TYPE_CHECKING:
    from .entity_config import EntityConfig


class ScalarType(Enum):
    """Resolved scalar type of a column."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"
    STRUCTURED = "structured"
    ANY = "any"


class IdentifierGeneration(Enum):
    """How the value of a column is produced when an entity is created."""

    NONE = "none"
    RANDOM = "uuid()"


class CollectionShape(Enum):
    """Shape requested for a structured column holding many related values."""

    DEFAULT = "default"
    MAP = "object()"


class Cardinality(Enum):
    """Multiplicity of one side of a relationship."""

    ONE = "one"
    MANY = "many"


class RepresentationMode(Enum):
    """How a relationship is shaped in domain-facing artifacts."""

    EMBEDDED = "embedded"
    REFERENCE = "reference"
    LIST = "list"
    MAP = "map"

    @property
    def is_collection(self) -> bool:
        return self in (RepresentationMode.LIST, RepresentationMode.MAP)


class PersistenceMode(Enum):
    """How a relationship is shaped in the persistence mapping."""

    JOIN = "join"
    INLINE = "inline"
    EMBEDDED = "embedded"
    COLUMN = "column"


class StoreBackend(Enum):
    """Storage backends an operation can be served by."""

    SQL = "sql"
    REDIS = "redis"
    EVENTSTREAM = "eventstream"


class TableClassification(Enum):
    """Eligibility of a table for aggregate synthesis."""

    ELIGIBLE = "eligible"
    STRUCTURED_PRIMARY_KEY = "structured primary key"
    NO_PRIMARY_KEY = "no primary key"
    COMPOSITE_PRIMARY_KEY = "composite primary key"
    ALL_OPERATIONS_CANCELLED = "all operations cancelled and no custom APIs"

    @property
    def is_eligible(self) -> bool:
        return self is TableClassification.ELIGIBLE

    @property
    def has_scalar_key(self) -> bool:
        """A single non-structured primary key, so other aggregates can hold the table by value."""
        return self in (TableClassification.ELIGIBLE, TableClassification.ALL_OPERATIONS_CANCELLED)


@dataclass(frozen=True)
class ColumnInfo:
    """
    A normalized schema column.

    The scalar type and the tagged default markers are resolved once by the
    normalizer; `datatype` keeps the upper-cased raw datatype for reference.
    """

    id: str
    name: str
    datatype: str
    scalar_type: ScalarType
    nullable: bool = True
    is_pk: bool = False
    is_unique: bool = False
    default: Optional[str] = None
    identifier_generation: IdentifierGeneration = IdentifierGeneration.NONE
    collection_shape: CollectionShape = CollectionShape.DEFAULT
    enum_values: Tuple[str, ...] = ()
    enum_type_name: Optional[str] = None
    length: Optional[str] = None

    @property
    def field_name(self) -> str:
        """Python attribute name used for this column in generated code."""
        return clean_field_name(self.name)

    @property
    def is_required(self) -> bool:
        return not self.nullable

    @property
    def is_structured(self) -> bool:
        return self.scalar_type is ScalarType.STRUCTURED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'name': self.name,
            'datatype': self.datatype,
            'scalar_type': self.scalar_type.value,
            'nullable': self.nullable,
            'is_pk': self.is_pk,
            'is_unique': self.is_unique,
            'default': self.default,
            'identifier_generation': self.identifier_generation.value,
            'collection_shape': self.collection_shape.value,
            'enum_values': list(self.enum_values),
            'enum_type_name': self.enum_type_name,
            'length': self.length,
        }


@dataclass(frozen=True)
class IndexInfo:
    """A table index."""

    name: str
    columns: Tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class RelationshipInfo:
    """A relation record from the schema, with column ids replaced by names."""

    name: str
    parent_table: str
    parent_column: str
    child_table: str
    child_column: str
    parent_cardinality: Cardinality
    child_cardinality: Cardinality

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.parent_table, self.parent_column, self.child_table, self.child_column)

    @property
    def is_many_to_many(self) -> bool:
        return self.parent_cardinality is Cardinality.MANY and self.child_cardinality is Cardinality.MANY


@dataclass(frozen=True)
class ResolvedRelationship:
    """
    A relationship as seen from one table, enriched by the resolver.

    `representation_mode` is the single source of truth for the domain shape
    of the relationship; `persistence_mode` may differ when the two tables
    cannot share a relational join.
    """

    relationship: RelationshipInfo
    is_parent: bool
    is_child: bool
    representation_mode: RepresentationMode
    persistence_mode: PersistenceMode
    join_valid: bool
    parent_column_info: ColumnInfo
    child_column_info: ColumnInfo

    @property
    def name(self) -> str:
        return self.relationship.name

    @property
    def parent_table(self) -> str:
        return self.relationship.parent_table

    @property
    def child_table(self) -> str:
        return self.relationship.child_table

    @property
    def parent_column(self) -> str:
        return self.relationship.parent_column

    @property
    def child_column(self) -> str:
        return self.relationship.child_column

    @property
    def field_name(self) -> str:
        """Attribute name of the referencing column on the child entity."""
        return self.child_column_info.field_name

    @property
    def key_field_name(self) -> str:
        """Attribute name of the natural key on the referenced entity."""
        return self.parent_column_info.field_name

    @property
    def nullable(self) -> bool:
        return self.child_column_info.nullable

    @property
    def is_collection(self) -> bool:
        return self.representation_mode.is_collection

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'parent_table': self.parent_table,
            'parent_column': self.parent_column,
            'child_table': self.child_table,
            'child_column': self.child_column,
            'cardinality': [
                self.relationship.parent_cardinality.value,
                self.relationship.child_cardinality.value,
            ],
            'is_parent': self.is_parent,
            'is_child': self.is_child,
            'representation_mode': self.representation_mode.value,
            'persistence_mode': self.persistence_mode.value,
            'join_valid': self.join_valid,
        }


@dataclass(frozen=True)
class TableInfo:
    """A normalized schema table."""

    id: str
    name: str
    columns: Tuple[ColumnInfo, ...]
    indexes: Tuple[IndexInfo, ...] = ()

    @property
    def primary_key_columns(self) -> List[ColumnInfo]:
        return [col for col in self.columns if col.is_pk]

    @property
    def primary_key(self) -> Optional[ColumnInfo]:
        """The single primary key column, or None for zero or composite keys."""
        keys = self.primary_key_columns
        return keys[0] if len(keys) == 1 else None

    @property
    def has_structured_primary_key(self) -> bool:
        return any(col.is_structured for col in self.primary_key_columns)

    @property
    def enum_columns(self) -> List[ColumnInfo]:
        return [col for col in self.columns if col.scalar_type is ScalarType.ENUM and col.enum_values]

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        return next((col for col in self.columns if col.name == name), None)

    def has_column(self, field_name: str, scalar_type: ScalarType) -> bool:
        """Check for a column by its Python field name and resolved type."""
        return any(col.field_name == field_name and col.scalar_type is scalar_type for col in self.columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'columns': [col.to_dict() for col in self.columns],
            'indexes': [
                {'name': idx.name, 'columns': list(idx.columns), 'unique': idx.unique}
                for idx in self.indexes
            ],
        }


@dataclass(frozen=True)
class ServiceInfo:
    """Service-wide settings of one schema."""

    name: str
    module: str
    version: str = "1"
    has_sql: bool = False
    has_redis: bool = False
    has_event_stream: bool = False


@dataclass(frozen=True, eq=False)
class SchemaInfo:
    """The complete normalized schema handed to the resolver and synthesizers."""

    service: ServiceInfo
    tables: Tuple[TableInfo, ...]
    relations: Tuple[RelationshipInfo, ...]
    entity_configs: Mapping[str, "EntityConfig"]
    excluded: Tuple[str, ...] = ()

    def get_table(self, name: str) -> Optional[TableInfo]:
        return next((table for table in self.tables if table.name == name), None)

    def config_for(self, table_name: str) -> "EntityConfig":
        return self.entity_configs[table_name]


@dataclass
class GeneratedArtifact:
    """
    One rendered artifact, ready for the writer.

    `parts` is the output path relative to the service package root.
    """

    parts: Tuple[str, ...]
    code: str
    component: str = "unknown"
    table_name: Optional[str] = None

    @property
    def file_name(self) -> str:
        return self.parts[-1]


@dataclass
class GenerationReport:
    """Outcome of one generation run."""

    written: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)
    skipped_tables: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    unimplemented_rules: Dict[str, List[str]] = field(default_factory=dict)
    error_catalog: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'written': list(self.written),
            'unchanged': list(self.unchanged),
            'excluded': list(self.excluded),
            'skipped_tables': dict(self.skipped_tables),
            'errors': dict(self.errors),
            'unimplemented_rules': {k: list(v) for k, v in self.unimplemented_rules.items()},
            'error_catalog': dict(self.error_catalog),
        }
