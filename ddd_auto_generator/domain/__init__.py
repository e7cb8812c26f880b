"""
Domain module for the domain artifact generator.

Normalized schema records, per-entity configuration, relationship
resolution, table classification and the error catalog. Nothing here
renders code; the synthesizers in ``ast_codegen`` consume these objects.
"""

from .models import (
    Cardinality,
    CollectionShape,
    ColumnInfo,
    GeneratedArtifact,
    GenerationReport,
    IdentifierGeneration,
    IndexInfo,
    PersistenceMode,
    RelationshipInfo,
    RepresentationMode,
    ResolvedRelationship,
    ScalarType,
    SchemaInfo,
    ServiceInfo,
    StoreBackend,
    TableClassification,
    TableInfo,
)

from .entity_config import (
    ApiConfig,
    CustomApi,
    EntityConfig,
    parse_store_selection,
)

from .relationships import (
    RelationshipResolver,
    persistence_mode,
    representation_mode,
)

from .classification import (
    classify_table,
    classify_tables,
    eligible_tables,
    is_eligible,
)

from .error_catalog import (
    ErrorCatalog,
    ErrorDefinition,
)

from .imports import ImportSet

from .naming import (
    NamingConventions,
    case_convert,
    clean_field_name,
    pluralize,
    singularize,
    to_camel_case,
    to_constant_case,
    to_kebab_case,
    to_pascal_case,
    to_sentence_case,
    to_snake_case,
    validate_python_identifier,
)

__all__ = [
    # Core models
    'Cardinality',
    'CollectionShape',
    'ColumnInfo',
    'GeneratedArtifact',
    'GenerationReport',
    'IdentifierGeneration',
    'IndexInfo',
    'PersistenceMode',
    'RelationshipInfo',
    'RepresentationMode',
    'ResolvedRelationship',
    'ScalarType',
    'SchemaInfo',
    'ServiceInfo',
    'StoreBackend',
    'TableClassification',
    'TableInfo',

    # Entity configuration
    'ApiConfig',
    'CustomApi',
    'EntityConfig',
    'parse_store_selection',

    # Relationships
    'RelationshipResolver',
    'persistence_mode',
    'representation_mode',

    # Classification
    'classify_table',
    'classify_tables',
    'eligible_tables',
    'is_eligible',

    # Error catalog
    'ErrorCatalog',
    'ErrorDefinition',

    # Imports
    'ImportSet',

    # Naming
    'NamingConventions',
    'case_convert',
    'clean_field_name',
    'pluralize',
    'singularize',
    'to_camel_case',
    'to_constant_case',
    'to_kebab_case',
    'to_pascal_case',
    'to_sentence_case',
    'to_snake_case',
    'validate_python_identifier',
]
