"""
Centralized constants for the domain artifact generator.

Configuration defaults, schema markers, datatype groups and the names of
columns that unlock special aggregate operations all live here so the
normalizer and every synthesizer agree on them.
"""

import keyword
from typing import Dict, FrozenSet, List, Set


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    SCHEMAS_DIR = "./schemas"
    OUTPUT_DIR = "./generated_domain"
    SERVICE_VERSION = "1"

    # Schema input file names, in lookup order
    SCHEMA_FILE_NAMES: List[str] = ["schema.json", "schema.dmm"]
    PARAMETERS_FILE_NAMES: List[str] = ["parameters.yaml", "parameters.yml", "parameters.json"]

    # Rendering
    LINE_LENGTH = 120
    FORMAT_CODE = True
    WRITE_INDEX_FILES = True

    # Unimplemented business rules: 'defer' flags them at runtime, 'block' fails the table
    UNIMPLEMENTED_RULES = "defer"

    # Generated list queries
    PAGE_SIZE = 50


class EntityDefaults:
    """Per-entity configuration defaults filled by the normalizer."""

    STORE_SELECTION = "sql,eventstream,redis"
    REDIS_TTL = 3600
    REDIS_HASH = True
    VERSION = "v1"
    CREATE_EVENT_TYPE = "create.v1"
    UPDATE_EVENT_TYPE = "update.v1"

    @staticmethod
    def redis_category(kebab_name: str) -> str:
        return f"lookups:core.{kebab_name}.v1"

    @staticmethod
    def event_stream(kebab_name: str) -> str:
        return f"core.{kebab_name}.v1"


# =============================================================================
# SCHEMA MARKERS AND DATATYPES
# =============================================================================

class DefaultMarkers:
    """Default-value strings with a special meaning in the raw schema."""

    GENERATED_IDENTIFIER = "uuid()"
    EMPTY_STRUCTURE = "object()"

    KNOWN: FrozenSet[str] = frozenset({GENERATED_IDENTIFIER, EMPTY_STRUCTURE})

    # Length given to columns that hold a generated identifier
    GENERATED_IDENTIFIER_LENGTH = "36"


class DatatypeGroups:
    """Raw datatype names grouped by the scalar type they resolve to."""

    STRING: FrozenSet[str] = frozenset({"VARCHAR", "TEXT", "CHAR", "LONGTEXT"})
    NUMBER: FrozenSet[str] = frozenset({"INT", "INTEGER", "BIGINT", "DECIMAL", "FLOAT", "REAL", "DOUBLE"})
    DATE: FrozenSet[str] = frozenset({"DATE", "DATETIME", "TIMESTAMP"})
    BOOLEAN: FrozenSet[str] = frozenset({"BOOLEAN", "BOOL"})
    ENUM: FrozenSet[str] = frozenset({"ENUM"})
    STRUCTURED: FrozenSet[str] = frozenset({"JSON", "JSONB"})


class OperationNames:
    """Operations that can be cancelled per entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BATCH = "batch"
    GET = "get"

    ALL: List[str] = [CREATE, UPDATE, DELETE, BATCH, GET]
    LIFECYCLE: List[str] = [CREATE, UPDATE, DELETE]


# =============================================================================
# SPECIAL COLUMNS
# =============================================================================

class FieldNames:
    """Column names that change what the aggregate synthesizer emits."""

    TENANT = "tenant"
    ENABLED = "enabled"
    STATUS = "status"
    ACTIVE = "active"
    IS_DEFAULT = "is_default"

    # Names a generated member may not take
    RESERVED_MEMBERS: Set[str] = {
        "apply", "commit", "validate_state", "to_props", "to_dto", "get_id",
        "create", "from_entity", "flagged_rules", "flag_unimplemented_rule",
    }

    PYTHON_KEYWORDS: Set[str] = set(keyword.kwlist)


# =============================================================================
# ERROR CATALOG
# =============================================================================

class ErrorStatus:
    """HTTP-style status classification of catalog entries."""

    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500


class UnexpectedError:
    """Fields recorded for a step that raised instead of returning."""

    KEY = "unexpected"
    DESCRIPTION = "An exception occurred during processing."
    CODE = "UNEXPECTED_ERROR"
    EXCEPTION = "InternalServerErrorException"
    STATUS_CODE = ErrorStatus.INTERNAL_SERVER_ERROR


# =============================================================================
# OUTPUT LAYOUT
# =============================================================================

class FileExtensions:
    """Common file extensions."""

    PYTHON = ".py"
    YAML = ".yaml"
    JSON = ".json"
    JINJA2 = ".j2"


class OutputLayout:
    """Directory names of the generated tree, relative to an entity package."""

    SHARED = "shared"
    AGGREGATES = ("domain", "aggregates")
    ENTITIES = ("domain", "entities")
    VALUE_OBJECTS = ("domain", "value_objects")
    EVENTS = ("domain", "events")
    EXCEPTIONS = ("domain", "exceptions")
    PERSISTENCE = ("infrastructure", "persistence")
    DTOS = ("application", "dtos")
    COMMANDS = ("application", "commands")
    QUERIES = ("application", "queries")
    PERMISSIONS = ("application", "permissions")

    INDEX_FILE = "__init__.py"
    # Directory names never walked when aggregating index files
    INDEX_EXCLUDED_DIRS: FrozenSet[str] = frozenset({"__pycache__", "tests"})


# Shared infrastructure templates, mapped to their output file names
SHARED_TEMPLATES: Dict[str, str] = {
    "shared/user_token.py.j2": "user_token.py",
    "shared/domain_event.py.j2": "domain_event.py",
    "shared/domain_exception.py.j2": "domain_exception.py",
    "shared/entity_identifier.py.j2": "entity_identifier.py",
    "shared/aggregate_root.py.j2": "aggregate_root.py",
}
