"""
Schema Normalizer.

Turns the raw schema document and entity parameters into immutable records:
configuration defaults are filled, configuration for tables that no longer
exist is removed, every column gets its resolved scalar type, and default
value markers become tagged enums.
"""

import copy
import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from .constants import DatatypeGroups, DefaultConfig, DefaultMarkers, EntityDefaults, OperationNames
from .domain.entity_config import EntityConfig
from .domain.models import (
    Cardinality,
    CollectionShape,
    ColumnInfo,
    IdentifierGeneration,
    IndexInfo,
    RelationshipInfo,
    ScalarType,
    SchemaInfo,
    ServiceInfo,
    StoreBackend,
    TableInfo,
)
from .domain.naming import NamingConventions, clean_field_name, to_kebab_case, to_sentence_case
from .exceptions import ConfigurationError, SchemaLoadError
from .validators import RawSchemaValidator


logger = logging.getLogger(__name__)


DATATYPE_GROUPS: List[Tuple[frozenset, ScalarType]] = [
    (DatatypeGroups.STRING, ScalarType.STRING),
    (DatatypeGroups.NUMBER, ScalarType.NUMBER),
    (DatatypeGroups.DATE, ScalarType.DATE),
    (DatatypeGroups.BOOLEAN, ScalarType.BOOLEAN),
    (DatatypeGroups.ENUM, ScalarType.ENUM),
    (DatatypeGroups.STRUCTURED, ScalarType.STRUCTURED),
]


def base_datatype(datatype: Any) -> str:
    """Upper-cased datatype without any length suffix: ``varchar(64)`` -> ``VARCHAR``."""
    match = re.match(r"\s*([A-Za-z]+)", str(datatype or ""))
    return match.group(1).upper() if match else ""


def resolve_scalar_type(datatype: Any) -> ScalarType:
    name = base_datatype(datatype)
    for group, scalar_type in DATATYPE_GROUPS:
        if name in group:
            return scalar_type
    return ScalarType.ANY


def parse_enum_literals(raw: Any) -> Tuple[str, ...]:
    """Parse a comma separated enum literal list, dropping quotes and blanks."""
    if not raw:
        return ()
    if isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        items = str(raw).split(",")
    literals = []
    for item in items:
        literal = item.strip().strip("'\"").strip()
        if literal and literal not in literals:
            literals.append(literal)
    return tuple(literals)


def _set_default(target: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    if key not in target or target[key] is None:
        target[key] = value
    return target[key]


def fill_entity_defaults(table_params: Dict[str, Any], table_name: str, module: str,
                         column_names: List[str]) -> Dict[str, Any]:
    """
    Fill the per-table configuration defaults into a raw parameters entry.

    Only missing keys are filled; stale column entries are removed and every
    column receives an entry.
    """
    params = copy.deepcopy(table_params) if table_params else {}
    kebab = to_kebab_case(table_name)

    docs = _set_default(params, "docs", {})
    _set_default(docs, "summary", f"This is the {to_sentence_case(table_name)} module")

    _set_default(params, "permissions", {"enabled": True, "prefix": ""})
    _set_default(params, "apis", {})

    store = _set_default(params, "store", {})
    for operation in ("read", "write", "list"):
        _set_default(store, operation, EntityDefaults.STORE_SELECTION)

    cancel = _set_default(params, "cancel", {})
    for operation in OperationNames.ALL:
        _set_default(cancel, operation, False)

    _set_default(params, "complete", [])

    redis = _set_default(params, "redis", {})
    _set_default(redis, "category", EntityDefaults.redis_category(kebab))
    _set_default(redis, "ttl", EntityDefaults.REDIS_TTL)
    _set_default(redis, "hash", EntityDefaults.REDIS_HASH)
    _set_default(redis, "prefix", module)
    _set_default(redis, "aggregate", kebab)
    _set_default(redis, "version", EntityDefaults.VERSION)

    eventstream = _set_default(params, "eventstream", {})
    _set_default(eventstream, "stream", EntityDefaults.event_stream(kebab))
    if "create_type" not in eventstream:
        _set_default(eventstream, "create-type", EntityDefaults.CREATE_EVENT_TYPE)
    if "update_type" not in eventstream:
        _set_default(eventstream, "update-type", EntityDefaults.UPDATE_EVENT_TYPE)
    if "bounded_context" not in eventstream:
        _set_default(eventstream, "boundedContext", module)
    _set_default(eventstream, "aggregate", kebab)
    _set_default(eventstream, "version", EntityDefaults.VERSION)

    cols = _set_default(params, "cols", {})
    for stale in [name for name in cols if name not in column_names]:
        logger.debug(f"Removing configuration of missing column {table_name}.{stale}")
        del cols[stale]
    for name in column_names:
        _set_default(cols, name, {})

    _set_default(params, "excluded", [])
    return params


class SchemaNormalizer:
    """
    Normalizes one raw schema bundle into a :class:`SchemaInfo`.

    Structural problems in the schema document are top-level failures and
    raise :class:`SchemaLoadError`; anything the resolver can cope with is
    left for it to report.
    """

    def __init__(self, schema_id: str, raw_schema: Dict[str, Any], raw_parameters: Optional[Dict[str, Any]] = None):
        self.schema_id = schema_id
        self.raw_schema = raw_schema
        self.raw_parameters = copy.deepcopy(raw_parameters) if raw_parameters else {}
        self.warnings: List[str] = []

    def normalize(self) -> SchemaInfo:
        result = RawSchemaValidator.validate(self.raw_schema)
        for warning in result.warnings:
            logger.warning(warning)
        self.warnings = list(result.warnings)
        if not result.is_valid:
            raise SchemaLoadError(
                f"Schema '{self.schema_id}' is malformed",
                context={'errors': result.errors},
            )

        raw_tables: Dict[str, Dict[str, Any]] = self.raw_schema["tables"]
        module = clean_field_name(self.schema_id)

        service_params = self.raw_parameters.get("service") or {}
        relations = self._normalize_relations(raw_tables, self.raw_schema.get("relations") or {})
        tables = tuple(
            self._normalize_table(raw_table, relations) for raw_table in raw_tables.values()
        )

        entity_configs = self._normalize_configs(tables, module)
        service = self._normalize_service(service_params, module, tables, entity_configs)

        excluded = tuple(self.raw_parameters.get("excluded") or ())
        logger.debug(f"Normalized {len(tables)} tables and {len(relations)} relations for {self.schema_id}")
        return SchemaInfo(
            service=service,
            tables=tables,
            relations=relations,
            entity_configs=entity_configs,
            excluded=excluded,
        )

    # --- Service ------------------------------------------------------------

    def _normalize_service(self, service_params: Dict[str, Any], module: str,
                           tables: Tuple[TableInfo, ...], configs: Dict[str, EntityConfig]) -> ServiceInfo:
        backends = set()
        for table in tables:
            if not table.has_structured_primary_key:
                backends |= configs[table.name].store.all_backends

        return ServiceInfo(
            name=str(service_params.get("name") or self.schema_id),
            module=clean_field_name(str(service_params.get("module") or module)),
            version=str(service_params.get("version") or DefaultConfig.SERVICE_VERSION),
            has_sql=StoreBackend.SQL in backends,
            has_redis=StoreBackend.REDIS in backends,
            has_event_stream=StoreBackend.EVENTSTREAM in backends,
        )

    # --- Entity configuration -------------------------------------------------

    def _normalize_configs(self, tables: Tuple[TableInfo, ...], module: str) -> Dict[str, EntityConfig]:
        raw_configs = self.raw_parameters.get("tables") or {}
        table_names = {table.name for table in tables}
        for stale in sorted(name for name in raw_configs if name not in table_names):
            logger.info(f"Removing configuration of table {stale}, which is no longer in the schema")

        configs: Dict[str, EntityConfig] = {}
        for table in tables:
            params = fill_entity_defaults(
                raw_configs.get(table.name) or {},
                table.name,
                module,
                [column.name for column in table.columns],
            )
            try:
                configs[table.name] = EntityConfig.model_validate(params)
            except PydanticValidationError as e:
                locations = "; ".join(
                    f"{' -> '.join(str(loc) for loc in error.get('loc', ()))}: {error.get('msg')}"
                    for error in e.errors()
                )
                raise ConfigurationError(
                    f"Invalid configuration for table '{table.name}': {locations}",
                    context={'table': table.name},
                ) from e
        return configs

    # --- Tables and columns -----------------------------------------------------

    def _normalize_table(self, raw_table: Dict[str, Any], relations: Tuple[RelationshipInfo, ...]) -> TableInfo:
        table_name = raw_table["name"]
        columns = [self._normalize_column(raw_column, table_name) for raw_column in raw_table.get("cols", [])]
        columns = [self._inherit_identifier_length(column, table_name, relations) for column in columns]

        id_to_name = {str(raw_column.get("id")): raw_column.get("name") for raw_column in raw_table.get("cols", [])}
        indexes = tuple(self._normalize_index(raw_index, id_to_name) for raw_index in raw_table.get("indexes") or [])

        return TableInfo(
            id=str(raw_table.get("id", table_name)),
            name=table_name,
            columns=tuple(columns),
            indexes=tuple(index for index in indexes if index is not None),
        )

    def _normalize_column(self, raw_column: Dict[str, Any], table_name: str) -> ColumnInfo:
        datatype = base_datatype(raw_column.get("datatype"))
        scalar_type = resolve_scalar_type(datatype)
        raw_default = raw_column.get("defaultvalue")
        default = str(raw_default).strip() if raw_default not in (None, "") else None

        identifier_generation = IdentifierGeneration.NONE
        collection_shape = CollectionShape.DEFAULT
        length = str(raw_column["param"]) if raw_column.get("param") not in (None, "") else None

        if default == DefaultMarkers.GENERATED_IDENTIFIER:
            identifier_generation = IdentifierGeneration.RANDOM
            scalar_type = ScalarType.STRING
            length = DefaultMarkers.GENERATED_IDENTIFIER_LENGTH
            default = None
        elif default == DefaultMarkers.EMPTY_STRUCTURE:
            collection_shape = CollectionShape.MAP
            default = None

        enum_values: Tuple[str, ...] = ()
        enum_type_name = None
        if scalar_type is ScalarType.ENUM:
            enum_values = parse_enum_literals(raw_column.get("enum"))
            enum_type_name = NamingConventions.enum_class(table_name, raw_column["name"])
            if not enum_values:
                logger.warning(f"Enum column {table_name}.{raw_column['name']} declares no literals")

        is_pk = bool(raw_column.get("pk"))
        return ColumnInfo(
            id=str(raw_column.get("id", raw_column["name"])),
            name=raw_column["name"],
            datatype=datatype,
            scalar_type=scalar_type,
            nullable=not (is_pk or bool(raw_column.get("nn"))),
            is_pk=is_pk,
            is_unique=bool(raw_column.get("unique")),
            default=default,
            identifier_generation=identifier_generation,
            collection_shape=collection_shape,
            enum_values=enum_values,
            enum_type_name=enum_type_name,
            length=length,
        )

    def _inherit_identifier_length(self, column: ColumnInfo, table_name: str,
                                   relations: Tuple[RelationshipInfo, ...]) -> ColumnInfo:
        """A column referencing a generated identifier gets the identifier length."""
        for relation in relations:
            if relation.child_table != table_name or relation.child_column != column.name:
                continue
            parent = self._raw_column(relation.parent_table, relation.parent_column)
            if parent and parent.get("defaultvalue") == DefaultMarkers.GENERATED_IDENTIFIER:
                return replace(column, length=DefaultMarkers.GENERATED_IDENTIFIER_LENGTH)
        return column

    def _raw_column(self, table_name: str, column_name: str) -> Optional[Dict[str, Any]]:
        for raw_table in self.raw_schema["tables"].values():
            if raw_table.get("name") == table_name:
                return next((col for col in raw_table.get("cols", []) if col.get("name") == column_name), None)
        return None

    @staticmethod
    def _normalize_index(raw_index: Any, id_to_name: Dict[str, str]) -> Optional[IndexInfo]:
        if not isinstance(raw_index, dict):
            return None
        columns = []
        for raw_column in raw_index.get("cols") or []:
            if isinstance(raw_column, dict):
                ref = raw_column.get("colid") or raw_column.get("id") or raw_column.get("name")
            else:
                ref = raw_column
            columns.append(id_to_name.get(str(ref), str(ref)))
        return IndexInfo(
            name=str(raw_index.get("name") or raw_index.get("id") or "_".join(columns)),
            columns=tuple(columns),
            unique=bool(raw_index.get("unique")),
        )

    # --- Relations ------------------------------------------------------------

    def _normalize_relations(self, raw_tables: Dict[str, Dict[str, Any]],
                             raw_relations: Dict[str, Any]) -> Tuple[RelationshipInfo, ...]:
        """
        Replace table and column ids with names.

        Ids that do not resolve are kept as they are; the resolver reports
        and drops relationships whose endpoints do not exist.
        """
        relations = []
        for relation_id, raw in raw_relations.items():
            if not isinstance(raw, dict):
                continue
            try:
                parent_cardinality = Cardinality(raw.get("c_p"))
                child_cardinality = Cardinality(raw.get("c_ch"))
            except ValueError:
                logger.error(f"Dropping relation {relation_id}: invalid cardinality ({raw.get('c_p')}, {raw.get('c_ch')})")
                continue

            parent_raw = self._raw_table(raw_tables, raw.get("parent"))
            child_raw = self._raw_table(raw_tables, raw.get("child"))
            parent_name = parent_raw.get("name", str(raw.get("parent")))
            child_name = child_raw.get("name", str(raw.get("child")))

            for pair in raw.get("cols") or []:
                relations.append(RelationshipInfo(
                    name=str(raw.get("name") or relation_id),
                    parent_table=parent_name,
                    parent_column=self._column_name(parent_raw, pair.get("parentcol")),
                    child_table=child_name,
                    child_column=self._column_name(child_raw, pair.get("childcol")),
                    parent_cardinality=parent_cardinality,
                    child_cardinality=child_cardinality,
                ))
        return tuple(relations)

    @staticmethod
    def _raw_table(raw_tables: Dict[str, Dict[str, Any]], table_ref: Any) -> Dict[str, Any]:
        if table_ref in raw_tables:
            return raw_tables[table_ref]
        return next((table for table in raw_tables.values() if table.get("name") == table_ref), {})

    @staticmethod
    def _column_name(raw_table: Dict[str, Any], column_id: Any) -> str:
        for raw_column in raw_table.get("cols", []):
            if str(raw_column.get("id")) == str(column_id) or raw_column.get("name") == column_id:
                return raw_column["name"]
        return str(column_id)


def normalize_schema(schema_id: str, raw_schema: Dict[str, Any],
                     raw_parameters: Optional[Dict[str, Any]] = None) -> SchemaInfo:
    """Normalize a raw schema document and its entity parameters."""
    return SchemaNormalizer(schema_id, raw_schema, raw_parameters).normalize()
