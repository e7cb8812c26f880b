"""
Shared generation context handed to every artifact synthesizer.

The context holds the normalized schema, the resolver output and the error
catalog of one run, plus the naming of generated modules so an artifact can
import what another artifact defines.
"""

import ast
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ddd_auto_generator.constants import DefaultConfig, FieldNames, OperationNames, OutputLayout
from ddd_auto_generator.domain.classification import classify_table
from ddd_auto_generator.domain.entity_config import CustomApi, EntityConfig
from ddd_auto_generator.domain.error_catalog import ErrorCatalog
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import (
    ColumnInfo,
    RepresentationMode,
    ResolvedRelationship,
    ScalarType,
    SchemaInfo,
    TableClassification,
    TableInfo,
)
from ddd_auto_generator.domain.naming import NamingConventions, singularize
from ddd_auto_generator.domain.relationships import RelationshipResolver


# Suffix of the value object module and class generated per relationship shape
VALUE_OBJECT_SUFFIXES = {
    RepresentationMode.LIST: "list",
    RepresentationMode.MAP: "set",
    RepresentationMode.EMBEDDED: "value",
}

NUMBER_INTEGER_TYPES = frozenset({"INT", "INTEGER", "BIGINT"})

TYPING_NAMES = frozenset({"Any", "Callable", "ClassVar", "Dict", "List", "Optional", "Tuple"})


def register_annotation_imports(imports: ImportSet, annotation: Optional[str]) -> None:
    """Add the typing and datetime imports an annotation needs."""
    if not annotation:
        return
    for name in re.findall(r"[A-Za-z_][A-Za-z0-9_]*", annotation):
        if name in TYPING_NAMES:
            imports.add("typing", name)
        elif name == "datetime":
            imports.add("datetime", "datetime")


def register_used_typing(imports: ImportSet, node: ast.AST) -> None:
    """Add typing and datetime imports for every such name a built node refers to."""
    for child in ast.walk(node):
        if isinstance(child, ast.Name):
            register_annotation_imports(imports, child.id)


@dataclass(frozen=True)
class EventSpec:
    action: str
    class_name: str
    event_type: str
    description: str


@dataclass(frozen=True)
class AggregatePlan:
    """
    Members an aggregate gets, derived once per table.

    The aggregate and event synthesizers both read the plan, so an event
    class exists exactly when an operator applies it.
    """

    table: TableInfo
    config: EntityConfig
    primary_key: ColumnInfo
    updatable_columns: Tuple[ColumnInfo, ...]
    embedded: Tuple[ResolvedRelationship, ...]
    collections: Tuple[ResolvedRelationship, ...]
    has_enable: bool
    has_status: bool
    has_default: bool
    has_active_default_rules: bool
    can_create: bool
    can_update: bool
    can_delete: bool
    custom_apis: Tuple[CustomApi, ...]

    @property
    def class_name(self) -> str:
        return NamingConventions.class_name(self.table.name)

    @property
    def version(self) -> str:
        return self.config.eventstream.version

    @staticmethod
    def item_name(rel: ResolvedRelationship) -> str:
        """Singular name of one element of a collection relationship."""
        return singularize(rel.field_name)

    def _event(self, action: str, description: str, event_type: Optional[str] = None) -> EventSpec:
        return EventSpec(
            action=action,
            class_name=NamingConventions.event_class(self.table.name, action),
            event_type=event_type or NamingConventions.event_type(self.table.name, action, self.version),
            description=description,
        )

    @property
    def events(self) -> List[EventSpec]:
        name = self.class_name
        events = []
        if self.can_create:
            events.append(self._event("created", f"Emitted when a {name} is created."))
        if self.can_update and (self.updatable_columns or self.embedded):
            events.append(self._event("updated", f"Emitted when fields of a {name} change."))
        if self.can_delete:
            events.append(self._event("deleted", f"Emitted when a {name} is marked for deletion."))
        if self.has_enable:
            events.append(self._event("enabled", f"Emitted when a {name} is enabled."))
            events.append(self._event("disabled", f"Emitted when a {name} is disabled."))
        if self.has_status:
            events.append(self._event("status_updated", f"Emitted when the status of a {name} changes."))
        for rel in self.collections:
            item = self.item_name(rel)
            events.append(self._event(f"{item}_added", f"Emitted when a {item} is added to a {name}."))
            events.append(self._event(f"{item}_removed", f"Emitted when a {item} is removed from a {name}."))
        for api in self.custom_apis:
            event_type = ".".join([
                NamingConventions.event_type(self.table.name, api.method_name, "completed"),
                self.version,
            ])
            events.append(self._event(api.method_name, f"Emitted when {api.route} completes on a {name}.", event_type))
        return events

    def event(self, action: str) -> EventSpec:
        return next(spec for spec in self.events if spec.action == action)


@dataclass
class GenerationContext:
    schema: SchemaInfo
    resolver: RelationshipResolver
    catalog: ErrorCatalog = field(default_factory=ErrorCatalog)
    unimplemented_rules: str = DefaultConfig.UNIMPLEMENTED_RULES
    _classifications: Dict[str, TableClassification] = field(default_factory=dict)

    @classmethod
    def from_schema(cls, schema: SchemaInfo, **kwargs) -> "GenerationContext":
        return cls(schema=schema, resolver=RelationshipResolver(schema), **kwargs)

    # --- Schema lookups -------------------------------------------------------

    @property
    def service_module(self) -> str:
        return self.schema.service.module

    def table(self, table_name: str) -> TableInfo:
        table = self.schema.get_table(table_name)
        if table is None:
            raise KeyError(f"Unknown table '{table_name}'")
        return table

    def config(self, table_name: str) -> EntityConfig:
        return self.schema.config_for(table_name)

    def classify(self, table_name: str) -> TableClassification:
        if table_name not in self._classifications:
            self._classifications[table_name] = classify_table(self.table(table_name), self.config(table_name))
        return self._classifications[table_name]

    def is_eligible(self, table_name: str) -> bool:
        return self.classify(table_name).is_eligible

    def has_scalar_key(self, table_name: str) -> bool:
        return self.classify(table_name).has_scalar_key

    # --- Module naming ----------------------------------------------------------

    def artifact_parts(self, table_name: str, layout: Tuple[str, ...], stem: str) -> Tuple[str, ...]:
        """Output path of an entity artifact relative to the service package."""
        return (NamingConventions.module_name(table_name),) + tuple(layout) + (f"{stem}.py",)

    def module_path(self, table_name: str, layout: Tuple[str, ...], stem: str) -> str:
        """Absolute import path of an entity artifact."""
        parts = (self.service_module, NamingConventions.module_name(table_name)) + tuple(layout) + (stem,)
        return ".".join(parts)

    def shared_module(self, stem: str) -> str:
        return f"{self.service_module}.{OutputLayout.SHARED}.{stem}"

    def entity_module(self, table_name: str) -> str:
        return self.module_path(table_name, OutputLayout.ENTITIES, f"{NamingConventions.module_name(table_name)}_entity")

    def identifier_module(self, table_name: str) -> str:
        return self.module_path(
            table_name, OutputLayout.VALUE_OBJECTS, f"{NamingConventions.module_name(table_name)}_identifier"
        )

    def domain_helpers_module(self, table_name: str) -> str:
        return self.module_path(table_name, OutputLayout.VALUE_OBJECTS, f"{NamingConventions.module_name(table_name)}_domain")

    def exception_message_module(self, table_name: str) -> str:
        return self.module_path(
            table_name, OutputLayout.EXCEPTIONS, f"{NamingConventions.module_name(table_name)}_exception_message"
        )

    def domain_exception_module(self, table_name: str) -> str:
        return self.module_path(
            table_name, OutputLayout.EXCEPTIONS, f"{NamingConventions.module_name(table_name)}_domain_exception"
        )

    def events_module(self, table_name: str) -> str:
        return self.module_path(table_name, OutputLayout.EVENTS, f"{NamingConventions.module_name(table_name)}_events")

    def value_object_stem(self, rel: ResolvedRelationship) -> str:
        return f"{NamingConventions.module_name(rel.parent_table)}_{VALUE_OBJECT_SUFFIXES[rel.representation_mode]}"

    def value_object_class(self, rel: ResolvedRelationship) -> str:
        return f"{NamingConventions.class_name(rel.parent_table)}{VALUE_OBJECT_SUFFIXES[rel.representation_mode].capitalize()}"

    def value_object_module(self, table_name: str, rel: ResolvedRelationship) -> str:
        return self.module_path(table_name, OutputLayout.VALUE_OBJECTS, self.value_object_stem(rel))

    # --- Members ----------------------------------------------------------------

    def members(self, table: TableInfo) -> List[ColumnInfo]:
        """Columns held by the aggregate: everything except the tenant column."""
        return [column for column in table.columns if column.field_name != FieldNames.TENANT]

    def managed_relationships(self, table_name: str) -> List[ResolvedRelationship]:
        """
        Owned relationships shaped by a value object.

        List, map and embedded relationships qualify when the referenced
        table has a single scalar key, whether or not it gets an aggregate of
        its own; everything else is a plain field.
        """
        return [
            rel for rel in self.resolver.owned_relationships(table_name)
            if rel.representation_mode in VALUE_OBJECT_SUFFIXES and self.has_scalar_key(rel.parent_table)
        ]

    def managed_relationship_for(self, table_name: str, column: ColumnInfo) -> Optional[ResolvedRelationship]:
        return next((rel for rel in self.managed_relationships(table_name) if rel.child_column == column.name), None)

    def value_object_relationships(self, table_name: str) -> List[ResolvedRelationship]:
        """Managed relationships deduplicated by (referenced table, shape)."""
        seen = set()
        unique = []
        for rel in self.managed_relationships(table_name):
            key = (rel.parent_table, rel.representation_mode)
            if key not in seen:
                seen.add(key)
                unique.append(rel)
        return unique

    def simple_columns(self, table: TableInfo) -> List[ColumnInfo]:
        """Non-key members that are not shaped by a value object."""
        managed = {rel.child_column for rel in self.managed_relationships(table.name)}
        return [column for column in self.members(table) if not column.is_pk and column.name not in managed]

    def referencing_relationships(self, table_name: str) -> List[ResolvedRelationship]:
        """Managed relationships of eligible tables that hold this table by value."""
        if not self.has_scalar_key(table_name):
            return []
        return [
            rel for rel in self.resolver.resolve_table(table_name)
            if rel.is_parent and rel.representation_mode in VALUE_OBJECT_SUFFIXES and self.is_eligible(rel.child_table)
        ]

    def is_referenced_target(self, table_name: str) -> bool:
        return bool(self.referencing_relationships(table_name))

    def referenced_modes(self, table_name: str) -> List[RepresentationMode]:
        """Collection shapes under which eligible tables reference this table."""
        modes = {rel.representation_mode for rel in self.referencing_relationships(table_name) if rel.is_collection}
        return sorted(modes, key=lambda mode: mode.value)

    def reference_keys(self, table_name: str) -> List[ColumnInfo]:
        """
        Columns other aggregates identify values of this table by.

        The primary key always comes first; natural keys named by a
        referencing relationship follow in column order.
        """
        table = self.table(table_name)
        named = {rel.parent_column for rel in self.referencing_relationships(table_name)}
        return [table.primary_key] + [
            column for column in table.columns if column.name in named and not column.is_pk
        ]

    def aggregate_plan(self, table_name: str) -> AggregatePlan:
        table = self.table(table_name)
        config = self.config(table_name)
        managed = self.managed_relationships(table_name)
        has_enable = table.has_column(FieldNames.ENABLED, ScalarType.BOOLEAN)
        has_status = any(column.field_name == FieldNames.STATUS for column in table.enum_columns)
        has_default = table.has_column(FieldNames.IS_DEFAULT, ScalarType.BOOLEAN)
        can_update = not config.is_cancelled(OperationNames.UPDATE)

        special = set()
        if has_enable:
            special.add(FieldNames.ENABLED)
        if has_status:
            special.add(FieldNames.STATUS)
        updatable = [column for column in self.simple_columns(table) if column.field_name not in special]

        return AggregatePlan(
            table=table,
            config=config,
            primary_key=table.primary_key,
            updatable_columns=tuple(updatable) if can_update else (),
            embedded=tuple(rel for rel in managed if rel.representation_mode is RepresentationMode.EMBEDDED),
            collections=tuple(rel for rel in managed if rel.is_collection),
            has_enable=has_enable,
            has_status=has_status,
            has_default=has_default,
            has_active_default_rules=has_default and table.has_column(FieldNames.ACTIVE, ScalarType.BOOLEAN),
            can_create=not config.is_cancelled(OperationNames.CREATE),
            can_update=can_update,
            can_delete=not config.is_cancelled(OperationNames.DELETE),
            custom_apis=tuple(config.custom_apis),
        )

    # --- Types ------------------------------------------------------------------

    def python_type(self, table_name: str, column: ColumnInfo, optional: Optional[bool] = None) -> str:
        """Annotation text of a column in generated code."""
        rel = self.managed_relationship_for(table_name, column)
        if rel is not None and rel.representation_mode is RepresentationMode.LIST:
            base = "List[Dict[str, Any]]"
        elif rel is not None and rel.representation_mode is RepresentationMode.MAP:
            base = "Dict[str, Dict[str, Any]]"
        elif column.scalar_type is ScalarType.STRING:
            base = "str"
        elif column.scalar_type is ScalarType.NUMBER:
            base = "int" if column.datatype in NUMBER_INTEGER_TYPES else "float"
        elif column.scalar_type is ScalarType.BOOLEAN:
            base = "bool"
        elif column.scalar_type is ScalarType.DATE:
            base = "datetime"
        elif column.scalar_type is ScalarType.ENUM:
            base = column.enum_type_name if column.enum_values else "str"
        elif column.scalar_type is ScalarType.STRUCTURED:
            base = "Dict[str, Any]"
        else:
            base = "Any"

        if optional is None:
            optional = column.nullable and not (rel is not None and rel.is_collection)
        if optional and base != "Any":
            return f"Optional[{base}]"
        return base
